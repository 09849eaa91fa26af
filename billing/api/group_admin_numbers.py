# billing/api/group_admin_numbers.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError, ValidationError
from billing.services.roles import require_user
from billing.services.validation import is_blank, positive_int

router = APIRouter(prefix="/group-admin-numbers", tags=["Group Admin Numbers"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]

ADMIN_NUMBER_MAX_LENGTH = 12


class GroupNumberIn(BaseModel):
    group_id: Optional[Any] = None
    number: Optional[Any] = None


def normalize_group_number(payload: GroupNumberIn, max_length: int) -> Dict[str, Any]:
    """Shared by the admin and employee number routes; only the length cap differs."""
    if is_blank(payload.group_id) or is_blank(payload.number):
        raise ValidationError("group_id and number are required")
    number = str(payload.number).strip()
    if len(number) > max_length:
        raise ValidationError(f"number must be at most {max_length} characters")
    return {"group_id": positive_int(payload.group_id, "group_id"), "number": number}


def number_select_sql(table: str) -> str:
    return f"""
        SELECT n.`id`, n.`group_id`, n.`number`, n.`created_at`, g.`name` AS `group_name`
        FROM `{table}` n
        LEFT JOIN `groups` g ON g.`id` = n.`group_id`
    """


_SELECT = number_select_sql("group_admin_numbers")


def _get(cur, row_id: int) -> Dict[str, Any]:
    cur.execute(_SELECT + " WHERE n.`id`=%s", (row_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Group admin number not found")
    return row


@router.get("")
def list_group_admin_numbers(_user: CurrentUser, group_id: Optional[int] = None) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        if group_id:
            cur.execute(_SELECT + " WHERE n.`group_id`=%s ORDER BY n.`id` ASC", (group_id,))
        else:
            cur.execute(_SELECT + " ORDER BY n.`id` ASC")
        return list(cur.fetchall() or [])


@router.get("/{row_id}")
def get_group_admin_number(row_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, row_id)


@router.post("", status_code=201)
def create_group_admin_number(payload: GroupNumberIn, _user: CurrentUser) -> Dict[str, Any]:
    data = normalize_group_number(payload, ADMIN_NUMBER_MAX_LENGTH)
    with transaction() as cur:
        cur.execute(
            "INSERT INTO `group_admin_numbers` (`group_id`,`number`) VALUES (%s,%s)",
            (data["group_id"], data["number"]),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{row_id}")
def update_group_admin_number(row_id: int, payload: GroupNumberIn, _user: CurrentUser) -> Dict[str, Any]:
    data = normalize_group_number(payload, ADMIN_NUMBER_MAX_LENGTH)
    with transaction() as cur:
        _get(cur, row_id)
        cur.execute(
            "UPDATE `group_admin_numbers` SET `group_id`=%s, `number`=%s WHERE `id`=%s",
            (data["group_id"], data["number"], row_id),
        )
        return _get(cur, row_id)


@router.delete("/{row_id}")
def delete_group_admin_number(row_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `group_admin_numbers` WHERE `id`=%s", (row_id,))
        if not cur.rowcount:
            raise NotFoundError("Group admin number not found")
    return {"message": "Group admin number deleted successfully"}
