# billing/api/group_employee_numbers.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends

from billing.api.group_admin_numbers import GroupNumberIn, normalize_group_number, number_select_sql
from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError
from billing.services.roles import require_user

router = APIRouter(prefix="/group-employee-numbers", tags=["Group Employee Numbers"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]

EMPLOYEE_NUMBER_MAX_LENGTH = 20   # column width

_SELECT = number_select_sql("group_employee_numbers")


def _get(cur, row_id: int) -> Dict[str, Any]:
    cur.execute(_SELECT + " WHERE n.`id`=%s", (row_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Group employee number not found")
    return row


@router.get("")
def list_group_employee_numbers(_user: CurrentUser, group_id: Optional[int] = None) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        if group_id:
            cur.execute(_SELECT + " WHERE n.`group_id`=%s ORDER BY n.`id` ASC", (group_id,))
        else:
            cur.execute(_SELECT + " ORDER BY n.`id` ASC")
        return list(cur.fetchall() or [])


@router.get("/{row_id}")
def get_group_employee_number(row_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, row_id)


@router.post("", status_code=201)
def create_group_employee_number(payload: GroupNumberIn, _user: CurrentUser) -> Dict[str, Any]:
    data = normalize_group_number(payload, EMPLOYEE_NUMBER_MAX_LENGTH)
    with transaction() as cur:
        cur.execute(
            "INSERT INTO `group_employee_numbers` (`group_id`,`number`) VALUES (%s,%s)",
            (data["group_id"], data["number"]),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{row_id}")
def update_group_employee_number(row_id: int, payload: GroupNumberIn, _user: CurrentUser) -> Dict[str, Any]:
    data = normalize_group_number(payload, EMPLOYEE_NUMBER_MAX_LENGTH)
    with transaction() as cur:
        _get(cur, row_id)
        cur.execute(
            "UPDATE `group_employee_numbers` SET `group_id`=%s, `number`=%s WHERE `id`=%s",
            (data["group_id"], data["number"], row_id),
        )
        return _get(cur, row_id)


@router.delete("/{row_id}")
def delete_group_employee_number(row_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `group_employee_numbers` WHERE `id`=%s", (row_id,))
        if not cur.rowcount:
            raise NotFoundError("Group employee number not found")
    return {"message": "Group employee number deleted successfully"}
