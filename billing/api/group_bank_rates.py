# billing/api/group_bank_rates.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError, ValidationError
from billing.services.rates import ZERO
from billing.services.roles import require_user
from billing.services.validation import finite_number, is_blank, positive_int

router = APIRouter(prefix="/group-bank-rates", tags=["Group Bank Rates"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]
DUPLICATE = "Rate for this group and bank already exists"

_SELECT = """
    SELECT gbr.`id`, gbr.`group_id`, gbr.`bank_id`, gbr.`rate`, gbr.`created_at`,
           g.`name` AS `group_name`, b.`bank_name`
    FROM `group_bank_rate` gbr
    JOIN `groups` g ON g.`id` = gbr.`group_id`
    JOIN `banks` b ON b.`id` = gbr.`bank_id`
"""


class GroupBankRateIn(BaseModel):
    group_id: Optional[Any] = None
    bank_id: Optional[Any] = None
    rate: Optional[Any] = None


def _normalize(payload: GroupBankRateIn) -> Dict[str, Any]:
    if is_blank(payload.group_id) or is_blank(payload.bank_id) or is_blank(payload.rate):
        raise ValidationError("group_id, bank_id and rate are required")
    data = {
        "group_id": positive_int(payload.group_id, "group_id"),
        "bank_id": positive_int(payload.bank_id, "bank_id"),
        "rate": finite_number(payload.rate, "rate"),
    }
    if data["rate"] <= ZERO:
        raise ValidationError("rate must be greater than 0")
    return data


def _get(cur, row_id: int) -> Dict[str, Any]:
    cur.execute(_SELECT + " WHERE gbr.`id`=%s", (row_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Group bank rate not found")
    return row


@router.get("")
def list_group_bank_rates(_user: CurrentUser, group_id: Optional[int] = None) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        if group_id:
            cur.execute(_SELECT + " WHERE gbr.`group_id`=%s ORDER BY gbr.`id` ASC", (group_id,))
        else:
            cur.execute(_SELECT + " ORDER BY gbr.`id` ASC")
        return list(cur.fetchall() or [])


@router.get("/{row_id}")
def get_group_bank_rate(row_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, row_id)


@router.post("", status_code=201)
def create_group_bank_rate(payload: GroupBankRateIn, _user: CurrentUser) -> Dict[str, Any]:
    data = _normalize(payload)
    with transaction(DUPLICATE) as cur:
        cur.execute(
            "INSERT INTO `group_bank_rate` (`group_id`,`bank_id`,`rate`) VALUES (%s,%s,%s)",
            (data["group_id"], data["bank_id"], data["rate"]),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{row_id}")
def update_group_bank_rate(row_id: int, payload: GroupBankRateIn, _user: CurrentUser) -> Dict[str, Any]:
    data = _normalize(payload)
    with transaction(DUPLICATE) as cur:
        _get(cur, row_id)
        cur.execute(
            "UPDATE `group_bank_rate` SET `group_id`=%s, `bank_id`=%s, `rate`=%s WHERE `id`=%s",
            (data["group_id"], data["bank_id"], data["rate"], row_id),
        )
        return _get(cur, row_id)


@router.delete("/{row_id}")
def delete_group_bank_rate(row_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `group_bank_rate` WHERE `id`=%s", (row_id,))
        if not cur.rowcount:
            raise NotFoundError("Group bank rate not found")
    return {"message": "Group bank rate deleted successfully"}
