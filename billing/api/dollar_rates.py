# billing/api/dollar_rates.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError, ValidationError
from billing.services.roles import require_user
from billing.services.validation import finite_number, is_blank, required_date

router = APIRouter(prefix="/dollar-rates", tags=["Dollar Rates"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]


class DollarRateIn(BaseModel):
    rate_date: Optional[Any] = None
    rate: Optional[Any] = None


def _normalize(payload: DollarRateIn) -> Dict[str, Any]:
    if is_blank(payload.rate_date) or is_blank(payload.rate):
        raise ValidationError("rate_date and rate are required")
    return {
        "rate_date": required_date(payload.rate_date, "rate_date"),
        "rate": finite_number(payload.rate, "rate"),
    }


def _get(cur, rate_id: int) -> Dict[str, Any]:
    cur.execute("SELECT `id`,`rate_date`,`rate`,`created_at` FROM `dollar_rate` WHERE `id`=%s", (rate_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Dollar rate not found")
    return row


@router.get("")
def list_dollar_rates(_user: CurrentUser) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        cur.execute(
            "SELECT `id`,`rate_date`,`rate`,`created_at` FROM `dollar_rate` ORDER BY `rate_date` DESC, `id` DESC"
        )
        return list(cur.fetchall() or [])


@router.get("/by-date/{rate_date}")
def get_dollar_rate_by_date(rate_date: str, _user: CurrentUser) -> Dict[str, Any]:
    """Latest rate recorded for the given day."""
    day = required_date(rate_date, "rate_date")
    with read_cursor() as cur:
        cur.execute(
            """
            SELECT `id`,`rate_date`,`rate`,`created_at` FROM `dollar_rate`
            WHERE `rate_date`=%s ORDER BY `id` DESC LIMIT 1
            """,
            (day,),
        )
        row = cur.fetchone()
    if not row:
        raise NotFoundError("Dollar rate not found")
    return row


@router.get("/{rate_id}")
def get_dollar_rate(rate_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, rate_id)


@router.post("", status_code=201)
def create_dollar_rate(payload: DollarRateIn, _user: CurrentUser) -> Dict[str, Any]:
    data = _normalize(payload)
    with transaction() as cur:
        cur.execute(
            "INSERT INTO `dollar_rate` (`rate_date`,`rate`) VALUES (%s,%s)",
            (data["rate_date"], data["rate"]),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{rate_id}")
def update_dollar_rate(rate_id: int, payload: DollarRateIn, _user: CurrentUser) -> Dict[str, Any]:
    data = _normalize(payload)
    with transaction() as cur:
        _get(cur, rate_id)
        cur.execute(
            "UPDATE `dollar_rate` SET `rate_date`=%s, `rate`=%s WHERE `id`=%s",
            (data["rate_date"], data["rate"], rate_id),
        )
        return _get(cur, rate_id)


@router.delete("/{rate_id}")
def delete_dollar_rate(rate_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `dollar_rate` WHERE `id`=%s", (rate_id,))
        if not cur.rowcount:
            raise NotFoundError("Dollar rate not found")
    return {"message": "Dollar rate deleted successfully"}
