# billing/api/transaction_details.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError, ValidationError
from billing.services.rates import money, to_decimal
from billing.services.roles import require_user
from billing.services.validation import finite_number, is_blank, positive_int, required_date

router = APIRouter(prefix="/transaction-details", tags=["Transaction Details"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]

_COLUMNS = ("transaction_date", "payment_method_id", "amount", "dollar_rate_id")
_SELECT = """
    SELECT td.`id`, td.`transaction_date`, td.`payment_method_id`, td.`amount`,
           td.`dollar_rate_id`, td.`created_at`,
           pm.`name` AS `payment_method_name`,
           dr.`rate_date` AS `dollar_rate_date`,
           dr.`rate` AS `dollar_rate`
    FROM `transaction_details` td
    JOIN `payment_methods` pm ON pm.`id` = td.`payment_method_id`
    JOIN `dollar_rate` dr ON dr.`id` = td.`dollar_rate_id`
"""


class TransactionDetailIn(BaseModel):
    transaction_date: Optional[Any] = None
    payment_method_id: Optional[Any] = None
    amount: Optional[Any] = None
    dollar_rate_id: Optional[Any] = None


def normalize_transaction_detail(payload: TransactionDetailIn) -> Dict[str, Any]:
    if any(is_blank(getattr(payload, c)) for c in _COLUMNS):
        raise ValidationError("transaction_date, payment_method_id, amount and dollar_rate_id are required")
    return {
        "transaction_date": required_date(payload.transaction_date, "transaction_date"),
        "payment_method_id": positive_int(payload.payment_method_id, "payment_method_id"),
        "amount": finite_number(payload.amount, "amount"),
        "dollar_rate_id": positive_int(payload.dollar_rate_id, "dollar_rate_id"),
    }


def with_converted_amount(row: Dict[str, Any]) -> Dict[str, Any]:
    """Adds ``converted_amount`` = amount x the linked dollar rate, in cents."""
    amount = to_decimal(row.get("amount"))
    rate = to_decimal(row.get("dollar_rate"))
    out = dict(row)
    out["converted_amount"] = money(amount * rate) if amount is not None and rate is not None else None
    return out


def _get(cur, detail_id: int) -> Dict[str, Any]:
    cur.execute(_SELECT + " WHERE td.`id`=%s", (detail_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Transaction detail not found")
    return with_converted_amount(row)


@router.get("")
def list_transaction_details(
    _user: CurrentUser,
    payment_method_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        if payment_method_id:
            cur.execute(
                _SELECT + " WHERE td.`payment_method_id`=%s ORDER BY td.`transaction_date` DESC, td.`id` DESC",
                (payment_method_id,),
            )
        else:
            cur.execute(_SELECT + " ORDER BY td.`transaction_date` DESC, td.`id` DESC")
        return [with_converted_amount(r) for r in cur.fetchall() or []]


@router.get("/{detail_id}")
def get_transaction_detail(detail_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, detail_id)


@router.post("", status_code=201)
def create_transaction_detail(payload: TransactionDetailIn, _user: CurrentUser) -> Dict[str, Any]:
    data = normalize_transaction_detail(payload)
    with transaction() as cur:
        cur.execute(
            """
            INSERT INTO `transaction_details`
            (`transaction_date`,`payment_method_id`,`amount`,`dollar_rate_id`)
            VALUES (%s,%s,%s,%s)
            """,
            tuple(data[c] for c in _COLUMNS),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{detail_id}")
def update_transaction_detail(detail_id: int, payload: TransactionDetailIn, _user: CurrentUser) -> Dict[str, Any]:
    data = normalize_transaction_detail(payload)
    with transaction() as cur:
        _get(cur, detail_id)
        cur.execute(
            """
            UPDATE `transaction_details`
            SET `transaction_date`=%s, `payment_method_id`=%s, `amount`=%s, `dollar_rate_id`=%s
            WHERE `id`=%s
            """,
            tuple(data[c] for c in _COLUMNS) + (detail_id,),
        )
        return _get(cur, detail_id)


@router.delete("/{detail_id}")
def delete_transaction_detail(detail_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `transaction_details` WHERE `id`=%s", (detail_id,))
        if not cur.rowcount:
            raise NotFoundError("Transaction detail not found")
    return {"message": "Transaction detail deleted successfully"}
