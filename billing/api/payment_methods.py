# billing/api/payment_methods.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import ConflictError, NotFoundError
from billing.services.roles import require_user
from billing.services.validation import require_text

router = APIRouter(prefix="/payment-methods", tags=["Payment Methods"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]
DUPLICATE = "Payment method already exists"
IN_USE = "Payment method is used by transaction details"


class PaymentMethodIn(BaseModel):
    name: Optional[str] = None


def _get(cur, method_id: int) -> Dict[str, Any]:
    cur.execute("SELECT `id`,`name`,`created_at` FROM `payment_methods` WHERE `id`=%s", (method_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Payment method not found")
    return row


@router.get("")
def list_payment_methods(_user: CurrentUser) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        cur.execute("SELECT `id`,`name`,`created_at` FROM `payment_methods` ORDER BY `id` ASC")
        return list(cur.fetchall() or [])


@router.get("/{method_id}")
def get_payment_method(method_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, method_id)


@router.post("", status_code=201)
def create_payment_method(payload: PaymentMethodIn, _user: CurrentUser) -> Dict[str, Any]:
    name = require_text(payload.name, "name")
    with transaction(DUPLICATE) as cur:
        cur.execute("INSERT INTO `payment_methods` (`name`) VALUES (%s)", (name,))
        return _get(cur, int(cur.lastrowid))


@router.put("/{method_id}")
def update_payment_method(method_id: int, payload: PaymentMethodIn, _user: CurrentUser) -> Dict[str, Any]:
    name = require_text(payload.name, "name")
    with transaction(DUPLICATE) as cur:
        _get(cur, method_id)
        cur.execute("UPDATE `payment_methods` SET `name`=%s WHERE `id`=%s", (name, method_id))
        return _get(cur, method_id)


@router.delete("/{method_id}")
def delete_payment_method(method_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("SELECT COUNT(*) AS `n` FROM `transaction_details` WHERE `payment_method_id`=%s", (method_id,))
        if int((cur.fetchone() or {}).get("n") or 0):
            raise ConflictError(IN_USE)
        cur.execute("DELETE FROM `payment_methods` WHERE `id`=%s", (method_id,))
        if not cur.rowcount:
            raise NotFoundError("Payment method not found")
    return {"message": "Payment method deleted successfully"}
