# billing/api/banks.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError
from billing.services.roles import require_user
from billing.services.validation import require_text

router = APIRouter(prefix="/banks", tags=["Banks"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]
DUPLICATE = "Bank name already exists"


class BankIn(BaseModel):
    bank_name: Optional[str] = None


def _get(cur, bank_id: int) -> Dict[str, Any]:
    cur.execute("SELECT `id`,`bank_name`,`created_at` FROM `banks` WHERE `id`=%s", (bank_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Bank not found")
    return row


@router.get("")
def list_banks(_user: CurrentUser) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        cur.execute("SELECT `id`,`bank_name`,`created_at` FROM `banks` ORDER BY `id` ASC")
        return list(cur.fetchall() or [])


@router.get("/{bank_id}")
def get_bank(bank_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, bank_id)


@router.post("", status_code=201)
def create_bank(payload: BankIn, _user: CurrentUser) -> Dict[str, Any]:
    name = require_text(payload.bank_name, "bank_name")
    with transaction(DUPLICATE) as cur:
        cur.execute("INSERT INTO `banks` (`bank_name`) VALUES (%s)", (name,))
        return _get(cur, int(cur.lastrowid))


@router.put("/{bank_id}")
def update_bank(bank_id: int, payload: BankIn, _user: CurrentUser) -> Dict[str, Any]:
    name = require_text(payload.bank_name, "bank_name")
    with transaction(DUPLICATE) as cur:
        _get(cur, bank_id)
        cur.execute("UPDATE `banks` SET `bank_name`=%s WHERE `id`=%s", (name, bank_id))
        return _get(cur, bank_id)


@router.delete("/{bank_id}")
def delete_bank(bank_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `banks` WHERE `id`=%s", (bank_id,))
        if not cur.rowcount:
            raise NotFoundError("Bank not found")
    return {"message": "Bank deleted successfully"}
