# billing/api/other_bills.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Mapping, Optional

from fastapi import APIRouter, Body, Depends

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError, ValidationError
from billing.services.roles import require_user
from billing.services.validation import finite_number, is_blank, optional_positive_int, required_date

router = APIRouter(prefix="/other-bills", tags=["Other Bills"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]

KINDS = ("client", "agent")
_COLUMNS = ("kind", "bill_date", "group_id", "client_id", "agent_id", "comment", "amount")
_SELECT = """
    SELECT ob.`id`, ob.`kind`, ob.`bill_date`, ob.`group_id`, ob.`client_id`,
           ob.`agent_id`, ob.`comment`, ob.`amount`, ob.`created_at`,
           g.`name` AS `group_name`,
           c.`name` AS `client_name`,
           a.`name` AS `agent_name`
    FROM `other_bill` ob
    LEFT JOIN `groups` g ON g.`id` = ob.`group_id`
    LEFT JOIN `users` c ON c.`id` = ob.`client_id`
    LEFT JOIN `users` a ON a.`id` = ob.`agent_id`
"""


def normalize_kind(value: Any) -> Optional[str]:
    kind = str(value or "").strip().lower()
    return kind if kind in KINDS else None


def normalize_other_bill(data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    ``client`` entries belong to a group and its client, ``agent`` entries
    to an agent only; the ids that do not apply to the kind are cleared.
    """
    data = data or {}
    kind = normalize_kind(data.get("kind"))
    if not kind:
        raise ValidationError("kind must be client or agent")
    if is_blank(data.get("bill_date")) or is_blank(data.get("amount")):
        raise ValidationError("bill_date and amount are required")

    payload = {
        "kind": kind,
        "bill_date": required_date(data.get("bill_date"), "bill_date"),
        "group_id": optional_positive_int(data.get("group_id"), "group_id"),
        "client_id": optional_positive_int(data.get("client_id"), "client_id"),
        "agent_id": optional_positive_int(data.get("agent_id"), "agent_id"),
        "comment": "" if data.get("comment") is None else str(data.get("comment")),
        "amount": finite_number(data.get("amount"), "amount"),
    }
    if kind == "client":
        if payload["group_id"] is None or payload["client_id"] is None:
            raise ValidationError("group_id and client_id are required for client other bill")
        payload["agent_id"] = None
    else:
        if payload["agent_id"] is None:
            raise ValidationError("agent_id is required for agent other bill")
        payload["group_id"] = None
        payload["client_id"] = None
    return payload


def _get(cur, bill_id: int) -> Dict[str, Any]:
    cur.execute(_SELECT + " WHERE ob.`id`=%s", (bill_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Other bill not found")
    return row


def _other_bill_id(value: int) -> int:
    if value <= 0:
        raise ValidationError("Invalid id")
    return value


@router.get("")
def list_other_bills(_user: CurrentUser, kind: Optional[str] = None) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        if kind is not None:
            k = normalize_kind(kind)
            if not k:
                raise ValidationError("kind must be client or agent")
            cur.execute(_SELECT + " WHERE LOWER(ob.`kind`)=%s ORDER BY ob.`id` DESC", (k,))
        else:
            cur.execute(_SELECT + " ORDER BY ob.`id` DESC")
        return list(cur.fetchall() or [])


@router.post("", status_code=201)
def create_other_bill(_user: CurrentUser, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    data = normalize_other_bill(payload)
    with transaction() as cur:
        cur.execute(
            """
            INSERT INTO `other_bill`
            (`kind`,`bill_date`,`group_id`,`client_id`,`agent_id`,`comment`,`amount`)
            VALUES (%s,%s,%s,%s,%s,%s,%s)
            """,
            tuple(data[c] for c in _COLUMNS),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{bill_id}")
def update_other_bill(bill_id: int, _user: CurrentUser, payload: Dict[str, Any] = Body(...)) -> Dict[str, Any]:
    bill_id = _other_bill_id(bill_id)
    data = normalize_other_bill(payload)
    with transaction() as cur:
        _get(cur, bill_id)
        cur.execute(
            """
            UPDATE `other_bill`
            SET `kind`=%s, `bill_date`=%s, `group_id`=%s, `client_id`=%s,
                `agent_id`=%s, `comment`=%s, `amount`=%s
            WHERE `id`=%s
            """,
            tuple(data[c] for c in _COLUMNS) + (bill_id,),
        )
        return _get(cur, bill_id)


@router.delete("/{bill_id}")
def delete_other_bill(bill_id: int, _user: CurrentUser) -> Dict[str, Any]:
    bill_id = _other_bill_id(bill_id)
    with transaction() as cur:
        cur.execute("DELETE FROM `other_bill` WHERE `id`=%s", (bill_id,))
        if not cur.rowcount:
            raise NotFoundError("Other bill not found")
    return {"message": "Other bill deleted successfully"}
