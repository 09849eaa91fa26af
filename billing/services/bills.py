# billing/services/bills.py
"""
Bill write path.

Every create/update runs the bill write and the agent-bill sync in one
transaction, so a reader never sees a bill without its derived agent bill.
Deletes rely on the ON DELETE CASCADE from bill to agent_bill.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from billing.ingestion.db import read_cursor, transaction
from billing.services.agent_bills import sync_agent_bill
from billing.services.errors import NotFoundError, ValidationError
from billing.services.rates import (
    RateResolutionError,
    money,
    resolve_group_rate,
    to_decimal,
)
from billing.services.validation import (
    finite_number,
    is_blank,
    optional_number,
    optional_positive_int,
    positive_int,
    required_date,
)

logger = logging.getLogger(__name__)

BILL_FIELDS = ("bill_date", "group_id", "bank_id", "client_id", "agent_id", "amount", "rate")
_REQUIRED = ("bill_date", "group_id", "client_id", "agent_id", "amount")


def normalize_bill_payload(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate a bill body; returns the column values to store."""
    data = data or {}
    if any(is_blank(data.get(k)) for k in _REQUIRED):
        raise ValidationError("bill_date, group_id, client_id, agent_id and amount are required")
    return {
        "bill_date": required_date(data.get("bill_date"), "bill_date"),
        "group_id": positive_int(data.get("group_id"), "group_id"),
        "bank_id": optional_positive_int(data.get("bank_id"), "bank_id"),
        "client_id": positive_int(data.get("client_id"), "client_id"),
        "agent_id": positive_int(data.get("agent_id"), "agent_id"),
        "amount": finite_number(data.get("amount"), "amount"),
        "rate": optional_number(data.get("rate"), "rate"),
    }


def _check_group_owner(cur, payload: Mapping[str, Any]) -> None:
    cur.execute("SELECT `owner` FROM `groups` WHERE `id`=%s", (payload["group_id"],))
    group = cur.fetchone()
    if not group:
        raise ValidationError("Group not found")
    if int(group["owner"]) != int(payload["client_id"]):
        raise ValidationError("client_id must be the owner of the selected group")


def _insert_bill(cur, payload: Mapping[str, Any]) -> int:
    cur.execute(
        """
        INSERT INTO `bill`
        (`bill_date`,`group_id`,`bank_id`,`client_id`,`agent_id`,`amount`,`rate`)
        VALUES (%s,%s,%s,%s,%s,%s,%s)
        """,
        tuple(payload.get(f) for f in BILL_FIELDS),
    )
    return int(cur.lastrowid)


def _fetch_bill(cur, bill_id: int) -> Optional[Dict[str, Any]]:
    cur.execute(
        """
        SELECT `id`,`bill_date`,`group_id`,`bank_id`,`client_id`,`agent_id`,
               `amount`,`rate`,`created_at`
        FROM `bill` WHERE `id`=%s
        """,
        (bill_id,),
    )
    return cur.fetchone()


def create_bill(data: Mapping[str, Any]) -> Dict[str, Any]:
    payload = normalize_bill_payload(data)
    with transaction() as cur:
        _check_group_owner(cur, payload)
        bill_id = _insert_bill(cur, payload)
        sync_agent_bill(cur, bill_id)
        row = _fetch_bill(cur, bill_id)
    logger.info("Created bill %s (group=%s agent=%s)", bill_id, payload["group_id"], payload["agent_id"])
    return row


def update_bill(bill_id: int, data: Mapping[str, Any]) -> Dict[str, Any]:
    payload = normalize_bill_payload(data)
    with transaction() as cur:
        cur.execute("SELECT `id` FROM `bill` WHERE `id`=%s FOR UPDATE", (bill_id,))
        if not cur.fetchone():
            raise NotFoundError("Bill not found")
        _check_group_owner(cur, payload)
        cur.execute(
            """
            UPDATE `bill`
            SET `bill_date`=%s, `group_id`=%s, `bank_id`=%s, `client_id`=%s,
                `agent_id`=%s, `amount`=%s, `rate`=%s
            WHERE `id`=%s
            """,
            tuple(payload.get(f) for f in BILL_FIELDS) + (bill_id,),
        )
        sync_agent_bill(cur, bill_id)
        row = _fetch_bill(cur, bill_id)
    logger.info("Updated bill %s", bill_id)
    return row


def delete_bill(bill_id: int) -> None:
    with transaction() as cur:
        cur.execute("DELETE FROM `bill` WHERE `id`=%s", (bill_id,))
        if not cur.rowcount:
            raise NotFoundError("Bill not found")
    logger.info("Deleted bill %s", bill_id)


def create_bills_bulk(cur, rows: Iterable[Mapping[str, Any]]) -> List[int]:
    """Insert pre-validated bills on the caller's transaction, syncing each."""
    ids: List[int] = []
    for payload in rows:
        bill_id = _insert_bill(cur, payload)
        sync_agent_bill(cur, bill_id)
        ids.append(bill_id)
    return ids


def _with_display_total(row: Dict[str, Any]) -> Dict[str, Any]:
    """Attach the group-derived rate and total (informational, never stored)."""
    same_rate = row.pop("same_rate", None)
    bank_rate = row.pop("bank_rate", None)
    rate = to_decimal(row.get("rate"))
    if rate is None:
        bank_rates = {}
        if bank_rate is not None and row.get("bank_id"):
            bank_rates[(int(row["group_id"]), int(row["bank_id"]))] = bank_rate
        try:
            rate = resolve_group_rate(
                {"id": row["group_id"], "same_rate": same_rate}, row.get("bank_id"), bank_rates
            )
        except RateResolutionError:
            rate = None
    amount = to_decimal(row.get("amount"))
    row["effective_rate"] = rate
    row["total"] = money(amount * rate) if rate is not None and amount is not None else None
    return row


def list_bills(
    group_type: Optional[str] = None,
    agent_id: Optional[int] = None,
    client_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    where: List[str] = []
    values: List[Any] = []
    if group_type:
        where.append("LOWER(COALESCE(g.`type`, '')) = LOWER(%s)")
        values.append(group_type.strip())
    if agent_id:
        where.append("b.`agent_id` = %s")
        values.append(int(agent_id))
    if client_id:
        where.append("b.`client_id` = %s")
        values.append(int(client_id))
    where_sql = ("WHERE " + " AND ".join(where)) if where else ""
    sql = f"""
        SELECT b.`id`, b.`bill_date`, b.`group_id`, b.`bank_id`, b.`client_id`,
               b.`agent_id`, b.`amount`, b.`rate`, b.`created_at`,
               g.`name` AS `group_name`,
               g.`type` AS `group_type`,
               g.`same_rate`,
               gbr.`rate` AS `bank_rate`,
               bk.`bank_name`,
               c.`name` AS `client_name`,
               a.`name` AS `agent_name`
        FROM `bill` b
        JOIN `groups` g ON g.`id` = b.`group_id`
        LEFT JOIN `group_bank_rate` gbr
               ON gbr.`group_id` = b.`group_id` AND gbr.`bank_id` = b.`bank_id`
        LEFT JOIN `banks` bk ON bk.`id` = b.`bank_id`
        LEFT JOIN `users` c ON c.`id` = b.`client_id`
        LEFT JOIN `users` a ON a.`id` = b.`agent_id`
        {where_sql}
        ORDER BY b.`id` DESC
    """
    with read_cursor() as cur:
        cur.execute(sql, tuple(values))
        rows = list(cur.fetchall() or [])
    return [_with_display_total(r) for r in rows]
