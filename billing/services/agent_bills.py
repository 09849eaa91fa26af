# billing/services/agent_bills.py
"""
Keeps the derived ``agent_bill`` table in step with ``bill``.

``sync_agent_bill`` runs on the caller's cursor so it shares the transaction
of the bill write that triggered it. Calling it repeatedly for the same bill
converges on one row (upsert on the unique ``bill_id``).
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from billing.ingestion.db import read_cursor
from billing.services.rates import (
    ZERO,
    money,
    resolve_agent_rate,
    source_for_group_type,
    stored_rate,
    to_decimal,
)

logger = logging.getLogger(__name__)

_SELECT_BILL_SNAPSHOT = """
    SELECT b.`id`, b.`bill_date`, b.`group_id`, b.`bank_id`, b.`client_id`,
           b.`agent_id`, b.`amount`,
           g.`type` AS `group_type`,
           a.`rate` AS `agent_rate`, a.`agent_rates`
    FROM `bill` b
    JOIN `groups` g ON g.`id` = b.`group_id`
    LEFT JOIN `users` a ON a.`id` = b.`agent_id`
    WHERE b.`id` = %s
"""

_UPSERT_AGENT_BILL = """
    INSERT INTO `agent_bill`
    (`bill_id`,`bill_date`,`group_id`,`client_id`,`agent_id`,
     `source`,`bank_id`,`amount`,`rate`,`total`)
    VALUES (%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
    ON DUPLICATE KEY UPDATE
      `bill_date`=VALUES(`bill_date`),
      `group_id`=VALUES(`group_id`),
      `client_id`=VALUES(`client_id`),
      `agent_id`=VALUES(`agent_id`),
      `source`=VALUES(`source`),
      `bank_id`=VALUES(`bank_id`),
      `amount`=VALUES(`amount`),
      `rate`=VALUES(`rate`),
      `total`=VALUES(`total`)
"""

AGENT_BILL_COLUMNS = (
    "bill_id", "bill_date", "group_id", "client_id", "agent_id",
    "source", "bank_id", "amount", "rate", "total",
)


def project_agent_bill(snapshot: Mapping[str, Any]) -> Optional[Dict[str, Any]]:
    """
    Agent-bill row for a bill snapshot (bill + group type + agent rates),
    or None when the group type is not commissionable.
    """
    source = source_for_group_type(snapshot.get("group_type"))
    if source is None:
        return None
    amount = to_decimal(snapshot.get("amount")) or ZERO
    rate = stored_rate(resolve_agent_rate(source, snapshot.get("agent_rates"), snapshot.get("agent_rate")))
    return {
        "bill_id": snapshot["id"],
        "bill_date": snapshot.get("bill_date"),
        "group_id": snapshot.get("group_id"),
        "client_id": snapshot.get("client_id"),
        "agent_id": snapshot.get("agent_id"),
        "source": source,
        "bank_id": snapshot.get("bank_id"),
        "amount": amount,
        "rate": rate,
        "total": money(amount * rate),
    }


def sync_agent_bill(cur, bill_id: int) -> Optional[Dict[str, Any]]:
    """Re-derive and upsert (or delete) the agent-bill row for one bill."""
    cur.execute(_SELECT_BILL_SNAPSHOT, (bill_id,))
    snapshot = cur.fetchone()
    if not snapshot:
        return None

    row = project_agent_bill(snapshot)
    if row is None:
        cur.execute("DELETE FROM `agent_bill` WHERE `bill_id`=%s", (bill_id,))
        if cur.rowcount:
            logger.info("Removed agent bill for bill %s (group type %r)", bill_id, snapshot.get("group_type"))
        return None

    cur.execute(_UPSERT_AGENT_BILL, tuple(row[c] for c in AGENT_BILL_COLUMNS))
    logger.debug("Synced agent bill for bill %s: rate=%s total=%s", bill_id, row["rate"], row["total"])
    return row


def list_agent_bills(source: Optional[str] = None, agent_id: Optional[int] = None) -> List[Dict[str, Any]]:
    where: List[str] = []
    values: List[Any] = []
    if source:
        where.append("LOWER(ab.`source`) = LOWER(%s)")
        values.append(source.strip())
    if agent_id:
        where.append("ab.`agent_id` = %s")
        values.append(int(agent_id))
    where_sql = ("WHERE " + " AND ".join(where)) if where else ""
    sql = f"""
        SELECT ab.`id`, ab.`bill_id`, ab.`bill_date`, ab.`group_id`, ab.`client_id`,
               ab.`agent_id`, ab.`source`, ab.`bank_id`, ab.`amount`, ab.`rate`,
               ab.`total`, ab.`created_at`, ab.`updated_at`,
               g.`name` AS `group_name`,
               bk.`bank_name`,
               c.`name` AS `client_name`,
               a.`name` AS `agent_name`
        FROM `agent_bill` ab
        JOIN `groups` g ON g.`id` = ab.`group_id`
        LEFT JOIN `banks` bk ON bk.`id` = ab.`bank_id`
        LEFT JOIN `users` c ON c.`id` = ab.`client_id`
        LEFT JOIN `users` a ON a.`id` = ab.`agent_id`
        {where_sql}
        ORDER BY ab.`id` DESC
    """
    with read_cursor() as cur:
        cur.execute(sql, tuple(values))
        return list(cur.fetchall() or [])
