# billing/api/groups.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError, ValidationError
from billing.services.rates import ZERO
from billing.services.roles import require_user
from billing.services.validation import is_blank, optional_number, positive_int, require_text

router = APIRouter(prefix="/groups", tags=["Groups"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]

GROUP_TYPES = ("Claim", "Depo", "Processing", "Payment")
_SELECT_GROUP = """
    SELECT g.`id`, g.`name`, g.`type`, g.`owner`, g.`same_rate`, g.`created_at`,
           u.`name` AS `owner_name`
    FROM `groups` g
    LEFT JOIN `users` u ON u.`id` = g.`owner`
"""


class GroupIn(BaseModel):
    name: Optional[str] = None
    type: Optional[str] = None
    owner: Optional[Any] = None
    same_rate: Optional[Any] = None


def canonical_group_type(value: Any) -> str:
    t = str(value or "").strip().lower()
    for name in GROUP_TYPES:
        if name.lower() == t:
            return name
    raise ValidationError(f"type must be one of {', '.join(GROUP_TYPES)}")


def _normalize(cur, payload: GroupIn) -> Dict[str, Any]:
    if is_blank(payload.name) or is_blank(payload.owner):
        raise ValidationError("name and owner are required")
    data = {
        "name": require_text(payload.name, "name"),
        "type": canonical_group_type(payload.type),
        "owner": positive_int(payload.owner, "owner"),
        "same_rate": optional_number(payload.same_rate, "same_rate"),
    }
    if data["same_rate"] is not None and data["same_rate"] <= ZERO:
        raise ValidationError("same_rate must be greater than 0")

    cur.execute("SELECT `role` FROM `users` WHERE `id`=%s", (data["owner"],))
    owner = cur.fetchone()
    if not owner:
        raise ValidationError("Owner not found")
    if str(owner.get("role") or "").strip().lower() != "client":
        raise ValidationError("Owner must be a Client")
    return data


def _get(cur, group_id: int) -> Dict[str, Any]:
    cur.execute(_SELECT_GROUP + " WHERE g.`id`=%s", (group_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Group not found")
    return row


@router.get("")
def list_groups(_user: CurrentUser) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        cur.execute(_SELECT_GROUP + " ORDER BY g.`id` ASC")
        return list(cur.fetchall() or [])


@router.get("/bill-config")
def bill_config(_user: CurrentUser, type: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    Groups of one type with everything a bill form needs to price a bill:
    the owner, the same rate and the per-bank rate table.
    """
    if is_blank(type):
        raise ValidationError("type query param is required")
    group_type = canonical_group_type(type)
    with read_cursor() as cur:
        cur.execute(_SELECT_GROUP + " WHERE g.`type`=%s ORDER BY g.`name` ASC", (group_type,))
        groups = list(cur.fetchall() or [])
        ids = [g["id"] for g in groups]
        rates: List[Dict[str, Any]] = []
        if ids:
            placeholders = ",".join(["%s"] * len(ids))
            cur.execute(
                f"""
                SELECT gbr.`group_id`, gbr.`bank_id`, gbr.`rate`, b.`bank_name`
                FROM `group_bank_rate` gbr
                JOIN `banks` b ON b.`id` = gbr.`bank_id`
                WHERE gbr.`group_id` IN ({placeholders})
                ORDER BY b.`bank_name` ASC
                """,
                tuple(ids),
            )
            rates = list(cur.fetchall() or [])

    by_group: Dict[int, List[Dict[str, Any]]] = {}
    for r in rates:
        by_group.setdefault(int(r["group_id"]), []).append(
            {"bank_id": r["bank_id"], "bank_name": r["bank_name"], "rate": r["rate"]}
        )
    for g in groups:
        g["bank_rates"] = by_group.get(int(g["id"]), [])
    return groups


@router.get("/{group_id}")
def get_group(group_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, group_id)


@router.post("", status_code=201)
def create_group(payload: GroupIn, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        data = _normalize(cur, payload)
        cur.execute(
            "INSERT INTO `groups` (`name`,`type`,`owner`,`same_rate`) VALUES (%s,%s,%s,%s)",
            (data["name"], data["type"], data["owner"], data["same_rate"]),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{group_id}")
def update_group(group_id: int, payload: GroupIn, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        _get(cur, group_id)
        data = _normalize(cur, payload)
        cur.execute(
            "UPDATE `groups` SET `name`=%s, `type`=%s, `owner`=%s, `same_rate`=%s WHERE `id`=%s",
            (data["name"], data["type"], data["owner"], data["same_rate"], group_id),
        )
        return _get(cur, group_id)


@router.delete("/{group_id}")
def delete_group(group_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `groups` WHERE `id`=%s", (group_id,))
        if not cur.rowcount:
            raise NotFoundError("Group not found")
    return {"message": "Group deleted successfully"}
