# billing/api/processing_calculations.py
"""
Processing calculations: a processing percentage charged to a client through a
``Processing`` group, with an optional recorded total.

``processing_group_calculations`` stores group-level figures in a table of the
same shape and reuses the normalizer and group check defined here.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError, ValidationError
from billing.services.rates import ZERO
from billing.services.roles import require_user
from billing.services.validation import finite_number, is_blank, optional_number, positive_int

router = APIRouter(prefix="/processing-calculations", tags=["Processing Calculations"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]

MAX_PERCENT = Decimal("100")
COLUMNS = ("processing_percent", "processing_group_id", "client_id", "processing_total")


class ProcessingCalculationIn(BaseModel):
    processing_percent: Optional[Any] = None
    processing_group_id: Optional[Any] = None
    client_id: Optional[Any] = None
    processing_total: Optional[Any] = None


def normalize_processing_calculation(payload: ProcessingCalculationIn) -> Dict[str, Any]:
    if any(is_blank(getattr(payload, c)) for c in COLUMNS[:3]):
        raise ValidationError("processing_percent, processing_group_id and client_id are required")
    data = {
        "processing_percent": finite_number(payload.processing_percent, "processing_percent"),
        "processing_group_id": positive_int(payload.processing_group_id, "processing_group_id"),
        "client_id": positive_int(payload.client_id, "client_id"),
        "processing_total": optional_number(payload.processing_total, "processing_total"),
    }
    if not ZERO <= data["processing_percent"] <= MAX_PERCENT:
        raise ValidationError("processing_percent must be between 0 and 100")
    return data


def check_processing_group(cur, group_id: int) -> None:
    cur.execute("SELECT `type` FROM `groups` WHERE `id`=%s", (group_id,))
    group = cur.fetchone()
    if not group:
        raise ValidationError("Processing group not found")
    if str(group.get("type") or "").strip().lower() != "processing":
        raise ValidationError("processing_group_id must be a Processing group")


def select_sql(table: str) -> str:
    return f"""
        SELECT pc.`id`, pc.`processing_percent`, pc.`processing_group_id`, pc.`client_id`,
               pc.`processing_total`, pc.`created_at`,
               g.`name` AS `processing_group_name`,
               c.`name` AS `client_name`
        FROM `{table}` pc
        LEFT JOIN `groups` g ON g.`id` = pc.`processing_group_id`
        LEFT JOIN `users` c ON c.`id` = pc.`client_id`
    """


_SELECT = select_sql("processing_calculation")


def _get(cur, calc_id: int) -> Dict[str, Any]:
    cur.execute(_SELECT + " WHERE pc.`id`=%s", (calc_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Processing calculation not found")
    return row


@router.get("")
def list_processing_calculations(_user: CurrentUser) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        cur.execute(_SELECT + " ORDER BY pc.`id` DESC")
        return list(cur.fetchall() or [])


@router.get("/{calc_id}")
def get_processing_calculation(calc_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, calc_id)


@router.post("", status_code=201)
def create_processing_calculation(payload: ProcessingCalculationIn, _user: CurrentUser) -> Dict[str, Any]:
    data = normalize_processing_calculation(payload)
    with transaction() as cur:
        check_processing_group(cur, data["processing_group_id"])
        cur.execute(
            """
            INSERT INTO `processing_calculation`
            (`processing_percent`,`processing_group_id`,`client_id`,`processing_total`)
            VALUES (%s,%s,%s,%s)
            """,
            tuple(data[c] for c in COLUMNS),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{calc_id}")
def update_processing_calculation(
    calc_id: int, payload: ProcessingCalculationIn, _user: CurrentUser
) -> Dict[str, Any]:
    data = normalize_processing_calculation(payload)
    with transaction() as cur:
        _get(cur, calc_id)
        check_processing_group(cur, data["processing_group_id"])
        cur.execute(
            """
            UPDATE `processing_calculation`
            SET `processing_percent`=%s, `processing_group_id`=%s, `client_id`=%s, `processing_total`=%s
            WHERE `id`=%s
            """,
            tuple(data[c] for c in COLUMNS) + (calc_id,),
        )
        return _get(cur, calc_id)


@router.delete("/{calc_id}")
def delete_processing_calculation(calc_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `processing_calculation` WHERE `id`=%s", (calc_id,))
        if not cur.rowcount:
            raise NotFoundError("Processing calculation not found")
    return {"message": "Processing calculation deleted successfully"}
