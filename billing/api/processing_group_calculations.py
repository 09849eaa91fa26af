# billing/api/processing_group_calculations.py
from __future__ import annotations

from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends

from billing.api.processing_calculations import (
    COLUMNS,
    ProcessingCalculationIn,
    check_processing_group,
    normalize_processing_calculation,
    select_sql,
)
from billing.ingestion.db import read_cursor, transaction
from billing.services.errors import NotFoundError
from billing.services.roles import require_user

router = APIRouter(prefix="/processing-group-calculations", tags=["Processing Group Calculations"])

CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]

_SELECT = select_sql("processing_group_calculation")


def _get(cur, calc_id: int) -> Dict[str, Any]:
    cur.execute(_SELECT + " WHERE pc.`id`=%s", (calc_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Processing group calculation not found")
    return row


@router.get("")
def list_processing_group_calculations(
    _user: CurrentUser,
    processing_group_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        if processing_group_id:
            cur.execute(_SELECT + " WHERE pc.`processing_group_id`=%s ORDER BY pc.`id` DESC", (processing_group_id,))
        else:
            cur.execute(_SELECT + " ORDER BY pc.`id` DESC")
        return list(cur.fetchall() or [])


@router.get("/{calc_id}")
def get_processing_group_calculation(calc_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, calc_id)


@router.post("", status_code=201)
def create_processing_group_calculation(payload: ProcessingCalculationIn, _user: CurrentUser) -> Dict[str, Any]:
    data = normalize_processing_calculation(payload)
    with transaction() as cur:
        check_processing_group(cur, data["processing_group_id"])
        cur.execute(
            """
            INSERT INTO `processing_group_calculation`
            (`processing_percent`,`processing_group_id`,`client_id`,`processing_total`)
            VALUES (%s,%s,%s,%s)
            """,
            tuple(data[c] for c in COLUMNS),
        )
        return _get(cur, int(cur.lastrowid))


@router.put("/{calc_id}")
def update_processing_group_calculation(
    calc_id: int, payload: ProcessingCalculationIn, _user: CurrentUser
) -> Dict[str, Any]:
    data = normalize_processing_calculation(payload)
    with transaction() as cur:
        _get(cur, calc_id)
        check_processing_group(cur, data["processing_group_id"])
        cur.execute(
            """
            UPDATE `processing_group_calculation`
            SET `processing_percent`=%s, `processing_group_id`=%s, `client_id`=%s, `processing_total`=%s
            WHERE `id`=%s
            """,
            tuple(data[c] for c in COLUMNS) + (calc_id,),
        )
        return _get(cur, calc_id)


@router.delete("/{calc_id}")
def delete_processing_group_calculation(calc_id: int, _user: CurrentUser) -> Dict[str, Any]:
    with transaction() as cur:
        cur.execute("DELETE FROM `processing_group_calculation` WHERE `id`=%s", (calc_id,))
        if not cur.rowcount:
            raise NotFoundError("Processing group calculation not found")
    return {"message": "Processing group calculation deleted successfully"}
