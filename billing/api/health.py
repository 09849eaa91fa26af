# billing/api/health.py
from __future__ import annotations
from fastapi import APIRouter
from typing import Dict, Any
import logging

from billing.ingestion.db import read_cursor
from billing.services.errors import BillingError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["Health"])


class NotReadyError(BillingError):
    status_code = 503


@router.get("/healthz")
def healthz() -> Dict[str, Any]:
    # App is up
    return {"status": "ok", "service": "billing"}


@router.get("/readyz")
def readyz() -> Dict[str, Any]:
    # DB ping
    try:
        with read_cursor() as cur:
            cur.execute("SELECT 1")
            cur.fetchone()
    except Exception as e:
        logger.warning("Readiness DB ping failed: %s", e)
        raise NotReadyError(f"DB ping failed: {e}") from e
    return {"status": "ok", "db": "ok"}
