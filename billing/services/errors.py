# billing/services/errors.py
"""
Error taxonomy shared by services and routers.

Every error carries an HTTP status and a user-facing ``message``; the handlers
registered in ``billing.main`` render them as ``{"message": ..., **payload}``.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

import pymysql


class BillingError(Exception):
    status_code = 500

    def __init__(self, message: str, payload: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.payload: Dict[str, Any] = dict(payload or {})

    def to_dict(self) -> Dict[str, Any]:
        return {"message": self.message, **self.payload}


class ValidationError(BillingError):
    status_code = 400


class UnauthorizedError(BillingError):
    status_code = 401


class ForbiddenError(BillingError):
    status_code = 403


class NotFoundError(BillingError):
    status_code = 404


class ConflictError(BillingError):
    status_code = 409


class PayloadTooLargeError(BillingError):
    status_code = 413


# MySQL server error codes we translate
ER_DUP_ENTRY = 1062
ER_ROW_IS_REFERENCED_2 = 1451
ER_NO_REFERENCED_ROW_2 = 1452


def from_integrity_error(
    exc: pymysql.err.IntegrityError,
    conflict_message: Optional[str] = None,
) -> BillingError:
    """Map a PyMySQL IntegrityError onto the taxonomy."""
    code = exc.args[0] if exc.args else None
    if code == ER_DUP_ENTRY:
        return ConflictError(conflict_message or "Record already exists")
    if code == ER_NO_REFERENCED_ROW_2:
        return ValidationError("Referenced record does not exist")
    if code == ER_ROW_IS_REFERENCED_2:
        return ConflictError("Record is still referenced by other records")
    return ValidationError("Integrity constraint violated")
