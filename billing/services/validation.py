# billing/services/validation.py
"""
Coercion helpers for request payloads.

Each helper returns the normalized value or raises ValidationError (400)
with a message naming the offending field.
"""
from __future__ import annotations

import re
from decimal import Decimal
from typing import Any, Optional

from billing.common.dates import normalize_bill_date
from billing.services.errors import ValidationError
from billing.services.rates import to_decimal

_RE_PHONE = re.compile(r"^\+?\d{7,15}$")


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_text(value: Any, field: str) -> str:
    if is_blank(value):
        raise ValidationError(f"{field} is required")
    return str(value).strip()


def positive_int(value: Any, field: str) -> int:
    if is_blank(value):
        raise ValidationError(f"{field} is required")
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {field}")
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}") from None
    if number <= 0:
        raise ValidationError(f"Invalid {field}")
    return number


def optional_positive_int(value: Any, field: str) -> Optional[int]:
    return None if is_blank(value) else positive_int(value, field)


def finite_number(value: Any, field: str) -> Decimal:
    if is_blank(value):
        raise ValidationError(f"{field} is required")
    number = to_decimal(value)
    if number is None:
        raise ValidationError(f"Invalid {field}")
    return number


def optional_number(value: Any, field: str) -> Optional[Decimal]:
    return None if is_blank(value) else finite_number(value, field)


def required_date(value: Any, field: str) -> str:
    if is_blank(value):
        raise ValidationError(f"{field} is required")
    iso = normalize_bill_date(value)
    if iso is None:
        raise ValidationError(f"Invalid {field}")
    return iso


def validate_phone(value: Any) -> Optional[str]:
    """Optional phone: digits with an optional leading '+', 7-15 digits."""
    if is_blank(value):
        return None
    phone = re.sub(r"[\s\-()]", "", str(value))
    if not _RE_PHONE.match(phone):
        raise ValidationError("Invalid phone number format")
    return phone
