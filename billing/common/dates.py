# billing/common/dates.py
from __future__ import annotations

import math
import re
import unicodedata
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Optional

from dateutil import parser as du_parser

# Excel's 1900 date system, shifted for the fake 1900-02-29.
EXCEL_EPOCH = date(1899, 12, 30)
# Largest serial that still maps to a valid date (9999-12-31).
_MAX_SERIAL = (date(9999, 12, 31) - EXCEL_EPOCH).days

_RE_ISO = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[T ].*)?$")
_RE_DAY_FIRST = re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$")
_RE_SERIAL = re.compile(r"^\d{1,7}(?:\.\d+)?$")


def excel_serial_to_date(serial: float) -> Optional[date]:
    """Excel serial day number -> date. The fractional (time) part is dropped."""
    if not math.isfinite(serial) or serial < 1 or serial > _MAX_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=int(serial))


def _safe_date(y: int, m: int, d: int) -> Optional[date]:
    try:
        return date(y, m, d)
    except ValueError:
        return None


def parse_bill_date(value: Any) -> Optional[date]:
    """
    Flexible date parsing for bill dates.

    Accepts date/datetime objects (pandas Timestamps included), Excel serials
    (numbers or numeric text), 'YYYY-MM-DD', 'DD-MM-YYYY', 'DD/MM/YYYY', and whatever else
    dateutil can read. Returns None when nothing fits.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float, Decimal)):
        return excel_serial_to_date(float(value))

    s = unicodedata.normalize("NFKC", str(value)).strip()
    if not s:
        return None

    m = _RE_ISO.match(s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    m = _RE_DAY_FIRST.match(s)
    if m:
        return _safe_date(int(m.group(3)), int(m.group(2)), int(m.group(1)))
    if _RE_SERIAL.match(s):
        return excel_serial_to_date(float(s))

    try:
        return du_parser.parse(s).date()
    except (ValueError, OverflowError):
        return None


def normalize_bill_date(value: Any) -> Optional[str]:
    """parse_bill_date() rendered as 'YYYY-MM-DD'."""
    d = parse_bill_date(value)
    return d.isoformat() if d else None
