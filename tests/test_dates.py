# tests/test_dates.py
from __future__ import annotations
from datetime import date, datetime

import pytest

from billing.common.dates import excel_serial_to_date, normalize_bill_date, parse_bill_date

pytestmark = pytest.mark.unit


@pytest.mark.parametrize("value", [
    "2026-03-05",
    "05-03-2026",
    "05/03/2026",
    46086,
    46086.5,
    "46086",
    date(2026, 3, 5),
    datetime(2026, 3, 5, 14, 30),
    "2026-03-05 00:00:00",
    "March 5, 2026",
])
def test_accepted_formats(value):
    assert normalize_bill_date(value) == "2026-03-05"


@pytest.mark.parametrize("value", [None, "", "   ", "not a date", "31-02-2026", "2026-13-01", True, -5])
def test_rejected_values(value):
    assert parse_bill_date(value) is None


def test_excel_epoch():
    assert excel_serial_to_date(1) == date(1899, 12, 31)
    assert excel_serial_to_date(float("nan")) is None
