# tests/test_bills_service.py
from __future__ import annotations
from decimal import Decimal

import pytest

from conftest import FakeCursor, cursor_context
from billing.services import bills as bill_service
from billing.services.errors import NotFoundError, ValidationError

pytestmark = pytest.mark.unit

PAYLOAD = {
    "bill_date": "05/03/2026",
    "group_id": "1",
    "bank_id": "",
    "client_id": 10,
    "agent_id": 20,
    "amount": "100",
}


@pytest.fixture
def synced(monkeypatch):
    calls = []
    monkeypatch.setattr(bill_service, "sync_agent_bill", lambda cur, bill_id: calls.append(bill_id), raising=True)
    return calls


def test_normalize_bill_payload():
    p = bill_service.normalize_bill_payload(PAYLOAD)
    assert p == {
        "bill_date": "2026-03-05",
        "group_id": 1,
        "bank_id": None,
        "client_id": 10,
        "agent_id": 20,
        "amount": Decimal("100"),
        "rate": None,
    }


@pytest.mark.parametrize("field", ["bill_date", "group_id", "client_id", "agent_id", "amount"])
def test_required_fields(field):
    data = {**PAYLOAD, field: None}
    with pytest.raises(ValidationError) as exc:
        bill_service.normalize_bill_payload(data)
    assert "required" in exc.value.message


@pytest.mark.parametrize("field,value,message", [
    ("bill_date", "someday", "Invalid bill_date"),
    ("group_id", "-1", "Invalid group_id"),
    ("agent_id", "abc", "Invalid agent_id"),
    ("amount", "12x", "Invalid amount"),
    ("rate", "fast", "Invalid rate"),
])
def test_invalid_fields(field, value, message):
    with pytest.raises(ValidationError) as exc:
        bill_service.normalize_bill_payload({**PAYLOAD, field: value})
    assert exc.value.message == message


def test_create_bill_inserts_and_syncs(monkeypatch, synced):
    stored = {"id": 42, "group_id": 1, "amount": Decimal("100.00")}
    cur = FakeCursor(fetchone=[{"owner": 10}, stored], lastrowid=42)
    monkeypatch.setattr(bill_service, "transaction", cursor_context(cur), raising=True)

    row = bill_service.create_bill(PAYLOAD)
    assert row == stored
    assert synced == [42]
    inserts = cur.statements("INSERT INTO `bill`")
    assert inserts[0][1] == ("2026-03-05", 1, None, 10, 20, Decimal("100"), None)


def test_create_bill_rejects_client_that_does_not_own_group(monkeypatch, synced):
    cur = FakeCursor(fetchone=[{"owner": 11}])
    monkeypatch.setattr(bill_service, "transaction", cursor_context(cur), raising=True)
    with pytest.raises(ValidationError, match="owner"):
        bill_service.create_bill(PAYLOAD)
    assert synced == []
    assert cur.statements("INSERT") == []


def test_update_missing_bill_has_no_side_effects(monkeypatch, synced):
    cur = FakeCursor(fetchone=[None])
    monkeypatch.setattr(bill_service, "transaction", cursor_context(cur), raising=True)
    with pytest.raises(NotFoundError):
        bill_service.update_bill(99, PAYLOAD)
    assert synced == []
    assert cur.statements("UPDATE") == []


def test_update_bill_resyncs(monkeypatch, synced):
    cur = FakeCursor(fetchone=[{"id": 5}, {"owner": 10}, {"id": 5}])
    monkeypatch.setattr(bill_service, "transaction", cursor_context(cur), raising=True)
    assert bill_service.update_bill(5, PAYLOAD) == {"id": 5}
    assert synced == [5]
    assert cur.statements("UPDATE `bill`")[0][1][-1] == 5


def test_delete_missing_bill(monkeypatch):
    cur = FakeCursor(rowcount=0)
    monkeypatch.setattr(bill_service, "transaction", cursor_context(cur), raising=True)
    with pytest.raises(NotFoundError):
        bill_service.delete_bill(3)


def test_create_bills_bulk_syncs_each(synced):
    cur = FakeCursor()
    ids = iter([11, 12])

    def _execute(sql, args=None):
        cur.lastrowid = next(ids)
        return 1

    cur.execute = _execute
    rows = [bill_service.normalize_bill_payload(PAYLOAD)] * 2
    assert bill_service.create_bills_bulk(cur, rows) == [11, 12]
    assert synced == [11, 12]


def test_list_bills_attaches_group_rate_and_total(monkeypatch):
    rows = [
        {"id": 1, "group_id": 1, "bank_id": 100, "amount": Decimal("100"), "rate": None,
         "same_rate": None, "bank_rate": Decimal("1.5")},
        {"id": 2, "group_id": 2, "bank_id": None, "amount": Decimal("10"), "rate": None,
         "same_rate": Decimal("5"), "bank_rate": None},
        {"id": 3, "group_id": 1, "bank_id": None, "amount": Decimal("10"), "rate": None,
         "same_rate": None, "bank_rate": None},
    ]
    cur = FakeCursor(fetchall=[rows])
    monkeypatch.setattr(bill_service, "read_cursor", cursor_context(cur), raising=True)

    out = bill_service.list_bills(group_type="Claim")
    assert [r["total"] for r in out] == [Decimal("150.00"), Decimal("50.00"), None]
    assert "same_rate" not in out[0] and "bank_rate" not in out[0]
    assert cur.executed[0][1] == ("Claim",)
