# tests/test_reference_data_api.py
from __future__ import annotations
from decimal import Decimal

import pytest

from conftest import FakeCursor, cursor_context
import billing.api.banks as banks_api
import billing.api.dollar_rates as dollar_rates_api
import billing.api.group_bank_rates as gbr_api
import billing.api.groups as groups_api
import billing.api.other_bills as other_bills_api
import billing.api.group_admin_numbers as admin_numbers_api
import billing.api.group_employee_numbers as employee_numbers_api
import billing.api.payment_methods as payment_methods_api
import billing.api.processing_calculations as processing_api
import billing.api.processing_group_calculations as processing_group_api
import billing.api.transaction_details as transaction_details_api
from billing.services.errors import ConflictError, ValidationError

pytestmark = pytest.mark.unit


# ── banks ──

def test_create_bank(client, admin_headers, monkeypatch):
    cur = FakeCursor(fetchone=[{"id": 3, "bank_name": "HDFC", "created_at": None}], lastrowid=3)
    monkeypatch.setattr(banks_api, "transaction", cursor_context(cur), raising=True)
    resp = client.post("/api/banks", json={"bank_name": "  HDFC "}, headers=admin_headers)
    assert resp.status_code == 201
    assert cur.statements("INSERT")[0][1] == ("HDFC",)


def test_duplicate_bank_is_409(client, admin_headers, monkeypatch):
    def _conflict(message=None):
        raise ConflictError(message)

    monkeypatch.setattr(banks_api, "transaction", _conflict, raising=True)
    resp = client.post("/api/banks", json={"bank_name": "HDFC"}, headers=admin_headers)
    assert resp.status_code == 409
    assert resp.json() == {"message": "Bank name already exists"}


def test_delete_missing_bank(client, admin_headers, monkeypatch):
    monkeypatch.setattr(banks_api, "transaction", cursor_context(FakeCursor(rowcount=0)), raising=True)
    resp = client.delete("/api/banks/5", headers=admin_headers)
    assert resp.status_code == 404


# ── groups ──

@pytest.mark.parametrize("value,expected", [("claim", "Claim"), ("DEPO", "Depo"), ("payment", "Payment")])
def test_canonical_group_type(value, expected):
    assert groups_api.canonical_group_type(value) == expected


def test_group_owner_must_be_client(client, admin_headers, monkeypatch):
    cur = FakeCursor(fetchone=[{"role": "Agent"}])
    monkeypatch.setattr(groups_api, "transaction", cursor_context(cur), raising=True)
    resp = client.post(
        "/api/groups", json={"name": "Acme Claims", "type": "Claim", "owner": 20}, headers=admin_headers
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "Owner must be a Client"}


def test_group_rejects_unknown_type(client, admin_headers, monkeypatch):
    monkeypatch.setattr(groups_api, "transaction", cursor_context(FakeCursor()), raising=True)
    resp = client.post("/api/groups", json={"name": "X", "type": "Other", "owner": 10}, headers=admin_headers)
    assert resp.status_code == 400


def test_create_group(client, admin_headers, monkeypatch):
    group = {"id": 1, "name": "Flat Depo", "type": "Depo", "owner": 10, "same_rate": Decimal("5")}
    cur = FakeCursor(fetchone=[{"role": "client"}, group], lastrowid=1)
    monkeypatch.setattr(groups_api, "transaction", cursor_context(cur), raising=True)
    resp = client.post(
        "/api/groups", json={"name": "Flat Depo", "type": "depo", "owner": "10", "same_rate": "5"},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    assert cur.statements("INSERT")[0][1] == ("Flat Depo", "Depo", 10, Decimal("5"))


def test_bill_config_nests_bank_rates(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchall=[
        [{"id": 1, "name": "Acme Claims", "type": "Claim", "owner": 10, "same_rate": None},
         {"id": 2, "name": "Flat", "type": "Claim", "owner": 10, "same_rate": Decimal("5")}],
        [{"group_id": 1, "bank_id": 100, "rate": Decimal("1.5"), "bank_name": "HDFC"}],
    ])
    monkeypatch.setattr(groups_api, "read_cursor", cursor_context(cur), raising=True)
    resp = client.get("/api/groups/bill-config?type=claim", headers=agent_headers)
    assert resp.status_code == 200, resp.text
    j = resp.json()
    assert [g["id"] for g in j] == [1, 2]
    assert j[0]["bank_rates"][0]["bank_name"] == "HDFC"
    assert j[1]["bank_rates"] == []
    assert cur.executed[1][1] == (1, 2)


def test_bill_config_requires_type(client, agent_headers):
    resp = client.get("/api/groups/bill-config", headers=agent_headers)
    assert resp.status_code == 400


# ── group bank rates ──

@pytest.mark.parametrize("body", [
    {"group_id": 1, "bank_id": 2},
    {"group_id": 1, "bank_id": 2, "rate": 0},
    {"group_id": 1, "bank_id": 2, "rate": "x"},
])
def test_group_bank_rate_validation(body):
    with pytest.raises(ValidationError):
        gbr_api._normalize(gbr_api.GroupBankRateIn(**body))


def test_duplicate_group_bank_pair_is_409(client, admin_headers, monkeypatch):
    seen = []

    def _conflict(message=None):
        seen.append(message)
        raise ConflictError(message)

    monkeypatch.setattr(gbr_api, "transaction", _conflict, raising=True)
    resp = client.post("/api/group-bank-rates", json={"group_id": 1, "bank_id": 2, "rate": 1.5}, headers=admin_headers)
    assert resp.status_code == 409
    assert seen == [gbr_api.DUPLICATE]


# ── other bills ──

def test_client_other_bill_clears_agent():
    p = other_bills_api.normalize_other_bill(
        {"kind": "Client", "bill_date": "2026-03-05", "group_id": 1, "client_id": 10, "agent_id": 20, "amount": "50"}
    )
    assert p["kind"] == "client"
    assert p["agent_id"] is None
    assert p["comment"] == ""


def test_agent_other_bill_clears_group_and_client():
    p = other_bills_api.normalize_other_bill(
        {"kind": "agent", "bill_date": "2026-03-05", "group_id": 1, "client_id": 10, "agent_id": 20, "amount": 5}
    )
    assert (p["group_id"], p["client_id"], p["agent_id"]) == (None, None, 20)


@pytest.mark.parametrize("body,message", [
    ({"kind": "x", "bill_date": "2026-03-05", "amount": 1}, "kind must be client or agent"),
    ({"kind": "agent", "amount": 1}, "bill_date and amount are required"),
    ({"kind": "client", "bill_date": "2026-03-05", "amount": 1, "group_id": 1},
     "group_id and client_id are required for client other bill"),
    ({"kind": "agent", "bill_date": "2026-03-05", "amount": 1}, "agent_id is required for agent other bill"),
])
def test_other_bill_rules(body, message):
    with pytest.raises(ValidationError) as exc:
        other_bills_api.normalize_other_bill(body)
    assert exc.value.message == message


def test_other_bills_kind_filter(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchall=[[]])
    monkeypatch.setattr(other_bills_api, "read_cursor", cursor_context(cur), raising=True)
    assert client.get("/api/other-bills?kind=AGENT", headers=agent_headers).status_code == 200
    assert cur.executed[0][1] == ("agent",)
    assert client.get("/api/other-bills?kind=vendor", headers=agent_headers).status_code == 400


# ── dollar rates ──

def test_dollar_rate_by_date_normalizes_day(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchone=[{"id": 1, "rate_date": "2026-03-05", "rate": Decimal("83.1250")}])
    monkeypatch.setattr(dollar_rates_api, "read_cursor", cursor_context(cur), raising=True)
    resp = client.get("/api/dollar-rates/by-date/05-03-2026", headers=agent_headers)
    assert resp.status_code == 200, resp.text
    assert cur.executed[0][1] == ("2026-03-05",)


def test_dollar_rate_by_date_missing(client, agent_headers, monkeypatch):
    monkeypatch.setattr(dollar_rates_api, "read_cursor", cursor_context(FakeCursor()), raising=True)
    resp = client.get("/api/dollar-rates/by-date/2026-03-05", headers=agent_headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Dollar rate not found"}


def test_dollar_rate_requires_fields(client, admin_headers):
    resp = client.post("/api/dollar-rates", json={"rate": 83}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "rate_date and rate are required"}


# ── payment methods ──

def test_create_payment_method_trims_name(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchone=[{"id": 1, "name": "Wire", "created_at": None}], lastrowid=1)
    monkeypatch.setattr(payment_methods_api, "transaction", cursor_context(cur), raising=True)
    resp = client.post("/api/payment-methods", json={"name": " Wire "}, headers=agent_headers)
    assert resp.status_code == 201, resp.text
    assert cur.statements("INSERT")[0][1] == ("Wire",)


def test_payment_method_requires_name(client, agent_headers):
    resp = client.post("/api/payment-methods", json={"name": "   "}, headers=agent_headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "name is required"}


def test_payment_method_in_use_cannot_be_deleted(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchone=[{"n": 2}])
    monkeypatch.setattr(payment_methods_api, "transaction", cursor_context(cur), raising=True)
    resp = client.delete("/api/payment-methods/1", headers=agent_headers)
    assert resp.status_code == 409
    assert resp.json() == {"message": payment_methods_api.IN_USE}
    assert cur.statements("DELETE") == []


def test_unused_payment_method_is_deleted(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchone=[{"n": 0}])
    monkeypatch.setattr(payment_methods_api, "transaction", cursor_context(cur), raising=True)
    resp = client.delete("/api/payment-methods/1", headers=agent_headers)
    assert resp.status_code == 200
    assert cur.statements("DELETE")[0][1] == (1,)


# ── transaction details ──

def test_transaction_detail_requires_every_field(client, agent_headers):
    resp = client.post(
        "/api/transaction-details", json={"transaction_date": "2026-03-05", "amount": 10}, headers=agent_headers
    )
    assert resp.status_code == 400
    assert resp.json() == {
        "message": "transaction_date, payment_method_id, amount and dollar_rate_id are required"
    }


@pytest.mark.parametrize("body,message", [
    ({"payment_method_id": "abc"}, "Invalid payment_method_id"),
    ({"dollar_rate_id": 0}, "Invalid dollar_rate_id"),
    ({"amount": "ten"}, "Invalid amount"),
    ({"transaction_date": "someday"}, "Invalid transaction_date"),
])
def test_transaction_detail_field_checks(body, message):
    values = {"transaction_date": "2026-03-05", "payment_method_id": 1, "amount": 10, "dollar_rate_id": 1}
    values.update(body)
    with pytest.raises(ValidationError) as exc:
        transaction_details_api.normalize_transaction_detail(transaction_details_api.TransactionDetailIn(**values))
    assert exc.value.message == message


def test_create_transaction_detail_links_dollar_rate(client, agent_headers, monkeypatch):
    row = {
        "id": 9, "transaction_date": "2026-03-05", "payment_method_id": 2, "amount": Decimal("100.00"),
        "dollar_rate_id": 7, "payment_method_name": "Wire", "dollar_rate_date": "2026-03-05",
        "dollar_rate": Decimal("83.1250"), "created_at": None,
    }
    cur = FakeCursor(fetchone=[row], lastrowid=9)
    monkeypatch.setattr(transaction_details_api, "transaction", cursor_context(cur), raising=True)
    resp = client.post(
        "/api/transaction-details",
        json={"transaction_date": "05/03/2026", "payment_method_id": "2", "amount": "100", "dollar_rate_id": 7},
        headers=agent_headers,
    )
    assert resp.status_code == 201, resp.text
    assert cur.statements("INSERT")[0][1] == ("2026-03-05", 2, Decimal("100"), 7)
    assert Decimal(str(resp.json()["converted_amount"])) == Decimal("8312.50")


def test_transaction_details_filter_by_payment_method(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchall=[[]])
    monkeypatch.setattr(transaction_details_api, "read_cursor", cursor_context(cur), raising=True)
    assert client.get("/api/transaction-details?payment_method_id=2", headers=agent_headers).json() == []
    assert cur.executed[0][1] == (2,)


# ── processing calculations ──

@pytest.mark.parametrize("body,message", [
    ({"processing_group_id": 3, "client_id": 10}, "processing_percent, processing_group_id and client_id are required"),
    ({"processing_percent": 150, "processing_group_id": 3, "client_id": 10},
     "processing_percent must be between 0 and 100"),
    ({"processing_percent": 2, "processing_group_id": 3, "client_id": 10, "processing_total": "x"},
     "Invalid processing_total"),
])
def test_processing_calculation_rules(body, message):
    with pytest.raises(ValidationError) as exc:
        processing_api.normalize_processing_calculation(processing_api.ProcessingCalculationIn(**body))
    assert exc.value.message == message


def test_processing_calculation_needs_processing_group(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchone=[{"type": "Payment"}])
    monkeypatch.setattr(processing_api, "transaction", cursor_context(cur), raising=True)
    resp = client.post(
        "/api/processing-calculations",
        json={"processing_percent": 2.5, "processing_group_id": 3, "client_id": 10},
        headers=agent_headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "processing_group_id must be a Processing group"}
    assert cur.statements("INSERT") == []


def test_create_processing_calculation(client, agent_headers, monkeypatch):
    row = {"id": 4, "processing_percent": Decimal("2.50"), "processing_group_id": 3, "client_id": 10,
           "processing_total": None, "processing_group_name": "Proc", "client_name": "Acme", "created_at": None}
    cur = FakeCursor(fetchone=[{"type": "processing"}, row], lastrowid=4)
    monkeypatch.setattr(processing_api, "transaction", cursor_context(cur), raising=True)
    resp = client.post(
        "/api/processing-calculations",
        json={"processing_percent": "2.5", "processing_group_id": 3, "client_id": "10"},
        headers=agent_headers,
    )
    assert resp.status_code == 201, resp.text
    assert cur.statements("INSERT INTO `processing_calculation`")[0][1] == (Decimal("2.5"), 3, 10, None)


def test_processing_group_calculation_unknown_group(client, agent_headers, monkeypatch):
    monkeypatch.setattr(processing_group_api, "transaction", cursor_context(FakeCursor()), raising=True)
    resp = client.post(
        "/api/processing-group-calculations",
        json={"processing_percent": 1, "processing_group_id": 99, "client_id": 10, "processing_total": 40},
        headers=agent_headers,
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "Processing group not found"}


def test_delete_missing_processing_group_calculation(client, agent_headers, monkeypatch):
    monkeypatch.setattr(processing_group_api, "transaction", cursor_context(FakeCursor(rowcount=0)), raising=True)
    resp = client.delete("/api/processing-group-calculations/5", headers=agent_headers)
    assert resp.status_code == 404
    assert resp.json() == {"message": "Processing group calculation not found"}


# ── group admin / employee numbers ──

def test_admin_number_length_cap(client, agent_headers):
    resp = client.post(
        "/api/group-admin-numbers", json={"group_id": 1, "number": "1234567890123"}, headers=agent_headers
    )
    assert resp.status_code == 400
    assert resp.json() == {"message": "number must be at most 12 characters"}


def test_employee_number_allows_wider_numbers(client, agent_headers, monkeypatch):
    row = {"id": 2, "group_id": 1, "number": "+91987654321012", "group_name": "Acme", "created_at": None}
    cur = FakeCursor(fetchone=[row], lastrowid=2)
    monkeypatch.setattr(employee_numbers_api, "transaction", cursor_context(cur), raising=True)
    resp = client.post(
        "/api/group-employee-numbers", json={"group_id": "1", "number": " +91987654321012 "}, headers=agent_headers
    )
    assert resp.status_code == 201, resp.text
    assert cur.statements("INSERT")[0][1] == (1, "+91987654321012")


def test_group_number_requires_group_and_number():
    with pytest.raises(ValidationError) as exc:
        admin_numbers_api.normalize_group_number(admin_numbers_api.GroupNumberIn(group_id=1), 12)
    assert exc.value.message == "group_id and number are required"


def test_admin_numbers_filter_by_group(client, agent_headers, monkeypatch):
    cur = FakeCursor(fetchall=[[{"id": 1, "group_id": 4, "number": "9000000001"}]])
    monkeypatch.setattr(admin_numbers_api, "read_cursor", cursor_context(cur), raising=True)
    resp = client.get("/api/group-admin-numbers?group_id=4", headers=agent_headers)
    assert resp.status_code == 200
    assert resp.json()[0]["number"] == "9000000001"
    assert cur.executed[0][1] == (4,)
