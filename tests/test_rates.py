# tests/test_rates.py
from __future__ import annotations
import json
from decimal import Decimal

import pytest

from billing.services.rates import (
    BankNotConfiguredError,
    BankRequiredError,
    InvalidRateError,
    PerWorkType,
    RateResolutionError,
    Scalar,
    money,
    parse_rate,
    rate_to_db,
    resolve_agent_rate,
    resolve_group_rate,
    source_for_group_type,
    to_decimal,
)

pytestmark = pytest.mark.unit

GROUP_PER_BANK = {"id": 1, "name": "Acme Claims", "type": "Claim", "same_rate": None}
BANK_RATES = {(1, 100): Decimal("1.5"), (1, 101): Decimal("0")}


@pytest.mark.parametrize("bank_id", [None, 100, 999])
def test_same_rate_wins_for_any_bank(bank_id):
    group = {"id": 1, "same_rate": Decimal("10")}
    assert resolve_group_rate(group, bank_id, BANK_RATES) == Decimal("10")


def test_per_bank_rate_is_looked_up():
    assert resolve_group_rate(GROUP_PER_BANK, 100, BANK_RATES) == Decimal("1.5")


@pytest.mark.parametrize("bank_id", [None, 0])
def test_per_bank_group_requires_a_bank(bank_id):
    with pytest.raises(BankRequiredError):
        resolve_group_rate(GROUP_PER_BANK, bank_id, BANK_RATES)


def test_unconfigured_bank_is_rejected():
    with pytest.raises(BankNotConfiguredError):
        resolve_group_rate(GROUP_PER_BANK, 555, BANK_RATES)


@pytest.mark.parametrize("group,bank_id", [
    ({"id": 1, "same_rate": Decimal("0")}, None),
    ({"id": 1, "same_rate": "-2"}, 100),
    (GROUP_PER_BANK, 101),
])
def test_non_positive_rate_is_invalid(group, bank_id):
    with pytest.raises(InvalidRateError) as exc:
        resolve_group_rate(group, bank_id, BANK_RATES)
    assert exc.value.status_code == 400


def test_resolution_errors_share_a_base():
    assert issubclass(BankRequiredError, RateResolutionError)
    assert issubclass(BankNotConfiguredError, RateResolutionError)
    assert issubclass(InvalidRateError, RateResolutionError)


def test_agent_rate_falls_back_to_generic_map():
    rate = {"Claimer": 5}
    assert resolve_agent_rate("Claim", {}, rate) == Decimal("5")
    assert resolve_agent_rate("Depo", {}, rate) == Decimal("0")


def test_agent_rates_win_without_merging():
    agent_rates = {"depositer": 2}
    rate = {"claimer": 5, "default": 1}
    assert resolve_agent_rate("Depo", agent_rates, rate) == Decimal("2")
    # claimer lives only in the generic map, which is ignored here
    assert resolve_agent_rate("Claim", agent_rates, rate) == Decimal("0")


def test_depo_tries_alternate_spelling_then_default():
    assert resolve_agent_rate("Depo", {"depositor": 3}, None) == Decimal("3")
    assert resolve_agent_rate("Depo", {"default": 0.75}, None) == Decimal("0.75")


def test_scalar_rate_used_when_no_map():
    assert resolve_agent_rate("Claim", None, 4) == Decimal("4")
    assert resolve_agent_rate("Depo", "", "2.5") == Decimal("2.5")


def test_json_text_rates_are_decoded():
    assert resolve_agent_rate("Claim", json.dumps({"CLAIMER": "1.2"}), None) == Decimal("1.2")


def test_unresolvable_agent_rate_is_zero():
    assert resolve_agent_rate("Claim", None, None) == Decimal("0")
    assert resolve_agent_rate("Claim", {"claimer": "abc"}, {"other": 1}) == Decimal("0")
    assert resolve_agent_rate(None, {"claimer": 1}, None) == Decimal("0")


def test_parse_rate_variants():
    assert parse_rate(None) == PerWorkType({})
    assert parse_rate(3) == Scalar(Decimal("3"))
    assert parse_rate("7.5") == Scalar(Decimal("7.5"))
    assert parse_rate(b'{"Claimer": 1, "bad": "x"}') == PerWorkType({"claimer": Decimal("1")})
    assert parse_rate("not a number") == PerWorkType({})


def test_rate_to_db():
    assert rate_to_db(PerWorkType({})) is None
    assert json.loads(rate_to_db(Scalar(Decimal("2.5")))) == 2.5
    assert json.loads(rate_to_db(PerWorkType({"claimer": Decimal("1.2")}))) == {"claimer": 1.2}


@pytest.mark.parametrize("group_type,expected", [
    ("Claim", "Claim"), (" claim ", "Claim"), ("DEPO", "Depo"),
    ("Processing", None), ("Payment", None), (None, None),
])
def test_source_for_group_type(group_type, expected):
    assert source_for_group_type(group_type) == expected


def test_to_decimal_and_money():
    assert to_decimal("1,250.50") == Decimal("1250.50")
    assert to_decimal(True) is None
    assert to_decimal("nan") is None
    assert to_decimal(float("inf")) is None
    assert money(Decimal("120.005")) == Decimal("120.01")
    assert money(Decimal("1.2") * Decimal("100")) == Decimal("120.00")
