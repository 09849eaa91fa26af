# billing/services/rates.py
"""
Rate resolution rules shared by the bill write path, the agent-bill
synchronizer and the bulk upload validator.

Two independent questions are answered here:

* ``resolve_group_rate``: the client-facing bill rate from a group's
  configuration (same rate for every bank, or a per-bank rate table).
  Problems raise, because this rate is authoritative.
* ``resolve_agent_rate``: the commission rate for an agent given the bill's
  source (Claim / Depo). Unresolvable configuration yields ``0``; a missing
  agent rate must never block saving a client bill.

Stored user rates are either a JSON object keyed by work type or a bare
number. They are converted into the ``Rate`` variant with ``parse_rate``.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from billing.services.errors import ValidationError

CENTS = Decimal("0.01")
RATE_STEP = Decimal("0.0001")
ZERO = Decimal("0")

SOURCE_CLAIM = "Claim"
SOURCE_DEPO = "Depo"

# Lookup keys tried per source, in order, before the "default" key.
SOURCE_KEYS: Dict[str, Tuple[str, ...]] = {
    SOURCE_CLAIM: ("claimer",),
    SOURCE_DEPO: ("depositer", "depositor"),
}
DEFAULT_KEY = "default"


class RateResolutionError(ValidationError):
    pass


class BankRequiredError(RateResolutionError):
    pass


class BankNotConfiguredError(RateResolutionError):
    pass


class InvalidRateError(RateResolutionError):
    pass


@dataclass(frozen=True)
class Scalar:
    value: Decimal


@dataclass(frozen=True)
class PerWorkType:
    rates: Mapping[str, Decimal] = field(default_factory=dict)


Rate = Union[Scalar, PerWorkType]


def to_decimal(value: Any) -> Optional[Decimal]:
    """Finite Decimal from a number or numeric string; None otherwise."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        d = value
    elif isinstance(value, (int, float)):
        d = Decimal(str(value))
    else:
        s = str(value).replace(",", "").strip()
        if not s:
            return None
        try:
            d = Decimal(s)
        except InvalidOperation:
            return None
    return d if d.is_finite() else None


def money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def stored_rate(value: Decimal) -> Decimal:
    """Agent rate at the precision `agent_bill.rate` keeps (DECIMAL(12,4))."""
    return value.quantize(RATE_STEP, rounding=ROUND_HALF_UP)


def parse_rate(value: Any) -> Rate:
    """
    Convert a stored rate into the tagged variant.

    Mappings keep only entries with a finite numeric value, keys lowercased.
    JSON text is decoded first. Anything unusable becomes an empty map.
    """
    if isinstance(value, (bytes, bytearray)):
        value = value.decode("utf-8")
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return PerWorkType({})
        try:
            value = json.loads(text)
        except ValueError:
            number = to_decimal(text)
            return Scalar(number) if number is not None else PerWorkType({})
    if isinstance(value, Mapping):
        rates: Dict[str, Decimal] = {}
        for key, raw in value.items():
            number = to_decimal(raw)
            if number is not None:
                rates[str(key).strip().lower()] = number
        return PerWorkType(rates)
    number = to_decimal(value)
    return Scalar(number) if number is not None else PerWorkType({})


def rate_to_db(rate: Rate) -> Optional[str]:
    """JSON text for the users.rate / users.agent_rates columns."""
    if isinstance(rate, Scalar):
        return json.dumps(float(rate.value))
    if not rate.rates:
        return None
    return json.dumps({k: float(v) for k, v in rate.rates.items()})


def source_for_group_type(group_type: Any) -> Optional[str]:
    """'Claim' / 'Depo' for commissionable group types, None for the rest."""
    t = str(group_type or "").strip().lower()
    if t == "claim":
        return SOURCE_CLAIM
    if t == "depo":
        return SOURCE_DEPO
    return None


def resolve_agent_rate(source: Optional[str], agent_rates: Any, rate: Any) -> Decimal:
    """
    Commission rate for an agent.

    ``agent_rates`` wins outright when it has at least one usable entry;
    otherwise the generic ``rate`` map is used. Within the chosen map the
    source key is tried, then its alternate spelling, then ``default``. An
    empty map falls back to ``rate`` as a bare number. Unresolved -> 0.
    """
    preferred = parse_rate(agent_rates)
    generic = parse_rate(rate)

    if isinstance(preferred, PerWorkType) and preferred.rates:
        table: Mapping[str, Decimal] = preferred.rates
    elif isinstance(generic, PerWorkType):
        table = generic.rates
    else:
        table = {}

    if table:
        for key in SOURCE_KEYS.get(source or "", ()) + (DEFAULT_KEY,):
            if key in table:
                return table[key]
        return ZERO

    if isinstance(generic, Scalar):
        return generic.value
    return ZERO


def resolve_group_rate(
    group: Mapping[str, Any],
    bank_id: Optional[int],
    bank_rates: Mapping[Tuple[int, int], Any],
) -> Decimal:
    """
    Bill rate from the group configuration.

    ``bank_rates`` maps (group_id, bank_id) to the configured rate.
    """
    same_rate = group.get("same_rate")
    if same_rate is not None:
        value = to_decimal(same_rate)
    else:
        if not bank_id:
            raise BankRequiredError("Bank is required for groups without a same rate")
        key = (int(group["id"]), int(bank_id))
        if key not in bank_rates:
            raise BankNotConfiguredError("Bank is not configured for this group")
        value = to_decimal(bank_rates[key])

    if value is None or value <= ZERO:
        raise InvalidRateError("Group rate must be a positive number")
    return value
