# billing/ingestion/bulk_bills.py
"""
Bulk bill upload: spreadsheet rows -> validated bills, all or nothing.

Pipeline:
- read the first sheet into a matrix (header row + data rows)
- check the required header columns
- drop fully blank rows
- load lookup tables once (groups, users, agents, banks, group-bank rates)
- validate every row, collecting every error per row
- if any row failed: insert nothing, report every failing row
- otherwise insert all rows (and their agent bills) in one transaction

The client of a row is never read from the sheet; it is always the matched
group's owner.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from billing.common.dates import normalize_bill_date
from billing.ingestion.db import transaction
from billing.ingestion.sheet_reader import read_matrix
from billing.services.bills import create_bills_bulk
from billing.services.errors import ValidationError
from billing.services.rates import (
    BankNotConfiguredError,
    RateResolutionError,
    money,
    resolve_group_rate,
    source_for_group_type,
    to_decimal,
)

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS: Tuple[str, ...] = ("Date", "Group", "Agent", "Bank", "Amount", "Total")
NO_BANK_VALUES = {"", "-", "n/a"}
TOTAL_TOLERANCE = Decimal("0.01")


class BulkUploadError(ValidationError):
    """The file as a whole cannot be processed."""


class BulkValidationError(ValidationError):
    """One or more rows failed validation; payload carries the row report."""


def normalize_name(value: Any) -> str:
    return " ".join(str(value if value is not None else "").split()).lower()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _display(value: Decimal) -> str:
    """Decimal without trailing zeros: 500.00 -> '500', 500.02 -> '500.02'."""
    return format(value.normalize(), "f")


@dataclass(frozen=True)
class BulkLookups:
    """Request-scoped lookup tables built once per upload."""
    groups_by_name: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    users_by_id: Mapping[int, Mapping[str, Any]] = field(default_factory=dict)
    agents_by_name: Mapping[str, Sequence[Mapping[str, Any]]] = field(default_factory=dict)
    banks_by_name: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    group_bank_rates: Mapping[Tuple[int, int], Any] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        groups: Sequence[Mapping[str, Any]],
        users: Sequence[Mapping[str, Any]],
        banks: Sequence[Mapping[str, Any]],
        group_bank_rates: Sequence[Mapping[str, Any]],
    ) -> "BulkLookups":
        agents: Dict[str, List[Mapping[str, Any]]] = {}
        for u in users:
            if str(u.get("role") or "").strip().lower() == "agent":
                agents.setdefault(normalize_name(u.get("name")), []).append(u)
        return cls(
            groups_by_name={normalize_name(g.get("name")): g for g in groups},
            users_by_id={int(u["id"]): u for u in users},
            agents_by_name=agents,
            banks_by_name={normalize_name(b.get("bank_name")): b for b in banks},
            group_bank_rates={
                (int(r["group_id"]), int(r["bank_id"])): r.get("rate") for r in group_bank_rates
            },
        )


def load_lookups(cur) -> BulkLookups:
    cur.execute("SELECT `id`,`name`,`type`,`owner`,`same_rate` FROM `groups`")
    groups = list(cur.fetchall() or [])
    cur.execute("SELECT `id`,`name`,`role` FROM `users`")
    users = list(cur.fetchall() or [])
    cur.execute("SELECT `id`,`bank_name` FROM `banks`")
    banks = list(cur.fetchall() or [])
    cur.execute("SELECT `group_id`,`bank_id`,`rate` FROM `group_bank_rate`")
    rates = list(cur.fetchall() or [])
    return BulkLookups.build(groups, users, banks, rates)


def header_index(header: Sequence[Any]) -> Tuple[Dict[str, int], List[str]]:
    """Map required column -> position; also return the missing column names."""
    positions: Dict[str, int] = {}
    for i, cell in enumerate(header):
        key = normalize_name(cell)
        if key and key not in positions:
            positions[key] = i
    index: Dict[str, int] = {}
    missing: List[str] = []
    for col in REQUIRED_COLUMNS:
        pos = positions.get(col.lower())
        if pos is None:
            missing.append(col)
        else:
            index[col] = pos
    return index, missing


def _row_values(row: Sequence[Any], index: Mapping[str, int]) -> Dict[str, Any]:
    return {col: (row[pos] if pos < len(row) else None) for col, pos in index.items()}


def validate_row(values: Mapping[str, Any], lookups: BulkLookups) -> Tuple[Dict[str, Any], List[str], Dict[str, Any]]:
    """
    Validate one data row.

    Returns (bill payload, errors, derived) where ``derived`` holds the Client,
    Source and Rate shown back to the operator.
    """
    errors: List[str] = []
    derived: Dict[str, Any] = {"Client": None, "Source": None, "Rate": None}

    # Date
    bill_date = normalize_bill_date(values.get("Date"))
    if bill_date is None:
        errors.append(f"Invalid date '{values.get('Date') or ''}'")

    # Group
    group_cell = values.get("Group")
    group = None
    if _is_blank(group_cell):
        errors.append("Group is required")
    else:
        group = lookups.groups_by_name.get(normalize_name(group_cell))
        if group is None:
            errors.append(f"Group '{group_cell}' not found")

    # Client is always the group's owner
    client_id: Optional[int] = None
    if group is not None:
        owner = lookups.users_by_id.get(int(group["owner"])) if group.get("owner") is not None else None
        if owner is None:
            errors.append(f"Owner of group '{group.get('name')}' not found")
        elif str(owner.get("role") or "").strip().lower() != "client":
            errors.append(f"Owner of group '{group.get('name')}' is not a Client")
        else:
            client_id = int(owner["id"])
            derived["Client"] = owner.get("name")

    # Agent
    agent_cell = values.get("Agent")
    agent_id: Optional[int] = None
    if _is_blank(agent_cell):
        errors.append("Agent is required")
    else:
        matches = lookups.agents_by_name.get(normalize_name(agent_cell), ())
        if not matches:
            errors.append(f"Agent '{agent_cell}' not found")
        elif len(matches) > 1:
            errors.append(f"Multiple agents found with same name '{agent_cell}'")
        else:
            agent_id = int(matches[0]["id"])

    # Source
    if group is not None:
        source = source_for_group_type(group.get("type"))
        if source is None:
            errors.append(f"Group '{group.get('name')}' type '{group.get('type') or ''}' is not Claim or Depo")
        derived["Source"] = source

    # Amount
    amount = to_decimal(values.get("Amount"))
    if amount is None or amount <= 0:
        errors.append("Amount must be a positive number")
        amount = None

    # Bank & rate
    bank_cell = values.get("Bank")
    bank_label = "" if bank_cell is None else str(bank_cell).strip()
    no_bank = bank_label.lower() in NO_BANK_VALUES
    bank_id: Optional[int] = None
    rate: Optional[Decimal] = None
    if group is not None:
        per_bank = group.get("same_rate") is None
        bank_ok = True
        if not no_bank:
            bank = lookups.banks_by_name.get(normalize_name(bank_label))
            if bank is None:
                errors.append(f"Bank '{bank_label}' not found")
                bank_ok = False
            else:
                bank_id = int(bank["id"])
        elif per_bank:
            errors.append(f"Bank is required for group '{group.get('name')}'")
            bank_ok = False

        if bank_ok or not per_bank:
            try:
                rate = resolve_group_rate(group, bank_id, lookups.group_bank_rates)
            except BankNotConfiguredError:
                errors.append(f"Bank '{bank_label}' is not configured for group '{group.get('name')}'")
            except RateResolutionError as exc:
                errors.append(f"{exc.message} (group '{group.get('name')}')")
    if rate is None:
        errors.append("Rate could not be derived")
    derived["Rate"] = rate

    # Total cross-check (informational column; blank skips it)
    total_cell = values.get("Total")
    if not _is_blank(total_cell) and rate is not None and amount is not None:
        received = to_decimal(total_cell)
        if received is None:
            errors.append(f"Invalid total '{total_cell}'")
        else:
            expected = money(amount * rate)
            received = money(received)
            if abs(expected - received) > TOTAL_TOLERANCE:
                errors.append(
                    f"Total mismatch, expected {_display(expected)}, received {_display(received)}"
                )

    payload = {
        "bill_date": bill_date,
        "group_id": int(group["id"]) if group is not None else None,
        "bank_id": bank_id,
        "client_id": client_id,
        "agent_id": agent_id,
        "amount": amount,
        "rate": rate,
    }
    return payload, errors, derived


def validate_rows(
    rows: Sequence[Tuple[int, Sequence[Any]]],
    index: Mapping[str, int],
    lookups: BulkLookups,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Validate numbered data rows ``(rowNumber, cells)``.
    Returns (valid payloads, failure reports).
    """
    valid: List[Dict[str, Any]] = []
    failures: List[Dict[str, Any]] = []
    for row_number, cells in rows:
        values = _row_values(cells, index)
        payload, errors, derived = validate_row(values, lookups)
        if errors:
            failures.append({
                "rowNumber": row_number,
                "errors": errors,
                "row": {**values, **derived},
            })
        else:
            valid.append(payload)
    return valid, failures


class BulkBillUpload:
    """
    Validate-then-insert pipeline for one uploaded file.

    Lookups, validation and insertion share one transaction, so the insert set
    is atomic at the storage layer as well.
    """

    def process(self, content: bytes, filename: Optional[str]) -> Dict[str, Any]:
        matrix = read_matrix(content, filename)
        if len(matrix) < 2:
            raise BulkUploadError("File must contain a header row and at least one data row")

        index, missing = header_index(matrix[0])
        if missing:
            raise BulkUploadError(
                f"Missing required columns: {', '.join(missing)}",
                {"missingColumns": missing},
            )

        # rowNumber is 1-based with the header as row 1
        data_rows = [
            (i + 1, row) for i, row in enumerate(matrix)
            if i > 0 and not all(_is_blank(v) for v in row)
        ]
        if not data_rows:
            raise BulkUploadError("No data rows found in file")

        with transaction() as cur:
            lookups = load_lookups(cur)
            valid, failures = validate_rows(data_rows, index, lookups)
            if failures:
                logger.info(
                    "Bulk upload %r rejected: %d of %d rows failed",
                    filename, len(failures), len(data_rows),
                )
                raise BulkValidationError(
                    "Bulk upload validation failed",
                    {
                        "totalRows": len(data_rows),
                        "failedRows": len(failures),
                        "errors": failures,
                    },
                )
            bill_ids = create_bills_bulk(cur, valid)

        logger.info("Bulk upload %r inserted %d bills", filename, len(bill_ids))
        return {
            "message": "Bills uploaded successfully",
            "totalRows": len(data_rows),
            "insertedRows": len(bill_ids),
            "billIds": bill_ids,
        }
