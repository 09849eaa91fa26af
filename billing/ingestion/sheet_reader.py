# billing/ingestion/sheet_reader.py
from __future__ import annotations

import io
import math
import zipfile
from pathlib import Path
from typing import Any, List, Optional

import pandas as pd
import xlrd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from billing.services.errors import ValidationError

ALLOWED_EXTENSIONS = {".csv", ".xls", ".xlsx"}

# What pandas and its Excel engines raise on truncated or corrupt input.
_READ_ERRORS = (
    ValueError,
    OSError,
    KeyError,
    zipfile.BadZipFile,
    pd.errors.ParserError,
    InvalidFileException,
    xlrd.XLRDError,
    CompDocError,
)


class SheetReadError(ValidationError):
    pass


def _cell(value: Any) -> Any:
    """NaN/NaT -> None; pandas Timestamps -> datetime; strings stripped of BOM/space."""
    if value is None:
        return None
    if value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    if isinstance(value, str):
        return value.replace("\ufeff", "").strip()
    return value


def extension_of(filename: Optional[str]) -> str:
    return Path(filename or "").suffix.lower()


def read_matrix(content: bytes, filename: Optional[str]) -> List[List[Any]]:
    """
    Turn an uploaded CSV / XLS / XLSX into a list of rows (first sheet only).

    No header inference happens here; row 0 is whatever the file's first row is.
    Excel date cells arrive as datetime; numeric date cells stay numeric (serials).
    """
    ext = extension_of(filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise SheetReadError("Only CSV, XLS or XLSX files are allowed")

    buf = io.BytesIO(content)
    try:
        if ext == ".csv":
            df = pd.read_csv(buf, header=None, dtype=str, keep_default_na=False, skip_blank_lines=False)
        else:
            sheets = pd.read_excel(buf, sheet_name=None, header=None, dtype=object)
            if not sheets:
                raise SheetReadError("The uploaded workbook has no sheets")
            df = next(iter(sheets.values()))
    except SheetReadError:
        raise
    except pd.errors.EmptyDataError:
        return []
    except _READ_ERRORS as exc:
        raise SheetReadError(f"Could not read uploaded file: {exc}") from exc

    return [[_cell(v) for v in row] for row in df.itertuples(index=False, name=None)]
