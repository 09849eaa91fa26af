# billing/ingestion/db.py
from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
from urllib.parse import urlparse, unquote

import pymysql
from dotenv import load_dotenv

from billing.services.errors import from_integrity_error

# Load .env if present (local/dev). Hosted environments inject real envs.
load_dotenv()

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Optional SQL echo (DB_ECHO=1): logs SQL text, parameters and elapsed time.
# -----------------------------------------------------------------------------
_DB_ECHO = bool(int(os.getenv("DB_ECHO", "0")))


class LoggingCursor(pymysql.cursors.DictCursor):
    """A DictCursor that logs SQL, params, and elapsed time when DB_ECHO=1."""
    def execute(self, query, args=None):
        if not _DB_ECHO:
            return super().execute(query, args)
        echo_logger = logging.getLogger("billing.sql")
        echo_logger.debug("SQL: %s", query)
        if args:
            echo_logger.debug("ARGS: %r", args)
        start = time.perf_counter()
        try:
            return super().execute(query, args)
        finally:
            echo_logger.debug("TIME: %.2f ms", (time.perf_counter() - start) * 1000.0)


# -----------------------------------------------------------------------------
# URL parsing and env precedence
# -----------------------------------------------------------------------------
def _parse_mysql_url(url: str) -> Dict[str, Any]:
    """
    Parse a MySQL URL into connection parts.
    Supports mysql://, mysql+pymysql:// and scheme-less user:pass@host/db.
    """
    raw = (url or "").strip()
    if not raw:
        raise ValueError("MYSQL_URL is empty")
    if raw.startswith("mysql+pymysql://"):
        raw = raw.replace("mysql+pymysql://", "mysql://", 1)
    parsed = urlparse(raw) if "://" in raw else urlparse("mysql://" + raw)

    try:
        port = int(parsed.port) if parsed.port is not None else 3306
    except ValueError:
        port = 3306
    return {
        "host": parsed.hostname or "localhost",
        "user": unquote(parsed.username or "") or None,
        "password": unquote(parsed.password or "") or None,
        "database": parsed.path[1:] if parsed.path and len(parsed.path) > 1 else None,
        "port": port,
    }


def _connection_params() -> Dict[str, Any]:
    """
    Resolve connection parts. Order of precedence:
      1) MYSQL_URL
      2) Railway-style MYSQLUSER / MYSQLPASSWORD / MYSQLHOST / MYSQLPORT / MYSQLDATABASE
      3) DB_USER / DB_PASSWORD / DB_HOST / DB_PORT / DB_NAME
    """
    mysql_url = os.getenv("MYSQL_URL")
    if mysql_url:
        params = _parse_mysql_url(mysql_url)
        if not params.get("user") or not params.get("password"):
            raise ValueError("MYSQL_URL must include username and password")
        if not params.get("database"):
            raise ValueError("MYSQL_URL must include a database name in the path")
        return params

    user = os.getenv("MYSQLUSER") or os.getenv("DB_USER")
    password = os.getenv("MYSQLPASSWORD") or os.getenv("DB_PASSWORD")
    if not user or not password:
        raise ValueError(
            "Database credentials not set. Provide either MYSQL_URL or "
            "MYSQL* / DB_* environment variables (user and password are required)."
        )
    try:
        port = int(os.getenv("MYSQLPORT") or os.getenv("DB_PORT", "3306"))
    except ValueError:
        port = 3306
    return {
        "host": os.getenv("MYSQLHOST") or os.getenv("DB_HOST", "localhost"),
        "user": user,
        "password": password,
        "database": os.getenv("MYSQLDATABASE") or os.getenv("DB_NAME", "billing"),
        "port": port,
    }


def _optional_int(name: str) -> Optional[int]:
    val = os.getenv(name)
    try:
        return int(val) if val is not None else None
    except ValueError:
        return None


# -----------------------------------------------------------------------------
# Public API
# -----------------------------------------------------------------------------
def get_conn():
    """
    Return a new PyMySQL connection (autocommit off, DictCursor rows).

    Optional tuning: DB_CONNECT_TIMEOUT, DB_READ_TIMEOUT, DB_WRITE_TIMEOUT,
    DB_CHARSET (default utf8mb4), MYSQL_SSL_CA, DB_ECHO=1.
    """
    params = _connection_params()
    kwargs: Dict[str, Any] = {
        **params,
        "database": params.get("database") or "",
        "charset": os.getenv("DB_CHARSET", "utf8mb4"),
        "autocommit": False,
        "cursorclass": LoggingCursor if _DB_ECHO else pymysql.cursors.DictCursor,
    }
    for env_name, key in (
        ("DB_CONNECT_TIMEOUT", "connect_timeout"),
        ("DB_READ_TIMEOUT", "read_timeout"),
        ("DB_WRITE_TIMEOUT", "write_timeout"),
    ):
        value = _optional_int(env_name)
        if value is not None:
            kwargs[key] = value

    ssl_ca = os.getenv("MYSQL_SSL_CA")
    if ssl_ca:
        kwargs["ssl"] = {"ca": ssl_ca}
    return pymysql.connect(**kwargs)


@contextmanager
def transaction(conflict_message: Optional[str] = None) -> Iterator[Any]:
    """
    One unit of work: connect, BEGIN, yield a cursor, COMMIT.

    Any exception rolls back; integrity violations are re-raised as the
    matching BillingError. The connection is always closed.
    """
    conn = get_conn()
    try:
        conn.begin()
        with conn.cursor() as cur:
            yield cur
        conn.commit()
    except pymysql.err.IntegrityError as exc:
        conn.rollback()
        logger.info("Transaction rolled back on integrity error: %s", exc)
        raise from_integrity_error(exc, conflict_message) from exc
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


@contextmanager
def read_cursor() -> Iterator[Any]:
    """Cursor for read-only queries; the connection is closed afterwards."""
    conn = get_conn()
    try:
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


# -----------------------------------------------------------------------------
# Optional quick self-test (run: python -m billing.ingestion.db)
# -----------------------------------------------------------------------------
if __name__ == "__main__":
    with read_cursor() as cur:
        cur.execute("SELECT 1 AS ok")
        print("DB OK:", cur.fetchone())
