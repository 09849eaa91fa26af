# tests/conftest.py
from __future__ import annotations
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional

# Settings are read at import time; set them before the app is imported.
os.environ["BOOTSTRAP_ADMIN"] = "0"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from starlette.testclient import TestClient

from billing.main import app
from billing.services.auth_service import create_access_token


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def _headers(role: str, user_id: int) -> Dict[str, str]:
    token = create_access_token({"id": user_id, "name": f"{role} user", "role": role})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return _headers("admin", 1)


@pytest.fixture
def agent_headers() -> Dict[str, str]:
    return _headers("Agent", 20)


class FakeCursor:
    """
    Scripted DB-API cursor: records every statement and answers fetchone() /
    fetchall() from queues given up front.
    """

    def __init__(
        self,
        fetchone: Optional[Iterable[Any]] = None,
        fetchall: Optional[Iterable[List[Dict[str, Any]]]] = None,
        rowcount: int = 1,
        lastrowid: int = 1,
    ) -> None:
        self.executed: List[tuple] = []
        self._one = list(fetchone or [])
        self._all = list(fetchall or [])
        self.rowcount = rowcount
        self.lastrowid = lastrowid

    def execute(self, sql: str, args: Any = None) -> int:
        self.executed.append((" ".join(sql.split()), args))
        return self.rowcount

    def fetchone(self) -> Any:
        return self._one.pop(0) if self._one else None

    def fetchall(self) -> List[Dict[str, Any]]:
        return self._all.pop(0) if self._all else []

    def statements(self, prefix: str) -> List[tuple]:
        return [e for e in self.executed if e[0].startswith(prefix)]


def cursor_context(cur: Any):
    """Stand-in for transaction() / read_cursor() that yields ``cur``."""
    @contextmanager
    def _ctx(*_args, **_kwargs):
        yield cur
    return _ctx
