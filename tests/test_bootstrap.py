# tests/test_bootstrap.py
from __future__ import annotations
import pytest

from conftest import FakeCursor, cursor_context
from billing.services import bootstrap, config

pytestmark = pytest.mark.unit


def test_existing_admin_is_left_alone(monkeypatch):
    cur = FakeCursor(fetchone=[{"id": 1}])
    monkeypatch.setattr(bootstrap, "transaction", cursor_context(cur), raising=True)
    assert bootstrap.ensure_default_admin() is None
    assert cur.statements("INSERT") == []


def test_default_admin_created_once(monkeypatch):
    cur = FakeCursor(fetchone=[None], lastrowid=1)
    monkeypatch.setattr(bootstrap, "transaction", cursor_context(cur), raising=True)
    monkeypatch.setattr(bootstrap, "hash_password", lambda pw: "hashed:" + pw, raising=True)
    assert bootstrap.ensure_default_admin() == 1
    args = cur.statements("INSERT INTO `users`")[0][1]
    assert args[1] == config.DEFAULT_ADMIN_EMAIL
    assert args[2] == "hashed:" + config.DEFAULT_ADMIN_PASSWORD
