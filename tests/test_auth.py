# tests/test_auth.py
from __future__ import annotations
import jwt
import pytest

from billing.services import auth_service
from billing.services.auth_service import (
    bearer_token,
    create_access_token,
    decode_token,
    hash_password,
    verify_and_upgrade_password,
)

pytestmark = pytest.mark.unit


def test_password_hash_roundtrip():
    hashed = hash_password("Depo@2026")
    assert hashed != "Depo@2026"
    assert verify_and_upgrade_password("Depo@2026", hashed)[0] is True
    assert verify_and_upgrade_password("wrong", hashed) == (False, None)


@pytest.mark.parametrize("stored", [None, "", "$2b$10$notargon", "plain"])
def test_unusable_hashes_never_match(stored):
    assert verify_and_upgrade_password("x", stored) == (False, None)


def test_token_carries_identity():
    claims = decode_token(create_access_token({"id": 5, "name": "Jane", "role": "Agent"}))
    assert claims["id"] == 5
    assert claims["role"] == "Agent"
    assert claims["typ"] == "access"


def test_expired_token_rejected():
    assert decode_token(create_access_token({"id": 1}, ttl_minutes=-1)) is None


def test_foreign_tokens_rejected():
    other_secret = jwt.encode({"id": 1, "iat": 0, "exp": 9999999999}, "nope", algorithm="HS256")
    assert decode_token(other_secret) is None
    no_typ = jwt.encode(
        {"iss": auth_service.TOKEN_ISSUER, "id": 1, "iat": 0, "exp": 9999999999},
        auth_service.JWT_SECRET, algorithm="HS256",
    )
    assert decode_token(no_typ) is None
    assert decode_token(None) is None


@pytest.mark.parametrize("header,expected", [
    ("Bearer abc", "abc"), ("Bearer  abc ", "abc"), ("bearer abc", None), ("", None), (None, None), ("Bearer ", None),
])
def test_bearer_token(header, expected):
    assert bearer_token(header) == expected


# ── dependencies over HTTP ──

def test_missing_token(client):
    resp = client.get("/api/agent-bills")
    assert resp.status_code == 401
    assert resp.json() == {"message": "Access denied. Token missing."}


def test_invalid_token(client):
    resp = client.get("/api/agent-bills", headers={"Authorization": "Bearer garbage"})
    assert resp.status_code == 401
    assert resp.json() == {"message": "Invalid or expired token."}


def test_admin_only_routes_reject_agents(client, agent_headers):
    resp = client.get("/api/users", headers=agent_headers)
    assert resp.status_code == 403
    assert resp.json() == {"message": "Admin access required."}
