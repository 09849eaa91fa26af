# billing/services/auth_service.py
from __future__ import annotations
from typing import Any, Dict, Optional, Tuple
from datetime import datetime, timedelta, timezone
import jwt  # PyJWT
from passlib.exc import UnknownHashError
from passlib.hash import argon2
from billing.services.config import JWT_SECRET, ACCESS_TOKEN_TTL_MIN, TOKEN_ISSUER

ALG = "HS256"

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)

# ───────────────────────────────────────────────────────────────────────────────
# Password hashing (Argon2)
# ───────────────────────────────────────────────────────────────────────────────
def hash_password(plaintext: str) -> str:
    return argon2.hash(plaintext)

def verify_and_upgrade_password(plaintext: str, hashed: Optional[str]) -> Tuple[bool, Optional[str]]:
    """
    Verify and optionally upgrade hash params. Returns (ok, new_hash_or_None).
    Hashes passlib cannot identify count as a failed match.
    """
    if not hashed:
        return False, None
    try:
        if not argon2.verify(plaintext, hashed):
            return False, None
    except (ValueError, UnknownHashError):
        return False, None
    if argon2.needs_update(hashed):
        return True, argon2.hash(plaintext)
    return True, None

# ───────────────────────────────────────────────────────────────────────────────
# JWT access tokens
# ───────────────────────────────────────────────────────────────────────────────
def create_access_token(identity: Dict[str, Any], ttl_minutes: Optional[int] = None) -> str:
    now = _utcnow()
    minutes = ACCESS_TOKEN_TTL_MIN if ttl_minutes is None else int(ttl_minutes)
    claims = {
        "iss": TOKEN_ISSUER,
        "typ": "access",
        **identity,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(minutes=minutes)).timestamp()),
    }
    return jwt.encode(claims, JWT_SECRET, algorithm=ALG)

def decode_token(token: Optional[str]) -> Optional[Dict[str, Any]]:
    """Claims of a valid access token, or None."""
    if not token:
        return None
    try:
        claims = jwt.decode(
            token, JWT_SECRET, algorithms=[ALG],
            issuer=TOKEN_ISSUER, options={"require": ["exp", "iat"]},
        )
    except jwt.PyJWTError:
        return None
    if claims.get("typ") != "access":
        return None
    return claims

def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Token from an 'Authorization: Bearer <token>' header value."""
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None
