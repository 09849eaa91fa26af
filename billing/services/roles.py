# billing/services/roles.py
from __future__ import annotations
from typing import Any, Callable, Dict, Set
from fastapi import Request

from billing.services.auth_service import bearer_token, decode_token
from billing.services.errors import ForbiddenError, UnauthorizedError


def require_user(request: Request) -> Dict[str, Any]:
    """Claims of the caller's bearer token; 401 when missing or invalid."""
    token = bearer_token(request.headers.get("Authorization"))
    if not token:
        raise UnauthorizedError("Access denied. Token missing.")
    claims = decode_token(token)
    if not claims:
        raise UnauthorizedError("Invalid or expired token.")
    request.state.user = claims
    return claims


def require_role(*allowed: str) -> Callable[[Request], Dict[str, Any]]:
    """
    Dependency factory for role-based access control.

    Use like:
        Depends(require_role("admin"))
    """
    allowed_set: Set[str] = {r.lower() for r in allowed}

    def _dep(request: Request) -> Dict[str, Any]:
        user = require_user(request)
        role = str(user.get("role") or "").lower()
        if allowed_set and role not in allowed_set:
            raise ForbiddenError(f"{' or '.join(sorted(r.capitalize() for r in allowed_set))} access required.")
        return user

    return _dep


require_admin = require_role("admin")
