# billing/api/users.py
from __future__ import annotations

import logging
from typing import Any, Annotated, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from billing.ingestion.db import read_cursor, transaction
from billing.services.auth_service import create_access_token, hash_password, verify_and_upgrade_password
from billing.services.errors import NotFoundError, UnauthorizedError, ValidationError
from billing.services.rates import PerWorkType, Scalar, parse_rate, rate_to_db
from billing.services.roles import require_admin, require_user
from billing.services.validation import is_blank, require_text, validate_phone

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])

# ----- Annotated aliases -----
AdminOnly = Annotated[Dict[str, Any], Depends(require_admin)]
CurrentUser = Annotated[Dict[str, Any], Depends(require_user)]

ROLES = ("admin", "Client", "Agent")
DUPLICATE = "User with this email already exists"
_PUBLIC_COLUMNS = "`id`,`name`,`email`,`phone`,`worktype`,`role`,`rate`,`agent_rates`,`created_at`"


class LoginIn(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class UserCreate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    worktype: Optional[str] = None
    role: Optional[str] = None
    rate: Optional[Any] = None
    agent_rates: Optional[Any] = None


class UserUpdate(UserCreate):
    pass


def canonical_role(value: Any) -> str:
    r = str(value or "").strip().lower()
    for name in ROLES:
        if name.lower() == r:
            return name
    raise ValidationError("role must be one of admin, Client, Agent")


def _rate_out(value: Any) -> Any:
    rate = parse_rate(value)
    if isinstance(rate, Scalar):
        return rate.value
    return dict(rate.rates) if rate.rates else None


def _rate_in(value: Any) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    rate = parse_rate(value)
    if isinstance(rate, PerWorkType) and not rate.rates and value not in ({}, "{}"):
        raise ValidationError("rate must be a number or a map of work type to number")
    return rate_to_db(rate)


def public_user(row: Dict[str, Any]) -> Dict[str, Any]:
    """User row without the password hash, rates decoded."""
    out = {k: v for k, v in row.items() if k != "password"}
    out["rate"] = _rate_out(row.get("rate"))
    out["agent_rates"] = _rate_out(row.get("agent_rates"))
    return out


def _get(cur, user_id: int) -> Dict[str, Any]:
    cur.execute(f"SELECT {_PUBLIC_COLUMNS} FROM `users` WHERE `id`=%s", (user_id,))
    row = cur.fetchone()
    if not row:
        raise NotFoundError("User not found")
    return public_user(row)


def _list_by_role(role: str) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        cur.execute(
            f"SELECT {_PUBLIC_COLUMNS} FROM `users` WHERE LOWER(`role`)=%s ORDER BY `name` ASC",
            (role.lower(),),
        )
        return [public_user(r) for r in cur.fetchall() or []]


@router.post("/login")
def login(payload: LoginIn) -> Dict[str, Any]:
    if is_blank(payload.email) or is_blank(payload.password):
        raise ValidationError("Email and password are required")
    email = str(payload.email).strip().lower()
    with transaction() as cur:
        cur.execute("SELECT * FROM `users` WHERE LOWER(`email`)=%s LIMIT 1", (email,))
        user = cur.fetchone()
        if not user:
            raise UnauthorizedError("Invalid credentials")
        ok, new_hash = verify_and_upgrade_password(str(payload.password), user.get("password"))
        if not ok:
            raise UnauthorizedError("Invalid credentials")
        if new_hash:
            cur.execute("UPDATE `users` SET `password`=%s WHERE `id`=%s", (new_hash, user["id"]))

    token = create_access_token({"id": user["id"], "name": user["name"], "role": user["role"]})
    logger.info("Login ok for user %s", user["id"])
    return {"token": token, "user": public_user(user)}


@router.post("/register", status_code=201)
def register(payload: UserCreate, _admin: AdminOnly) -> Dict[str, Any]:
    if is_blank(payload.name) or is_blank(payload.email) or is_blank(payload.password):
        raise ValidationError("name, email and password are required")
    values = (
        require_text(payload.name, "name"),
        require_text(payload.email, "email").lower(),
        hash_password(str(payload.password)),
        validate_phone(payload.phone),
        None if is_blank(payload.worktype) else str(payload.worktype).strip(),
        canonical_role(payload.role),
        _rate_in(payload.rate),
        _rate_in(payload.agent_rates),
    )
    with transaction(DUPLICATE) as cur:
        cur.execute(
            """
            INSERT INTO `users`
            (`name`,`email`,`password`,`phone`,`worktype`,`role`,`rate`,`agent_rates`)
            VALUES (%s,%s,%s,%s,%s,%s,%s,%s)
            """,
            values,
        )
        return _get(cur, int(cur.lastrowid))


@router.get("")
def list_users(_admin: AdminOnly) -> List[Dict[str, Any]]:
    with read_cursor() as cur:
        cur.execute(f"SELECT {_PUBLIC_COLUMNS} FROM `users` ORDER BY `id` ASC")
        return [public_user(r) for r in cur.fetchall() or []]


@router.get("/clients")
def list_clients(_user: CurrentUser) -> List[Dict[str, Any]]:
    return _list_by_role("Client")


@router.get("/agents")
def list_agents(_user: CurrentUser) -> List[Dict[str, Any]]:
    return _list_by_role("Agent")


@router.get("/{user_id}")
def get_user(user_id: int, _admin: AdminOnly) -> Dict[str, Any]:
    with read_cursor() as cur:
        return _get(cur, user_id)


@router.put("/{user_id}")
def update_user(user_id: int, payload: UserUpdate, _admin: AdminOnly) -> Dict[str, Any]:
    """Partial update; omitted fields keep their value, a blank password is ignored."""
    fields = payload.model_dump(exclude_unset=True)
    sets: List[str] = []
    values: List[Any] = []
    if "name" in fields:
        sets.append("`name`=%s")
        values.append(require_text(fields["name"], "name"))
    if "email" in fields:
        sets.append("`email`=%s")
        values.append(require_text(fields["email"], "email").lower())
    if not is_blank(fields.get("password")):
        sets.append("`password`=%s")
        values.append(hash_password(str(fields["password"])))
    if "phone" in fields:
        sets.append("`phone`=%s")
        values.append(validate_phone(fields["phone"]))
    if "worktype" in fields:
        sets.append("`worktype`=%s")
        values.append(None if is_blank(fields["worktype"]) else str(fields["worktype"]).strip())
    if "role" in fields:
        sets.append("`role`=%s")
        values.append(canonical_role(fields["role"]))
    if "rate" in fields:
        sets.append("`rate`=%s")
        values.append(_rate_in(fields["rate"]))
    if "agent_rates" in fields:
        sets.append("`agent_rates`=%s")
        values.append(_rate_in(fields["agent_rates"]))

    with transaction(DUPLICATE) as cur:
        _get(cur, user_id)
        if sets:
            cur.execute(f"UPDATE `users` SET {', '.join(sets)} WHERE `id`=%s", tuple(values) + (user_id,))
        return _get(cur, user_id)


@router.delete("/{user_id}")
def delete_user(user_id: int, admin: AdminOnly) -> Dict[str, Any]:
    if int(admin.get("id") or 0) == user_id:
        raise ValidationError("You cannot delete your own account")
    with transaction() as cur:
        cur.execute("DELETE FROM `users` WHERE `id`=%s", (user_id,))
        if not cur.rowcount:
            raise NotFoundError("User not found")
    return {"message": "User deleted successfully"}
