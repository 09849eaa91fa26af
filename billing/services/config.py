# billing/services/config.py
from __future__ import annotations
import os
from typing import List

def env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None: return default
    try:
        return bool(int(v))
    except ValueError:
        return str(v).strip().lower() in ("true", "yes", "y", "on")

def env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None: return default
    try:
        return int(v)
    except ValueError:
        return default

def env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    return v if v is not None else default

def env_list(name: str, default: List[str]) -> List[str]:
    v = os.getenv(name)
    if v is None: return list(default)
    return [p.strip() for p in v.split(",") if p.strip()]

# Environment
ENV = env_str("ENV", "local")                 # local | dev | prod
LOG_LEVEL = env_str("LOG_LEVEL", "INFO").upper()

# Server (billing-api entry point)
HOST = env_str("HOST", "0.0.0.0")
PORT = env_int("PORT", 8000)

# JWT
JWT_SECRET = env_str("JWT_SECRET", "dev-secret-please-change")
ACCESS_TOKEN_TTL_MIN = env_int("ACCESS_TOKEN_TTL_MIN", 24 * 60)  # 1 day
TOKEN_ISSUER = env_str("TOKEN_ISSUER", "billing.local")

# Default admin bootstrap (runs on startup when enabled)
BOOTSTRAP_ADMIN = env_bool("BOOTSTRAP_ADMIN", True)
DEFAULT_ADMIN_NAME = env_str("DEFAULT_ADMIN_NAME", "admin")
DEFAULT_ADMIN_EMAIL = env_str("DEFAULT_ADMIN_EMAIL", "admin@billing.com").strip().lower()
DEFAULT_ADMIN_PASSWORD = env_str("DEFAULT_ADMIN_PASSWORD", "Depo@2026")
DEFAULT_ADMIN_PHONE = env_str("DEFAULT_ADMIN_PHONE", "9067463790")
DEFAULT_ADMIN_WORKTYPE = env_str("DEFAULT_ADMIN_WORKTYPE", "all")

# Bulk upload
UPLOAD_MAX_BYTES = env_int("UPLOAD_MAX_BYTES", 5 * 1024 * 1024)

# CORS (local UI dev server by default)
CORS_ORIGINS = env_list(
    "CORS_ORIGINS",
    ["http://localhost", "http://127.0.0.1", "http://localhost:5173", "http://127.0.0.1:5173"],
)
