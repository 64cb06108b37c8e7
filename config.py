from __future__ import annotations

import os
import logging
import pathlib

from urllib.parse import quote_plus
from dotenv import load_dotenv

def env(name: str, default: str | None = None, *, strip: bool = True) -> str | None:
    v = os.getenv(name, default)
    if v is None:
        return None
    return v.strip() if strip else v
def env_int(name: str, default: int | None = None) -> int | None:
    v = env(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default
def env_float(name: str, default: float | None = None) -> float | None:
    v = env(name)
    if v is None or v == "":
        return default
    try:
        return float(v)
    except ValueError:
        return default
def env_list(name: str, default: list[str] | None = None) -> list[str]:
    raw = env(name, "")
    if not raw:
        return list(default or [])
    return [p.strip() for p in raw.split(",") if p.strip()]

def build_async_dsn(user: str, password: str, host: str, port: int, db: str) -> str:
    return (
        f"postgresql+asyncpg://{quote_plus(user)}:{quote_plus(password)}"
        f"@{host}:{port}/{quote_plus(db)}"
    )

load_dotenv()

POSTGRES_USER     = env("POSTGRES_USER", "postgres") or "postgres"
POSTGRES_PASSWORD = env("POSTGRES_PASSWORD", "") or ""
POSTGRES_DB       = env("POSTGRES_DB", "postgres") or "postgres"
POSTGRES_HOST     = env("POSTGRES_HOST", "localhost") or "localhost"
POSTGRES_PORT     = env_int("POSTGRES_PORT", 5432) or 5432

# DATABASE_URL wins over the POSTGRES_* parts (handy for sqlite+aiosqlite locally)
ASYNC_DATABASE_URL = env("DATABASE_URL", "") or build_async_dsn(
    POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB
)

BASE_DIR = pathlib.Path(__file__).resolve().parent
LOGS_DIR = pathlib.Path(env("LOGS_DIR", "") or BASE_DIR / "logs")
LOG_LEVEL = (env("LOG_LEVEL", "INFO") or "INFO").upper()

API_PREFIX   = env("API_PREFIX", "/api/v1") or "/api/v1"
CORS_ORIGINS = env_list("CORS_ORIGINS", ["*"])

AUTH_JWT_SECRET     = env("AUTH_JWT_SECRET", "") or ""
AUTH_AUDIENCE       = env("AUTH_AUDIENCE", "authenticated") or None
AUTH_LEEWAY_SECONDS = env_int("AUTH_LEEWAY_SECONDS", 30)

VRF_ORACLE_URL      = (env("VRF_ORACLE_URL", "") or "").rstrip("/")
VRF_ORACLE_API_KEY  = env("VRF_ORACLE_API_KEY", "") or ""
# RSA public key of the oracle: PEM block or hex-encoded DER
VRF_PUBLIC_KEY      = env("VRF_PUBLIC_KEY", "") or ""
VRF_TIMEOUT_SECONDS = env_float("VRF_TIMEOUT_SECONDS", 60.0)
VRF_POLL_INTERVAL   = env_float("VRF_POLL_INTERVAL", 2.0)
VRF_HTTP_TIMEOUT    = env_float("VRF_HTTP_TIMEOUT", 10.0)

COMMIT_RETRY_ATTEMPTS = env_int("COMMIT_RETRY_ATTEMPTS", 3)
COMMIT_RETRY_DELAY    = env_float("COMMIT_RETRY_DELAY", 0.5)


_log = logging.getLogger("config")
if not AUTH_JWT_SECRET: _log.warning("AUTH_JWT_SECRET is empty; every authenticated request will be rejected.")
if not VRF_ORACLE_URL: _log.warning("VRF_ORACLE_URL is empty; winner selection will fail.")
if not VRF_PUBLIC_KEY: _log.warning("VRF_PUBLIC_KEY is empty; oracle proofs cannot be verified.")
