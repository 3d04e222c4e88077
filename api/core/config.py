"""
Runtime settings read from environment variables.

Every reader falls back to a default when the variable is unset, blank or
not parseable, so a bad value never prevents the process from starting.
`DATABASE_URL` is the only required setting.
"""

from __future__ import annotations

import os

DEFAULT_PORT = 3000
DEFAULT_HOST = "0.0.0.0"
DEFAULT_CONNECT_RETRY_S = 5.0
DEFAULT_POOL_MIN_SIZE = 1
DEFAULT_POOL_MAX_SIZE = 5

_TRUTHY = {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name, "").strip().lower()
    if not raw:
        return default
    return raw in _TRUTHY


def database_url() -> str:
    url = os.environ.get("DATABASE_URL", "").strip()
    if not url:
        raise RuntimeError("DATABASE_URL is not set.")
    return url


def database_ssl_insecure() -> bool:
    # Opt-in only: some hosted Postgres providers ship certificates
    # that do not validate against the system trust store.
    return _env_bool("DATABASE_SSL_INSECURE", False)


def pool_min_size() -> int:
    return max(_env_int("DATABASE_POOL_MIN_SIZE", DEFAULT_POOL_MIN_SIZE), 0)


def pool_max_size() -> int:
    return max(_env_int("DATABASE_POOL_MAX_SIZE", DEFAULT_POOL_MAX_SIZE), 1, pool_min_size())


def connect_retry_s() -> float:
    delay = _env_float("DATABASE_CONNECT_RETRY_S", DEFAULT_CONNECT_RETRY_S)
    return delay if delay >= 0 else DEFAULT_CONNECT_RETRY_S


def port() -> int:
    value = _env_int("PORT", DEFAULT_PORT)
    return value if 0 < value < 65536 else DEFAULT_PORT


def host() -> str:
    return os.environ.get("HOST", DEFAULT_HOST).strip() or DEFAULT_HOST


def log_level() -> str:
    return os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"


def cors_origins() -> list[str]:
    raw = os.environ.get("CORS_ORIGINS", "*")
    origins = [origin.strip() for origin in raw.split(",") if origin.strip()]
    return origins or ["*"]
