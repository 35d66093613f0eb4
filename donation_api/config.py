"""Environment-driven configuration for the FastAPI application."""

from __future__ import annotations

import os
from typing import Final


def _get_env(name: str, *, default: str | None = None, required: bool = False) -> str | None:
    value = os.getenv(name)
    if value is None:
        if required:
            raise RuntimeError(f"Missing required environment variable: {name}")
        return default
    return value.strip()


def _get_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y", "on"}


JWT_ALGORITHM: Final[str] = "HS256"

_hs_secret = _get_env("JWT_SECRET") or _get_env("SECRET_KEY")
if not _hs_secret:
    raise RuntimeError("JWT_SECRET (or legacy SECRET_KEY) is required for HS256 JWTs")

JWT_SIGNING_KEY: Final[str] = _hs_secret
JWT_VERIFYING_KEY: Final[str] = _hs_secret
JWT_MIN_SECRET_LENGTH: Final[int] = 32

ACCESS_TOKEN_TTL = int(_get_env("ACCESS_TOKEN_TTL", default="3600"))
ACCESS_TOKEN_LEEWAY = int(_get_env("ACCESS_TOKEN_LEEWAY", default="60"))

# Seconds a user must wait after their latest pending reset request.
PASSWORD_RESET_REQUEST_COOLDOWN = int(
    _get_env("PASSWORD_RESET_REQUEST_COOLDOWN", default="180")
)
PASSWORD_RESET_TTL_MINUTES = int(_get_env("PASSWORD_RESET_TTL_MINUTES", default="60"))
PASSWORD_RESET_LINK_PREFIX = "forgot-password/"

SESSION_COOKIE_NAME = _get_env("SESSION_COOKIE_NAME", default="dashboard_session") or "dashboard_session"
SESSION_TTL = int(_get_env("SESSION_TTL", default="28800"))
SESSION_SCOPE: Final[str] = "dashboard"

COOKIE_SAMESITE = (_get_env("COOKIE_SAMESITE", default="Lax") or "Lax").capitalize()
if COOKIE_SAMESITE not in {"Lax", "Strict", "None"}:
    raise RuntimeError("COOKIE_SAMESITE must be one of: Lax, Strict, None")

COOKIE_DOMAIN = _get_env("COOKIE_DOMAIN")
COOKIE_SECURE = _get_bool("COOKIE_SECURE", default=True)

def _get_list(name: str, default: str = "") -> list[str]:
    raw = _get_env(name, default=default) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


ALLOWED_ORIGINS = _get_list("ALLOWED_ORIGINS")

# Peers allowed to report the client address through X-Forwarded-For.
TRUSTED_PROXIES = _get_list(
    "TRUSTED_PROXIES",
    default="127.0.0.0/8,10.0.0.0/8,172.16.0.0/12,192.168.0.0/16,::1/128,fc00::/7",
)


def _read_header(name: str, default: str | None) -> str | None:
    """Fetch an environment override for a security header."""

    value = os.getenv(name)
    if value is None:
        return default
    value = value.strip()
    return value or None


DEFAULT_STRICT_TRANSPORT_SECURITY = "max-age=63072000; includeSubDomains"
DEFAULT_REFERRER_POLICY = "no-referrer"

STRICT_TRANSPORT_SECURITY = _read_header(
    "STRICT_TRANSPORT_SECURITY", DEFAULT_STRICT_TRANSPORT_SECURITY
)
REFERRER_POLICY = _read_header("REFERRER_POLICY", DEFAULT_REFERRER_POLICY)

SECURITY_HEADERS = {
    "X-Frame-Options": "DENY",
    "X-Content-Type-Options": "nosniff",
}

if STRICT_TRANSPORT_SECURITY:
    SECURITY_HEADERS["Strict-Transport-Security"] = STRICT_TRANSPORT_SECURITY

if REFERRER_POLICY:
    SECURITY_HEADERS["Referrer-Policy"] = REFERRER_POLICY
