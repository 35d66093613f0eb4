"""Utilities for removing sensitive data from log records."""

from __future__ import annotations

import ipaddress
import os
import re
from typing import Any

SENSITIVE_KEYWORDS = {
    "authorization",
    "cookie",
    "password",
    "secret",
    "token",
    "set-cookie",
    "api_key",
}
MASKED_VALUE = "<redacted>"
MAX_FIELD_LENGTH = 1024

# Reset links embed the raw token.
_RESET_LINK_PATTERN = re.compile(r"(forgot-password/)[A-Za-z0-9_\-]+")


def _normalize_key(key: str) -> str:
    """Return a snake_case lower representation of ``key`` for comparisons."""

    snake = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", key)
    snake = re.sub(r"[^a-zA-Z0-9]+", "_", snake)
    return snake.strip("_").lower()


def _is_sensitive(key: str) -> bool:
    normalized = _normalize_key(key)
    return any(word.replace("-", "_") in normalized for word in SENSITIVE_KEYWORDS)


def sanitize_value(key: str, value: Any) -> Any:
    """Mask ``value`` when ``key`` looks sensitive and cap long strings."""

    if value is None:
        return None
    if _is_sensitive(key):
        return MASKED_VALUE
    if isinstance(value, dict):
        return {k: sanitize_value(str(k), v) for k, v in value.items()}
    if isinstance(value, str):
        value = _RESET_LINK_PATTERN.sub(r"\1" + MASKED_VALUE, value)
        if len(value) > MAX_FIELD_LENGTH:
            return value[:MAX_FIELD_LENGTH] + "…"
    return value


_IP_LOG_MODES = {"full", "anonymized", "off"}
_ANONYMIZED_PREFIX = {4: 24, 6: 64}


def anonymize_ip(ip: str | None, mode: str | None = None) -> str | None:
    """Render ``ip`` for logs following ``LOG_IP_MODE``.

    ``full`` keeps the address, ``anonymized`` keeps only its /24 or /64
    network and ``off`` drops it.
    """

    mode = (mode or os.getenv("LOG_IP_MODE") or "full").lower()
    if mode == "off":
        return None
    try:
        parsed = ipaddress.ip_address(ip or "")
    except ValueError:
        return "unknown"
    if mode != "anonymized":
        return str(parsed)
    network = ipaddress.ip_network((parsed, _ANONYMIZED_PREFIX[parsed.version]), strict=False)
    return network.with_prefixlen
