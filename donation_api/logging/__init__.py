"""Structured logging helpers split into focused modules."""

from .config import configure_logging
from .context import (
    RequestContextTokens,
    bind_request_context,
    client_ip_ctx_var,
    request_id_ctx_var,
    reset_request_context,
    set_user_context,
    user_id_ctx_var,
)
from .filters import PrivacyFilter, RequestContextFilter
from .formatter import ECSJsonFormatter, FIELD_MAP, SERVICE_NAME
from .privacy import anonymize_ip, sanitize_value

__all__ = [
    "configure_logging",
    "RequestContextTokens",
    "bind_request_context",
    "client_ip_ctx_var",
    "request_id_ctx_var",
    "reset_request_context",
    "set_user_context",
    "user_id_ctx_var",
    "PrivacyFilter",
    "RequestContextFilter",
    "ECSJsonFormatter",
    "FIELD_MAP",
    "SERVICE_NAME",
    "anonymize_ip",
    "sanitize_value",
]
