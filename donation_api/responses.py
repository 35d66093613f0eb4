"""Helpers for building the uniform ``{status, http_code, message, data}`` envelope."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from fastapi import Response
from fastapi.responses import ORJSONResponse

from .errors import AuthServiceError

EnvelopeStatus = Literal["success", "error", "failed"]

_CACHE_BUSTER_HEADER_VALUES = {"Cache-Control": "no-store", "Pragma": "no-cache"}
_PRIVATE_CACHE_CONTROL = "private, no-store, max-age=0"


def cache_busting_headers(response: Response) -> None:
    response.headers.update(_CACHE_BUSTER_HEADER_VALUES)


def private_cache_headers(response: Response) -> None:
    """Mark ``response`` as per-user so shared caches vary on the credential."""

    response.headers["Cache-Control"] = _PRIVATE_CACHE_CONTROL
    vary = [item.strip() for item in response.headers.get("Vary", "").split(",") if item.strip()]
    if "authorization" not in {item.lower() for item in vary}:
        vary.append("Authorization")
    response.headers["Vary"] = ", ".join(vary)


def format_response(
    status: EnvelopeStatus,
    http_code: int,
    message: str,
    data: Any = None,
    *,
    headers: Mapping[str, str] | None = None,
) -> ORJSONResponse:
    """Return ``data`` wrapped in the envelope with a matching HTTP status."""

    payload = {
        "status": status,
        "http_code": http_code,
        "message": message,
        "data": data,
    }
    return ORJSONResponse(payload, status_code=http_code, headers=headers)


def error_response(exc: AuthServiceError) -> ORJSONResponse:
    response = format_response(
        exc.status,  # type: ignore[arg-type]
        exc.http_code,
        exc.message,
        exc.data,
        headers=exc.headers,
    )
    cache_busting_headers(response)
    return response
