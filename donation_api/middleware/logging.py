"""Access logging middleware emitting one structured record per request."""

from __future__ import annotations

import logging
import os
import re
import time
import traceback
import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

from ..logging import (
    anonymize_ip,
    bind_request_context,
    reset_request_context,
    set_user_context,  # re-exported for convenience
    user_id_ctx_var,
)
from ..utils.network import get_client_ip

# Caller supplied ids end up in every log line of the request.
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:\-]{1,128}$")


def _slow_request_ns() -> int:
    try:
        slow_ms = float(os.getenv("SLOW_REQUEST_MS", "500"))
    except ValueError:
        slow_ms = 500.0
    return int(max(slow_ms, 0.0) * 1_000_000)


def _request_id(request: Request) -> str:
    supplied = request.headers.get("X-Request-ID", "")
    if _REQUEST_ID_PATTERN.match(supplied):
        return supplied
    return str(uuid.uuid4())


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class LoggingMiddleware(BaseHTTPMiddleware):
    """Bind the request context and log method, path, status and duration."""

    def __init__(self, app: ASGIApp) -> None:
        super().__init__(app)
        self.logger = logging.getLogger("donation_api.access")
        self.slow_request_ns = _slow_request_ns()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_ns = time.perf_counter_ns()
        request_id = _request_id(request)
        request.state.request_id = request_id
        tokens = bind_request_context(
            request_id=request_id,
            client_ip=anonymize_ip(get_client_ip(request)),
        )

        status_code = 500
        extra: dict[str, object] = {"event_dataset": "donation-api.access"}
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-ID"] = request_id
            return response
        except Exception as exc:  # noqa: BLE001 - logged then re-raised
            extra["error_type"] = type(exc).__name__
            extra["error_stack"] = "".join(traceback.format_exception(exc))
            raise
        finally:
            duration_ns = time.perf_counter_ns() - start_ns
            extra.update(
                http_request_method=request.method,
                url_path=request.url.path,
                http_status_code=status_code,
                event_duration=duration_ns,
                user_agent=request.headers.get("User-Agent") or None,
            )
            # Set by the auth dependency inside the endpoint's context.
            user_id = getattr(request.state, "user_id", None) or user_id_ctx_var.get()
            if user_id:
                extra["user_id"] = user_id
            if duration_ns >= self.slow_request_ns:
                extra["event_action"] = "slow_request"
            self.logger.log(
                _level_for(status_code),
                f"{request.method} {request.url.path} -> {status_code}",
                extra=extra,
            )
            reset_request_context(tokens)


__all__ = ["LoggingMiddleware", "set_user_context"]
