"""Security headers applied to every response the service sends."""

from collections.abc import Mapping

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

_HSTS = "strict-transport-security"
# Credential and account routes; nothing under them may be cached.
_PRIVATE_PREFIXES = ("/auth/", "/dashboard")


def _is_https(request: Request) -> bool:
    if request.url.scheme == "https":
        return True
    return request.headers.get("x-forwarded-proto", "").lower() == "https"


class SecureHeadersMiddleware(BaseHTTPMiddleware):
    """Add the configured security headers and keep account responses out of caches."""

    def __init__(self, app: ASGIApp, headers: Mapping[str, str | None] | None = None) -> None:
        super().__init__(app)
        configured = {name: value for name, value in (headers or {}).items() if value}
        self._hsts = {k: v for k, v in configured.items() if k.lower() == _HSTS}
        self._always = {k: v for k, v in configured.items() if k.lower() != _HSTS}

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        response.headers.update(self._always)
        if self._hsts and _is_https(request):
            response.headers.update(self._hsts)
        if request.url.path.startswith(_PRIVATE_PREFIXES):
            response.headers.setdefault("Cache-Control", "no-store")
        return response
