"""FastAPI application providing the Donation API auth endpoints."""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse, Response
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api._validation import field_errors
from .config import ALLOWED_ORIGINS, JWT_MIN_SECRET_LENGTH, SECURITY_HEADERS
from .errors import AuthServiceError, ValidationFailed
from .logging import configure_logging
from .middleware.logging import LoggingMiddleware
from .middleware.security import SecureHeadersMiddleware
from .rate_limit import rate_limit
from .responses import cache_busting_headers, error_response, format_response

configure_logging()

logger = logging.getLogger("donation_api.main")

_DB_RETRY_AFTER_SECONDS = "600"


def _check_env_vars() -> None:
    """Fail fast if required environment variables are missing or invalid."""

    secret = (os.getenv("JWT_SECRET") or os.getenv("SECRET_KEY") or "").strip()
    if len(secret) < JWT_MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET must be at least {JWT_MIN_SECRET_LENGTH} characters long"
        )
    if not (os.getenv("DATABASE_URL") or "").strip():
        raise RuntimeError("Missing required environment variable: DATABASE_URL")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    _check_env_vars()
    yield


app = FastAPI(
    title="Donation API",
    lifespan=lifespan,
    default_response_class=ORJSONResponse,
)
# Added innermost first; security headers wrap everything, 429s included.
app.middleware("http")(rate_limit)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["Authorization", "Content-Type"],
    allow_credentials=True,
)
app.add_middleware(LoggingMiddleware)
app.add_middleware(SecureHeadersMiddleware, headers=SECURITY_HEADERS)


def _set_request_id_header(response: Response, request: Request) -> None:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        response.headers["X-Request-ID"] = request_id


def _log_error(request: Request, exc: Exception, http_code: int, message: str) -> None:
    level = logging.ERROR if http_code >= 500 else logging.WARNING
    logger.log(
        level,
        "Request failed",
        extra={
            "event_dataset": "donation-api.app",
            "event_action": "request_failed",
            "http_status_code": http_code,
            "http_request_method": request.method,
            "url_path": request.url.path,
            "error_type": type(exc).__name__,
            "error_message": message[:256],
        },
    )


@app.exception_handler(AuthServiceError)
async def auth_service_error_handler(request: Request, exc: AuthServiceError) -> Response:
    """Render auth errors in the response envelope."""

    _log_error(request, exc, exc.http_code, exc.message)
    response = error_response(exc)
    _set_request_id_header(response, request)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> Response:
    """Report invalid request bodies as field-level validation errors."""

    errors = field_errors(exc.errors())
    logger.warning(
        "Request validation failed",
        extra={
            "event_dataset": "donation-api.app",
            "event_action": "validation_failed",
            "http_status_code": status.HTTP_400_BAD_REQUEST,
            "http_request_method": request.method,
            "url_path": request.url.path,
            "validation_error_count": len(exc.errors()),
        },
    )
    response = error_response(ValidationFailed(errors))
    _set_request_id_header(response, request)
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler_logged(
    request: Request, exc: StarletteHTTPException
) -> Response:
    """Wrap framework HTTP errors (404, 405, 415 ...) in the envelope."""

    detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    _log_error(request, exc, exc.status_code, detail)
    response = format_response(
        "error",
        exc.status_code,
        detail,
        headers=getattr(exc, "headers", None),
    )
    _set_request_id_header(response, request)
    return response


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> Response:
    """Convert transient database errors into a retryable 503 envelope."""

    logger.exception(
        "Database error while handling request",
        extra={
            "event_dataset": "donation-api.app",
            "event_action": "database_error",
            "http_status_code": status.HTTP_503_SERVICE_UNAVAILABLE,
            "http_request_method": request.method,
            "url_path": request.url.path,
            "error_type": type(exc).__name__,
        },
    )
    response = format_response(
        "error",
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "Temporary database issue. Please retry later.",
        headers={"Retry-After": _DB_RETRY_AFTER_SECONDS},
    )
    cache_busting_headers(response)
    _set_request_id_header(response, request)
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> Response:
    """Ensure unexpected failures still answer with the envelope."""

    response = format_response(
        "error", status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal Server Error"
    )
    _set_request_id_header(response, request)
    return response


@app.get("/")
def read_root() -> dict[str, str]:
    """Health check endpoint for the API."""
    return {"message": "Donation API"}


from .api import auth_router, dashboard_router  # noqa: E402

app.include_router(auth_router)
app.include_router(dashboard_router)
