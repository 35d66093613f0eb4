"""Cookie-session login for the server-rendered admin dashboard."""

from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, Form, Request, Response, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import attempt_login, resolve_identity
from ..config import (
    COOKIE_DOMAIN,
    COOKIE_SAMESITE,
    COOKIE_SECURE,
    SESSION_COOKIE_NAME,
    SESSION_SCOPE,
    SESSION_TTL,
)
from ..database import get_db
from ..errors import IdentityError
from ..responses import format_response, private_cache_headers
from .deps import policy_dependencies

router = APIRouter()

_db_dependency = Depends(get_db)

auth_logger = logging.getLogger("donation_api.auth")

LOGIN_PAGE = "/dashboard/login"
HOME_PAGE = "/dashboard"


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _session_user(request: Request, db: Session) -> models.User | None:
    token = request.cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    try:
        return resolve_identity(db, token, scope=SESSION_SCOPE)
    except IdentityError:
        return None


def _set_session_cookie(response: Response, value: str) -> None:
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=COOKIE_SECURE,
        samesite=COOKIE_SAMESITE,
        max_age=SESSION_TTL,
        path="/",
        domain=COOKIE_DOMAIN,
    )


@router.get(LOGIN_PAGE, dependencies=policy_dependencies("dashboard_login_page"))
def dashboard_login_page(request: Request, db: Session = _db_dependency) -> Response:
    if _session_user(request, db) is not None:
        return _redirect(HOME_PAGE)
    return format_response("success", 200, "login required")


@router.post(LOGIN_PAGE, dependencies=policy_dependencies("dashboard_login"))
def dashboard_login(
    email: str = Form(default=""),
    password: str = Form(default=""),
    db: Session = _db_dependency,
) -> Response:
    """Verify form credentials and start a dashboard session."""

    try:
        credentials = schemas.LoginRequest(email=email, password=password)
    except ValidationError:
        return _redirect(f"{LOGIN_PAGE}?error=validation")

    result = attempt_login(
        db,
        credentials.email,
        credentials.password,
        scope=SESSION_SCOPE,
        expires_delta=timedelta(seconds=SESSION_TTL),
    )
    if result is None:
        auth_logger.warning(
            "Dashboard authentication failed",
            extra={
                "event_dataset": "donation-api.auth",
                "event_action": "login_failed",
                "auth_method": "session",
                "auth_failure_reason": "invalid_credentials",
            },
        )
        return _redirect("/?error=credentials")

    user, session_token = result
    auth_logger.info(
        "Dashboard session started",
        extra={
            "event_dataset": "donation-api.auth",
            "event_action": "login_success",
            "auth_method": "session",
            "user_id": str(user.id),
        },
    )
    response = _redirect(HOME_PAGE)
    _set_session_cookie(response, session_token)
    return response


@router.get(HOME_PAGE, dependencies=policy_dependencies("dashboard_home"))
def dashboard_home(request: Request, db: Session = _db_dependency) -> Response:
    user = _session_user(request, db)
    if user is None:
        return _redirect(LOGIN_PAGE)
    request.state.user_id = str(user.id)
    response = format_response(
        "success",
        200,
        "dashboard",
        {"name": user.name, "email": user.email, "role": user.role},
    )
    private_cache_headers(response)
    return response


@router.post("/dashboard/logout", dependencies=policy_dependencies("dashboard_logout"))
def dashboard_logout() -> Response:
    response = _redirect(LOGIN_PAGE)
    response.delete_cookie(key=SESSION_COOKIE_NAME, path="/", domain=COOKIE_DOMAIN)
    return response
