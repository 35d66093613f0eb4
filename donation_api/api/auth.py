"""Authentication API endpoints."""

from __future__ import annotations

import logging
import math
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Request
from fastapi.responses import ORJSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import attempt_login, get_current_user, get_user, hash_password
from ..database import get_db
from ..errors import InvalidCredentials, NotFound, RateLimited, Unauthorized, ValidationFailed
from ..logging import anonymize_ip
from ..middleware.logging import set_user_context
from ..responses import cache_busting_headers, format_response, private_cache_headers
from ..utils.donations import sum_donations
from ..utils.network import get_client_ip
from ..utils.password_reset import (
    can_issue_password_reset,
    classify_reset_token,
    consume_reset_token,
    get_reset_token,
    issue_password_reset_token,
    lock_user,
    notify_password_reset_issued,
)
from .deps import policy_dependencies, require_json

router = APIRouter()

_db_dependency = Depends(get_db)
_current_user_dependency = Depends(get_current_user)
_json_dependency = Depends(require_json)

auth_logger = logging.getLogger("donation_api.auth")

_DATASET = "donation-api.auth"
_EMAIL_TAKEN = "The email has already been taken."

_RESET_FAILURE_MESSAGES = {
    "token_missing": "error token",
    "token_owner_mismatch": "error token",
    "token_used": "token already used",
    "token_expired": "token expired",
}


def _now() -> datetime:
    return datetime.now(UTC)


def _user_payload(user: models.User) -> dict:
    return schemas.UserRead.model_validate(user).model_dump(mode="json")


def _success(message: str, data: object = None) -> ORJSONResponse:
    response = format_response("success", 200, message, data)
    cache_busting_headers(response)
    return response


@router.post(
    "/auth/login",
    response_model=schemas.ApiResponse,
    dependencies=[_json_dependency, *policy_dependencies("login")],
)
def login(
    request: Request,
    payload: schemas.LoginRequest,
    db: Session = _db_dependency,
) -> ORJSONResponse:
    """Check credentials and return a bearer token."""

    client_ip = anonymize_ip(get_client_ip(request))
    result = attempt_login(db, payload.email, payload.password)
    if result is None:
        auth_logger.warning(
            "Authentication failed",
            extra={
                "event_dataset": _DATASET,
                "event_action": "login_failed",
                "client_ip": client_ip,
                "auth_method": "password",
                "auth_failure_reason": "invalid_credentials",
            },
        )
        raise InvalidCredentials()

    user, token = result
    user.last_login_at = _now()
    set_user_context(str(user.id))
    request.state.user_id = str(user.id)
    db.commit()
    auth_logger.info(
        "Authentication successful",
        extra={
            "event_dataset": _DATASET,
            "event_action": "login_success",
            "client_ip": client_ip,
            "auth_method": "password",
        },
    )
    return _success("login success", schemas.TokenData(token=token).model_dump())


@router.post(
    "/auth/register",
    response_model=schemas.ApiResponse,
    dependencies=[_json_dependency, *policy_dependencies("register")],
)
def register(
    payload: schemas.RegisterRequest,
    db: Session = _db_dependency,
) -> ORJSONResponse:
    """Create a plain user account with a hashed password."""

    if get_user(db, payload.email) is not None:
        raise ValidationFailed({"email": [_EMAIL_TAKEN]})

    user = models.User(
        name=payload.name,
        email=payload.email.lower(),
        password_hash=hash_password(payload.password),
        phone=payload.phone,
        role=models.UserRole.USER.value,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email.
        db.rollback()
        raise ValidationFailed({"email": [_EMAIL_TAKEN]})
    db.refresh(user)
    auth_logger.info(
        "User registered",
        extra={
            "event_dataset": _DATASET,
            "event_action": "user_registered",
            "user_id": str(user.id),
        },
    )
    return _success("user successfully created", _user_payload(user))


@router.post(
    "/auth/forgot-password",
    response_model=schemas.ApiResponse,
    dependencies=[_json_dependency, *policy_dependencies("request_password_reset")],
)
def request_password_reset(
    payload: schemas.PasswordResetRequest,
    db: Session = _db_dependency,
) -> ORJSONResponse:
    """Issue a reset token unless the user requested one within the cooldown."""

    user = get_user(db, payload.email)
    if user is None:
        auth_logger.info(
            "Password reset requested for unknown email",
            extra={
                "event_dataset": _DATASET,
                "event_action": "password_reset_unknown_user",
            },
        )
        raise NotFound()

    user = lock_user(db, user)
    allowed, retry_after = can_issue_password_reset(db, user)
    if not allowed:
        db.rollback()
        auth_logger.info(
            "Password reset request throttled",
            extra={
                "event_dataset": _DATASET,
                "event_action": "password_reset_throttled",
                "user_id": str(user.id),
            },
        )
        raise RateLimited(headers={"Retry-After": str(max(1, math.ceil(retry_after)))})

    record = issue_password_reset_token(db, user)
    db.commit()
    notify_password_reset_issued(user, record)
    return _success("Reset password link has been sent to email!")


@router.post(
    "/auth/reset-password",
    response_model=schemas.ApiResponse,
    dependencies=[_json_dependency, *policy_dependencies("confirm_password_reset")],
)
def confirm_password_reset(
    payload: schemas.PasswordResetConfirm,
    db: Session = _db_dependency,
) -> ORJSONResponse:
    """Consume a pending reset token and store the new password digest."""

    record = get_reset_token(db, token=payload.token)
    if record is None:
        _log_reset_failure("token_missing")
        raise Unauthorized(_RESET_FAILURE_MESSAGES["token_missing"])

    user = get_user(db, payload.email)
    if user is None:
        _log_reset_failure("user_missing", user_id=str(record.user_id))
        raise NotFound()

    reason = classify_reset_token(record, user)
    if reason:
        _log_reset_failure(reason, user_id=str(user.id))
        raise Unauthorized(_RESET_FAILURE_MESSAGES[reason])

    user.password_hash = hash_password(payload.password)
    consume_reset_token(db, record)
    db.commit()
    auth_logger.info(
        "Password reset completed",
        extra={
            "event_dataset": _DATASET,
            "event_action": "password_reset_completed",
            "user_id": str(user.id),
        },
    )
    return _success("success change password!")


def _log_reset_failure(reason: str, *, user_id: str | None = None) -> None:
    auth_logger.warning(
        "Password reset confirmation rejected",
        extra={
            "event_dataset": _DATASET,
            "event_action": "password_reset_failed",
            "auth_failure_reason": reason,
            "user_id": user_id,
        },
    )


@router.get(
    "/auth/profile",
    response_model=schemas.ApiResponse,
    dependencies=policy_dependencies("get_profile"),
)
def get_profile(
    current_user: models.User = _current_user_dependency,
    db: Session = _db_dependency,
) -> ORJSONResponse:
    """Return the caller's account with the total of their successful donations."""

    profile = schemas.ProfileRead.model_validate(current_user).model_copy(
        update={"total_donation": sum_donations(db, current_user)}
    )
    response = format_response(
        "success", 200, "user successfully fetch", profile.model_dump(mode="json")
    )
    private_cache_headers(response)
    return response
