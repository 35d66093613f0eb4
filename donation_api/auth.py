"""Authentication helpers for password verification and token handling."""

from __future__ import annotations

import inspect
import logging
import uuid
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any, cast

import bcrypt
import sqlalchemy as sa
from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from jose.exceptions import JOSEError
from passlib.context import CryptContext
from passlib.handlers.bcrypt import _BcryptBackend
from sqlalchemy.orm import Session

from . import models
from .config import (
    ACCESS_TOKEN_LEEWAY,
    ACCESS_TOKEN_TTL,
    JWT_ALGORITHM,
    JWT_SIGNING_KEY,
    JWT_VERIFYING_KEY,
)
from .database import get_db
from .errors import IdentityError, TokenIssuerError
from .middleware.logging import set_user_context

if not hasattr(bcrypt, "__about__"):
    bcrypt.__about__ = SimpleNamespace(__version__=bcrypt.__version__)

# Skip passlib's bcrypt backend self-tests that assume passwords >72 bytes
# silently truncate instead of raising ValueError under bcrypt>=5.
_BcryptBackend._workrounds_initialized = True

pwd_context = CryptContext(schemes=["bcrypt_sha256"], deprecated="auto")

# auto_error is off so a missing header is reported through the envelope.
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="auth/login",
    description=f"Access token expires after {ACCESS_TOKEN_TTL} seconds",
    auto_error=False,
)

logger = logging.getLogger("donation_api.auth")

_DECODE_SUPPORTS_LEEWAY = "leeway" in inspect.signature(jwt.decode).parameters


def _now() -> datetime:
    return datetime.now(UTC)


def hash_password(password: str) -> str:
    """Return a salted one-way digest using bcrypt with SHA-256 pre-hashing."""

    return cast(str, pwd_context.hash(password))


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return cast(bool, pwd_context.verify(plain_password, hashed_password))


def create_access_token(
    subject: str,
    *,
    scope: str | None = None,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    """Generate a signed JWT for ``subject`` and return it with its expiry."""

    issued_at = _now()
    expire = issued_at + (expires_delta or timedelta(seconds=ACCESS_TOKEN_TTL))
    payload: dict[str, Any] = {
        "sub": subject,
        "jti": str(uuid.uuid4()),
        "iat": int(issued_at.timestamp()),
        "exp": int(expire.timestamp()),
    }
    if scope:
        payload["scope"] = scope
    token = jwt.encode(payload, JWT_SIGNING_KEY, algorithm=JWT_ALGORITHM)
    return token, expire


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode a JWT using the configured verification key."""

    options: dict[str, Any] = {"verify_aud": False}
    kwargs: dict[str, Any] = {"options": options}
    if ACCESS_TOKEN_LEEWAY:
        if _DECODE_SUPPORTS_LEEWAY:
            kwargs["leeway"] = ACCESS_TOKEN_LEEWAY
        else:
            options["leeway"] = ACCESS_TOKEN_LEEWAY
    decoded = jwt.decode(token, JWT_VERIFYING_KEY, algorithms=[JWT_ALGORITHM], **kwargs)
    return cast(dict[str, Any], decoded)


def get_user(db: Session, email: str) -> models.User | None:
    """Retrieve a user by email (case-insensitive) or return ``None``."""

    normalized = email.strip().lower()
    if not normalized:
        return None
    result = (
        db.query(models.User)
        .filter(sa.func.lower(models.User.email) == normalized)
        .first()
    )
    return cast(models.User | None, result)


def attempt_login(
    db: Session,
    email: str,
    password: str,
    *,
    scope: str | None = None,
    expires_delta: timedelta | None = None,
) -> tuple[models.User, str] | None:
    """Check credentials and mint a token for the matching user.

    Returns ``None`` for unknown users or wrong passwords and raises
    :class:`TokenIssuerError` when the token cannot be signed.
    """

    user = get_user(db, email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    try:
        token, _ = create_access_token(str(user.id), scope=scope, expires_delta=expires_delta)
    except JOSEError as exc:
        logger.error(
            "Access token signing failed",
            extra={
                "event_dataset": "donation-api.auth",
                "event_action": "token_issue_failed",
                "error_type": type(exc).__name__,
            },
        )
        raise TokenIssuerError() from exc
    return user, token


def resolve_identity(db: Session, token: str | None, *, scope: str | None = None) -> models.User:
    """Return the user a token was issued for or raise :class:`IdentityError`.

    When ``scope`` is given the token must carry exactly that scope; bearer
    tokens for the API carry none.
    """

    if not token:
        raise IdentityError()
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise IdentityError()
    if payload.get("scope") != scope:
        raise IdentityError()
    subject = payload.get("sub")
    if subject is None:
        raise IdentityError()
    try:
        user_id = uuid.UUID(str(subject))
    except ValueError:
        raise IdentityError()

    user = cast(models.User | None, db.get(models.User, user_id))
    if user is None:
        raise IdentityError()
    set_user_context(str(user.id))
    return user


def get_current_user(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    """Return the authenticated user based on the bearer token."""

    user = resolve_identity(db, token)
    request.state.user_id = str(user.id)
    return user
