"""Helpers for issuing, throttling and consuming password reset tokens."""
from __future__ import annotations

import logging
import secrets
from datetime import UTC, datetime, timedelta

from sqlalchemy.orm import Session

from .. import models
from ..config import (
    PASSWORD_RESET_LINK_PREFIX,
    PASSWORD_RESET_REQUEST_COOLDOWN,
    PASSWORD_RESET_TTL_MINUTES,
)

logger = logging.getLogger("donation_api.password_reset")

_PENDING = models.ResetTokenStatus.PENDING.value
_USED = models.ResetTokenStatus.USED.value


def _now() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    """Attach UTC to naive timestamps returned by backends without tz support."""

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def generate_reset_token() -> str:
    """Return an unguessable URL-safe token carrying 256 bits of entropy."""

    return secrets.token_urlsafe(32)


def build_reset_link(token: str) -> str:
    return f"{PASSWORD_RESET_LINK_PREFIX}{token}"


def lock_user(db: Session, user: models.User) -> models.User:
    """Take a row lock on ``user`` so throttle checks for one user run serially."""

    return (
        db.query(models.User)
        .filter(models.User.id == user.id)
        .with_for_update()
        .one()
    )


def get_latest_pending_token(
    db: Session, user: models.User
) -> models.PasswordResetToken | None:
    """Return the most recently updated pending token for ``user``."""

    return (
        db.query(models.PasswordResetToken)
        .filter(models.PasswordResetToken.user_id == user.id)
        .filter(models.PasswordResetToken.status == _PENDING)
        .order_by(models.PasswordResetToken.updated_at.desc())
        .first()
    )


def can_issue_password_reset(
    db: Session,
    user: models.User,
    *,
    now: datetime | None = None,
) -> tuple[bool, float]:
    """Return whether a new reset token may be issued and the seconds left to wait.

    The wait is measured from the ``updated_at`` of the user's latest pending
    token, so requests for other users never affect this user's window.
    """

    current = now or _now()
    latest = get_latest_pending_token(db, user)
    if latest is None:
        return True, 0.0
    elapsed = (current - _as_utc(latest.updated_at)).total_seconds()
    if elapsed < PASSWORD_RESET_REQUEST_COOLDOWN:
        return False, PASSWORD_RESET_REQUEST_COOLDOWN - elapsed
    return True, 0.0


def issue_password_reset_token(
    db: Session,
    user: models.User,
    *,
    now: datetime | None = None,
) -> models.PasswordResetToken:
    """Persist a new pending reset token for ``user`` and return it."""

    current = now or _now()
    token = generate_reset_token()
    record = models.PasswordResetToken(
        user_id=user.id,
        token=token,
        link=build_reset_link(token),
        status=_PENDING,
        created_at=current,
        updated_at=current,
    )
    db.add(record)
    return record


def get_reset_token(db: Session, *, token: str) -> models.PasswordResetToken | None:
    """Return the reset token row matching ``token`` exactly, whatever its status.

    The row is locked so two confirmations of one token cannot both succeed.
    """

    return (
        db.query(models.PasswordResetToken)
        .filter(models.PasswordResetToken.token == token)
        .with_for_update()
        .first()
    )


def classify_reset_token(
    record: models.PasswordResetToken,
    user: models.User,
    *,
    now: datetime | None = None,
) -> str | None:
    """Return why ``record`` cannot reset ``user``'s password, or ``None`` if it can."""

    if record.user_id != user.id:
        return "token_owner_mismatch"
    if record.status == _USED:
        return "token_used"
    current = now or _now()
    if _as_utc(record.created_at) + timedelta(minutes=PASSWORD_RESET_TTL_MINUTES) <= current:
        return "token_expired"
    return None


def consume_reset_token(
    db: Session,
    record: models.PasswordResetToken,
    *,
    now: datetime | None = None,
) -> None:
    """Move ``record`` from pending to used."""

    record.status = _USED
    record.updated_at = now or _now()
    db.add(record)


def notify_password_reset_issued(user: models.User, record: models.PasswordResetToken) -> None:
    """Hand the reset link to the out-of-band notifier.

    Delivery is owned by a separate notification service; this records the
    hand-off without exposing the token.
    """

    logger.info(
        "Password reset link ready for delivery",
        extra={
            "event_dataset": "donation-api.auth",
            "event_action": "password_reset_link_issued",
            "user_id": str(user.id),
        },
    )
