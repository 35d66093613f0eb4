"""Password reset token model."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import IntEnum
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..database import Base

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from .users import User


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ResetTokenStatus(IntEnum):
    """Lifecycle states of a reset token. ``PENDING`` only ever moves to ``USED``."""

    PENDING = 0
    USED = 1


class PasswordResetToken(Base):
    """One row per password reset request; rows are never deleted."""

    __tablename__ = "password_reset_tokens"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    token: Mapped[str] = mapped_column(String(128), nullable=False, unique=True)
    link: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[int] = mapped_column(
        Integer, nullable=False, default=ResetTokenStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    user: Mapped["User"] = relationship("User", back_populates="reset_tokens")


Index(
    "ix_password_reset_tokens_user_status_updated",
    PasswordResetToken.user_id,
    PasswordResetToken.status,
    PasswordResetToken.updated_at,
)
