"""Domain-specific SQLAlchemy model package."""

from ..database import Base

from .donations import Donation, DonationStatus
from .reset_tokens import PasswordResetToken, ResetTokenStatus
from .users import User, UserRole

__all__ = [
    "Base",
    "Donation",
    "DonationStatus",
    "PasswordResetToken",
    "ResetTokenStatus",
    "User",
    "UserRole",
]
