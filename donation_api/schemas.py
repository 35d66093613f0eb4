"""Pydantic schemas used for request and response models."""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Any, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    field_serializer,
    field_validator,
)

AccountPassword = Annotated[str, StringConstraints(min_length=6, max_length=50)]
Email = Annotated[EmailStr, Field(max_length=255)]
DisplayName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)]
Phone = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=32)]


class _StripEmail(BaseModel):
    @field_validator("email", mode="before", check_fields=False)
    def _strip_email(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class LoginRequest(_StripEmail):
    """Credentials accepted by the login endpoint."""

    email: Email
    password: AccountPassword

    model_config = ConfigDict(extra="forbid")


class RegisterRequest(_StripEmail):
    """Schema for user registration.

    There is deliberately no ``role`` field: every registered account is a
    plain user and unknown fields are rejected.
    """

    name: DisplayName
    email: Email
    password: AccountPassword
    phone: Phone

    model_config = ConfigDict(extra="forbid")


class PasswordResetRequest(_StripEmail):
    """Payload accepted by the forgot-password endpoint."""

    email: Email

    model_config = ConfigDict(extra="forbid")


class PasswordResetConfirm(_StripEmail):
    """Payload accepted by the password reset confirmation endpoint."""

    email: Email
    password: AccountPassword
    token: str = Field(..., min_length=1, max_length=128)

    model_config = ConfigDict(extra="forbid")

    @field_validator("token", mode="before")
    def _strip_token(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class UserRead(BaseModel):
    """Public representation of a user; never includes the password digest."""

    id: UUID
    name: str
    email: str
    phone: str
    role: str
    created_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ProfileRead(UserRead):
    """User representation with the request-scoped donation total."""

    total_donation: Decimal = Decimal("0.00")

    @field_serializer("total_donation", when_used="json")
    def _total_as_number(self, value: Decimal) -> float:
        # Cent amounts below 10**13 round-trip exactly through a JSON number.
        return float(value)


class TokenData(BaseModel):
    token: str


class ApiResponse(BaseModel):
    """The envelope every auth endpoint responds with."""

    status: Literal["success", "error", "failed"]
    http_code: int
    message: str
    data: Any = None
