"""Auth request and response models."""

from typing import Optional
from uuid import UUID

from procoin.models.base import CamelModel
from procoin.models.user import Role

MIN_PASSWORD_LENGTH = 8


class RegisterRequest(CamelModel):
    """Registration payload.

    Fields are optional at the schema level so that missing values produce
    the same "All fields are required" error as empty ones.
    """

    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(CamelModel):
    """Login credentials."""

    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(CamelModel):
    """Request to mint a new access token from an active refresh token."""

    refresh_token: str


class UserSummary(CamelModel):
    """Public view of a user, safe to return to clients."""

    id: UUID
    name: str
    email: str
    role: Role


class LoginResponse(CamelModel):
    """Successful authentication with a freshly issued token pair.

    Attributes:
        message: Human-readable outcome
        token: Short-lived access JWT
        refresh_token: Long-lived refresh JWT, now active for the user
        user: Public view of the authenticated user
    """

    message: str
    token: str
    refresh_token: str
    user: UserSummary


class RegisterResponse(LoginResponse):
    """Registration response; repeats the assigned role at the top level."""

    role: Role


class RefreshResponse(CamelModel):
    """A new access token."""

    token: str
