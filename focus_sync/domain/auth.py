"""Authentication request and response models."""

from pydantic import Field

from focus_sync.domain.base import CamelModel
from focus_sync.domain.user import UserProfile


class TokenPair(CamelModel):
    """Access and refresh tokens issued together."""

    access_token: str = Field(..., description="Short-lived stateless bearer token")
    refresh_token: str = Field(..., description="Long-lived single-use token")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    issued_at: str = Field(..., description="ISO-8601 issue time")


class RegisterRequest(CamelModel):
    """Registration form. Fields are optional here so that missing ones surface as a 400."""

    email: str | None = None
    password: str | None = None
    display_name: str | None = None


class LoginRequest(CamelModel):
    """Login form."""

    email: str | None = None
    password: str | None = None


class RefreshRequest(CamelModel):
    """Refresh token exchange."""

    refresh_token: str | None = None


class AuthResponse(CamelModel):
    """Result of register, login and refresh."""

    user: UserProfile
    tokens: TokenPair
    message: str
