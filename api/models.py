"""
API request and response models for userdir REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

No response model has a password or password_hash field -- the sanitized
PublicUser is the only user shape that crosses this boundary.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from auth.models import PublicUser, Role
from auth.tokens import PASSWORD_MAX_BYTES, password_too_long

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

USERNAME_PATTERN = r"^[A-Za-z0-9_.-]+$"
USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 32
PASSWORD_MIN_LEN = 8
# Character cap; the binding limit is PASSWORD_MAX_BYTES of UTF-8 (bcrypt input size).
PASSWORD_MAX_LEN = PASSWORD_MAX_BYTES


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body for POST /users/register and POST /users/login."""

    model_config = ConfigDict(extra="ignore")

    username: str = Field(
        min_length=USERNAME_MIN_LEN,
        max_length=USERNAME_MAX_LEN,
        pattern=USERNAME_PATTERN,
    )
    password: str = Field(min_length=PASSWORD_MIN_LEN, max_length=PASSWORD_MAX_LEN)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        """Reject passwords whose UTF-8 encoding bcrypt would silently cut short."""
        if password_too_long(value):
            raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes in UTF-8")
        return value


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Sanitized user as echoed back to clients."""

    model_config = ConfigDict(frozen=True)

    username: str
    role: Role

    @classmethod
    def from_public(cls, user: PublicUser) -> "UserResponse":
        return cls(username=user.username, role=user.role)


class MessageResponse(BaseModel):
    """Plain success envelope used by the role-gated check routes."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str


class RegisterResponse(MessageResponse):
    """Response for POST /users/register."""

    user: UserResponse


class LoginResponse(MessageResponse):
    """Response for POST /users/login. access is the bearer token."""

    access: str


class ErrorResponse(BaseModel):
    """Envelope returned on every 4xx/5xx response."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    message: str
    code: str


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
