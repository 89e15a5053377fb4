"""
API request and response models for DatingApp REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Letters, digits, dot, dash, underscore. Keeps usernames URL-safe for
# GET /api/users/{username}.
USERNAME_PATTERN = r"^[A-Za-z0-9._-]+$"

# Path segments under /api/users that a username would be shadowed by.
RESERVED_USERNAMES = frozenset({"me"})

# bcrypt only looks at the first 72 bytes, and bcrypt >= 5 refuses longer input.
MAX_PASSWORD_BYTES = 72


# ---------------------------------------------------------------------------
# Account -- requests
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/account/register.

    Only the username is trimmed. The password is hashed exactly as sent so
    the same string works at login.
    """

    username: str = Field(min_length=1, max_length=255, pattern=USERNAME_PATTERN)
    password: str = Field(min_length=4, max_length=64)

    @field_validator("username", mode="before")
    @classmethod
    def strip_username(cls, value: object) -> object:
        """Trim surrounding whitespace before the pattern check runs."""
        return value.strip() if isinstance(value, str) else value

    @field_validator("username")
    @classmethod
    def reject_reserved_username(cls, value: str) -> str:
        if value.lower() in RESERVED_USERNAMES:
            raise ValueError(f"'{value}' is reserved")
        return value

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes in UTF-8")
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/account/login."""

    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=64)


# ---------------------------------------------------------------------------
# Account -- responses
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Returned by register and login: who you are plus a bearer token."""

    model_config = ConfigDict(frozen=True)

    username: str
    token: str


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """One user as exposed over HTTP. Never carries the password hash."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    created_at: str = ""


# ---------------------------------------------------------------------------
# Shared
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
