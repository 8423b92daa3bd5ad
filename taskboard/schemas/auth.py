"""
TaskBoard — Account & Session Schemas
======================================

What:  Pydantic models for sign-up, sign-in, password rotation and the
       user/token payloads returned to clients.
How:   Request models are only ever built through taskboard.validation, which
       turns pydantic errors into the application's ValidationError.
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def _check_password_strength(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Password must be at least 8 characters")
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return value


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class SignUpRequest(BaseModel):
    """New account. Usernames are case-sensitive and never change afterwards."""
    username: str = Field(min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str

    model_config = {"extra": "ignore"}

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return _check_password_strength(v)


class SignInRequest(BaseModel):
    """
    Credentials for sign-in.

    Only presence is checked here: shape rules would let a caller distinguish
    "malformed" from "wrong", so anything non-empty goes to the verifier.
    """
    username: str = Field(min_length=1, max_length=255)
    password: str = Field(min_length=1, max_length=1024)

    model_config = {"extra": "ignore"}


class PasswordChangeRequest(BaseModel):
    current_password: str = Field(min_length=1, max_length=1024)
    new_password: str

    model_config = {"extra": "ignore"}

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return _check_password_strength(v)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    """Public view of an account; never includes the password hash."""
    id: uuid.UUID = Field(description="User identifier")
    username: str = Field(description="Login name")
    created_at: datetime = Field(description="Account creation time (UTC)")

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    """
    What:  Session credential returned by sign-in.
    How:   Clients send it back as `Authorization: Bearer <access_token>`.
    """
    access_token: str = Field(description="Signed session token")
    token_type: str = Field(default="bearer", description="Always 'bearer'")
    expires_at: datetime = Field(description="Instant the token stops verifying (UTC)")
    expires_in: int = Field(description="Seconds from issuance until expiry")
