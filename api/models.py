"""
API request and response models for Usersvc REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclass in accounts/models.py, which
owns the internal domain representation. Route handlers map between the two.

Request bodies declare every field optional. Presence and emptiness are
decided by the credential guard so that a missing field produces the domain
ValidationError ("missing required fields", HTTP 400) rather than a generic
schema error. Types and lengths are still checked here.

password is a SecretStr: its repr and str are masked, so a logged or
echoed request model never shows the plaintext. No request model strips
whitespace: the password is hashed exactly as sent, and name and email are
trimmed by the account service.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class AccountCreate(BaseModel):
    """Request body for POST /api/v1/users."""

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[SecretStr] = None


class AccountUpdate(BaseModel):
    """Request body for PUT/PATCH /api/v1/users/{id}. Any subset of fields."""

    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    password: Optional[SecretStr] = None


class CredentialCheck(BaseModel):
    """Request body for POST /api/v1/users/verify."""

    email: str = Field(max_length=255)
    password: SecretStr


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class AccountResponse(BaseModel):
    """Public view of an account. There is deliberately no password field.

    extra="forbid" makes construction fail loudly if a caller ever passes
    anything beyond the public projection.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: int
    name: str
    email: str


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
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str


def secret_value(secret: Optional[SecretStr]) -> Optional[str]:
    """Unwrap an optional SecretStr at the last moment before hashing."""
    return secret.get_secret_value() if secret is not None else None
