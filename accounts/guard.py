"""
accounts/guard.py -- Credential guard: password hashing, validation, redaction.

Security design decisions:
  Passwords: bcrypt used directly (no passlib wrapper). bcrypt.gensalt()
       draws a fresh random salt on every call, so hashing the same password
       twice yields two different strings that both verify. The work factor
       comes from Settings.bcrypt_rounds and is embedded in the hash, so
       raising it later does not invalidate existing hashes.

  Length: bcrypt only reads the first 72 bytes of its input. Longer secrets
       are rejected rather than silently truncated, so two passwords sharing a
       72-byte prefix can never verify against each other's hash.

  Redaction: redact_for_response() builds the public view from an allow-list
       of field names. The hash key is absent from the result, not set to
       None. Every code path that serializes an Account goes through it.

  Secrets in errors: every ValidationError raised here carries a fixed
       message. The submitted secret is never formatted into it or logged.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import re

import bcrypt

from accounts.errors import ValidationError
from accounts.models import Account
from core.config import get_settings

_settings = get_settings()

# bcrypt ignores everything past this many bytes of input.
_BCRYPT_MAX_BYTES = 72

# Minimal "looks like an email" shape: local@domain.tld, no whitespace.
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_PUBLIC_FIELDS = ("id", "name", "email")


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def prepare_credential(raw_secret: str | None, rounds: int | None = None) -> str:
    """Return a salted bcrypt hash of raw_secret.

    Raises ValidationError if the secret is missing, empty, or longer than
    bcrypt's 72-byte input limit. No I/O; CPU cost grows as 2**rounds.
    """
    if not raw_secret:
        raise ValidationError("missing required fields")
    encoded = raw_secret.encode("utf-8")
    if len(encoded) > _BCRYPT_MAX_BYTES:
        raise ValidationError("password too long")
    cost = rounds if rounds is not None else _settings.bcrypt_rounds
    return bcrypt.hashpw(encoded, bcrypt.gensalt(rounds=cost)).decode("utf-8")


def verify_credential(raw_secret: str | None, hashed: str | None) -> bool:
    """Return True if raw_secret matches the stored bcrypt hash.

    bcrypt.checkpw re-derives the hash with the salt and cost embedded in
    `hashed` and compares in constant time. A malformed hash is a mismatch,
    not an error.
    """
    if not raw_secret or not hashed:
        return False
    try:
        return bcrypt.checkpw(raw_secret.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# ---------------------------------------------------------------------------
# Validation policy
# ---------------------------------------------------------------------------


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_email(email: str) -> None:
    if not _EMAIL_RE.match(email):
        raise ValidationError("invalid email address")


def validate_new_account(name: str | None, email: str | None, password: str | None) -> None:
    """Creation needs all three fields present and non-blank."""
    if not name or not name.strip() or not email or not email.strip() or not password:
        raise ValidationError("missing required fields")
    _check_email(normalize_email(email))


def validate_account_changes(name: str | None, email: str | None, password: str | None) -> None:
    """Partial update: at least one field, and every supplied field non-blank.

    A missing password means "keep the existing hash"; it is not an error.
    """
    if name is None and email is None and password is None:
        raise ValidationError("no fields to update")
    if (name is not None and not name.strip()) or (email is not None and not email.strip()) or password == "":
        raise ValidationError("fields must not be empty")
    if email is not None:
        _check_email(normalize_email(email))


# ---------------------------------------------------------------------------
# Response redaction
# ---------------------------------------------------------------------------


def redact_for_response(account: Account) -> dict:
    """Project an Account onto the fields that are safe to send to a client."""
    return {field: getattr(account, field) for field in _PUBLIC_FIELDS}
