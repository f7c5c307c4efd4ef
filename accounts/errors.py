"""
accounts/errors.py -- Typed failures raised by the account domain.

Every error is recoverable by the caller (resubmit corrected input, pick a
different email, use an existing id). The HTTP layer maps them to status
codes in one exception handler (api/main.py); nothing here knows about HTTP.

Messages are fixed strings. They must never interpolate a submitted secret.
"""

from __future__ import annotations


class AccountError(Exception):
    """Base class for account domain failures."""

    code = "account_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AccountError):
    """Caller-supplied data failed a precondition."""

    code = "validation_error"


class ConflictError(AccountError):
    """A uniqueness constraint (email) would be violated."""

    code = "conflict"


class NotFoundError(AccountError):
    """The referenced account id does not exist."""

    code = "not_found"
