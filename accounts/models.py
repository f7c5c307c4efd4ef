"""
accounts/models.py -- Domain dataclass for a stored account.

Pattern: Data class (pure data container, zero logic). Stores and the
service do the work; accounts/guard.py decides what may leave the process.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Account:
    """One registered principal.

    hashed_password is the bcrypt modular-crypt string ("$2b$12$..."). It
    embeds its own salt and cost factor, so it is the only credential field
    that needs storing. It must never reach a response body -- every outbound
    path goes through guard.redact_for_response().

    id is None only before the store has written the record.
    """

    name: str
    email: str
    hashed_password: str
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None
