"""
accounts/service.py -- Account use cases: validate -> hash -> store -> redact.

AccountService is what route handlers call. It composes the credential guard
with an injected AccountStore and always hands back public views (dicts from
guard.redact_for_response), never Account objects, so a handler cannot leak a
hash by serializing the wrong thing.

Update policy:
  Partial update. Any subset of name/email/password may be sent; an empty
  request is ValidationError("no fields to update"). Omitting the password
  keeps the stored hash; sending one re-hashes it with a fresh salt.

Blocking:
  create(), update() with a password, and authenticate() each run bcrypt and
  block the calling thread for the hash duration. Call them from sync route
  handlers (FastAPI runs those in its threadpool), not from async ones.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from accounts.errors import NotFoundError
from accounts.guard import (
    normalize_email,
    prepare_credential,
    redact_for_response,
    validate_account_changes,
    validate_new_account,
    verify_credential,
)
from accounts.store import AccountStore

logger = logging.getLogger("usersvc.accounts")

# Timing equalization dummy hash. Computed lazily once so that unknown-email
# authentication attempts pay the same bcrypt cost as real ones.
_DUMMY_HASH: str | None = None


def _dummy_hash() -> str:
    global _DUMMY_HASH
    if _DUMMY_HASH is None:
        _DUMMY_HASH = prepare_credential("usersvc_timing_dummy")
    return _DUMMY_HASH


class AccountService:
    """Account CRUD on top of an AccountStore.

    Usage:
        service = AccountService(InMemoryAccountStore())
        view = service.create("John Doe", "john@example.com", "password123")
        service.get(view["id"])
    """

    def __init__(self, store: AccountStore) -> None:
        self.store = store

    def create(self, name: str | None, email: str | None, password: str | None) -> dict:
        """Create an account. Raises ValidationError or ConflictError."""
        validate_new_account(name, email, password)
        hashed = prepare_credential(password)
        account = self.store.create(name.strip(), normalize_email(email), hashed)
        logger.info("Account %s created", account.id)
        return redact_for_response(account)

    def get(self, account_id: int) -> dict:
        account = self.store.get(account_id)
        if account is None:
            raise NotFoundError("account not found")
        return redact_for_response(account)

    def list(self) -> list[dict]:
        return [redact_for_response(a) for a in self.store.list()]

    def update(
        self,
        account_id: int,
        name: str | None = None,
        email: str | None = None,
        password: str | None = None,
    ) -> dict:
        """Apply a partial update. Raises ValidationError, NotFoundError, or ConflictError.

        Validation runs before the lookup, so an empty update is rejected as
        a ValidationError even for an unknown id.
        """
        validate_account_changes(name, email, password)
        fields: dict = {}
        if name is not None:
            fields["name"] = name.strip()
        if email is not None:
            fields["email"] = normalize_email(email)
        if password is not None:
            fields["hashed_password"] = prepare_credential(password)
        account = self.store.update(account_id, **fields)
        if account is None:
            raise NotFoundError("account not found")
        logger.info("Account %s updated (%s)", account_id, ", ".join(sorted(fields)))
        return redact_for_response(account)

    def delete(self, account_id: int) -> None:
        if not self.store.delete(account_id):
            raise NotFoundError("account not found")
        logger.info("Account %s deleted", account_id)

    def authenticate(self, email: str | None, password: str | None) -> dict | None:
        """Check an email/password pair. Returns the public view or None.

        Always runs exactly one bcrypt check, against a dummy hash when the
        email is unknown, so response time does not reveal which emails exist.
        """
        account = self.store.get_by_email(normalize_email(email)) if email else None
        if account is None:
            verify_credential(password or "x", _dummy_hash())
            return None
        if not verify_credential(password, account.hashed_password):
            return None
        return redact_for_response(account)

    def close(self) -> None:
        self.store.close()
