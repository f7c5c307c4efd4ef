"""
accounts/store.py -- Persistence layer for accounts.

Pattern: Repository + Data Mapper. AccountStore is the repository interface;
SQLAccountStore and InMemoryAccountStore implement it. _row_to_account is the
mapper for SQL rows. The service layer never touches SQL directly.

The store is built once at startup (api/main.py lifespan) from Settings and
hung on app.state. There is no module-level store instance.

Uniqueness:
  Both implementations enforce unique email atomically and surface a
  violation as ConflictError("address already exists"). SQLAccountStore
  relies on the UNIQUE index and translates IntegrityError;
  InMemoryAccountStore checks and writes under one lock.

Security:
  All SQL uses bound parameters. No f-strings in SQL.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from accounts.errors import ConflictError
from accounts.models import Account

# Fields update() accepts. id and timestamps are owned by the store.
_MUTABLE_FIELDS = frozenset({"name", "email", "hashed_password"})

# Largest value a 64-bit signed INTEGER column can hold. Larger ids cannot exist.
MAX_ACCOUNT_ID = 2**63 - 1

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _id_in_range(account_id: int) -> bool:
    return 0 < account_id <= MAX_ACCOUNT_ID


def _check_fields(fields: dict) -> None:
    unknown = set(fields) - _MUTABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown account fields: {sorted(unknown)!r}")


# ---------------------------------------------------------------------------
# Interface
# ---------------------------------------------------------------------------


class AccountStore(ABC):
    """Storage contract the account service depends on."""

    @abstractmethod
    def create(self, name: str, email: str, hashed_password: str) -> Account:
        """Insert a new account and return it with id and timestamps set.

        Raises ConflictError if the email is already taken.
        """

    @abstractmethod
    def get(self, account_id: int) -> Account | None:
        """Return the account, or None if the id is unknown."""

    @abstractmethod
    def get_by_email(self, email: str) -> Account | None:
        """Return the account with this (normalized) email, or None."""

    @abstractmethod
    def list(self) -> list[Account]:
        """Return every account ordered by id."""

    @abstractmethod
    def update(self, account_id: int, **fields) -> Account | None:
        """Apply fields in place and return the updated account.

        Accepted fields: name, email, hashed_password. Returns None if the id
        is unknown; raises ConflictError if the new email is already taken.
        """

    @abstractmethod
    def delete(self, account_id: int) -> bool:
        """Delete the account. Returns False if the id is unknown."""

    def close(self) -> None:
        """Release any held resources."""


# ---------------------------------------------------------------------------
# SQLAlchemy Core implementation
# ---------------------------------------------------------------------------


class SQLAccountStore(AccountStore):
    """Relational store via SQLAlchemy Core.

    Usage:
        store = SQLAccountStore("sqlite:///usersvc.db")              # SQLite file
        store = SQLAccountStore("postgresql://user:pw@host/db")  # PostgreSQL
        account = store.create("Ada", "ada@example.com", prepare_credential("pw"))
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def create(self, name: str, email: str, hashed_password: str) -> Account:
        now = _now_iso()
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _accounts.insert().values(
                        name=name,
                        email=email,
                        hashed_password=hashed_password,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError as exc:
            raise ConflictError("address already exists") from exc
        return Account(
            id=result.inserted_primary_key[0],
            name=name,
            email=email,
            hashed_password=hashed_password,
            created_at=now,
            updated_at=now,
        )

    def get(self, account_id: int) -> Account | None:
        if not _id_in_range(account_id):
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.id == account_id)).fetchone()
        return _row_to_account(row) if row is not None else None

    def get_by_email(self, email: str) -> Account | None:
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.email == email)).fetchone()
        return _row_to_account(row) if row is not None else None

    def list(self) -> list[Account]:
        with self.engine.connect() as conn:
            rows = conn.execute(_accounts.select().order_by(_accounts.c.id)).fetchall()
        return [_row_to_account(r) for r in rows]

    def update(self, account_id: int, **fields) -> Account | None:
        _check_fields(fields)
        if not _id_in_range(account_id):
            return None
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    _accounts.update().where(_accounts.c.id == account_id).values(**fields, updated_at=_now_iso())
                )
        except IntegrityError as exc:
            raise ConflictError("address already exists") from exc
        if result.rowcount == 0:
            return None
        return self.get(account_id)

    def delete(self, account_id: int) -> bool:
        if not _id_in_range(account_id):
            return False
        with self.engine.begin() as conn:
            result = conn.execute(_accounts.delete().where(_accounts.c.id == account_id))
        return result.rowcount > 0

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------


class InMemoryAccountStore(AccountStore):
    """Process-local store backed by a dict. Contents are lost on restart.

    One lock covers every read and write, so the email uniqueness check and
    the write that follows it cannot interleave with another request.
    Accounts are copied on the way in and out; callers never hold a reference
    to the stored object.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: dict[int, Account] = {}
        self._next_id = 1

    def _email_taken(self, email: str, exclude_id: int | None = None) -> bool:
        return any(a.email == email and a.id != exclude_id for a in self._accounts.values())

    def create(self, name: str, email: str, hashed_password: str) -> Account:
        now = _now_iso()
        with self._lock:
            if self._email_taken(email):
                raise ConflictError("address already exists")
            account = Account(
                id=self._next_id,
                name=name,
                email=email,
                hashed_password=hashed_password,
                created_at=now,
                updated_at=now,
            )
            self._accounts[account.id] = account
            self._next_id += 1
            return replace(account)

    def get(self, account_id: int) -> Account | None:
        with self._lock:
            account = self._accounts.get(account_id)
            return replace(account) if account is not None else None

    def get_by_email(self, email: str) -> Account | None:
        with self._lock:
            account = next((a for a in self._accounts.values() if a.email == email), None)
            return replace(account) if account is not None else None

    def list(self) -> list[Account]:
        with self._lock:
            return [replace(self._accounts[k]) for k in sorted(self._accounts)]

    def update(self, account_id: int, **fields) -> Account | None:
        _check_fields(fields)
        with self._lock:
            current = self._accounts.get(account_id)
            if current is None:
                return None
            if "email" in fields and self._email_taken(fields["email"], exclude_id=account_id):
                raise ConflictError("address already exists")
            updated = replace(current, **fields, updated_at=_now_iso())
            self._accounts[account_id] = updated
            return replace(updated)

    def delete(self, account_id: int) -> bool:
        with self._lock:
            return self._accounts.pop(account_id, None) is not None


# ---------------------------------------------------------------------------
# Factory + row mapper
# ---------------------------------------------------------------------------


def build_store(kind: str, db_url: str) -> AccountStore:
    """Construct the store named by Settings.account_store."""
    if kind == "memory":
        return InMemoryAccountStore()
    if kind == "sql":
        return SQLAccountStore(db_url)
    raise ValueError(f"Unknown account store: {kind!r}")


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
