"""Unit tests for accounts/store.py -- both AccountStore implementations.

Every test runs twice via the parametrized `store` fixture (in-memory dict and
SQLAlchemy over in-memory SQLite) so the two backends stay interchangeable.

Covers:
- create assigns ids and timestamps; get / get_by_email / list read back
- email uniqueness on create and update surfaces as ConflictError
- update is in place (id stable) and returns None for unknown ids
- delete returns False for unknown ids
- ids outside the 64-bit INTEGER range behave as unknown ids
- unknown update fields are refused
- build_store() selects the implementation by name
"""

import pytest

from accounts.errors import ConflictError
from accounts.store import AccountStore, InMemoryAccountStore, SQLAccountStore, build_store

HASH = "$2b$04$abcdefghijklmnopqrstuu5Yc4T6l5vS8aXWBq7D8y6nE7bR3e1m2"


def _seed(store: AccountStore, email: str = "john@example.com", name: str = "John Doe"):
    return store.create(name, email, HASH)


def test_create_assigns_id_and_timestamps(store: AccountStore) -> None:
    account = _seed(store)
    assert account.id is not None
    assert account.created_at
    assert account.updated_at == account.created_at
    assert account.hashed_password == HASH


def test_ids_are_unique(store: AccountStore) -> None:
    a = _seed(store, "a@example.com")
    b = _seed(store, "b@example.com")
    assert a.id != b.id


def test_get_round_trip(store: AccountStore) -> None:
    created = _seed(store)
    fetched = store.get(created.id)
    assert fetched is not None
    assert (fetched.id, fetched.name, fetched.email) == (created.id, "John Doe", "john@example.com")


def test_get_unknown_returns_none(store: AccountStore) -> None:
    assert store.get(99999) is None


def test_get_by_email(store: AccountStore) -> None:
    created = _seed(store)
    assert store.get_by_email("john@example.com").id == created.id
    assert store.get_by_email("nobody@example.com") is None


def test_list_is_ordered_by_id(store: AccountStore) -> None:
    ids = [_seed(store, f"user{i}@example.com").id for i in range(3)]
    assert [a.id for a in store.list()] == sorted(ids)


def test_duplicate_email_on_create_conflicts(store: AccountStore) -> None:
    _seed(store)
    with pytest.raises(ConflictError, match="address already exists"):
        _seed(store, name="Someone Else")
    assert len(store.list()) == 1


def test_update_in_place(store: AccountStore) -> None:
    created = _seed(store)
    updated = store.update(created.id, name="Jane Doe")
    assert updated is not None
    assert updated.id == created.id
    assert updated.name == "Jane Doe"
    assert updated.email == "john@example.com"
    assert updated.hashed_password == HASH
    assert store.get(created.id).name == "Jane Doe"


def test_update_unknown_returns_none(store: AccountStore) -> None:
    assert store.update(99999, name="Ghost") is None


def test_update_to_taken_email_conflicts(store: AccountStore) -> None:
    _seed(store, "a@example.com")
    b = _seed(store, "b@example.com")
    with pytest.raises(ConflictError):
        store.update(b.id, email="a@example.com")
    assert store.get(b.id).email == "b@example.com"


def test_update_to_own_email_is_allowed(store: AccountStore) -> None:
    a = _seed(store, "a@example.com")
    assert store.update(a.id, email="a@example.com").email == "a@example.com"


@pytest.mark.parametrize("account_id", [2**63, 2**70, -(2**70)])
def test_out_of_range_ids_are_unknown(store: AccountStore, account_id: int) -> None:
    _seed(store)
    assert store.get(account_id) is None
    assert store.update(account_id, name="Ghost") is None
    assert store.delete(account_id) is False


def test_update_rejects_unknown_fields(store: AccountStore) -> None:
    a = _seed(store)
    with pytest.raises(ValueError):
        store.update(a.id, id=42)


def test_delete(store: AccountStore) -> None:
    a = _seed(store)
    assert store.delete(a.id) is True
    assert store.get(a.id) is None
    assert store.delete(a.id) is False


def test_email_reusable_after_delete(store: AccountStore) -> None:
    a = _seed(store)
    store.delete(a.id)
    again = _seed(store)
    assert store.get_by_email("john@example.com").id == again.id


def test_memory_store_returns_copies() -> None:
    s = InMemoryAccountStore()
    a = s.create("John Doe", "john@example.com", HASH)
    a.name = "mutated"
    assert s.get(a.id).name == "John Doe"


class TestBuildStore:
    def test_memory(self) -> None:
        assert isinstance(build_store("memory", ""), InMemoryAccountStore)

    def test_sql(self) -> None:
        s = build_store("sql", "sqlite:///:memory:")
        try:
            assert isinstance(s, SQLAccountStore)
        finally:
            s.close()

    def test_unknown(self) -> None:
        with pytest.raises(ValueError):
            build_store("mongo", "")
