"""Tests for the server registry."""

from __future__ import annotations

import pytest

from hop.errors import DuplicateAliasError, DuplicateNameError, InvalidEntryError, NotFoundError
from hop.models import Server, ServerPatch
from hop.registry import Registry


def make(name: str, alias: str | None = None, **kwargs) -> Server:
    kwargs.setdefault("user", "forge")
    kwargs.setdefault("host", "192.168.1.20")
    return Server(name=name, alias=alias, **kwargs)


class RecordingStore:
    def __init__(self):
        self.saved: list[tuple[Server, ...]] = []

    def save(self, registry: Registry) -> None:
        self.saved.append(registry.list())


def test_iteration_yields_servers_in_order():
    registry = Registry([make("b"), make("a")])
    assert len(registry) == 2
    assert [s.name for s in registry] == ["b", "a"]


def test_resolve_after_add():
    registry = Registry()
    server = make("prod-db", "db1")
    registry.add(server)

    assert registry.resolve("prod-db") == server
    assert registry.resolve("db1") == server


def test_add_duplicate_name_fails_regardless_of_other_fields():
    registry = Registry([make("prod-db")])
    with pytest.raises(DuplicateNameError):
        registry.add(make("prod-db", "other", user="root", host="10.0.0.1", port=2222))
    assert len(registry) == 1


def test_add_alias_colliding_with_existing_name():
    registry = Registry([make("db1")])
    with pytest.raises(DuplicateAliasError):
        registry.add(make("prod-db", "db1"))


def test_add_alias_colliding_with_existing_alias():
    registry = Registry([make("prod-db", "db")])
    with pytest.raises(DuplicateAliasError):
        registry.add(make("replica-db", "db"))


def test_add_name_colliding_with_existing_alias():
    registry = Registry([make("prod-db", "db1")])
    with pytest.raises(DuplicateNameError):
        registry.add(make("db1"))


def test_constructor_rejects_duplicates():
    with pytest.raises(DuplicateNameError):
        Registry([make("a"), make("a")])


def test_name_takes_priority_over_alias():
    # add() refuses a name shadowing an alias, so build the list by hand.
    first = make("a", "b")
    second = make("b")
    registry = Registry([first])
    registry._servers.append(second)

    assert registry.resolve("b") is second


def test_resolve_is_exact_and_case_sensitive(registry: Registry):
    with pytest.raises(NotFoundError):
        registry.resolve("PROD-DB")
    with pytest.raises(NotFoundError):
        registry.resolve("prod")


def test_remove_then_resolve_fails(registry: Registry):
    removed = registry.remove("db1")
    assert removed.name == "prod-db"
    with pytest.raises(NotFoundError):
        registry.resolve("db1")
    with pytest.raises(NotFoundError):
        registry.resolve("prod-db")


def test_remove_unknown(registry: Registry):
    with pytest.raises(NotFoundError) as exc_info:
        registry.remove("nope")
    assert exc_info.value.identifier == "nope"
    assert len(registry) == 3


def test_list_preserves_insertion_order(registry: Registry):
    registry.add(make("aaa"))
    assert [s.name for s in registry.list()] == ["prod-db", "staging", "web-1", "aaa"]


def test_edit_connection_fields_keeps_order_and_identity(registry: Registry):
    updated = registry.edit("staging", ServerPatch(user="admin", host="10.1.1.1", port=2200))

    assert updated.name == "staging"
    assert updated.user == "admin"
    assert updated.host == "10.1.1.1"
    assert updated.port == 2200
    assert [s.name for s in registry.list()] == ["prod-db", "staging", "web-1"]
    assert registry.resolve("db1").name == "prod-db"


def test_edit_keeps_unset_fields(registry: Registry):
    updated = registry.edit("w1", ServerPatch(port=2022))
    assert updated.alias == "w1"
    assert updated.user == "root"
    assert updated.host == "10.0.0.5"


def test_edit_rename_and_clear_alias(registry: Registry):
    registry.edit("db1", ServerPatch(name="primary-db", alias=None))

    assert registry.resolve("primary-db").alias is None
    with pytest.raises(NotFoundError):
        registry.resolve("db1")


def test_edit_may_keep_own_name_and_alias(registry: Registry):
    updated = registry.edit("prod-db", ServerPatch(name="prod-db", alias="db1"))
    assert updated.identifiers() == ("prod-db", "db1")


def test_edit_conflicts_with_other_entries(registry: Registry):
    with pytest.raises(DuplicateNameError):
        registry.edit("staging", ServerPatch(name="web-1"))
    with pytest.raises(DuplicateAliasError):
        registry.edit("staging", ServerPatch(alias="db1"))
    with pytest.raises(DuplicateAliasError):
        registry.edit("staging", ServerPatch(alias="prod-db"))
    assert registry.resolve("staging").alias is None


def test_edit_invalid_port(registry: Registry):
    with pytest.raises(InvalidEntryError):
        registry.edit("staging", ServerPatch(port=0))
    assert registry.resolve("staging").port == 2222


def test_edit_unknown(registry: Registry):
    with pytest.raises(NotFoundError):
        registry.edit("nope", ServerPatch(port=22))


def test_mutations_persist_through_store():
    store = RecordingStore()
    registry = Registry(store=store)

    registry.add(make("a"))
    registry.edit("a", ServerPatch(port=2200))
    registry.remove("a")

    assert len(store.saved) == 3
    assert store.saved[1][0].port == 2200
    assert store.saved[2] == ()


def test_failed_mutation_does_not_persist(registry: Registry):
    store = RecordingStore()
    registry = Registry(registry.list(), store=store)

    with pytest.raises(DuplicateNameError):
        registry.add(make("staging"))
    with pytest.raises(NotFoundError):
        registry.remove("missing")

    assert store.saved == []


def test_list_is_read_only_snapshot(registry: Registry):
    snapshot = registry.list()
    registry.add(make("later"))
    assert len(snapshot) == 3


@pytest.mark.parametrize(
    ("query", "expected"),
    [
        ("prod", ["prod-db"]),
        ("db", ["prod-db"]),
        ("w", ["web-1"]),
        ("1", ["prod-db", "web-1"]),
        ("stagign", ["staging"]),
        ("zzz", []),
    ],
)
def test_suggest_ranks_candidates(registry: Registry, query: str, expected: list[str]):
    assert [s.name for s in registry.suggest(query)] == expected


def test_suggest_does_not_affect_resolve(registry: Registry):
    assert registry.suggest("prod")
    with pytest.raises(NotFoundError):
        registry.resolve("prod")
