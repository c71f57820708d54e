"""
tests/test_memory_and_store.py

In-memory record set and sqlite store:
- merge deduplicates by identity and updates in place
- snapshots are never mutated by later merges
- the store upserts by identity and reloads in insertion order
"""

from __future__ import annotations

from src.data.memory import SalesOrderMemory

from conftest import make_record


def test_merge_counts_only_new_identities():
    memory = SalesOrderMemory([make_record(1), make_record(2)])

    added = memory.merge([make_record(2, amount=99), make_record(3)])

    assert added == 1
    assert len(memory) == 3


def test_merging_same_batch_twice_keeps_size():
    memory = SalesOrderMemory()
    batch = [make_record(1), make_record(2)]

    assert memory.merge(batch) == 2
    assert memory.merge(batch) == 0
    assert len(memory) == 2


def test_existing_identity_is_updated_in_place():
    memory = SalesOrderMemory([make_record(1, amount=10), make_record(2, amount=20)])

    memory.merge([make_record(1, amount=15, status="PENDING BILLING")])

    snap = memory.snapshot()
    # Position is preserved, fields are overwritten
    assert [r.identity for r in snap] == ["1", "2"]
    assert snap[0].amount == 15.0
    assert snap[0].status == "PENDING BILLING"


def test_snapshot_is_not_affected_by_later_merges():
    memory = SalesOrderMemory([make_record(1)])
    before = memory.snapshot()

    memory.merge([make_record(2)])

    assert len(before) == 1
    assert len(memory.snapshot()) == 2


def test_records_without_identity_are_ignored():
    memory = SalesOrderMemory()
    assert memory.merge([make_record(""), make_record(None)]) == 0
    assert len(memory) == 0


def test_replace_and_clear():
    memory = SalesOrderMemory([make_record(1)])
    assert memory.replace([make_record(5), make_record(6), make_record(5, amount=3)]) == 2
    assert memory.identities() == frozenset({"5", "6"})

    memory.clear()
    assert len(memory) == 0
    assert memory.snapshot() == ()


def test_store_upsert_is_keyed_by_identity(store):
    store.upsert([make_record(1, amount=10), make_record(2, amount=20)])
    accepted = store.upsert([make_record(1, amount=11, customer="Globex")])

    assert len(accepted) == 1
    assert store.count() == 2

    loaded = {r.identity: r for r in store.load_all()}
    assert loaded["1"].amount == 11.0
    assert loaded["1"].customer == "Globex"
    assert loaded["2"].amount == 20.0


def test_store_roundtrip_preserves_record(store):
    rec = make_record(
        "SO-PK-1", order_number="SO-1", date_created=None, amount=1234.5, gp_rate=55.5,
        status="JO IN-PROCESS", division="Signage", sales_rep="Ana", customer="Acme",
        contract_description="Billboard", memo="urgent",
    )
    store.upsert([rec])

    assert store.load_all() == [rec]
