"""
tests/test_synchronizer.py

Synchronization against a fake paginated ERP:
- paging stops on the first short page (including an empty one)
- every year from start_year to the current year is fetched
- re-syncing the same pages does not duplicate anything
- memory and store stay consistent when the store rejects a record
- a store connection failure or a malformed row does not cut the pass short
- passes are single-flight; the scheduler survives a failing pass
"""

from __future__ import annotations

import datetime as dt
import sqlite3
import threading

from src.data.memory import SalesOrderMemory
from src.data.store import SalesOrderStore
from src.sync.scheduler import SyncScheduler
from src.sync.synchronizer import Synchronizer

from conftest import FakeErpClient, erp_row


def _synchronizer(client, store, memory=None, **kwargs) -> Synchronizer:
    return Synchronizer(
        client=client,
        store=store,
        memory=memory if memory is not None else SalesOrderMemory(),
        start_year=kwargs.pop("start_year", 2023),
        page_size=kwargs.pop("page_size", 2),
        today=lambda: dt.date(2024, 6, 1),
        **kwargs,
    )


def test_pages_until_short_page_for_every_year(store):
    client = FakeErpClient({
        2023: [erp_row(1), erp_row(2), erp_row(3)],
        2024: [erp_row(4), erp_row(5)],
    })
    sync = _synchronizer(client, store)

    added = sync.sync()

    assert added == 5
    assert client.calls == [
        (2023, 2, 0), (2023, 2, 2),            # 2 rows, then a short page of 1
        (2024, 2, 0), (2024, 2, 2),            # full page, then an empty page
    ]
    assert len(sync.memory) == 5
    assert store.count() == 5


def test_resync_of_same_pages_is_idempotent(store):
    client = FakeErpClient({2023: [erp_row(1), erp_row(2)], 2024: [erp_row(3)]})
    sync = _synchronizer(client, store)

    assert sync.sync() == 3
    assert sync.sync() == 0
    assert len(sync.memory) == 3
    assert store.count() == 3


def test_changed_upstream_values_update_in_place(store):
    client = FakeErpClient({2024: [erp_row(1, TotalAmount_TransH="100")]})
    sync = _synchronizer(client, store, start_year=2024)
    sync.sync()

    client.rows_by_year[2024] = [erp_row(1, TotalAmount_TransH="250", Status_TransH="PENDING BILLING")]
    assert sync.sync() == 0

    (rec,) = sync.memory.snapshot()
    assert rec.amount == 250.0
    assert rec.status == "PENDING BILLING"
    assert store.load_all()[0].amount == 250.0


def test_empty_year_does_not_stop_later_years(store):
    # A failed fetch is reported by the client as an empty page
    client = FakeErpClient({2024: [erp_row(9)]})
    sync = _synchronizer(client, store)

    assert sync.sync() == 1
    assert (2023, 2, 0) in client.calls
    assert [r.identity for r in sync.memory.snapshot()] == ["9"]


def test_rows_without_identity_are_skipped(store):
    client = FakeErpClient({2024: [erp_row(None), erp_row(1)]})
    sync = _synchronizer(client, store, start_year=2024, page_size=10)

    assert sync.sync() == 1
    assert sync.last_report.skipped_no_identity == 1
    assert store.count() == 1


def test_memory_only_receives_records_the_store_accepted(tmp_path):
    class FlakyStore(SalesOrderStore):
        def upsert(self, records):
            return super().upsert([r for r in records if r.identity != "2"])

    store = FlakyStore(tmp_path / "flaky.db")
    store.init_schema()
    client = FakeErpClient({2024: [erp_row(1), erp_row(2), erp_row(3)]})
    sync = _synchronizer(client, store, start_year=2024, page_size=10)

    assert sync.sync() == 2
    assert sync.memory.identities() == frozenset(r.identity for r in store.load_all())


def test_sync_is_single_flight(store):
    client = FakeErpClient({2024: [erp_row(1)]})
    sync = _synchronizer(client, store)

    # Simulate a pass already in flight
    sync._running.acquire()
    try:
        assert sync.is_running
        assert sync.sync() == 0
        assert client.calls == []
    finally:
        sync._running.release()

    assert sync.sync() == 1


def test_scheduler_runs_immediately_and_stops():
    ran = threading.Event()

    class OneShot:
        def sync(self):
            ran.set()
            return 0

    scheduler = SyncScheduler(OneShot(), interval_seconds=60)
    scheduler.start()
    try:
        assert ran.wait(5)
    finally:
        scheduler.stop()
    assert not scheduler.is_alive


def test_scheduler_survives_failing_pass():
    class Broken:
        def sync(self):
            raise RuntimeError("database is locked")

    assert SyncScheduler(Broken()).run_once() == 0


def test_store_connection_failure_does_not_abort_the_pass(tmp_path):
    class LockedOnceStore(SalesOrderStore):
        fail_next = False

        def _connect(self):
            if self.fail_next:
                self.fail_next = False
                raise sqlite3.OperationalError("database is locked")
            return super()._connect()

    store = LockedOnceStore(tmp_path / "locked.db")
    store.init_schema()
    store.fail_next = True
    client = FakeErpClient({2023: [erp_row(1)], 2024: [erp_row(2)]})
    sync = _synchronizer(client, store, page_size=10)

    # 2023 is lost to the locked database, 2024 still goes through
    assert sync.sync() == 1
    assert (2024, 10, 0) in client.calls
    assert sync.memory.identities() == frozenset({"2"})
    assert store.count() == 1
    assert sync.last_report is not None
    assert sync.last_report.fetched == 2


def test_malformed_row_on_a_full_page_does_not_end_paging(store):
    client = FakeErpClient({2024: [erp_row(1), "garbage", erp_row(2)]})
    sync = _synchronizer(client, store, start_year=2024)

    assert sync.sync() == 2
    assert client.calls == [(2024, 2, 0), (2024, 2, 2)]
    assert sync.memory.identities() == frozenset({"1", "2"})
