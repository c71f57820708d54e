"""
src/sync/synchronizer.py

Keeps the in-memory record set and the durable store current with the ERP source.

One pass (sync()):
- for each calendar year from start_year through the current year
- page through the ERP at a fixed page size until the first short page
- normalize the rows, drop rows without identity, de-duplicate the batch
- upsert into the durable store, then merge the accepted records into memory

Only records the store accepted are merged into memory, so both copies apply the same
update-in-place policy and never diverge on a failed write.
Passes are single-flight: a pass requested while another is running is skipped.
"""

from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from src.data.memory import SalesOrderMemory
from src.data.normalizer import SalesOrderRecord, normalize_records
from src.data.store import SalesOrderStore
from src.erp.client import ErpClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncReport:
    """
    Outcome of the last completed pass, exposed by the /health endpoint.
    """
    finished_at: dt.datetime
    fetched: int
    merged_new: int
    skipped_no_identity: int


class Synchronizer:
    """
    Sole writer of the sales order memory and store during normal operation.
    """

    def __init__(
        self,
        *,
        client: ErpClient,
        store: SalesOrderStore,
        memory: SalesOrderMemory,
        start_year: int = 2020,
        page_size: int = 500,
        today: Callable[[], dt.date] = dt.date.today,
    ) -> None:
        self.client = client
        self.store = store
        self.memory = memory
        self.start_year = start_year
        self.page_size = page_size
        self._today = today

        self._running = threading.Lock()
        self.last_report: Optional[SyncReport] = None

    @property
    def is_running(self) -> bool:
        return self._running.locked()

    def sync(self) -> int:
        """
        Runs one full pass and returns the number of newly merged identities.
        Returns 0 without doing anything if a pass is already in flight.
        """
        if not self._running.acquire(blocking=False):
            logger.info("Sync skipped: a previous pass is still running")
            return 0
        try:
            return self._sync_all_years()
        finally:
            self._running.release()

    def _sync_all_years(self) -> int:
        end_year = self._today().year
        fetched = merged_new = skipped = 0

        for year in range(self.start_year, end_year + 1):
            logger.info("Fetching ERP data for year %d...", year)
            rows = self.fetch_year(year)
            records = normalize_records(rows)

            batch = self._dedupe(records)
            skipped += len(records) - len(batch)

            accepted = self.store.upsert(batch.values())
            added = self.memory.merge(accepted)

            fetched += len(rows)
            merged_new += added
            logger.info(
                "Completed year %d (fetched=%d, new=%d, total_in_memory=%d)",
                year, len(rows), added, len(self.memory),
            )

        self.last_report = SyncReport(
            finished_at=dt.datetime.now(),
            fetched=fetched,
            merged_new=merged_new,
            skipped_no_identity=skipped,
        )
        logger.info("Sync finished (fetched=%d, new=%d)", fetched, merged_new)
        return merged_new

    def fetch_year(self, year: int) -> List[dict]:
        """
        Pages through one year. A short page (including an empty one, which is also
        what a failed fetch returns) is the last page.
        """
        payload = self.client.year_payload(year)
        rows: List[dict] = []
        offset = 0
        while True:
            page = self.client.fetch_page(payload, limit=self.page_size, offset=offset)
            valid = [row for row in page if isinstance(row, dict)]
            if len(valid) < len(page):
                logger.warning("Dropping %d malformed ERP rows (year=%d, offset=%d)", len(page) - len(valid), year, offset)
            rows.extend(valid)
            if len(page) < self.page_size:
                break
            offset += self.page_size
        return rows

    @staticmethod
    def _dedupe(records: List[SalesOrderRecord]) -> Dict[str, SalesOrderRecord]:
        """
        Keys the batch by identity (last occurrence wins) and drops rows without one.
        """
        batch: Dict[str, SalesOrderRecord] = {}
        for rec in records:
            if not rec.identity:
                logger.warning("Dropping ERP row without identity (order_number=%s)", rec.order_number)
                continue
            batch[rec.identity] = rec
        return batch
