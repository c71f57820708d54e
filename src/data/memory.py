"""
src/data/memory.py

In-memory working copy of the synced sales orders.

Responsibilities:
- Hold the current record set as an immutable snapshot (tuple) that request handlers can read without locking
- Merge batches by identity (update in place for known identities, append for new ones)
- Replace/clear the whole set (used at startup and by /reset-memory)

Writers build a new tuple under a lock and swap the reference (copy-on-write),
so a reader always sees either the pre-merge or the post-merge set, never a partial one.
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Iterable, Tuple

from .normalizer import SalesOrderRecord

logger = logging.getLogger(__name__)


class SalesOrderMemory:
    """
    Single-writer / multi-reader container for SalesOrderRecord instances, keyed by identity.
    """

    def __init__(self, records: Iterable[SalesOrderRecord] = ()) -> None:
        self._lock = threading.Lock()
        self._records: Tuple[SalesOrderRecord, ...] = ()
        self._index: Dict[str, int] = {}
        self.replace(records)

    def __len__(self) -> int:
        return len(self._records)

    def snapshot(self) -> Tuple[SalesOrderRecord, ...]:
        """
        Returns the current record set. The tuple is never mutated afterwards.
        """
        return self._records

    def identities(self) -> frozenset:
        return frozenset(self._index)

    def merge(self, batch: Iterable[SalesOrderRecord]) -> int:
        """
        Merges a batch into the set and returns the number of genuinely new identities.
        Records without an identity are ignored.
        """
        with self._lock:
            records = list(self._records)
            index = dict(self._index)
            added = 0
            updated = 0

            for rec in batch:
                if not rec.identity:
                    continue
                pos = index.get(rec.identity)
                if pos is None:
                    index[rec.identity] = len(records)
                    records.append(rec)
                    added += 1
                else:
                    records[pos] = rec
                    updated += 1

            self._index = index
            self._records = tuple(records)

        logger.info("Memory: merged batch (added=%d, updated=%d, total=%d)", added, updated, len(records))
        return added

    def replace(self, records: Iterable[SalesOrderRecord]) -> int:
        """
        Swaps in a whole new record set (deduplicated by identity, last occurrence wins).
        """
        ordered: Dict[str, SalesOrderRecord] = {}
        for rec in records:
            if rec.identity:
                ordered[rec.identity] = rec

        with self._lock:
            self._records = tuple(ordered.values())
            self._index = {identity: i for i, identity in enumerate(ordered)}

        logger.info("Memory: replaced record set (count=%d)", len(ordered))
        return len(ordered)

    def clear(self) -> None:
        with self._lock:
            self._records = ()
            self._index = {}
        logger.info("Memory: cleared all records")
