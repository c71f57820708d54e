"""
src/data/store.py

Durable mirror of the synced sales orders (sqlite).

The table is keyed by identity and written with update-or-insert semantics,
so re-ingesting the same upstream order never creates a duplicate row.
It is the authoritative copy across process restarts: at startup its rows are
loaded back into the in-memory set.
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterable, List

from .normalizer import SalesOrderRecord
from .schema import RECORD_COLUMNS

logger = logging.getLogger(__name__)

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS sales_orders (
    identity TEXT PRIMARY KEY,
    order_number TEXT NOT NULL,
    date_created TEXT,
    amount REAL NOT NULL DEFAULT 0,
    gp_rate REAL NOT NULL DEFAULT 0,
    status TEXT NOT NULL,
    division TEXT NOT NULL,
    sales_rep TEXT NOT NULL,
    customer TEXT NOT NULL,
    contract_description TEXT NOT NULL DEFAULT '',
    memo TEXT NOT NULL DEFAULT '',
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
)
"""

_UPDATABLE = [c for c in RECORD_COLUMNS if c != "identity"]

_UPSERT = (
    f"INSERT INTO sales_orders ({', '.join(RECORD_COLUMNS)}) "
    f"VALUES ({', '.join('?' for _ in RECORD_COLUMNS)}) "
    "ON CONFLICT(identity) DO UPDATE SET "
    + ", ".join(f"{c} = excluded.{c}" for c in _UPDATABLE)
    + ", updated_at = CURRENT_TIMESTAMP"
)

_SELECT_ALL = f"SELECT {', '.join(RECORD_COLUMNS)} FROM sales_orders ORDER BY rowid"


class SalesOrderStore:
    """
    sqlite-backed sales order table. A connection is opened per operation,
    so the store can be used from the scheduler thread and request threads alike.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    def init_schema(self) -> None:
        with closing(self._connect()) as conn, conn:
            conn.execute(_CREATE_TABLE)
        logger.info("Store: schema ready (%s)", self.db_path)

    def upsert(self, records: Iterable[SalesOrderRecord]) -> List[SalesOrderRecord]:
        """
        Update-or-insert keyed by identity. Each record is written on its own;
        a failing record is logged and left out of the returned list of accepted records.
        A connection-level failure ends the batch; the records committed before it are still returned.
        """
        accepted: List[SalesOrderRecord] = []
        try:
            with closing(self._connect()) as conn:
                for rec in records:
                    row = rec.model_dump()
                    try:
                        with conn:
                            conn.execute(_UPSERT, [row[c] for c in RECORD_COLUMNS])
                    except sqlite3.Error:
                        logger.exception("Store: upsert failed (identity=%s)", rec.identity)
                        continue
                    accepted.append(rec)
        except sqlite3.Error:
            logger.exception("Store: batch upsert aborted after %d records", len(accepted))

        logger.info("Store: upserted %d records", len(accepted))
        return accepted

    def load_all(self) -> List[SalesOrderRecord]:
        with closing(self._connect()) as conn:
            rows = conn.execute(_SELECT_ALL).fetchall()
        records = [SalesOrderRecord(**dict(r)) for r in rows]
        logger.info("Store: loaded %d records", len(records))
        return records

    def count(self) -> int:
        with closing(self._connect()) as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM sales_orders").fetchone()
        return int(n)
