# app/bootstrap.py
"""
app/bootstrap.py

Builds the object graph shared by both entrypoints (HTTP server and console):
store -> memory (preloaded from the store) -> engine, ERP client -> synchronizer, LLM router.
"""

from __future__ import annotations

import logging

from src.config import Settings
from src.data.memory import SalesOrderMemory
from src.data.store import SalesOrderStore
from src.engine.query_engine import QueryEngine
from src.erp.client import ErpClient
from src.llm.router import LLMRouter
from src.sync.synchronizer import Synchronizer

from app.chat_service import ChatDeps

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """
    Configure basic logging for the app.

    Logs go to stderr (standard behavior). In container environments stdout/stderr
    are shipped by the platform logging pipeline.
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def build_deps(cfg: Settings) -> ChatDeps:
    store = SalesOrderStore(cfg.db_path)
    store.init_schema()

    # The durable store is authoritative across restarts
    memory = SalesOrderMemory(store.load_all())
    logger.info("Loaded %d sales orders from %s", len(memory), cfg.db_path)

    synchronizer = Synchronizer(
        client=ErpClient.from_settings(cfg),
        store=store,
        memory=memory,
        start_year=cfg.sync_start_year,
        page_size=cfg.erp_page_size,
    )

    return ChatDeps(
        settings=cfg,
        router=LLMRouter.from_settings(cfg),
        engine=QueryEngine(memory, context_limit=cfg.llm_context_limit),
        memory=memory,
        store=store,
        synchronizer=synchronizer,
    )
