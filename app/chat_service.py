# app/chat_service.py
"""
app/chat_service.py

Question answering orchestration shared by the HTTP API and the console.

For one question it:
- asks the LLM translator for a FilterDescriptor (defaults to "general" on any failure)
- executes it deterministically with the query engine on one memory snapshot
- renders the answer locally, or asks the LLM when the engine says so ("general" / "fallback")

It also owns the "reset memory" operation: swap the in-memory set for a fresh load from the durable store.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from src.config import Settings
from src.data.memory import SalesOrderMemory
from src.data.store import SalesOrderStore
from src.engine.query_engine import QueryEngine
from src.engine.response import ResponseBuilder
from src.llm.router import LLMRouter
from src.sync.synchronizer import Synchronizer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChatDeps:
    """
    Keeps dependencies together to simplify constructors and keep initialization in one place (bootstrap.py).
    """
    settings: Settings
    router: LLMRouter
    engine: QueryEngine
    memory: SalesOrderMemory
    store: SalesOrderStore
    synchronizer: Optional[Synchronizer] = None


class ChatService:

    def __init__(self, deps: ChatDeps) -> None:
        self.deps = deps
        self.router = deps.router
        self.engine = deps.engine
        self.memory = deps.memory
        self.store = deps.store

    def ask(self, question: str) -> str:
        """
        Answers one question. LLM answer errors propagate to the caller (HTTP layer turns them into a 500).
        """
        descriptor = self.router.build_descriptor(question)
        logger.info(
            "Descriptor intent=%s year=%s date=%s customer=%s salesRep=%s status=%s topN=%s",
            descriptor.intent, descriptor.year, descriptor.date,
            descriptor.customer, descriptor.sales_rep, descriptor.status, descriptor.top_n,
        )

        result = self.engine.execute(descriptor)

        if result.intent == "general":
            return self.router.answer_general(question)
        if result.needs_llm:
            return self.router.answer_with_context(question, result.context or [])

        return ResponseBuilder.build_message(result)

    def reset_memory(self) -> int:
        """
        Replaces the in-memory working copy with the durable store contents in one swap.
        If the reload fails, memory keeps its current records and the error propagates.
        Returns the number of records in memory afterwards.
        """
        count = self.memory.replace(self.store.load_all())
        logger.info("Memory reset: reloaded %d records from store", count)
        return count
