# app/api.py
"""
app/api.py

FastAPI app factory with startup data loading and the background ERP sync.

Endpoints:
- POST /chatbot       {"question": "..."} -> {"type": "text", "data": "..."}
- POST /reset-memory  reloads the in-memory set from the durable store (single swap)
- GET  /health        record count + last sync outcome
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from src.config import get_settings
from src.sync.scheduler import SyncScheduler

from app.bootstrap import build_deps
from app.chat_service import ChatDeps, ChatService

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).resolve().parent.parent / "public"


class ChatRequest(BaseModel):
    question: str = Field(min_length=1)


class ChatResponse(BaseModel):
    type: str = "text"
    data: str


def create_app(deps: Optional[ChatDeps] = None, *, start_scheduler: bool = True) -> FastAPI:
    """
    deps: prebuilt dependencies (tests); built from environment settings when omitted.
    start_scheduler: run the ERP sync at startup and then every SYNC_INTERVAL_SECONDS.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Load durable data into memory and start the sync loop."""
        d = deps or build_deps(get_settings())
        app.state.service = ChatService(d)
        app.state.synchronizer = d.synchronizer

        scheduler = None
        if start_scheduler and d.synchronizer is not None:
            scheduler = SyncScheduler(
                d.synchronizer,
                interval_seconds=d.settings.sync_interval_seconds,
                run_immediately=d.settings.sync_on_start,
            )
            scheduler.start()

        logger.info("Chatbot ready (%d sales orders in memory)", len(d.memory))
        yield

        if scheduler is not None:
            scheduler.stop()

    app = FastAPI(
        title="ERP Sales Order Chatbot",
        description="Natural-language questions over synced ERP sales orders",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.post("/chatbot", response_model=ChatResponse)
    def chatbot(req: ChatRequest, request: Request):
        service: ChatService = request.app.state.service
        try:
            answer = service.ask(req.question)
        except Exception:
            logger.exception("Chatbot failed (question=%r)", req.question)
            return JSONResponse(status_code=500, content={"error": "Chatbot failed"})
        return ChatResponse(type="text", data=answer)

    @app.post("/reset-memory")
    def reset_memory(request: Request):
        service: ChatService = request.app.state.service
        try:
            count = service.reset_memory()
        except Exception:
            logger.exception("Memory reset failed")
            return JSONResponse(status_code=500, content={"error": "Reset failed"})
        return {"success": True, "records": count}

    @app.get("/health")
    def health(request: Request):
        service: ChatService = request.app.state.service
        sync = request.app.state.synchronizer
        report = sync.last_report if sync is not None else None
        return {
            "status": "ok",
            "records": len(service.memory),
            "syncing": bool(sync is not None and sync.is_running),
            "last_sync": report.finished_at.isoformat() if report else None,
        }

    # Static chat page, mounted last so API routes win
    if STATIC_DIR.is_dir():
        app.mount("/", StaticFiles(directory=str(STATIC_DIR), html=True), name="static")

    return app
