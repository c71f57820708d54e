# app/console.py
"""
app/console.py

Console entrypoint: ask questions about the synced sales orders from a terminal.

Main responsibilities:
- Load environment variables (.env) and Settings
- Build the shared dependencies (store, memory, engine, LLM router, synchronizer)
- Optionally run one ERP sync before the first question (SYNC_ON_START)
- Render a small session header and start ChatLoop.run()

Run:
  python -m app.console
"""

from __future__ import annotations

import logging

from dotenv import load_dotenv

from src.config import get_settings

from app.bootstrap import build_deps, configure_logging
from app.chat_loop import ChatLoop
from app.chat_service import ChatService
from app.render import render_assistant_message, render_header, render_info_panel

logger = logging.getLogger(__name__)


def main() -> None:
    load_dotenv()
    cfg = get_settings()
    configure_logging(cfg.log_level)

    deps = build_deps(cfg)
    render_header(cfg.app_title)

    if cfg.sync_on_start and deps.synchronizer is not None:
        render_assistant_message("Syncing sales orders from the ERP...")
        added = deps.synchronizer.sync()
        logger.info("Startup sync merged %d new records", added)

    render_info_panel(
        records=len(deps.memory),
        db_path=cfg.db_path,
        erp_api=cfg.erp_api_url,
        model_id=cfg.bedrock_model_id,
        region=cfg.aws_region,
    )

    ChatLoop(ChatService(deps)).run()


if __name__ == "__main__":
    main()
