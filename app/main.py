# app/main.py
"""
app/main.py

HTTP entrypoint for the ERP sales order chatbot.

Main responsibilities:
- Load environment variables (.env)
- Load Settings from src/config.py
- Configure logging
- Build the FastAPI app (app/api.py) and serve it with uvicorn

On startup the app loads the durable store into memory, then syncs with the ERP
once and every SYNC_INTERVAL_SECONDS afterwards.

Run:
  python -m app.main
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from src.config import get_settings

from app.api import create_app
from app.bootstrap import configure_logging

logger = logging.getLogger(__name__)


def main() -> None:
    load_dotenv()

    # Define environment variables as attributes of a Settings dataclass (see src/config.py)
    cfg = get_settings()
    configure_logging(cfg.log_level)

    app = create_app()
    logger.info("Chatbot running on http://%s:%d", cfg.host, cfg.port)
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    main()
