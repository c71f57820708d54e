# src/config.py

"""
src/config.py

Centralized configuration via environment variables.
Used to keep config in one place so the service is easy to run in different environments
(local laptop with a .env file, container with injected variables).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Settings:
    """
    Settings container (dataclass) loaded from environment variables.
    The from_env class method is responsible for parsing environment variables and constructing the Settings object.
    """
    app_title: str

    # ERP source
    erp_api_url: str
    erp_token: Optional[str]
    empl_pk: str
    prepared_by: str
    location_pk: str

    # Durable store (sqlite file)
    db_path: str

    # Bedrock
    bedrock_model_id: str
    aws_region: str
    aws_profile: Optional[str]

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 3000

    # Synchronization
    sync_interval_seconds: int = 60
    sync_start_year: int = 2020
    erp_page_size: int = 500
    sync_on_start: bool = True

    # Deadlines for external round-trips
    erp_timeout_seconds: int = 30
    llm_timeout_seconds: int = 60

    # Max number of records passed to the LLM as context in the fallback path
    llm_context_limit: int = 200

    log_level: str = "INFO"

    @staticmethod
    def _get_int(name: str, default: int) -> int:
        """
        Small helper to safely parse integer env vars.
        """
        raw = os.getenv(name)
        if raw is None:
            return default
        try:
            return int(raw)
        except ValueError:
            return default

    @staticmethod
    def _get_bool(name: str, default: bool) -> bool:
        """
        Small helper to safely parse boolean env vars.
        """
        raw = os.getenv(name)
        if raw is None:
            return default
        return raw.strip().lower() in ("true", "1", "yes", "y", "on")

    @classmethod
    def from_env(cls) -> Settings:
        """
        Method used to construct Settings from environment variables.
        """
        return cls(
            app_title=os.getenv("APP_TITLE", "ERP Sales Order Chatbot"),

            erp_api_url=os.getenv("ERP_API", "http://localhost:8080/api/get_sales_orders"),
            erp_token=os.getenv("ERP_TOKEN"),
            empl_pk=os.getenv("EMPL_PK", "default_empl_pk"),
            prepared_by=os.getenv("PREPARED_BY", "default_prepared_by"),
            location_pk=os.getenv("LOCATION_PK", "default_location_pk"),

            db_path=os.getenv("DB_PATH", "sales_orders.db"),

            bedrock_model_id=os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-5-sonnet-20240620-v1:0"),
            aws_region=os.getenv("AWS_REGION", "eu-central-1"),
            aws_profile=os.getenv("AWS_PROFILE"),

            host=os.getenv("HOST", "0.0.0.0"),
            port=cls._get_int("PORT", 3000),

            sync_interval_seconds=cls._get_int("SYNC_INTERVAL_SECONDS", 60),
            sync_start_year=cls._get_int("SYNC_START_YEAR", 2020),
            erp_page_size=cls._get_int("ERP_PAGE_SIZE", 500),
            sync_on_start=cls._get_bool("SYNC_ON_START", True),

            erp_timeout_seconds=cls._get_int("ERP_TIMEOUT_SECONDS", 30),
            llm_timeout_seconds=cls._get_int("LLM_TIMEOUT_SECONDS", 60),
            llm_context_limit=cls._get_int("LLM_CONTEXT_LIMIT", 200),

            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
        )


def get_settings() -> Settings:
    """
    Single entry point used by the app.
    """
    return Settings.from_env()
