"""
tests/conftest.py

Shared fixtures and fakes:
- make_record(): builds normalized SalesOrderRecord instances with sensible defaults
- FakeRouter: stands in for the Bedrock-backed LLMRouter (no AWS calls)
- FakeErpClient: serves canned pages per year, like the paginated ERP endpoint
"""

from __future__ import annotations

from typing import Dict, List, Optional

import pytest

from src.config import Settings
from src.data.memory import SalesOrderMemory
from src.data.normalizer import SalesOrderRecord, normalize_record
from src.data.store import SalesOrderStore
from src.engine.query_plan import FilterDescriptor, validate_descriptor


def make_record(identity, **fields) -> SalesOrderRecord:
    return normalize_record({"identity": identity, **fields})


def erp_row(so_pk, **fields) -> dict:
    """
    Raw upstream row, with upstream field names.
    """
    row = {
        "so_pk": so_pk,
        "so_upk": f"SO-{so_pk}",
        "DateCreated_TransH": "2024-03-01",
        "TotalAmount_TransH": "100.00",
        "gpRate": "50%",
        "Status_TransH": "BILLED",
        "Name_Dept": "Printing",
        "Name_Empl": "Ana Reyes",
        "Name_Cust": "Acme",
    }
    row.update(fields)
    return row


class FakeRouter:
    """
    Returns a fixed descriptor and records every LLM answer request.
    """

    def __init__(self, descriptor: Optional[dict] = None, *, fail_answers: bool = False) -> None:
        self.descriptor = validate_descriptor(descriptor or {})
        self.fail_answers = fail_answers
        self.general_calls: List[str] = []
        self.context_calls: List[tuple] = []

    def build_descriptor(self, question: str) -> FilterDescriptor:
        return self.descriptor

    def answer_general(self, question: str) -> str:
        if self.fail_answers:
            raise RuntimeError("bedrock is down")
        self.general_calls.append(question)
        return f"general answer to: {question}"

    def answer_with_context(self, question: str, records: List[dict]) -> str:
        if self.fail_answers:
            raise RuntimeError("bedrock is down")
        self.context_calls.append((question, records))
        return f"context answer ({len(records)} records)"


class FakeErpClient:
    """
    Serves rows_by_year[year] in pages; records every (year, limit, offset) request.
    """

    def __init__(self, rows_by_year: Dict[int, List[dict]]) -> None:
        self.rows_by_year = rows_by_year
        self.calls: List[tuple] = []

    def year_payload(self, year: int) -> dict:
        return {"year": year}

    def fetch_page(self, payload: dict, *, limit: int, offset: int) -> List[dict]:
        year = payload["year"]
        self.calls.append((year, limit, offset))
        rows = self.rows_by_year.get(year, [])
        return rows[offset: offset + limit]


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        app_title="Test Chatbot",
        erp_api_url="http://erp.test/api/get_sales_orders",
        erp_token="token",
        empl_pk="empl",
        prepared_by="preparer",
        location_pk="loc",
        db_path=str(tmp_path / "sales_orders.db"),
        bedrock_model_id="test-model",
        aws_region="eu-central-1",
        aws_profile=None,
    )


@pytest.fixture
def store(settings) -> SalesOrderStore:
    s = SalesOrderStore(settings.db_path)
    s.init_schema()
    return s


@pytest.fixture
def acme_records() -> List[SalesOrderRecord]:
    # The two-record scenario used throughout the engine/renderer tests
    return [
        make_record(1, amount=1000, gp_rate=60, customer="Acme", date_created="2024-03-01", status="BILLED"),
        make_record(2, amount=500, gp_rate=40, customer="Acme", date_created="2024-03-02", status="BILLED"),
    ]


@pytest.fixture
def acme_memory(acme_records) -> SalesOrderMemory:
    return SalesOrderMemory(acme_records)
