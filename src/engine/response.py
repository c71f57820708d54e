"""
src/engine/response.py

Turns an ExecutionResult into the text answer sent back to the caller.

Formatting rules:
- currency: peso symbol, thousands separators, two decimals (₱1,500.00)
- percentages: two decimals and a trailing "%" (60.00%)
- list/sample rows: "name: value" pairs joined by " - ", N/A for missing values
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from src.data.normalizer import SalesOrderRecord
from src.data.schema import DEFAULT_LIST_FIELDS, resolve_field

from .query_engine import ExecutionResult

logger = logging.getLogger(__name__)

NO_MATCH = "No sales orders matching your query."
NO_SAMPLE = "No matching sales order found."
NOT_AVAILABLE = "N/A"


class ResponseBuilder:

    @staticmethod
    def format_peso(amount: float) -> str:
        return f"₱{float(amount):,.2f}"

    @staticmethod
    def format_percent(value: float) -> str:
        return f"{float(value):.2f}%"

    @classmethod
    def format_value(cls, field_name: Optional[str], value: Any) -> str:
        if value is None or value == "":
            return NOT_AVAILABLE
        if field_name == "amount":
            return cls.format_peso(value)
        if field_name == "gp_rate":
            return cls.format_percent(value)
        return str(value)

    @classmethod
    def project_fields(cls, record: SalesOrderRecord, fields: Sequence[str] = ()) -> str:
        """
        Renders one record on the requested fields (in the requested order),
        or on the default so_number / gp_rate / amount triple.
        """
        names = list(fields) or DEFAULT_LIST_FIELDS
        parts = []
        for name in names:
            canonical = resolve_field(name)
            value = getattr(record, canonical) if canonical else None
            parts.append(f"{name}: {cls.format_value(canonical, value)}")
        return " - ".join(parts)

    @classmethod
    def build_message(cls, result: ExecutionResult) -> str:
        """
        Builds the answer for every intent the engine resolves locally.
        "general" and "fallback" results are answered by the LLM, not here.
        """
        intent = result.intent
        d = result.descriptor

        if intent == "count":
            c = result.count
            return (
                f"Total Sales Orders: {c.order_count}\n"
                f"Total Amount: {cls.format_peso(c.total_amount)}\n"
                f"Highest GP Rate: {cls.format_percent(c.highest_gp)}"
            )

        if intent == "list":
            if not result.records:
                return NO_MATCH
            return "\n".join(cls.project_fields(r, d.fields) for r in result.records)

        if intent == "sample":
            if not result.records:
                return NO_SAMPLE
            return cls.project_fields(result.records[0], d.fields)

        if result.label:
            if not result.ranked:
                return NO_MATCH
            return "\n".join(
                f"Top {g.rank} {result.label}: {g.name} - Total Amount: {cls.format_peso(g.total_amount)}"
                for g in result.ranked
            )

        if intent == "monthlyTotals":
            if not result.monthly:
                return f"No valid sales orders found for {d.sales_rep} in {d.year}"
            return "\n".join(f"{m.month}: {cls.format_peso(m.total_amount)}" for m in result.monthly)

        raise ValueError(f"Intent {intent!r} must be answered by the LLM")
