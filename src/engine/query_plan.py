"""
src/engine/query_plan.py

Defines the structured "FilterDescriptor" used to represent a user request.
A FilterDescriptor is produced by:
- the LLM translator (Bedrock) from a natural-language question

The LLM output is untrusted: validate_descriptor() turns any object into a valid descriptor,
filling every recognized field with its default and classifying a missing intent as "general".
An unrecognized intent string is kept, and the engine answers it through the LLM with data context.
The descriptor is then executed on the sales orders by query_engine.py.
"""

from __future__ import annotations

import logging
import re
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)

# Recognized intents -- this is the main signal for the engine to decide how to aggregate and how to answer.
Intent = Literal[
    "count", "list", "sample",
    "topCustomers", "topDivision", "topSales",
    "monthlyTotals", "general",
]
INTENTS = frozenset(Intent.__args__)  # type: ignore[attr-defined]

# Operators understood by the gp threshold filter. Others are kept but pass every record.
GP_OPERATORS = (">", "<", ">=", "<=", "=")

_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_YEAR = re.compile(r"^\d{4}$")


def _blank_to_none(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class GpThreshold(BaseModel):
    """
    Numeric comparison on gp_rate, e.g. {"operator": ">", "value": 55}.
    """
    operator: str = "="
    value: float

    @field_validator("operator", mode="before")
    @classmethod
    def _operator(cls, v: Any) -> str:
        return str(v).strip() if v is not None else "="

    @field_validator("value", mode="before")
    @classmethod
    def _value(cls, v: Any) -> float:
        if v is None or isinstance(v, bool):
            raise ValueError("gpThreshold.value is required")
        if isinstance(v, (int, float)):
            return float(v)
        # Same stripping rule as gp_rate normalization ("55%" -> 55.0)
        return float(str(v).replace("%", "").replace(",", "").strip())


class FilterDescriptor(BaseModel):
    """
    Main structured request.

    - intent:
        count: order count, total amount, highest gp rate
        list / sample: every / the first matching order, projected on `fields`
        topCustomers / topDivision / topSales: amount summed per customer / division / sales rep, top N
        monthlyTotals: monthly amount time series for one sales rep in one year
        general: not a sales-order question, answered by the LLM directly
        anything else: answered by the LLM with the filtered records as context

    - date / year / gp_threshold / customer / sales_rep / status: filters (ANDed)
    - top_n: number of groups for the top* intents (engine default 1)
    - fields: projection for list/sample
    """
    model_config = ConfigDict(populate_by_name=True)

    intent: str = "general"
    date: Optional[str] = None
    year: Optional[str] = None
    gp_threshold: Optional[GpThreshold] = Field(default=None, alias="gpThreshold")
    customer: Optional[str] = None
    sales_rep: Optional[str] = Field(default=None, alias="salesRep")
    status: Optional[str] = None
    top_n: Optional[int] = Field(default=None, alias="topN")
    fields: List[str] = Field(default_factory=list)

    @field_validator("intent", mode="before")
    @classmethod
    def _intent(cls, v: Any) -> str:
        if not isinstance(v, str) or not v.strip():
            return "general"
        intent = v.strip()
        if intent not in INTENTS:
            # Kept as-is: the engine answers it through the LLM with the filtered records as context
            logger.info("Unrecognized intent %r", intent)
        return intent

    @field_validator("date", mode="before")
    @classmethod
    def _date(cls, v: Any) -> Optional[str]:
        text = _blank_to_none(v)
        if text is None:
            return None
        m = _DATE.match(text)
        return m.group(0) if m else None

    @field_validator("year", mode="before")
    @classmethod
    def _year(cls, v: Any) -> Optional[str]:
        if isinstance(v, bool):
            return None
        text = _blank_to_none(v)
        if text is None:
            return None
        return text if _YEAR.match(text) else None

    @field_validator("gp_threshold", mode="before")
    @classmethod
    def _gp_threshold(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            return None
        try:
            return GpThreshold.model_validate(v)
        except ValidationError:
            return None

    @field_validator("customer", "sales_rep", "status", mode="before")
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        if isinstance(v, (dict, list)):
            return None
        return _blank_to_none(v)

    @field_validator("top_n", mode="before")
    @classmethod
    def _top_n(cls, v: Any) -> Optional[int]:
        if v is None or isinstance(v, bool):
            return None
        try:
            n = int(float(v))
        except (TypeError, ValueError):
            return None
        return n if n > 0 else None

    @field_validator("fields", mode="before")
    @classmethod
    def _fields(cls, v: Any) -> List[str]:
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            return []
        return [str(f).strip() for f in v if f is not None and str(f).strip()]


def validate_descriptor(data: Any) -> FilterDescriptor:
    """
    Boundary validation for the translator output. Never raises.
    """
    if not isinstance(data, dict):
        return FilterDescriptor()
    try:
        return FilterDescriptor.model_validate(data)
    except ValidationError as e:
        logger.warning("Descriptor validation failed, using defaults: %s", e)
        return FilterDescriptor()
