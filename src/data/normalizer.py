"""
src/data/normalizer.py

Converts raw, loosely-typed ERP sales-order rows into the canonical SalesOrderRecord.
Moreover, it:
- never fails on malformed input (defaults absorb it)
- coerces numeric fields deterministically ("55.5%" -> 55.5, "1,200.00" -> 1200.0)
- is idempotent: normalizing an already-normalized record yields the same record

All derived fields (division, sales_rep, status, amount, gp_rate) are computed here once,
the query engine never re-derives them.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict

from .schema import UNKNOWN, SalesOrderSchema

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


class SalesOrderRecord(BaseModel):
    """
    Canonical sales order. Immutable so snapshots can be shared between threads safely.
    """
    model_config = ConfigDict(frozen=True)

    identity: str
    order_number: str = UNKNOWN
    date_created: Optional[str] = None
    amount: float = 0.0
    gp_rate: float = 0.0
    status: str = UNKNOWN
    division: str = UNKNOWN
    sales_rep: str = UNKNOWN
    customer: str = UNKNOWN
    contract_description: str = ""
    memo: str = ""


def to_number(value: Any) -> float:
    """
    String-strip-then-parse coercion used for amount and gp_rate.
    Removes "%" and "," before parsing; anything non-numeric, non-finite or negative becomes 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = str(value).replace("%", "").replace(",", "").strip()
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def to_iso_date(value: Any) -> Optional[str]:
    """
    Keeps only the calendar date part (YYYY-MM-DD) of an ISO date/datetime string.
    Non-ISO strings are kept as-is (trimmed) so they still show up in listings; blanks become None.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    m = _ISO_DATE.match(text)
    return m.group(0) if m else text


def _to_identity(value: Any) -> str:
    if value is None:
        return ""
    # ERP primary keys sometimes arrive as floats after a JSON round-trip (123.0)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _to_text(value: Any, default: str) -> str:
    if value is None:
        return default
    text = str(value).strip()
    return text or default


class SalesOrderNormalizer:
    """
    Class defined to normalize upstream ERP rows into SalesOrderRecord instances.
    We initialize the class with the schema attribute, taken from SalesOrderSchema,
    so that the field mapping stays separate and reusable.
    """

    def __init__(self, schema: SalesOrderSchema | None = None) -> None:
        self.schema = schema or SalesOrderSchema.erp_default()

    def normalize(self, raw: Mapping[str, Any] | SalesOrderRecord) -> SalesOrderRecord:
        """
        Normalizes one row. Accepts a raw upstream mapping, a canonical mapping
        or an already-normalized record (which makes the function idempotent).
        """
        if isinstance(raw, SalesOrderRecord):
            raw = raw.model_dump()
        if not isinstance(raw, Mapping):
            raw = {}

        values = {name: self._pick(raw, name) for name in self.schema.columns}

        data: dict = {
            "identity": _to_identity(values["identity"]),
            "date_created": to_iso_date(values["date_created"]),
        }
        for name in self.schema.numeric_fields:
            data[name] = to_number(values[name])
        for name in self.schema.display_fields:
            data[name] = _to_text(values[name], UNKNOWN)
        for name in self.schema.search_fields:
            data[name] = _to_text(values[name], "")

        return SalesOrderRecord(**data)

    def normalize_many(self, rows: Iterable[Mapping[str, Any]]) -> List[SalesOrderRecord]:
        return [self.normalize(r) for r in rows]

    def _pick(self, raw: Mapping[str, Any], name: str) -> Any:
        """
        Canonical key first (already-normalized input), upstream key otherwise.
        """
        if name in raw:
            return raw[name]
        return raw.get(self.schema.upstream_keys[name])


_default_normalizer = SalesOrderNormalizer()


def normalize_record(raw: Mapping[str, Any] | SalesOrderRecord) -> SalesOrderRecord:
    """
    Module-level shortcut used by the synchronizer and tests.
    """
    return _default_normalizer.normalize(raw)


def normalize_records(rows: Iterable[Mapping[str, Any]]) -> List[SalesOrderRecord]:
    return _default_normalizer.normalize_many(rows)
