"""
src/data/schema.py

Defines the upstream ERP sales-order field names and their mapping to the canonical record fields.
Keeping the mapping here means the normalizer, the store and the renderer all agree on:
- which upstream key feeds which canonical field
- which fields default to "Unknown" (display) vs "" (search)
- which aliases the LLM may use when it asks for specific fields
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List


# Canonical field -> upstream ERP key
UPSTREAM_KEYS: Dict[str, str] = {
    "identity": "so_pk",
    "order_number": "so_upk",
    "date_created": "DateCreated_TransH",
    "amount": "TotalAmount_TransH",
    "gp_rate": "gpRate",
    "status": "Status_TransH",
    "division": "Name_Dept",
    "sales_rep": "Name_Empl",
    "customer": "Name_Cust",
    "contract_description": "ContractDescription_TransH",
    "memo": "Memo_TransH",
}

# Canonical column order, used for DataFrames and the sqlite table
RECORD_COLUMNS: List[str] = list(UPSTREAM_KEYS.keys())

NUMERIC_FIELDS: List[str] = ["amount", "gp_rate"]

# Human-facing fields: "Unknown" when absent
DISPLAY_FIELDS: List[str] = ["order_number", "status", "division", "sales_rep", "customer"]

# Free-text search fields: "" when absent
SEARCH_FIELDS: List[str] = ["contract_description", "memo"]

UNKNOWN = "Unknown"

# Names the LLM (or a user) may put in descriptor.fields, resolved to canonical fields.
# Canonical names resolve to themselves, upstream keys resolve to their canonical field.
FIELD_ALIASES: Dict[str, str] = {
    **{name: name for name in RECORD_COLUMNS},
    **{upstream: canonical for canonical, upstream in UPSTREAM_KEYS.items()},
    "so_number": "order_number",
    "orderNumber": "order_number",
    "gpRate": "gp_rate",
    "gp": "gp_rate",
    "date": "date_created",
    "dateCreated": "date_created",
    "salesRep": "sales_rep",
    "contractDescription": "contract_description",
}

# Default projection when the descriptor does not ask for specific fields
DEFAULT_LIST_FIELDS: List[str] = ["so_number", "gp_rate", "amount"]

# Statuses counted by the monthly totals time series ("billable or in progress")
BILLABLE_STATUSES = frozenset({
    "BILLED",
    "PARTIALLYBILLED/PARTIALLY DELIVERED",
    "PARTIALLY DELIVERED",
    "PENDING BILLING",
    "PENDING DELIVERY",
    "JO IN-PROCESS",
})


@dataclass(frozen=True)
class SalesOrderSchema:
    """
    Class that contains the structure of an upstream sales order. Easily accessible.
    Used mainly when normalizing raw ERP rows and when creating the sqlite table.
    """
    upstream_keys: Dict[str, str]
    columns: List[str]
    numeric_fields: List[str]
    display_fields: List[str]
    search_fields: List[str]

    @classmethod
    def erp_default(cls) -> "SalesOrderSchema":
        return cls(
            upstream_keys=UPSTREAM_KEYS,
            columns=RECORD_COLUMNS,
            numeric_fields=NUMERIC_FIELDS,
            display_fields=DISPLAY_FIELDS,
            search_fields=SEARCH_FIELDS,
        )


def resolve_field(name: str) -> str | None:
    """
    Maps a requested field name to its canonical record field, or None if it is unknown.
    """
    return FIELD_ALIASES.get(name.strip()) if name else None
