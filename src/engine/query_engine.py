"""
src/engine/query_engine.py

Executes a FilterDescriptor on the in-memory sales orders.

The records are expected to be normalized by src/data/normalizer.py:
- snake_case canonical fields
- amount / gp_rate already numeric
- date_created as YYYY-MM-DD (or None)

Execution is done in two steps on a pandas DataFrame built from one memory snapshot:
1) predicate filtering (all supplied constraints ANDed, in a fixed order)
2) intent dispatch (count, list, sample, top groups, monthly totals, or LLM fallback)

The output is an ExecutionResult; turning it into text is the job of response.py.
"""

from __future__ import annotations

import logging
import operator
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from src.data.memory import SalesOrderMemory
from src.data.normalizer import SalesOrderRecord
from src.data.schema import BILLABLE_STATUSES, RECORD_COLUMNS

from .query_plan import FilterDescriptor

logger = logging.getLogger(__name__)

_GP_OPERATORS: Dict[str, Callable[[Any, Any], Any]] = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
    "=": operator.eq,
}

# top* intent -> (grouping column, label used in the answer)
RANKED_INTENTS: Dict[str, Tuple[str, str]] = {
    "topCustomers": ("customer", "Customer"),
    "topDivision": ("division", "Division"),
    "topSales": ("sales_rep", "Sales Personnel"),
}


@dataclass(frozen=True)
class CountSummary:
    order_count: int
    total_amount: float
    highest_gp: float


@dataclass(frozen=True)
class RankedGroup:
    rank: int
    name: str
    total_amount: float


@dataclass(frozen=True)
class MonthlyTotal:
    month: str  # YYYY-MM
    total_amount: float


@dataclass(frozen=True)
class ExecutionResult:
    """
    intent: the intent that was actually executed ("fallback" when the LLM has to answer with data context)
    subset_df: the row-level subset after applying the filters
    needs_llm: True for "general" and "fallback"; the caller must ask the LLM
    context: records handed to the LLM in the fallback path (None for "general")
    """
    intent: str
    descriptor: FilterDescriptor
    subset_df: pd.DataFrame
    records: Tuple[SalesOrderRecord, ...] = ()
    count: Optional[CountSummary] = None
    ranked: Tuple[RankedGroup, ...] = ()
    monthly: Tuple[MonthlyTotal, ...] = ()
    needs_llm: bool = False
    context: Optional[List[dict]] = None
    label: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)


def records_to_frame(records: Sequence[SalesOrderRecord]) -> pd.DataFrame:
    """
    One row per record, index = position in the snapshot (used to map rows back to records).
    """
    return pd.DataFrame([r.model_dump() for r in records], columns=RECORD_COLUMNS)


def _lower(series: pd.Series) -> pd.Series:
    return series.fillna("").astype(str).str.strip().str.lower()


class QueryEngine:
    """
    Read-only executor over the sales order memory. Safe for concurrent use:
    every call works on one immutable snapshot.
    """

    def __init__(self, memory: SalesOrderMemory, *, context_limit: int = 200) -> None:
        self.memory = memory
        self.context_limit = context_limit

    def execute(self, descriptor: FilterDescriptor, records: Optional[Sequence[SalesOrderRecord]] = None) -> ExecutionResult:
        """
        Filters the snapshot and dispatches on descriptor.intent.
        """
        if records is None:
            records = self.memory.snapshot()

        if descriptor.intent == "general":
            # Bypasses the data entirely: the question goes to the LLM as-is
            return ExecutionResult(intent="general", descriptor=descriptor, subset_df=records_to_frame(()), needs_llm=True)

        subset = self.apply_filters(records_to_frame(records), descriptor)
        matched = tuple(records[i] for i in subset.index)
        logger.info("Engine: intent=%s matched=%d of %d", descriptor.intent, len(matched), len(records))

        intent = descriptor.intent
        if intent == "count":
            return ExecutionResult(intent, descriptor, subset, records=matched, count=self._run_count(subset))
        if intent == "list":
            return ExecutionResult(intent, descriptor, subset, records=matched)
        if intent == "sample":
            return ExecutionResult(intent, descriptor, subset, records=matched[:1])
        if intent in RANKED_INTENTS:
            column, label = RANKED_INTENTS[intent]
            ranked = self._run_top_groups(subset, column, descriptor.top_n or 1)
            return ExecutionResult(intent, descriptor, subset, records=matched, ranked=ranked, label=label)
        if intent == "monthlyTotals" and descriptor.year and descriptor.sales_rep:
            monthly = self._run_monthly_totals(subset, descriptor)
            return ExecutionResult(intent, descriptor, subset, records=matched, monthly=monthly)

        # monthlyTotals without year + sales rep, or any intent without a handler
        logger.info("Engine: intent=%s not actionable, falling back to LLM with data context", intent)
        return self._fallback(descriptor, subset, matched)

    # ----------------------------
    # Step 1: filters
    # ----------------------------

    def apply_filters(self, df: pd.DataFrame, descriptor: FilterDescriptor) -> pd.DataFrame:
        out = df
        for step in (
            self._by_customer,
            self._by_gp_threshold,
            self._by_sales_rep,
            self._by_status,
            self._by_date,
            self._by_year,
        ):
            if out.empty:
                break
            out = step(out, descriptor)
        return out

    @staticmethod
    def _by_customer(df: pd.DataFrame, d: FilterDescriptor) -> pd.DataFrame:
        """
        Keyword match on customer name, contract description or memo.
        """
        if not d.customer:
            return df
        kw = d.customer.strip().lower()
        mask = pd.Series(False, index=df.index)
        for col in ("customer", "contract_description", "memo"):
            mask |= _lower(df[col]).str.contains(kw, regex=False)
        return df[mask]

    @staticmethod
    def _by_gp_threshold(df: pd.DataFrame, d: FilterDescriptor) -> pd.DataFrame:
        if d.gp_threshold is None:
            return df
        op = _GP_OPERATORS.get(d.gp_threshold.operator)
        if op is None:
            # Unknown operator: no constraint
            return df
        return df[op(df["gp_rate"].astype(float), d.gp_threshold.value)]

    @staticmethod
    def _by_sales_rep(df: pd.DataFrame, d: FilterDescriptor) -> pd.DataFrame:
        if not d.sales_rep:
            return df
        return df[_lower(df["sales_rep"]) == d.sales_rep.strip().lower()]

    @staticmethod
    def _by_status(df: pd.DataFrame, d: FilterDescriptor) -> pd.DataFrame:
        if not d.status:
            return df
        return df[_lower(df["status"]) == d.status.strip().lower()]

    @staticmethod
    def _by_date(df: pd.DataFrame, d: FilterDescriptor) -> pd.DataFrame:
        if not d.date:
            return df
        return df[df["date_created"].fillna("") == d.date]

    @staticmethod
    def _by_year(df: pd.DataFrame, d: FilterDescriptor) -> pd.DataFrame:
        if not d.year:
            return df
        return df[df["date_created"].fillna("").astype(str).str[:4] == d.year]

    # ----------------------------
    # Step 2: aggregations
    # ----------------------------

    @staticmethod
    def _run_count(df: pd.DataFrame) -> CountSummary:
        """
        User request example: "How many sales orders for Acme with GP above 55%?"
            - intent: count
            - customer: "acme"
            - gpThreshold: {operator: ">", value: 55}

        Empty input returns zeros (max over an empty set is undefined).
        """
        if df.empty:
            return CountSummary(order_count=0, total_amount=0.0, highest_gp=0.0)
        return CountSummary(
            order_count=int(len(df)),
            total_amount=float(df["amount"].astype(float).sum()),
            highest_gp=float(df["gp_rate"].astype(float).max()),
        )

    @staticmethod
    def _run_top_groups(df: pd.DataFrame, column: str, top_n: int) -> Tuple[RankedGroup, ...]:
        """
        User request example: "Who are the top 3 customers in 2024?"
            - intent: topCustomers
            - year: "2024"
            - topN: 3

        Groups keep first-encountered order and the sort is stable, so ties rank in order of appearance.
        """
        if df.empty:
            return ()
        sums = df.groupby(column, sort=False, dropna=False)["amount"].sum()
        sums = sums.astype(float).sort_values(ascending=False, kind="stable")
        return tuple(
            RankedGroup(rank=i + 1, name=str(name), total_amount=float(amount))
            for i, (name, amount) in enumerate(sums.head(top_n).items())
        )

    @staticmethod
    def _run_monthly_totals(df: pd.DataFrame, d: FilterDescriptor) -> Tuple[MonthlyTotal, ...]:
        """
        User request example: "Monthly sales of Juan Dela Cruz in 2025?"
            - intent: monthlyTotals
            - salesRep: "Juan Dela Cruz"
            - year: "2025"

        Only billable or in-progress orders count. Months come out in ascending (chronological) order.
        """
        if df.empty:
            return ()
        dates = df["date_created"].fillna("").astype(str)
        mask = (
            df["status"].fillna("").astype(str).str.strip().str.upper().isin(BILLABLE_STATUSES)
            & (_lower(df["sales_rep"]) == d.sales_rep.strip().lower())
            & dates.str.match(r"^\d{4}-\d{2}")
        )
        kept = df[mask]
        if kept.empty:
            return ()
        months = kept["date_created"].astype(str).str[:7]
        sums = kept["amount"].astype(float).groupby(months, sort=True).sum()
        return tuple(MonthlyTotal(month=str(m), total_amount=float(a)) for m, a in sums.items())

    def _fallback(self, d: FilterDescriptor, subset: pd.DataFrame, matched: Tuple[SalesOrderRecord, ...]) -> ExecutionResult:
        context = [r.model_dump() for r in matched[: self.context_limit]]
        return ExecutionResult(
            intent="fallback",
            descriptor=d,
            subset_df=subset,
            records=matched,
            needs_llm=True,
            context=context,
            extra={"requested_intent": d.intent},
        )
