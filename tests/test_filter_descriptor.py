"""
tests/test_filter_descriptor.py

Boundary validation of the LLM translator output: whatever comes in,
validate_descriptor() returns a usable FilterDescriptor and never raises.
"""

from __future__ import annotations

import pytest

from src.engine.query_plan import FilterDescriptor, validate_descriptor


@pytest.mark.parametrize("raw", [None, "count", 42, ["intent", "count"], {}])
def test_non_mapping_or_empty_input_defaults_to_general(raw):
    d = validate_descriptor(raw)
    assert d == FilterDescriptor()
    assert d.intent == "general"
    assert d.fields == []
    assert d.top_n is None and d.gp_threshold is None


@pytest.mark.parametrize("intent", ["", "   ", None, 3, ["count"]])
def test_missing_intent_is_general(intent):
    assert validate_descriptor({"intent": intent, "year": "2024"}).intent == "general"


@pytest.mark.parametrize("intent, expected", [("averageOrder", "averageOrder"), (" COUNT ", "COUNT")])
def test_unrecognized_intent_is_kept_for_the_engine(intent, expected):
    d = validate_descriptor({"intent": intent, "customer": "acme"})
    assert d.intent == expected
    assert d.customer == "acme"


def test_camel_case_fields_are_mapped():
    d = validate_descriptor({
        "intent": "topSales",
        "salesRep": "Ana Reyes",
        "topN": 2,
        "gpThreshold": {"operator": ">=", "value": 55},
        "fields": ["so_number", "amount"],
    })
    assert d.intent == "topSales"
    assert d.sales_rep == "Ana Reyes"
    assert d.top_n == 2
    assert d.gp_threshold.operator == ">="
    assert d.gp_threshold.value == 55.0
    assert d.fields == ["so_number", "amount"]


def test_year_and_date_are_normalized():
    d = validate_descriptor({"intent": "count", "year": 2024, "date": "2024-03-01T00:00:00"})
    assert d.year == "2024"
    assert d.date == "2024-03-01"

    bad = validate_descriptor({"intent": "count", "year": "24", "date": "March 1"})
    assert bad.year is None
    assert bad.date is None


def test_gp_threshold_value_is_coerced_or_dropped():
    assert validate_descriptor({"gpThreshold": {"operator": ">", "value": "55%"}}).gp_threshold.value == 55.0
    assert validate_descriptor({"gpThreshold": {"operator": ">"}}).gp_threshold is None
    assert validate_descriptor({"gpThreshold": {"operator": ">", "value": "high"}}).gp_threshold is None
    assert validate_descriptor({"gpThreshold": "55"}).gp_threshold is None


def test_unknown_operator_is_kept_for_the_engine():
    d = validate_descriptor({"gpThreshold": {"operator": "between", "value": 10}})
    assert d.gp_threshold.operator == "between"


@pytest.mark.parametrize("raw, expected", [(3, 3), ("2", 2), (0, None), (-1, None), ("many", None), (True, None)])
def test_top_n_must_be_positive(raw, expected):
    assert validate_descriptor({"topN": raw}).top_n == expected


def test_blank_strings_and_bad_fields_become_defaults():
    d = validate_descriptor({"customer": "   ", "status": {"x": 1}, "fields": None, "salesRep": ""})
    assert d.customer is None
    assert d.status is None
    assert d.sales_rep is None
    assert d.fields == []
