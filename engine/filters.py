"""
Per-field filters with data-driven defaults.

A filter is a dict:
    {"fieldName": ..., "fieldType": ..., "filterType": ..., "value": {...}}

range      -> value = {"min": float|None, "max": float|None}
selection  -> value = {"selected": [str], "available": [str]}
date-range -> value = {"min": str|None, "max": str|None}

At most one filter exists per field name.
"""

import logging
import math

from engine.constants import DATE_RANGE, QUANTITATIVE, RANGE, SELECTION, TEMPORAL
from engine.field_detection import is_missing, to_text

logger = logging.getLogger(__name__)


# ---------------------------------------------------------
# Input coercion
# ---------------------------------------------------------
def parse_bound(text):
    """
    Turn a text input into a numeric bound.
    Blank or malformed input means "no bound" and returns None.
    """
    if text is None:
        return None
    if isinstance(text, (int, float)) and not isinstance(text, bool):
        return float(text) if math.isfinite(text) else None

    text = str(text).strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _to_float(value):
    if isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


# ---------------------------------------------------------
# Defaults
# ---------------------------------------------------------
def default_filter(field, data):
    name = field["name"]
    field_type = field["type"]
    values = [row.get(name) for row in data if not is_missing(row.get(name))]

    if field_type == QUANTITATIVE:
        numbers = [n for n in (_to_float(v) for v in values) if n is not None]
        value = {
            "min": min(numbers) if numbers else None,
            "max": max(numbers) if numbers else None,
        }
        filter_type = RANGE

    elif field_type == TEMPORAL:
        dates = sorted(str(v) for v in values)
        value = {
            "min": dates[0] if dates else None,
            "max": dates[-1] if dates else None,
        }
        filter_type = DATE_RANGE

    else:
        available = sorted({to_text(v) for v in values})
        value = {"selected": list(available), "available": available}
        filter_type = SELECTION

    return {
        "fieldName": name,
        "fieldType": field_type,
        "filterType": filter_type,
        "value": value,
    }


# ---------------------------------------------------------
# Collection operations
# ---------------------------------------------------------
def find_filter(filters, field_name):
    for f in filters:
        if f["fieldName"] == field_name:
            return f
    return None


def add_filter(filters, new_filter):
    if find_filter(filters, new_filter["fieldName"]) is not None:
        logger.info("Filter for '%s' already exists", new_filter["fieldName"])
        return filters
    return [*filters, new_filter]


def _normalize_value(existing, value):
    if existing["filterType"] == SELECTION:
        available = existing["value"]["available"]
        wanted = {str(v) for v in value.get("selected", [])}
        # keep selected a subset of available, in available order
        return {
            "selected": [a for a in available if a in wanted],
            "available": list(available),
        }

    if existing["filterType"] == RANGE:
        return {
            "min": parse_bound(value.get("min")),
            "max": parse_bound(value.get("max")),
        }

    return {"min": value.get("min") or None, "max": value.get("max") or None}


def update_filter(filters, field_name, value):
    updated = []
    for f in filters:
        if f["fieldName"] == field_name:
            f = {**f, "value": _normalize_value(f, value)}
        updated.append(f)
    return updated


def remove_filter(filters, field_name):
    return [f for f in filters if f["fieldName"] != field_name]


# ---------------------------------------------------------
# Display
# ---------------------------------------------------------
def _format_number(value):
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,}"


def filter_summary(f) -> str:
    value = f["value"]

    if f["filterType"] == SELECTION:
        selected = len(value["selected"])
        total = len(value["available"])
        if selected == total:
            return "All selected"
        if selected == 0:
            return "None selected"
        return f"{selected} of {total}"

    if f["filterType"] == RANGE:
        low, high = value.get("min"), value.get("max")
        if low is None and high is None:
            return "No range set"
        if low is not None and high is not None:
            return f"{_format_number(low)} - {_format_number(high)}"
        if low is not None:
            return f">= {_format_number(low)}"
        return f"<= {_format_number(high)}"

    return "Date range (not applied)"
