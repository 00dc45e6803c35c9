import json
import logging
import math
import re
from numbers import Real

from engine.constants import NOMINAL, ORDINAL, QUANTITATIVE, TEMPORAL

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 100
CATEGORICAL_THRESHOLD = 20
TEMPORAL_RATIO = 0.8

DATE_PATTERNS = [
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),                  # YYYY-MM-DD
    re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}"),  # ISO 8601 datetime
    re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$"),             # M/D/YY or MM/DD/YYYY
    re.compile(r"^\d{1,2}-\d{1,2}-\d{2,4}$"),             # M-D-YY or MM-DD-YYYY
]

ID_NAME_PATTERNS = [
    re.compile(r"^id$", re.IGNORECASE),
    re.compile(r"_id$", re.IGNORECASE),
    re.compile(r"id$", re.IGNORECASE),
    re.compile(r"code$", re.IGNORECASE),
    re.compile(r"^key$", re.IGNORECASE),
    re.compile(r"_key$", re.IGNORECASE),
]


# ---------------------------------------------------------
# Value helpers
# ---------------------------------------------------------
def is_missing(value):
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


def _is_number(value):
    return isinstance(value, Real) and not isinstance(value, bool)


def to_text(value):
    """
    Stringify a cell the way Vega's toString() does, so selection
    filters match in the chart and in pandas (1.0 -> "1", True -> "true").
    """
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _unique_key(value):
    # Lists and dicts from JSON uploads are unhashable
    if isinstance(value, (list, dict)):
        return json.dumps(value, sort_keys=True, default=str)
    return value


def _is_numeric_string(value):
    if not isinstance(value, str) or "_" in value:
        return False
    try:
        number = float(value)
    except ValueError:
        return False
    return math.isfinite(number)


def _is_temporal(sample):
    strings = [v for v in sample if isinstance(v, str)]

    # Numbers that look like years (2024) never count as dates
    if len(strings) < len(sample) * TEMPORAL_RATIO:
        return False

    matches = [s for s in strings if any(p.search(s) for p in DATE_PATTERNS)]
    return len(matches) >= len(strings) * TEMPORAL_RATIO


def has_id_field_name(field_name):
    return any(p.search(field_name) for p in ID_NAME_PATTERNS)


def looks_like_id(sample):
    """
    Integer columns that are (nearly) sequential, or large and
    partially sequential, are identifiers rather than measurements.
    Numeric strings never qualify.
    """
    if not all(_is_number(v) for v in sample):
        return False

    if not all(float(v).is_integer() for v in sample):
        return False

    ordered = sorted(sample)
    consecutive = sum(1 for a, b in zip(ordered, ordered[1:]) if b - a == 1)
    ratio = consecutive / (len(ordered) - 1) if len(ordered) > 1 else 0.0

    if ratio > 0.7:
        return True

    mean = sum(ordered) / len(ordered)
    return mean > 10000 and ratio > 0.3


# ---------------------------------------------------------
# Detector
# ---------------------------------------------------------
def detect_field_type(values, field_name=None) -> str:
    present = [v for v in values if not is_missing(v)]
    if not present:
        return NOMINAL

    sample = present[:SAMPLE_SIZE]

    if _is_temporal(sample):
        return TEMPORAL

    is_numeric = all(_is_number(v) or _is_numeric_string(v) for v in sample)
    if not is_numeric:
        return NOMINAL

    if field_name and has_id_field_name(field_name):
        return NOMINAL

    if looks_like_id(sample):
        return NOMINAL

    # A single number lands here too and comes out ordinal
    if len(set(sample)) <= CATEGORICAL_THRESHOLD:
        return ORDINAL
    return QUANTITATIVE


def detect_all_fields(data) -> list:
    """
    Build the field inventory for a dataset.

    Column names come from the first row. The type is decided on the
    detector's sample; uniqueCount is taken over the whole column.
    """
    if not data:
        return []

    fields = []
    for name in data[0].keys():
        values = [row.get(name) for row in data]
        field_type = detect_field_type(values, name)
        unique_count = len({_unique_key(v) for v in values if not is_missing(v)})
        fields.append({"name": name, "type": field_type, "uniqueCount": unique_count})

    logger.info(
        "Detected %d fields: %s",
        len(fields),
        ", ".join(f"{f['name']}={f['type']}" for f in fields),
    )
    return fields
