import logging
import math

from engine.constants import (
    AGGREGATE_LABELS,
    CATEGORICAL_TYPES,
    CHANNELS,
    CHART_HEIGHT,
    CHART_WIDTH,
    DATE_RANGE,
    DEFAULT_CATEGORY_RANGE,
    DEFAULT_COLOR_SCHEME,
    QUANTITATIVE,
    RANGE,
    SELECTION,
    TEMPORAL,
    VEGA_LITE_SCHEMA,
)

logger = logging.getLogger(__name__)


def _field_type(assignment):
    if not assignment:
        return None
    return assignment.get("field", {}).get("type")


def format_field_name(name):
    return str(name).replace("_", " ")


def format_aggregate(aggregate):
    if not aggregate:
        return ""
    return AGGREGATE_LABELS.get(aggregate, aggregate)


# ---------------------------------------------------------
# Title
# ---------------------------------------------------------
def build_title(encodings) -> str:
    """
    Auto title from field names and aggregates, never from data values.

        y=Sales(sum), x=Region        -> "Sum of Sales by Region"
        x=Year(temporal), y=Revenue   -> "Revenue over Year"
    """
    x = encodings.get("x")
    y = encodings.get("y")
    color = encodings.get("color")

    if not x and not y:
        return ""

    if x and y:
        x_name = format_field_name(x["field"]["name"])
        y_name = format_field_name(y["field"]["name"])

        if y.get("aggregate"):
            title = f"{format_aggregate(y['aggregate'])} {y_name} by {x_name}"
        elif x.get("aggregate"):
            title = f"{y_name} by {format_aggregate(x['aggregate'])} {x_name}"
        elif _field_type(x) == TEMPORAL:
            title = f"{y_name} over {x_name}"
        elif _field_type(y) == QUANTITATIVE and _field_type(x) in CATEGORICAL_TYPES:
            title = f"{y_name} by {x_name}"
        else:
            title = f"{y_name} vs {x_name}"
    else:
        only = y or x
        name = format_field_name(only["field"]["name"])
        if only.get("aggregate"):
            title = f"{format_aggregate(only['aggregate'])} {name}"
        else:
            title = name

    if color and title:
        title += f" by {format_field_name(color['field']['name'])}"

    return title


# ---------------------------------------------------------
# Mark inference
# ---------------------------------------------------------
def infer_mark(encodings) -> str:
    x_type = _field_type(encodings.get("x"))
    y_type = _field_type(encodings.get("y"))

    if x_type and y_type:
        if x_type == QUANTITATIVE and y_type == QUANTITATIVE:
            return "point"
        if x_type in CATEGORICAL_TYPES and y_type == QUANTITATIVE:
            return "bar"
        if x_type == QUANTITATIVE and y_type in CATEGORICAL_TYPES:
            return "bar"
        if x_type == TEMPORAL and y_type == QUANTITATIVE:
            return "line"
        if x_type == QUANTITATIVE and y_type == TEMPORAL:
            return "line"
        if x_type in CATEGORICAL_TYPES and y_type in CATEGORICAL_TYPES:
            return "rect"

    if x_type and not y_type:
        return "bar"
    if y_type and not x_type:
        return "bar"

    return "point"


# ---------------------------------------------------------
# Encoding
# ---------------------------------------------------------
def build_channel_encoding(assignment) -> dict:
    field = assignment["field"]
    encoding = {"field": field["name"], "type": field["type"]}

    if assignment.get("aggregate"):
        encoding["aggregate"] = assignment["aggregate"]

    if field["type"] == TEMPORAL and assignment.get("timeUnit"):
        encoding["timeUnit"] = assignment["timeUnit"]

    if assignment.get("sort"):
        encoding["sort"] = assignment["sort"]

    return encoding


def build_encoding(encodings) -> dict:
    return {
        channel: build_channel_encoding(encodings[channel])
        for channel in CHANNELS
        if encodings.get(channel)
    }


# ---------------------------------------------------------
# Filters -> Vega-Lite filter transforms
# ---------------------------------------------------------
def quote(value) -> str:
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


def _datum(field_name):
    return f"datum[{quote(field_name)}]"


def _number(value):
    if isinstance(value, bool):
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    # Vega expressions have no literal for inf or nan
    if not math.isfinite(value):
        return None
    return str(int(value)) if value.is_integer() else repr(value)


def _range_predicate(field_name, value):
    low = _number(value.get("min")) if value.get("min") is not None else None
    high = _number(value.get("max")) if value.get("max") is not None else None

    clauses = []
    if low is not None:
        clauses.append(f"{_datum(field_name)} >= {low}")
    if high is not None:
        clauses.append(f"{_datum(field_name)} <= {high}")
    return " && ".join(clauses) or None


def _selection_predicate(field_name, value):
    selected = value.get("selected") or []
    available = value.get("available") or []

    if not selected:
        return "false"
    if len(selected) == len(available) and set(selected) == set(available):
        return None

    members = ", ".join(quote(s) for s in selected)
    return f"indexof([{members}], toString({_datum(field_name)})) >= 0"


def build_filter_predicate(f):
    field_name = f.get("fieldName")
    value = f.get("value") or {}
    filter_type = f.get("filterType")

    if field_name is None:
        return None
    if filter_type == RANGE:
        return _range_predicate(field_name, value)
    if filter_type == SELECTION:
        return _selection_predicate(field_name, value)
    if filter_type == DATE_RANGE:
        # Date ranges are not compiled yet
        return None

    logger.warning("Skipping filter with unknown type '%s'", filter_type)
    return None


def build_filter_transforms(filters) -> list:
    transforms = []
    for f in filters or []:
        predicate = build_filter_predicate(f)
        if predicate is not None:
            transforms.append({"filter": predicate})
    return transforms


# ---------------------------------------------------------
# Color
# ---------------------------------------------------------
def build_color_config(color_scheme):
    if not color_scheme or color_scheme == DEFAULT_COLOR_SCHEME:
        return {"range": {"category": list(DEFAULT_CATEGORY_RANGE)}}
    return {"range": {"category": {"scheme": color_scheme}}}


# ---------------------------------------------------------
# ENTRYPOINT
# ---------------------------------------------------------
def build_spec(
    encodings,
    data,
    mark_type="auto",
    title=None,
    filters=None,
    color_scheme=DEFAULT_COLOR_SCHEME,
):
    """
    Compile a chart's encodings and the active filters into a Vega-Lite
    spec. Returns None while neither x nor y has a field.
    """
    encodings = encodings or {}
    if not encodings.get("x") and not encodings.get("y"):
        return None

    mark = infer_mark(encodings) if not mark_type or mark_type == "auto" else mark_type
    chart_title = title if title is not None else build_title(encodings)

    spec = {
        "$schema": VEGA_LITE_SCHEMA,
        "data": {"values": list(data or [])},
    }

    transforms = build_filter_transforms(filters)
    if transforms:
        spec["transform"] = transforms

    spec["mark"] = {"type": mark, "tooltip": True}
    spec["encoding"] = build_encoding(encodings)
    spec["width"] = CHART_WIDTH
    spec["height"] = CHART_HEIGHT

    if chart_title:
        spec["title"] = chart_title

    spec["config"] = build_color_config(color_scheme)

    logger.debug("Built spec: mark=%s title=%r transforms=%d", mark, chart_title, len(transforms))
    return spec
