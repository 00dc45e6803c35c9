"""
Shared vocabularies for fields, channels and chart specs.
"""

VEGA_LITE_SCHEMA = "https://vega.github.io/schema/vega-lite/v5.json"

# ---------------------------------------------------------
# Semantic field types
# ---------------------------------------------------------
QUANTITATIVE = "quantitative"
NOMINAL = "nominal"
ORDINAL = "ordinal"
TEMPORAL = "temporal"

FIELD_TYPES = (QUANTITATIVE, NOMINAL, ORDINAL, TEMPORAL)
CATEGORICAL_TYPES = (NOMINAL, ORDINAL)

# ---------------------------------------------------------
# Encoding channels (fixed output order)
# ---------------------------------------------------------
CHANNELS = ("x", "y", "color", "size", "shape", "row", "column")

# ---------------------------------------------------------
# Aggregates
# ---------------------------------------------------------
AGGREGATES = ("sum", "mean", "median", "min", "max", "count", "distinct")

AGGREGATES_BY_TYPE = {
    QUANTITATIVE: AGGREGATES,
    NOMINAL: ("count", "distinct"),
    ORDINAL: ("count", "distinct"),
    TEMPORAL: ("count", "min", "max"),
}

AGGREGATE_LABELS = {
    "sum": "Sum of",
    "mean": "Average",
    "median": "Median",
    "min": "Min",
    "max": "Max",
    "count": "Count of",
    "distinct": "Distinct",
}

TIME_UNITS = ("year", "quarter", "month", "week", "day", "yearmonth", "yearmonthdate")
DEFAULT_TIME_UNIT = "year"

SORT_ORDERS = ("ascending", "descending", "x", "y", "-x", "-y")

MARK_TYPES = ("auto", "bar", "line", "point", "area", "rect", "circle", "tick")

# ---------------------------------------------------------
# Colors
# ---------------------------------------------------------
DEFAULT_COLOR_SCHEME = "default"
COLOR_SCHEMES = (DEFAULT_COLOR_SCHEME, "category10", "tableau10", "set2", "dark2", "pastel1")

DEFAULT_CATEGORY_RANGE = [
    "#6366f1",
    "#22d3ee",
    "#f59e0b",
    "#ef4444",
    "#10b981",
    "#a855f7",
    "#ec4899",
    "#84cc16",
    "#f97316",
    "#64748b",
]

# ---------------------------------------------------------
# Filters
# ---------------------------------------------------------
RANGE = "range"
SELECTION = "selection"
DATE_RANGE = "date-range"

FILTER_TYPES = (RANGE, SELECTION, DATE_RANGE)

# ---------------------------------------------------------
# Chart sizing
# ---------------------------------------------------------
CHART_WIDTH = "container"
CHART_HEIGHT = 400
