import logging

import altair as alt
import pandas as pd

from engine.constants import CHANNELS, DATE_RANGE, QUANTITATIVE, RANGE, SELECTION, TEMPORAL
from engine.field_detection import to_text
from engine.filters import parse_bound

logger = logging.getLogger(__name__)

PANDAS_AGGREGATES = {
    "sum": "sum",
    "mean": "mean",
    "median": "median",
    "min": "min",
    "max": "max",
    "count": "count",
    "distinct": "nunique",
}

NUMERIC_AGGREGATES = {"sum", "mean", "median"}


# ---------------------------------------------------------
# ENTRYPOINT
# ---------------------------------------------------------
def render_chart(spec: dict) -> alt.Chart:
    """
    Wrap a Vega-Lite dict in an Altair chart for st.altair_chart.
    Callers drop the previous chart before rendering a new one.
    """
    if spec is None:
        raise ValueError("Cannot render an incomplete chart")
    return alt.Chart.from_dict(spec, validate=False)


# ---------------------------------------------------------
# FILTERS (pandas side)
# ---------------------------------------------------------
def apply_filters(df: pd.DataFrame, filters) -> pd.DataFrame:
    for f in filters or []:
        col = f.get("fieldName")
        if col not in df.columns:
            continue
        value = f.get("value") or {}

        if f.get("filterType") == RANGE:
            numbers = pd.to_numeric(df[col], errors="coerce")
            low, high = parse_bound(value.get("min")), parse_bound(value.get("max"))
            mask = pd.Series(True, index=df.index)
            if low is not None:
                mask &= numbers >= low
            if high is not None:
                mask &= numbers <= high
            df = df[mask]

        elif f.get("filterType") == SELECTION:
            selected = value.get("selected") or []
            available = value.get("available") or []
            if set(selected) == set(available) and len(selected) == len(available):
                continue
            mask = df[col].notna() & df[col].map(to_text).isin(selected)
            df = df[mask]

        elif f.get("filterType") == DATE_RANGE:
            continue

    return df


# ---------------------------------------------------------
# TIME UNITS
# ---------------------------------------------------------
def apply_time_unit(series: pd.Series, time_unit: str) -> pd.Series:
    dates = pd.to_datetime(series, errors="coerce")

    if time_unit == "year":
        return dates.dt.year
    if time_unit == "quarter":
        return dates.dt.quarter
    if time_unit == "month":
        return dates.dt.month_name()
    if time_unit == "week":
        return dates.dt.isocalendar().week
    if time_unit == "day":
        return dates.dt.day_name()
    if time_unit == "yearmonth":
        return dates.dt.strftime("%Y-%m")
    if time_unit == "yearmonthdate":
        return dates.dt.strftime("%Y-%m-%d")
    return series


# ---------------------------------------------------------
# AGGREGATED TABLE
# ---------------------------------------------------------
def compute_table(data, encodings, filters=None) -> pd.DataFrame:
    """
    Rows the chart actually shows: filtered, grouped by the plain channel
    fields and reduced by the aggregated ones. Aggregated columns are named
    "{aggregate}_{field}".
    """
    df = apply_filters(pd.DataFrame(data), filters)

    dims = []
    measures = {}
    for channel in CHANNELS:
        assignment = encodings.get(channel)
        if not assignment:
            continue
        field = assignment["field"]
        name = field["name"]
        if name not in df.columns:
            continue

        aggregate = assignment.get("aggregate")
        if aggregate:
            measures[f"{aggregate}_{name}"] = (name, aggregate, field["type"])
            continue

        if field["type"] == TEMPORAL and assignment.get("timeUnit"):
            df = df.assign(**{name: apply_time_unit(df[name], assignment["timeUnit"])})
        if name not in dims:
            dims.append(name)

    if not measures:
        return df[dims].reset_index(drop=True) if dims else df.reset_index(drop=True)

    for _, (name, aggregate, field_type) in measures.items():
        if aggregate in NUMERIC_AGGREGATES or (field_type == QUANTITATIVE and aggregate in ("min", "max")):
            df = df.assign(**{name: pd.to_numeric(df[name], errors="coerce")})

    if dims:
        named = {
            col_name: pd.NamedAgg(column=name, aggfunc=PANDAS_AGGREGATES[aggregate])
            for col_name, (name, aggregate, _) in measures.items()
        }
        table = df.groupby(dims, dropna=False).agg(**named).reset_index()
    else:
        row = {
            col_name: df[name].agg(PANDAS_AGGREGATES[aggregate])
            for col_name, (name, aggregate, _) in measures.items()
        }
        table = pd.DataFrame([row])

    logger.debug("Aggregated table: %d rows, columns=%s", len(table), table.columns.tolist())
    return table
