"""
Application state and the single transition function that mutates it.

    state = reduce(state, {"type": "ASSIGN_FIELD", "channel": "x", "field": field})

`reduce` never modifies its input; it returns a new state dict (sharing the
parts that did not change). The UI replaces its stored state with the result,
so one action is always fully applied before the next one is read.
"""

import logging
import uuid

from engine import encodings as enc
from engine import filters as flt
from engine.constants import CATEGORICAL_TYPES, COLOR_SCHEMES, DEFAULT_COLOR_SCHEME, MARK_TYPES
from engine.field_detection import detect_all_fields
from engine.spec_builder import build_spec

logger = logging.getLogger(__name__)


def new_chart_id():
    return uuid.uuid4().hex[:8]


def new_chart(chart_id=None, name="Chart 1"):
    return {
        "id": chart_id or new_chart_id(),
        "name": name,
        "encodings": {},
        "markType": "auto",
        "chartTitle": None,
        "colorScheme": DEFAULT_COLOR_SCHEME,
    }


def initial_state():
    chart = new_chart()
    return {
        "data": [],
        "fields": [],
        "charts": [chart],
        "activeChartId": chart["id"],
        "filters": [],
        "isLoading": True,
        "error": None,
        "fileName": None,
    }


# ---------------------------------------------------------
# Lookups
# ---------------------------------------------------------
def find_chart(state, chart_id):
    for chart in state["charts"]:
        if chart["id"] == chart_id:
            return chart
    return None


def active_chart(state):
    chart = find_chart(state, state["activeChartId"])
    return chart if chart is not None else state["charts"][0]


def chart_spec(state, chart_id=None):
    chart = find_chart(state, chart_id) if chart_id else active_chart(state)
    if chart is None:
        return None
    return build_spec(
        chart["encodings"],
        state["data"],
        chart["markType"],
        chart["chartTitle"],
        state["filters"],
        chart["colorScheme"],
    )


def _next_chart_name(state):
    taken = {c["name"] for c in state["charts"]}
    n = len(state["charts"]) + 1
    while f"Chart {n}" in taken:
        n += 1
    return f"Chart {n}"


# ---------------------------------------------------------
# Chart-level helpers
# ---------------------------------------------------------
def _update_chart(state, chart_id, update):
    """Apply `update(chart) -> chart` to one chart (the active one by default)."""
    target = chart_id or state["activeChartId"]
    if find_chart(state, target) is None:
        logger.warning("No chart with id '%s'", target)
        return state
    charts = [update(c) if c["id"] == target else c for c in state["charts"]]
    return {**state, "charts": charts}


def _update_encodings(state, action, fn, *args):
    return _update_chart(
        state,
        action.get("chartId"),
        lambda c: {**c, "encodings": fn(c["encodings"], *args)},
    )


def _remove_chart(state, chart_id):
    if len(state["charts"]) <= 1:
        logger.warning("Refusing to remove the last chart")
        return state

    index = next((i for i, c in enumerate(state["charts"]) if c["id"] == chart_id), None)
    if index is None:
        return state

    charts = state["charts"][:index] + state["charts"][index + 1:]
    active = state["activeChartId"]
    if active == chart_id:
        active = charts[min(index, len(charts) - 1)]["id"]
    return {**state, "charts": charts, "activeChartId": active}


def _toggle_field_type(state, field_name):
    field = next((f for f in state["fields"] if f["name"] == field_name), None)
    if field is None or field["type"] not in CATEGORICAL_TYPES:
        return state

    fields = [
        {**f, "type": enc.toggle_type(f["type"])} if f["name"] == field_name else f
        for f in state["fields"]
    ]
    charts = [
        {**c, "encodings": enc.toggle_field_type(c["encodings"], field_name)}
        for c in state["charts"]
    ]
    return {**state, "fields": fields, "charts": charts}


def _load_data(state, data, file_name=None):
    chart = new_chart()
    fields = detect_all_fields(data)
    return {
        **state,
        "data": data,
        "fields": fields,
        "charts": [chart],
        "activeChartId": chart["id"],
        "filters": [],
        "isLoading": False,
        "error": None,
        "fileName": file_name,
    }


def _load_project(state, project):
    charts = project.get("charts") or [new_chart()]
    active = project.get("activeChartId")
    if not any(c["id"] == active for c in charts):
        active = charts[0]["id"]
    return {
        **state,
        "charts": charts,
        "activeChartId": active,
        "filters": project.get("filters") or [],
    }


# ---------------------------------------------------------
# Reducer
# ---------------------------------------------------------
def reduce(state, action):
    kind = action.get("type")

    if kind == "SET_DATA":
        return {**state, "data": action["payload"], "isLoading": False}

    if kind == "SET_FIELDS":
        return {**state, "fields": action["payload"]}

    if kind == "LOAD_DATA":
        return _load_data(state, action["payload"], action.get("fileName"))

    if kind == "SET_LOADING":
        return {**state, "isLoading": bool(action["payload"])}

    if kind == "SET_ERROR":
        return {**state, "error": action["payload"], "isLoading": False}

    # Encodings ----------------------------------------------
    if kind == "ASSIGN_FIELD":
        return _update_encodings(state, action, enc.assign_field, action["channel"], action["field"])

    if kind == "REMOVE_FIELD":
        return _update_encodings(state, action, enc.remove_field, action["channel"])

    if kind == "SET_AGGREGATE":
        return _update_encodings(state, action, enc.set_aggregate, action["channel"], action.get("aggregate"))

    if kind == "SET_TIME_UNIT":
        return _update_encodings(state, action, enc.set_time_unit, action["channel"], action.get("timeUnit"))

    if kind == "SET_SORT":
        return _update_encodings(state, action, enc.set_sort, action["channel"], action.get("sort"))

    if kind == "CLEAR_ALL":
        return _update_chart(
            state, action.get("chartId"),
            lambda c: {**c, "encodings": {}, "chartTitle": None},
        )

    if kind == "TOGGLE_FIELD_TYPE":
        return _toggle_field_type(state, action["fieldName"])

    # Chart options ------------------------------------------
    if kind == "SET_MARK_TYPE":
        mark = action.get("markType") or "auto"
        if mark not in MARK_TYPES:
            logger.warning("Ignoring unknown mark type '%s'", mark)
            return state
        return _update_chart(state, action.get("chartId"), lambda c: {**c, "markType": mark})

    if kind == "SET_CHART_TITLE":
        title = action.get("title")
        return _update_chart(state, action.get("chartId"), lambda c: {**c, "chartTitle": title})

    if kind == "SET_COLOR_SCHEME":
        scheme = action.get("colorScheme") or DEFAULT_COLOR_SCHEME
        if scheme not in COLOR_SCHEMES:
            logger.warning("Ignoring unknown color scheme '%s'", scheme)
            return state
        return _update_chart(state, action.get("chartId"), lambda c: {**c, "colorScheme": scheme})

    # Charts -------------------------------------------------
    if kind == "ADD_CHART":
        chart = new_chart(action.get("chartId"), action.get("name") or _next_chart_name(state))
        return {**state, "charts": [*state["charts"], chart], "activeChartId": chart["id"]}

    if kind == "REMOVE_CHART":
        return _remove_chart(state, action.get("chartId") or state["activeChartId"])

    if kind == "SET_ACTIVE_CHART":
        if find_chart(state, action["chartId"]) is None:
            logger.warning("No chart with id '%s'", action["chartId"])
            return state
        return {**state, "activeChartId": action["chartId"]}

    if kind == "RENAME_CHART":
        name = (action.get("name") or "").strip()
        if not name:
            return state
        return _update_chart(state, action.get("chartId"), lambda c: {**c, "name": name})

    # Filters ------------------------------------------------
    if kind == "ADD_FILTER":
        new_filter = action.get("filter")
        if new_filter is None:
            field = action["field"]
            new_filter = flt.default_filter(field, state["data"])
        return {**state, "filters": flt.add_filter(state["filters"], new_filter)}

    if kind == "UPDATE_FILTER":
        filters = flt.update_filter(state["filters"], action["fieldName"], action["value"])
        return {**state, "filters": filters}

    if kind == "REMOVE_FILTER":
        return {**state, "filters": flt.remove_filter(state["filters"], action["fieldName"])}

    if kind == "CLEAR_FILTERS":
        return {**state, "filters": []}

    # Projects -----------------------------------------------
    if kind == "LOAD_PROJECT":
        return _load_project(state, action["project"])

    logger.warning("Unknown action type '%s'", kind)
    return state
