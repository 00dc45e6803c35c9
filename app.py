import logging

import streamlit as st

from engine import settings
from engine.constants import (
    CHANNELS,
    COLOR_SCHEMES,
    MARK_TYPES,
    SORT_ORDERS,
    TEMPORAL,
    TIME_UNITS,
    CATEGORICAL_TYPES,
)
from engine.encodings import allowed_aggregates
from engine.exceptions import ChartixError, FileParseError
from engine.file_parsers import SUPPORTED_EXTENSIONS, parse_file
from engine.filters import filter_summary, find_filter, parse_bound
from engine.projects import ProjectStore, project_from_state
from engine.renderer import compute_table, render_chart
from engine.sample_data import DEMO_FILE_NAME, load_demo_dataset
from engine.store import active_chart, chart_spec, initial_state, reduce

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

TYPE_BADGES = {"quantitative": "Q", "nominal": "N", "ordinal": "O", "temporal": "T"}
NONE_OPTION = "—"


# ---------------------------------------------------------
# State plumbing
# ---------------------------------------------------------
def get_state():
    if "chartix_state" not in st.session_state:
        state = initial_state()
        if settings.USE_DEMO_DATA:
            state = reduce(state, {
                "type": "LOAD_DATA",
                "payload": load_demo_dataset(),
                "fileName": DEMO_FILE_NAME,
            })
        else:
            state = reduce(state, {"type": "SET_LOADING", "payload": False})
        st.session_state["chartix_state"] = state
        st.session_state["chartix_rev"] = 0
    return st.session_state["chartix_state"]


def dispatch(action):
    st.session_state["chartix_state"] = reduce(get_state(), action)
    # Widgets are keyed by revision so they pick up the new state
    st.session_state["chartix_rev"] += 1


def widget_key(*parts):
    return "w_" + "_".join(str(p) for p in parts) + f"_{st.session_state['chartix_rev']}"


@st.cache_resource
def get_project_store():
    return ProjectStore(settings.PROJECTS_DIR)


def field_by_name(state, name):
    return next((f for f in state["fields"] if f["name"] == name), None)


# ---------------------------------------------------------
# Sidebar: data source
# ---------------------------------------------------------
def parse_upload(uploaded):
    """Parse an upload once per file_id; reruns reuse the stored outcome."""
    cached = st.session_state.get("chartix_parsed_upload")
    if cached and cached["fileId"] == uploaded.file_id:
        return cached

    try:
        parsed = {"result": parse_file(uploaded.name, uploaded.getvalue())}
    except FileParseError as e:
        logger.warning("Upload failed: %s", e.to_dict())
        parsed = {"error": e.to_dict()}

    parsed["fileId"] = uploaded.file_id
    st.session_state["chartix_parsed_upload"] = parsed
    return parsed


def render_data_source(state):
    st.sidebar.subheader("1. Data Source")

    uploaded = st.sidebar.file_uploader(
        "Upload CSV, JSON or Excel",
        type=list(SUPPORTED_EXTENSIONS),
        key="chartix_upload",
    )

    if uploaded is not None and uploaded.file_id != st.session_state.get("chartix_loaded_upload"):
        parsed = parse_upload(uploaded)
        if "error" in parsed:
            error = parsed["error"]
            st.sidebar.error(error["message"])
            if error.get("details"):
                st.sidebar.caption(error["details"])
        else:
            result = parsed["result"]
            st.sidebar.success(
                f"{result['fileName']}: {result['rowCount']} rows, {result['fieldCount']} fields"
            )
            if st.sidebar.button("Load data"):
                dispatch({"type": "LOAD_DATA", "payload": result["data"], "fileName": result["fileName"]})
                st.session_state["chartix_loaded_upload"] = uploaded.file_id
                st.session_state.pop("chartix_parsed_upload", None)
                st.rerun()

    if state["data"]:
        st.sidebar.caption(f"{len(state['data'])} records loaded from {state.get('fileName') or 'memory'}")


# ---------------------------------------------------------
# Sidebar: fields
# ---------------------------------------------------------
def render_fields(state):
    st.sidebar.subheader("2. Fields")

    if not state["fields"]:
        st.sidebar.info("Load a dataset to see its fields.")
        return

    for field in state["fields"]:
        has_filter = find_filter(state["filters"], field["name"]) is not None
        cols = st.sidebar.columns([6, 2, 2])
        cols[0].markdown(
            f"`{TYPE_BADGES[field['type']]}` **{field['name']}** "
            f"<span style='color: gray; font-size: 12px;'>{field['uniqueCount']} unique</span>",
            unsafe_allow_html=True,
        )

        if field["type"] in CATEGORICAL_TYPES:
            cols[1].button(
                "⇄",
                key=widget_key("toggle", field["name"]),
                help="Toggle ordinal / nominal",
                on_click=dispatch,
                args=({"type": "TOGGLE_FIELD_TYPE", "fieldName": field["name"]},),
            )

        if has_filter:
            action = {"type": "REMOVE_FILTER", "fieldName": field["name"]}
        else:
            action = {"type": "ADD_FILTER", "field": field}
        cols[2].button(
            "✕" if has_filter else "⧩",
            key=widget_key("filter", field["name"]),
            help="Remove filter" if has_filter else "Add filter",
            on_click=dispatch,
            args=(action,),
        )


# ---------------------------------------------------------
# Sidebar: projects
# ---------------------------------------------------------
def render_projects(state):
    st.sidebar.subheader("3. Projects")
    store = get_project_store()

    name = st.sidebar.text_input("Project name", key="chartix_project_name")
    if st.sidebar.button("Save project"):
        if not name.strip():
            st.sidebar.error("Please enter a project name.")
        else:
            project_id = st.session_state.get("chartix_project_id")
            try:
                record = store.save(project_from_state(state, name.strip(), project_id))
            except (ChartixError, OSError) as e:
                st.sidebar.error(f"Could not save project: {e}")
            else:
                st.session_state["chartix_project_id"] = record["id"]
                st.sidebar.success(f"Saved '{record['name']}'")

    try:
        projects = store.list()
    except OSError as e:
        st.sidebar.error(f"Could not list projects: {e}")
        return

    if not projects:
        st.sidebar.caption("No saved projects yet.")
        return

    labels = {p["id"]: f"{p['name']} ({p['chartCount']} charts)" for p in projects}
    selected = st.sidebar.selectbox(
        "Saved projects", list(labels), format_func=labels.get, key="chartix_project_pick"
    )

    load_col, delete_col = st.sidebar.columns(2)
    if load_col.button("Load"):
        try:
            project = store.load(selected)
        except ChartixError as e:
            st.sidebar.error(e.message)
        else:
            dispatch({"type": "LOAD_PROJECT", "project": project})
            st.session_state["chartix_project_id"] = project["id"]
            st.rerun()

    if delete_col.button("Delete"):
        try:
            store.delete(selected)
        except ChartixError as e:
            st.sidebar.error(e.message)
        else:
            if st.session_state.get("chartix_project_id") == selected:
                st.session_state.pop("chartix_project_id")
            st.rerun()


# ---------------------------------------------------------
# Filters
# ---------------------------------------------------------
def _on_range_change(field_name, min_key, max_key):
    dispatch({
        "type": "UPDATE_FILTER",
        "fieldName": field_name,
        "value": {
            "min": parse_bound(st.session_state[min_key]),
            "max": parse_bound(st.session_state[max_key]),
        },
    })


def _on_selection_change(field_name, available, key):
    dispatch({
        "type": "UPDATE_FILTER",
        "fieldName": field_name,
        "value": {"selected": st.session_state[key], "available": available},
    })


def render_filters(state):
    filters = state["filters"]
    header, clear = st.columns([8, 2])
    header.markdown(f"#### Filters ({len(filters)})")
    if filters:
        clear.button("Clear all", on_click=dispatch, args=({"type": "CLEAR_FILTERS"},))

    if not filters:
        st.caption("Use the ⧩ button next to a field to add a filter.")
        return

    for f in filters:
        name = f["fieldName"]
        with st.expander(f"{TYPE_BADGES[f['fieldType']]} {name} — {filter_summary(f)}"):
            if f["filterType"] == "range":
                min_key, max_key = widget_key("fmin", name), widget_key("fmax", name)
                low, high = st.columns(2)
                low.text_input(
                    "Min", value="" if f["value"]["min"] is None else str(f["value"]["min"]),
                    key=min_key, on_change=_on_range_change, args=(name, min_key, max_key),
                )
                high.text_input(
                    "Max", value="" if f["value"]["max"] is None else str(f["value"]["max"]),
                    key=max_key, on_change=_on_range_change, args=(name, min_key, max_key),
                )

            elif f["filterType"] == "selection":
                key = widget_key("fsel", name)
                available = f["value"]["available"]
                st.multiselect(
                    "Values", available, default=f["value"]["selected"],
                    key=key, on_change=_on_selection_change, args=(name, available, key),
                )

            else:
                st.info("Date range filter coming soon")

            st.button(
                "Remove filter", key=widget_key("frm", name),
                on_click=dispatch, args=({"type": "REMOVE_FILTER", "fieldName": name},),
            )


# ---------------------------------------------------------
# Charts (tabs)
# ---------------------------------------------------------
def render_chart_tabs(state):
    charts = state["charts"]
    ids = [c["id"] for c in charts]
    names = {c["id"]: c["name"] for c in charts}

    tabs, add, remove = st.columns([8, 1, 1])
    key = widget_key("chart_tabs")
    tabs.radio(
        "Charts", ids, index=ids.index(state["activeChartId"]), format_func=names.get,
        horizontal=True, key=key, label_visibility="collapsed",
        on_change=lambda: dispatch({"type": "SET_ACTIVE_CHART", "chartId": st.session_state[key]}),
    )
    add.button("＋", help="Add chart", on_click=dispatch, args=({"type": "ADD_CHART"},))
    remove.button(
        "－", help="Remove chart", disabled=len(charts) <= 1,
        on_click=dispatch, args=({"type": "REMOVE_CHART"},),
    )


# ---------------------------------------------------------
# Encoding panel
# ---------------------------------------------------------
def _on_field_change(state, channel, key):
    name = st.session_state[key]
    if name == NONE_OPTION:
        dispatch({"type": "REMOVE_FIELD", "channel": channel})
    else:
        dispatch({"type": "ASSIGN_FIELD", "channel": channel, "field": field_by_name(state, name)})


def _on_option_change(action_type, channel, option, key):
    value = st.session_state[key]
    dispatch({"type": action_type, "channel": channel, option: None if value == NONE_OPTION else value})


def _select_with_none(label, options, current, key, on_change, args):
    choices = [NONE_OPTION, *options]
    index = choices.index(current) if current in choices else 0
    st.selectbox(label, choices, index=index, key=key, on_change=on_change, args=args)


def render_encoding_panel(state):
    chart = active_chart(state)
    encodings = chart["encodings"]
    field_names = [f["name"] for f in state["fields"]]

    st.markdown("#### Encodings")
    for channel in CHANNELS:
        assignment = encodings.get(channel)
        current = assignment["field"]["name"] if assignment else NONE_OPTION

        cols = st.columns([3, 2, 2, 2])
        with cols[0]:
            key = widget_key(chart["id"], channel, "field")
            _select_with_none(channel, field_names, current, key, _on_field_change, (state, channel, key))

        if not assignment:
            continue

        field_type = assignment["field"]["type"]
        with cols[1]:
            key = widget_key(chart["id"], channel, "agg")
            _select_with_none(
                "aggregate", allowed_aggregates(field_type), assignment["aggregate"], key,
                _on_option_change, ("SET_AGGREGATE", channel, "aggregate", key),
            )
        if field_type == TEMPORAL:
            with cols[2]:
                key = widget_key(chart["id"], channel, "tu")
                _select_with_none(
                    "time unit", TIME_UNITS, assignment["timeUnit"], key,
                    _on_option_change, ("SET_TIME_UNIT", channel, "timeUnit", key),
                )
        with cols[3]:
            key = widget_key(chart["id"], channel, "sort")
            _select_with_none(
                "sort", SORT_ORDERS, assignment["sort"], key,
                _on_option_change, ("SET_SORT", channel, "sort", key),
            )


def render_chart_options(state):
    chart = active_chart(state)
    mark_col, scheme_col, clear_col = st.columns([3, 3, 2])

    key = widget_key(chart["id"], "mark")
    mark_col.selectbox(
        "Mark", MARK_TYPES, index=MARK_TYPES.index(chart["markType"]), key=key,
        on_change=lambda: dispatch({"type": "SET_MARK_TYPE", "markType": st.session_state[key]}),
    )

    scheme_key = widget_key(chart["id"], "scheme")
    scheme_col.selectbox(
        "Color scheme", COLOR_SCHEMES, index=COLOR_SCHEMES.index(chart["colorScheme"]),
        key=scheme_key,
        on_change=lambda: dispatch({"type": "SET_COLOR_SCHEME", "colorScheme": st.session_state[scheme_key]}),
    )
    clear_col.button("Clear chart", on_click=dispatch, args=({"type": "CLEAR_ALL"},))

    title_key = widget_key(chart["id"], "title")
    st.text_input(
        "Title (leave empty for automatic)", value=chart["chartTitle"] or "", key=title_key,
        on_change=lambda: dispatch({
            "type": "SET_CHART_TITLE",
            "title": st.session_state[title_key].strip() or None,
        }),
    )


# ---------------------------------------------------------
# Chart view
# ---------------------------------------------------------
def render_chart_view(state):
    chart = active_chart(state)
    spec = chart_spec(state)

    if spec is None:
        st.info("Assign a field to the x or y channel to build your visualization.")
        return

    st.altair_chart(render_chart(spec), use_container_width=True, theme=None)

    with st.expander("Aggregated / Result Table"):
        st.dataframe(compute_table(state["data"], chart["encodings"], state["filters"]))

    with st.expander("Vega-Lite spec"):
        st.json({k: v for k, v in spec.items() if k != "data"})


# ---------------------------------------------------------
# Streamlit UI
# ---------------------------------------------------------
def main():
    st.set_page_config(
        page_title=settings.APP_TITLE,
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.markdown(f"<!-- cache-bust: {settings.CSS_VERSION} -->", unsafe_allow_html=True)

    state = get_state()
    st.title(settings.APP_TITLE)

    if state.get("error"):
        st.error(state["error"])

    render_data_source(state)
    render_fields(state)
    render_projects(state)

    if not state["data"]:
        st.info("Upload a CSV, JSON or Excel file to start building charts.")
        return

    render_chart_tabs(state)
    left, right = st.columns([2, 3])
    with left:
        render_encoding_panel(state)
        render_chart_options(state)
        render_filters(state)
    with right:
        render_chart_view(state)


if __name__ == "__main__":
    main()
