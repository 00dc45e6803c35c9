import copy

import pandas as pd
import pytest

from engine.file_parsers import parse_file
from engine.renderer import apply_filters
from engine.store import active_chart, chart_spec, initial_state, reduce

DATA = [
    {
        "region": "East" if i % 2 == 0 else "West",
        "sales": i * 1.5 + 0.25,
        "rating": i % 3 + 1,
        "order_date": f"2024-01-{i + 1:02d}",
    }
    for i in range(25)
]


@pytest.fixture
def state():
    return reduce(initial_state(), {"type": "LOAD_DATA", "payload": DATA, "fileName": "demo.csv"})


def field(state, name):
    return next(f for f in state["fields"] if f["name"] == name)


def run(state, *actions):
    for action in actions:
        state = reduce(state, action)
    return state


def test_initial_state_has_one_chart():
    state = initial_state()
    assert len(state["charts"]) == 1
    assert state["activeChartId"] == state["charts"][0]["id"]
    assert state["isLoading"] is True


def test_load_data_detects_fields(state):
    assert [f["name"] for f in state["fields"]] == ["region", "sales", "rating", "order_date"]
    assert field(state, "order_date")["type"] == "temporal"
    assert state["isLoading"] is False
    assert state["fileName"] == "demo.csv"


def test_load_data_resets_charts_and_filters(state):
    state = run(
        state,
        {"type": "ADD_CHART"},
        {"type": "ADD_FILTER", "field": field(state, "region")},
    )

    state = reduce(state, {"type": "LOAD_DATA", "payload": DATA})

    assert len(state["charts"]) == 1
    assert state["filters"] == []


def test_reduce_does_not_mutate_input(state):
    before = copy.deepcopy(state)
    run(
        state,
        {"type": "ASSIGN_FIELD", "channel": "x", "field": field(state, "region")},
        {"type": "ADD_CHART"},
        {"type": "ADD_FILTER", "field": field(state, "sales")},
    )
    assert state == before


def test_assign_and_remove(state):
    state = reduce(state, {"type": "ASSIGN_FIELD", "channel": "x", "field": field(state, "order_date")})
    assert active_chart(state)["encodings"]["x"]["timeUnit"] == "year"

    state = reduce(state, {"type": "REMOVE_FIELD", "channel": "x"})
    assert active_chart(state)["encodings"] == {}


def test_chart_spec_for_active_chart(state):
    assert chart_spec(state) is None

    state = run(
        state,
        {"type": "ASSIGN_FIELD", "channel": "x", "field": field(state, "region")},
        {"type": "ASSIGN_FIELD", "channel": "y", "field": field(state, "sales")},
        {"type": "SET_AGGREGATE", "channel": "y", "aggregate": "sum"},
    )

    spec = chart_spec(state)
    assert spec["mark"]["type"] == "bar"
    assert spec["title"] == "Sum of sales by region"
    assert spec["data"]["values"] == DATA


def test_chart_options(state):
    state = run(
        state,
        {"type": "SET_MARK_TYPE", "markType": "line"},
        {"type": "SET_CHART_TITLE", "title": "Custom"},
        {"type": "SET_COLOR_SCHEME", "colorScheme": "set2"},
    )
    chart = active_chart(state)
    assert (chart["markType"], chart["chartTitle"], chart["colorScheme"]) == ("line", "Custom", "set2")

    assert reduce(state, {"type": "SET_MARK_TYPE", "markType": "pie"}) is state
    assert reduce(state, {"type": "SET_COLOR_SCHEME", "colorScheme": "neon"}) is state


def test_clear_all_resets_encodings_and_title(state):
    state = run(
        state,
        {"type": "ASSIGN_FIELD", "channel": "x", "field": field(state, "region")},
        {"type": "SET_CHART_TITLE", "title": "Custom"},
        {"type": "CLEAR_ALL"},
    )
    chart = active_chart(state)
    assert chart["encodings"] == {}
    assert chart["chartTitle"] is None


class TestCharts:
    def test_add_chart_becomes_active(self, state):
        state = reduce(state, {"type": "ADD_CHART"})
        assert len(state["charts"]) == 2
        assert state["activeChartId"] == state["charts"][1]["id"]
        assert state["charts"][1]["name"] == "Chart 2"

    def test_last_chart_cannot_be_removed(self, state):
        assert reduce(state, {"type": "REMOVE_CHART"}) is state

    def test_remove_active_moves_pointer(self, state):
        state = run(state, {"type": "ADD_CHART"}, {"type": "ADD_CHART"})
        first, second, third = [c["id"] for c in state["charts"]]

        state = reduce(state, {"type": "SET_ACTIVE_CHART", "chartId": second})
        state = reduce(state, {"type": "REMOVE_CHART", "chartId": second})

        assert [c["id"] for c in state["charts"]] == [first, third]
        assert state["activeChartId"] == third

    def test_actions_target_given_chart(self, state):
        state = reduce(state, {"type": "ADD_CHART"})
        first = state["charts"][0]["id"]

        state = reduce(state, {
            "type": "ASSIGN_FIELD", "chartId": first, "channel": "y", "field": field(state, "sales"),
        })

        assert "y" in state["charts"][0]["encodings"]
        assert active_chart(state)["encodings"] == {}

    def test_unknown_active_chart(self, state):
        assert reduce(state, {"type": "SET_ACTIVE_CHART", "chartId": "nope"}) is state

    def test_rename(self, state):
        state = reduce(state, {"type": "RENAME_CHART", "name": "  Revenue  "})
        assert active_chart(state)["name"] == "Revenue"


def test_toggle_field_type_updates_every_chart(state):
    rating = field(state, "rating")
    region = field(state, "region")
    state = run(
        state,
        {"type": "ASSIGN_FIELD", "channel": "x", "field": rating},
        {"type": "ASSIGN_FIELD", "channel": "y", "field": region},
        {"type": "ADD_CHART"},
        {"type": "ASSIGN_FIELD", "channel": "color", "field": rating},
    )

    state = reduce(state, {"type": "TOGGLE_FIELD_TYPE", "fieldName": "rating"})

    assert field(state, "rating")["type"] == "nominal"
    assert state["charts"][0]["encodings"]["x"]["field"]["type"] == "nominal"
    assert state["charts"][1]["encodings"]["color"]["field"]["type"] == "nominal"
    assert state["charts"][0]["encodings"]["y"]["field"] == region
    assert field(state, "region") == region


def test_toggle_ignores_non_categorical_fields(state):
    assert reduce(state, {"type": "TOGGLE_FIELD_TYPE", "fieldName": "sales"}) is state


class TestFilters:
    def test_add_with_defaults(self, state):
        state = reduce(state, {"type": "ADD_FILTER", "field": field(state, "region")})
        assert state["filters"][0]["value"]["selected"] == ["East", "West"]

    def test_update_remove_clear(self, state):
        state = run(
            state,
            {"type": "ADD_FILTER", "field": field(state, "region")},
            {"type": "ADD_FILTER", "field": field(state, "sales")},
            {"type": "UPDATE_FILTER", "fieldName": "region", "value": {"selected": ["West"]}},
        )
        assert state["filters"][0]["value"]["selected"] == ["West"]
        assert chart_spec(reduce(state, {
            "type": "ASSIGN_FIELD", "channel": "x", "field": field(state, "region"),
        }))["transform"] == [
            {"filter": "indexof(['West'], toString(datum['region'])) >= 0"},
            {"filter": "datum['sales'] >= 0.25 && datum['sales'] <= 36.25"},
        ]

        state = reduce(state, {"type": "REMOVE_FILTER", "fieldName": "region"})
        assert [f["fieldName"] for f in state["filters"]] == ["sales"]

        state = reduce(state, {"type": "CLEAR_FILTERS"})
        assert state["filters"] == []


def test_load_project(state):
    chart = {"id": "abc", "name": "Saved", "encodings": {}, "markType": "bar",
             "chartTitle": None, "colorScheme": "default"}
    project = {"charts": [chart], "activeChartId": "missing", "filters": []}

    state = reduce(state, {"type": "LOAD_PROJECT", "project": project})

    assert state["charts"] == [chart]
    assert state["activeChartId"] == "abc"
    assert state["data"] == DATA


def test_unknown_action(state):
    assert reduce(state, {"type": "DANCE"}) is state


def test_selection_on_integer_column_with_blanks():
    parsed = parse_file("scores.csv", b"team,score\nA,1\nB,2\nC,\nD,3\nE,2\n")
    state = run(
        initial_state(),
        {"type": "LOAD_DATA", "payload": parsed["data"], "fileName": parsed["fileName"]},
        {"type": "ASSIGN_FIELD", "channel": "x", "field": {"name": "team", "type": "nominal", "uniqueCount": 5}},
    )
    state = run(
        state,
        {"type": "ADD_FILTER", "field": field(state, "score")},
        {"type": "UPDATE_FILTER", "fieldName": "score",
         "value": {"selected": ["1", "2"], "available": ["1", "2", "3"]}},
    )

    assert [row["score"] for row in state["data"]] == [1, 2, None, 3, 2]
    assert state["filters"][0]["value"]["available"] == ["1", "2", "3"]
    assert chart_spec(state)["transform"] == [
        {"filter": "indexof(['1', '2'], toString(datum['score'])) >= 0"}
    ]

    table = apply_filters(pd.DataFrame(state["data"]), state["filters"])
    assert table["team"].tolist() == ["A", "B", "E"]


def test_load_json_with_text_and_blanks_counts_unique_values():
    state = reduce(initial_state(), {"type": "LOAD_DATA", "payload": [
        {"tag": "a"}, {"tag": ""}, {"tag": "a"}, {"tag": None}, {"tag": "b"},
    ]})
    assert field(state, "tag")["uniqueCount"] == 2
