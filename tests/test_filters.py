import pytest

from engine.filters import (
    add_filter,
    default_filter,
    filter_summary,
    find_filter,
    parse_bound,
    remove_filter,
    update_filter,
)

DATA = [
    {"region": "West", "sales": 12.5, "rating": 3, "order_date": "2024-03-01"},
    {"region": "East", "sales": 99, "rating": 1, "order_date": "2024-01-15"},
    {"region": "West", "sales": None, "rating": 5, "order_date": None},
    {"region": "", "sales": 40, "rating": 3, "order_date": "2024-02-10"},
]


def field(name, type_):
    return {"name": name, "type": type_, "uniqueCount": 0}


class TestDefaults:
    def test_quantitative_range(self):
        f = default_filter(field("sales", "quantitative"), DATA)
        assert f == {
            "fieldName": "sales",
            "fieldType": "quantitative",
            "filterType": "range",
            "value": {"min": 12.5, "max": 99.0},
        }

    def test_nominal_selection(self):
        f = default_filter(field("region", "nominal"), DATA)
        assert f["filterType"] == "selection"
        assert f["value"] == {"selected": ["East", "West"], "available": ["East", "West"]}

    def test_ordinal_numbers_become_strings(self):
        f = default_filter(field("rating", "ordinal"), DATA)
        assert f["value"]["available"] == ["1", "3", "5"]
        assert f["value"]["selected"] == ["1", "3", "5"]

    def test_whole_floats_are_listed_like_integers(self):
        data = [{"score": 1.0}, {"score": 2.5}, {"score": 3.0}, {"flag": True}]
        assert default_filter(field("score", "ordinal"), data)["value"]["available"] == ["1", "2.5", "3"]
        assert default_filter(field("flag", "nominal"), data)["value"]["available"] == ["true"]

    def test_non_finite_values_are_left_out_of_ranges(self):
        data = [{"sales": 4}, {"sales": float("inf")}, {"sales": "-inf"}, {"sales": 9}]
        f = default_filter(field("sales", "quantitative"), data)
        assert f["value"] == {"min": 4.0, "max": 9.0}

    def test_temporal_date_range(self):
        f = default_filter(field("order_date", "temporal"), DATA)
        assert f["filterType"] == "date-range"
        assert f["value"] == {"min": "2024-01-15", "max": "2024-03-01"}

    def test_empty_column(self):
        f = default_filter(field("sales", "quantitative"), [])
        assert f["value"] == {"min": None, "max": None}


def test_one_filter_per_field():
    first = default_filter(field("region", "nominal"), DATA)
    filters = add_filter([], first)

    assert add_filter(filters, default_filter(field("region", "ordinal"), DATA)) is filters
    assert find_filter(filters, "region") is first


def test_remove_filter():
    filters = add_filter([], default_filter(field("region", "nominal"), DATA))
    filters = add_filter(filters, default_filter(field("sales", "quantitative"), DATA))

    assert [f["fieldName"] for f in remove_filter(filters, "region")] == ["sales"]


class TestUpdate:
    def test_selection_stays_within_available(self):
        filters = [default_filter(field("region", "nominal"), DATA)]

        updated = update_filter(filters, "region", {"selected": ["West", "North", "East"]})

        assert updated[0]["value"] == {"selected": ["East", "West"], "available": ["East", "West"]}

    def test_range_coerces_bad_input(self):
        filters = [default_filter(field("sales", "quantitative"), DATA)]

        updated = update_filter(filters, "sales", {"min": "abc", "max": "50"})

        assert updated[0]["value"] == {"min": None, "max": 50.0}

    def test_other_filters_untouched(self):
        filters = [
            default_filter(field("region", "nominal"), DATA),
            default_filter(field("sales", "quantitative"), DATA),
        ]

        updated = update_filter(filters, "sales", {"min": 1, "max": 2})

        assert updated[0] is filters[0]


@pytest.mark.parametrize(
    "text, expected",
    [
        ("10", 10.0),
        (" -2.5 ", -2.5),
        ("", None),
        ("   ", None),
        ("abc", None),
        (None, None),
        ("nan", None),
        ("inf", None),
        ("-Infinity", None),
        ("1e400", None),
        (float("inf"), None),
        (7, 7.0),
    ],
)
def test_parse_bound(text, expected):
    assert parse_bound(text) == expected


@pytest.mark.parametrize(
    "value, expected",
    [
        ({"min": None, "max": None}, "No range set"),
        ({"min": 1000, "max": 2500.5}, "1,000 - 2,500.5"),
        ({"min": 10, "max": None}, ">= 10"),
        ({"min": None, "max": 20}, "<= 20"),
    ],
)
def test_range_summary(value, expected):
    f = {"fieldName": "sales", "fieldType": "quantitative", "filterType": "range", "value": value}
    assert filter_summary(f) == expected


def test_selection_summary():
    f = default_filter(field("rating", "ordinal"), DATA)
    assert filter_summary(f) == "All selected"

    f["value"] = {"selected": [], "available": ["1", "3", "5"]}
    assert filter_summary(f) == "None selected"

    f["value"] = {"selected": ["1", "5"], "available": ["1", "3", "5"]}
    assert filter_summary(f) == "2 of 3"
