"""Tests for rendering shaped items into string grids."""

import json

import pytest

from sheets_gpt.config import ResolvedConfig
from sheets_gpt.core.types import Shape
from sheets_gpt.exceptions import InternalShapeError
from sheets_gpt.pipeline.arguments import parse_schema
from sheets_gpt.pipeline.postprocess import (
    coerce_field,
    dedupe_key,
    format_value,
    postprocess,
)

pytestmark = pytest.mark.unit

CONFIG = ResolvedConfig(model="m", max_tokens=100, temperature=0.3, system_message="")


class TestText:
    def test_single_cell(self):
        assert postprocess(Shape.TEXT, ("hello",), CONFIG, target_count=1) == [["hello"]]

    def test_no_items_is_empty_cell(self):
        assert postprocess(Shape.TEXT, (), CONFIG, target_count=1) == [[""]]


class TestList:
    def test_dedupe_ignores_case_and_punctuation(self):
        items = ("Blue Sky", "blue-sky!", "Green", "  ", "GREEN.")

        grid = postprocess(Shape.LIST, items, CONFIG, target_count=10)

        assert grid == [["Blue Sky"], ["Green"]]

    def test_truncates_to_target_and_never_pads(self):
        items = ("a", "b", "c", "d")

        assert postprocess(Shape.LIST, items, CONFIG, target_count=3) == [["a"], ["b"], ["c"]]
        assert postprocess(Shape.LIST, items[:2], CONFIG, target_count=3) == [["a"], ["b"]]

    def test_hard_cap_applies_before_target(self):
        config = CONFIG.with_overrides(hard_count_cap=2)

        grid = postprocess(Shape.LIST, ("a", "b", "c"), config, target_count=5)

        assert grid == [["a"], ["b"]]

    def test_empty_list_placeholder(self):
        assert postprocess(Shape.LIST, (), CONFIG, target_count=3) == [["(no results)"]]

    def test_cjk_items_are_not_collapsed(self):
        grid = postprocess(Shape.LIST, ("东京", "大阪"), CONFIG, target_count=5)

        assert grid == [["东京"], ["大阪"]]

    def test_dedupe_key(self):
        assert dedupe_key("  Hello,   World!! ") == "hello world"


SCHEMA = parse_schema("title:string;score:number;price:currency;active:boolean;due:date")


class TestRecord:
    def test_rows_follow_schema_order(self):
        record = {
            "title": "A",
            "score": "7",
            "price": "$1,234.5",
            "active": "yes",
            "due": "2024-03-05T10:00:00Z",
        }

        grid = postprocess(Shape.RECORD, (record,), CONFIG, target_count=1, schema=SCHEMA)

        assert grid == [
            ["title: A"],
            ["score: 7"],
            ["price: $1234.50"],
            ["active: true"],
            ["due: 2024-03-05"],
        ]

    def test_unparsable_values_render_empty(self):
        record = {"title": None, "score": "n/a", "price": "", "active": "maybe", "due": "soon"}

        grid = postprocess(Shape.RECORD, (record,), CONFIG, target_count=1, schema=SCHEMA)

        assert grid == [["title: "], ["score: "], ["price: "], ["active: "], ["due: "]]

    def test_missing_record_placeholder(self):
        grid = postprocess(Shape.RECORD, (), CONFIG, target_count=1, schema=SCHEMA)

        assert grid == [["(no data)"]]


class TestRecordList:
    def test_round_trip_coercion(self):
        schema = parse_schema("title:string;score:number;")

        grid = postprocess(
            Shape.RECORD_LIST,
            ({"title": "A", "score": "7"},),
            CONFIG,
            target_count=1,
            schema=schema,
        )

        assert grid == [['{"title":"A","score":7}']]
        assert json.loads(grid[0][0]) == {"title": "A", "score": 7}

    def test_field_order_and_null_values(self):
        records = ({"due": "2024-01-02", "active": 0, "price": "€3", "score": "1.5", "title": 5},)

        grid = postprocess(Shape.RECORD_LIST, records, CONFIG, target_count=1, schema=SCHEMA)

        assert grid == [
            [
                '{"title":"5","score":1.5,"price":3,"active":false,'
                '"due":"2024-01-02T00:00:00.000Z"}'
            ]
        ]

    def test_exact_duplicates_removed_then_truncated(self):
        schema = parse_schema("name")
        records = ({"name": "x"}, {"name": "x"}, {"name": "y"}, {"name": "z"})

        grid = postprocess(Shape.RECORD_LIST, records, CONFIG, target_count=2, schema=schema)

        assert grid == [['{"name":"x"}'], ['{"name":"y"}']]

    def test_duplicates_do_not_count_toward_hard_cap(self):
        schema = parse_schema("name")
        config = CONFIG.with_overrides(hard_count_cap=2)
        records = ({"name": "x"}, {"name": "x"}, {"name": "y"}, {"name": "z"})

        grid = postprocess(Shape.RECORD_LIST, records, config, target_count=5, schema=schema)

        assert grid == [['{"name":"x"}'], ['{"name":"y"}']]

    def test_records_equal_after_coercion_are_duplicates(self):
        schema = parse_schema("name;score:number")
        records = ({"name": "x", "score": "7"}, {"name": "x", "score": 7.0})

        grid = postprocess(Shape.RECORD_LIST, records, CONFIG, target_count=5, schema=schema)

        assert grid == [['{"name":"x","score":7}']]

    def test_empty_placeholder(self):
        grid = postprocess(Shape.RECORD_LIST, (), CONFIG, target_count=2, schema=SCHEMA)

        assert grid == [["{}"]]

    def test_non_ascii_is_preserved(self):
        schema = parse_schema("city")

        grid = postprocess(
            Shape.RECORD_LIST, ({"city": "Zürich"},), CONFIG, target_count=1, schema=schema
        )

        assert grid == [['{"city":"Zürich"}']]


class TestCoercion:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [("42", 42.0), ("3.5 kg", 3.5), (7, 7.0), ("abc", None), (None, None), ("", None)],
    )
    def test_number(self, value, expected):
        assert coerce_field(value, "number") == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("$1,299.99", 1299.99), ("-$5", -5.0), ("£ 12", 12.0), (3, 3.0), ("free", None)],
    )
    def test_currency(self, value, expected):
        assert coerce_field(value, "currency") == expected

    @pytest.mark.parametrize(
        ("value", "expected"),
        [("TRUE", True), ("no", False), (1, True), (0.0, False), ("maybe", None), (None, None)],
    )
    def test_boolean(self, value, expected):
        assert coerce_field(value, "boolean") is expected

    def test_date_with_offset_is_normalized_to_utc(self):
        assert coerce_field("2024-03-05T23:30:00-02:00", "date") == "2024-03-06T01:30:00.000Z"

    @pytest.mark.parametrize(
        "value", ["9999-12-31T23:00:00-05:00", "0001-01-01T00:30:00+01:00"]
    )
    def test_date_outside_utc_range_is_null(self, value):
        assert coerce_field(value, "date") is None

    def test_out_of_range_date_renders_empty_row(self):
        schema = parse_schema("due:date")

        grid = postprocess(
            Shape.RECORD,
            ({"due": "9999-12-31T23:00:00-05:00"},),
            CONFIG,
            target_count=1,
            schema=schema,
        )

        assert grid == [["due: "]]

    def test_string_default(self):
        assert coerce_field(None, "string") == ""
        assert coerce_field(True, "string") == "true"
        assert coerce_field(2.0, "string") == "2"

    def test_format_number_without_trailing_zero(self):
        assert format_value(7.0, "number") == "7"
        assert format_value(7.25, "number") == "7.25"
        assert format_value(None, "number") == ""


def test_unknown_shape_is_internal_error():
    with pytest.raises(InternalShapeError):
        postprocess("table", (), CONFIG, target_count=1)  # type: ignore[arg-type]
