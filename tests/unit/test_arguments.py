"""Tests for formula argument parsing, schema parsing and count inference."""

import pytest

from sheets_gpt.core.types import Schema, SchemaField, Shape
from sheets_gpt.exceptions import BadSchemaError, MissingInputError
from sheets_gpt.pipeline.arguments import (
    cjk_numeral_to_int,
    infer_count,
    parse_arguments,
    parse_schema,
)

pytestmark = pytest.mark.unit


class TestParseArguments:
    def test_text_shape_takes_overrides_after_instruction(self):
        parsed = parse_arguments(
            Shape.TEXT,
            ["Summarize", "  Be brief  ", "gpt-4.1", "256", "0.7", "web_search"],
        )

        assert parsed.text == "Summarize"
        assert parsed.schema is None
        assert parsed.overrides.system_message == "Be brief"
        assert parsed.overrides.model == "gpt-4.1"
        assert parsed.overrides.max_tokens == 256
        assert parsed.overrides.temperature == 0.7
        assert parsed.overrides.tool == "web_search"

    def test_record_shape_takes_schema_at_position_one(self):
        parsed = parse_arguments(
            Shape.RECORD, ["Describe Paris", "name:string; population:number", "", "m"]
        )

        assert parsed.schema == Schema(
            fields=(SchemaField("name", "string"), SchemaField("population", "number"))
        )
        assert parsed.overrides.system_message is None
        assert parsed.overrides.model == "m"

    def test_blank_overrides_are_not_provided(self):
        parsed = parse_arguments(Shape.LIST, ["5 ideas", " ", None, "", "  "])

        assert parsed.overrides.system_message is None
        assert parsed.overrides.model is None
        assert parsed.overrides.max_tokens is None
        assert parsed.overrides.temperature is None

    def test_numeric_overrides_accept_spreadsheet_numbers(self):
        parsed = parse_arguments(Shape.TEXT, ["hi", None, None, 128.0, 0])

        assert parsed.overrides.max_tokens == 128
        assert parsed.overrides.temperature == 0.0

    def test_non_positive_max_tokens_is_ignored(self):
        parsed = parse_arguments(Shape.TEXT, ["hi", None, None, "-4"])

        assert parsed.overrides.max_tokens is None

    def test_tool_mapping_is_passed_through(self):
        tool = {"name": "web_search", "parameters": {"max_results": 3}}
        parsed = parse_arguments(Shape.TEXT, ["hi", None, None, None, None, tool])

        assert parsed.overrides.tool == tool

    def test_shape_accepts_string_value(self):
        assert parse_arguments("list", ["a few names"]).shape is Shape.LIST

    @pytest.mark.parametrize("args", [[], None, [""], ["   "], [None]])
    def test_missing_text_raises(self, args):
        with pytest.raises(MissingInputError) as exc_info:
            parse_arguments(Shape.TEXT, args)

        assert str(exc_info.value).startswith("#GPT_MISSING_INPUT")

    def test_record_without_schema_raises(self):
        with pytest.raises(BadSchemaError):
            parse_arguments(Shape.RECORD_LIST, ["List cities"])

    def test_inferred_count_is_attached(self):
        assert parse_arguments(Shape.LIST, ["top 4 rivers"]).inferred_count == 4


class TestParseSchema:
    def test_round_trip_of_typed_fields(self):
        schema = parse_schema("title:string;score:number;")

        assert schema.fields == (
            SchemaField("title", "string"),
            SchemaField("score", "number"),
        )

    def test_type_defaults_to_string_and_keys_are_normalized(self):
        schema = parse_schema(" Full Name ; Is Active: BOOLEAN ; price$: currency")

        assert schema.fields == (
            SchemaField("full_name", "string"),
            SchemaField("is_active", "boolean"),
            SchemaField("price", "currency"),
        )

    def test_describe_renders_prompt_fragment(self):
        assert parse_schema("a:date;b").describe() == "a: date, b: string"

    def test_unicode_keys_survive_normalization(self):
        assert parse_schema("名前:string").keys == ("名前",)

    @pytest.mark.parametrize("source", [None, "", "   "])
    def test_missing_schema(self, source):
        with pytest.raises(BadSchemaError, match="Schema is required"):
            parse_schema(source)

    def test_only_separators(self):
        with pytest.raises(BadSchemaError, match="name:type"):
            parse_schema(" ; ;; ")

    def test_unknown_type(self):
        with pytest.raises(BadSchemaError, match="Unsupported field type: money"):
            parse_schema("price:money")

    def test_empty_key(self):
        with pytest.raises(BadSchemaError, match="Missing field name"):
            parse_schema(":number")


class TestInferCount:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("give me a dozen ideas", 12),
            ("list 5 facts", 5),
            ("三个名字", 3),
            ("Suggest product names", 10),
            ("a few jokes", 3),
            ("a couple of options", 2),
            ("top 7 movies of the decade", 7),
            ("3 product name ideas", 3),
            ("二十五条新闻", 25),
            ("十个名字", 10),
            ("给我十二项建议", 12),
            ("examples from chapter 12", 12),
        ],
    )
    def test_inference_rules(self, text, expected):
        assert infer_count(text) == expected

    def test_phrase_table_beats_digits(self):
        assert infer_count("a few of the 20 best ideas") == 3

    def test_regex_pattern_beats_digit_keyword_heuristic(self):
        # "5 cities" matches the regex before "30 ideas" is considered
        assert infer_count("pick 5 cities with 30 ideas each") == 5

    def test_digits_without_keyword_use_default(self):
        assert infer_count("what happened in 1969?") == 10

    def test_counts_are_clamped_to_internal_cap(self):
        assert infer_count("top 5000 songs") == 200

    def test_zero_is_clamped_to_one(self):
        assert infer_count("top 0 songs") == 1

    def test_empty_text(self):
        assert infer_count("") == 10


class TestCjkNumerals:
    @pytest.mark.parametrize(
        ("numeral", "expected"),
        [("三", 3), ("两", 2), ("十", 10), ("十五", 15), ("三十", 30), ("九十九", 99)],
    )
    def test_supported(self, numeral, expected):
        assert cjk_numeral_to_int(numeral) == expected

    @pytest.mark.parametrize("numeral", ["", "一百", "三五", "千"])
    def test_unsupported(self, numeral):
        assert cjk_numeral_to_int(numeral) == 0
