"""Tests for TOON encoder."""

import datetime
from collections import namedtuple
from dataclasses import dataclass
from decimal import Decimal

import pytest

from toon_codec import EncodeOptions, PathConflict, encode, encode_lines


class TestPrimitives:
    """Test encoding of primitive values."""

    def test_null(self):
        assert encode(None) == "null"

    def test_booleans(self):
        assert encode(True) == "true"
        assert encode(False) == "false"

    def test_integer(self):
        assert encode(42) == "42"
        assert encode(-17) == "-17"
        assert encode(0) == "0"

    def test_float(self):
        assert encode(3.14) == "3.14"
        assert encode(-2.5) == "-2.5"
        assert encode(0.0) == "0"
        assert encode(5.0) == "5"

    def test_negative_zero(self):
        assert encode(-0.0) == "0"

    def test_float_special_values(self):
        assert encode(float("nan")) == "null"
        assert encode(float("inf")) == "null"
        assert encode(float("-inf")) == "null"

    def test_float_never_scientific(self):
        assert encode(1e-7) == "0.0000001"
        assert encode(1.5e20) == "150000000000000000000"

    def test_number_precision(self):
        assert encode({"pi": 3.14159}, EncodeOptions(number_precision=2)) == "pi: 3.14"

    def test_simple_string(self):
        assert encode("hello") == "hello"
        assert encode("hello world") == "hello world"

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("", '""'),
            (" padded", '" padded"'),
            ("trailing\t", '"trailing\\t"'),
            ("10\xa0", '"10\xa0"'),
            ("\u2003x", '"\u2003x"'),
            ("true", '"true"'),
            ("null", '"null"'),
            ("-", '"-"'),
            ("- item", '"- item"'),
            ("123", '"123"'),
            ("-45", '"-45"'),
            ("3.14", '"3.14"'),
            ("1e5", '"1e5"'),
            ("007", '"007"'),
            ("key: value", '"key: value"'),
            ("a{b}", '"a{b}"'),
            ("[not json", '"[not json"'),
            ("a,b", '"a,b"'),
        ],
    )
    def test_strings_needing_quotes(self, value, expected):
        assert encode({"v": value}) == f"v: {expected}"

    def test_comma_and_colon_value(self):
        assert encode({"msg": "Hello, World: Test"}) == 'msg: "Hello, World: Test"'

    def test_delimiter_only_quoted_when_active(self):
        assert encode({"v": "a|b"}) == "v: a|b"
        assert encode({"v": "a|b"}, EncodeOptions(delimiter="|")) == 'v: "a|b"'

    def test_truncate_strings(self):
        result = encode({"s": "abcdefgh"}, EncodeOptions(truncate_strings=3))
        assert result == "s: abc..."

    def test_unknown_objects_use_str(self):
        assert encode({"d": Decimal("1.5")}) == 'd: "1.5"'


class TestDates:
    """Test date and datetime rendering."""

    def test_naive_datetime_gets_utc_offset(self):
        dt = datetime.datetime(2024, 1, 15, 10, 30, 0)
        assert encode({"at": dt}) == 'at: "2024-01-15T10:30:00+00:00"'

    def test_date(self):
        assert encode({"on": datetime.date(2024, 1, 15)}) == "on: 2024-01-15"

    def test_date_format(self):
        opts = EncodeOptions(date_format="%d/%m/%Y")
        dt = datetime.datetime(2024, 1, 15, 10, 30)
        assert encode({"on": dt}, opts) == "on: 15/01/2024"

    def test_date_format_applies_to_iso_strings(self):
        opts = EncodeOptions(date_format="%Y")
        assert encode({"on": "2024-01-15T10:30:00"}, opts) == 'on: "2024"'


class TestObjects:
    """Test encoding of objects."""

    def test_empty_object(self):
        assert encode({}) == ""

    def test_simple_object(self):
        assert encode({"name": "Alice", "age": 30}) == "name: Alice\nage: 30"

    def test_nested_object(self):
        result = encode({"user": {"name": "Bob", "role": "admin"}})
        assert result.split("\n") == ["user:", "  name: Bob", "  role: admin"]

    def test_empty_nested_object(self):
        assert encode({"data": {}}) == "data:"

    def test_quoted_key(self):
        assert encode({"key with spaces": "value"}) == '"key with spaces": value'

    def test_dotted_key_stays_bare(self):
        assert encode({"a.b": 1}) == "a.b: 1"


class TestArraysInline:
    """Test inline primitive array encoding."""

    def test_string_array(self):
        assert encode({"tags": ["a", "b", "c"]}) == "tags[3]: a,b,c"

    def test_mixed_primitives(self):
        assert encode({"mix": [1, "two", True, None]}) == "mix[4]: 1,two,true,null"

    def test_empty_array(self):
        assert encode({"items": []}) == "items[0]:"

    def test_values_with_delimiter_are_quoted(self):
        assert encode({"xs": ["a,b", "c"]}) == 'xs[2]: "a,b",c'


class TestArraysTabular:
    """Test tabular array encoding."""

    def test_simple_tabular(self):
        result = encode({"users": [{"id": 1, "name": "Alice"}, {"id": 2, "name": "Bob"}]})
        assert result.split("\n") == ["users[2]{id,name}:", "  1,Alice", "  2,Bob"]

    def test_column_order_follows_first_row(self):
        result = encode({"rows": [{"a": 1, "b": 2}, {"b": 4, "a": 3}]})
        assert result.split("\n") == ["rows[2]{a,b}:", "  1,2", "  3,4"]

    def test_tabular_with_quoted_values(self):
        result = encode({"data": [{"key": "a,b"}, {"key": "c,d"}]})
        assert result.split("\n") == ["data[2]{key}:", '  "a,b"', '  "c,d"']

    def test_below_min_rows_uses_list(self):
        result = encode({"users": [{"id": 1, "name": "Alice"}]})
        assert result.split("\n") == ["users[1]:", "  - id: 1", "    name: Alice"]

    def test_min_rows_option(self):
        result = encode({"users": [{"id": 1}]}, EncodeOptions(min_rows_for_table=1))
        assert result.split("\n") == ["users[1]{id}:", "  1"]

    def test_different_keys_use_list(self):
        result = encode({"items": [{"a": 1}, {"b": 2}]})
        assert result.split("\n") == ["items[2]:", "  - a: 1", "  - b: 2"]

    def test_dotted_column_name_is_quoted(self):
        result = encode({"rows": [{"a.b": 1}, {"a.b": 2}]})
        assert result.split("\n")[0] == 'rows[2]{"a.b"}:'


class TestFlattenedTables:
    """Test tables built from nested objects."""

    def test_nested_fields_become_dotted_columns(self):
        data = {
            "users": [
                {"id": 1, "profile": {"name": "Ann", "age": 30}},
                {"id": 2, "profile": {"name": "Ben", "age": 40}},
            ]
        }
        assert encode(data).split("\n") == [
            "users[2]{id,profile.name,profile.age}:",
            "  1,Ann,30",
            "  2,Ben,40",
        ]

    def test_objects_past_flatten_depth_are_embedded_json(self):
        data = [{"a": {"b": {"c": 1}}}, {"a": {"b": {"c": 2}}}]
        result = encode(data, EncodeOptions(max_flatten_depth=1))
        assert result.split("\n") == ["[2]{a.b}:", '  "{\\"c\\":1}"', '  "{\\"c\\":2}"']

    def test_dotted_keys_fall_back_to_list_format(self):
        data = [{"a.b": 1, "c": {"d": 2}}, {"a.b": 3, "c": {"d": 4}}]
        assert encode(data).split("\n") == [
            "[2]:",
            "  - a.b: 1",
            "    c:",
            "      d: 2",
            "  - a.b: 3",
            "    c:",
            "      d: 4",
        ]

    def test_nested_dotted_keys_fall_back_to_list_format(self):
        data = [{"c": {"d.e": 1}}, {"c": {"d.e": 2}}]
        assert encode(data).split("\n")[0] == "[2]:"

    def test_nested_lists_fall_back_to_list_format(self):
        data = [{"a": {"tags": ["x"]}}, {"a": {"tags": ["y"]}}]
        assert encode(data).split("\n") == [
            "[2]:",
            "  - a:",
            "      tags[1]: x",
            "  - a:",
            "      tags[1]: y",
        ]


class TestArraysList:
    """Test list format array encoding."""

    def test_mixed_types(self):
        result = encode({"items": [1, {"x": 2}, "three"]})
        assert result.split("\n") == ["items[3]:", "  - 1", "  - x: 2", "  - three"]

    def test_empty_object_item(self):
        result = encode({"items": [{}, 1]})
        assert result.split("\n") == ["items[2]:", "  -", "  - 1"]

    def test_multi_field_item_continuation(self):
        result = encode({"items": [{"a": 1, "b": 2}, "x"]})
        assert result.split("\n") == ["items[2]:", "  - a: 1", "    b: 2", "  - x"]

    def test_nested_arrays(self):
        result = encode({"m": [[1, 2], []]})
        assert result.split("\n") == ["m[2]:", "  - [2]: 1,2", "  - [0]:"]

    def test_array_as_first_field_of_item(self):
        result = encode({"items": [{"tags": ["a", "b"], "id": 1}, 5]})
        assert result.split("\n") == ["items[2]:", "  - tags[2]: a,b", "    id: 1", "  - 5"]

    def test_table_as_first_field_of_item(self):
        data = {"groups": [{"rows": [{"x": 1}, {"x": 2}], "name": "g"}, 0]}
        assert encode(data).split("\n") == [
            "groups[2]:",
            "  - rows[2]{x}:",
            "      1",
            "      2",
            "    name: g",
            "  - 0",
        ]

    def test_nested_object_in_item(self):
        result = encode({"items": [{"meta": {"k": "v"}, "id": 1}, 2]})
        assert result.split("\n") == [
            "items[2]:",
            "  - meta:",
            "      k: v",
            "    id: 1",
            "  - 2",
        ]


class TestRootArray:
    """Test root-level array encoding."""

    def test_root_inline(self):
        assert encode([1, 2, 3]) == "[3]: 1,2,3"

    def test_root_empty(self):
        assert encode([]) == "[0]:"

    def test_root_tabular(self):
        assert encode([{"a": 1}, {"a": 2}]).split("\n") == ["[2]{a}:", "  1", "  2"]


class TestEscapeSequences:
    """Test string escape sequence encoding."""

    def test_newline_escape(self):
        assert encode({"content": "line1\nline2"}) == 'content: "line1\\nline2"'

    def test_carriage_return_escape(self):
        assert encode({"content": "line1\rline2"}) == 'content: "line1\\rline2"'

    def test_backslash_escape(self):
        assert encode({"path": "C:\\Users\\name"}) == 'path: "C:\\\\Users\\\\name"'

    def test_quote_escape(self):
        assert encode({"msg": 'He said "hello"'}) == 'msg: "He said \\"hello\\""'

    def test_multiline_content_stays_on_one_line(self):
        content = 'def hello():\n    print("Hello, World!")\n    return True'
        result = encode({"code": content})
        assert "\n" not in result
        assert "\\n" in result


class TestOmission:
    """Test omit and omit_keys."""

    def test_omit_null(self):
        result = encode({"a": None, "b": 1}, EncodeOptions(omit={"null"}))
        assert result == "b: 1"

    def test_omit_all(self):
        data = {"a": None, "b": "", "c": False, "d": 0}
        assert encode(data, EncodeOptions(omit={"all"})) == "d: 0"

    def test_omit_keys(self):
        result = encode({"id": 1, "secret": "x"}, EncodeOptions(omit_keys={"secret"}))
        assert result == "id: 1"

    def test_omitted_values_keep_their_cell(self):
        data = [{"a": 1, "b": None}, {"a": 2, "b": 3}]
        result = encode(data, EncodeOptions(omit={"null"}))
        assert result.split("\n") == ["[2]{a,b}:", "  1,", "  2,3"]

    def test_all_empty_row_renders_values(self):
        data = [{"a": None}, {"a": 1}]
        result = encode(data, EncodeOptions(omit={"null"}))
        assert result.split("\n") == ["[2]{a}:", "  null", "  1"]

    def test_omit_keys_drops_table_column(self):
        data = [{"a": 1, "b": 2}, {"a": 3, "b": 4}]
        result = encode(data, EncodeOptions(omit_keys={"b"}))
        assert result.split("\n") == ["[2]{a}:", "  1", "  3"]

    def test_omission_is_deterministic(self):
        data = {"a": None, "rows": [{"x": None, "y": ""}, {"x": 1, "y": "b"}], "c": False}
        opts = EncodeOptions(omit={"null", "empty", "false"})
        first = encode(data, opts)
        assert first == encode(data, opts)
        assert first.split("\n") == ["rows[2]{x,y}:", '  null,""', "  1,b"]

    def test_list_item_with_everything_omitted(self):
        result = encode([{"a": None}, 1], EncodeOptions(omit={"null"}))
        assert result.split("\n") == ["[2]:", "  -", "  - 1"]


class TestAliases:
    """Test key_aliases."""

    def test_field_alias(self):
        opts = EncodeOptions(key_aliases={"description": "desc"})
        assert encode({"description": "x"}, opts) == "desc: x"

    def test_header_alias(self):
        opts = EncodeOptions(key_aliases={"name": "n"})
        result = encode({"users": [{"name": "A"}, {"name": "B"}]}, opts)
        assert result.split("\n")[0] == "users[2]{n}:"

    def test_alias_collision_strict(self):
        opts = EncodeOptions(key_aliases={"a": "b"})
        with pytest.raises(PathConflict):
            encode({"a": 1, "b": 2}, opts)

    def test_alias_collision_lenient(self):
        opts = EncodeOptions(key_aliases={"a": "b"}, strict=False)
        assert encode({"a": 1, "b": 2}, opts) == "b: 1\nb: 2"


class TestKeyFolding:
    """Test key folding (dotted paths)."""

    def test_no_folding_by_default(self):
        assert encode({"a": {"b": {"c": 1}}}).split("\n") == ["a:", "  b:", "    c: 1"]

    def test_safe_folding(self):
        assert encode({"a": {"b": {"c": 1}}}, EncodeOptions(key_folding="safe")) == "a.b.c: 1"

    def test_folding_stops_at_multiple_keys(self):
        result = encode({"a": {"b": {"c": 1, "d": 2}}}, EncodeOptions(key_folding="safe"))
        assert result.split("\n") == ["a.b:", "  c: 1", "  d: 2"]

    def test_folding_ends_in_array(self):
        result = encode({"a": {"b": [1, 2]}}, EncodeOptions(key_folding="safe"))
        assert result == "a.b[2]: 1,2"

    def test_folding_depth(self):
        opts = EncodeOptions(key_folding="safe", key_folding_depth=2)
        result = encode({"a": {"b": {"c": 1}}}, opts)
        assert result.split("\n") == ["a.b:", "  c: 1"]

    def test_folding_stops_at_segment_needing_quotes(self):
        result = encode({"a": {"b c": 1}}, EncodeOptions(key_folding="safe"))
        assert result.split("\n") == ["a:", '  "b c": 1']

    def test_collision_with_dotted_top_level_key(self):
        data = {"a": {"b": {"c": 1}}, "a.b.d": 2}
        result = encode(data, EncodeOptions(key_folding="safe"))
        assert result.split("\n") == ["a:", "  b:", "    c: 1", "a.b.d: 2"]

    def test_nested_objects_fold(self):
        data = {"x": {"y": 1, "z": {"w": {"v": 2}}}}
        result = encode(data, EncodeOptions(key_folding="safe"))
        assert result.split("\n") == ["x:", "  y: 1", "  z.w.v: 2"]

    def test_folding_continues_below_folded_chain(self):
        data = {"a": {"b": {"c": 1, "d": {"e": 2}}}}
        result = encode(data, EncodeOptions(key_folding="safe"))
        assert result.split("\n") == ["a.b:", "  c: 1", "  d.e: 2"]

    def test_nested_collision_with_dotted_sibling(self):
        data = {"a": {"y": {"z": {"q": 1}}, "y.z.r": 2}}
        result = encode(data, EncodeOptions(key_folding="safe"))
        assert result.split("\n") == [
            "a:",
            "  y:",
            "    z:",
            "      q: 1",
            "  y.z.r: 2",
        ]

    def test_collision_disables_folding_below(self):
        data = {"a": {"b": {"c": {"d": 1}}}, "a.x": 2}
        result = encode(data, EncodeOptions(key_folding="safe"))
        assert result.split("\n") == ["a:", "  b:", "    c:", "      d: 1", "a.x: 2"]


class TestDelimiters:
    """Test delimiter options."""

    def test_tab_delimiter(self):
        result = encode({"items": [1, 2, 3]}, EncodeOptions(delimiter="\t"))
        assert result == "items[3\t]: 1\t2\t3"

    def test_pipe_delimiter(self):
        result = encode({"items": [1, 2, 3]}, EncodeOptions(delimiter="|"))
        assert result == "items[3|]: 1|2|3"

    def test_named_delimiter(self):
        assert EncodeOptions(delimiter="pipe").delimiter == "|"

    def test_pipe_table(self):
        data = [{"a": 1, "b": 2}, {"a": 3, "b": 4}]
        result = encode(data, EncodeOptions(delimiter="pipe"))
        assert result.split("\n") == ["[2|]{a|b}:", "  1|2", "  3|4"]

    def test_invalid_delimiter(self):
        with pytest.raises(ValueError):
            EncodeOptions(delimiter=";")


class TestIndentation:
    """Test indentation options."""

    def test_custom_indent(self):
        assert encode({"a": {"b": 1}}, EncodeOptions(indent=4)) == "a:\n    b: 1"

    def test_list_item_continuation_follows_indent(self):
        result = encode({"xs": [{"a": 1, "b": 2}, 3]}, EncodeOptions(indent=4))
        assert result.split("\n") == ["xs[2]:", "    - a: 1", "        b: 2", "    - 3"]


class TestNormalization:
    """Test value normalization."""

    def test_tuple_to_list(self):
        assert encode({"items": (1, 2, 3)}) == "items[3]: 1,2,3"

    def test_set_to_sorted_list(self):
        assert encode({"items": {3, 1, 2}}) == "items[3]: 1,2,3"

    def test_json_string_input(self):
        assert encode('{"a": [1, 2]}') == "a[2]: 1,2"

    def test_invalid_json_string_stays_string(self):
        assert encode("{oops") == '"{oops"'

    def test_dataclass(self):
        @dataclass
        class Point:
            x: int
            y: int

        assert encode(Point(1, 2)) == "x: 1\ny: 2"

    def test_namedtuple(self):
        Pair = namedtuple("Pair", "left right")
        assert encode(Pair("a", "b")) == "left: a\nright: b"

    def test_toon_convertible(self):
        class Collection:
            def __init__(self, items):
                self.items = items

            def to_toon_value(self):
                return list(self.items)

        assert encode({"c": Collection([1, 2])}) == "c[2]: 1,2"

    def test_generator(self):
        assert encode({"n": (i for i in range(3))}) == "n[3]: 0,1,2"


class TestEncodeLines:
    """Test the line generator."""

    def test_yields_lines(self):
        assert list(encode_lines({"a": 1, "b": {"c": 2}})) == ["a: 1", "b:", "  c: 2"]

    def test_empty_root(self):
        assert list(encode_lines({})) == []
