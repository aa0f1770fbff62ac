"""
Decoder Tests - grammar, escapes, numbers, records, enums and diagnostics.
"""

import enum
import io
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import pytest

from ron import (
    Char,
    ErrorCode,
    RonIOError,
    RonSyntaxError,
    Tagged,
    TaggedEnum,
    Unit,
    decode,
    f32,
    from_bytes,
    from_iter,
    from_reader,
    from_str,
    u8,
)


class Color(enum.Enum):
    Red = 1
    Green = 2


@dataclass
class AB:
    a: int
    b: int


@dataclass
class Circle:
    r: float


@dataclass
class Settings:
    name: str
    tags: List[str] = field(default_factory=list)
    retries: int = 3
    color: Optional[Color] = None


Foo = TaggedEnum("Foo", Var1=Tuple[u8], Var2=List[str], Nothing=None)
Shape = TaggedEnum("Shape", Circle=Circle, Labels=Dict[str, int])


def syntax_error(text, target=Any, options=None) -> RonSyntaxError:
    with pytest.raises(RonSyntaxError) as exc_info:
        decode(text, target, options)
    return exc_info.value


# =============================================================================
# Literals
# =============================================================================

class TestLiterals:

    def test_unit(self):
        assert decode("()", Unit) == ()
        assert decode("()") is None

    def test_bool(self):
        assert decode("true") is True
        assert decode(" false ", bool) is False

    def test_unknown_identifier(self):
        err = syntax_error("nope")
        assert err.code is ErrorCode.EXPECTED_SOME_VALUE
        assert (err.line, err.column) == (1, 1)

    def test_char(self):
        value = decode("'x'")
        assert value == "x"
        assert isinstance(value, Char)
        assert decode("'\\n'", Char) == "\n"

    def test_char_with_two_characters(self):
        err = syntax_error("'xy'", Char)
        assert err.code is ErrorCode.EXPECTED_CONVERSION

    def test_type_mismatch(self):
        err = syntax_error('["a"]', List[int])
        assert err.code is ErrorCode.EXPECTED_CONVERSION
        assert err.column == 2

    def test_unit_needs_closing_paren(self):
        assert syntax_error("(1)").code is ErrorCode.EXPECTED_SOME_VALUE
        assert syntax_error("(").code is ErrorCode.EOF_WHILE_PARSING_VALUE

    def test_empty_input(self):
        err = syntax_error("   ")
        assert err.code is ErrorCode.EOF_WHILE_PARSING_VALUE

    def test_trailing_characters(self):
        err = syntax_error("() extra")
        assert err.code is ErrorCode.TRAILING_CHARACTERS
        assert (err.line, err.column) == (1, 4)

    def test_trailing_whitespace_is_fine(self):
        assert decode("1 \n\t") == 1


# =============================================================================
# Strings and escapes
# =============================================================================

class TestStrings:

    def test_raw_newline(self):
        assert decode('"a\n b"') == "a\n b"

    def test_simple_escapes(self):
        assert decode(r'"\n\t\\\"\'"') == "\n\t\\\"'"

    def test_unicode_escape(self):
        assert decode(r'"\u00e9"') == "\u00e9"

    def test_surrogate_pair(self):
        assert decode(r'"\ud83d\ude00"') == "\U0001F600"

    def test_utf8_passthrough(self):
        assert decode('"héllo ✓"') == "héllo ✓"

    def test_lone_leading_surrogate(self):
        err = syntax_error(r'"\uD800"')
        assert err.code is ErrorCode.LONE_LEADING_SURROGATE_IN_HEX_ESCAPE
        assert (err.line, err.column) == (1, 2)

    def test_leading_surrogate_followed_by_other_escape(self):
        err = syntax_error(r'"\uD800\n"')
        assert err.code is ErrorCode.LONE_LEADING_SURROGATE_IN_HEX_ESCAPE

    def test_invalid_trailing_surrogate(self):
        err = syntax_error(r'"\uD800\u0041"')
        assert err.code is ErrorCode.INVALID_UNICODE_CODE_POINT
        assert err.column == 8

    def test_lone_trailing_surrogate(self):
        err = syntax_error(r'"\uDC00"')
        assert err.code is ErrorCode.INVALID_UNICODE_CODE_POINT
        assert err.column == 2

    def test_unrecognized_hex(self):
        err = syntax_error(r'"\uZZZZ"')
        assert err.code is ErrorCode.UNRECOGNIZED_HEX
        assert err.column == 4

    def test_not_four_digits(self):
        err = syntax_error(r'"\u12"')
        assert err.code is ErrorCode.NOT_FOUR_DIGIT
        assert err.column == 6

    def test_end_of_hex_escape(self):
        err = syntax_error(r'"\u12')
        assert err.code is ErrorCode.UNEXPECTED_END_OF_HEX_ESCAPE

    def test_invalid_escape(self):
        err = syntax_error(r'"\q"')
        assert err.code is ErrorCode.INVALID_ESCAPE
        assert err.column == 3

    def test_unterminated_string(self):
        assert syntax_error('"abc').code is ErrorCode.EOF_WHILE_PARSING_STRING

    def test_not_utf8(self):
        with pytest.raises(RonSyntaxError) as exc_info:
            from_bytes(b'"\xff"')
        assert exc_info.value.code is ErrorCode.NOT_UTF8


# =============================================================================
# Numbers
# =============================================================================

class TestNumbers:

    def test_integers(self):
        assert decode("-12") == -12
        assert decode("+7") == 7
        assert decode("255", u8) == 255

    def test_floats(self):
        assert decode("1.5e3") == 1500.0
        assert decode("2E-2") == 0.02
        assert decode("0.5", f32) == 0.5
        assert decode("3", float) == 3.0

    def test_f32_target_narrows_like_the_type(self):
        value = decode("0.1", f32)
        assert isinstance(value, f32)
        assert value == f32(0.1)
        assert value != 0.1

    def test_width_overflow(self):
        err = syntax_error("300", u8)
        assert err.code is ErrorCode.INVALID_NUMBER
        assert err.column == 1
        assert syntax_error("-1", u8).code is ErrorCode.INVALID_NUMBER
        assert syntax_error("1e39", f32).code is ErrorCode.INVALID_NUMBER

    def test_fraction_for_integer_target(self):
        assert syntax_error("1.5", int).code is ErrorCode.INVALID_NUMBER

    def test_malformed_numbers(self):
        assert syntax_error("-").code is ErrorCode.INVALID_NUMBER
        assert syntax_error("1.").code is ErrorCode.INVALID_NUMBER
        assert syntax_error("1e").code is ErrorCode.INVALID_NUMBER


# =============================================================================
# Sequences and maps
# =============================================================================

class TestCollections:

    def test_sequence(self):
        assert decode("[1, 2, 3]") == [1, 2, 3]
        assert decode("[1,2,]") == [1, 2]

    def test_empty_with_whitespace(self):
        assert decode("[ \n ]") == []
        assert decode("{ \n }") == {}

    def test_typed_sequence(self):
        assert decode("[1, 2]", Tuple[int, ...]) == (1, 2)
        assert decode('[1, "a"]', Tuple[int, str]) == (1, "a")

    def test_tuple_arity(self):
        assert syntax_error("[1]", Tuple[int, int]).code is ErrorCode.EXPECTED_SOME_VALUE
        assert syntax_error("[1, 2, 3]", Tuple[int, int]).code is ErrorCode.EXPECTED_LIST_COMMA_OR_END

    def test_missing_comma(self):
        err = syntax_error("[1 2]")
        assert err.code is ErrorCode.EXPECTED_LIST_COMMA_OR_END
        assert err.column == 4

    def test_double_comma(self):
        err = syntax_error("[1,,]")
        assert err.code is ErrorCode.EXPECTED_SOME_VALUE
        assert err.column == 4

    def test_eof_in_sequence(self):
        assert syntax_error("[1,").code is ErrorCode.EOF_WHILE_PARSING_ARRAY
        assert syntax_error("[1").code is ErrorCode.EOF_WHILE_PARSING_ARRAY

    def test_map(self):
        assert decode('{"a": [1, 2], "b": ()}') == {"a": [1, 2], "b": None}
        assert decode('{"a": 1,}') == {"a": 1}

    def test_map_with_bare_keys(self):
        assert decode("{a: 1, b: true}") == {"a": 1, "b": True}

    def test_map_with_value_keys(self):
        assert decode('{1: "x", [1, 2]: "y"}') == {1: "x", (1, 2): "y"}

    def test_typed_map(self):
        assert decode("{a: 1}", Dict[str, int]) == {"a": 1}
        assert decode("{1: 2}", Dict[int, int]) == {1: 2}

    def test_key_must_be_a_value(self):
        err = syntax_error("{,}")
        assert err.code is ErrorCode.KEY_MUST_BE_A_VALUE
        assert err.column == 2

    def test_expected_colon(self):
        err = syntax_error('{"a" 1}')
        assert err.code is ErrorCode.EXPECTED_COLON
        assert err.column == 6

    def test_expected_comma_or_end(self):
        err = syntax_error('{"a": 1 "b": 2}')
        assert err.code is ErrorCode.EXPECTED_OBJECT_COMMA_OR_END
        assert err.column == 9

    def test_eof_in_map(self):
        assert syntax_error('{"a": 1').code is ErrorCode.EOF_WHILE_PARSING_MAP
        assert syntax_error('{"a":').code is ErrorCode.EOF_WHILE_PARSING_MAP

    def test_missing_value_position_in_pretty_input(self):
        err = syntax_error("{\n  a: ,\n}")
        assert err.code is ErrorCode.EXPECTED_SOME_VALUE
        assert (err.line, err.column) == (2, 6)

    def test_duplicate_keys_last_write_wins(self):
        assert decode("{a: 1, a: 2}") == {"a": 2}

    def test_duplicate_keys_rejected_on_request(self):
        err = syntax_error("{a: 1, a: 2}", options={"rejectDuplicateKeys": True})
        assert err.code is ErrorCode.DUPLICATE_KEY
        assert err.field == "a"
        assert err.column == 8

    def test_max_depth(self):
        err = syntax_error("[[[1]]]", options={"maxDepth": 2})
        assert err.code is ErrorCode.RECURSION_LIMIT_EXCEEDED
        assert err.column == 3
        assert decode("[[[1]]]", options={"maxDepth": 3}) == [[[1]]]

    def test_max_depth_beyond_interpreter_stack(self):
        text = "[" * 5000 + "]" * 5000
        err = syntax_error(text, options={"maxDepth": 100000})
        assert err.code is ErrorCode.RECURSION_LIMIT_EXCEEDED


# =============================================================================
# Options
# =============================================================================

class TestOptions:

    def test_none(self):
        assert decode("()", Optional[int]) is None

    def test_some(self):
        assert decode("5", Optional[int]) == 5
        assert decode("[()]", List[Optional[str]]) == [None]


# =============================================================================
# Records
# =============================================================================

class TestRecords:

    def test_bare_and_quoted_keys(self):
        assert decode("{a: 1, b: 2}", AB) == AB(1, 2)
        assert decode('{"b": 2, "a": 1}', AB) == AB(1, 2)

    def test_unknown_field(self):
        err = syntax_error("{a: 1, c: 2}", AB)
        assert err.code is ErrorCode.UNKNOWN_FIELD
        assert err.field == "c"
        assert err.column == 8

    def test_duplicate_field_rejected_on_request(self):
        assert decode("{a: 1, a: 2, b: 3}", AB) == AB(2, 3)
        err = syntax_error("{a: 1, a: 2}", AB, {"rejectDuplicateKeys": True})
        assert err.code is ErrorCode.DUPLICATE_KEY
        assert err.field == "a"
        assert err.column == 8

    def test_missing_field(self):
        err = syntax_error("{a: 1}", AB)
        assert err.code is ErrorCode.MISSING_FIELD
        assert err.field == "b"
        assert err.column == 6

    def test_defaults_fill_absent_fields(self):
        value = decode('{name: "svc", color: ¶Green¶}', Settings)
        assert value == Settings(name="svc", tags=[], retries=3, color=Color.Green)

    def test_nested_records(self):
        assert decode("[{a: 1, b: 2}]", List[AB]) == [AB(1, 2)]

    def test_non_identifier_key(self):
        assert syntax_error("{1: 2}", AB).code is ErrorCode.EXPECTED_NAME

    def test_eof_in_record(self):
        assert syntax_error("{a: 1", AB).code is ErrorCode.EOF_WHILE_PARSING_OBJECT

    def test_duplicate_field_last_write_wins(self):
        assert decode("{a: 1, b: 2, a: 3}", AB) == AB(3, 2)


# =============================================================================
# Enums
# =============================================================================

class TestEnums:

    def test_sequence_payload(self):
        assert decode('{"Var2": ["a", "b"]}', Foo) == Tagged("Var2", ["a", "b"])
        assert decode('{"Var1": [7]}', Foo) == Tagged("Var1", (7,))

    def test_bare_variant_key(self):
        assert decode("{Var2: []}", Foo) == Tagged("Var2", [])

    def test_unit_variant(self):
        assert decode("¶Nothing¶", Foo) == Tagged("Nothing")
        assert decode('{"Nothing": ()}', Foo) == Tagged("Nothing")

    def test_record_and_map_payloads(self):
        assert decode('{"Circle": {r: 2.0}}', Shape) == Tagged("Circle", Circle(2.0))
        assert decode('{"Labels": {x: 1}}', Shape) == Tagged("Labels", {"x": 1})

    def test_python_enum(self):
        assert decode("¶Red¶", Color) is Color.Red
        assert decode('{"Green": ()}', Color) is Color.Green

    def test_unknown_variant(self):
        err = syntax_error('{"Var9": []}', Foo)
        assert err.code is ErrorCode.UNKNOWN_VARIANT
        assert err.field == "Var9"
        assert err.column == 2
        assert syntax_error("¶Blue¶", Color).code is ErrorCode.UNKNOWN_VARIANT

    def test_variants_are_case_sensitive(self):
        assert syntax_error("¶red¶", Color).code is ErrorCode.UNKNOWN_VARIANT

    def test_payload_variant_needs_payload(self):
        assert syntax_error("¶Var2¶", Foo).code is ErrorCode.EXPECTED_ENUM_MAP_START

    def test_malformed_enums(self):
        assert syntax_error("[1]", Foo).code is ErrorCode.EXPECTED_ENUM_MAP_START
        assert syntax_error(",", Foo).code is ErrorCode.EXPECTED_ENUM_TOKEN
        assert syntax_error("{1: []}", Foo).code is ErrorCode.EXPECTED_ENUM_VARIANT_STRING
        assert syntax_error('{"Var2" []}', Foo).code is ErrorCode.EXPECTED_COLON
        assert syntax_error('{"Var2": [] x', Foo).code is ErrorCode.EXPECTED_ENUM_END_TOKEN
        assert syntax_error("¶Red", Color).code is ErrorCode.EXPECTED_ENUM_END

    def test_self_describing_tag(self):
        assert decode("[¶A¶, ¶B¶]") == [Tagged("A"), Tagged("B")]


# =============================================================================
# Input sources
# =============================================================================

class FailingReader:
    def read(self, n):
        raise OSError("connection reset")


class TestSources:

    TEXT = '{"a": [1, 2.5, "x"]}'
    EXPECTED = {"a": [1, 2.5, "x"]}

    def test_from_str(self):
        assert from_str(self.TEXT) == self.EXPECTED

    def test_from_bytes(self):
        assert from_bytes(self.TEXT.encode()) == self.EXPECTED
        assert from_bytes(bytearray(self.TEXT.encode())) == self.EXPECTED

    def test_from_iter_of_ints(self):
        assert from_iter(iter(self.TEXT.encode())) == self.EXPECTED

    def test_from_iter_of_chunks(self):
        assert from_iter([b'{"a": [1,', b" 2.5, ", b'"x"]}']) == self.EXPECTED

    def test_from_reader(self):
        assert from_reader(io.BytesIO(self.TEXT.encode())) == self.EXPECTED

    def test_positions_match_across_sources(self):
        text = b"[\n  1,\n  ?\n]"
        errors = []
        for parse in (lambda: from_bytes(text), lambda: from_iter(text), lambda: from_reader(io.BytesIO(text))):
            with pytest.raises(RonSyntaxError) as exc_info:
                parse()
            errors.append((exc_info.value.code, exc_info.value.line, exc_info.value.column))
        assert errors == [(ErrorCode.EXPECTED_SOME_VALUE, 3, 3)] * 3

    def test_iter_item_outside_byte_range(self):
        with pytest.raises(RonIOError):
            from_iter([0x5B, 300, 0x5D])

    def test_failing_reader(self):
        with pytest.raises(RonIOError):
            from_reader(FailingReader())

    def test_closed_reader(self):
        stream = io.BytesIO(b"[1]")
        stream.close()
        with pytest.raises(RonIOError):
            from_reader(stream)


# =============================================================================
# Custom targets
# =============================================================================

class Celsius:
    def __init__(self, degrees: float) -> None:
        self.degrees = degrees

    @classmethod
    def __ron_deserialize__(cls, value):
        if not isinstance(value, (int, float)):
            raise TypeError("degrees must be a number")
        return cls(float(value))


class TestCustomTargets:

    def test_hook_builds_value(self):
        assert decode("21.5", Celsius).degrees == 21.5

    def test_hook_rejection_is_a_conversion_error(self):
        err = syntax_error('"warm"', Celsius)
        assert err.code is ErrorCode.EXPECTED_CONVERSION

    def test_unsupported_target(self):
        with pytest.raises(TypeError):
            decode("1", complex)
