"""Error taxonomy for RON encoding and decoding."""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Every diagnostic the decoder can report, with its message."""

    KEY_MUST_BE_A_VALUE = "key must be a value"

    INVALID_ESCAPE = "invalid escape"
    INVALID_NUMBER = "invalid number"
    INVALID_UNICODE_CODE_POINT = "invalid unicode code point"

    NOT_FOUR_DIGIT = "invalid \\u escape (not four digits)"
    NOT_UTF8 = "contents not utf-8"

    UNKNOWN_VARIANT = "unknown variant"

    UNKNOWN_FIELD = "unknown field"
    MISSING_FIELD = "missing field"
    DUPLICATE_KEY = "duplicate key"

    EXPECTED_COLON = "expected `:`"
    EXPECTED_CONVERSION = "expected conversion"
    EXPECTED_ENUM_END = "expected enum end"
    EXPECTED_ENUM_END_TOKEN = "expected enum map end"
    EXPECTED_ENUM_MAP_START = "expected enum map start"
    EXPECTED_ENUM_TOKEN = "expected enum token"
    EXPECTED_ENUM_VARIANT_STRING = "expected variant"
    EXPECTED_LIST_COMMA_OR_END = "expected `,` or `]`"
    EXPECTED_NAME = "expected name"
    EXPECTED_OBJECT_COMMA_OR_END = "expected `,` or `}`"
    EXPECTED_SOME_IDENT = "expected ident"
    EXPECTED_SOME_VALUE = "expected value"

    LONE_LEADING_SURROGATE_IN_HEX_ESCAPE = "lone leading surrogate in hex escape"
    UNEXPECTED_END_OF_HEX_ESCAPE = "unexpected end of hex escape"
    UNRECOGNIZED_HEX = "invalid \\u escape (unrecognized hex)"

    TRAILING_CHARACTERS = "trailing characters"
    RECURSION_LIMIT_EXCEEDED = "recursion limit exceeded"

    EOF_WHILE_PARSING_OBJECT = "EOF while parsing object"
    EOF_WHILE_PARSING_STRING = "EOF while parsing string"
    EOF_WHILE_PARSING_ARRAY = "EOF while parsing array"
    EOF_WHILE_PARSING_MAP = "EOF while parsing map"
    EOF_WHILE_PARSING_VALUE = "EOF while parsing value"

    @property
    def message(self) -> str:
        return self.value


class RonError(Exception):
    """Base class for every error raised by this package."""


class RonSyntaxError(RonError, ValueError):
    """The input is not valid notation for the requested target.

    Attributes:
        code: The specific diagnostic
        line: 1-based line of the offending byte
        column: 1-based column (in bytes) of the offending byte
        field: Field or key name for UNKNOWN_FIELD / MISSING_FIELD / DUPLICATE_KEY
    """

    def __init__(self, code: ErrorCode, line: int, column: int, field: Optional[str] = None) -> None:
        self.code = code
        self.line = line
        self.column = column
        self.field = field
        super().__init__(str(self))

    def __str__(self) -> str:
        message = self.code.message
        if self.field is not None:
            message = f'{message} "{self.field}"'
        return f"{message} at line {self.line} column {self.column}"

    def __reduce__(self):
        return (type(self), (self.code, self.line, self.column, self.field))


class RonIOError(RonError, OSError):
    """The underlying sink or source failed; the original error is the cause."""


class MissingFieldError(RonError):
    """A record was built without one of its required fields."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"missing field {field}")


class RonEncodeError(RonError, ValueError):
    """Encoded output could not be represented as text."""
