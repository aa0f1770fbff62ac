"""Core RON decoding functionality.

The decoder is a recursive-descent parser with one method per production.
Which production runs is chosen by the ``Shape`` of the requested target
(see ``ron.traversal``); ``Any`` selects the self-describing reading.
"""

import logging
from typing import Any, BinaryIO, Dict, Iterable, List, Optional, Union

from .constants import (
    CHAR_QUOTE,
    COLON,
    COMMA,
    DIGITS,
    ENUM_MARKER_BYTES,
    ESCAPES,
    HEX_DIGITS,
    IDENT_CONTINUE,
    IDENT_START,
    MAP_CLOSE,
    MAP_OPEN,
    SEQ_CLOSE,
    SEQ_OPEN,
    STRING_QUOTE,
)
from .errors import ErrorCode, MissingFieldError
from .lexer import BufferSource, ByteSource, Chunk, IterSource, Lexer, Position, StreamSource
from .traversal import ANY, Kind, Shape, build_enum, build_record, parse_float, parse_int, parse_number, resolve_target
from .types import Char, DecodeOptions, ResolvedDecodeOptions, Tagged, Unit, resolve_decode_options

logger = logging.getLogger(__name__)

_BACKSLASH = ord("\\")
_QUOTE = STRING_QUOTE[0]
_APOSTROPHE = CHAR_QUOTE[0]
_SEQ_OPEN = SEQ_OPEN[0]
_SEQ_CLOSE = SEQ_CLOSE[0]
_MAP_OPEN = MAP_OPEN[0]
_MAP_CLOSE = MAP_CLOSE[0]
_COMMA = COMMA[0]
_COLON = COLON[0]
_PAREN_OPEN = ord("(")
_PAREN_CLOSE = ord(")")
_DOT = ord(".")
_SIGNS = frozenset(b"+-")
_EXPONENT = frozenset(b"eE")
_MARKER_LEAD, _MARKER_TAIL = ENUM_MARKER_BYTES
_U = ord("u")

_VALUE_START = frozenset(b"()\"'[{+-") | DIGITS | IDENT_START | {_MARKER_LEAD}

UNIT_SHAPE = Shape(Kind.UNIT, Unit)


def _hashable(key: Any) -> Any:
    if isinstance(key, list):
        return tuple(_hashable(item) for item in key)
    if isinstance(key, dict):
        return tuple((_hashable(k), _hashable(v)) for k, v in key.items())
    return key


class Decoder:
    """Parses one value from a ``Lexer``.

    Args:
        lexer: Position-tracking cursor over the input
        options: Resolved decoding options
    """

    def __init__(self, lexer: Lexer, options: Optional[ResolvedDecodeOptions] = None) -> None:
        self.lexer = lexer
        self.options = options or ResolvedDecodeOptions()
        self.depth = 0

    def decode(self, target: Any = Any) -> Any:
        """Parse a complete document as ``target``.

        Raises:
            RonSyntaxError: On the first syntax error, with its position
            RonIOError: If the underlying source fails
        """
        shape = resolve_target(target)
        try:
            value = self.parse_value(shape)
        except RecursionError as err:
            # maxDepth set beyond the interpreter's own stack limit
            raise self.lexer.error(ErrorCode.RECURSION_LIMIT_EXCEEDED) from err
        if self.lexer.skip_whitespace() is not None:
            raise self.lexer.error(ErrorCode.TRAILING_CHARACTERS)
        return value

    # --- dispatch ------------------------------------------------------------

    def parse_value(self, shape: Shape) -> Any:
        lexer = self.lexer
        byte = lexer.skip_whitespace()
        if byte is None:
            raise lexer.error(ErrorCode.EOF_WHILE_PARSING_VALUE)

        kind = shape.kind
        if kind is Kind.ANY:
            return self.parse_any(byte)
        if kind is Kind.OPTION:
            if byte == _PAREN_OPEN:
                self.parse_unit()
                return None
            return self.parse_value(shape.args[0])
        if kind is Kind.UNIT or kind is Kind.NONE:
            if byte != _PAREN_OPEN:
                raise self._mismatch(byte)
            self.parse_unit()
            return () if kind is Kind.UNIT else None
        if kind is Kind.BOOL:
            if byte not in IDENT_START:
                raise self._mismatch(byte)
            return self.parse_bool()
        if kind is Kind.INT or kind is Kind.FLOAT:
            if byte not in DIGITS and byte not in _SIGNS:
                raise self._mismatch(byte)
            start = lexer.position
            text = self.scan_number()
            try:
                if kind is Kind.INT:
                    return parse_int(text, shape.target)
                return parse_float(text, shape.target)
            except (ValueError, OverflowError) as err:
                raise lexer.error(ErrorCode.INVALID_NUMBER, at=start) from err
        if kind is Kind.STR:
            if byte != _QUOTE:
                raise self._mismatch(byte)
            return self.parse_string()
        if kind is Kind.CHAR:
            if byte != _APOSTROPHE:
                raise self._mismatch(byte)
            return self.parse_char()
        if kind is Kind.SEQ or kind is Kind.TUPLE:
            if byte != _SEQ_OPEN:
                raise self._mismatch(byte)
            return self.parse_seq(shape)
        if kind is Kind.MAP:
            if byte != _MAP_OPEN:
                raise self._mismatch(byte)
            return self.parse_map(shape.args[0], shape.args[1])
        if kind is Kind.RECORD:
            if byte != _MAP_OPEN:
                raise self._mismatch(byte)
            return self.parse_record(shape)
        if kind is Kind.ENUM or kind is Kind.TAGGED_ENUM:
            return self.parse_enum(shape, byte)
        if kind is Kind.CUSTOM:
            start = lexer.position
            value = self.parse_any(byte)
            try:
                return shape.build(value)
            except (ValueError, TypeError) as err:
                raise lexer.error(ErrorCode.EXPECTED_CONVERSION, at=start) from err
        raise TypeError(f"Unhandled shape {kind}")

    def parse_any(self, byte: int) -> Any:
        """Self-describing reading of the value starting with ``byte``."""
        if byte == _PAREN_OPEN:
            self.parse_unit()
            return None
        if byte == _QUOTE:
            return self.parse_string()
        if byte == _APOSTROPHE:
            return self.parse_char()
        if byte == _SEQ_OPEN:
            return self.parse_seq(Shape(Kind.SEQ, list, args=(ANY,), build=list))
        if byte == _MAP_OPEN:
            return self.parse_map(ANY, ANY)
        if byte == _MARKER_LEAD:
            return Tagged(self.parse_enum_tag())
        if byte in DIGITS or byte in _SIGNS:
            start = self.lexer.position
            text = self.scan_number()
            try:
                return parse_number(text)
            except ValueError as err:
                raise self.lexer.error(ErrorCode.INVALID_NUMBER, at=start) from err
        if byte in IDENT_START:
            return self.parse_bool()
        raise self.lexer.error(ErrorCode.EXPECTED_SOME_VALUE)

    def _mismatch(self, byte: int):
        if byte in _VALUE_START:
            return self.lexer.error(ErrorCode.EXPECTED_CONVERSION)
        return self.lexer.error(ErrorCode.EXPECTED_SOME_VALUE)

    def _enter(self, at: Position) -> None:
        self.depth += 1
        if self.depth > self.options.max_depth:
            raise self.lexer.error(ErrorCode.RECURSION_LIMIT_EXCEEDED, at=at)

    def _leave(self) -> None:
        self.depth -= 1

    # --- literals ------------------------------------------------------------

    def parse_unit(self) -> None:
        lexer = self.lexer
        lexer.next()
        byte = lexer.peek()
        if byte is None:
            raise lexer.error(ErrorCode.EOF_WHILE_PARSING_VALUE)
        if byte != _PAREN_CLOSE:
            raise lexer.error(ErrorCode.EXPECTED_SOME_VALUE)
        lexer.next()

    def parse_ident(self) -> str:
        lexer = self.lexer
        byte = lexer.peek()
        if byte is None or byte not in IDENT_START:
            raise lexer.error(ErrorCode.EXPECTED_SOME_IDENT)
        name = bytearray()
        while byte is not None and byte in IDENT_CONTINUE:
            name.append(lexer.next())
            byte = lexer.peek()
        return name.decode("ascii")

    def parse_bool(self) -> bool:
        start = self.lexer.position
        ident = self.parse_ident()
        if ident == "true":
            return True
        if ident == "false":
            return False
        raise self.lexer.error(ErrorCode.EXPECTED_SOME_VALUE, at=start)

    def scan_number(self) -> str:
        """Consume sign, digits, fraction and exponent; return the raw text."""
        lexer = self.lexer
        text = bytearray()
        if lexer.peek() in _SIGNS:
            text.append(lexer.next())
        self._scan_digits(text)
        if lexer.peek() == _DOT:
            text.append(lexer.next())
            self._scan_digits(text)
        if lexer.peek() in _EXPONENT:
            text.append(lexer.next())
            if lexer.peek() in _SIGNS:
                text.append(lexer.next())
            self._scan_digits(text)
        return text.decode("ascii")

    def _scan_digits(self, text: bytearray) -> None:
        lexer = self.lexer
        byte = lexer.peek()
        if byte is None or byte not in DIGITS:
            raise lexer.error(ErrorCode.INVALID_NUMBER)
        while byte is not None and byte in DIGITS:
            text.append(lexer.next())
            byte = lexer.peek()

    def parse_string(self) -> str:
        return self._parse_quoted(_QUOTE)

    def parse_char(self) -> Char:
        start = self.lexer.position
        text = self._parse_quoted(_APOSTROPHE)
        if len(text) != 1:
            raise self.lexer.error(ErrorCode.EXPECTED_CONVERSION, at=start)
        return Char(text)

    def _parse_quoted(self, quote: int) -> str:
        lexer = self.lexer
        start = lexer.position
        lexer.next()
        buffer = bytearray()
        while True:
            byte = lexer.next()
            if byte is None:
                raise lexer.error(ErrorCode.EOF_WHILE_PARSING_STRING)
            if byte == quote:
                break
            if byte == _BACKSLASH:
                self._parse_escape(buffer, quote)
            else:
                buffer.append(byte)
        try:
            return buffer.decode("utf-8")
        except UnicodeDecodeError as err:
            raise lexer.error(ErrorCode.NOT_UTF8, at=start) from err

    def _parse_escape(self, buffer: bytearray, quote: int) -> None:
        """Decode the escape after a consumed backslash into ``buffer``."""
        lexer = self.lexer
        # the backslash sits one column to the left of the escape letter
        escape = lexer.position
        backslash = Position(escape.line, escape.column - 1, escape.offset - 1)
        byte = lexer.next()
        if byte is None:
            raise lexer.error(ErrorCode.EOF_WHILE_PARSING_STRING)
        if byte in ESCAPES:
            buffer += ESCAPES[byte].encode("utf-8")
            return
        if byte != _U:
            raise lexer.error(ErrorCode.INVALID_ESCAPE, at=escape)

        code = self._parse_hex4(quote)
        if 0xD800 <= code <= 0xDBFF:
            if lexer.peek() != _BACKSLASH:
                raise lexer.error(ErrorCode.LONE_LEADING_SURROGATE_IN_HEX_ESCAPE, at=backslash)
            trail_start = lexer.position
            lexer.next()
            if lexer.peek() != _U:
                raise lexer.error(ErrorCode.LONE_LEADING_SURROGATE_IN_HEX_ESCAPE, at=backslash)
            lexer.next()
            trail = self._parse_hex4(quote)
            if not 0xDC00 <= trail <= 0xDFFF:
                raise lexer.error(ErrorCode.INVALID_UNICODE_CODE_POINT, at=trail_start)
            code = 0x10000 + ((code - 0xD800) << 10) + (trail - 0xDC00)
        elif 0xDC00 <= code <= 0xDFFF:
            raise lexer.error(ErrorCode.INVALID_UNICODE_CODE_POINT, at=backslash)
        buffer += chr(code).encode("utf-8")

    def _parse_hex4(self, quote: int) -> int:
        lexer = self.lexer
        code = 0
        for _ in range(4):
            byte = lexer.peek()
            if byte is None:
                raise lexer.error(ErrorCode.UNEXPECTED_END_OF_HEX_ESCAPE)
            if byte == quote:
                raise lexer.error(ErrorCode.NOT_FOUR_DIGIT)
            if byte not in HEX_DIGITS:
                raise lexer.error(ErrorCode.UNRECOGNIZED_HEX)
            lexer.next()
            code = (code << 4) | int(chr(byte), 16)
        return code

    # --- collections ---------------------------------------------------------

    def parse_seq(self, shape: Shape) -> Any:
        lexer = self.lexer
        self._enter(lexer.position)
        lexer.next()
        fixed = shape.args if shape.kind is Kind.TUPLE else None
        items: List[Any] = []

        byte = lexer.skip_whitespace()
        if byte == _SEQ_CLOSE:
            lexer.next()
        else:
            while True:
                byte = lexer.skip_whitespace()
                if byte is None:
                    raise lexer.error(ErrorCode.EOF_WHILE_PARSING_ARRAY)
                if fixed is None:
                    element = shape.args[0]
                elif len(items) < len(fixed):
                    element = fixed[len(items)]
                else:
                    raise lexer.error(ErrorCode.EXPECTED_LIST_COMMA_OR_END)
                items.append(self.parse_value(element))

                byte = lexer.skip_whitespace()
                if byte == _COMMA:
                    lexer.next()
                    if lexer.skip_whitespace() == _SEQ_CLOSE:
                        break
                elif byte == _SEQ_CLOSE:
                    break
                elif byte is None:
                    raise lexer.error(ErrorCode.EOF_WHILE_PARSING_ARRAY)
                else:
                    raise lexer.error(ErrorCode.EXPECTED_LIST_COMMA_OR_END)
            if fixed is not None and len(items) < len(fixed):
                raise lexer.error(ErrorCode.EXPECTED_SOME_VALUE)
            lexer.next()

        self._leave()
        return shape.build(items) if shape.build is not None else items

    def _entries(self, eof: ErrorCode, parse_key, parse_entry_value) -> Position:
        """Drive the ``{ key: value, ... }`` loop; return the closing brace position.

        ``parse_key`` returns ``(key, key_position)``; ``parse_entry_value``
        receives both and stores the value.
        """
        lexer = self.lexer
        lexer.next()

        byte = lexer.skip_whitespace()
        if byte == _MAP_CLOSE:
            close = lexer.position
            lexer.next()
            return close

        while True:
            byte = lexer.skip_whitespace()
            if byte is None:
                raise lexer.error(eof)
            if byte not in _VALUE_START:
                raise lexer.error(ErrorCode.KEY_MUST_BE_A_VALUE)
            key, key_at = parse_key(byte)

            byte = lexer.skip_whitespace()
            if byte is None:
                raise lexer.error(eof)
            if byte != _COLON:
                raise lexer.error(ErrorCode.EXPECTED_COLON)
            lexer.next()
            if lexer.skip_whitespace() is None:
                raise lexer.error(eof)
            parse_entry_value(key, key_at)

            byte = lexer.skip_whitespace()
            if byte == _COMMA:
                lexer.next()
                if lexer.skip_whitespace() == _MAP_CLOSE:
                    break
            elif byte == _MAP_CLOSE:
                break
            elif byte is None:
                raise lexer.error(eof)
            else:
                raise lexer.error(ErrorCode.EXPECTED_OBJECT_COMMA_OR_END)

        close = lexer.position
        lexer.next()
        return close

    def _check_duplicate(self, seen: Any, key: Any, at: Position) -> None:
        if self.options.reject_duplicate_keys and key in seen:
            raise self.lexer.error(ErrorCode.DUPLICATE_KEY, str(key), at=at)

    def parse_map(self, key_shape: Shape, value_shape: Shape) -> Dict[Any, Any]:
        lexer = self.lexer
        self._enter(lexer.position)
        result: Dict[Any, Any] = {}
        bare_keys = key_shape.kind in (Kind.ANY, Kind.STR)

        def parse_key(byte: int):
            at = lexer.position
            if bare_keys and byte in IDENT_START:
                ident = self.parse_ident()
                key = {"true": True, "false": False}.get(ident, ident) if key_shape.kind is Kind.ANY else ident
            else:
                key = self.parse_value(key_shape)
            return _hashable(key), at

        def parse_entry_value(key: Any, at: Position) -> None:
            value = self.parse_value(value_shape)
            self._check_duplicate(result, key, at)
            result[key] = value

        self._entries(ErrorCode.EOF_WHILE_PARSING_MAP, parse_key, parse_entry_value)
        self._leave()
        return result

    def parse_record(self, shape: Shape) -> Any:
        lexer = self.lexer
        self._enter(lexer.position)
        values: Dict[str, Any] = {}

        def parse_key(byte: int):
            at = lexer.position
            if byte in IDENT_START:
                name = self.parse_ident()
            elif byte == _QUOTE:
                name = self.parse_string()
            else:
                raise lexer.error(ErrorCode.EXPECTED_NAME)
            if name not in shape.fields:
                raise lexer.error(ErrorCode.UNKNOWN_FIELD, name, at=at)
            return name, at

        def parse_entry_value(name: str, at: Position) -> None:
            value = self.parse_value(shape.fields[name].shape)
            self._check_duplicate(values, name, at)
            values[name] = value

        close = self._entries(ErrorCode.EOF_WHILE_PARSING_OBJECT, parse_key, parse_entry_value)
        self._leave()
        try:
            return build_record(shape.target, values)
        except MissingFieldError as err:
            raise lexer.error(ErrorCode.MISSING_FIELD, err.field, at=close) from err
        except (ValueError, TypeError) as err:
            raise lexer.error(ErrorCode.EXPECTED_CONVERSION, at=close) from err

    # --- enums ---------------------------------------------------------------

    def parse_enum_tag(self) -> str:
        """Parse ``¶Variant¶`` and return the variant name."""
        lexer = self.lexer
        lexer.next()
        if lexer.peek() != _MARKER_TAIL:
            raise lexer.error(ErrorCode.EXPECTED_ENUM_TOKEN)
        lexer.next()
        name = self.parse_ident()
        if lexer.peek() != _MARKER_LEAD:
            raise lexer.error(ErrorCode.EXPECTED_ENUM_END)
        lexer.next()
        if lexer.peek() != _MARKER_TAIL:
            raise lexer.error(ErrorCode.EXPECTED_ENUM_END)
        lexer.next()
        return name

    def _variant(self, shape: Shape, name: str, at: Position) -> Optional[Shape]:
        if name not in shape.variants:
            raise self.lexer.error(ErrorCode.UNKNOWN_VARIANT, name, at=at)
        return shape.variants[name]

    def parse_enum(self, shape: Shape, byte: int) -> Any:
        lexer = self.lexer
        start = lexer.position

        if byte == _MARKER_LEAD:
            name = self.parse_enum_tag()
            if self._variant(shape, name, start) is not None:
                raise lexer.error(ErrorCode.EXPECTED_ENUM_MAP_START, at=start)
            return build_enum(shape, name, ())

        if byte != _MAP_OPEN:
            if byte in _VALUE_START:
                raise lexer.error(ErrorCode.EXPECTED_ENUM_MAP_START)
            raise lexer.error(ErrorCode.EXPECTED_ENUM_TOKEN)

        self._enter(start)
        lexer.next()
        byte = lexer.skip_whitespace()
        key_at = lexer.position
        if byte is None:
            raise lexer.error(ErrorCode.EOF_WHILE_PARSING_OBJECT)
        if byte == _QUOTE:
            name = self.parse_string()
        elif byte in IDENT_START:
            name = self.parse_ident()
        else:
            raise lexer.error(ErrorCode.EXPECTED_ENUM_VARIANT_STRING)
        payload_shape = self._variant(shape, name, key_at)

        byte = lexer.skip_whitespace()
        if byte is None:
            raise lexer.error(ErrorCode.EOF_WHILE_PARSING_OBJECT)
        if byte != _COLON:
            raise lexer.error(ErrorCode.EXPECTED_COLON)
        lexer.next()

        payload = self.parse_value(payload_shape or UNIT_SHAPE)

        byte = lexer.skip_whitespace()
        if byte == _COMMA:
            lexer.next()
            byte = lexer.skip_whitespace()
        if byte is None:
            raise lexer.error(ErrorCode.EOF_WHILE_PARSING_OBJECT)
        if byte != _MAP_CLOSE:
            raise lexer.error(ErrorCode.EXPECTED_ENUM_END_TOKEN)
        lexer.next()
        self._leave()
        return build_enum(shape, name, payload)


def _decode_source(source: ByteSource, target: Any, options: Optional[DecodeOptions]) -> Any:
    resolved = resolve_decode_options(options)
    decoder = Decoder(Lexer(source), resolved)
    logger.debug("decoding %s from %s", resolve_target(target).expecting, type(source).__name__)
    return decoder.decode(target)


def from_bytes(data: Chunk, target: Any = Any, options: Optional[DecodeOptions] = None) -> Any:
    """Decode a value from an in-memory buffer."""
    return _decode_source(BufferSource(data), target, options)


def from_str(text: str, target: Any = Any, options: Optional[DecodeOptions] = None) -> Any:
    """Decode a value from a string."""
    return _decode_source(BufferSource(text.encode("utf-8", "surrogatepass")), target, options)


def from_iter(iterable: Iterable[Union[int, Chunk]], target: Any = Any, options: Optional[DecodeOptions] = None) -> Any:
    """Decode a value from an iterable of byte values or byte chunks."""
    return _decode_source(IterSource(iterable), target, options)


def from_reader(stream: BinaryIO, target: Any = Any, options: Optional[DecodeOptions] = None) -> Any:
    """Decode a value from a readable stream (read in chunks)."""
    return _decode_source(StreamSource(stream), target, options)


def decode(input_data: Union[str, bytes], target: Any = Any, options: Optional[DecodeOptions] = None) -> Any:
    """Decode RON text into a value.

    Args:
        input_data: RON text (``str``) or UTF-8 bytes
        target: Type to decode into (default: self-describing)
        options: Optional decoding options

    Returns:
        The decoded value

    Raises:
        RonSyntaxError: If the input is not valid RON for ``target``
    """
    if isinstance(input_data, str):
        return from_str(input_data, target, options)
    return from_bytes(input_data, target, options)
