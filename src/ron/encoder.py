"""Core RON encoding functionality."""

import io
import logging
from typing import Any, BinaryIO, Iterable, Optional, Sequence, Tuple

from .constants import (
    BACKSLASH,
    CHAR_QUOTE,
    EMPTY_MAP,
    EMPTY_SEQ,
    ENUM_MARKER_BYTES,
    FALSE,
    MAP_CLOSE,
    MAP_OPEN,
    SEQ_CLOSE,
    SEQ_OPEN,
    STRING_QUOTE,
    TRUE,
    UNIT,
)
from .errors import RonEncodeError, RonIOError
from .formatter import CompactFormatter, Formatter, PrettyFormatter
from .traversal import Serializer, serialize
from .types import EncodeOptions, ResolvedEncodeOptions, resolve_encode_options

logger = logging.getLogger(__name__)


class _GuardedSink:
    """Re-raises failures of the wrapped sink as ``RonIOError``."""

    def __init__(self, sink: BinaryIO) -> None:
        self.inner = sink

    def write(self, data: bytes) -> None:
        try:
            self.inner.write(data)
        except (OSError, ValueError) as err:
            raise RonIOError(f"write failed: {err}") from err


class Encoder(Serializer):
    """Writes RON for the values walked through it to a binary sink.

    Args:
        sink: Object with a binary ``write()``
        formatter: Punctuation strategy (default: compact)
        options: Resolved encoding options
    """

    def __init__(
        self,
        sink: BinaryIO,
        formatter: Optional[Formatter] = None,
        options: Optional[ResolvedEncodeOptions] = None,
    ) -> None:
        self.sink = _GuardedSink(sink)
        self.formatter = formatter or CompactFormatter()
        self.options = options or ResolvedEncodeOptions()
        self._first = False

    @classmethod
    def pretty(cls, sink: BinaryIO, options: Optional[ResolvedEncodeOptions] = None) -> "Encoder":
        options = options or ResolvedEncodeOptions(pretty=True)
        return cls(sink, PrettyFormatter(options.indent), options)

    def encode(self, value: Any) -> None:
        """Write ``value`` to the sink.

        Raises:
            RonIOError: If the sink fails
        """
        serialize(value, self)

    def _write(self, data: bytes) -> None:
        self.sink.write(data)

    def _emit_escaped(self, text: str, quote: bytes) -> None:
        data = text.encode("utf-8", "surrogatepass")
        if self.options.escape_strings:
            data = data.replace(BACKSLASH, BACKSLASH + BACKSLASH).replace(quote, BACKSLASH + quote)
        self._write(quote + data + quote)

    # scalars

    def serialize_bool(self, value: bool) -> None:
        self._write(TRUE if value else FALSE)

    def serialize_int(self, value: int, width: Optional[str] = None) -> None:
        self._write(str(int(value)).encode("ascii"))

    def serialize_float(self, value: float, width: Optional[str] = None) -> None:
        self._write(repr(float(value)).encode("ascii"))

    def serialize_char(self, value: str) -> None:
        self._emit_escaped(value, CHAR_QUOTE)

    def serialize_str(self, value: str) -> None:
        self._emit_escaped(value, STRING_QUOTE)

    def serialize_unit(self) -> None:
        self._write(UNIT)

    def serialize_none(self) -> None:
        self.serialize_unit()

    def serialize_some(self, value: Any) -> None:
        serialize(value, self)

    # collections

    def _scope(self, open_delim: bytes, close_delim: bytes, entries: Iterable[Any], write_entry) -> None:
        outer = self._first
        self.formatter.open(self.sink, open_delim)
        self._first = True
        for entry in entries:
            write_entry(entry)
        self.formatter.close(self.sink, close_delim)
        self._first = outer

    def _comma(self) -> None:
        self.formatter.comma(self.sink, self._first)
        self._first = False

    def serialize_seq(self, elements: Iterable[Any], length: Optional[int]) -> None:
        if length == 0:
            self._write(EMPTY_SEQ)
            return
        self._scope(SEQ_OPEN, SEQ_CLOSE, elements, self.serialize_seq_elt)

    def serialize_seq_elt(self, value: Any) -> None:
        self._comma()
        serialize(value, self)

    def serialize_map(self, items: Iterable[Tuple[Any, Any]], length: Optional[int]) -> None:
        if length == 0:
            self._write(EMPTY_MAP)
            return
        self._scope(MAP_OPEN, MAP_CLOSE, items, lambda item: self.serialize_map_elt(*item))

    def serialize_map_elt(self, key: Any, value: Any) -> None:
        self._comma()
        serialize(key, self)
        self.formatter.colon(self.sink)
        serialize(value, self)

    def serialize_struct(self, name: str, fields: Sequence[Tuple[str, Any]]) -> None:
        if not fields:
            self._write(EMPTY_MAP)
            return
        self._scope(MAP_OPEN, MAP_CLOSE, fields, lambda item: self._field(*item))

    def _field(self, name: str, value: Any) -> None:
        self._comma()
        self._write(name.encode("utf-8"))
        self.formatter.colon(self.sink)
        serialize(value, self)

    # enums

    def serialize_enum_unit(self, name: Optional[str], variant: str) -> None:
        self._write(ENUM_MARKER_BYTES + variant.encode("utf-8") + ENUM_MARKER_BYTES)

    def _enum_entry(self, variant: str, write_payload) -> None:
        self.formatter.open(self.sink, MAP_OPEN)
        self.formatter.comma(self.sink, True)
        self.serialize_str(variant)
        self.formatter.colon(self.sink)
        write_payload()
        self.formatter.close(self.sink, MAP_CLOSE)

    def serialize_enum_seq(self, name: Optional[str], variant: str, elements: Iterable[Any], length: Optional[int]) -> None:
        self._enum_entry(variant, lambda: self.serialize_seq(elements, length))

    def serialize_enum_map(
        self, name: Optional[str], variant: str, items: Iterable[Tuple[Any, Any]], length: Optional[int]
    ) -> None:
        self._enum_entry(variant, lambda: self.serialize_map(items, length))

    def serialize_enum_struct(self, name: Optional[str], variant: str, fields: Sequence[Tuple[str, Any]]) -> None:
        self._enum_entry(variant, lambda: self.serialize_struct(variant, fields))


def _encoder_for(sink: BinaryIO, options: ResolvedEncodeOptions) -> Encoder:
    if options.pretty:
        return Encoder.pretty(sink, options)
    return Encoder(sink, CompactFormatter(), options)


def to_writer(sink: BinaryIO, value: Any, options: Optional[EncodeOptions] = None) -> None:
    """Encode ``value`` into the binary sink ``sink``.

    Args:
        sink: Object with a binary ``write()``
        value: The value to encode
        options: Optional encoding options

    Raises:
        RonIOError: If writing to the sink fails
    """
    resolved = resolve_encode_options(options)
    logger.debug("encoding %s (pretty=%s)", type(value).__name__, resolved.pretty)
    _encoder_for(sink, resolved).encode(value)


def to_writer_pretty(sink: BinaryIO, value: Any, options: Optional[EncodeOptions] = None) -> None:
    to_writer(sink, value, {**(options or {}), "pretty": True})


def to_bytes(value: Any, options: Optional[EncodeOptions] = None) -> bytes:
    """Encode ``value`` into a bytes buffer."""
    buffer = io.BytesIO()
    to_writer(buffer, value, options)
    return buffer.getvalue()


def to_bytes_pretty(value: Any, options: Optional[EncodeOptions] = None) -> bytes:
    return to_bytes(value, {**(options or {}), "pretty": True})


def to_string(value: Any, options: Optional[EncodeOptions] = None) -> str:
    """Encode ``value`` into a string.

    Raises:
        RonEncodeError: If the encoded bytes are not valid UTF-8
    """
    data = to_bytes(value, options)
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as err:
        raise RonEncodeError(f"encoded output is not valid UTF-8: {err}") from err


def to_string_pretty(value: Any, options: Optional[EncodeOptions] = None) -> str:
    return to_string(value, {**(options or {}), "pretty": True})


def encode(value: Any, options: Optional[EncodeOptions] = None) -> str:
    """Encode a value into RON.

    Args:
        value: The value to encode
        options: Optional encoding options (``pretty`` selects the indented style)

    Returns:
        RON-formatted string
    """
    return to_string(value, options)
