"""Punctuation strategies used by the encoder."""

from typing import BinaryIO

from .constants import COLON, COMMA, NEWLINE
from .types import Depth, Indent, indent_bytes


class Formatter:
    """Writes the structural punctuation between encoded values.

    ``delim`` is always a single ASCII byte such as ``b"["`` or ``b"}"``.
    """

    def open(self, sink: BinaryIO, delim: bytes) -> None:
        raise NotImplementedError

    def comma(self, sink: BinaryIO, first: bool) -> None:
        raise NotImplementedError

    def colon(self, sink: BinaryIO) -> None:
        raise NotImplementedError

    def close(self, sink: BinaryIO, delim: bytes) -> None:
        raise NotImplementedError


class CompactFormatter(Formatter):
    """No whitespace at all: ``{"a":[1,2]}``."""

    def open(self, sink: BinaryIO, delim: bytes) -> None:
        sink.write(delim)

    def comma(self, sink: BinaryIO, first: bool) -> None:
        if not first:
            sink.write(COMMA)

    def colon(self, sink: BinaryIO) -> None:
        sink.write(COLON)

    def close(self, sink: BinaryIO, delim: bytes) -> None:
        sink.write(delim)


class PrettyFormatter(Formatter):
    """One element per line, nested scopes indented by ``indent``.

    Args:
        indent: Spaces per level, or the indent text itself (default: two spaces)
    """

    def __init__(self, indent: Indent = 2) -> None:
        self.indent = indent_bytes(indent)
        self.depth: Depth = 0

    def open(self, sink: BinaryIO, delim: bytes) -> None:
        self.depth += 1
        sink.write(delim)

    def comma(self, sink: BinaryIO, first: bool) -> None:
        sink.write(NEWLINE if first else COMMA + NEWLINE)
        self._indent(sink)

    def colon(self, sink: BinaryIO) -> None:
        sink.write(b": ")

    def close(self, sink: BinaryIO, delim: bytes) -> None:
        self.depth -= 1
        sink.write(NEWLINE)
        self._indent(sink)
        sink.write(delim)

    def _indent(self, sink: BinaryIO) -> None:
        if self.depth and self.indent:
            sink.write(self.indent * self.depth)
