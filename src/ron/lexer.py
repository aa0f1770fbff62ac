"""Byte cursors over the supported input sources, with position tracking."""

from typing import BinaryIO, Iterable, Iterator, NamedTuple, Optional, Union

from .constants import WHITESPACE
from .errors import ErrorCode, RonIOError, RonSyntaxError

DEFAULT_CHUNK_SIZE = 8192

Chunk = Union[bytes, bytearray, memoryview, str]


class ByteSource:
    """Forward-only byte cursor with one byte of lookahead."""

    def peek(self) -> Optional[int]:
        """Return the next byte without consuming it, or None at the end."""
        raise NotImplementedError

    def next(self) -> Optional[int]:
        """Consume and return the next byte, or None at the end."""
        raise NotImplementedError

    def at_end(self) -> bool:
        return self.peek() is None


def _as_bytes(chunk: Chunk) -> bytes:
    if isinstance(chunk, str):
        return chunk.encode("utf-8")
    return bytes(chunk)


class BufferSource(ByteSource):
    """In-memory buffer."""

    def __init__(self, data: Chunk) -> None:
        self.data = _as_bytes(data)
        self.index = 0

    def peek(self) -> Optional[int]:
        if self.index < len(self.data):
            return self.data[self.index]
        return None

    def next(self) -> Optional[int]:
        byte = self.peek()
        if byte is not None:
            self.index += 1
        return byte

    def at_end(self) -> bool:
        return self.index >= len(self.data)


class _ChunkedSource(ByteSource):
    """Pulls chunks on demand and serves them byte by byte."""

    def __init__(self) -> None:
        self.chunk = b""
        self.index = 0
        self.exhausted = False

    def _pull(self) -> Optional[bytes]:
        raise NotImplementedError

    def _fill(self) -> bool:
        while self.index >= len(self.chunk):
            if self.exhausted:
                return False
            try:
                chunk = self._pull()
            except OSError as err:
                raise RonIOError(f"read failed: {err}") from err
            if chunk is None:
                self.exhausted = True
                return False
            self.chunk = chunk
            self.index = 0
        return True

    def peek(self) -> Optional[int]:
        if self._fill():
            return self.chunk[self.index]
        return None

    def next(self) -> Optional[int]:
        byte = self.peek()
        if byte is not None:
            self.index += 1
        return byte


class IterSource(_ChunkedSource):
    """Pull-based source: an iterable of byte values or of byte chunks."""

    def __init__(self, iterable: Iterable[Union[int, Chunk]]) -> None:
        super().__init__()
        self.iterator: Iterator[Union[int, Chunk]] = iter(iterable)

    def _pull(self) -> Optional[bytes]:
        try:
            item = next(self.iterator)
        except StopIteration:
            return None
        if isinstance(item, int):
            if not 0 <= item <= 255:
                raise RonIOError(f"read failed: {item} is not a byte value")
            return bytes((item,))
        return _as_bytes(item)


class StreamSource(_ChunkedSource):
    """Buffered stream: anything with ``read(n)``."""

    def __init__(self, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE) -> None:
        super().__init__()
        self.stream = stream
        self.chunk_size = chunk_size

    def _pull(self) -> Optional[bytes]:
        try:
            chunk = self.stream.read(self.chunk_size)
        except ValueError as err:
            # reading a closed stream
            raise RonIOError(f"read failed: {err}") from err
        if not chunk:
            return None
        return _as_bytes(chunk)


class Position(NamedTuple):
    line: int
    column: int
    offset: int


class Lexer:
    """Position-tracking cursor the decoder reads from.

    ``line`` and ``column`` are 1-based and always describe the next unread
    byte; ``offset`` counts bytes consumed so far.
    """

    def __init__(self, source: ByteSource) -> None:
        self.source = source
        self.line = 1
        self.column = 1
        self.offset = 0

    @property
    def position(self) -> Position:
        return Position(self.line, self.column, self.offset)

    def peek(self) -> Optional[int]:
        return self.source.peek()

    def next(self) -> Optional[int]:
        byte = self.source.next()
        if byte is None:
            return None
        self.offset += 1
        if byte == 0x0A:
            self.line += 1
            self.column = 1
        else:
            self.column += 1
        return byte

    def at_end(self) -> bool:
        return self.source.at_end()

    def skip_whitespace(self) -> Optional[int]:
        """Consume whitespace and return the next significant byte (not consumed)."""
        byte = self.peek()
        while byte is not None and byte in WHITESPACE:
            self.next()
            byte = self.peek()
        return byte

    def error(self, code: ErrorCode, field: Optional[str] = None, at: Optional[Position] = None) -> RonSyntaxError:
        """Build a syntax error stamped at ``at`` or at the next unread byte."""
        line, column, _ = at or self.position
        return RonSyntaxError(code, line, column, field)
