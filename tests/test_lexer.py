"""
Lexer Tests - byte sources and position tracking.
"""

import io

import pytest

from ron.errors import ErrorCode, RonIOError
from ron.lexer import BufferSource, IterSource, Lexer, Position, StreamSource


def drain(source):
    out = []
    while not source.at_end():
        out.append(source.next())
    return bytes(out)


# =============================================================================
# Sources
# =============================================================================

class TestSources:

    @pytest.mark.parametrize(
        "source",
        [
            BufferSource(b"abc"),
            BufferSource("abc"),
            IterSource(iter(b"abc")),
            IterSource([b"a", b"", b"bc"]),
            StreamSource(io.BytesIO(b"abc"), chunk_size=1),
            StreamSource(io.BytesIO(b"abc")),
        ],
    )
    def test_same_bytes_from_every_source(self, source):
        assert source.peek() == ord("a")
        assert source.peek() == ord("a")
        assert drain(source) == b"abc"
        assert source.peek() is None
        assert source.next() is None

    def test_empty_sources(self):
        assert BufferSource(b"").at_end()
        assert IterSource([]).at_end()
        assert StreamSource(io.BytesIO()).at_end()

    def test_stream_read_error(self):
        class Broken:
            def read(self, n):
                raise OSError("gone")

        with pytest.raises(RonIOError):
            StreamSource(Broken()).peek()

    def test_iter_rejects_non_byte_ints(self):
        source = IterSource([0x5B, 300])
        assert source.next() == 0x5B
        with pytest.raises(RonIOError):
            source.peek()


# =============================================================================
# Position tracking
# =============================================================================

class TestLexer:

    def test_initial_position(self):
        lexer = Lexer(BufferSource(b"x"))
        assert lexer.position == Position(1, 1, 0)

    def test_columns_and_lines(self):
        lexer = Lexer(BufferSource(b"ab\ncd"))
        lexer.next()
        lexer.next()
        assert lexer.position == Position(1, 3, 2)
        lexer.next()
        assert lexer.position == Position(2, 1, 3)
        lexer.next()
        assert lexer.position == Position(2, 2, 4)

    def test_next_at_end_keeps_position(self):
        lexer = Lexer(BufferSource(b"a"))
        lexer.next()
        assert lexer.next() is None
        assert lexer.position == Position(1, 2, 1)

    def test_skip_whitespace(self):
        lexer = Lexer(BufferSource(b" \t\r\n  x"))
        assert lexer.skip_whitespace() == ord("x")
        assert lexer.position == Position(2, 3, 6)

    def test_skip_whitespace_to_end(self):
        lexer = Lexer(BufferSource(b"  "))
        assert lexer.skip_whitespace() is None
        assert lexer.at_end()

    def test_error_uses_current_position(self):
        lexer = Lexer(BufferSource(b"\n\n  ?"))
        lexer.skip_whitespace()
        err = lexer.error(ErrorCode.EXPECTED_SOME_VALUE)
        assert (err.line, err.column) == (3, 3)

    def test_error_at_explicit_position(self):
        lexer = Lexer(BufferSource(b""))
        err = lexer.error(ErrorCode.UNKNOWN_FIELD, "c", at=Position(4, 2, 9))
        assert (err.line, err.column, err.field) == (4, 2, "c")
