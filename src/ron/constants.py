"""Tokens and lookup tables shared by the encoder and decoder."""

# Structural delimiters
SEQ_OPEN = b"["
SEQ_CLOSE = b"]"
MAP_OPEN = b"{"
MAP_CLOSE = b"}"
EMPTY_SEQ = b"[]"
EMPTY_MAP = b"{}"

COMMA = b","
COLON = b":"
NEWLINE = b"\n"

# Literal tokens
UNIT = b"()"
TRUE = b"true"
FALSE = b"false"

STRING_QUOTE = b'"'
CHAR_QUOTE = b"'"
BACKSLASH = b"\\"

# Marker around a unit enum variant, e.g. ¶Variant¶
ENUM_MARKER = "¶"
ENUM_MARKER_BYTES = ENUM_MARKER.encode("utf-8")

DEFAULT_INDENT = 2
DEFAULT_MAX_DEPTH = 128

# Byte values used by the lexer
WHITESPACE = frozenset(b" \t\r\n")
DIGITS = frozenset(b"0123456789")
HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")
IDENT_START = frozenset(b"abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ_")
IDENT_CONTINUE = IDENT_START | DIGITS

# Single-character escapes accepted inside strings and chars
ESCAPES = {
    ord('"'): '"',
    ord("'"): "'",
    ord("\\"): "\\",
    ord("/"): "/",
    ord("n"): "\n",
    ord("t"): "\t",
    ord("r"): "\r",
}
