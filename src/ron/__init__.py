"""
pyron - Rusty Object Notation for Python

Reads and writes a literal-style text notation for structured values:
unit, booleans, numbers, chars, strings, options, sequences, maps, records
and tagged enum variants, in a compact or an indented style.
"""

import logging

from .decoder import Decoder, decode, from_bytes, from_iter, from_reader, from_str
from .encoder import (
    Encoder,
    encode,
    to_bytes,
    to_bytes_pretty,
    to_string,
    to_string_pretty,
    to_writer,
    to_writer_pretty,
)
from .errors import ErrorCode, MissingFieldError, RonEncodeError, RonError, RonIOError, RonSyntaxError
from .formatter import CompactFormatter, Formatter, PrettyFormatter
from .traversal import Serializer, Some, build_record, serialize
from .types import (
    Char,
    DecodeOptions,
    EncodeOptions,
    Tagged,
    TaggedEnum,
    Unit,
    f32,
    f64,
    i8,
    i16,
    i32,
    i64,
    isize,
    u8,
    u16,
    u32,
    u64,
    usize,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "encode",
    "decode",
    "to_writer",
    "to_writer_pretty",
    "to_bytes",
    "to_bytes_pretty",
    "to_string",
    "to_string_pretty",
    "from_str",
    "from_bytes",
    "from_iter",
    "from_reader",
    "Encoder",
    "Decoder",
    "Formatter",
    "CompactFormatter",
    "PrettyFormatter",
    "Serializer",
    "serialize",
    "build_record",
    "Some",
    "Char",
    "Unit",
    "Tagged",
    "TaggedEnum",
    "EncodeOptions",
    "DecodeOptions",
    "ErrorCode",
    "RonError",
    "RonSyntaxError",
    "RonIOError",
    "RonEncodeError",
    "MissingFieldError",
    "i8",
    "i16",
    "i32",
    "i64",
    "isize",
    "u8",
    "u16",
    "u32",
    "u64",
    "usize",
    "f32",
    "f64",
]
