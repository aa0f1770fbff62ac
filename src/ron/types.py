"""Type definitions for pyron."""

import struct
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, TypedDict, Union

from .constants import DEFAULT_INDENT, DEFAULT_MAX_DEPTH

# Indentation unit: a number of spaces, or the literal text to repeat
Indent = Union[int, str, bytes]

Depth = int


class Unit:
    """Decoding target for the unit value ``()``."""


class Char(str):
    """A string holding exactly one character, written as ``'c'``."""

    def __new__(cls, value: str) -> "Char":
        if len(value) != 1:
            raise ValueError(f"Char needs exactly one character, got {len(value)}")
        return super().__new__(cls, value)


class _Width:
    bits: int = 0


class _IntWidth(int, _Width):
    signed: bool = True

    @classmethod
    def bounds(cls) -> Tuple[int, int]:
        if cls.signed:
            return -(1 << (cls.bits - 1)), (1 << (cls.bits - 1)) - 1
        return 0, (1 << cls.bits) - 1

    def __new__(cls, value: int = 0) -> "_IntWidth":
        low, high = cls.bounds()
        if not low <= int(value) <= high:
            raise OverflowError(f"{value} out of range for {cls.__name__}")
        return super().__new__(cls, value)


class i8(_IntWidth):
    bits = 8


class i16(_IntWidth):
    bits = 16


class i32(_IntWidth):
    bits = 32


class i64(_IntWidth):
    bits = 64


class isize(_IntWidth):
    bits = 64


class u8(_IntWidth):
    bits = 8
    signed = False


class u16(_IntWidth):
    bits = 16
    signed = False


class u32(_IntWidth):
    bits = 32
    signed = False


class u64(_IntWidth):
    bits = 64
    signed = False


class usize(_IntWidth):
    bits = 64
    signed = False


class f32(float, _Width):
    bits = 32

    def __new__(cls, value: float = 0.0) -> "f32":
        try:
            narrowed = struct.unpack("<f", struct.pack("<f", float(value)))[0]
        except OverflowError as err:
            raise OverflowError(f"{value} out of range for {cls.__name__}") from err
        return super().__new__(cls, narrowed)


class f64(float, _Width):
    bits = 64


def width_of(value: Any) -> Optional[str]:
    """Return the width tag name of a width-typed number, or None."""
    if isinstance(value, _Width):
        return type(value).__name__
    return None


@dataclass(frozen=True)
class Tagged:
    """One variant of a tagged enum.

    ``payload`` is ``()`` for a unit variant, a list or tuple for a sequence
    payload and a dict or dataclass instance for a map payload.
    """

    variant: str
    payload: Any = ()

    @property
    def is_unit(self) -> bool:
        return isinstance(self.payload, tuple) and not self.payload


class TaggedEnum:
    """Declares the variant set of a tagged enum for decoding.

    Each variant maps to the shape of its payload: ``None`` or ``Unit`` for a
    unit variant, a sequence type such as ``Tuple[u8, str]`` or ``List[int]``,
    or a map type such as ``Dict[str, int]`` or a dataclass.

        Shape = TaggedEnum("Shape", Empty=None, Point=Tuple[float, float])
    """

    def __init__(self, name: str, variants: Optional[Mapping[str, Any]] = None, **kwargs: Any) -> None:
        self.name = name
        self.variants: Dict[str, Any] = {**(variants or {}), **kwargs}

    def __repr__(self) -> str:
        return f"TaggedEnum({self.name!r}, {sorted(self.variants)!r})"

    def __call__(self, variant: str, payload: Any = ()) -> Tagged:
        if variant not in self.variants:
            raise ValueError(f"{self.name} has no variant {variant!r}")
        return Tagged(variant, payload)


class EncodeOptions(TypedDict, total=False):
    """Options for RON encoding.

    Attributes:
        pretty: Use the indented formatter (default: False)
        indent: Spaces per level, or the indent text itself (default: 2)
        escapeStrings: Escape backslashes and quotes in strings and chars (default: True)
    """

    pretty: bool
    indent: Indent
    escapeStrings: bool


class DecodeOptions(TypedDict, total=False):
    """Options for RON decoding.

    Attributes:
        rejectDuplicateKeys: Fail on a repeated map or record key instead of
            keeping the last value (default: False)
        maxDepth: Maximum nesting of collections (default: 128)
    """

    rejectDuplicateKeys: bool
    maxDepth: int


@dataclass
class ResolvedEncodeOptions:
    """Resolved encoding options with defaults applied."""

    pretty: bool = False
    indent: bytes = b" " * DEFAULT_INDENT
    escape_strings: bool = True


@dataclass
class ResolvedDecodeOptions:
    """Resolved decoding options with defaults applied."""

    reject_duplicate_keys: bool = False
    max_depth: int = DEFAULT_MAX_DEPTH


def indent_bytes(indent: Indent) -> bytes:
    if isinstance(indent, int):
        return b" " * indent
    if isinstance(indent, str):
        return indent.encode("utf-8")
    return bytes(indent)


def resolve_encode_options(options: Optional[EncodeOptions]) -> ResolvedEncodeOptions:
    """Resolve encoding options with defaults.

    Args:
        options: Optional user-provided options

    Returns:
        Resolved options with defaults applied
    """
    if options is None:
        return ResolvedEncodeOptions()

    return ResolvedEncodeOptions(
        pretty=options.get("pretty", False),
        indent=indent_bytes(options.get("indent", DEFAULT_INDENT)),
        escape_strings=options.get("escapeStrings", True),
    )


def resolve_decode_options(options: Optional[DecodeOptions]) -> ResolvedDecodeOptions:
    """Resolve decoding options with defaults."""
    if options is None:
        return ResolvedDecodeOptions()

    return ResolvedDecodeOptions(
        reject_duplicate_keys=options.get("rejectDuplicateKeys", False),
        max_depth=options.get("maxDepth", DEFAULT_MAX_DEPTH),
    )
