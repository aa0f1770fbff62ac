"""The traversal capability: how native values expose their shape.

Encoding walks a value and drives a ``Serializer`` with one call per value
kind. Decoding goes the other way: the decoder asks ``resolve_target`` for the
``Shape`` of the requested type and hands what it parsed back through the
builders here, so it never needs to know about dataclasses or typing.
"""

import collections.abc
import dataclasses
import enum
import types
import typing
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from .errors import MissingFieldError
from .types import Char, Tagged, TaggedEnum, Unit, _IntWidth, width_of


class Some:
    """Explicitly present optional value. Encodes exactly like ``value``."""

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __repr__(self) -> str:
        return f"Some({self.value!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Some):
            return self.value == other.value
        return NotImplemented

    def __hash__(self) -> int:
        return hash((Some, self.value))


class Serializer:
    """Receives one call per value kind while a value is being walked.

    Collections hand over their elements (or ``(key, value)`` items) together
    with their length when it is known; the serializer walks them itself by
    calling ``serialize_seq_elt`` / ``serialize_map_elt``.
    """

    def serialize_bool(self, value: bool) -> None:
        raise NotImplementedError

    def serialize_int(self, value: int, width: Optional[str] = None) -> None:
        raise NotImplementedError

    def serialize_float(self, value: float, width: Optional[str] = None) -> None:
        raise NotImplementedError

    def serialize_char(self, value: str) -> None:
        raise NotImplementedError

    def serialize_str(self, value: str) -> None:
        raise NotImplementedError

    def serialize_unit(self) -> None:
        raise NotImplementedError

    def serialize_none(self) -> None:
        raise NotImplementedError

    def serialize_some(self, value: Any) -> None:
        raise NotImplementedError

    def serialize_seq(self, elements: Iterable[Any], length: Optional[int]) -> None:
        raise NotImplementedError

    def serialize_seq_elt(self, value: Any) -> None:
        raise NotImplementedError

    def serialize_map(self, items: Iterable[Tuple[Any, Any]], length: Optional[int]) -> None:
        raise NotImplementedError

    def serialize_map_elt(self, key: Any, value: Any) -> None:
        raise NotImplementedError

    def serialize_struct(self, name: str, fields: Sequence[Tuple[str, Any]]) -> None:
        raise NotImplementedError

    def serialize_enum_unit(self, name: Optional[str], variant: str) -> None:
        raise NotImplementedError

    def serialize_enum_seq(self, name: Optional[str], variant: str, elements: Iterable[Any], length: Optional[int]) -> None:
        raise NotImplementedError

    def serialize_enum_map(
        self, name: Optional[str], variant: str, items: Iterable[Tuple[Any, Any]], length: Optional[int]
    ) -> None:
        raise NotImplementedError

    def serialize_enum_struct(self, name: Optional[str], variant: str, fields: Sequence[Tuple[str, Any]]) -> None:
        raise NotImplementedError


def _length(value: Any) -> Optional[int]:
    try:
        return len(value)
    except TypeError:
        return None


def record_fields(value: Any) -> List[Tuple[str, Any]]:
    return [(f.name, getattr(value, f.name)) for f in dataclasses.fields(value)]


def serialize(value: Any, serializer: Serializer) -> None:
    """Drive ``serializer`` with the shape of ``value``.

    Args:
        value: Any supported native value
        serializer: Receiver of the traversal calls

    Raises:
        TypeError: If ``value`` has no known shape
    """
    hook = getattr(type(value), "__ron_serialize__", None)
    if hook is not None:
        hook(value, serializer)
    elif value is None:
        serializer.serialize_none()
    elif isinstance(value, Some):
        serializer.serialize_some(value.value)
    elif isinstance(value, bool):
        serializer.serialize_bool(value)
    elif isinstance(value, enum.Enum):
        serializer.serialize_enum_unit(type(value).__name__, value.name)
    elif isinstance(value, int):
        serializer.serialize_int(value, width_of(value))
    elif isinstance(value, float):
        serializer.serialize_float(value, width_of(value))
    elif isinstance(value, Char):
        serializer.serialize_char(value)
    elif isinstance(value, str):
        serializer.serialize_str(value)
    elif isinstance(value, Tagged):
        _serialize_tagged(value, serializer)
    elif isinstance(value, tuple) and not value:
        serializer.serialize_unit()
    elif dataclasses.is_dataclass(value) and not isinstance(value, type):
        serializer.serialize_struct(type(value).__name__, record_fields(value))
    elif isinstance(value, Mapping):
        serializer.serialize_map(value.items(), len(value))
    elif isinstance(value, Iterable):
        serializer.serialize_seq(value, _length(value))
    else:
        raise TypeError(f"Cannot serialize object of type {type(value).__name__}")


def _serialize_tagged(value: Tagged, serializer: Serializer) -> None:
    payload = value.payload
    if value.is_unit:
        serializer.serialize_enum_unit(None, value.variant)
    elif dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        serializer.serialize_enum_struct(None, value.variant, record_fields(payload))
    elif isinstance(payload, Mapping):
        serializer.serialize_enum_map(None, value.variant, payload.items(), len(payload))
    elif isinstance(payload, Iterable) and not isinstance(payload, (str, bytes)):
        serializer.serialize_enum_seq(None, value.variant, payload, _length(payload))
    else:
        raise TypeError(f"Variant {value.variant} payload must be (), a sequence or a mapping")


# --- decoding side ---------------------------------------------------------


class Kind(enum.Enum):
    ANY = "any"
    UNIT = "unit"
    NONE = "none"
    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    CHAR = "char"
    STR = "str"
    OPTION = "option"
    SEQ = "seq"
    TUPLE = "tuple"
    MAP = "map"
    RECORD = "record"
    ENUM = "enum"
    TAGGED_ENUM = "tagged_enum"
    CUSTOM = "custom"


@dataclass
class FieldSpec:
    name: str
    hint: Any
    required: bool

    @property
    def shape(self) -> "Shape":
        # resolved lazily so self-referencing records terminate
        return resolve_target(self.hint)


@dataclass
class Shape:
    """What the decoder should expect for one target type.

    Attributes:
        kind: The value kind
        target: The original target type
        args: Element shapes (one for SEQ/OPTION, one per position for TUPLE,
            key and value for MAP)
        build: Constructor applied to the decoded elements of a collection
        fields: Declared fields of a RECORD, by name
        variants: Variant payload shapes of an ENUM/TAGGED_ENUM (None for unit)
    """

    kind: Kind
    target: Any = None
    args: Tuple["Shape", ...] = ()
    build: Optional[Callable[[Any], Any]] = None
    fields: Dict[str, FieldSpec] = field(default_factory=dict)
    variants: Dict[str, Optional["Shape"]] = field(default_factory=dict)

    @property
    def expecting(self) -> str:
        name = getattr(self.target, "__name__", None) or getattr(self.target, "name", None)
        return name or self.kind.value


ANY = Shape(Kind.ANY, Any)

_SEQ_BUILDERS: Dict[Any, Callable[[Any], Any]] = {
    list: list,
    tuple: tuple,
    set: set,
    frozenset: frozenset,
    collections.abc.Sequence: list,
    collections.abc.MutableSequence: list,
    collections.abc.Iterable: list,
    collections.abc.Set: frozenset,
    collections.abc.MutableSet: set,
}

_MAP_ORIGINS = {dict, collections.abc.Mapping, collections.abc.MutableMapping}


def _is_union(origin: Any) -> bool:
    return origin is typing.Union or (hasattr(types, "UnionType") and origin is types.UnionType)


@lru_cache(maxsize=None)
def _resolve_cached(target: Any) -> Shape:
    return _resolve(target)


def resolve_target(target: Any) -> Shape:
    """Return the ``Shape`` the decoder should parse for ``target``."""
    try:
        return _resolve_cached(target)
    except TypeError as err:
        # unhashable targets (e.g. a TaggedEnum holding unhashable variants) skip the cache
        if "unhashable" not in str(err):
            raise
        return _resolve(target)


def _resolve(target: Any) -> Shape:
    if target is Any or target is object:
        return ANY
    if isinstance(target, TaggedEnum):
        variants = {name: _variant_shape(payload) for name, payload in target.variants.items()}
        return Shape(Kind.TAGGED_ENUM, target, variants=variants)
    if isinstance(target, type):
        return _resolve_class(target)

    origin = typing.get_origin(target)
    args = typing.get_args(target)
    if _is_union(origin):
        rest = [arg for arg in args if arg is not type(None)]
        if len(rest) == len(args) or len(rest) != 1:
            raise TypeError(f"Unsupported union target {target!r}; only Optional[T] is supported")
        return Shape(Kind.OPTION, target, args=(resolve_target(rest[0]),))
    if origin in (tuple, typing.Tuple):
        if len(args) == 2 and args[1] is Ellipsis:
            return Shape(Kind.SEQ, target, args=(resolve_target(args[0]),), build=tuple)
        if args == ((),):
            args = ()
        return Shape(Kind.TUPLE, target, args=tuple(resolve_target(arg) for arg in args), build=tuple)
    if origin in _SEQ_BUILDERS:
        element = resolve_target(args[0]) if args else ANY
        return Shape(Kind.SEQ, target, args=(element,), build=_SEQ_BUILDERS[origin])
    if origin in _MAP_ORIGINS:
        key, value = (resolve_target(args[0]), resolve_target(args[1])) if args else (ANY, ANY)
        return Shape(Kind.MAP, target, args=(key, value), build=dict)
    raise TypeError(f"Unsupported decode target {target!r}")


def _resolve_class(cls: type) -> Shape:
    if hasattr(cls, "__ron_deserialize__"):
        return Shape(Kind.CUSTOM, cls, build=cls.__ron_deserialize__)
    if cls is Unit:
        return Shape(Kind.UNIT, cls)
    if cls is type(None):
        return Shape(Kind.NONE, cls)
    if cls is bool:
        return Shape(Kind.BOOL, cls)
    if issubclass(cls, enum.Enum):
        return Shape(Kind.ENUM, cls, variants={member: None for member in cls.__members__})
    if issubclass(cls, int):
        return Shape(Kind.INT, cls)
    if issubclass(cls, float):
        return Shape(Kind.FLOAT, cls)
    if issubclass(cls, Char):
        return Shape(Kind.CHAR, cls)
    if issubclass(cls, str):
        return Shape(Kind.STR, cls)
    if dataclasses.is_dataclass(cls):
        return _record_shape(cls)
    if cls in _SEQ_BUILDERS:
        return Shape(Kind.SEQ, cls, args=(ANY,), build=_SEQ_BUILDERS[cls])
    if cls is dict:
        return Shape(Kind.MAP, cls, args=(ANY, ANY), build=dict)
    raise TypeError(f"Unsupported decode target {cls.__name__}")


def _record_shape(cls: type) -> Shape:
    hints = typing.get_type_hints(cls)
    specs = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        required = f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING
        specs[f.name] = FieldSpec(f.name, hints.get(f.name, Any), required)
    return Shape(Kind.RECORD, cls, fields=specs, build=cls)


def _variant_shape(payload: Any) -> Optional[Shape]:
    if payload is None or payload is Unit:
        return None
    shape = resolve_target(payload)
    if shape.kind not in (Kind.SEQ, Kind.TUPLE, Kind.MAP, Kind.RECORD):
        raise TypeError(f"Variant payload must be a sequence or map type, got {payload!r}")
    return shape


def build_record(cls: type, values: Mapping[str, Any]) -> Any:
    """Construct the dataclass ``cls`` from decoded field values.

    Raises:
        MissingFieldError: If a field without a default is absent
    """
    shape = resolve_target(cls)
    for spec in shape.fields.values():
        if spec.required and spec.name not in values:
            raise MissingFieldError(spec.name)
    return cls(**values)


def build_enum(shape: Shape, variant: str, payload: Any) -> Any:
    if shape.kind is Kind.ENUM:
        return shape.target[variant]
    return Tagged(variant, payload)


# --- numbers ---------------------------------------------------------------


def parse_int(text: str, target: type) -> int:
    """Convert decimal text with the target integer type's own rules.

    Raises:
        ValueError: If the text is not an integer or is out of range
    """
    value = int(text)
    if issubclass(target, _IntWidth):
        low, high = target.bounds()
        if not low <= value <= high:
            raise ValueError(f"{text} out of range for {target.__name__}")
        return value
    if target is int:
        return value
    return target(value)


def parse_float(text: str, target: type) -> float:
    """Convert numeric text with the target float type's own rules.

    Raises:
        ValueError: If the text is not a number or overflows the target width
    """
    value = float(text)
    if target is float:
        return value
    try:
        return target(value)
    except OverflowError as err:
        raise ValueError(f"{text} out of range for {target.__name__}") from err


def parse_number(text: str) -> Any:
    """Self-describing number: int unless there is a fraction or exponent."""
    if any(c in text for c in ".eE"):
        return float(text)
    return int(text)
