"""Column Codecs: chain-of-responsibility selection of a codec per (type, qualifier set).

Invariants:
    - Factories are consulted most-recently-registered first; first non-None codec wins
    - A factory declines (returns None) for any qualifier it does not understand
    - Composition is marker-subtractive: a wrapping factory only ever asks for its
      type with a marker REMOVED, so lookups always terminate
    - decode(None) -> None for every built-in codec except NonNull, which raises

Design Decisions:
    - Factories are plain callables (qt, codecs) -> codec | None: no base class to inherit
    - Built-in scalar codecs convert loosely (int("42")), mirroring what drivers hand back
    - Loose conversion never truncates: 1.7 is not an int, 2.0 is
"""

import numbers
import types
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Callable, Union, get_args, get_origin

from recordbind.core.domain_types import NonNull, QualifiedType
from recordbind.core.errors import (
    CodecNotFoundError, NonNullViolationError, UnconvertibleValueError,
)

ColumnCodecFactory = Callable[[QualifiedType, "ColumnCodecs"], "ColumnCodec | None"]


class ColumnCodec(ABC):
    """Bidirectional converter between a stored column value and a typed value."""

    @abstractmethod
    def decode(self, value: Any) -> Any:
        """Column value -> typed value (None for absent)."""

    def encode(self, value: Any) -> Any:
        """Typed value -> column value."""
        return value


class ColumnCodecs:
    """Ordered codec factory chain owned by a MappingRegistry."""

    def __init__(self):
        self._factories: list[ColumnCodecFactory] = []

    def register(self, factory: ColumnCodecFactory) -> "ColumnCodecs":
        """Add a factory; it takes precedence over every factory registered before it."""
        self._factories.insert(0, factory)
        return self

    def register_codec(self, base_type: Any, codec: ColumnCodec) -> "ColumnCodecs":
        """Use `codec` for exactly `base_type` when no qualifiers are requested."""
        def exact(qualified_type: QualifiedType, codecs: "ColumnCodecs") -> ColumnCodec | None:
            if qualified_type.qualifiers or qualified_type.base_type != base_type:
                return None
            return codec
        return self.register(exact)

    def find_for(self, qualified_type: Any) -> ColumnCodec | None:
        if not isinstance(qualified_type, QualifiedType):
            qualified_type = QualifiedType.of(qualified_type)
        for factory in self._factories:
            codec = factory(qualified_type, self)
            if codec is not None:
                return codec
        return None

    def require(self, qualified_type: Any) -> ColumnCodec:
        codec = self.find_for(qualified_type)
        if codec is None:
            raise CodecNotFoundError(qualified_type)
        return codec

    def __len__(self) -> int:
        return len(self._factories)


# ─── Scalars ─────────────────────────────────────────────────────

class ScalarCodec(ColumnCodec):
    """Coerces a column value to one Python scalar type."""

    def __init__(self, target: type, convert: Callable[[Any], Any] | None = None):
        self.target = target
        self._convert = convert or target

    def decode(self, value: Any) -> Any:
        if value is None or type(value) is self.target:
            return value
        try:
            return self._convert(value)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise UnconvertibleValueError(self.target, value) from e

    def __repr__(self) -> str:
        return f"ScalarCodec({self.target.__name__})"


class PassthroughCodec(ColumnCodec):
    """Hands values through untouched (Any / object properties)."""

    def decode(self, value: Any) -> Any:
        return value


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode()
    return bytes(value)


_TRUE_TEXT = frozenset({"1", "t", "true", "y", "yes"})
_FALSE_TEXT = frozenset({"0", "f", "false", "n", "no"})


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        text = value.strip().lower()
        if text in _TRUE_TEXT:
            return True
        if text in _FALSE_TEXT:
            return False
        raise ValueError(value)
    return bool(value)


def _to_decimal(value: Any) -> Decimal:
    # float -> str first so 0.1 stays 0.1
    return Decimal(str(value)) if isinstance(value, float) else Decimal(value)


def integral_value(value: Any) -> int:
    """int(value), refusing to drop a fractional part (1.7, Decimal("2.5"))."""
    converted = int(value)
    if isinstance(value, (numbers.Real, Decimal)) and not isinstance(value, numbers.Integral):
        if converted != value:
            raise ValueError(f"{value!r} is not integral")
    return converted


SCALAR_CODECS: dict[type, ColumnCodec] = {
    str: ScalarCodec(str),
    int: ScalarCodec(int, integral_value),
    float: ScalarCodec(float),
    bool: ScalarCodec(bool, _to_bool),
    bytes: ScalarCodec(bytes, _to_bytes),
    Decimal: ScalarCodec(Decimal, _to_decimal),
}

_PASSTHROUGH = PassthroughCodec()


def scalar_codec_factory(qualified_type: QualifiedType, codecs: ColumnCodecs) -> ColumnCodec | None:
    if qualified_type.qualifiers:
        return None
    if qualified_type.base_type in (Any, object):
        return _PASSTHROUGH
    return SCALAR_CODECS.get(qualified_type.base_type)


# ─── Optional ────────────────────────────────────────────────────

def optional_codec_factory(qualified_type: QualifiedType, codecs: ColumnCodecs) -> ColumnCodec | None:
    """X | None -> the codec for X (qualifiers carried over). None decodes to None anyway."""
    base = qualified_type.base_type
    if not (get_origin(base) is Union or isinstance(base, types.UnionType)):
        return None
    arms = [arm for arm in get_args(base) if arm is not type(None)]
    if len(arms) != 1 or len(arms) == len(get_args(base)):
        return None
    return codecs.find_for(QualifiedType(arms[0], qualified_type.qualifiers))


# ─── NonNull ─────────────────────────────────────────────────────

class NonNullCodec(ColumnCodec):
    """Wraps a codec so that an absent value is a violation, not a None."""

    def __init__(self, delegate: ColumnCodec, qualified_type: QualifiedType):
        self.delegate = delegate
        self.qualified_type = qualified_type

    def decode(self, value: Any) -> Any:
        decoded = self.delegate.decode(value)
        if decoded is None:
            raise NonNullViolationError(self.qualified_type)
        return decoded

    def encode(self, value: Any) -> Any:
        if value is None:
            raise NonNullViolationError(self.qualified_type)
        return self.delegate.encode(value)


def nonnull_codec_factory(qualified_type: QualifiedType, codecs: ColumnCodecs) -> ColumnCodec | None:
    """Requires NonNull; looks up the same type without it and wraps the result."""
    if not qualified_type.has_qualifier(NonNull):
        return None
    delegate = codecs.find_for(qualified_type.without(NonNull))
    if delegate is None:
        return None
    return NonNullCodec(delegate, qualified_type)
