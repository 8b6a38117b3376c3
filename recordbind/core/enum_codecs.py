"""Enum Codecs: by-name and by-ordinal enum columns, plus the factory that picks one.

Invariants:
    - By-name: None or "" decodes to None (some engines store NULL varchar as "")
    - By-name match: exact constant name first, case-insensitive second
    - Matches memoized in a shared cache keyed (enum type, queried text); failures are not cached
    - By-ordinal: index into declaration order; negative or too-large ordinals raise
    - A fractional ordinal (1.9) is unconvertible, never truncated
    - Strategy precedence: property qualifier > marker on the enum class > registry default

Design Decisions:
    - Case-insensitive hits are cached under the text as queried, not a normalized key,
      so "foo" and "FOO" occupy separate entries resolving to the same constant
"""

from enum import Enum
from typing import Any

from recordbind.core.column_codecs import ColumnCodec, ColumnCodecs, integral_value
from recordbind.core.domain_types import (
    EnumByName, EnumByOrdinal, EnumStrategy, QualifiedType,
)
from recordbind.core.errors import (
    QualifierConflictError, UnconvertibleValueError, UnresolvableEnumValueError,
)
from recordbind.core.qualifiers import get_qualifiers
from recordbind.core.registry_cache import RegistryCache

_ENUM_MARKERS = frozenset({EnumByName(), EnumByOrdinal()})


def _match_name(enum_type: type[Enum], name: str) -> Enum:
    for member in enum_type:
        if member.name == name:
            return member
    folded = name.casefold()
    for member in enum_type:
        if member.name.casefold() == folded:
            return member
    raise UnresolvableEnumValueError(enum_type, name, "name")


class EnumByNameCodec(ColumnCodec):
    """Stores the constant's name."""

    def __init__(self, enum_type: type[Enum], name_cache: RegistryCache):
        self.enum_type = enum_type
        self._name_cache = name_cache

    def decode(self, value: Any) -> Enum | None:
        if value is None or value == "":
            return None
        if isinstance(value, self.enum_type):
            return value
        name = str(value)
        return self._name_cache.get_or_compute(
            (self.enum_type, name), lambda: _match_name(self.enum_type, name),
        )

    def encode(self, value: Any) -> str | None:
        return None if value is None else value.name


class EnumByOrdinalCodec(ColumnCodec):
    """Stores the constant's position in declaration order (aliases excluded)."""

    def __init__(self, enum_type: type[Enum]):
        self.enum_type = enum_type
        self._constants = tuple(enum_type)

    def decode(self, value: Any) -> Enum | None:
        if value is None:
            return None
        if isinstance(value, self.enum_type):
            return value
        try:
            ordinal = integral_value(value)
        except (TypeError, ValueError, ArithmeticError) as e:
            raise UnconvertibleValueError(int, value) from e
        if not 0 <= ordinal < len(self._constants):
            raise UnresolvableEnumValueError(self.enum_type, ordinal, "ordinal")
        return self._constants[ordinal]

    def encode(self, value: Any) -> int | None:
        return None if value is None else self._constants.index(value)


def enum_strategy_of(qualified_type: QualifiedType, default: EnumStrategy) -> EnumStrategy:
    """Resolve the storage strategy for an enum-typed qualified type."""
    requested = qualified_type.qualifiers or get_qualifiers(qualified_type.base_type)
    by_name = any(isinstance(q, EnumByName) for q in requested)
    by_ordinal = any(isinstance(q, EnumByOrdinal) for q in requested)
    if by_name and by_ordinal:
        raise QualifierConflictError(qualified_type, "EnumByName and EnumByOrdinal")
    if by_name:
        return EnumStrategy.BY_NAME
    if by_ordinal:
        return EnumStrategy.BY_ORDINAL
    return default


class EnumCodecFactory:
    """Codec factory for Enum subclasses; accepts only the enum qualifiers."""

    def __init__(self, default_strategy: EnumStrategy, name_cache: RegistryCache):
        self.default_strategy = default_strategy
        self._name_cache = name_cache

    def __call__(self, qualified_type: QualifiedType, codecs: ColumnCodecs) -> ColumnCodec | None:
        base = qualified_type.base_type
        if not (isinstance(base, type) and issubclass(base, Enum)):
            return None
        if qualified_type.qualifiers - _ENUM_MARKERS:
            return None
        strategy = enum_strategy_of(qualified_type, self.default_strategy)
        if strategy is EnumStrategy.BY_ORDINAL:
            return EnumByOrdinalCodec(base)
        return EnumByNameCodec(base, self._name_cache)
