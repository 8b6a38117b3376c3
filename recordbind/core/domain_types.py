"""Domain Types: markers, qualified types and the enums shared across the codebase.

Invariants:
    - Markers are hashable, value-equal objects (frozen dataclasses)
    - Only classes decorated with @qualifier produce qualifying markers; the flag is not inherited
    - QualifiedType equality = base type + qualifier set (order-independent)
    - All valid strategies encoded as Enums: no raw string matching

Design Decisions:
    - Markers ride on typing.Annotated metadata or the @qualified decorator:
      both are plain Python, no metaclass (ADR: zero-magic annotations)
    - str Enums: settings accept their .value straight from the environment
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Iterable, get_args, get_origin


# ─── Qualifier Flag ──────────────────────────────────────────────

def qualifier(cls: type) -> type:
    """Class decorator: instances of `cls` count as qualifying markers."""
    cls.__qualifier__ = True
    return cls


def is_qualifier(marker: Any) -> bool:
    """True when marker's own class (not a base) was decorated with @qualifier."""
    return type(marker).__dict__.get("__qualifier__", False) is True


# ─── Built-in Markers ────────────────────────────────────────────

@qualifier
@dataclass(frozen=True)
class NonNull:
    """Decoded and encoded values must never be None."""


@qualifier
@dataclass(frozen=True)
class EnumByName:
    """Store an enum by its constant name."""


@qualifier
@dataclass(frozen=True)
class EnumByOrdinal:
    """Store an enum by its position in declaration order."""


@dataclass(frozen=True)
class ColumnName:
    """Map a property from a column whose name differs from the property name."""
    name: str


@dataclass(frozen=True)
class Unmapped:
    """Exclude a property from row mapping and parameter binding."""


# ─── Qualified Type ──────────────────────────────────────────────

def strip_annotated(tp: Any) -> tuple[Any, tuple]:
    """Split Annotated[T, *meta] into (T, meta). Other types pass through."""
    if get_origin(tp) is Annotated:
        return get_args(tp)[0], tuple(tp.__metadata__)
    return tp, ()


@dataclass(frozen=True)
class QualifiedType:
    """A base type plus the marker set that disambiguates codec selection."""
    base_type: Any
    qualifiers: frozenset = frozenset()

    @classmethod
    def of(cls, tp: Any, *qualifiers: Any) -> "QualifiedType":
        """Build from a type; Annotated qualifying metadata joins the set."""
        base, meta = strip_annotated(tp)
        found = {m for m in meta if is_qualifier(m)}
        return cls(base, frozenset(found) | frozenset(qualifiers))

    def with_qualifiers(self, qualifiers: Iterable[Any]) -> "QualifiedType":
        return QualifiedType(self.base_type, frozenset(qualifiers))

    def without(self, marker_type: type) -> "QualifiedType":
        """Same base type with every marker of `marker_type` removed."""
        return QualifiedType(
            self.base_type,
            frozenset(q for q in self.qualifiers if not isinstance(q, marker_type)),
        )

    def has_qualifier(self, marker_type: type) -> bool:
        return any(isinstance(q, marker_type) for q in self.qualifiers)

    def __repr__(self) -> str:
        if not self.qualifiers:
            return f"QualifiedType({self.base_type!r})"
        markers = ", ".join(sorted(repr(q) for q in self.qualifiers))
        return f"QualifiedType({self.base_type!r}, {{{markers}}})"


# ─── Enums ───────────────────────────────────────────────────────

class PropertyVariant(str, Enum):
    """The three property-discovery shapes."""
    BEAN = "bean"
    IMMUTABLE = "immutable"
    MODIFIABLE = "modifiable"


class EnumStrategy(str, Enum):
    """How enum columns are stored when no qualifier says otherwise."""
    BY_NAME = "by_name"
    BY_ORDINAL = "by_ordinal"
