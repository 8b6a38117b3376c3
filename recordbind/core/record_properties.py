"""Record Properties: the uniform property table and builder contract shared by all variants.

Invariants:
    - A RecordProperty is immutable once constructed; equality = (name, qualified_type)
    - Property tables are published read-only (MappingProxyType) and never mutated
    - get() returns None for a property whose is-set probe reports False
    - RecordBindError subclasses and UserValidationError pass through accessor wrapping unchanged

Design Decisions:
    - Accessors stored as closures on a frozen dataclass (ADR: handles captured once, at discovery)
    - RecordBuilder is a Protocol: each variant returns its own small builder class
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Mapping, Protocol

from recordbind.core.domain_types import QualifiedType
from recordbind.core.errors import (
    AccessorInvocationError, RecordBindError, SetterNotFoundError,
    UnknownPropertyError, UserValidationError, ValueIncompatibleError,
)
from recordbind.core.generic_types import accepts_value
from recordbind.core.qualifiers import get_markers
from recordbind.core.registry_cache import RegistryCache

_ACCESSOR_PREFIXES = ("get_", "is_")


def property_name(accessor_name: str) -> str:
    """get_foo / is_foo -> foo. Other names are already property names."""
    for prefix in _ACCESSOR_PREFIXES:
        if accessor_name.startswith(prefix) and len(accessor_name) > len(prefix):
            return accessor_name[len(prefix):]
    return accessor_name


def always_set(instance: Any) -> bool:
    return True


def method_setter(attr: str) -> Callable[[Any, Any], None]:
    """Setter handle that calls instance.<attr>(value)."""
    def invoke(instance: Any, value: Any) -> None:
        getattr(instance, attr)(value)
    return invoke


def attribute_setter(attr: str) -> Callable[[Any, Any], None]:
    def assign(instance: Any, value: Any) -> None:
        setattr(instance, attr, value)
    return assign


@dataclass(frozen=True)
class RecordProperty:
    """One named, typed attribute of a record type."""
    name: str
    qualified_type: QualifiedType
    getter: Callable[[Any], Any] | None = field(default=None, repr=False, compare=False)
    setter: Callable[[Any, Any], Any] | None = field(default=None, repr=False, compare=False)
    is_set: Callable[[Any], bool] = field(default=always_set, repr=False, compare=False)
    accessors: tuple = field(default=(), repr=False, compare=False)
    owner: Any = field(default=None, repr=False, compare=False)
    required: bool = field(default=False, repr=False, compare=False)

    def get(self, instance: Any) -> Any:
        """Read the property; None when unset."""
        if self.getter is None:
            raise AccessorInvocationError(self.owner, self.name, instance, "read (no getter)")
        try:
            if not self.is_set(instance):
                return None
            return self.getter(instance)
        except (RecordBindError, UserValidationError):
            raise
        except Exception as e:
            raise AccessorInvocationError(self.owner, self.name, instance) from e

    def annotation(self, marker_type: type) -> Any:
        """First marker of `marker_type` on this property's accessors, qualifying or not."""
        for marker in get_markers(*self.accessors):
            if isinstance(marker, marker_type):
                return marker
        return None


def write_property(prop: RecordProperty, target: Any, value: Any) -> None:
    """Type-check `value` and invoke the property's setter against `target`."""
    if prop.setter is None:
        raise SetterNotFoundError(prop.owner, prop.name)
    if not accepts_value(prop.qualified_type.base_type, value):
        raise ValueIncompatibleError(prop.owner, prop.name, value, prop.qualified_type.base_type)
    try:
        prop.setter(target, value)
    except (RecordBindError, UserValidationError):
        raise
    except TypeError as e:
        raise ValueIncompatibleError(
            prop.owner, prop.name, value, prop.qualified_type.base_type,
        ) from e
    except Exception as e:
        raise AccessorInvocationError(prop.owner, prop.name, target, "write") from e


class RecordBuilder(Protocol):
    """Write-then-build accumulator for one construction. Never shared across threads."""
    def set(self, name: str, value: Any) -> None: ...
    def build(self) -> Any: ...


class RecordProperties(ABC):
    """Property discovery for one concrete record type, backed by a variant cache."""

    def __init__(self, record_type: Any, cache: RegistryCache):
        self.record_type = record_type
        self._cache = cache

    @property
    def properties(self) -> Mapping[str, RecordProperty]:
        return self._cache.get_or_compute(
            self.record_type, lambda: MappingProxyType(self._discover()),
        )

    def require(self, name: str) -> RecordProperty:
        prop = self.properties.get(name)
        if prop is None:
            raise UnknownPropertyError(self.record_type, name)
        return prop

    @abstractmethod
    def _discover(self) -> dict[str, RecordProperty]:
        """Inspect the type once; result is published by the cache."""

    @abstractmethod
    def create(self) -> RecordBuilder:
        """Start a new construction."""
