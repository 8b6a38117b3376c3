"""Immutables Properties: the immutable-builder and modifiable-builder variants.

Invariants:
    - Properties are read from the DEFINITION (read-only interface), never from the builder
    - Definition accessors: zero-argument non-static methods not returning None,
      read-only properties, annotated fields; most-derived wins
    - Immutable: is_set is always True; setter located on the builder class
      (set_<name>, then <name>, exact erased type first, any single-argument method second)
    - Modifiable: setter is set_<name> on the implementation; <name>_is_set() probe
      when present, otherwise always set; build() returns the written instance
    - The builder's own build() is never wrapped: caller validation propagates unmodified

Design Decisions:
    - One cache per variant (ADR: an immutable and a modifiable table for the same
      definition must never collide)
    - Required-property check on the immutable builder: abstract accessors and
      default-less fields whose type does not admit None must be written before build()
"""

import dataclasses
import inspect
import logging
import operator
from abc import abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Protocol

from recordbind.core.domain_types import QualifiedType, Unmapped
from recordbind.core.errors import (
    IncompleteRecordError, SetterNotFoundError, TypeNotConstructibleError,
    TypeNotIntrospectableError, UserValidationError, type_name,
)
from recordbind.core.generic_types import (
    admits_none, class_annotations, class_bindings, declared_parameter,
    declared_return_type, erased_type, resolve_type, value_parameters,
)
from recordbind.core.qualifiers import AttributeRef, Qualifiers, get_markers
from recordbind.core.record_properties import (
    RecordProperties, RecordProperty, always_set, method_setter,
    property_name, write_property,
)
from recordbind.core.registry_cache import RegistryCache

logger = logging.getLogger(__name__)

_NOT_INSPECTED = (object, Generic, Protocol)


@dataclass(frozen=True)
class DefinitionAccessor:
    """One read accessor declared on a definition."""
    attr: str
    element: Any
    owner: type
    declared: Any
    kind: str  # "method" | "property" | "field"
    has_default: bool


def _has_default(definition: type, name: str) -> bool:
    if dataclasses.is_dataclass(definition):
        for f in dataclasses.fields(definition):
            if f.name == name:
                return not (f.default is dataclasses.MISSING
                            and f.default_factory is dataclasses.MISSING)
        return False
    if hasattr(definition, "_field_defaults"):  # NamedTuple
        return name in definition._field_defaults
    return hasattr(definition, name)


def definition_accessors(definition: type) -> dict[str, DefinitionAccessor]:
    """Property name -> read accessor, scanned over the definition's MRO."""
    found: dict[str, DefinitionAccessor] = {}
    for klass in definition.__mro__:
        if klass in _NOT_INSPECTED or klass.__module__ == "builtins":
            continue
        for attr, member in klass.__dict__.items():
            name = property_name(attr)
            if attr.startswith("_") or name in found:
                continue
            if isinstance(member, property) and member.fget is not None:
                declared = declared_return_type(member.fget, klass)
                found[name] = DefinitionAccessor(
                    attr, member.fget, klass, declared, "property",
                    not getattr(member.fget, "__isabstractmethod__", False),
                )
            elif inspect.isfunction(member) and not value_parameters(member):
                declared = declared_return_type(member, klass)
                if declared is None or declared is type(None):
                    continue
                found[name] = DefinitionAccessor(
                    attr, member, klass, declared, "method",
                    not getattr(member, "__isabstractmethod__", False),
                )
    for attr, (owner, annotation) in class_annotations(definition).items():
        name = property_name(attr)
        if name not in found:
            found[name] = DefinitionAccessor(
                attr, AttributeRef(owner, attr), owner, annotation, "field",
                _has_default(definition, attr),
            )
    return found


class _DefinitionProperties(RecordProperties):
    """Shared discovery for both builder variants."""

    variant = "definition"

    def __init__(self, record_type: Any, definition: type,
                 cache: RegistryCache, qualifiers: Qualifiers):
        super().__init__(record_type, cache)
        self.definition = definition
        self._qualifiers = qualifiers

    def _discover(self) -> dict[str, RecordProperty]:
        bindings = class_bindings(self.record_type)
        props = {
            name: self._create_property(name, acc, bindings)
            for name, acc in definition_accessors(self.definition).items()
        }
        logger.debug(
            "Discovered %d %s properties", len(props), self.variant,
            extra={"record_type": repr(self.record_type)},
        )
        return props

    def _create_property(self, name: str, acc: DefinitionAccessor, bindings) -> RecordProperty:
        resolved = resolve_type(acc.declared, self.record_type, acc.owner, bindings, name)
        qualifiers = self._qualifiers.qualifiers(acc.element)
        getter = (operator.methodcaller(acc.attr) if acc.kind == "method"
                  else operator.attrgetter(acc.attr))
        # derived accessors marked Unmapped have no builder counterpart
        unmapped = any(isinstance(m, Unmapped) for m in get_markers(acc.element))
        return RecordProperty(
            name=name,
            qualified_type=QualifiedType.of(resolved, *qualifiers),
            getter=getter,
            setter=None if unmapped else self._find_setter(name, resolved),
            is_set=self._is_set_probe(name),
            accessors=(acc.element,),
            owner=self.record_type,
            required=not (unmapped or acc.has_default or admits_none(resolved)),
        )

    @abstractmethod
    def _find_setter(self, name: str, prop_type: Any) -> Callable[[Any, Any], None]:
        """Builder-side write path for one property."""

    def _is_set_probe(self, name: str) -> Callable[[Any], bool]:
        return always_set


# ─── Immutable ───────────────────────────────────────────────────

class ImmutableRecordProperties(_DefinitionProperties):
    """Values built through a separate builder object: builder.set_x(v)...build()."""

    variant = "immutable"

    def __init__(self, record_type: Any, definition: type, builder_factory: Callable[[], Any],
                 cache: RegistryCache, qualifiers: Qualifiers):
        super().__init__(record_type, definition, cache, qualifiers)
        self._builder_factory = builder_factory
        self._builder_type: type | None = None

    def _discover(self) -> dict[str, RecordProperty]:
        self._builder_type = type(self._builder_factory())
        if not callable(getattr(self._builder_type, "build", None)):
            raise TypeNotIntrospectableError(
                self.definition, f"builder {type_name(self._builder_type)} has no build()",
            )
        return super()._discover()

    def _find_setter(self, name: str, prop_type: Any) -> Callable[[Any, Any], None]:
        builder_type = self._builder_type
        names = list(dict.fromkeys((f"set_{name}", name)))
        erased = erased_type(prop_type)
        attempted = []
        for try_name in names:
            member = inspect.getattr_static(builder_type, try_name, None)
            if inspect.isfunction(member) and len(value_parameters(member)) == 1:
                _, hint = declared_parameter(member, builder_type)
                if erased_type(hint) is erased:
                    return method_setter(try_name)
            attempted.append(f"{type_name(builder_type)}.{try_name}({type_name(erased)})")
        for try_name in names:
            member = inspect.getattr_static(builder_type, try_name, None)
            if inspect.isfunction(member) and len(value_parameters(member)) == 1:
                return method_setter(try_name)
        raise SetterNotFoundError(self.record_type, name, attempted)

    def create(self) -> "ImmutableBuilder":
        return ImmutableBuilder(self, self._builder_factory())


class ImmutableBuilder:
    """Forwards writes to the value's builder; build() delegates to builder.build()."""

    def __init__(self, properties: ImmutableRecordProperties, builder: Any):
        self._properties = properties
        self._builder = builder
        self._written: set[str] = set()

    def set(self, name: str, value: Any) -> None:
        write_property(self._properties.require(name), self._builder, value)
        self._written.add(name)

    def build(self) -> Any:
        missing = sorted(
            prop.name for prop in self._properties.properties.values()
            if prop.required and prop.name not in self._written
        )
        if missing:
            raise IncompleteRecordError(self._properties.record_type, missing)
        return self._builder.build()


# ─── Modifiable ──────────────────────────────────────────────────

class ModifiableRecordProperties(_DefinitionProperties):
    """Partially-settable values: set_<name>() on a live instance, <name>_is_set() probes."""

    variant = "modifiable"

    def __init__(self, record_type: Any, definition: type, implementation: type,
                 constructor: Callable[[], Any], cache: RegistryCache,
                 qualifiers: Qualifiers):
        super().__init__(record_type, definition, cache, qualifiers)
        self.implementation = implementation
        self._constructor = constructor

    def _find_setter(self, name: str, prop_type: Any) -> Callable[[Any, Any], None]:
        setter_name = f"set_{name}"
        member = inspect.getattr_static(self.implementation, setter_name, None)
        if inspect.isfunction(member) and len(value_parameters(member)) == 1:
            return method_setter(setter_name)
        raise SetterNotFoundError(
            self.record_type, name,
            [f"{type_name(self.implementation)}.{setter_name}({type_name(erased_type(prop_type))})"],
        )

    def _is_set_probe(self, name: str) -> Callable[[Any], bool]:
        probe = f"{name}_is_set"
        member = inspect.getattr_static(self.implementation, probe, None)
        if inspect.isfunction(member) and not value_parameters(member):
            return operator.methodcaller(probe)
        return always_set

    def create(self) -> "ModifiableBuilder":
        try:
            instance = self._constructor()
        except UserValidationError:
            raise
        except Exception as e:
            raise TypeNotConstructibleError(self.record_type) from e
        return ModifiableBuilder(self, instance)


class ModifiableBuilder:
    """Writes into the live instance; build() hands back that same instance."""

    def __init__(self, properties: ModifiableRecordProperties, instance: Any):
        self._properties = properties
        self._instance = instance

    def set(self, name: str, value: Any) -> None:
        write_property(self._properties.require(name), self._instance, value)

    def build(self) -> Any:
        return self._instance
