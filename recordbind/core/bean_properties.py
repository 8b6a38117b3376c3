"""Bean Properties: the direct-mutation variant (no-argument constructor + setters).

Invariants:
    - Properties come from the erased class MRO, most-derived accessor wins per role
    - Sources, in order: property descriptors, get_x/is_x + set_x methods, annotated attributes
    - A property may be read-only (no setter): discovery succeeds, set() raises SetterNotFoundError
    - create() calls cls() once; build() returns that same instance

Design Decisions:
    - Accessors dispatch through the instance (attrgetter / methodcaller), so a subclass
      instance written through a base-class table still runs its own overrides
"""

import inspect
import logging
import operator
from dataclasses import dataclass
from typing import Any, Generic, Protocol

from recordbind.core.domain_types import QualifiedType
from recordbind.core.errors import (
    TypeNotConstructibleError, TypeNotIntrospectableError, UserValidationError,
)
from recordbind.core.generic_types import (
    class_annotations, class_bindings, declared_parameter, declared_return_type,
    erased_type, resolve_type, value_parameters,
)
from recordbind.core.qualifiers import AttributeRef, ParameterRef, Qualifiers
from recordbind.core.record_properties import (
    RecordProperties, RecordProperty, attribute_setter, method_setter,
    property_name, write_property,
)
from recordbind.core.registry_cache import RegistryCache

logger = logging.getLogger(__name__)

_NOT_INSPECTED = (object, Generic, Protocol)


@dataclass
class _Accessors:
    """Reader/writer pair found for one property name during the MRO scan."""
    reader: Any = None
    writer: Any = None
    reader_owner: type | None = None
    writer_owner: type | None = None
    getter: Any = None
    setter: Any = None


def _scan_accessors(cls: type) -> dict[str, _Accessors]:
    found: dict[str, _Accessors] = {}
    for klass in cls.__mro__:
        if klass in _NOT_INSPECTED:
            continue
        for attr, member in klass.__dict__.items():
            if attr.startswith("_"):
                continue
            if isinstance(member, property):
                acc = found.setdefault(attr, _Accessors())
                if acc.reader is None and member.fget is not None:
                    acc.reader, acc.reader_owner = member.fget, klass
                    acc.getter = operator.attrgetter(attr)
                if acc.writer is None and member.fset is not None:
                    acc.writer, acc.writer_owner = member.fset, klass
                    acc.setter = attribute_setter(attr)
            elif inspect.isfunction(member):
                arity = len(value_parameters(member))
                if attr.startswith("set_") and len(attr) > 4 and arity == 1:
                    acc = found.setdefault(attr[4:], _Accessors())
                    if acc.writer is None:
                        acc.writer, acc.writer_owner = member, klass
                        acc.setter = method_setter(attr)
                elif property_name(attr) != attr and arity == 0:
                    acc = found.setdefault(property_name(attr), _Accessors())
                    if acc.reader is None:
                        acc.reader, acc.reader_owner = member, klass
                        acc.getter = operator.methodcaller(attr)
    return found


class BeanRecordProperties(RecordProperties):
    """Direct-mutation records: plain classes, dataclasses, property-based beans."""

    def __init__(self, record_type: Any, cache: RegistryCache, qualifiers: Qualifiers):
        super().__init__(record_type, cache)
        self._qualifiers = qualifiers

    def _discover(self) -> dict[str, RecordProperty]:
        cls = erased_type(self.record_type)
        if not isinstance(cls, type) or cls is object:
            raise TypeNotIntrospectableError(self.record_type, "not a class")
        bindings = class_bindings(self.record_type)
        props = {
            name: self._accessor_property(name, acc, bindings)
            for name, acc in _scan_accessors(cls).items()
        }
        for name, (owner, annotation) in class_annotations(cls).items():
            if name not in props:
                props[name] = self._attribute_property(name, owner, annotation, bindings)
        logger.debug(
            "Discovered %d bean properties", len(props),
            extra={"record_type": repr(self.record_type)},
        )
        return props

    def _accessor_property(self, name: str, acc: _Accessors, bindings) -> RecordProperty:
        param_name = None
        if acc.reader is not None:
            owner = acc.reader_owner
            declared = declared_return_type(acc.reader, owner)
            if acc.writer is not None:
                param_name, _ = declared_parameter(acc.writer, acc.writer_owner)
        else:
            owner = acc.writer_owner
            param_name, declared = declared_parameter(acc.writer, owner)
        param = ParameterRef(acc.writer, param_name) if param_name else None
        qualifiers = self._qualifiers.qualifiers(acc.reader, acc.writer, param)
        resolved = resolve_type(declared, self.record_type, owner, bindings, name)
        return RecordProperty(
            name=name,
            qualified_type=QualifiedType.of(resolved, *qualifiers),
            getter=acc.getter,
            setter=acc.setter,
            accessors=tuple(a for a in (acc.reader, acc.writer, param) if a is not None),
            owner=self.record_type,
        )

    def _attribute_property(self, name: str, owner: type, annotation: Any,
                            bindings) -> RecordProperty:
        ref = AttributeRef(owner, name)
        resolved = resolve_type(annotation, self.record_type, owner, bindings, name)
        return RecordProperty(
            name=name,
            qualified_type=QualifiedType.of(resolved, *self._qualifiers.qualifiers(ref)),
            getter=operator.attrgetter(name),
            setter=attribute_setter(name),
            accessors=(ref,),
            owner=self.record_type,
        )

    def create(self) -> "BeanBuilder":
        cls = erased_type(self.record_type)
        try:
            instance = cls()
        except UserValidationError:
            raise
        except Exception as e:
            raise TypeNotConstructibleError(self.record_type) from e
        return BeanBuilder(self, instance)


class BeanBuilder:
    """Writes straight into the live instance."""

    def __init__(self, properties: BeanRecordProperties, instance: Any):
        self._properties = properties
        self._instance = instance

    def set(self, name: str, value: Any) -> None:
        write_property(self._properties.require(name), self._instance, value)

    def build(self) -> Any:
        return self._instance
