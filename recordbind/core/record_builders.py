"""Record Builders: generate a fluent builder class for a keyword-constructed value type.

Invariants:
    - One set_<field>(value) method per constructor field, annotated with the field's type
    - Setters return the builder (fluent) and only record the value
    - A field without a default whose type admits None starts out as None, so an
      unwritten optional field never reaches the constructor as a missing argument
    - build() calls value_type(**recorded) exactly once per call; it never wraps exceptions,
      so __post_init__ / __new__ validation failures reach the caller unmodified

Design Decisions:
    - Generated with type() rather than a generic builder with __getattr__: the immutable
      setter lookup needs real, annotated methods to inspect
"""

import dataclasses
import inspect
from typing import Any

from recordbind.core.errors import TypeNotIntrospectableError
from recordbind.core.generic_types import admits_none, type_hints


def _constructor_signature(value_type: type) -> inspect.Signature:
    try:
        return inspect.signature(value_type)
    except (TypeError, ValueError) as e:
        raise TypeNotIntrospectableError(value_type, "no inspectable constructor") from e


def constructor_fields(value_type: type) -> dict[str, Any]:
    """Field name -> annotation for the keyword arguments value_type accepts."""
    if dataclasses.is_dataclass(value_type):
        hints = type_hints(value_type, value_type)
        return {f.name: hints.get(f.name, Any) for f in dataclasses.fields(value_type) if f.init}
    if hasattr(value_type, "_fields"):  # NamedTuple
        hints = type_hints(value_type, value_type)
        return {name: hints.get(name, Any) for name in value_type._fields}
    sig = _constructor_signature(value_type)
    hints = type_hints(value_type.__init__, value_type)
    return {
        p.name: hints.get(p.name, Any)
        for p in sig.parameters.values()
        if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
    }


def fields_without_default(value_type: type) -> set[str]:
    """Constructor fields the caller must pass explicitly."""
    if dataclasses.is_dataclass(value_type):
        return {
            f.name for f in dataclasses.fields(value_type)
            if f.init
            and f.default is dataclasses.MISSING
            and f.default_factory is dataclasses.MISSING
        }
    if hasattr(value_type, "_fields"):
        defaults = getattr(value_type, "_field_defaults", {})
        return {name for name in value_type._fields if name not in defaults}
    return {
        p.name for p in _constructor_signature(value_type).parameters.values()
        if p.kind in (p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY) and p.default is p.empty
    }


def _field_setter(field_name: str, annotation: Any):
    def setter(self, value):
        self._values[field_name] = value
        return self
    setter.__name__ = f"set_{field_name}"
    setter.__annotations__ = {"value": annotation}
    return setter


def builder_class_for(value_type: type) -> type:
    """Builder class for value_type: Builder().set_x(1).set_y(2).build()."""
    fields = constructor_fields(value_type)
    required = fields_without_default(value_type)
    seeded = tuple(
        name for name, annotation in fields.items()
        if name in required and admits_none(annotation)
    )

    def __init__(self):
        self._values = dict.fromkeys(seeded)

    def build(self):
        return value_type(**self._values)

    def __repr__(self):
        return f"{type(self).__name__}({self._values!r})"

    namespace: dict[str, Any] = {
        "__init__": __init__,
        "__repr__": __repr__,
        "build": build,
        "value_type": value_type,
    }
    for name, annotation in fields.items():
        setter = _field_setter(name, annotation)
        setter.__qualname__ = f"{value_type.__name__}Builder.{setter.__name__}"
        namespace[setter.__name__] = setter
    return type(f"{value_type.__name__}Builder", (), namespace)
