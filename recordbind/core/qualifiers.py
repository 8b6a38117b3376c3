"""Qualifier Resolver: collect the marker tags attached to a group of accessors.

Invariants:
    - qualifiers(*elements) = union of qualifying markers over all elements (None ignored)
    - Cache key: the element itself for one element, the unordered frozenset for several
    - Cached sets are computed from class/function definitions only, never from
      registry configuration, so they stay valid for the registry's lifetime

Design Decisions:
    - Two attachment styles: typing.Annotated metadata and the @qualified decorator
      (Annotated for attributes/parameters, decorator where no annotation slot exists)
    - ParameterRef / AttributeRef give hashable identities to a setter's parameter and to
      an annotated attribute, which have no object of their own to key on
"""

import inspect
from dataclasses import dataclass
from typing import Any

from recordbind.core.domain_types import is_qualifier, strip_annotated
from recordbind.core.errors import TypeNotIntrospectableError
from recordbind.core.generic_types import declared_return_type, type_hints
from recordbind.core.registry_cache import RegistryCache


@dataclass(frozen=True)
class ParameterRef:
    """A named parameter of a setter function."""
    function: Any
    name: str


@dataclass(frozen=True)
class AttributeRef:
    """An annotated attribute declared on `owner`."""
    owner: type
    name: str


def qualified(*markers: Any):
    """Attach markers to an accessor function, a property, or a class (e.g. an Enum)."""
    def decorate(target):
        holder = target.fget if isinstance(target, property) else target
        existing = holder.__dict__.get("__qualifiers__", ())
        setattr(holder, "__qualifiers__", tuple(existing) + markers)
        return target
    return decorate


def _attached(element: Any) -> tuple:
    return tuple(getattr(element, "__dict__", {}).get("__qualifiers__", ()))


def _annotation_markers(annotation: Any) -> tuple:
    return strip_annotated(annotation)[1]


def markers_of(element: Any) -> tuple:
    """Every marker on one element, qualifying or not, in declaration order."""
    if element is None:
        return ()
    if isinstance(element, property):
        return markers_of(element.fget) + markers_of(element.fset)
    if isinstance(element, ParameterRef):
        hints = type_hints(element.function, element.function)
        return _annotation_markers(hints.get(element.name))
    if isinstance(element, AttributeRef):
        try:
            annotations = inspect.get_annotations(element.owner, eval_str=True)
        except (NameError, TypeError) as e:
            raise TypeNotIntrospectableError(element.owner, str(e)) from e
        return _annotation_markers(annotations.get(element.name))
    if inspect.isclass(element):
        return _attached(element)
    if callable(element):
        return _attached(element) + _annotation_markers(declared_return_type(element, element))
    return ()


def get_markers(*elements: Any) -> tuple:
    """Every marker across the elements. Not cached."""
    return tuple(m for element in elements for m in markers_of(element))


def get_qualifiers(*elements: Any) -> frozenset:
    """Qualifying markers across the elements. Not cached: see Qualifiers.qualifiers."""
    return frozenset(m for m in get_markers(*elements) if is_qualifier(m))


class Qualifiers:
    """Registry-wide, append-only cache of qualifier sets per accessor group."""

    def __init__(self, cache: RegistryCache | None = None):
        self._cache = cache if cache is not None else RegistryCache("qualifiers")

    def qualifiers(self, *elements: Any) -> frozenset:
        key = elements[0] if len(elements) == 1 else frozenset(elements)
        return self._cache.get_or_compute(key, lambda: get_qualifiers(*elements))
