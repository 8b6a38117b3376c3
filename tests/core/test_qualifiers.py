"""Qualifier Resolver tests: marker collection across accessor groups.

Tests cover:
    - Annotated return / parameter / attribute metadata
    - @qualified on functions, properties and classes
    - Union over several elements; None elements ignored
    - Non-qualifying markers visible to get_markers, hidden from get_qualifiers
    - Qualifiers cache: single-element and unordered multi-element keys
"""

from typing import Annotated

from recordbind.core.domain_types import EnumByOrdinal, NonNull, Unmapped
from recordbind.core.qualifiers import (
    AttributeRef, ParameterRef, Qualifiers, get_markers, get_qualifiers, qualified,
)
from recordbind.core.registry_cache import RegistryCache
from sample_records import Account, Employee, Note, Priority, Shipment, Trimmed


# ─── Element kinds ───────────────────────────────────────────────

def test_return_annotation_markers():
    assert get_qualifiers(Employee.get_badge) == frozenset({NonNull()})


def test_parameter_annotation_markers():
    ref = ParameterRef(Employee.set_badge, "badge")
    assert get_qualifiers(ref) == frozenset({Trimmed()})


def test_attribute_annotation_markers():
    assert get_qualifiers(AttributeRef(Shipment, "rank")) == frozenset({EnumByOrdinal()})
    assert get_markers(AttributeRef(Shipment, "note")) == (Unmapped(),)
    assert get_qualifiers(AttributeRef(Shipment, "id")) == frozenset()


def test_decorator_on_function_and_class():
    assert get_markers(Account.summary) == (Note("derived"), Unmapped())
    assert get_qualifiers(Account.summary) == frozenset()
    assert get_qualifiers(Priority) == frozenset({EnumByOrdinal()})


def test_decorator_on_property():
    class Holder:
        @qualified(NonNull())
        @property
        def value(self) -> int:
            return 1

    assert get_qualifiers(Holder.__dict__["value"]) == frozenset({NonNull()})


def test_union_across_elements_ignores_none():
    found = get_qualifiers(
        Employee.get_badge, Employee.set_badge, ParameterRef(Employee.set_badge, "badge"), None,
    )
    assert found == frozenset({NonNull(), Trimmed()})


def test_decorator_accumulates():
    @qualified(Note("a"))
    @qualified(NonNull())
    def reader(self) -> Annotated[int, Trimmed()]:
        return 0

    assert set(get_markers(reader)) == {NonNull(), Note("a"), Trimmed()}
    assert get_qualifiers(reader) == frozenset({NonNull(), Trimmed()})


# ─── Qualifiers cache ────────────────────────────────────────────

def test_single_element_keyed_by_itself():
    cache = RegistryCache("qualifiers")
    resolver = Qualifiers(cache)
    assert resolver.qualifiers(Employee.get_badge) == frozenset({NonNull()})
    assert Employee.get_badge in cache


def test_multi_element_key_is_unordered():
    cache = RegistryCache("qualifiers")
    resolver = Qualifiers(cache)
    param = ParameterRef(Employee.set_badge, "badge")
    first = resolver.qualifiers(Employee.get_badge, param)
    second = resolver.qualifiers(param, Employee.get_badge)
    assert first is second
    assert len(cache) == 1
