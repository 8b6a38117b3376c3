"""Bean Properties tests: direct-mutation discovery, writes and reads.

Tests cover:
    - Discovery from get_/set_ methods, property descriptors, annotated attributes
    - Most-derived accessor wins; qualifiers unioned across getter/setter/parameter
    - Generic beans: distinct tables per instantiation
    - Round trip through the builder
    - Errors: unknown property, read-only property, incompatible value,
      failing getter, missing no-argument constructor
    - Caller validation raised by a setter propagates unwrapped
"""

import pytest

from recordbind.core.bean_properties import BeanRecordProperties
from recordbind.core.domain_types import NonNull, QualifiedType
from recordbind.core.errors import (
    AccessorInvocationError, SetterNotFoundError, TypeNotConstructibleError,
    UnknownPropertyError, ValueIncompatibleError,
)
from recordbind.core.qualifiers import Qualifiers
from recordbind.core.registry_cache import RegistryCache
from sample_records import (
    Box, Employee, FragileBean, IntBox, NegativeSizeError, NoDefaultConstructor,
    Person, Shipment, Trimmed,
)


def _make_props(record_type, cache=None):
    return BeanRecordProperties(
        record_type, cache if cache is not None else RegistryCache("bean"), Qualifiers(),
    )


# ─── Discovery ───────────────────────────────────────────────────

def test_discovers_every_accessor_style():
    props = _make_props(Person).properties
    assert set(props) == {"name", "age", "adult", "nickname"}
    assert props["name"].qualified_type == QualifiedType(str)
    assert props["age"].qualified_type == QualifiedType(int)
    assert props["adult"].qualified_type == QualifiedType(bool)
    assert props["nickname"].qualified_type == QualifiedType(str | None)


def test_read_only_property_has_no_setter():
    props = _make_props(Person).properties
    assert props["adult"].setter is None
    assert props["name"].setter is not None


def test_subclass_accessors_and_qualifiers():
    props = _make_props(Employee).properties
    assert set(props) == {"name", "age", "adult", "nickname", "badge"}
    assert props["badge"].qualified_type == QualifiedType(str, frozenset({NonNull(), Trimmed()}))


def test_generic_instantiations_are_distinct():
    cache = RegistryCache("bean")
    as_int = _make_props(Box[int], cache).properties
    as_str = _make_props(Box[str], cache).properties
    assert as_int["contents"].qualified_type.base_type is int
    assert as_str["contents"].qualified_type.base_type is str
    assert len(cache) == 2


def test_parameterized_base_class():
    assert _make_props(IntBox).properties["contents"].qualified_type.base_type is int


def test_table_is_read_only():
    props = _make_props(Person).properties
    with pytest.raises(TypeError):
        props["other"] = props["name"]


# ─── Builder round trip ──────────────────────────────────────────

def test_round_trip():
    record_props = _make_props(Person)
    builder = record_props.create()
    values = {"name": "Ada", "age": 36, "nickname": None}
    for name, value in values.items():
        builder.set(name, value)
    person = builder.build()
    assert isinstance(person, Person)
    for name, value in values.items():
        assert record_props.properties[name].get(person) == value
    assert record_props.properties["adult"].get(person) is True


def test_subclass_override_runs_on_read():
    record_props = _make_props(Employee)
    builder = record_props.create()
    builder.set("name", "ada")
    builder.set("badge", "  B-7  ")
    employee = builder.build()
    assert record_props.properties["name"].get(employee) == "ADA"
    assert record_props.properties["badge"].get(employee) == "B-7"


def test_dataclass_bean():
    record_props = _make_props(Shipment)
    builder = record_props.create()
    builder.set("id", 3)
    builder.set("label", "crate")
    shipment = builder.build()
    assert shipment == Shipment(id=3, label="crate")


# ─── Errors ──────────────────────────────────────────────────────

def test_unknown_property_named():
    builder = _make_props(Person).create()
    with pytest.raises(UnknownPropertyError, match="does_not_exist"):
        builder.set("does_not_exist", 1)


def test_read_only_property_write_fails():
    builder = _make_props(Person).create()
    with pytest.raises(SetterNotFoundError, match="adult"):
        builder.set("adult", True)


def test_incompatible_value():
    builder = _make_props(Person).create()
    with pytest.raises(ValueIncompatibleError, match="age") as exc:
        builder.set("age", "thirty")
    assert exc.value.context.property_name == "age"
    assert exc.value.context.value == "'thirty'"


def test_failing_getter_wrapped_with_cause():
    record_props = _make_props(FragileBean)
    bean = record_props.create().build()
    with pytest.raises(AccessorInvocationError, match="size") as exc:
        record_props.properties["size"].get(bean)
    assert isinstance(exc.value.__cause__, RuntimeError)


def test_setter_validation_propagates_unwrapped():
    builder = _make_props(FragileBean).create()
    with pytest.raises(NegativeSizeError):
        builder.set("size", -1)


def test_not_constructible():
    with pytest.raises(TypeNotConstructibleError, match="NoDefaultConstructor"):
        _make_props(NoDefaultConstructor).create()
