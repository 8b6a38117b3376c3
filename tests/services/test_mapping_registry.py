"""Mapping Registry tests: variant selection, per-variant caches and the codec chain.

Tests cover:
    - variant_for: explicit registrations, bean fallback, fallback disabled
    - properties_for / builder_for across all three variants
    - Generic aliases resolve through the erased registration
    - Cache identity: repeated and concurrent properties_for return the same table
    - Unknown property fails for every variant
    - Default codec chain order and user codec registration
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from recordbind.config import Settings
from recordbind.core.column_codecs import ColumnCodec, NonNullCodec
from recordbind.core.domain_types import (
    EnumStrategy, NonNull, PropertyVariant, QualifiedType,
)
from recordbind.core.enum_codecs import EnumByNameCodec, EnumByOrdinalCodec
from recordbind.core.errors import (
    NonNullViolationError, TypeNotRegisteredError, UnknownPropertyError,
)
from recordbind.services.mapping_registry import MappingRegistry
from sample_records import (
    Account, AccountBuilder, AccountValue, Color, FooBarBaz, ModifiableFooBarBaz,
    Person, SubValue, SubValueBuilder, Train,
)


def _register_all(registry):
    return (registry
            .register_immutable(SubValue, SubValueBuilder)
            .register_immutable(Train)
            .register_immutable(Account, AccountBuilder, implementation=AccountValue)
            .register_modifiable(FooBarBaz, ModifiableFooBarBaz))


# ─── Variant selection ───────────────────────────────────────────

def test_variant_for_registered_types(registry):
    _register_all(registry)
    assert registry.variant_for(Train) is PropertyVariant.IMMUTABLE
    assert registry.variant_for(SubValue[str, int]) is PropertyVariant.IMMUTABLE
    assert registry.variant_for(AccountValue) is PropertyVariant.IMMUTABLE
    assert registry.variant_for(ModifiableFooBarBaz) is PropertyVariant.MODIFIABLE
    assert registry.variant_for(Person) is PropertyVariant.BEAN


def test_fallback_disabled_rejects_unregistered():
    registry = MappingRegistry(Settings(_env_file=None, bean_fallback=False))
    with pytest.raises(TypeNotRegisteredError, match="Person"):
        registry.variant_for(Person)
    with pytest.raises(TypeNotRegisteredError):
        registry.properties_for(Person)


# ─── Properties & builders ───────────────────────────────────────

def test_generic_resolution_through_registry(registry):
    _register_all(registry)
    props = registry.properties_for(SubValue[str, int])
    assert props["t"].qualified_type.base_type is int
    assert props["x"].qualified_type.base_type is str


def test_round_trip_every_variant(registry):
    _register_all(registry)
    cases = [
        (Person, {"name": "Ada", "age": 36, "nickname": "countess"}),
        (Train, {"name": "Mallard", "carriages": 6, "observation_car": True}),
        (SubValue[str, int], {"x": "sub", "t": 3}),
        (ModifiableFooBarBaz, {"id": 1, "foo": "f", "bar": 2, "baz": 0.5}),
    ]
    for record_type, values in cases:
        builder = registry.builder_for(record_type)
        for name, value in values.items():
            builder.set(name, value)
        record = builder.build()
        props = registry.properties_for(record_type)
        assert {name: props[name].get(record) for name in values} == values


def test_implementation_shares_definition_registration(registry):
    _register_all(registry)
    props = registry.properties_for(AccountValue)
    assert set(props) == {"owner", "active", "summary"}
    assert props["owner"].get(AccountValue("ada", False)) == "ada"


@pytest.mark.parametrize("record_type", [Person, Train, SubValue[str, int], ModifiableFooBarBaz])
def test_unknown_property_every_variant(registry, record_type):
    _register_all(registry)
    builder = registry.builder_for(record_type)
    with pytest.raises(UnknownPropertyError, match="does_not_exist"):
        builder.set("does_not_exist", 1)


# ─── Caches ──────────────────────────────────────────────────────

def test_properties_cached_per_variant(registry):
    _register_all(registry)
    assert registry.properties_for(Train) is registry.properties_for(Train)
    registry.properties_for(Person)
    registry.properties_for(ModifiableFooBarBaz)
    assert Train in registry.immutable_cache
    assert Person in registry.bean_cache
    assert ModifiableFooBarBaz in registry.modifiable_cache
    assert Train not in registry.bean_cache


def test_concurrent_first_access_same_table(registry):
    _register_all(registry)
    barrier = threading.Barrier(6)

    def fetch(_):
        barrier.wait()
        return registry.properties_for(SubValue[str, int])

    with ThreadPoolExecutor(max_workers=6) as pool:
        tables = list(pool.map(fetch, range(6)))
    assert all(t is tables[0] for t in tables)
    assert {n: p.qualified_type for n, p in tables[0].items()} == {
        "t": QualifiedType(int), "x": QualifiedType(str),
    }


def test_separate_registries_do_not_share_caches(settings):
    first, second = MappingRegistry(settings), MappingRegistry(settings)
    first.properties_for(Person)
    assert Person not in second.bean_cache


# ─── Codecs ──────────────────────────────────────────────────────

def test_default_chain(registry):
    assert registry.codec_for(int).decode("4") == 4
    assert isinstance(registry.codec_for(Color), EnumByNameCodec)
    assert isinstance(registry.codec_for(QualifiedType.of(int, NonNull())), NonNullCodec)
    with pytest.raises(NonNullViolationError):
        registry.codec_for(QualifiedType.of(int, NonNull())).decode(None)


def test_enum_strategy_from_settings():
    registry = MappingRegistry(Settings(_env_file=None, enum_strategy=EnumStrategy.BY_ORDINAL))
    assert isinstance(registry.codec_for(Color), EnumByOrdinalCodec)


def test_user_codec_overrides_default(registry):
    class Reversed(ColumnCodec):
        def decode(self, value):
            return None if value is None else str(value)[::-1]

    registry.register_codec(str, Reversed())
    assert registry.codec_for(str).decode("abc") == "cba"
    assert registry.codec_for(int | None).decode("7") == 7
