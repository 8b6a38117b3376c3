"""Enum Codecs tests: by-name and by-ordinal resolution and strategy selection.

Tests cover:
    - By-name: exact, case-insensitive fallback, "" / None as absence, unknown names
    - Name matches memoized under the queried text; failures not memoized
    - By-ordinal: index lookup, out-of-range, negative and fractional ordinals, absence
    - Strategy precedence: property qualifier > enum class marker > default
    - Conflicting qualifiers; foreign qualifiers declined
"""

import pytest

from recordbind.core.column_codecs import ColumnCodecs, nonnull_codec_factory
from recordbind.core.domain_types import (
    EnumByName, EnumByOrdinal, EnumStrategy, NonNull, QualifiedType,
)
from recordbind.core.enum_codecs import (
    EnumByNameCodec, EnumByOrdinalCodec, EnumCodecFactory, enum_strategy_of,
)
from recordbind.core.errors import (
    NonNullViolationError, QualifierConflictError, UnconvertibleValueError,
    UnresolvableEnumValueError,
)
from recordbind.core.registry_cache import RegistryCache
from sample_records import Color, Priority, Trimmed


def _make_codecs(default=EnumStrategy.BY_NAME, cache=None):
    return (ColumnCodecs()
            .register(EnumCodecFactory(default, cache if cache is not None else RegistryCache("enum_names")))
            .register(nonnull_codec_factory))


# ─── By name ─────────────────────────────────────────────────────

def test_by_name_exact_and_case_insensitive():
    codec = EnumByNameCodec(Color, RegistryCache("enum_names"))
    assert codec.decode("FOO") is Color.FOO
    assert codec.decode("foo") is Color.FOO
    assert codec.decode("Bar") is Color.BAR


def test_by_name_empty_and_null_are_absent():
    codec = EnumByNameCodec(Color, RegistryCache("enum_names"))
    assert codec.decode("") is None
    assert codec.decode(None) is None


def test_by_name_unknown_fails():
    codec = EnumByNameCodec(Color, RegistryCache("enum_names"))
    with pytest.raises(UnresolvableEnumValueError, match="no Color value could be matched to the name BAZ"):
        codec.decode("BAZ")


def test_by_name_cache_keyed_by_queried_text():
    cache = RegistryCache("enum_names")
    codec = EnumByNameCodec(Color, cache)
    codec.decode("foo")
    codec.decode("FOO")
    assert (Color, "foo") in cache
    assert (Color, "FOO") in cache
    with pytest.raises(UnresolvableEnumValueError):
        codec.decode("BAZ")
    assert (Color, "BAZ") not in cache


def test_by_name_encode():
    codec = EnumByNameCodec(Color, RegistryCache("enum_names"))
    assert codec.encode(Color.BAR) == "BAR"
    assert codec.encode(None) is None


# ─── By ordinal ──────────────────────────────────────────────────

def test_by_ordinal_lookup():
    codec = EnumByOrdinalCodec(Color)
    assert codec.decode(1) is Color.BAR
    assert codec.decode(0) is Color.FOO
    assert codec.decode(None) is None
    assert codec.encode(Color.BAR) == 1


@pytest.mark.parametrize("ordinal", [5, -1])
def test_by_ordinal_out_of_range(ordinal):
    with pytest.raises(UnresolvableEnumValueError, match=f"to the ordinal {ordinal}"):
        EnumByOrdinalCodec(Color).decode(ordinal)


def test_by_ordinal_non_numeric():
    with pytest.raises(UnconvertibleValueError):
        EnumByOrdinalCodec(Color).decode("first")


def test_by_ordinal_integral_float():
    assert EnumByOrdinalCodec(Color).decode(1.0) is Color.BAR


@pytest.mark.parametrize("ordinal", [1.9, 0.5])
def test_by_ordinal_fractional_is_unconvertible(ordinal):
    with pytest.raises(UnconvertibleValueError):
        EnumByOrdinalCodec(Color).decode(ordinal)


# ─── Strategy selection ──────────────────────────────────────────

def test_default_strategy_applies():
    assert isinstance(_make_codecs().find_for(Color), EnumByNameCodec)
    assert isinstance(_make_codecs(EnumStrategy.BY_ORDINAL).find_for(Color), EnumByOrdinalCodec)


def test_property_qualifier_beats_default():
    codec = _make_codecs().find_for(QualifiedType.of(Color, EnumByOrdinal()))
    assert isinstance(codec, EnumByOrdinalCodec)


def test_class_marker_beats_default():
    assert isinstance(_make_codecs().find_for(Priority), EnumByOrdinalCodec)
    codec = _make_codecs().find_for(QualifiedType.of(Priority, EnumByName()))
    assert isinstance(codec, EnumByNameCodec)


def test_conflicting_qualifiers():
    with pytest.raises(QualifierConflictError):
        enum_strategy_of(QualifiedType.of(Color, EnumByName(), EnumByOrdinal()), EnumStrategy.BY_NAME)


def test_foreign_qualifier_declined():
    assert _make_codecs().find_for(QualifiedType.of(Color, Trimmed())) is None
    assert _make_codecs().find_for(str) is None


def test_nonnull_enum_composition():
    codec = _make_codecs().require(QualifiedType.of(Color, NonNull(), EnumByOrdinal()))
    assert codec.decode(0) is Color.FOO
    with pytest.raises(NonNullViolationError):
        codec.decode(None)
