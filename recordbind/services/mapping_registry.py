"""Mapping Registry: per-type variant registration, caches and the codec chain.

Invariants:
    - Owns every cache in the process that belongs to it: one per variant, one for
      qualifier sets, one for enum name matches; nothing is module-global
    - Registrations are keyed by erased type, lookups accept generic aliases
      (SubValue[str, int] resolves through the SubValue registration)
    - Property tables are cached per concrete type requested, in the variant's own cache
    - Codec factories registered later win over the defaults

Design Decisions:
    - Explicit registration selects the variant (ADR: no implicit shape sniffing);
      unregistered types fall back to direct mutation unless Settings.bean_fallback is off
    - Handlers (RecordProperties) are created per call: they are thin, the tables they
      produce are what gets cached
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from recordbind.config import Settings, get_settings
from recordbind.core.bean_properties import BeanRecordProperties
from recordbind.core.column_codecs import (
    ColumnCodec, ColumnCodecFactory, ColumnCodecs, nonnull_codec_factory,
    optional_codec_factory, scalar_codec_factory,
)
from recordbind.core.domain_types import PropertyVariant
from recordbind.core.enum_codecs import EnumCodecFactory
from recordbind.core.errors import TypeNotRegisteredError, type_name
from recordbind.core.generic_types import erased_type
from recordbind.core.immutables_properties import (
    ImmutableRecordProperties, ModifiableRecordProperties,
)
from recordbind.core.qualifiers import Qualifiers
from recordbind.core.record_builders import builder_class_for
from recordbind.core.record_properties import (
    RecordBuilder, RecordProperties, RecordProperty,
)
from recordbind.core.registry_cache import RegistryCache

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Registration:
    variant: PropertyVariant
    definition: type
    builder: Callable[[], Any] | None = None
    implementation: type | None = None
    constructor: Callable[[], Any] | None = None


class MappingRegistry:
    """Configuration hub: which variant maps a type, and which codec maps a column."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self._registrations: dict[type, _Registration] = {}
        self.bean_cache = RegistryCache("bean")
        self.immutable_cache = RegistryCache("immutable")
        self.modifiable_cache = RegistryCache("modifiable")
        self.qualifiers = Qualifiers(RegistryCache("qualifiers"))
        self.enum_name_cache = RegistryCache("enum_names")
        self.codecs = ColumnCodecs()
        self.codecs.register(scalar_codec_factory)
        self.codecs.register(optional_codec_factory)
        self.codecs.register(EnumCodecFactory(self.settings.enum_strategy, self.enum_name_cache))
        self.codecs.register(nonnull_codec_factory)

    # ─── Registration ────────────────────────────────────────────

    def register_immutable(self, definition: type, builder: Callable[[], Any] | None = None,
                           implementation: type | None = None) -> "MappingRegistry":
        """Map `definition` (and `implementation`, if given) through a builder.

        `builder` is any zero-argument callable returning a fresh builder; the
        default is a builder class generated from the definition's fields.
        """
        registration = _Registration(
            PropertyVariant.IMMUTABLE, definition,
            builder=builder or builder_class_for(definition),
            implementation=implementation,
        )
        self._register(definition, registration)
        if implementation is not None:
            self._register(implementation, registration)
        return self

    def register_modifiable(self, definition: type, implementation: type,
                            constructor: Callable[[], Any] | None = None) -> "MappingRegistry":
        """Map `implementation` as a partially-settable value shaped by `definition`."""
        self._register(implementation, _Registration(
            PropertyVariant.MODIFIABLE, definition,
            implementation=implementation,
            constructor=constructor or implementation,
        ))
        return self

    def register_codec_factory(self, factory: ColumnCodecFactory) -> "MappingRegistry":
        self.codecs.register(factory)
        return self

    def register_codec(self, base_type: Any, codec: ColumnCodec) -> "MappingRegistry":
        self.codecs.register_codec(base_type, codec)
        return self

    def _register(self, key: type, registration: _Registration) -> None:
        self._registrations[erased_type(key)] = registration
        logger.debug(
            "Registered %s as %s", type_name(key), registration.variant.value,
            extra={"record_type": type_name(key)},
        )

    # ─── Lookup ──────────────────────────────────────────────────

    def variant_for(self, record_type: Any) -> PropertyVariant:
        registration = self._registrations.get(erased_type(record_type))
        if registration is not None:
            return registration.variant
        if not self.settings.bean_fallback:
            raise TypeNotRegisteredError(record_type)
        return PropertyVariant.BEAN

    def record_properties(self, record_type: Any) -> RecordProperties:
        """Discovery handler for the concrete type, chosen by its registered variant."""
        registration = self._registrations.get(erased_type(record_type))
        if registration is None:
            if not self.settings.bean_fallback:
                raise TypeNotRegisteredError(record_type)
            return BeanRecordProperties(record_type, self.bean_cache, self.qualifiers)
        if registration.variant is PropertyVariant.IMMUTABLE:
            return ImmutableRecordProperties(
                record_type, registration.definition, registration.builder,
                self.immutable_cache, self.qualifiers,
            )
        return ModifiableRecordProperties(
            record_type, registration.definition, registration.implementation,
            registration.constructor, self.modifiable_cache, self.qualifiers,
        )

    def properties_for(self, record_type: Any) -> Mapping[str, RecordProperty]:
        """Read-only property table for the concrete type, discovered on first use."""
        return self.record_properties(record_type).properties

    def builder_for(self, record_type: Any) -> RecordBuilder:
        """Fresh builder for one construction of the concrete type."""
        return self.record_properties(record_type).create()

    def codec_for(self, qualified_type: Any) -> ColumnCodec:
        return self.codecs.require(qualified_type)

    def __repr__(self) -> str:
        return (
            f"MappingRegistry(registered={len(self._registrations)}, "
            f"codec_factories={len(self.codecs)})"
        )
