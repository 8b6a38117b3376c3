"""Record Mapper: column namespace <-> record property namespace.

Invariants:
    - Column match: exact name (or ColumnName override) first, then case- and
      underscore-insensitive ("firstName" ~ "first_name" ~ "FIRSTNAME")
    - Unmapped properties and properties without a setter never receive a column
    - Unmatched columns are skipped, never an error
    - Every column value passes through the property's codec before it is written
    - A failing row aborts: no partially-built record is returned

Design Decisions:
    - Column index and codecs resolved lazily on first row, then reused for the mapper's
      lifetime (the registry's tables are immutable, so nothing goes stale)
    - SQLAlchemy is only a source of rows here: map_result() consumes Result.mappings()
      and never touches connections
"""

import logging
from functools import cached_property
from typing import TYPE_CHECKING, Any, Iterator, Mapping

from recordbind.core.column_codecs import ColumnCodec
from recordbind.core.domain_types import ColumnName, Unmapped
from recordbind.core.errors import RecordBindError, type_name
from recordbind.core.record_properties import RecordProperty
from recordbind.services.mapping_registry import MappingRegistry

if TYPE_CHECKING:
    from sqlalchemy.engine import Result

logger = logging.getLogger(__name__)


def _normalize(column: str) -> str:
    return column.replace("_", "").lower()


def column_name(prop: RecordProperty) -> str:
    """Column a property maps to: its ColumnName override, else its own name."""
    override = prop.annotation(ColumnName)
    return override.name if override is not None else prop.name


def is_mapped(prop: RecordProperty) -> bool:
    return prop.annotation(Unmapped) is None


class RecordMapper:
    """Builds records of one concrete type from rows."""

    def __init__(self, registry: MappingRegistry, record_type: Any):
        self.registry = registry
        self.record_type = record_type
        self._codecs: dict[str, ColumnCodec] = {}

    @cached_property
    def _columns(self) -> tuple[dict[str, RecordProperty], dict[str, RecordProperty]]:
        exact: dict[str, RecordProperty] = {}
        loose: dict[str, RecordProperty] = {}
        for prop in self.registry.properties_for(self.record_type).values():
            if prop.setter is None or not is_mapped(prop):
                continue
            column = column_name(prop)
            exact[column] = prop
            loose.setdefault(_normalize(column), prop)
        return exact, loose

    def property_for(self, column: str) -> RecordProperty | None:
        exact, loose = self._columns
        prop = exact.get(column)
        if prop is None:
            prop = loose.get(_normalize(column))
        return prop

    def _codec(self, prop: RecordProperty) -> ColumnCodec:
        codec = self._codecs.get(prop.name)
        if codec is None:
            codec = self._codecs.setdefault(
                prop.name, self.registry.codec_for(prop.qualified_type),
            )
        return codec

    def map_row(self, row: Mapping[str, Any]) -> Any:
        """One record from one row (column name -> value)."""
        try:
            builder = self.registry.builder_for(self.record_type)
            for column, value in row.items():
                prop = self.property_for(column)
                if prop is None:
                    logger.debug(
                        "Skipping unmatched column %s", column,
                        extra={"record_type": type_name(self.record_type)},
                    )
                    continue
                builder.set(prop.name, self._codec(prop).decode(value))
            return builder.build()
        except RecordBindError as e:
            logger.debug("Row mapping failed: %s", e.message, extra=e.to_log_extra())
            raise

    def map_rows(self, rows) -> Iterator[Any]:
        for row in rows:
            yield self.map_row(row)

    def map_result(self, result: "Result") -> list[Any]:
        """Every row of a SQLAlchemy result, mapped."""
        return list(self.map_rows(result.mappings()))


def bind_record(registry: MappingRegistry, record: Any,
                record_type: Any = None) -> dict[str, Any]:
    """Named statement parameters (column -> encoded value) read from a record.

    Unset modifiable properties bind as None.
    """
    record_type = record_type if record_type is not None else type(record)
    params: dict[str, Any] = {}
    for prop in registry.properties_for(record_type).values():
        if prop.getter is None or not is_mapped(prop):
            continue
        codec = registry.codec_for(prop.qualified_type)
        params[column_name(prop)] = codec.encode(prop.get(record))
    return params
