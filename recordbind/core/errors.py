"""Error Hierarchy: typed, categorized exceptions for every recordbind failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Discovery and access errors name the record type and property involved
    - Underlying failures are chained with `raise ... from` (never discarded)
    - UserValidationError is NOT a RecordBindError: the core never wraps it

Design Decisions:
    - Single hierarchy with RecordBindError base: callers catch one type (ADR: uniform error shape)
    - ErrorContext as dataclass: rich diagnostics without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories, one per failure family."""
    DISCOVERY = "discovery"
    ACCESS = "access"
    CODEC = "codec"
    CONFIGURATION = "configuration"


@dataclass
class ErrorContext:
    """Diagnostic context: enough to debug a mapping failure without a debugger."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    record_type: str | None = None
    property_name: str | None = None
    value: str | None = None
    debug_info: dict[str, Any] | None = None


def type_name(tp: Any) -> str:
    """Readable name for a class or generic alias."""
    if isinstance(tp, type):
        return tp.__qualname__
    return repr(tp).replace("typing.", "")


class RecordBindError(Exception):
    """Base exception for all recordbind errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def to_dict(self) -> dict:
        """Convert to a JSON-safe error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "record_type": self.context.record_type,
                    "property_name": self.context.property_name,
                    "value": self.context.value,
                },
            }
        }

    def to_log_extra(self) -> dict:
        """Fields surfaced by the JSON log formatter."""
        return {
            "error_code": self.code,
            "record_type": self.context.record_type,
            "property_name": self.context.property_name,
        }


class UserValidationError(Exception):
    """Base for caller-defined invariant failures raised while building a record.

    Propagates through the core unmodified: never wrapped, never logged as a core error.
    """


def _context(record_type: Any = None, property_name: str | None = None,
             value: Any = None, **debug_info: Any) -> ErrorContext:
    return ErrorContext(
        record_type=type_name(record_type) if record_type is not None else None,
        property_name=property_name,
        value=repr(value) if value is not None else None,
        debug_info=debug_info or None,
    )


# ─── Discovery Errors ───────────────────────────────────────────

class TypeNotIntrospectableError(RecordBindError):
    """A type's accessors or annotations could not be inspected."""
    def __init__(self, record_type: Any, reason: str):
        super().__init__(
            f"Failed to inspect {type_name(record_type)}: {reason}",
            "TYPE_NOT_INTROSPECTABLE", ErrorCategory.DISCOVERY,
            ErrorSeverity.ERROR, _context(record_type),
        )
        self.record_type = record_type


class TypeNotConstructibleError(RecordBindError):
    """No usable no-argument constructor for a direct-mutation record."""
    def __init__(self, record_type: Any):
        super().__init__(
            f"A record, {type_name(record_type)}, was mapped which was not instantiable",
            "TYPE_NOT_CONSTRUCTIBLE", ErrorCategory.DISCOVERY,
            ErrorSeverity.ERROR, _context(record_type),
        )
        self.record_type = record_type


class SetterNotFoundError(RecordBindError):
    """No writable accessor exists for a property."""
    def __init__(self, record_type: Any, property_name: str,
                 attempted: list[str] | None = None):
        super().__init__(
            f"No appropriate method to write property {property_name} "
            f"of {type_name(record_type)}",
            "SETTER_NOT_FOUND", ErrorCategory.DISCOVERY,
            ErrorSeverity.ERROR, _context(record_type, property_name),
        )
        self.record_type = record_type
        self.property_name = property_name
        self.attempted = list(attempted or [])
        for signature in self.attempted:
            self.add_note(f"tried {signature}")


class UnresolvableTypeError(RecordBindError):
    """A generic parameter could not be bound against the concrete type."""
    def __init__(self, declared: Any, concrete: Any, property_name: str | None = None):
        super().__init__(
            f"Cannot resolve {type_name(declared)} against {type_name(concrete)}",
            "UNRESOLVABLE_TYPE", ErrorCategory.DISCOVERY,
            ErrorSeverity.ERROR, _context(concrete, property_name),
        )
        self.declared = declared
        self.concrete = concrete


class TypeNotRegisteredError(RecordBindError):
    """Type has no registered variant and bean fallback is disabled."""
    def __init__(self, record_type: Any):
        super().__init__(
            f"{type_name(record_type)} is not registered with any property variant",
            "TYPE_NOT_REGISTERED", ErrorCategory.CONFIGURATION,
            ErrorSeverity.ERROR, _context(record_type),
        )
        self.record_type = record_type


class QualifierConflictError(RecordBindError):
    """Qualifiers that select mutually exclusive codecs were combined."""
    def __init__(self, qualified_type: Any, reason: str):
        super().__init__(
            f"Conflicting qualifiers on {qualified_type!r}: {reason}",
            "QUALIFIER_CONFLICT", ErrorCategory.CONFIGURATION,
            ErrorSeverity.ERROR, _context(),
        )
        self.qualified_type = qualified_type


# ─── Access Errors ──────────────────────────────────────────────

class UnknownPropertyError(RecordBindError):
    """A builder write named a property the record type does not have."""
    def __init__(self, record_type: Any, property_name: str):
        super().__init__(
            f"{type_name(record_type)} has no property named {property_name!r}",
            "UNKNOWN_PROPERTY", ErrorCategory.ACCESS,
            ErrorSeverity.ERROR, _context(record_type, property_name),
        )
        self.record_type = record_type
        self.property_name = property_name


class AccessorInvocationError(RecordBindError):
    """Invoking a getter, setter or is-set probe raised."""
    def __init__(self, record_type: Any, property_name: str, instance: Any,
                 action: str = "read"):
        super().__init__(
            f"Failed to {action} property {property_name} on {instance!r}",
            "ACCESSOR_INVOCATION_FAILED", ErrorCategory.ACCESS,
            ErrorSeverity.ERROR, _context(record_type, property_name, instance),
        )
        self.record_type = record_type
        self.property_name = property_name
        self.instance = instance


class ValueIncompatibleError(RecordBindError):
    """Value written to a property does not fit its declared type."""
    def __init__(self, record_type: Any, property_name: str, value: Any, expected: Any):
        super().__init__(
            f"Write method of {type_name(expected)} for property {property_name} "
            f"is not compatible with the value passed ({value!r})",
            "VALUE_INCOMPATIBLE", ErrorCategory.ACCESS,
            ErrorSeverity.ERROR, _context(record_type, property_name, value),
        )
        self.record_type = record_type
        self.property_name = property_name
        self.value = value
        self.expected = expected


class IncompleteRecordError(RecordBindError):
    """build() called before every required property was written."""
    def __init__(self, record_type: Any, missing: list[str]):
        super().__init__(
            f"Cannot build {type_name(record_type)}, required properties not set: "
            f"{', '.join(missing)}",
            "INCOMPLETE_RECORD", ErrorCategory.ACCESS,
            ErrorSeverity.ERROR, _context(record_type, missing=missing),
        )
        self.record_type = record_type
        self.missing = missing


# ─── Codec Errors ───────────────────────────────────────────────

class CodecNotFoundError(RecordBindError):
    """No registered codec factory accepted the qualified type."""
    def __init__(self, qualified_type: Any):
        super().__init__(
            f"No column codec registered for {qualified_type!r}",
            "CODEC_NOT_FOUND", ErrorCategory.CODEC,
            ErrorSeverity.ERROR, _context(),
        )
        self.qualified_type = qualified_type


class NonNullViolationError(RecordBindError):
    """A NonNull-qualified value decoded or encoded to None."""
    def __init__(self, qualified_type: Any):
        super().__init__(
            f"type qualified with NonNull got a null value ({qualified_type!r})",
            "NONNULL_VIOLATION", ErrorCategory.CODEC,
            ErrorSeverity.ERROR, _context(),
        )
        self.qualified_type = qualified_type


class UnresolvableEnumValueError(RecordBindError):
    """Column value matches no enum constant by name or ordinal."""
    def __init__(self, enum_type: type, value: Any, matched_by: str):
        super().__init__(
            f"no {enum_type.__name__} value could be matched to the {matched_by} {value}",
            "UNRESOLVABLE_ENUM_VALUE", ErrorCategory.CODEC,
            ErrorSeverity.ERROR, _context(enum_type, value=value),
        )
        self.enum_type = enum_type
        self.value = value
        self.matched_by = matched_by


class UnconvertibleValueError(RecordBindError):
    """Column value cannot be converted to the target scalar type."""
    def __init__(self, target_type: Any, value: Any):
        super().__init__(
            f"Cannot convert {value!r} to {type_name(target_type)}",
            "UNCONVERTIBLE_VALUE", ErrorCategory.CODEC,
            ErrorSeverity.ERROR, _context(target_type, value=value),
        )
        self.target_type = target_type
        self.value = value
