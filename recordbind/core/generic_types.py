"""Generic Type Resolver: bind declared property types to a concrete instantiation.

Invariants:
    - Pure and deterministic: no caching here, no side effects
    - Each class in the hierarchy gets its own TypeVar bindings (the same TypeVar object
      may mean different things in a base and a subclass)
    - A TypeVar left unbound after substitution raises UnresolvableTypeError at discovery time

Design Decisions:
    - Bindings walk __orig_bases__ from the concrete alias downward, so
      SubValue[str, int] -> BaseValue[T] resolves T through every level
    - Substitution reuses typing's own alias subscription (alias[...]) instead of
      rebuilding each alias kind by hand
"""

import functools
import inspect
import numbers
import operator
import types
from typing import (
    Annotated, Any, ClassVar, Generic, Literal, Protocol, TypeVar, Union,
    get_args, get_origin, get_type_hints,
)

from recordbind.core.errors import TypeNotIntrospectableError, UnresolvableTypeError

Bindings = dict[TypeVar, Any]

_SKIPPED_BASES = (Generic, Protocol, object)


# ─── Erasure ─────────────────────────────────────────────────────

def erased_type(tp: Any) -> Any:
    """Runtime class behind a type: Box[int] -> Box, Annotated[int, m] -> int.

    Unions, TypeVars and other special forms erase to object.
    """
    if tp is Any:
        return object
    origin = get_origin(tp)
    if origin is Annotated:
        return erased_type(get_args(tp)[0])
    if origin is Union or origin is types.UnionType:
        return object
    if origin is None:
        if isinstance(tp, type):
            return tp
        supertype = getattr(tp, "__supertype__", None)  # NewType
        return erased_type(supertype) if supertype is not None else object
    return origin if isinstance(origin, type) else object


def admits_none(tp: Any) -> bool:
    """True when the declared type allows None (Optional, X | None, Any, object)."""
    origin = get_origin(tp)
    if origin is Annotated:
        return admits_none(get_args(tp)[0])
    if origin is Union or isinstance(tp, types.UnionType):
        return any(admits_none(arm) for arm in get_args(tp))
    if origin is Literal:
        return None in get_args(tp)
    return tp in (Any, object, None, type(None)) or isinstance(tp, TypeVar)


def accepts_value(tp: Any, value: Any) -> bool:
    """Runtime compatibility of `value` with declared type `tp`.

    None always passes here: absence is a codec concern (NonNull), not a write-time one.
    """
    if value is None or tp in (Any, object) or isinstance(tp, TypeVar):
        return True
    origin = get_origin(tp)
    if origin is Annotated:
        return accepts_value(get_args(tp)[0], value)
    if origin is Union or isinstance(tp, types.UnionType):
        return any(accepts_value(arm, value) for arm in get_args(tp))
    if origin is Literal:
        return value in get_args(tp)
    target = erased_type(tp)
    if target is object:
        return True
    if target is float:
        return isinstance(value, numbers.Real)
    if target is complex:
        return isinstance(value, numbers.Complex)
    return isinstance(value, target)


# ─── Declared Types ──────────────────────────────────────────────

def type_hints(obj: Any, owner: Any) -> dict[str, Any]:
    try:
        return get_type_hints(obj, include_extras=True)
    except (NameError, TypeError) as e:
        raise TypeNotIntrospectableError(owner, f"unresolvable annotation on {obj!r}: {e}") from e


def declared_return_type(func: Any, owner: Any) -> Any:
    """Return annotation of an accessor function (Any when unannotated)."""
    return type_hints(func, owner).get("return", Any)


def declared_parameter(func: Any, owner: Any) -> tuple[str | None, Any]:
    """(name, annotation) of the single value parameter of a setter-like callable."""
    params = value_parameters(func)
    if len(params) != 1:
        return None, Any
    name = params[0].name
    return name, type_hints(func, owner).get(name, Any)


def value_parameters(func: Any) -> list[inspect.Parameter]:
    """Positional parameters a caller must supply.

    Plain functions are unbound methods here: their first parameter is the receiver.
    """
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        return []
    params = list(sig.parameters.values())
    if inspect.isfunction(func) and params:
        params = params[1:]
    return [
        p for p in params
        if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)
        and p.default is p.empty
    ]


def class_annotations(cls: type) -> dict[str, tuple[type, Any]]:
    """Annotated instance attributes across the MRO: name -> (owner, annotation).

    Most-derived declaration wins; ClassVar and private names are skipped.
    """
    found: dict[str, tuple[type, Any]] = {}
    for klass in cls.__mro__:
        if klass in _SKIPPED_BASES or klass.__module__ == "builtins":
            continue
        try:
            annotations = inspect.get_annotations(klass, eval_str=True)
        except (NameError, TypeError) as e:
            raise TypeNotIntrospectableError(cls, f"unresolvable annotation: {e}") from e
        for name, annotation in annotations.items():
            if name.startswith("_") or get_origin(annotation) is ClassVar:
                continue
            found.setdefault(name, (klass, annotation))
    return found


# ─── Bindings ────────────────────────────────────────────────────

def _substitute(tp: Any, env: Bindings) -> Any:
    if isinstance(tp, TypeVar):
        return env.get(tp, tp)
    if isinstance(tp, types.UnionType):
        return functools.reduce(operator.or_, (_substitute(a, env) for a in get_args(tp)))
    params = getattr(tp, "__parameters__", ())
    if params and get_origin(tp) is not None:
        return tp[tuple(_substitute(p, env) for p in params)]
    return tp


def _walk_bases(cls: type, env: Bindings, bindings: dict[type, Bindings]) -> None:
    for base in cls.__dict__.get("__orig_bases__", cls.__bases__):
        origin = get_origin(base) or base
        if origin in _SKIPPED_BASES or not isinstance(origin, type) or origin in bindings:
            continue
        base_params = getattr(origin, "__parameters__", ())
        base_env = {
            param: _substitute(arg, env)
            for param, arg in zip(base_params, get_args(base))
        }
        bindings[origin] = base_env
        _walk_bases(origin, base_env, bindings)


def class_bindings(concrete: Any) -> dict[type, Bindings]:
    """TypeVar bindings for every class in the concrete type's hierarchy."""
    origin = erased_type(concrete)
    args = get_args(concrete) if get_origin(concrete) is not None else ()
    params = getattr(origin, "__parameters__", ())
    if args and len(args) != len(params):
        raise UnresolvableTypeError(origin, concrete)
    root = dict(zip(params, args))
    bindings = {origin: root}
    _walk_bases(origin, root, bindings)
    return bindings


def _free_typevars(tp: Any) -> list[TypeVar]:
    if isinstance(tp, TypeVar):
        return [tp]
    return [v for arg in get_args(tp) for v in _free_typevars(arg)]


def resolve_type(
    declared: Any, concrete: Any, owner: type,
    bindings: dict[type, Bindings] | None = None,
    property_name: str | None = None,
) -> Any:
    """Substitute the concrete type's arguments into a type declared on `owner`.

    `bindings` may be precomputed with class_bindings() when resolving many
    properties of the same concrete type.
    """
    if bindings is None:
        bindings = class_bindings(concrete)
    resolved = _substitute(declared, bindings.get(owner, {}))
    if _free_typevars(resolved):
        raise UnresolvableTypeError(declared, concrete, property_name)
    return resolved
