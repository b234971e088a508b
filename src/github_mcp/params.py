"""Typed access to tool arguments.

Tool arguments arrive as an untyped mapping decoded from JSON. Handlers never
index into it directly; they go through the accessors here, which check
presence and type and raise a ``ParameterError`` naming the offending
parameter.

Numbers are treated the way the wire delivers them: every numeric accessor
reads the value as a float first and only then narrows to ``int``.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, TypeVar

from .errors import empty_value, invalid_value, missing_parameter, type_mismatch

T = TypeVar("T")

DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = 30

_MISMATCH = object()


def _json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, Mapping):
        return "object"
    if isinstance(value, (list, tuple)):
        return "array"
    return type(value).__name__


def _coerce_str(value: Any) -> Any:
    return value if isinstance(value, str) else _MISMATCH


def _coerce_bool(value: Any) -> Any:
    return value if isinstance(value, bool) else _MISMATCH


def _coerce_float(value: Any) -> Any:
    # bool is an int subclass; JSON true/false are never numbers.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return _MISMATCH
    try:
        as_float = float(value)
    except OverflowError:
        return _MISMATCH
    if not math.isfinite(as_float):
        return _MISMATCH
    return as_float


def _coerce_int(value: Any) -> Any:
    as_float = _coerce_float(value)
    if as_float is _MISMATCH:
        return _MISMATCH
    return int(as_float)


def _coerce_list(value: Any) -> Any:
    return list(value) if isinstance(value, (list, tuple)) else _MISMATCH


def _coerce_dict(value: Any) -> Any:
    return dict(value) if isinstance(value, Mapping) else _MISMATCH


_COERCIONS: dict[type, tuple[str, Callable[[Any], Any]]] = {
    str: ("string", _coerce_str),
    bool: ("boolean", _coerce_bool),
    float: ("number", _coerce_float),
    int: ("number", _coerce_int),
    list: ("array", _coerce_list),
    dict: ("object", _coerce_dict),
}


def _coercion_for(expected: type) -> tuple[str, Callable[[Any], Any]]:
    try:
        return _COERCIONS[expected]
    except KeyError:
        raise TypeError(f"Unsupported parameter type: {expected!r}") from None


def _coerce(name: str, value: Any, expected: type[T]) -> T:
    type_name, coerce = _coercion_for(expected)
    out = coerce(value)
    if out is _MISMATCH:
        raise type_mismatch(name, expected=type_name, actual=_json_type_name(value))
    return out


def required_param(arguments: Mapping[str, Any], name: str, expected: type[T]) -> T:
    """Return a required parameter coerced to ``expected``.

    Raises:
        MissingParameterError: ``name`` is absent.
        TypeMismatchError: the value is not of the expected type (``null`` included).
        EmptyValueError: ``expected`` is ``str`` and the value is ``""``.
    """
    _coercion_for(expected)
    if name not in arguments:
        raise missing_parameter(name)
    value = _coerce(name, arguments[name], expected)
    if expected is str and value == "":
        raise empty_value(name)
    return value


def optional_param(arguments: Mapping[str, Any], name: str, expected: type[T]) -> T:
    """Return an optional parameter, or the zero value of ``expected`` when absent.

    Absence is tolerated; a wrong type is not. An empty string is returned as-is.
    """
    _coercion_for(expected)
    if name not in arguments:
        return expected()
    return _coerce(name, arguments[name], expected)


def required_int(arguments: Mapping[str, Any], name: str) -> int:
    """Return a required numeric parameter truncated to ``int``."""
    return int(required_param(arguments, name, float))


def optional_int_param(arguments: Mapping[str, Any], name: str) -> int:
    """Return an optional numeric parameter; absent yields 0, and a stored 0 stays 0."""
    return int(optional_param(arguments, name, float))


def optional_int_param_with_default(arguments: Mapping[str, Any], name: str, default: int) -> int:
    """Return an optional numeric parameter where absent or 0 both mean ``default``.

    Unlike ``optional_int_param``, a stored 0 is read as "unset".
    """
    value = optional_int_param(arguments, name)
    if value == 0:
        return default
    return value


def optional_string_array_param(arguments: Mapping[str, Any], name: str) -> list[str]:
    """Return an optional list of strings.

    Absent (or ``null``) yields ``[]``. The value may arrive as any JSON array;
    if a single element is not a string the whole array is rejected.
    """
    if name not in arguments or arguments[name] is None:
        return []
    value = arguments[name]
    if not isinstance(value, (list, tuple)):
        raise type_mismatch(name, expected="array of strings", actual=_json_type_name(value))
    for item in value:
        if not isinstance(item, str):
            raise type_mismatch(
                name,
                expected="array of strings",
                actual=f"array containing {_json_type_name(item)}",
            )
    return list(value)


@dataclass(frozen=True, slots=True)
class PaginationParams:
    """Normalized page/per-page pair for a paginated GitHub call."""

    page: int = DEFAULT_PAGE
    per_page: int = DEFAULT_PER_PAGE

    def as_query(self) -> dict[str, str]:
        return {"page": str(self.page), "per_page": str(self.per_page)}


def optional_pagination_params(arguments: Mapping[str, Any]) -> PaginationParams:
    """Read ``page`` and ``perPage`` with defaults of 1 and 30.

    Either both values are valid and a full record is returned, or an error is
    raised. Page size is not capped here; GitHub enforces its own limit.
    """
    page = optional_int_param_with_default(arguments, "page", DEFAULT_PAGE)
    per_page = optional_int_param_with_default(arguments, "perPage", DEFAULT_PER_PAGE)
    for name, value in (("page", page), ("perPage", per_page)):
        if value < 1:
            raise invalid_value(name, "must be >= 1")
    return PaginationParams(page=page, per_page=per_page)
