"""Value domain accepted as query parameters, and Spanner type hints.

Supported values: ``str``, ``int``, ``float``, ``Decimal``, ``bool``,
``None``, ``date`` / ``datetime``, ``bytes`` / ``bytearray``, and lists or
tuples of those (nested arbitrarily).
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Union

from spanql.errors import InvalidParameterValueError

#: Value types bound directly to a placeholder.
ScalarValue = Union[str, int, float, Decimal, bool, None, date, datetime, bytes, bytearray]

#: A scalar or an arbitrarily nested list of scalars.
ParameterValue = Union[ScalarValue, list, tuple]

SCALAR_TYPES: tuple[type, ...] = (str, int, float, Decimal, bool, date, bytes, bytearray)
ARRAY_TYPES: tuple[type, ...] = (list, tuple)

#: Spanner type hint: a plain type name or ``{"type": "array", "child": ...}``.
TypeHint = Union[str, dict[str, Any]]


def is_parameter_value(value: Any) -> bool:
    """Return ``True`` when ``value`` belongs to the supported value domain."""
    if value is None or isinstance(value, SCALAR_TYPES):
        return True
    if isinstance(value, ARRAY_TYPES):
        return all(is_parameter_value(item) for item in value)
    return False


def assert_parameter_value(value: Any) -> None:
    """Raise :class:`~spanql.errors.InvalidParameterValueError` for unsupported values."""
    if not is_parameter_value(value):
        raise InvalidParameterValueError(value)


def spanner_type_hint(value: Any) -> TypeHint | None:
    """Return the Spanner type hint for a parameter value.

    ``None`` (and arrays with no non-null element) carry no type information
    and yield ``None``.
    """
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int64"
    if isinstance(value, float):
        return "float64"
    if isinstance(value, Decimal):
        return "numeric"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (bytes, bytearray)):
        return "bytes"
    # datetime before date: datetime is a date subclass
    if isinstance(value, datetime):
        return "timestamp"
    if isinstance(value, date):
        return "date"
    if isinstance(value, ARRAY_TYPES):
        for item in value:
            child = spanner_type_hint(item)
            if child is not None:
                element = child if isinstance(child, str) else child["type"]
                return {"type": "array", "child": element}
        return None
    return None
