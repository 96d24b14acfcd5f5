"""Custom exception hierarchy for spanql.

All public errors inherit from SpanQLError so callers can catch the base
class for any spanql-specific failure.

Two families exist:

* :class:`ValidationError` – the caller asked for something the builder
  cannot express (bad table name, HAVING without GROUP BY, LIMIT 0, ...).
  These carry a stable :class:`ErrorCode` and a ``details`` dict.
* :class:`CompilationError` – a condition or query tree is malformed in a
  way the fluent API can never produce.  Generation stops immediately.
"""
from __future__ import annotations

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable, machine-readable error tags."""

    INVALID_PARAMETER_VALUE = "INVALID_PARAMETER_VALUE"
    INVALID_CONDITION_TYPE = "INVALID_CONDITION_TYPE"
    MISSING_PARAMETER_NAME = "MISSING_PARAMETER_NAME"
    PARAMETER_NAMES_MISMATCH = "PARAMETER_NAMES_MISMATCH"
    PARAMETER_COLLISION = "PARAMETER_COLLISION"
    UNSUPPORTED_OPERATOR = "UNSUPPORTED_OPERATOR"
    INVALID_CONDITION_NODE = "INVALID_CONDITION_NODE"
    UNDEFINED_CONDITION = "UNDEFINED_CONDITION"
    INVALID_COLUMN_NAME = "INVALID_COLUMN_NAME"
    INVALID_TABLE_NAME = "INVALID_TABLE_NAME"
    INVALID_TABLE_ALIAS = "INVALID_TABLE_ALIAS"
    INVALID_LIMIT_VALUE = "INVALID_LIMIT_VALUE"
    INVALID_OFFSET_VALUE = "INVALID_OFFSET_VALUE"
    INVALID_SELECT_CLAUSE = "INVALID_SELECT_CLAUSE"
    INVALID_FROM_CLAUSE = "INVALID_FROM_CLAUSE"
    INVALID_JOIN_CLAUSE = "INVALID_JOIN_CLAUSE"
    INVALID_GROUP_BY_CLAUSE = "INVALID_GROUP_BY_CLAUSE"
    INVALID_HAVING_CLAUSE = "INVALID_HAVING_CLAUSE"
    INVALID_ORDER_BY_CLAUSE = "INVALID_ORDER_BY_CLAUSE"


class SpanQLError(Exception):
    """Base exception for all spanql errors."""


class ValidationError(SpanQLError):
    """Raised when a builder call or query tree breaks a usage rule.

    Args:
        message: Human-readable description.
        code: Machine-readable error code.
        details: Extra context about the offending input.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details: dict[str, Any] = details or {}

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured error response."""
        return {
            "error": self.code.value,
            "message": str(self),
            "details": self.details,
        }


class InvalidNameError(ValidationError):
    """Raised when a table name or alias fails the naming rules.

    Args:
        target: ``'table'`` or ``'alias'``.
        value: The raw name that was rejected.
        issue: The :class:`~spanql.validate.naming.NameIssue` classifying
            the failure.
        message: Human-readable description.
    """

    def __init__(self, target: str, value: Any, issue: Any, message: str) -> None:
        code = ErrorCode.INVALID_TABLE_ALIAS if target == "alias" else ErrorCode.INVALID_TABLE_NAME
        super().__init__(
            message,
            code=code,
            details={"provided_value": value, "issue": getattr(issue, "value", issue)},
        )
        self.target = target
        self.issue = issue


class InvalidParameterValueError(ValidationError):
    """Raised when a value outside the supported value domain is bound."""

    def __init__(self, value: Any) -> None:
        super().__init__(
            f"Invalid parameter value: {type(value).__name__}. "
            "Expected str, number, bool, None, date, bytes or a list of those.",
            code=ErrorCode.INVALID_PARAMETER_VALUE,
            details={"provided_type": type(value).__name__},
        )


class ParameterCollisionError(ValidationError):
    """Raised when two registries bind the same placeholder to different values."""

    def __init__(self, name: str) -> None:
        super().__init__(
            f"Placeholder '@{name}' is bound to different values in merged builders.",
            code=ErrorCode.PARAMETER_COLLISION,
            details={"parameter": name},
        )


class CompilationError(SpanQLError):
    """Raised when SQL generation meets a malformed tree.

    Args:
        message: Human-readable description.
        code: Machine-readable error code.
        clause: The clause being compiled when the error occurred.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        clause: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.clause = clause
