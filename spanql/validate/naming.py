"""Table name and alias validation.

Cloud Spanner identifiers must start with a letter or underscore, contain
only letters, digits and underscores, stay within a length limit and not be
a reserved keyword.  Every table and alias passes through here once before
a :class:`~spanql.schema.query_tree.TableRef` is created.
"""
from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any

from spanql.config import BuilderConfig, NamingRules
from spanql.errors import InvalidNameError
from spanql.schema.query_tree import TableRef

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class NameIssue(str, Enum):
    """Why a table name or alias was rejected."""

    EMPTY = "empty"
    TOO_LONG = "too_long"
    STARTS_WITH_DIGIT = "starts_with_digit"
    INVALID_CHARACTER = "invalid_character"
    RESERVED_KEYWORD = "reserved_keyword"


def _check_identifier(target: str, value: Any, max_length: int, rules: NamingRules) -> str:
    label = "Table name" if target == "table" else "Table alias"

    def reject(issue: NameIssue, message: str) -> InvalidNameError:
        logger.debug("Rejected %s %r: %s", target, value, issue.value)
        return InvalidNameError(target, value, issue, message)

    if not isinstance(value, str):
        raise reject(
            NameIssue.INVALID_CHARACTER,
            f"Invalid {label.lower()}: expected str, got {type(value).__name__}",
        )

    name = value.strip()
    if not name:
        raise reject(NameIssue.EMPTY, f"{label} cannot be empty")

    if len(name) > max_length:
        raise reject(
            NameIssue.TOO_LONG,
            f"{label} too long: {len(name)} characters. Maximum is {max_length}.",
        )

    if name[0].isdigit():
        raise reject(
            NameIssue.STARTS_WITH_DIGIT,
            f"{label} must start with a letter or underscore",
        )

    if not _IDENTIFIER_RE.match(name):
        raise reject(
            NameIssue.INVALID_CHARACTER,
            f"{label} can only contain letters, numbers, and underscores",
        )

    if name.upper() in rules.reserved_keywords:
        raise reject(
            NameIssue.RESERVED_KEYWORD,
            f"{label} cannot be a reserved keyword: {name}",
        )

    return name


def validate_table_name(name: Any, rules: NamingRules | None = None) -> str:
    """Return the trimmed table name.

    Args:
        name: Raw table name.
        rules: Naming rules; defaults to :class:`NamingRules()`.

    Raises:
        InvalidNameError: With ``code=INVALID_TABLE_NAME`` and the
            :class:`NameIssue` in ``details["issue"]``.
    """
    rules = rules or NamingRules()
    return _check_identifier("table", name, rules.max_table_name_length, rules)


def validate_table_alias(alias: Any, rules: NamingRules | None = None) -> str:
    """Return the trimmed alias.

    Raises:
        InvalidNameError: With ``code=INVALID_TABLE_ALIAS``.
    """
    rules = rules or NamingRules()
    return _check_identifier("alias", alias, rules.max_alias_length, rules)


def make_table_ref(
    name: Any,
    alias: Any = None,
    column_types: dict[str, str] | None = None,
    config: BuilderConfig | None = None,
) -> TableRef:
    """Validate ``name`` / ``alias`` and return a :class:`TableRef`.

    Args:
        name: Raw table name.
        alias: Optional raw alias.
        column_types: Optional ``{column: type}`` map for the table.
        config: Builder configuration supplying the naming rules.

    Raises:
        InvalidNameError: If the name or the alias is rejected.
    """
    rules = (config or BuilderConfig()).naming
    table_name = validate_table_name(name, rules)
    table_alias = validate_table_alias(alias, rules) if alias is not None else None
    return TableRef(
        name=table_name,
        alias=table_alias,
        column_types=dict(column_types) if column_types is not None else None,
    )
