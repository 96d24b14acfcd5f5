"""Semantic / usage-rule validator.

Validates the rules a query tree must satisfy before any SQL is generated:
a non-empty SELECT list, joins with the right kind of condition, GROUP BY
coverage when aggregates are selected, HAVING only with GROUP BY, and
positive pagination values.
"""
from __future__ import annotations

import logging
from typing import Any

from spanql.config import BuilderConfig
from spanql.errors import ErrorCode, ValidationError
from spanql.schema.conditions import LogicalOp
from spanql.schema.query_tree import (
    AGGREGATE_FUNCTIONS,
    UNCONDITIONED_JOINS,
    AggregateSelection,
    ColumnSelection,
    ExpressionSelection,
    QueryTree,
)

logger = logging.getLogger(__name__)


def _reject(message: str, code: ErrorCode, **details: Any) -> ValidationError:
    logger.debug("Query rejected (%s): %s", code.value, message)
    return ValidationError(message, code=code, details=details)


def _unqualified(column: str) -> str:
    return column.rsplit(".", 1)[-1]


def check_limit(value: Any) -> None:
    """Raise unless ``value`` is an ``int`` greater than zero."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise _reject(
            f"Invalid LIMIT value: {value!r}. LIMIT must be a positive integer.",
            ErrorCode.INVALID_LIMIT_VALUE,
            provided_value=value,
        )


def check_offset(value: Any) -> None:
    """Raise unless ``value`` is an ``int`` greater than or equal to zero."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise _reject(
            f"Invalid OFFSET value: {value!r}. OFFSET must be a non-negative integer.",
            ErrorCode.INVALID_OFFSET_VALUE,
            provided_value=value,
        )


class SemanticValidator:
    """Validates usage rules on a :class:`QueryTree`.

    Args:
        config: Builder configuration.
    """

    def __init__(self, config: BuilderConfig) -> None:
        self._config = config

    # ------------------------------------------------------------------
    # SELECT
    # ------------------------------------------------------------------

    def validate_select(self, tree: QueryTree) -> None:
        """Raise on an empty SELECT list, duplicate aliases or bad aggregates."""
        columns = tree.select.columns
        if not columns:
            raise _reject(
                "SELECT clause must have at least one column.",
                ErrorCode.INVALID_SELECT_CLAUSE,
            )

        seen: set[str] = set()
        for alias in tree.select.aliases:
            if alias in seen:
                raise _reject(
                    f"SELECT clause contains duplicate column alias '{alias}'.",
                    ErrorCode.INVALID_SELECT_CLAUSE,
                    alias=alias,
                )
            seen.add(alias)

        for index, item in enumerate(columns, start=1):
            if isinstance(item, ColumnSelection) and not item.name:
                raise _reject(
                    f"Column {index}: column selection must specify a column name.",
                    ErrorCode.INVALID_SELECT_CLAUSE,
                )
            if isinstance(item, ExpressionSelection) and not item.text:
                raise _reject(
                    f"Column {index}: expression selection must specify an expression.",
                    ErrorCode.INVALID_SELECT_CLAUSE,
                )
            if isinstance(item, AggregateSelection):
                fn = item.fn.upper()
                if fn not in AGGREGATE_FUNCTIONS:
                    raise _reject(
                        f"Column {index}: invalid aggregate function '{item.fn}'.",
                        ErrorCode.INVALID_SELECT_CLAUSE,
                        function=item.fn,
                        allowed=list(AGGREGATE_FUNCTIONS),
                    )
                if fn != "COUNT" and not item.column:
                    raise _reject(
                        f"Column {index}: {fn} aggregate must specify a column.",
                        ErrorCode.INVALID_SELECT_CLAUSE,
                        function=fn,
                    )

    # ------------------------------------------------------------------
    # FROM / JOIN
    # ------------------------------------------------------------------

    def validate_from(self, tree: QueryTree) -> None:
        if tree.from_ is None:
            raise _reject(
                "Query has no FROM table; call from_() before build().",
                ErrorCode.INVALID_FROM_CLAUSE,
            )

    def validate_joins(self, tree: QueryTree) -> None:
        """Raise when a join cannot be rendered as written.

        INNER / LEFT / RIGHT / FULL joins need a non-empty condition; CROSS
        and NATURAL joins must not carry one.
        """
        if tree.joins and tree.from_ is None:
            raise _reject("JOIN requires a FROM table.", ErrorCode.INVALID_JOIN_CLAUSE)

        for join in tree.joins:
            if join.kind in UNCONDITIONED_JOINS:
                if not (join.condition.is_empty and join.condition.op == LogicalOp.AND):
                    raise _reject(
                        f"{join.kind} JOIN on '{join.table.name}' cannot have an ON condition.",
                        ErrorCode.INVALID_JOIN_CLAUSE,
                        table=join.table.name,
                        kind=join.kind,
                    )
            elif join.condition.is_empty:
                raise _reject(
                    f"{join.kind} JOIN on '{join.table.name}' requires an ON condition.",
                    ErrorCode.INVALID_JOIN_CLAUSE,
                    table=join.table.name,
                    kind=join.kind,
                )

    # ------------------------------------------------------------------
    # GROUP BY / HAVING
    # ------------------------------------------------------------------

    def validate_group_by(self, tree: QueryTree) -> None:
        """Raise on an empty GROUP BY or an ungrouped non-aggregate column.

        The coverage rule applies whenever an aggregate is selected, with or
        without a GROUP BY clause.
        """
        group_by = tree.group_by
        if group_by is not None and group_by.is_empty:
            raise _reject(
                "GROUP BY clause must specify at least one column or expression.",
                ErrorCode.INVALID_GROUP_BY_CLAUSE,
            )

        if not tree.select.has_aggregates:
            return

        grouped_columns = set(group_by.columns) if group_by else set()
        grouped_exprs = set(group_by.expressions) if group_by else set()
        for item in tree.select.columns:
            if isinstance(item, ColumnSelection) and item.name not in grouped_columns:
                raise _reject(
                    f"Column {item.name} must appear in GROUP BY.",
                    ErrorCode.INVALID_GROUP_BY_CLAUSE,
                    column=item.name,
                )
            if isinstance(item, ExpressionSelection) and item.text not in grouped_exprs:
                raise _reject(
                    f"Expression {item.text} must appear in GROUP BY.",
                    ErrorCode.INVALID_GROUP_BY_CLAUSE,
                    expression=item.text,
                )

    def validate_having(self, tree: QueryTree) -> None:
        """Raise if HAVING appears without a non-empty GROUP BY clause."""
        if tree.having is None:
            return
        if tree.group_by is None or tree.group_by.is_empty:
            raise _reject("HAVING clause requires GROUP BY.", ErrorCode.INVALID_HAVING_CLAUSE)

    # ------------------------------------------------------------------
    # ORDER BY / LIMIT / OFFSET
    # ------------------------------------------------------------------

    def validate_order_by(self, tree: QueryTree) -> None:
        if tree.order_by is None:
            return
        if not tree.order_by.columns:
            raise _reject(
                "ORDER BY clause must specify at least one column.",
                ErrorCode.INVALID_ORDER_BY_CLAUSE,
            )
        for index, item in enumerate(tree.order_by.columns, start=1):
            if not item.column and not item.expression:
                raise _reject(
                    f"ORDER BY item {index} must specify a column name or expression.",
                    ErrorCode.INVALID_ORDER_BY_CLAUSE,
                )

    def validate_pagination(self, tree: QueryTree) -> None:
        if tree.limit is not None:
            check_limit(tree.limit)
        if tree.offset is not None:
            check_offset(tree.offset)

    # ------------------------------------------------------------------
    # Schema columns
    # ------------------------------------------------------------------

    def validate_schema_columns(self, tree: QueryTree) -> None:
        """Reject SELECT / GROUP BY columns unknown to the table schemas.

        Skipped unless every table carries ``column_types``.
        """
        if not self._config.check_schema_columns:
            return
        known = tree.merged_column_types()
        if known is None:
            return

        for item in tree.select.columns:
            if isinstance(item, ColumnSelection):
                self._check_known(item.name, known, "SELECT")
            elif isinstance(item, AggregateSelection) and item.column:
                self._check_known(item.column, known, "SELECT")

        if tree.group_by is not None:
            for column in tree.group_by.columns:
                self._check_known(column, known, "GROUP BY")

    @staticmethod
    def _check_known(column: str, known: dict[str, str], clause: str) -> None:
        if _unqualified(column) not in known:
            raise _reject(
                f"Invalid column in {clause}: {column}",
                ErrorCode.INVALID_COLUMN_NAME,
                column=column,
                clause=clause,
                known_columns=sorted(known),
            )
