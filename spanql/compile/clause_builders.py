"""Clause-level SQL builders.

Each class handles exactly one SQL clause of a
:class:`~spanql.schema.query_tree.QueryTree`.  Identifiers are emitted as
given; table names and aliases were checked by the naming validator before
they entered the tree.

Classes
-------
SelectClauseBuilder   : ``SELECT [DISTINCT] <items>``
FromClauseBuilder     : ``FROM <table> [AS <alias>]``
JoinClauseBuilder     : ``<KIND> JOIN <table> [AS <alias>] [ON <condition>]``
GroupByClauseBuilder  : ``GROUP BY <columns>, <expressions>``
OrderByClauseBuilder  : ``ORDER BY <item> ASC|DESC [NULLS FIRST|LAST]``
"""
from __future__ import annotations

from spanql.compile.expression_builder import PredicateBuilder
from spanql.errors import CompilationError, ErrorCode
from spanql.schema.conditions import LogicalOp
from spanql.schema.query_tree import (
    UNCONDITIONED_JOINS,
    AggregateSelection,
    ColumnSelection,
    ExpressionSelection,
    GroupByClause,
    JoinClause,
    OrderByClause,
    OrderByColumn,
    SelectClause,
    SelectColumn,
    TableRef,
)


def render_table(table: TableRef) -> str:
    """``name`` or ``name AS alias``."""
    if table.alias:
        return f"{table.name} AS {table.alias}"
    return table.name


class SelectClauseBuilder:
    """Builds the ``SELECT [DISTINCT] …`` clause."""

    def build(self, select: SelectClause) -> str:
        if not select.columns:
            raise CompilationError(
                "SELECT clause has no columns.",
                code=ErrorCode.INVALID_SELECT_CLAUSE,
                clause="SELECT",
            )
        prefix = "SELECT DISTINCT" if select.distinct else "SELECT"
        items = [self._build_item(item) for item in select.columns]
        return f"{prefix} {', '.join(items)}"

    def _build_item(self, item: SelectColumn) -> str:
        if isinstance(item, ColumnSelection):
            expr_sql = item.name
        elif isinstance(item, ExpressionSelection):
            expr_sql = item.text
        elif isinstance(item, AggregateSelection):
            expr_sql = f"{item.fn.upper()}({item.column or '*'})"
        else:
            raise CompilationError(
                f"Unknown select column type: {type(item).__name__}",
                code=ErrorCode.INVALID_SELECT_CLAUSE,
                clause="SELECT",
            )

        if item.alias:
            return f"{expr_sql} AS {item.alias}"
        return expr_sql


class FromClauseBuilder:
    """Builds the ``FROM <table>`` fragment."""

    def build(self, table: TableRef) -> str:
        return f"FROM {render_table(table)}"


class JoinClauseBuilder:
    """Builds a single ``<KIND> JOIN …`` fragment.

    ``CROSS`` and ``NATURAL`` joins never emit ``ON``; their condition is
    the empty AND group and is dropped.
    """

    def __init__(self) -> None:
        self._pred = PredicateBuilder(clause="JOIN")

    def build(self, join: JoinClause) -> str:
        head = f"{join.kind} JOIN {render_table(join.table)}"
        if join.kind in UNCONDITIONED_JOINS:
            if not (join.condition.is_empty and join.condition.op == LogicalOp.AND):
                raise CompilationError(
                    f"{join.kind} JOIN cannot carry a join condition",
                    code=ErrorCode.INVALID_JOIN_CLAUSE,
                    clause="JOIN",
                )
            return head
        return f"{head} ON {self._pred.build(join.condition)}"


class GroupByClauseBuilder:
    """Builds ``GROUP BY`` from columns followed by expressions."""

    def build(self, group_by: GroupByClause) -> str:
        items = [*group_by.columns, *group_by.expressions]
        return f"GROUP BY {', '.join(items)}"


class OrderByClauseBuilder:
    """Builds ``ORDER BY`` with optional ``NULLS FIRST`` / ``NULLS LAST``."""

    def build(self, order_by: OrderByClause) -> str:
        return f"ORDER BY {', '.join(self._build_item(o) for o in order_by.columns)}"

    def _build_item(self, item: OrderByColumn) -> str:
        target = item.column or item.expression
        if not target:
            raise CompilationError(
                "ORDER BY item must specify a column name or expression.",
                code=ErrorCode.INVALID_ORDER_BY_CLAUSE,
                clause="ORDER BY",
            )
        sql = f"{target} {item.direction}"
        if item.nulls_first is not None:
            sql += " NULLS FIRST" if item.nulls_first else " NULLS LAST"
        return sql
