"""Fluent, immutable SELECT builder.

``SelectBuilder`` accumulates a :class:`~spanql.schema.query_tree.QueryTree`
together with the :class:`~spanql.compile.parameters.ParameterRegistry` of
every condition built so far.  Each method returns a new builder holding a
copy of the tree with one field replaced::

    query = (
        create_select()
        .select("id", "name")
        .from_("users", alias="u")
        .inner_join("orders", lambda on: on.eq_column("u.id", "o.user_id"), alias="o")
        .where(lambda w: w.eq("u.active", True).gt("o.total", 100))
        .order_by("name")
        .limit(20)
        .build()
    )

WHERE, HAVING and JOIN ON callbacks receive a :class:`FilterBuilder`
seeded with this builder's registry, so placeholder numbers stay unique
across the whole statement whatever the call order.  Their registries are
merged back by union; a placeholder bound to two different values raises
:class:`~spanql.errors.ParameterCollisionError`.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Union

from spanql.builders.filter_builder import FilterBuilder
from spanql.compile.base import CompiledQuery
from spanql.compile.builder import QueryCompiler
from spanql.compile.parameters import ParameterRegistry
from spanql.config import BuilderConfig
from spanql.errors import ErrorCode, ValidationError
from spanql.schema.conditions import ConditionGroup
from spanql.schema.query_tree import (
    AggregateSelection,
    ColumnSelection,
    ExpressionSelection,
    GroupByClause,
    JoinClause,
    JoinKind,
    OrderByClause,
    OrderByColumn,
    QueryTree,
    SelectClause,
    SelectColumn,
)
from spanql.validate.naming import make_table_ref
from spanql.validate.semantic_validator import check_limit, check_offset
from spanql.validate.validator import QueryValidator

logger = logging.getLogger(__name__)

#: A callback building conditions on a seeded builder, or a ready builder.
ConditionSpec = Union[Callable[[FilterBuilder], FilterBuilder], FilterBuilder]


def _check_name(value: Any, what: str, code: ErrorCode) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(
            f"Invalid {what}: {value!r}. Expected a non-empty string.",
            code=code,
            details={"provided_value": value},
        )
    return value


class SelectBuilder:
    """Accumulates a SELECT statement.

    Args:
        tree: Starting query tree; defaults to an empty one.
        registry: Parameters bound so far; defaults to an empty registry.
        config: Builder configuration used for naming rules, validation
            and compilation.
    """

    def __init__(
        self,
        tree: QueryTree | None = None,
        registry: ParameterRegistry | None = None,
        config: BuilderConfig | None = None,
    ) -> None:
        self._tree = tree if tree is not None else QueryTree()
        self._registry = registry if registry is not None else ParameterRegistry()
        self._config = config or BuilderConfig()

    @property
    def tree(self) -> QueryTree:
        return self._tree

    @property
    def registry(self) -> ParameterRegistry:
        return self._registry

    @property
    def config(self) -> BuilderConfig:
        return self._config

    # ------------------------------------------------------------------
    # SELECT list
    # ------------------------------------------------------------------

    def select(self, *columns: str) -> SelectBuilder:
        """Add plain columns to the SELECT list."""
        items = [
            ColumnSelection(name=_check_name(c, "column name", ErrorCode.INVALID_COLUMN_NAME))
            for c in columns
        ]
        return self._add_columns(*items)

    def select_all(self) -> SelectBuilder:
        """Add ``*`` to the SELECT list."""
        return self._add_columns(ExpressionSelection(text="*"))

    def select_as(self, column: str, alias: str) -> SelectBuilder:
        """Add ``column AS alias``."""
        return self._add_columns(
            ColumnSelection(
                name=_check_name(column, "column name", ErrorCode.INVALID_COLUMN_NAME),
                alias=_check_name(alias, "column alias", ErrorCode.INVALID_SELECT_CLAUSE),
            )
        )

    def select_expression(self, expression: str, alias: str | None = None) -> SelectBuilder:
        """Add a raw SQL expression, e.g. ``UPPER(name)``."""
        return self._add_columns(
            ExpressionSelection(
                text=_check_name(expression, "expression", ErrorCode.INVALID_SELECT_CLAUSE),
                alias=alias,
            )
        )

    def aggregate(
        self, fn: str, column: str | None = None, alias: str | None = None
    ) -> SelectBuilder:
        """Add ``FN(column)`` (``FN(*)`` when ``column`` is None).

        The function name is checked against the supported aggregates at
        build time.
        """
        return self._add_columns(
            AggregateSelection(
                fn=_check_name(fn, "aggregate function", ErrorCode.INVALID_SELECT_CLAUSE).upper(),
                column=column,
                alias=alias,
            )
        )

    def count(self, column: str | None = None, alias: str | None = None) -> SelectBuilder:
        return self.aggregate("COUNT", column, alias)

    def sum(self, column: str, alias: str | None = None) -> SelectBuilder:
        return self.aggregate("SUM", column, alias)

    def avg(self, column: str, alias: str | None = None) -> SelectBuilder:
        return self.aggregate("AVG", column, alias)

    def min(self, column: str, alias: str | None = None) -> SelectBuilder:
        return self.aggregate("MIN", column, alias)

    def max(self, column: str, alias: str | None = None) -> SelectBuilder:
        return self.aggregate("MAX", column, alias)

    def distinct(self) -> SelectBuilder:
        """Render ``SELECT DISTINCT``."""
        return self._replace(select=self._tree.select.model_copy(update={"distinct": True}))

    # ------------------------------------------------------------------
    # FROM / JOIN
    # ------------------------------------------------------------------

    def from_(
        self,
        table: str,
        alias: str | None = None,
        schema: dict[str, str] | None = None,
    ) -> SelectBuilder:
        """Set the FROM table.

        Args:
            table: Table name, checked by the naming rules.
            alias: Optional alias, checked by the naming rules.
            schema: Optional ``{column: type}`` map used to reject unknown
                SELECT / GROUP BY columns.

        Raises:
            InvalidNameError: If the table name or alias is rejected.
        """
        ref = make_table_ref(table, alias, schema, self._config)
        return self._replace(from_=ref)

    def inner_join(
        self,
        table: str,
        on: ConditionSpec,
        alias: str | None = None,
        schema: dict[str, str] | None = None,
    ) -> SelectBuilder:
        """``INNER JOIN table [AS alias] ON <conditions built by on>``."""
        return self._join("INNER", table, on, alias, schema)

    def left_join(
        self,
        table: str,
        on: ConditionSpec,
        alias: str | None = None,
        schema: dict[str, str] | None = None,
    ) -> SelectBuilder:
        return self._join("LEFT", table, on, alias, schema)

    def right_join(
        self,
        table: str,
        on: ConditionSpec,
        alias: str | None = None,
        schema: dict[str, str] | None = None,
    ) -> SelectBuilder:
        return self._join("RIGHT", table, on, alias, schema)

    def full_join(
        self,
        table: str,
        on: ConditionSpec,
        alias: str | None = None,
        schema: dict[str, str] | None = None,
    ) -> SelectBuilder:
        return self._join("FULL", table, on, alias, schema)

    def cross_join(
        self, table: str, alias: str | None = None, schema: dict[str, str] | None = None
    ) -> SelectBuilder:
        """``CROSS JOIN table``; never rendered with ``ON``."""
        return self._join("CROSS", table, None, alias, schema)

    def natural_join(
        self, table: str, alias: str | None = None, schema: dict[str, str] | None = None
    ) -> SelectBuilder:
        """``NATURAL JOIN table``; never rendered with ``ON``."""
        return self._join("NATURAL", table, None, alias, schema)

    def _join(
        self,
        kind: JoinKind,
        table: str,
        on: ConditionSpec | None,
        alias: str | None,
        schema: dict[str, str] | None,
    ) -> SelectBuilder:
        ref = make_table_ref(table, alias, schema, self._config)
        if on is None:
            condition, registry = ConditionGroup(), self._registry
        else:
            condition, registry = self._run_conditions(on, "JOIN")
        join = JoinClause(kind=kind, table=ref, condition=condition)
        return self._replace(registry=registry, joins=(*self._tree.joins, join))

    # ------------------------------------------------------------------
    # WHERE / GROUP BY / HAVING
    # ------------------------------------------------------------------

    def where(self, conditions: ConditionSpec) -> SelectBuilder:
        """AND the given conditions onto the WHERE clause."""
        group, registry = self._run_conditions(conditions, "WHERE")
        return self._replace(registry=registry, where=self._conjoin(self._tree.where, group))

    def group_by(self, *columns: str, expressions: tuple[str, ...] = ()) -> SelectBuilder:
        """Add columns and expressions to GROUP BY."""
        for column in columns:
            _check_name(column, "column name", ErrorCode.INVALID_COLUMN_NAME)
        for expression in expressions:
            _check_name(expression, "expression", ErrorCode.INVALID_GROUP_BY_CLAUSE)
        current = self._tree.group_by or GroupByClause()
        return self._replace(
            group_by=GroupByClause(
                columns=(*current.columns, *columns),
                expressions=(*current.expressions, *expressions),
            )
        )

    def having(self, conditions: ConditionSpec) -> SelectBuilder:
        """AND the given conditions onto the HAVING clause.

        HAVING requires a GROUP BY; this is checked at build time.
        """
        group, registry = self._run_conditions(conditions, "HAVING")
        return self._replace(registry=registry, having=self._conjoin(self._tree.having, group))

    # ------------------------------------------------------------------
    # ORDER BY / LIMIT / OFFSET
    # ------------------------------------------------------------------

    def order_by(
        self, column: str, direction: str = "ASC", nulls_first: bool | None = None
    ) -> SelectBuilder:
        """Add ``column ASC|DESC [NULLS FIRST|LAST]`` to ORDER BY."""
        _check_name(column, "column name", ErrorCode.INVALID_COLUMN_NAME)
        return self._add_order(
            OrderByColumn(
                column=column, direction=self._direction(direction), nulls_first=nulls_first
            )
        )

    def order_by_expression(
        self, expression: str, direction: str = "ASC", nulls_first: bool | None = None
    ) -> SelectBuilder:
        _check_name(expression, "expression", ErrorCode.INVALID_ORDER_BY_CLAUSE)
        return self._add_order(
            OrderByColumn(
                expression=expression,
                direction=self._direction(direction),
                nulls_first=nulls_first,
            )
        )

    def limit(self, count: int) -> SelectBuilder:
        """Set LIMIT; bound as a parameter at build time.

        Raises:
            ValidationError: If ``count`` is not an int greater than zero.
        """
        check_limit(count)
        return self._replace(limit=count)

    def offset(self, count: int) -> SelectBuilder:
        """Set OFFSET; bound as a parameter at build time.

        Raises:
            ValidationError: If ``count`` is not an int of at least zero.
        """
        check_offset(count)
        return self._replace(offset=count)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def validate(self) -> None:
        """Run every usage check without generating SQL.

        Raises:
            ValidationError: (or subclass) on the first violation.
        """
        QueryValidator(self._config).validate(self._tree)

    def build(self) -> CompiledQuery:
        """Validate the query and render it.

        Raises:
            ValidationError: If the query breaks a usage rule.
            CompilationError: If a condition tree is malformed.
        """
        return QueryCompiler(self._config).build(self._tree, self._registry)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _replace(self, registry: ParameterRegistry | None = None, **updates: Any) -> SelectBuilder:
        tree = self._tree.model_copy(update=updates)
        return SelectBuilder(tree, registry or self._registry, self._config)

    def _add_columns(self, *items: SelectColumn) -> SelectBuilder:
        select: SelectClause = self._tree.select
        columns = (*select.columns, *items)
        return self._replace(select=select.model_copy(update={"columns": columns}))

    def _add_order(self, item: OrderByColumn) -> SelectBuilder:
        current = self._tree.order_by or OrderByClause()
        return self._replace(order_by=OrderByClause(columns=(*current.columns, item)))

    @staticmethod
    def _direction(direction: str) -> str:
        normalized = direction.upper() if isinstance(direction, str) else direction
        if normalized not in ("ASC", "DESC"):
            raise ValidationError(
                f"Invalid sort direction: {direction!r}. Expected 'ASC' or 'DESC'.",
                code=ErrorCode.INVALID_ORDER_BY_CLAUSE,
                details={"provided_value": direction},
            )
        return normalized

    @staticmethod
    def _conjoin(existing: ConditionGroup | None, group: ConditionGroup) -> ConditionGroup:
        if existing is None:
            return group
        return existing.extend(group.children)

    def _run_conditions(
        self, conditions: ConditionSpec, clause: str
    ) -> tuple[ConditionGroup, ParameterRegistry]:
        if isinstance(conditions, FilterBuilder):
            result = conditions
        elif callable(conditions):
            result = conditions(FilterBuilder(registry=self._registry, clause=clause))
            if not isinstance(result, FilterBuilder):
                raise TypeError(
                    f"{clause} callback must return a FilterBuilder, got {type(result).__name__}"
                )
        else:
            raise TypeError(
                f"{clause} conditions must be a FilterBuilder or a callable, "
                f"got {type(conditions).__name__}"
            )
        registry = self._registry.merge(result.registry)
        logger.debug(
            "Merged %s conditions: %d condition(s), %d parameter(s) bound",
            clause,
            len(result.root.children),
            len(registry.values),
        )
        return result.root, registry


def create_select(config: BuilderConfig | None = None) -> SelectBuilder:
    """Return an empty :class:`SelectBuilder`."""
    return SelectBuilder(config=config)
