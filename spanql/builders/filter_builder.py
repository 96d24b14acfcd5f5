"""Fluent, immutable builder for WHERE / HAVING / JOIN ON conditions.

Every method returns a **new** :class:`FilterBuilder`; the receiver keeps
its tree and registry, so callers may branch from any intermediate
builder::

    base = create_where().eq("active", True)
    admins = base.eq("role", "admin").build()
    users = base.eq("role", "user").build()

    # active = @param1 AND (role = @param2 OR role = @param3)
    create_where().eq("active", True).or_(
        lambda b: b.eq("role", "admin"),
        lambda b: b.eq("role", "owner"),
    ).build()

Each leaf is appended to the top-level AND group.  ``and_`` / ``or_`` are
the only way to introduce nested groups.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import Any

from spanql.compile.base import CompiledQuery
from spanql.compile.expression_builder import PredicateBuilder, filter_parameters
from spanql.compile.parameters import ParameterRegistry
from spanql.errors import ErrorCode, InvalidParameterValueError, ValidationError
from spanql.schema.conditions import (
    COMPARISON_OPERATORS,
    ConditionGroup,
    ConditionNode,
    LogicalOp,
    column_comparison,
    comparison,
    membership,
    null_check,
    pattern,
    string_function,
    unnest_membership,
)
from spanql.schema.values import ARRAY_TYPES, assert_parameter_value

logger = logging.getLogger(__name__)

FilterFn = Callable[["FilterBuilder"], "FilterBuilder"]


def _check_column(column: Any) -> str:
    if not isinstance(column, str) or not column.strip():
        raise ValidationError(
            f"Invalid column name: {column!r}. Column names must be non-empty strings.",
            code=ErrorCode.INVALID_COLUMN_NAME,
            details={"provided_value": column},
        )
    return column


def _check_values(values: Any) -> list[Any]:
    if not isinstance(values, ARRAY_TYPES):
        raise InvalidParameterValueError(values)
    for value in values:
        assert_parameter_value(value)
    return list(values)


def _check_pattern(value: Any) -> str:
    if not isinstance(value, str):
        raise InvalidParameterValueError(value)
    return value


class FilterBuilder:
    """Accumulates a condition tree and the parameters it references.

    Args:
        root: Top-level AND group; defaults to an empty group.
        registry: Parameter registry to extend; defaults to an empty one.
            Seed it to keep placeholder numbering monotonic across builders.
        clause: Clause name used in error messages and logs.
    """

    def __init__(
        self,
        root: ConditionGroup | None = None,
        registry: ParameterRegistry | None = None,
        clause: str = "WHERE",
    ) -> None:
        self._root = root if root is not None else ConditionGroup(op=LogicalOp.AND)
        self._registry = registry if registry is not None else ParameterRegistry()
        self._clause = clause

    @property
    def root(self) -> ConditionGroup:
        return self._root

    @property
    def registry(self) -> ParameterRegistry:
        return self._registry

    @property
    def clause(self) -> str:
        return self._clause

    def __repr__(self) -> str:
        return (
            f"FilterBuilder(clause={self._clause!r}, "
            f"conditions={len(self._root.children)}, "
            f"parameters={len(self._registry.values)})"
        )

    # ------------------------------------------------------------------
    # Comparisons
    # ------------------------------------------------------------------

    def eq(self, column: str, value: Any) -> FilterBuilder:
        """``column = @p``; ``None`` renders ``column IS NULL``."""
        return self._compare(column, "=", value)

    def ne(self, column: str, value: Any) -> FilterBuilder:
        """``column != @p``; ``None`` renders ``column IS NOT NULL``."""
        return self._compare(column, "!=", value)

    def lt(self, column: str, value: Any) -> FilterBuilder:
        return self._compare(column, "<", value)

    def gt(self, column: str, value: Any) -> FilterBuilder:
        return self._compare(column, ">", value)

    def le(self, column: str, value: Any) -> FilterBuilder:
        return self._compare(column, "<=", value)

    def ge(self, column: str, value: Any) -> FilterBuilder:
        return self._compare(column, ">=", value)

    def _compare(self, column: str, operator: str, value: Any) -> FilterBuilder:
        _check_column(column)
        assert_parameter_value(value)
        if value is None and operator in ("=", "!="):
            return self._append(comparison(column, operator, None, None), self._registry)
        registry, name = self._registry.insert(value)
        return self._append(comparison(column, operator, value, name), registry)

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def in_(self, column: str, values: Sequence[Any]) -> FilterBuilder:
        """``column IN (@p1, @p2, ...)``; an empty list renders ``FALSE``."""
        return self._membership(column, "IN", values)

    def not_in(self, column: str, values: Sequence[Any]) -> FilterBuilder:
        """``column NOT IN (@p1, ...)``; an empty list renders ``TRUE``."""
        return self._membership(column, "NOT IN", values)

    def in_unnest(self, column: str, values: Sequence[Any]) -> FilterBuilder:
        """``column IN UNNEST(@p)`` with the whole list bound to one parameter."""
        return self._unnest(column, "IN UNNEST", values)

    def not_in_unnest(self, column: str, values: Sequence[Any]) -> FilterBuilder:
        return self._unnest(column, "NOT IN UNNEST", values)

    def _membership(self, column: str, operator: str, values: Sequence[Any]) -> FilterBuilder:
        _check_column(column)
        items = _check_values(values)
        registry = self._registry
        names: list[str] = []
        for value in items:
            registry, name = registry.insert(value)
            names.append(name)
        return self._append(membership(column, operator, items, names), registry)

    def _unnest(self, column: str, operator: str, values: Sequence[Any]) -> FilterBuilder:
        _check_column(column)
        items = _check_values(values)
        if not items:
            return self._append(unnest_membership(column, operator, [], None), self._registry)
        registry, name = self._registry.insert(items)
        return self._append(unnest_membership(column, operator, items, name), registry)

    # ------------------------------------------------------------------
    # Patterns and string functions
    # ------------------------------------------------------------------

    def like(self, column: str, value: str) -> FilterBuilder:
        return self._pattern(column, "LIKE", value)

    def not_like(self, column: str, value: str) -> FilterBuilder:
        return self._pattern(column, "NOT LIKE", value)

    def starts_with(self, column: str, prefix: str) -> FilterBuilder:
        """``STARTS_WITH(column, @p)``."""
        return self._function(column, "STARTS_WITH", prefix)

    def ends_with(self, column: str, suffix: str) -> FilterBuilder:
        """``ENDS_WITH(column, @p)``."""
        return self._function(column, "ENDS_WITH", suffix)

    def _pattern(self, column: str, operator: str, value: str) -> FilterBuilder:
        _check_column(column)
        registry, name = self._registry.insert(_check_pattern(value))
        return self._append(pattern(column, operator, value, name), registry)

    def _function(self, column: str, function: str, value: str) -> FilterBuilder:
        _check_column(column)
        registry, name = self._registry.insert(_check_pattern(value))
        return self._append(string_function(column, function, value, name), registry)

    # ------------------------------------------------------------------
    # Null checks and column comparisons
    # ------------------------------------------------------------------

    def is_null(self, column: str) -> FilterBuilder:
        return self._append(null_check(_check_column(column), "IS NULL"), self._registry)

    def is_not_null(self, column: str) -> FilterBuilder:
        return self._append(null_check(_check_column(column), "IS NOT NULL"), self._registry)

    def eq_column(self, column: str, right_column: str) -> FilterBuilder:
        """``column = right_column``, e.g. ``users.id = orders.user_id``."""
        return self.compare_columns(column, "=", right_column)

    def compare_columns(self, column: str, operator: str, right_column: str) -> FilterBuilder:
        """``column <operator> right_column`` with no parameter.

        Raises:
            ValidationError: If ``operator`` is not a comparison operator.
        """
        _check_column(column)
        _check_column(right_column)
        if operator not in COMPARISON_OPERATORS:
            raise ValidationError(
                f"Unsupported operator: {operator!r}. Supported: {sorted(COMPARISON_OPERATORS)}",
                code=ErrorCode.UNSUPPORTED_OPERATOR,
                details={"operator": operator},
            )
        return self._append(column_comparison(column, operator, right_column), self._registry)

    # ------------------------------------------------------------------
    # Logical composition
    # ------------------------------------------------------------------

    def and_(self, *fns: FilterFn) -> FilterBuilder:
        """Append ``(c1 AND c2 ...)`` built by ``fns``."""
        return self._combine(LogicalOp.AND, fns)

    def or_(self, *fns: FilterFn) -> FilterBuilder:
        """Append ``(c1 OR c2 ...)`` built by ``fns``.

        Each function receives an empty builder seeded with the parameters
        bound so far and returns the builder it produced.
        """
        return self._combine(LogicalOp.OR, fns)

    def _combine(self, op: LogicalOp, fns: tuple[FilterFn, ...]) -> FilterBuilder:
        if not fns:
            return self
        registry = self._registry
        children: list[ConditionNode] = []
        for fn in fns:
            result = fn(FilterBuilder(registry=registry, clause=self._clause))
            if not isinstance(result, FilterBuilder):
                raise TypeError(
                    f"Condition callback must return a FilterBuilder, got {type(result).__name__}"
                )
            registry = registry.merge(result.registry)
            children.extend(result.root.children)
        group = ConditionGroup(op=op, children=tuple(children))
        return self._append(group, registry)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def build(self) -> CompiledQuery:
        """Render the conditions and the parameters they reference.

        An empty builder yields ``CompiledQuery(sql="", parameters={})``.

        Raises:
            CompilationError: If the tree is malformed.
        """
        if self._root.is_empty:
            return CompiledQuery(sql="", parameters={})
        sql = PredicateBuilder(self._clause).build(self._root)
        params = filter_parameters([self._root], self._registry)
        logger.debug(
            "Compiled %s filter with %d parameter(s)", self._clause, len(params)
        )
        return CompiledQuery(sql=sql, parameters=params)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _append(self, node: ConditionNode, registry: ParameterRegistry) -> FilterBuilder:
        return FilterBuilder(self._root.append(node), registry, self._clause)


def create_where(registry: ParameterRegistry | None = None) -> FilterBuilder:
    """Return an empty WHERE builder, optionally seeded with ``registry``."""
    return FilterBuilder(registry=registry, clause="WHERE")


def create_having(registry: ParameterRegistry | None = None) -> FilterBuilder:
    """Return an empty HAVING builder, optionally seeded with ``registry``."""
    return FilterBuilder(registry=registry, clause="HAVING")
