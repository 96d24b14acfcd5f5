"""Core QueryTree → SQL compilation logic.

``QueryCompiler`` is the top-level orchestrator.  It validates the tree,
wires together the clause-level sub-builders, renders the clauses in fixed
SQL order and finally sweeps the parameter registry down to the names the
SQL actually references.

Sub-builder hierarchy
---------------------
QueryCompiler
  ├── SelectClauseBuilder   (clause_builders.py)
  ├── FromClauseBuilder     (clause_builders.py)
  ├── JoinClauseBuilder     (clause_builders.py)
  ├── PredicateBuilder      (expression_builder.py)  WHERE / HAVING
  ├── GroupByClauseBuilder  (clause_builders.py)
  └── OrderByClauseBuilder  (clause_builders.py)

Pagination
----------
LIMIT and OFFSET are bound as ordinary parameters at compile time, LIMIT
first, after every condition parameter.  Like any other value they reuse
the placeholder of an equal value that is already bound.
"""
from __future__ import annotations

import logging

from spanql.compile.base import CompiledQuery
from spanql.compile.clause_builders import (
    FromClauseBuilder,
    GroupByClauseBuilder,
    JoinClauseBuilder,
    OrderByClauseBuilder,
    SelectClauseBuilder,
)
from spanql.compile.expression_builder import PredicateBuilder, filter_parameters
from spanql.compile.parameters import (
    PLACEHOLDER_PREFIX,
    ParameterRegistry,
    param_placeholder,
    values_match,
)
from spanql.config import BuilderConfig
from spanql.errors import ParameterCollisionError
from spanql.schema.conditions import Condition, ConditionGroup, LogicalOp
from spanql.schema.query_tree import UNCONDITIONED_JOINS, QueryTree
from spanql.validate.validator import QueryValidator

logger = logging.getLogger(__name__)


def _emits(condition: ConditionGroup | None) -> bool:
    """WHERE / HAVING are omitted when absent or the empty AND identity."""
    if condition is None:
        return False
    return not (condition.is_empty and condition.op == LogicalOp.AND)


class QueryCompiler:
    """Compiles a :class:`QueryTree` to parameterized Cloud Spanner SQL.

    Args:
        config: Builder configuration; defaults to ``BuilderConfig()``.
    """

    def __init__(self, config: BuilderConfig | None = None) -> None:
        self._config = config or BuilderConfig()
        self._validator = QueryValidator(self._config)
        self._select = SelectClauseBuilder()
        self._from = FromClauseBuilder()
        self._join = JoinClauseBuilder()
        self._where = PredicateBuilder(clause="WHERE")
        self._having = PredicateBuilder(clause="HAVING")
        self._group_by = GroupByClauseBuilder()
        self._order_by = OrderByClauseBuilder()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(
        self, tree: QueryTree, registry: ParameterRegistry | None = None
    ) -> CompiledQuery:
        """Validate and compile ``tree``.

        Args:
            tree: The query to compile.
            registry: Parameters bound by the builders that produced the
                condition trees.  When omitted the registry is rebuilt from
                the values stored in the leaves (see
                :func:`registry_from_tree`).

        Returns:
            :class:`~spanql.compile.base.CompiledQuery` whose parameters
            cover exactly the placeholders in its SQL.

        Raises:
            ValidationError: If the tree breaks a usage rule.
            CompilationError: If a condition tree is malformed.
        """
        self._validator.validate(tree)
        if registry is None:
            registry = registry_from_tree(tree)

        parts: list[str] = [self._select.build(tree.select)]

        if tree.from_ is not None:
            parts.append(self._from.build(tree.from_))

        for join in tree.joins:
            parts.append(self._join.build(join))

        if _emits(tree.where):
            parts.append(f"WHERE {self._where.build(tree.where)}")

        if tree.group_by is not None:
            parts.append(self._group_by.build(tree.group_by))

        if _emits(tree.having):
            parts.append(f"HAVING {self._having.build(tree.having)}")

        if tree.order_by is not None:
            parts.append(self._order_by.build(tree.order_by))

        pagination_refs: list[str] = []
        if tree.limit is not None:
            registry, name = registry.insert(tree.limit)
            pagination_refs.append(name)
            parts.append(f"LIMIT {param_placeholder(name)}")

        if tree.offset is not None:
            registry, name = registry.insert(tree.offset)
            pagination_refs.append(name)
            parts.append(f"OFFSET {param_placeholder(name)}")

        sql = " ".join(parts)
        params = filter_parameters(self._emitted_trees(tree), registry, pagination_refs)
        logger.debug(
            "Compiled SELECT with %d join(s) and %d parameter(s)",
            len(tree.joins),
            len(params),
        )
        return CompiledQuery(sql=sql, parameters=params)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _emitted_trees(tree: QueryTree) -> list[ConditionGroup]:
        trees = [j.condition for j in tree.joins if j.kind not in UNCONDITIONED_JOINS]
        if _emits(tree.where):
            trees.append(tree.where)
        if _emits(tree.having):
            trees.append(tree.having)
        return trees


def registry_from_tree(tree: QueryTree) -> ParameterRegistry:
    """Rebuild a registry from the values stored in the leaves of ``tree``.

    Used for trees written by hand or parsed from dicts, where the leaves
    already carry both ``param_ref`` / ``param_refs`` and their values.
    ``next_index`` is set past the highest ``param<N>`` seen so pagination
    placeholders never collide with a leaf's name.

    Raises:
        ParameterCollisionError: If two leaves bind one placeholder name to
            different values.
    """
    values: dict[str, object] = {}
    highest = 0

    def bind(name: str, value: object) -> None:
        nonlocal highest
        if name in values and not values_match(value, values[name]):
            raise ParameterCollisionError(name)
        values.setdefault(name, value)
        suffix = name[len(PLACEHOLDER_PREFIX):]
        if name.startswith(PLACEHOLDER_PREFIX) and suffix.isdigit():
            highest = max(highest, int(suffix))

    def walk(node: object) -> None:
        if isinstance(node, ConditionGroup):
            for child in node.children:
                walk(child)
        elif isinstance(node, Condition):
            if node.param_ref and not node.is_null_rewrite:
                bind(node.param_ref, node.value)
            if node.param_refs and node.values:
                for name, value in zip(node.param_refs, node.values):
                    bind(name, value)

    for condition in tree.condition_trees():
        walk(condition)
    return ParameterRegistry(values, highest)
