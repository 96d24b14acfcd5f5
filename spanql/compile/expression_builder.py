"""Condition tree → SQL fragment compiler.

``PredicateBuilder`` turns a :class:`~spanql.schema.conditions.ConditionNode`
into a GoogleSQL boolean expression.  It is pure: it reads the tree and the
placeholder names already stored in its leaves, and never binds values.

Parenthesization falls out of group boundaries: a group with one child
renders that child bare, a group with two or more children renders one pair
of parentheses around the children joined by ``AND`` / ``OR``.

Generation of a tree the fluent builders could not have produced raises
:class:`~spanql.errors.CompilationError`; no partial SQL is returned.
"""
from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from spanql.compile.parameters import ParameterRegistry, param_placeholder
from spanql.errors import CompilationError, ErrorCode, ValidationError
from spanql.schema.conditions import (
    COMPARISON_OPERATORS,
    FUNCTION_OPERATORS,
    IN_OPERATORS,
    LIKE_OPERATORS,
    NULL_OPERATORS,
    NULL_REWRITE_OPERATORS,
    UNNEST_OPERATORS,
    Condition,
    ConditionGroup,
    ConditionKind,
    ConditionNode,
    LogicalOp,
)

_TRUE = "TRUE"
_FALSE = "FALSE"


class PredicateBuilder:
    """Compiles condition nodes (WHERE / HAVING / JOIN ON) to SQL.

    Args:
        clause: Clause name reported in :class:`CompilationError`.
    """

    def __init__(self, clause: str = "WHERE") -> None:
        self._clause = clause
        self._handlers: dict[ConditionKind, Callable[[Condition], str]] = {
            ConditionKind.COMPARISON: self.build_comparison,
            ConditionKind.IN: self.build_membership,
            ConditionKind.LIKE: self.build_pattern,
            ConditionKind.FUNCTION: self.build_function,
            ConditionKind.NULL: self.build_null_check,
            ConditionKind.COLUMN: self.build_column_comparison,
        }

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, node: ConditionNode) -> str:
        """Compile any condition node to a SQL fragment."""
        if isinstance(node, ConditionGroup):
            return self.build_group(node)
        if isinstance(node, Condition):
            handler = self._handlers.get(node.kind)
            if handler is None:
                raise self._error(
                    f"Unsupported condition type: {node.kind!r}",
                    ErrorCode.UNSUPPORTED_OPERATOR,
                )
            return handler(node)
        raise self._error(
            "Invalid condition node: must be either Condition or ConditionGroup, "
            f"got {type(node).__name__}",
            ErrorCode.INVALID_CONDITION_NODE,
        )

    def build_group(self, group: ConditionGroup) -> str:
        if not isinstance(group, ConditionGroup):
            raise self._error("Expected condition group", ErrorCode.INVALID_CONDITION_NODE)

        children = group.children
        if not children:
            return _TRUE if group.op == LogicalOp.AND else _FALSE

        parts: list[str] = []
        for index, child in enumerate(children):
            if child is None:
                raise self._error(
                    f"Invalid condition at index {index}: condition is undefined",
                    ErrorCode.UNDEFINED_CONDITION,
                )
            parts.append(self.build(child))

        if len(parts) == 1:
            return parts[0]
        keyword = LogicalOp(group.op).value.upper()
        return "(" + f" {keyword} ".join(parts) + ")"

    # ------------------------------------------------------------------
    # Leaf compilers
    # ------------------------------------------------------------------

    def build_comparison(self, condition: Condition) -> str:
        self._expect_kind(condition, ConditionKind.COMPARISON)
        if condition.operator not in COMPARISON_OPERATORS:
            raise self._unsupported(condition.operator, COMPARISON_OPERATORS)

        if condition.is_null_rewrite:
            return f"{condition.column} {NULL_REWRITE_OPERATORS[condition.operator]}"

        # None with <, >, <=, >= is bound like any other value; Spanner
        # applies its own NULL comparison semantics.
        ref = self._require_ref(condition)
        return f"{condition.column} {condition.operator} {param_placeholder(ref)}"

    def build_membership(self, condition: Condition) -> str:
        self._expect_kind(condition, ConditionKind.IN)
        operator = condition.operator
        if operator not in IN_OPERATORS and operator not in UNNEST_OPERATORS:
            raise self._unsupported(operator, IN_OPERATORS | UNNEST_OPERATORS)

        values = condition.values or ()
        if not values:
            return _FALSE if operator in ("IN", "IN UNNEST") else _TRUE

        if operator in UNNEST_OPERATORS:
            ref = self._require_ref(condition)
            return f"{condition.column} {operator}({param_placeholder(ref)})"

        refs = condition.param_refs or ()
        if len(refs) != len(values):
            raise ValidationError(
                "Parameter names array must match values array length",
                code=ErrorCode.PARAMETER_NAMES_MISMATCH,
                details={
                    "column": condition.column,
                    "values_length": len(values),
                    "parameter_names_length": len(refs),
                },
            )
        placeholders = ", ".join(param_placeholder(ref) for ref in refs)
        return f"{condition.column} {operator} ({placeholders})"

    def build_pattern(self, condition: Condition) -> str:
        self._expect_kind(condition, ConditionKind.LIKE)
        if condition.operator not in LIKE_OPERATORS:
            raise self._unsupported(condition.operator, LIKE_OPERATORS)
        ref = self._require_ref(condition)
        return f"{condition.column} {condition.operator} {param_placeholder(ref)}"

    def build_function(self, condition: Condition) -> str:
        self._expect_kind(condition, ConditionKind.FUNCTION)
        if condition.operator not in FUNCTION_OPERATORS:
            raise self._unsupported(condition.operator, FUNCTION_OPERATORS)
        ref = self._require_ref(condition)
        return f"{condition.operator}({condition.column}, {param_placeholder(ref)})"

    def build_null_check(self, condition: Condition) -> str:
        self._expect_kind(condition, ConditionKind.NULL)
        if condition.operator not in NULL_OPERATORS:
            raise self._unsupported(condition.operator, NULL_OPERATORS)
        return f"{condition.column} {condition.operator}"

    def build_column_comparison(self, condition: Condition) -> str:
        self._expect_kind(condition, ConditionKind.COLUMN)
        if condition.operator not in COMPARISON_OPERATORS:
            raise self._unsupported(condition.operator, COMPARISON_OPERATORS)
        if not condition.right_column:
            raise self._error(
                "Column comparison requires a right-hand column",
                ErrorCode.INVALID_CONDITION_NODE,
            )
        return f"{condition.column} {condition.operator} {condition.right_column}"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _expect_kind(self, condition: Condition, kind: ConditionKind) -> None:
        if condition.kind != kind:
            actual = getattr(condition.kind, "value", condition.kind)
            raise self._error(
                f"Expected {kind.value} condition, got {actual}",
                ErrorCode.INVALID_CONDITION_TYPE,
            )

    def _require_ref(self, condition: Condition) -> str:
        if not condition.param_ref:
            raise self._error(
                f"Parameter name is required for {condition.operator} condition on "
                f"'{condition.column}'",
                ErrorCode.MISSING_PARAMETER_NAME,
            )
        return condition.param_ref

    def _unsupported(self, operator: str, supported: Iterable[str]) -> CompilationError:
        return self._error(
            f"Unsupported operator: {operator!r}. Supported: {sorted(supported)}",
            ErrorCode.UNSUPPORTED_OPERATOR,
        )

    def _error(self, message: str, code: ErrorCode) -> CompilationError:
        return CompilationError(message, code=code, clause=self._clause)


def condition_to_sql(node: ConditionNode, clause: str = "WHERE") -> str:
    """Compile ``node`` with a fresh :class:`PredicateBuilder`."""
    return PredicateBuilder(clause).build(node)


# ---------------------------------------------------------------------------
# Reachable-parameter sweep
# ---------------------------------------------------------------------------


def collect_param_refs(node: ConditionNode, refs: list[str] | None = None) -> list[str]:
    """Return every placeholder name referenced by the SQL of ``node``.

    Null-rewritten comparisons and empty IN lists reference nothing.
    """
    if refs is None:
        refs = []
    if isinstance(node, ConditionGroup):
        for child in node.children:
            collect_param_refs(child, refs)
    elif isinstance(node, Condition):
        if node.is_null_rewrite:
            return refs
        if node.kind == ConditionKind.IN and not node.values:
            return refs
        if node.param_ref:
            refs.append(node.param_ref)
        if node.param_refs:
            refs.extend(node.param_refs)
    return refs


def filter_parameters(
    trees: Iterable[ConditionNode],
    registry: ParameterRegistry,
    extra_refs: Iterable[str] = (),
) -> dict[str, Any]:
    """Restrict ``registry`` to the names referenced by ``trees`` and ``extra_refs``."""
    refs: list[str] = list(extra_refs)
    for tree in trees:
        collect_param_refs(tree, refs)
    return registry.restrict(refs)
