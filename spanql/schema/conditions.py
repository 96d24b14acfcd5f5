"""Condition tree models for WHERE, HAVING and JOIN ON clauses.

A tree is made of :class:`Condition` leaves and :class:`ConditionGroup`
nodes.  Both are frozen pydantic models: a builder never edits a node, it
creates a new root that shares every untouched child with the old one.

Trees can also be written by hand or parsed from plain dicts::

    group = ConditionGroup.model_validate(
        {
            "op": "or",
            "children": [
                {"kind": "comparison", "column": "a", "operator": "=",
                 "value": 1, "param_ref": "param1"},
                {"kind": "null", "column": "b", "operator": "IS NULL"},
            ],
        }
    )
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict


class ConditionKind(str, Enum):
    """Discriminator for leaf conditions."""

    COMPARISON = "comparison"
    IN = "in"
    LIKE = "like"
    FUNCTION = "function"
    NULL = "null"
    COLUMN = "column"


class LogicalOp(str, Enum):
    """Logical connectives for condition groups."""

    AND = "and"
    OR = "or"


COMPARISON_OPERATORS: frozenset[str] = frozenset({"=", "!=", "<", ">", "<=", ">="})

#: Operators rewritten to IS NULL / IS NOT NULL when compared with ``None``.
NULL_REWRITE_OPERATORS: dict[str, str] = {"=": "IS NULL", "!=": "IS NOT NULL"}

IN_OPERATORS: frozenset[str] = frozenset({"IN", "NOT IN"})
UNNEST_OPERATORS: frozenset[str] = frozenset({"IN UNNEST", "NOT IN UNNEST"})
LIKE_OPERATORS: frozenset[str] = frozenset({"LIKE", "NOT LIKE"})
FUNCTION_OPERATORS: frozenset[str] = frozenset({"STARTS_WITH", "ENDS_WITH"})
NULL_OPERATORS: frozenset[str] = frozenset({"IS NULL", "IS NOT NULL"})

_FROZEN = ConfigDict(extra="forbid", frozen=True)


class Condition(BaseModel):
    """A single leaf predicate.

    Attributes:
        kind: Which generator handles this leaf.
        column: Left-hand column or expression.
        operator: SQL operator or function name.
        value: Scalar value for comparison / like / function leaves, or the
            whole list for UNNEST leaves.
        values: Element values for IN / NOT IN leaves.
        param_ref: Placeholder name (without ``@``) bound to ``value``.
        param_refs: Placeholder names for ``values``, in order.
        right_column: Right-hand column for column-to-column leaves.
    """

    model_config = _FROZEN

    kind: ConditionKind
    column: str
    operator: str
    value: Any = None
    values: tuple[Any, ...] | None = None
    param_ref: str | None = None
    param_refs: tuple[str, ...] | None = None
    right_column: str | None = None

    @property
    def is_null_rewrite(self) -> bool:
        """``True`` for ``= None`` / ``!= None`` comparisons (no parameter bound)."""
        return (
            self.kind == ConditionKind.COMPARISON
            and self.value is None
            and self.operator in NULL_REWRITE_OPERATORS
        )


class ConditionGroup(BaseModel):
    """An AND / OR combination of conditions and nested groups.

    An empty group is valid: it renders as ``TRUE`` for AND and ``FALSE``
    for OR.
    """

    model_config = _FROZEN

    op: LogicalOp = LogicalOp.AND
    children: tuple[ConditionNode, ...] = ()

    def append(self, node: ConditionNode) -> ConditionGroup:
        """Return a new group with ``node`` added after the existing children."""
        return self.model_copy(update={"children": (*self.children, node)})

    def extend(self, nodes: tuple[ConditionNode, ...]) -> ConditionGroup:
        """Return a new group with ``nodes`` added after the existing children."""
        return self.model_copy(update={"children": (*self.children, *nodes)})

    @property
    def is_empty(self) -> bool:
        return not self.children


ConditionNode = Union[Condition, ConditionGroup]

ConditionGroup.model_rebuild()


# ---------------------------------------------------------------------------
# Leaf constructors used by the fluent builders
# ---------------------------------------------------------------------------


def comparison(column: str, operator: str, value: Any, param_ref: str | None) -> Condition:
    """``column <operator> @param`` (or the IS NULL rewrite when ``value`` is None)."""
    return Condition(
        kind=ConditionKind.COMPARISON,
        column=column,
        operator=operator,
        value=value,
        param_ref=param_ref,
    )


def membership(column: str, operator: str, values: list[Any], param_refs: list[str]) -> Condition:
    """``column IN (@p1, @p2, ...)`` / ``NOT IN``."""
    return Condition(
        kind=ConditionKind.IN,
        column=column,
        operator=operator,
        values=tuple(values),
        param_refs=tuple(param_refs),
    )


def unnest_membership(
    column: str, operator: str, values: list[Any], param_ref: str | None
) -> Condition:
    """``column IN UNNEST(@p)`` / ``NOT IN UNNEST(@p)``."""
    return Condition(
        kind=ConditionKind.IN,
        column=column,
        operator=operator,
        value=values,
        values=tuple(values),
        param_ref=param_ref,
    )


def pattern(column: str, operator: str, value: str, param_ref: str) -> Condition:
    """``column LIKE @p`` / ``NOT LIKE``."""
    return Condition(
        kind=ConditionKind.LIKE, column=column, operator=operator, value=value, param_ref=param_ref
    )


def string_function(column: str, function: str, value: str, param_ref: str) -> Condition:
    """``STARTS_WITH(column, @p)`` / ``ENDS_WITH(column, @p)``."""
    return Condition(
        kind=ConditionKind.FUNCTION,
        column=column,
        operator=function,
        value=value,
        param_ref=param_ref,
    )


def null_check(column: str, operator: str) -> Condition:
    """``column IS NULL`` / ``IS NOT NULL``."""
    return Condition(kind=ConditionKind.NULL, column=column, operator=operator)


def column_comparison(column: str, operator: str, right_column: str) -> Condition:
    """``column <operator> right_column`` with no parameter."""
    return Condition(
        kind=ConditionKind.COLUMN, column=column, operator=operator, right_column=right_column
    )
