"""Pydantic models for a SELECT statement prior to serialization.

The :class:`QueryTree` is what :class:`~spanql.builders.select_builder.SelectBuilder`
accumulates and what :class:`~spanql.compile.builder.QueryCompiler` renders.
Every model is frozen; builders produce new trees with
``tree.model_copy(update={...})`` so unchanged clauses are shared.
"""
from __future__ import annotations

from collections.abc import Iterator
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

from spanql.schema.conditions import ConditionGroup

#: Aggregate functions supported by Cloud Spanner.
AGGREGATE_FUNCTIONS: tuple[str, ...] = (
    "COUNT",
    "SUM",
    "AVG",
    "MIN",
    "MAX",
    "ARRAY_AGG",
    "STRING_AGG",
)

JoinKind = Literal["INNER", "LEFT", "RIGHT", "FULL", "CROSS", "NATURAL"]

#: Join kinds rendered without an ON clause.
UNCONDITIONED_JOINS: frozenset[str] = frozenset({"CROSS", "NATURAL"})

SortDirection = Literal["ASC", "DESC"]

_FROZEN = ConfigDict(extra="forbid", frozen=True)


class ColumnSelection(BaseModel):
    """A plain column in the SELECT list."""

    model_config = _FROZEN

    kind: Literal["column"] = "column"
    name: str
    alias: str | None = None


class ExpressionSelection(BaseModel):
    """A raw SQL expression in the SELECT list (e.g. ``*``)."""

    model_config = _FROZEN

    kind: Literal["expression"] = "expression"
    text: str
    alias: str | None = None


class AggregateSelection(BaseModel):
    """An aggregate call; ``column=None`` means ``*`` (only valid for COUNT)."""

    model_config = _FROZEN

    kind: Literal["aggregate"] = "aggregate"
    fn: str
    column: str | None = None
    alias: str | None = None


SelectColumn = Annotated[
    Union[ColumnSelection, ExpressionSelection, AggregateSelection],
    Field(discriminator="kind"),
]


class SelectClause(BaseModel):
    model_config = _FROZEN

    columns: tuple[SelectColumn, ...] = ()
    distinct: bool = False

    @property
    def has_aggregates(self) -> bool:
        return any(isinstance(c, AggregateSelection) for c in self.columns)

    @property
    def aliases(self) -> list[str]:
        return [c.alias for c in self.columns if c.alias is not None]


class TableRef(BaseModel):
    """A table in FROM or JOIN.

    Attributes:
        name: Validated table name.
        alias: Optional validated alias.
        column_types: Optional ``{column: type}`` map describing the table.
            Only used to merge column sets across joins and to reject
            unknown SELECT / GROUP BY columns.
    """

    model_config = _FROZEN

    name: str
    alias: str | None = None
    column_types: dict[str, str] | None = None


class JoinClause(BaseModel):
    model_config = _FROZEN

    kind: JoinKind = "INNER"
    table: TableRef
    condition: ConditionGroup = Field(default_factory=ConditionGroup)


class GroupByClause(BaseModel):
    model_config = _FROZEN

    columns: tuple[str, ...] = ()
    expressions: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.columns and not self.expressions


class OrderByColumn(BaseModel):
    """One ORDER BY item; exactly one of ``column`` / ``expression`` is set."""

    model_config = _FROZEN

    column: str | None = None
    expression: str | None = None
    direction: SortDirection = "ASC"
    nulls_first: bool | None = None


class OrderByClause(BaseModel):
    model_config = _FROZEN

    columns: tuple[OrderByColumn, ...] = ()


class QueryTree(BaseModel):
    """A complete SELECT statement.

    ``from_`` is populated from the ``"from"`` key when parsing dicts.
    """

    model_config = ConfigDict(extra="forbid", frozen=True, populate_by_name=True)

    select: SelectClause = Field(default_factory=SelectClause)
    from_: TableRef | None = Field(default=None, alias="from")
    joins: tuple[JoinClause, ...] = ()
    where: ConditionGroup | None = None
    group_by: GroupByClause | None = None
    having: ConditionGroup | None = None
    order_by: OrderByClause | None = None
    limit: int | None = None
    offset: int | None = None

    # ------------------------------------------------------------------
    # Domain helpers
    # ------------------------------------------------------------------

    def table_refs(self) -> list[TableRef]:
        """FROM table followed by every joined table."""
        refs = [self.from_] if self.from_ is not None else []
        refs.extend(j.table for j in self.joins)
        return refs

    def condition_trees(self) -> Iterator[ConditionGroup]:
        """Yield every condition tree in clause order (JOIN, WHERE, HAVING)."""
        for join in self.joins:
            yield join.condition
        if self.where is not None:
            yield self.where
        if self.having is not None:
            yield self.having

    def merged_column_types(self) -> dict[str, str] | None:
        """Union of the column sets of all tables.

        Returns ``None`` unless every table carries ``column_types``; a
        partial schema cannot be used to reject column names.
        """
        refs = self.table_refs()
        if not refs or any(ref.column_types is None for ref in refs):
            return None
        merged: dict[str, str] = {}
        for ref in refs:
            merged.update(ref.column_types or {})
        return merged
