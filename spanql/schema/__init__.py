"""spanql schema models: condition trees, query trees and the value domain."""
from spanql.schema.conditions import (
    Condition,
    ConditionGroup,
    ConditionKind,
    ConditionNode,
    LogicalOp,
)
from spanql.schema.query_tree import (
    AggregateSelection,
    ColumnSelection,
    ExpressionSelection,
    GroupByClause,
    JoinClause,
    OrderByClause,
    OrderByColumn,
    QueryTree,
    SelectClause,
    TableRef,
)
from spanql.schema.values import (
    ParameterValue,
    is_parameter_value,
    spanner_type_hint,
)

__all__ = [
    "Condition",
    "ConditionGroup",
    "ConditionKind",
    "ConditionNode",
    "LogicalOp",
    "AggregateSelection",
    "ColumnSelection",
    "ExpressionSelection",
    "GroupByClause",
    "JoinClause",
    "OrderByClause",
    "OrderByColumn",
    "QueryTree",
    "SelectClause",
    "TableRef",
    "ParameterValue",
    "is_parameter_value",
    "spanner_type_hint",
]
