"""spanql – Parameterized Cloud Spanner SQL from fluent, immutable builders.

Public API
----------
``create_where`` / ``create_having``
    Build a condition tree and its parameters::

        where = create_where().eq("active", True).in_("role", ["admin", "owner"]).build()
        # where.sql        == "(active = @param1 AND role IN (@param2, @param3))"
        # where.parameters == {"param1": True, "param2": "admin", "param3": "owner"}

``create_select``
    Build a complete SELECT statement::

        query = (
            create_select()
            .select("id", "name")
            .from_("users")
            .where(lambda w: w.eq("active", True))
            .order_by("name")
            .limit(10)
            .build()
        )
        # SELECT id, name FROM users WHERE active = @param1 ORDER BY name ASC LIMIT @param2

``compile_query``
    Validate and compile a :class:`QueryTree` written by hand or parsed
    from a dict.

Every placeholder in the returned SQL has a value in ``parameters`` and
every parameter is referenced by the SQL.  ``CompiledQuery.type_hints()``
returns Spanner type hints for the client's ``param_types``.

Re-exported types
-----------------
``QueryTree``, ``ConditionGroup``, ``Condition``, ``TableRef``,
``ParameterRegistry``, ``CompiledQuery``, ``BuilderConfig``,
``NamingRules``, and all error classes.
"""

from __future__ import annotations

from typing import Any

from spanql.builders.filter_builder import FilterBuilder, create_having, create_where
from spanql.builders.select_builder import SelectBuilder, create_select
from spanql.compile.base import CompiledQuery
from spanql.compile.builder import QueryCompiler
from spanql.compile.expression_builder import PredicateBuilder, condition_to_sql
from spanql.compile.parameters import ParameterRegistry
from spanql.config import BuilderConfig, NamingRules
from spanql.errors import (
    CompilationError,
    ErrorCode,
    InvalidNameError,
    InvalidParameterValueError,
    ParameterCollisionError,
    SpanQLError,
    ValidationError,
)
from spanql.schema.conditions import (
    Condition,
    ConditionGroup,
    ConditionKind,
    ConditionNode,
    LogicalOp,
)
from spanql.schema.converters import schemas_from_sqlalchemy, table_schema_from_sqlalchemy
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
from spanql.schema.values import is_parameter_value, spanner_type_hint
from spanql.validate.naming import (
    NameIssue,
    make_table_ref,
    validate_table_alias,
    validate_table_name,
)
from spanql.validate.validator import QueryValidator

__all__ = [
    # Builders
    "create_where",
    "create_having",
    "create_select",
    "compile_query",
    "FilterBuilder",
    "SelectBuilder",
    # Trees
    "Condition",
    "ConditionGroup",
    "ConditionKind",
    "ConditionNode",
    "LogicalOp",
    "QueryTree",
    "SelectClause",
    "ColumnSelection",
    "ExpressionSelection",
    "AggregateSelection",
    "TableRef",
    "JoinClause",
    "GroupByClause",
    "OrderByClause",
    "OrderByColumn",
    # Compilation
    "CompiledQuery",
    "ParameterRegistry",
    "PredicateBuilder",
    "QueryCompiler",
    "condition_to_sql",
    # Validation
    "QueryValidator",
    "NameIssue",
    "make_table_ref",
    "validate_table_name",
    "validate_table_alias",
    # Values
    "is_parameter_value",
    "spanner_type_hint",
    # Converters
    "table_schema_from_sqlalchemy",
    "schemas_from_sqlalchemy",
    # Configuration
    "BuilderConfig",
    "NamingRules",
    # Errors
    "SpanQLError",
    "ErrorCode",
    "ValidationError",
    "InvalidNameError",
    "InvalidParameterValueError",
    "ParameterCollisionError",
    "CompilationError",
]


def compile_query(
    tree: QueryTree | dict[str, Any],
    config: BuilderConfig | None = None,
) -> CompiledQuery:
    """Validate and compile a query tree.

    The parameter values are read from the condition leaves, so a tree
    parsed from a dict compiles on its own::

        compiled = spanql.compile_query(
            {
                "select": {"columns": [{"kind": "column", "name": "id"}]},
                "from": {"name": "users"},
                "where": {
                    "op": "and",
                    "children": [
                        {"kind": "comparison", "column": "age", "operator": ">=",
                         "value": 18, "param_ref": "param1"},
                    ],
                },
                "limit": 5,
            }
        )
        # SELECT id FROM users WHERE age >= @param1 LIMIT @param2

    Args:
        tree: A :class:`QueryTree` or a dict accepted by
            ``QueryTree.model_validate``.
        config: Optional builder configuration.

    Returns:
        ``CompiledQuery`` with ``sql`` and ``parameters``.

    Raises:
        pydantic.ValidationError: If ``tree`` is a dict with an invalid shape.
        ValidationError: (or subclass) if the tree breaks a usage rule.
        CompilationError: If a condition tree is malformed.
    """
    if not isinstance(tree, QueryTree):
        tree = QueryTree.model_validate(tree)
    return QueryCompiler(config).build(tree)
