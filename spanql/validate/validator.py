"""Query validation orchestrator.

``QueryValidator`` is the public entry point.  It runs the naming checks
on every table reference (trees may be parsed from dicts, bypassing the
fluent builders) and then the usage rules of :class:`SemanticValidator`,
raising the first violation found.

Order of checks
---------------
1. Table names and aliases (naming.py)
2. SELECT list
3. JOIN, then FROM
4. GROUP BY coverage, then HAVING
5. ORDER BY, LIMIT, OFFSET
6. Schema columns (only when every table carries column types)
"""
from __future__ import annotations

from spanql.config import BuilderConfig
from spanql.schema.query_tree import QueryTree
from spanql.validate.naming import validate_table_alias, validate_table_name
from spanql.validate.semantic_validator import SemanticValidator


class QueryValidator:
    """Validates a :class:`QueryTree` before compilation.

    Args:
        config: Builder configuration; defaults to ``BuilderConfig()``.
    """

    def __init__(self, config: BuilderConfig | None = None) -> None:
        self._config = config or BuilderConfig()
        self._semantic = SemanticValidator(self._config)

    def validate(self, tree: QueryTree) -> None:
        """Validate ``tree`` and raise on the first violation found.

        Raises:
            ValidationError: (or subclass) on the first violation.
        """
        self._validate_tables(tree)

        self._semantic.validate_select(tree)
        self._semantic.validate_joins(tree)
        self._semantic.validate_from(tree)
        self._semantic.validate_group_by(tree)
        self._semantic.validate_having(tree)
        self._semantic.validate_order_by(tree)
        self._semantic.validate_pagination(tree)
        self._semantic.validate_schema_columns(tree)

    def _validate_tables(self, tree: QueryTree) -> None:
        rules = self._config.naming
        for ref in tree.table_refs():
            validate_table_name(ref.name, rules)
            if ref.alias is not None:
                validate_table_alias(ref.alias, rules)
