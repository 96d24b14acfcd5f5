"""Builder configuration.

Defaults reproduce Cloud Spanner's identifier limits; override them when a
deployment needs stricter rules::

    from spanql import BuilderConfig, NamingRules, create_select

    config = BuilderConfig(naming=NamingRules(extra_reserved_keywords=["USERS"]))
    query = create_select(config=config).select("id").from_("accounts").build()
"""
from __future__ import annotations

from dataclasses import dataclass, field

#: Keywords that may never be used as a table name or alias.
RESERVED_KEYWORDS: frozenset[str] = frozenset(
    {
        "SELECT", "FROM", "WHERE", "INSERT", "UPDATE", "DELETE", "CREATE",
        "DROP", "ALTER", "TABLE", "INDEX", "VIEW", "DATABASE", "SCHEMA",
        "GRANT", "REVOKE", "COMMIT", "ROLLBACK", "TRANSACTION", "BEGIN",
        "END", "IF", "ELSE", "CASE", "WHEN", "THEN", "NULL", "TRUE", "FALSE",
        "AND", "OR", "NOT", "IN", "EXISTS", "BETWEEN", "LIKE", "IS", "AS",
        "ON", "JOIN", "INNER", "LEFT", "RIGHT", "FULL", "OUTER", "CROSS",
        "UNION", "INTERSECT", "EXCEPT", "ORDER", "BY", "GROUP", "HAVING",
        "LIMIT", "OFFSET", "DISTINCT", "ALL", "ANY", "SOME", "COUNT", "SUM",
        "AVG", "MIN", "MAX", "ARRAY", "STRUCT", "UNNEST", "NATURAL",
    }
)


@dataclass
class NamingRules:
    """Identifier rules enforced for table names and aliases.

    Attributes:
        max_table_name_length: Longest accepted table name.
        max_alias_length: Longest accepted table alias.
        extra_reserved_keywords: Additional words rejected as identifiers
            (compared case-insensitively).
    """

    max_table_name_length: int = 128
    max_alias_length: int = 64
    extra_reserved_keywords: list[str] = field(default_factory=list)

    @property
    def reserved_keywords(self) -> frozenset[str]:
        """Built-in keywords plus :attr:`extra_reserved_keywords`, upper-cased."""
        return RESERVED_KEYWORDS | {k.upper() for k in self.extra_reserved_keywords}


@dataclass
class BuilderConfig:
    """Configuration shared by the select builder, validator and compiler.

    Attributes:
        naming: Identifier rules for tables and aliases.
        check_schema_columns: When every table in the query carries column
            types, reject SELECT / GROUP BY columns missing from them.
    """

    naming: NamingRules = field(default_factory=NamingRules)
    check_schema_columns: bool = True
