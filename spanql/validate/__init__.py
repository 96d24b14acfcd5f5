"""spanql validation: identifier rules and query usage rules."""
from spanql.validate.naming import (
    NameIssue,
    make_table_ref,
    validate_table_alias,
    validate_table_name,
)
from spanql.validate.validator import QueryValidator

__all__ = [
    "NameIssue",
    "make_table_ref",
    "validate_table_alias",
    "validate_table_name",
    "QueryValidator",
]
