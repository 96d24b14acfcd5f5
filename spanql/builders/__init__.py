"""spanql fluent builders for filters and SELECT statements."""
from spanql.builders.filter_builder import FilterBuilder, create_having, create_where
from spanql.builders.select_builder import SelectBuilder, create_select

__all__ = [
    "FilterBuilder",
    "create_having",
    "create_where",
    "SelectBuilder",
    "create_select",
]
