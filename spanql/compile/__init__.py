"""spanql compilation layer: condition and query trees → parameterized SQL."""
from spanql.compile.base import CompiledQuery
from spanql.compile.builder import QueryCompiler
from spanql.compile.expression_builder import PredicateBuilder, condition_to_sql
from spanql.compile.parameters import ParameterRegistry

__all__ = [
    "CompiledQuery",
    "QueryCompiler",
    "PredicateBuilder",
    "condition_to_sql",
    "ParameterRegistry",
]
