"""
tablebridge filters - two filter dialects, one predicate list.

- structured: JSON condition list (POST /query)
- expression: "$filter" string (GET /odata)
"""

from tablebridge.filters.expression import parse_expression
from tablebridge.filters.predicates import Combinator, Predicate, where_clause
from tablebridge.filters.structured import FilterCondition, QueryRequest, compile_filters

__all__ = [
    "Combinator",
    "FilterCondition",
    "Predicate",
    "QueryRequest",
    "compile_filters",
    "parse_expression",
    "where_clause",
]
