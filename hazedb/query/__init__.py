"""
Query engine for HazeDB.

Queries filter one collection with where-clauses, combine them with
"and" (intersection, the default) or "or" (union), then sort, paginate,
count and expand references.

Unknown operators never raise: the query yields an empty result.
"""

from .engine import QueryEngine, paginate, sort_key
from .predicates import PREDICATES, Operator, get_predicate
from .types import COMBINE_AND, COMBINE_OR, Query, WhereClause

__all__ = [
    "QueryEngine",
    "Query",
    "WhereClause",
    "COMBINE_AND",
    "COMBINE_OR",
    "Operator",
    "PREDICATES",
    "get_predicate",
    "paginate",
    "sort_key",
]
