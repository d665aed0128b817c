"""
Query parameter model.

A Query is scoped to one collection and carries an ordered list of
where-clauses, a combine mode, an optional sort key, skip/limit, a
count-only flag and include paths. Parameters arrive as plain mappings
from the caller and are validated here with pydantic.

Invariants:
    - Every where-clause is a (field, operator, value) triple
    - A two-item clause gets value None (presence operators need no value)
    - Operators are kept as given; unknown ones (including non-text values)
      void the query in the engine rather than failing validation
    - An explicit None for combine or count means the default
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Tuple

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import InvalidQueryError

WhereClause = Tuple[str, Any, Any]

COMBINE_AND = "and"
COMBINE_OR = "or"


class Query(BaseModel):
    """A query against a single collection.

    Example:
        >>> Query(collection="tasks", where=[("count", "gt", 4)], sort="-count")
    """

    collection: str
    where: List[WhereClause] = Field(default_factory=list)
    combine: Optional[str] = COMBINE_AND
    sort: Optional[str] = None
    skip: Optional[int] = None
    limit: Optional[int] = None
    count: Optional[bool] = False
    include: List[str] = Field(default_factory=list)

    @field_validator("where", mode="before")
    @classmethod
    def _pad_clauses(cls, value: Any) -> Any:
        if value is None:
            return []
        if not isinstance(value, (list, tuple)):
            return value
        padded = []
        for clause in value:
            if isinstance(clause, (list, tuple)) and len(clause) == 2:
                clause = (clause[0], clause[1], None)
            padded.append(clause)
        return padded

    @field_validator("combine", mode="before")
    @classmethod
    def _default_combine(cls, value: Any) -> Any:
        return COMBINE_AND if value is None else value

    @field_validator("count", mode="before")
    @classmethod
    def _default_count(cls, value: Any) -> Any:
        return False if value is None else value

    @field_validator("include", mode="before")
    @classmethod
    def _listify_include(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | "Query") -> "Query":
        """Build a Query from caller parameters.

        Args:
            params: Mapping of query parameters, or an existing Query

        Returns:
            Validated Query

        Raises:
            InvalidQueryError: If the parameters are malformed
        """
        if isinstance(params, cls):
            return params
        try:
            return cls.model_validate(params)
        except ValidationError as e:
            raise InvalidQueryError(
                f"Invalid query parameters: {e.error_count()} error(s)",
                errors=e.errors(include_url=False, include_context=False),
            ) from e

    @property
    def sort_field(self) -> Optional[str]:
        """Sort field name without the direction prefix."""
        if not self.sort:
            return None
        return self.sort[1:] if self.sort.startswith("-") else self.sort

    @property
    def descending(self) -> bool:
        """Whether the sort key requests descending order."""
        return bool(self.sort) and self.sort.startswith("-")

    def empty_result(self) -> dict:
        """The result shape for a query that matched nothing."""
        return {"count": 0} if self.count else {"results": []}
