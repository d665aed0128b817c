"""
Query evaluation over a single collection.

Evaluation order:
    1. Load every document of the collection
    2. Apply where-clauses, combining their match sets
    3. Count, or sort -> skip -> limit -> resolve includes

Invariants:
    - An unknown operator in any clause voids the whole query
    - The first clause always seeds the match set, whatever the combine mode
    - Sorting is stable; equal keys keep their pre-sort order
    - skip/limit never index out of bounds

How to change safely:
    - New operators go in predicates.py, not here
    - Keep evaluation a full scan; there are no indexes to consult
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Tuple

from .predicates import get_predicate
from .types import COMBINE_OR, Query

if TYPE_CHECKING:
    from ..store.documents import DocumentStore

logger = logging.getLogger(__name__)

Document = Dict[str, Any]

# Sort ranks for mixed-type fields
_RANK_NUMBER = 0
_RANK_STRING = 1
_RANK_BOOL = 2
_RANK_OTHER = 3
_RANK_MISSING = 4


def sort_key(doc: Mapping[str, Any], field: str) -> Tuple[int, Any]:
    """Total ordering key for a document's field value.

    Numbers < strings < booleans < anything else (by repr) < missing.
    """
    if field not in doc:
        return (_RANK_MISSING, 0)
    value = doc[field]
    if isinstance(value, bool):
        return (_RANK_BOOL, value)
    if isinstance(value, (int, float)):
        return (_RANK_NUMBER, value)
    if isinstance(value, str):
        return (_RANK_STRING, value)
    return (_RANK_OTHER, repr(value))


def paginate(results: List[Document], skip: int | None, limit: int | None) -> List[Document]:
    """Apply skip then limit, clamping both to the available range."""
    if skip is not None:
        results = results[min(max(0, skip), len(results)):]
    if limit is not None:
        results = results[: min(max(0, limit), len(results))]
    return results


class QueryEngine:
    """Evaluates queries against a DocumentStore's collections.

    The engine reads the store's live documents and hands the surviving
    ones back to the store for copying and include resolution, so results
    never alias stored state (unless in-place resolution is configured).

    Example:
        >>> engine = QueryEngine(store)
        >>> engine.evaluate(Query(collection="tasks", where=[("count", "gt", 4)]))
        {'results': [...]}
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def evaluate(self, query: Query | Mapping[str, Any]) -> Dict[str, Any]:
        """Run a query.

        Args:
            query: Query model or query parameters

        Returns:
            {"count": int} for count queries, else {"results": [documents]}

        Raises:
            InvalidQueryError: If the parameters are malformed
        """
        query = Query.from_params(query)
        started = time.perf_counter()

        docs = self._store._documents(query.collection)
        if not docs:
            return query.empty_result()

        matches = self._match(query, docs)
        if matches is None:
            return query.empty_result()

        if query.count:
            return {"count": len(matches)}

        results = list(matches.values())

        if query.sort_field:
            results = sorted(
                results,
                key=lambda doc: sort_key(doc, query.sort_field),
                reverse=query.descending,
            )

        results = paginate(results, query.skip, query.limit)
        results = [self._store._export(query.collection, doc, query.include) for doc in results]

        logger.debug(
            "Query evaluated",
            extra={
                "collection": query.collection,
                "clauses": len(query.where),
                "results": len(results),
                "elapsed_ms": round((time.perf_counter() - started) * 1000, 3),
            },
        )
        return {"results": results}

    def _match(self, query: Query, docs: List[Document]) -> Dict[str, Document] | None:
        """Combine clause match sets, keyed by document id.

        Returns None if any clause names an unknown operator.
        """
        if not query.where:
            return {doc["id"]: doc for doc in docs}

        combined: Dict[str, Document] = {}

        for index, (key, operator, value) in enumerate(query.where):
            predicate = get_predicate(operator)
            if predicate is None:
                logger.warning(
                    f"Unknown query operator: {operator}",
                    extra={"collection": query.collection, "field": key},
                )
                return None

            matches = {doc["id"]: doc for doc in docs if predicate(doc, key, value)}

            if index == 0 or query.combine == COMBINE_OR:
                combined.update(matches)
            else:
                combined = {doc_id: doc for doc_id, doc in combined.items() if doc_id in matches}

        return combined
