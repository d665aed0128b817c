"""
Parameter-dict interface to a DocumentStore.

Service layers (HTTP handlers, RPC servicers, message consumers) receive
operations as plain mappings. dispatch() validates those mappings with
pydantic and calls the matching DocumentStore method.

Parameter shapes:
    create:     {"collection", "doc"}                     -> {"id", "version"}
    get:        {"collection", "id", "include"?}          -> document | None
    update:     {"collection", "doc"}                     -> bool
    destroy:    {"collection", "id"}                      -> bool
    increment:  {"collection", "id", "key", "by"?}        -> None
    query:      {"collection", "where"?, "combine"?, "sort"?,
                 "skip"?, "limit"?, "count"?, "include"?} -> {"results"} | {"count"}

Invariants:
    - Malformed parameters raise InvalidRequestError (or InvalidQueryError)
    - Missing documents and version conflicts come back as values
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Mapping, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import InvalidRequestError, UnknownOperationError
from .query import Query
from .store import DocumentStore

logger = logging.getLogger(__name__)


class CreateRequest(BaseModel):
    """Create a document."""

    collection: str
    doc: Dict[str, Any] = Field(default_factory=dict)


class GetRequest(BaseModel):
    """Fetch a document, optionally expanding references."""

    collection: str
    id: str
    include: List[str] = Field(default_factory=list)

    @field_validator("include", mode="before")
    @classmethod
    def _listify_include(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class UpdateRequest(BaseModel):
    """Replace a document; doc must carry id and version."""

    collection: str
    doc: Dict[str, Any]


class DestroyRequest(BaseModel):
    """Remove a document."""

    collection: str
    id: str


class IncrementRequest(BaseModel):
    """Add to a numeric field."""

    collection: str
    id: str
    key: str
    by: Union[int, float] = 1


def _create(store: DocumentStore, request: CreateRequest) -> Any:
    return store.create(request.collection, request.doc)


def _get(store: DocumentStore, request: GetRequest) -> Any:
    return store.get(request.collection, request.id, request.include)


def _update(store: DocumentStore, request: UpdateRequest) -> Any:
    return store.update(request.collection, request.doc)


def _destroy(store: DocumentStore, request: DestroyRequest) -> Any:
    return store.destroy(request.collection, request.id)


def _increment(store: DocumentStore, request: IncrementRequest) -> Any:
    return store.increment(request.collection, request.id, request.key, request.by)


def _query(store: DocumentStore, request: Query) -> Any:
    return store.query(request)


_OPERATIONS: Dict[str, tuple[type[BaseModel], Callable[[DocumentStore, Any], Any]]] = {
    "create": (CreateRequest, _create),
    "get": (GetRequest, _get),
    "update": (UpdateRequest, _update),
    "destroy": (DestroyRequest, _destroy),
    "increment": (IncrementRequest, _increment),
    "query": (Query, _query),
}

# Names used by older service layers
_ALIASES = {
    "createDocument": "create",
    "getDocument": "get",
    "updateDocument": "update",
    "destroyDocument": "destroy",
    "incrementDocument": "increment",
    "queryCollection": "query",
}


def operations() -> List[str]:
    """Canonical operation names accepted by dispatch()."""
    return list(_OPERATIONS)


def dispatch(store: DocumentStore, operation: str, params: Mapping[str, Any]) -> Any:
    """Validate parameters and run an operation against a store.

    Args:
        store: Target store
        operation: Operation name ("create", "queryCollection", ...)
        params: Operation parameters

    Returns:
        The store method's return value

    Raises:
        UnknownOperationError: If the operation name is not recognised
        InvalidRequestError: If params fail validation
        InvalidQueryError: If query params are malformed
    """
    name = _ALIASES.get(operation, operation)
    if name not in _OPERATIONS:
        raise UnknownOperationError(operation, known=operations())

    model, handler = _OPERATIONS[name]

    if model is Query:
        request: BaseModel = Query.from_params(params)
    else:
        try:
            request = model.model_validate(params)
        except ValidationError as e:
            raise InvalidRequestError(
                f"Invalid parameters for {name}: {e.error_count()} error(s)",
                operation=name,
                errors=e.errors(include_url=False, include_context=False),
            ) from e

    logger.debug("Dispatching operation", extra={"operation": name})
    return handler(store, request)
