"""
HazeDB - an in-process, in-memory document store.

This package implements a schemaless document store built on:
- Named collections of documents keyed by generated ids
- Optimistic concurrency through a per-document version stamp
- A predicate query engine with sorting and pagination
- "collection:id" references expanded on read along include paths
- Synchronous change notification for every mutation

Architecture:
    ┌─────────────┐     ┌──────────────┐     ┌────────────────┐
    │   Caller    │────▶│ DocumentStore│────▶│ ChangeNotifier │──▶ listeners
    │ (or api.py) │     │  (registry)  │     └────────────────┘
    └─────────────┘     └──────┬───────┘
                               │ get / query
                     ┌─────────┴─────────┐
                     ▼                   ▼
               ┌───────────┐     ┌───────────────────┐
               │QueryEngine│────▶│ ReferenceResolver │
               └───────────┘     └───────────────────┘

Invariants:
    - Document ids never change; versions strictly increase per write
    - Absence and version conflicts are return values, not exceptions
    - Nothing survives the process; there is no persistence

How to change safely:
    - Keep every operation synchronous and run-to-completion
    - Route every mutation through DocumentStore so events are emitted
"""

from ._version import __version__
from .api import dispatch
from .config import StoreSettings
from .errors import HazeError, InvalidQueryError, InvalidRequestError, UnknownOperationError
from .events import ChangeEvent, ChangeNotifier, EventKind, Subscription
from .query import Operator, Query, QueryEngine
from .store import DocumentStore, Reference, ReferenceResolver, make_reference

__all__ = [
    "__version__",
    # Store
    "DocumentStore",
    "StoreSettings",
    "Reference",
    "ReferenceResolver",
    "make_reference",
    # Query
    "Query",
    "QueryEngine",
    "Operator",
    # Events
    "ChangeEvent",
    "ChangeNotifier",
    "EventKind",
    "Subscription",
    # Request interface
    "dispatch",
    # Errors
    "HazeError",
    "InvalidRequestError",
    "InvalidQueryError",
    "UnknownOperationError",
]
