"""
In-memory document store for HazeDB.

This module owns the collection registry and every document mutation:
- Collections are created lazily and live as long as the store
- Documents are schemaless dicts with reserved "id" and "version" fields
- Updates use optimistic concurrency: the caller must present the
  currently stored version
- Every mutation is published through the store's ChangeNotifier

Invariants:
    - A document's id is assigned at creation and never changes
    - version strictly increases on every create and update
    - increment changes a field but never the version
    - Callers never receive references to stored documents; reads and
      events carry deep copies (except with resolve_in_place, which
      rewrites stored reference fields on read)
    - Absence and version conflicts are return values, not exceptions

How to change safely:
    - update() is the only conflict detector; keep the version check and
      the write in the same critical section
    - New operations that mutate documents must emit an event
    - Keep operations synchronous and non-blocking

Thread safety:
    Single-threaded by default. With thread_safe=True every operation
    holds one re-entrant lock over the registry, listeners included.
"""

from __future__ import annotations

import copy
import logging
import threading
import time
import uuid
from contextlib import nullcontext
from numbers import Number
from typing import Any, ContextManager, Dict, Iterable, List, Mapping, Optional

from ..config import StoreSettings
from ..events import ChangeNotifier, EventKind, Listener, Subscription
from ..query import Query, QueryEngine
from .references import ReferenceResolver

logger = logging.getLogger(__name__)

Document = Dict[str, Any]
Collection = Dict[str, Document]

ID_FIELD = "id"
VERSION_FIELD = "version"


class DocumentStore:
    """Registry of named collections of schemaless documents.

    Attributes:
        settings: Store configuration
        events: Notifier publishing created/updated/destroyed/incremented

    Example:
        >>> store = DocumentStore()
        >>> created = store.create("users", {"name": "Ann"})
        >>> doc = store.get("users", created["id"])
        >>> doc["name"] = "Ann2"
        >>> store.update("users", doc)
        True
        >>> store.update("users", doc)  # stale version
        False
    """

    def __init__(self, settings: StoreSettings | None = None) -> None:
        """Initialize an empty store.

        Args:
            settings: Optional settings (loaded from env if not provided)
        """
        self.settings = settings or StoreSettings()
        self.events = ChangeNotifier()
        self._collections: Dict[str, Collection] = {}
        self._last_version = 0
        self._resolver = ReferenceResolver(self)
        self._engine = QueryEngine(self)
        self._lock: threading.RLock | None = (
            threading.RLock() if self.settings.thread_safe else None
        )

    def _guard(self) -> ContextManager[Any]:
        return self._lock if self._lock is not None else nullcontext()

    def _next_version(self) -> int:
        """Millisecond timestamp, bumped past the last one issued."""
        now_ms = int(time.time() * 1000)
        self._last_version = max(now_ms, self._last_version + 1)
        return self._last_version

    # Collections

    def ensure_collection(self, name: str) -> Collection:
        """Get a collection, creating it if needed.

        Returns the live mapping of id -> document.
        """
        with self._guard():
            collection = self._collections.get(name)
            if collection is None:
                collection = self._collections[name] = {}
                logger.debug("Collection created", extra={"collection": name})
            return collection

    def has_collection(self, name: str) -> bool:
        """Whether a collection exists (empty or not)."""
        return name in self._collections

    def collection_names(self) -> List[str]:
        """Names of all collections, sorted."""
        with self._guard():
            return sorted(self._collections)

    def count(self, collection: str) -> int:
        """Number of documents in a collection (0 if absent)."""
        with self._guard():
            return len(self._collections.get(collection, {}))

    # Documents

    def create(self, collection: str, fields: Mapping[str, Any]) -> Dict[str, Any]:
        """Store a new document.

        Any "id" or "version" in fields is replaced.

        Args:
            collection: Collection name (created if needed)
            fields: Document fields

        Returns:
            {"id": str, "version": int}
        """
        with self._guard():
            target = self.ensure_collection(collection)

            doc: Document = copy.deepcopy(dict(fields))
            doc[ID_FIELD] = str(uuid.uuid4())
            doc[VERSION_FIELD] = self._next_version()
            target[doc[ID_FIELD]] = doc

            logger.debug(
                "Document created",
                extra={"collection": collection, "id": doc[ID_FIELD], "version": doc[VERSION_FIELD]},
            )
            self.events.emit(EventKind.CREATED, collection, copy.deepcopy(doc))

            return {ID_FIELD: doc[ID_FIELD], VERSION_FIELD: doc[VERSION_FIELD]}

    def get(
        self,
        collection: str,
        doc_id: str,
        include: Optional[Iterable[str]] = None,
    ) -> Optional[Document]:
        """Fetch a document.

        Args:
            collection: Collection name
            doc_id: Document id
            include: Dotted paths of reference fields to expand

        Returns:
            Copy of the document, or None if the collection or id is absent
        """
        with self._guard():
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                return None
            return self._export(collection, doc, include)

    def update(self, collection: str, replacement: Mapping[str, Any]) -> bool:
        """Replace a document wholesale if its version still matches.

        Args:
            collection: Collection name
            replacement: Full new document, carrying the id and the version
                the caller last read

        Returns:
            True if replaced; False if the collection or document is absent
            or the version is stale
        """
        with self._guard():
            target = self._collections.get(collection)
            if target is None:
                return False

            doc_id = replacement.get(ID_FIELD)
            stored = target.get(doc_id) if isinstance(doc_id, str) else None
            if stored is None:
                return False

            if stored[VERSION_FIELD] != replacement.get(VERSION_FIELD):
                logger.warning(
                    "Version conflict on update",
                    extra={
                        "collection": collection,
                        "id": doc_id,
                        "stored_version": stored[VERSION_FIELD],
                        "supplied_version": replacement.get(VERSION_FIELD),
                    },
                )
                return False

            doc: Document = copy.deepcopy(dict(replacement))
            doc[VERSION_FIELD] = self._next_version()
            target[doc_id] = doc

            logger.debug(
                "Document updated",
                extra={"collection": collection, "id": doc_id, "version": doc[VERSION_FIELD]},
            )
            self.events.emit(EventKind.UPDATED, collection, copy.deepcopy(doc))
            return True

    def destroy(self, collection: str, doc_id: str) -> bool:
        """Remove a document.

        Returns:
            False only if the collection is absent. Removing an id that is
            not present succeeds and emits nothing.
        """
        with self._guard():
            target = self._collections.get(collection)
            if target is None:
                return False

            doc = target.pop(doc_id, None)
            if doc is not None:
                logger.debug("Document destroyed", extra={"collection": collection, "id": doc_id})
                self.events.emit(EventKind.DESTROYED, collection, copy.deepcopy(doc))
            return True

    def increment(self, collection: str, doc_id: str, key: str, amount: Number = 1) -> None:
        """Add to a numeric field without touching the version.

        A missing field, or one holding None, counts as 0. A field holding
        anything other than a number is left alone. Absent documents are ignored.

        Args:
            collection: Collection name
            doc_id: Document id
            key: Field to increment
            amount: Amount to add (may be negative)
        """
        with self._guard():
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                return

            if key in (ID_FIELD, VERSION_FIELD):
                logger.warning(
                    f"Cannot increment reserved field '{key}'",
                    extra={"collection": collection, "id": doc_id},
                )
                return

            current = doc.get(key)
            if current is None:
                current = 0
            if isinstance(current, bool) or not isinstance(current, Number):
                logger.warning(
                    f"Cannot increment non-numeric field '{key}'",
                    extra={"collection": collection, "id": doc_id},
                )
                return

            doc[key] = current + amount
            self.events.emit(EventKind.INCREMENTED, collection, copy.deepcopy(doc))

    def query(self, params: Query | Mapping[str, Any]) -> Dict[str, Any]:
        """Run a query against one collection.

        See QueryEngine.evaluate().

        Raises:
            InvalidQueryError: If the parameters are malformed
        """
        with self._guard():
            return self._engine.evaluate(params)

    # Events

    def subscribe(self, listener: Listener, kinds: Optional[Iterable[EventKind]] = None) -> Subscription:
        """Register a change listener. See ChangeNotifier.subscribe()."""
        return self.events.subscribe(listener, kinds)

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a change listener."""
        self.events.unsubscribe(subscription)

    # Internal hooks for the query engine and reference resolver

    def _documents(self, collection: str) -> List[Document]:
        """Live documents of a collection, in no particular order."""
        return list(self._collections.get(collection, {}).values())

    def _fetch(self, collection: str, doc_id: str) -> Optional[Document]:
        """Reference target: a copy, or the stored document in in-place mode."""
        doc = self._collections.get(collection, {}).get(doc_id)
        if doc is None or self.settings.resolve_in_place:
            return doc
        return copy.deepcopy(doc)

    def _export(
        self,
        collection: str,
        doc: Document,
        include: Optional[Iterable[str]] = None,
    ) -> Document:
        """Copy a stored document for a caller, expanding includes."""
        paths = list(include or [])
        if not paths:
            return copy.deepcopy(doc)

        if self.settings.resolve_in_place:
            logger.debug(
                "Resolving references in stored document",
                extra={"collection": collection, "id": doc.get(ID_FIELD)},
            )
            return copy.deepcopy(self._resolver.resolve(doc, paths))

        return self._resolver.resolve(copy.deepcopy(doc), paths)
