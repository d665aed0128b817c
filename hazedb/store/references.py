"""
Cross-collection references.

A reference is an ordinary string field of the form "collection:id".
Nothing happens to it on write; a read that names the field in an include
path replaces it with the referenced document.

Include paths are dotted: "author.company" expands author, then expands
company inside the fetched author document. Every segment is honored.

Invariants:
    - A dangling reference resolves to None, never an error
    - Fetched documents are not expanded beyond what the path asks for
    - A field that is not a reference (and not an already-expanded
      document) is left untouched
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, Iterable, MutableMapping, Optional

if TYPE_CHECKING:
    from .documents import DocumentStore

logger = logging.getLogger(__name__)

SEPARATOR = ":"
PATH_SEPARATOR = "."


@dataclass(frozen=True)
class Reference:
    """A parsed "collection:id" reference.

    Attributes:
        collection: Target collection name
        id: Target document id
    """

    collection: str
    id: str

    @classmethod
    def parse(cls, value: Any) -> Optional[Reference]:
        """Parse a field value as a reference.

        Args:
            value: Any field value

        Returns:
            Reference if value is a string shaped "collection:id", else None
        """
        if not isinstance(value, str) or SEPARATOR not in value:
            return None
        collection, _, doc_id = value.partition(SEPARATOR)
        if not collection or not doc_id:
            return None
        return cls(collection=collection, id=doc_id)

    def __str__(self) -> str:
        return f"{self.collection}{SEPARATOR}{self.id}"


def make_reference(collection: str, doc_id: str) -> str:
    """Build the string stored in a referring field."""
    return str(Reference(collection=collection, id=doc_id))


class ReferenceResolver:
    """Expands reference fields along include paths.

    The resolver mutates the document it is given. DocumentStore decides
    whether that is a private copy (the default) or the stored document.

    Example:
        >>> resolver = ReferenceResolver(store)
        >>> post = {"id": "p1", "author": "users:u1"}
        >>> resolver.resolve(post, ["author"])
        {'id': 'p1', 'author': {'id': 'u1', 'name': 'Ann', ...}}
    """

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    def resolve(
        self,
        document: MutableMapping[str, Any],
        paths: Iterable[str],
    ) -> MutableMapping[str, Any]:
        """Resolve every include path against a document.

        Args:
            document: Document to expand in place
            paths: Dotted include paths

        Returns:
            The same document, expanded
        """
        for path in paths:
            self._resolve_path(document, path)
        return document

    def _resolve_path(self, document: MutableMapping[str, Any], path: str) -> None:
        key, _, rest = path.partition(PATH_SEPARATOR)
        if not key or key not in document:
            return

        value = document[key]
        ref = Reference.parse(value)

        if ref is not None:
            target = self._fetch(ref)
            document[key] = target
            if target is None:
                logger.debug(
                    "Dangling reference",
                    extra={"field": key, "reference": str(ref)},
                )
                return
            value = target
        elif not isinstance(value, dict):
            return

        if rest:
            self._resolve_path(value, rest)

    def _fetch(self, ref: Reference) -> Optional[Dict[str, Any]]:
        return self._store._fetch(ref.collection, ref.id)
