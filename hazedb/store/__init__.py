"""
Document storage for HazeDB.

DocumentStore holds the collection registry and performs all document
mutations; ReferenceResolver expands "collection:id" references on read.
"""

from .documents import ID_FIELD, VERSION_FIELD, Collection, Document, DocumentStore
from .references import Reference, ReferenceResolver, make_reference

__all__ = [
    "DocumentStore",
    "Document",
    "Collection",
    "ID_FIELD",
    "VERSION_FIELD",
    "Reference",
    "ReferenceResolver",
    "make_reference",
]
