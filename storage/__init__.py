"""Document persistence for Sitescribe."""

from .documents import (
    DocumentStore,
    GeneratedDocument,
    InMemoryDocumentStore,
    SQLDocumentStore,
    StoredDocument,
)

__all__ = [
    'DocumentStore',
    'GeneratedDocument',
    'InMemoryDocumentStore',
    'SQLDocumentStore',
    'StoredDocument',
]
