"""
Document store module for authorguard.

The policy engine consumes a single capability from the store: reading one
document by locator (DocumentReader). The in-memory store is a complete
reference implementation used by the gateway, the CLI and the tests.
"""

from authorguard.store.base import DocumentReader
from authorguard.store.matcher import document_view, match_filter, match_query
from authorguard.store.memory import InMemoryDocumentStore, generate_id

__all__ = [
    "DocumentReader",
    "InMemoryDocumentStore",
    "document_view",
    "generate_id",
    "match_filter",
    "match_query",
]
