"""
In-memory reference document store.

A small document store used by the gateway, the CLI and the test suite.
It implements DocumentReader for the policy engine, and a document API
close to what a real host exposes (create, replace, update, delete,
get, mGet, search, count, deleteByQuery).

Ownership metadata is written here, never by the policy engine: the
author is stamped when a document is first created and survives every
later replace or update.
"""

import logging
import uuid
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterator

import yaml

from authorguard.errors import DocumentExistsError, DocumentNotFoundError, StoreError
from authorguard.schema import (
    Document,
    DocumentMetadata,
    MGetHit,
    ResourceLocator,
    ResultSet,
)
from authorguard.store.base import DocumentReader
from authorguard.store.matcher import document_view, match_filter, match_query

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10


def generate_id() -> str:
    """Generate a document id for creations without one."""
    return uuid.uuid4().hex


class InMemoryDocumentStore(DocumentReader):
    """
    Dict-backed document store.

    Usage:
        store = InMemoryDocumentStore()
        doc = store.create(ResourceLocator(index="i", collection="c"), {"a": 1}, author="u1")
        store.read(ResourceLocator(index="i", collection="c", document_id=doc.id))

    Attributes:
        _documents: Mapping of (index, collection, id) to stored documents
    """

    def __init__(self) -> None:
        self._documents: dict[tuple[str, str, str], Document] = {}

    # =========================================================================
    # Loading
    # =========================================================================

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> "InMemoryDocumentStore":
        """
        Build a store from fixture data.

        Expected shape:
            documents:
              - index: library
                collection: books
                id: b1
                author: u1
                source: {title: Dune}
        """
        store = cls()
        for entry in (data or {}).get("documents", []):
            try:
                locator = ResourceLocator(
                    index=entry["index"],
                    collection=entry["collection"],
                    document_id=entry.get("id"),
                )
                author = entry["author"]
            except KeyError as e:
                msg = f"Fixture document is missing required key {e}"
                raise StoreError(message=msg) from e
            store.create(locator, entry.get("source") or {}, author=author)
        return store

    @classmethod
    def from_yaml(cls, path: Path | str) -> "InMemoryDocumentStore":
        """Build a store from a YAML fixture file."""
        path = Path(path)
        with path.open() as f:
            data = yaml.safe_load(f)
        return cls.from_mapping(data)

    # =========================================================================
    # Single-document operations
    # =========================================================================

    def read(self, locator: ResourceLocator) -> Document:
        """Fetch a document, raising DocumentNotFoundError if absent."""
        document = self._documents.get(self._key(locator))
        if document is None:
            raise DocumentNotFoundError(
                index=locator.index,
                collection=locator.collection,
                document_id=locator.document_id,
            )
        return document

    get = read

    def exists(self, locator: ResourceLocator) -> bool:
        return self._key(locator) in self._documents

    def create(
        self,
        locator: ResourceLocator,
        source: dict[str, Any],
        author: str,
    ) -> Document:
        """
        Create a new document authored by author.

        Raises:
            DocumentExistsError: If the id is already taken
        """
        if locator.document_id is None:
            locator = locator.model_copy(update={"document_id": generate_id()})
        if self.exists(locator):
            raise DocumentExistsError(
                index=locator.index,
                collection=locator.collection,
                document_id=locator.document_id,
            )
        document = Document(
            id=locator.document_id,
            index=locator.index,
            collection=locator.collection,
            source=dict(source),
            meta=DocumentMetadata(author=author),
        )
        self._documents[self._key(locator)] = document
        logger.debug("Created %s authored by %s", self._path(locator), author)
        return document

    def create_or_replace(
        self,
        locator: ResourceLocator,
        source: dict[str, Any],
        author: str,
    ) -> Document:
        """Create the document, or replace its content if it exists."""
        if locator.document_id is not None and self.exists(locator):
            return self.replace(locator, source, updater=author)
        return self.create(locator, source, author=author)

    def replace(
        self,
        locator: ResourceLocator,
        source: dict[str, Any],
        updater: str,
    ) -> Document:
        """Replace the content of an existing document."""
        current = self.read(locator)
        return self._store(current, dict(source), updater)

    def update(
        self,
        locator: ResourceLocator,
        changes: dict[str, Any],
        updater: str,
    ) -> Document:
        """Apply a shallow merge of changes to an existing document."""
        current = self.read(locator)
        return self._store(current, {**current.source, **changes}, updater)

    def delete(self, locator: ResourceLocator) -> str:
        """Delete a document and return its id."""
        document = self.read(locator)
        del self._documents[self._key(locator)]
        logger.debug("Deleted %s", self._path(locator))
        return document.id

    # =========================================================================
    # Multi-document operations
    # =========================================================================

    def mget(self, index: str, collection: str, ids: list[str]) -> ResultSet:
        """Fetch several documents, keeping one hit per requested id in order."""
        hits = []
        for document_id in ids:
            document = self._documents.get((index, collection, document_id))
            if document is None:
                hits.append(
                    MGetHit(id=document_id, index=index, collection=collection, found=False)
                )
            else:
                hits.append(MGetHit.from_document(document))
        return ResultSet(hits=hits)

    def search(
        self,
        index: str,
        collection: str,
        body: dict[str, Any] | None = None,
    ) -> list[Document]:
        """Return the documents matching body["query"], honoring from/size."""
        body = body or {}
        matches = list(self._matching(index, collection, body.get("query")))
        start = int(body.get("from", 0))
        size = int(body.get("size", DEFAULT_PAGE_SIZE))
        return matches[start:start + size]

    def count(
        self,
        index: str,
        collection: str,
        body: dict[str, Any] | None = None,
    ) -> int:
        return sum(1 for _ in self._matching(index, collection, (body or {}).get("query")))

    def delete_by_query(
        self,
        index: str,
        collection: str,
        body: dict[str, Any] | None = None,
    ) -> list[str]:
        """Delete every matching document and return the deleted ids."""
        doomed = list(self._matching(index, collection, (body or {}).get("query")))
        for document in doomed:
            del self._documents[(index, collection, document.id)]
        logger.debug(
            "Deleted %d documents by query from %s/%s", len(doomed), index, collection
        )
        return [document.id for document in doomed]

    def subscribers_match(
        self,
        filters: dict[str, Any] | None,
        document: Document,
    ) -> bool:
        """Whether a realtime subscription filter would be notified of document."""
        return match_filter(filters, document_view(document))

    # =========================================================================
    # Helpers
    # =========================================================================

    def _matching(
        self,
        index: str,
        collection: str,
        query: dict[str, Any] | None,
    ) -> Iterator[Document]:
        for (doc_index, doc_collection, _), document in self._documents.items():
            if doc_index != index or doc_collection != collection:
                continue
            if match_query(query, document_view(document)):
                yield document

    def _store(self, current: Document, source: dict[str, Any], updater: str) -> Document:
        meta = current.meta.model_copy(
            update={"updated_at": datetime.now(UTC), "updater": updater}
        )
        document = current.model_copy(update={"source": source, "meta": meta})
        self._documents[(current.index, current.collection, current.id)] = document
        return document

    @staticmethod
    def _key(locator: ResourceLocator) -> tuple[str, str, str]:
        if locator.document_id is None:
            msg = f"A document id is required for {locator.index}/{locator.collection}"
            raise StoreError(message=msg, index=locator.index, collection=locator.collection)
        return (locator.index, locator.collection, locator.document_id)

    @staticmethod
    def _path(locator: ResourceLocator) -> str:
        return f"{locator.index}/{locator.collection}/{locator.document_id}"

    def __len__(self) -> int:
        return len(self._documents)

    def __repr__(self) -> str:
        return f"<InMemoryDocumentStore: {len(self)} documents>"
