"""
Schema definitions for authorguard.

This module defines the Pydantic models shared by the policy engine,
the dispatch table and the reference store:
- Actor: Who is making the request
- ResourceLocator/Request: What is being asked for
- DocumentMetadata/Document: What the store holds
- MGetHit/ResultSet: What a multi-document retrieval returns
- Action/LifecycleStage: When the engine is invoked

Design Decisions:
    - Models are immutable (frozen=True); the engine returns rewritten
      copies instead of mutating requests
    - Unknown fields are rejected so malformed fixtures fail early
"""

from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class Action(str, Enum):
    """A data-access action the engine knows how to police."""

    CREATE_OR_REPLACE = "createOrReplace"
    REPLACE = "replace"
    UPDATE = "update"
    DELETE = "delete"
    SEARCH = "search"
    COUNT = "count"
    DELETE_BY_QUERY = "deleteByQuery"
    GET = "get"
    MGET = "mGet"
    SUBSCRIBE = "subscribe"

    @property
    def controller(self) -> str:
        """The API controller that owns this action."""
        if self is Action.SUBSCRIBE:
            return "realtime"
        return "document"

    @property
    def is_mutation(self) -> bool:
        return self in MUTATION_ACTIONS

    @property
    def is_query(self) -> bool:
        return self in QUERY_ACTIONS


MUTATION_ACTIONS = frozenset({
    Action.CREATE_OR_REPLACE,
    Action.REPLACE,
    Action.UPDATE,
    Action.DELETE,
})

QUERY_ACTIONS = frozenset({
    Action.SEARCH,
    Action.COUNT,
    Action.DELETE_BY_QUERY,
})


class LifecycleStage(str, Enum):
    """
    Named points in request processing where the engine is invoked.

    Values are the host's event names, so a host can map its own events
    with LifecycleStage(event_name).
    """

    BEFORE_COUNT = "document:beforeCount"
    BEFORE_SEARCH = "document:beforeSearch"
    BEFORE_DELETE_BY_QUERY = "document:beforeDeleteByQuery"
    BEFORE_CREATE_OR_REPLACE = "document:beforeCreateOrReplace"
    BEFORE_REPLACE = "document:beforeReplace"
    BEFORE_UPDATE = "document:beforeUpdate"
    BEFORE_DELETE = "document:beforeDelete"
    AFTER_GET = "document:afterGet"
    AFTER_MGET = "document:afterMGet"
    BEFORE_SUBSCRIBE = "realtime:beforeSubscribe"


# =============================================================================
# Identity and Resource Models
# =============================================================================


class Actor(BaseModel):
    """
    The identity issuing a request.

    Attributes:
        id: Actor identifier (the anonymous sentinel for unauthenticated users)
        profiles: Privilege profiles held by the actor
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., description="Actor identifier", min_length=1)
    profiles: frozenset[str] = Field(
        default_factory=frozenset,
        description="Privilege profiles held by the actor",
    )


class ResourceLocator(BaseModel):
    """
    Identifies the target of an operation.

    Attributes:
        index: Index holding the collection
        collection: Collection holding the documents
        document_id: Target document, for single-document actions
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    index: str = Field(..., min_length=1)
    collection: str = Field(..., min_length=1)
    document_id: str | None = Field(default=None)


class Request(BaseModel):
    """
    A data-access request as seen by the policy engine.

    Attributes:
        action: The action being attempted
        locator: Target index/collection/document
        actor: The requesting actor, populated by the host
        body: Query payload for search-like actions, filter for
            subscriptions, or document content for mutations
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: Action
    locator: ResourceLocator
    actor: Actor
    body: dict[str, Any] | None = Field(default=None)

    @property
    def target(self) -> str:
        """index/collection/controller/action path used in messages."""
        return (
            f"{self.locator.index}/{self.locator.collection}/"
            f"{self.action.controller}/{self.action.value}"
        )

    def with_body(self, body: dict[str, Any] | None) -> "Request":
        """Return a copy of this request carrying a different body."""
        return self.model_copy(update={"body": body})


# =============================================================================
# Document Models
# =============================================================================


class DocumentMetadata(BaseModel):
    """
    Ownership metadata stored with every document.

    Written by the store when the document is created and read-only
    to the policy engine.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    author: str = Field(..., description="Id of the actor who created the document")
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = Field(default=None)
    updater: str | None = Field(default=None)


class Document(BaseModel):
    """A stored document with its ownership metadata."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    index: str
    collection: str
    source: dict[str, Any] = Field(default_factory=dict)
    meta: DocumentMetadata


class MGetHit(BaseModel):
    """
    One position of a multi-document retrieval.

    A hit with found=False carries only its positional identity.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str
    index: str
    collection: str
    found: bool
    source: dict[str, Any] | None = Field(default=None)
    meta: DocumentMetadata | None = Field(default=None)

    @classmethod
    def from_document(cls, document: Document) -> "MGetHit":
        """Build a found hit from a stored document."""
        return cls(
            id=document.id,
            index=document.index,
            collection=document.collection,
            found=True,
            source=document.source,
            meta=document.meta,
        )

    def as_missing(self) -> "MGetHit":
        """Return a content-free not-found placeholder at the same position."""
        return MGetHit(
            id=self.id,
            index=self.index,
            collection=self.collection,
            found=False,
        )


class ResultSet(BaseModel):
    """Ordered result of a multi-document retrieval."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    hits: list[MGetHit] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.hits)


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def request_from_mapping(data: dict[str, Any]) -> Request:
    """
    Build a Request from its flat file representation.

    Expected shape:
        action: update
        index: library
        collection: books
        id: b1
        actor: {id: u2, profiles: [editor]}
        body: {title: Dune}

    Raises:
        ValidationError: If the data doesn't match the schema
    """
    if not isinstance(data, dict):
        msg = f"A request must be a mapping, got {type(data).__name__}"
        raise ValueError(msg)
    return Request.model_validate({
        "action": data.get("action"),
        "locator": {
            "index": data.get("index"),
            "collection": data.get("collection"),
            "document_id": data.get("id"),
        },
        "actor": data.get("actor"),
        "body": data.get("body"),
    })


def load_request(path: Path | str) -> Request:
    """
    Load a request from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the YAML doesn't match the schema
    """
    path = Path(path)
    with path.open() as f:
        data = yaml.safe_load(f)

    return request_from_mapping(data)


def load_request_from_string(content: str) -> Request:
    """Load a request from a YAML string."""
    return request_from_mapping(yaml.safe_load(content))
