"""
Pytest configuration and fixtures for authorguard tests.

This module provides shared fixtures used across unit and integration tests.
"""

from typing import Any, Callable

import pytest

from authorguard.config import GuardConfig
from authorguard.policy import OwnershipPolicy
from authorguard.schema import Action, Actor, Request, ResourceLocator
from authorguard.store import InMemoryDocumentStore

INDEX = "library"
COLLECTION = "books"


@pytest.fixture
def alice() -> Actor:
    """A regular authenticated actor."""
    return Actor(id="u1", profiles=frozenset({"default"}))


@pytest.fixture
def bob() -> Actor:
    """Another regular authenticated actor."""
    return Actor(id="u2", profiles=frozenset({"default"}))


@pytest.fixture
def admin() -> Actor:
    """An actor holding the admin profile."""
    return Actor(id="root", profiles=frozenset({"default", "admin"}))


@pytest.fixture
def anonymous() -> Actor:
    """The unauthenticated sentinel actor."""
    return Actor(id="-1")


@pytest.fixture
def store() -> InMemoryDocumentStore:
    """A store with two documents by u1 and one by u2."""
    return InMemoryDocumentStore.from_mapping({
        "documents": [
            {"index": INDEX, "collection": COLLECTION, "id": "b1", "author": "u1",
             "source": {"title": "Dune", "year": 1965}},
            {"index": INDEX, "collection": COLLECTION, "id": "b2", "author": "u2",
             "source": {"title": "Neuromancer", "year": 1984}},
            {"index": INDEX, "collection": COLLECTION, "id": "b3", "author": "u1",
             "source": {"title": "Hyperion", "year": 1989}},
        ]
    })


@pytest.fixture
def config() -> GuardConfig:
    return GuardConfig()


@pytest.fixture
def policy(store: InMemoryDocumentStore, config: GuardConfig) -> OwnershipPolicy:
    return OwnershipPolicy(store, config=config)


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Factory for requests against the library/books collection."""

    def _make(
        action: Action,
        actor: Actor,
        document_id: str | None = None,
        body: dict[str, Any] | None = None,
    ) -> Request:
        return Request(
            action=action,
            locator=ResourceLocator(index=INDEX, collection=COLLECTION, document_id=document_id),
            actor=actor,
            body=body,
        )

    return _make
