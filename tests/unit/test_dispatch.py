"""
Unit tests for the lifecycle dispatch table.

Tests cover:
- The static stage -> operation mapping
- Optional subscription stage
- Dispatching by enum member and by event name
- Missing payloads and unknown stages
"""

from typing import Callable

import pytest

from authorguard.config import GuardConfig
from authorguard.dispatch import PIPES, Operation, PolicyDispatcher, stage_for
from authorguard.errors import ForbiddenError, InvalidRequestError, UnknownStageError
from authorguard.policy import OwnershipPolicy
from authorguard.schema import (
    MUTATION_ACTIONS,
    QUERY_ACTIONS,
    Action,
    Actor,
    LifecycleStage,
    Request,
)
from authorguard.store import InMemoryDocumentStore


@pytest.fixture
def dispatcher(policy: OwnershipPolicy) -> PolicyDispatcher:
    return PolicyDispatcher(policy)


class TestDispatchTable:
    """Tests for the stage -> operation mapping."""

    @pytest.mark.parametrize(
        ("stage", "operation"),
        [
            (LifecycleStage.BEFORE_COUNT, Operation.QUERY_REWRITER),
            (LifecycleStage.BEFORE_SEARCH, Operation.QUERY_REWRITER),
            (LifecycleStage.BEFORE_DELETE_BY_QUERY, Operation.QUERY_REWRITER),
            (LifecycleStage.BEFORE_CREATE_OR_REPLACE, Operation.PRE_MUTATION_CHECK),
            (LifecycleStage.BEFORE_REPLACE, Operation.PRE_MUTATION_CHECK),
            (LifecycleStage.BEFORE_UPDATE, Operation.PRE_MUTATION_CHECK),
            (LifecycleStage.BEFORE_DELETE, Operation.PRE_MUTATION_CHECK),
            (LifecycleStage.AFTER_GET, Operation.POST_READ_CHECK),
            (LifecycleStage.AFTER_MGET, Operation.MULTI_READ_FILTER),
        ],
    )
    def test_mapping(
        self, dispatcher: PolicyDispatcher, stage: LifecycleStage, operation: Operation
    ) -> None:
        assert PIPES[stage] == operation
        assert dispatcher.operation_for(stage) == operation

    def test_every_stage_bound(self) -> None:
        assert set(PIPES) == set(LifecycleStage)

    def test_subscription_disabled_by_default(self, dispatcher: PolicyDispatcher) -> None:
        assert LifecycleStage.BEFORE_SUBSCRIBE not in dispatcher.stages()
        assert len(dispatcher.stages()) == 9
        with pytest.raises(UnknownStageError):
            dispatcher.operation_for(LifecycleStage.BEFORE_SUBSCRIBE)

    def test_subscription_enabled(self, store: InMemoryDocumentStore) -> None:
        policy = OwnershipPolicy(store, config=GuardConfig(filter_subscriptions=True))
        dispatcher = PolicyDispatcher(policy)
        assert dispatcher.has(LifecycleStage.BEFORE_SUBSCRIBE)
        assert dispatcher.operation_for("realtime:beforeSubscribe") == (
            Operation.SUBSCRIPTION_REWRITER
        )

    def test_stage_for(self) -> None:
        assert stage_for(Action.SEARCH, "before") == LifecycleStage.BEFORE_SEARCH
        assert stage_for(Action.MGET, "after") == LifecycleStage.AFTER_MGET
        assert stage_for(Action.GET, "before") is None
        assert stage_for(Action.DELETE, "after") is None

    def test_categories_match_bound_operations(self) -> None:
        for action in MUTATION_ACTIONS:
            assert PIPES[stage_for(action, "before")] == Operation.PRE_MUTATION_CHECK
        for action in QUERY_ACTIONS:
            assert PIPES[stage_for(action, "before")] == Operation.QUERY_REWRITER


class TestDispatch:
    """Tests for routing requests through the table."""

    def test_dispatch_by_event_name(
        self,
        dispatcher: PolicyDispatcher,
        alice: Actor,
        make_request: Callable[..., Request],
    ) -> None:
        decision = dispatcher.dispatch("document:beforeSearch", make_request(Action.SEARCH, alice))
        assert decision.allowed is True
        assert "bool" in decision.request.body["query"]

    def test_dispatch_mutation(
        self,
        dispatcher: PolicyDispatcher,
        bob: Actor,
        make_request: Callable[..., Request],
    ) -> None:
        decision = dispatcher.dispatch(
            LifecycleStage.BEFORE_UPDATE,
            make_request(Action.UPDATE, bob, document_id="b1"),
        )
        assert isinstance(decision.error, ForbiddenError)

    def test_dispatch_after_get(
        self,
        dispatcher: PolicyDispatcher,
        store: InMemoryDocumentStore,
        alice: Actor,
        make_request: Callable[..., Request],
    ) -> None:
        request = make_request(Action.GET, alice, document_id="b1")
        decision = dispatcher.dispatch(LifecycleStage.AFTER_GET, request, store.get(request.locator))
        assert decision.allowed is True

    def test_dispatch_after_mget(
        self,
        dispatcher: PolicyDispatcher,
        store: InMemoryDocumentStore,
        alice: Actor,
        make_request: Callable[..., Request],
    ) -> None:
        results = store.mget("library", "books", ["b1", "b2"])
        decision = dispatcher.dispatch(
            LifecycleStage.AFTER_MGET, make_request(Action.MGET, alice), results
        )
        assert [hit.found for hit in decision.result.hits] == [True, False]

    @pytest.mark.parametrize("stage", [LifecycleStage.AFTER_GET, LifecycleStage.AFTER_MGET])
    def test_after_stage_requires_payload(
        self,
        dispatcher: PolicyDispatcher,
        alice: Actor,
        make_request: Callable[..., Request],
        stage: LifecycleStage,
    ) -> None:
        with pytest.raises(InvalidRequestError):
            dispatcher.dispatch(stage, make_request(Action.GET, alice, document_id="b1"))

    def test_unknown_stage(
        self,
        dispatcher: PolicyDispatcher,
        alice: Actor,
        make_request: Callable[..., Request],
    ) -> None:
        with pytest.raises(UnknownStageError) as exc_info:
            dispatcher.dispatch("document:beforeGet", make_request(Action.GET, alice))
        assert exc_info.value.stage == "document:beforeGet"
        assert "document:afterGet" in exc_info.value.available_stages

    def test_repr(self, dispatcher: PolicyDispatcher) -> None:
        assert "document:beforeSearch" in repr(dispatcher)
