"""
Lifecycle dispatch table for authorguard.

Maps the host's lifecycle stages to the policy operation that runs at
each of them. The table is static: every stage is bound to one
Operation, and every Operation to one engine method.

Usage:
    dispatcher = PolicyDispatcher(policy)
    decision = dispatcher.dispatch(LifecycleStage.BEFORE_SEARCH, request)
    decision = dispatcher.dispatch("document:afterGet", request, document)
"""

import logging
from enum import Enum
from typing import Any, Callable

from authorguard.errors import InvalidRequestError, UnknownStageError
from authorguard.policy import Decision, OwnershipPolicy
from authorguard.schema import Action, Document, LifecycleStage, Request, ResultSet

logger = logging.getLogger(__name__)


class Operation(str, Enum):
    """The policy operations a lifecycle stage can be bound to."""

    PRE_MUTATION_CHECK = "pre_mutation_check"
    QUERY_REWRITER = "rewrite_query"
    SUBSCRIPTION_REWRITER = "rewrite_subscription"
    POST_READ_CHECK = "post_read_check"
    MULTI_READ_FILTER = "filter_multi_read"


PIPES: dict[LifecycleStage, Operation] = {
    LifecycleStage.BEFORE_COUNT: Operation.QUERY_REWRITER,
    LifecycleStage.BEFORE_SEARCH: Operation.QUERY_REWRITER,
    LifecycleStage.BEFORE_DELETE_BY_QUERY: Operation.QUERY_REWRITER,
    LifecycleStage.BEFORE_CREATE_OR_REPLACE: Operation.PRE_MUTATION_CHECK,
    LifecycleStage.BEFORE_REPLACE: Operation.PRE_MUTATION_CHECK,
    LifecycleStage.BEFORE_UPDATE: Operation.PRE_MUTATION_CHECK,
    LifecycleStage.BEFORE_DELETE: Operation.PRE_MUTATION_CHECK,
    LifecycleStage.AFTER_GET: Operation.POST_READ_CHECK,
    LifecycleStage.AFTER_MGET: Operation.MULTI_READ_FILTER,
    LifecycleStage.BEFORE_SUBSCRIBE: Operation.SUBSCRIPTION_REWRITER,
}

# Stages only bound when the matching option is enabled
OPTIONAL_STAGES = frozenset({LifecycleStage.BEFORE_SUBSCRIBE})

_ACTION_STAGES: dict[tuple[Action, str], LifecycleStage] = {
    (Action.COUNT, "before"): LifecycleStage.BEFORE_COUNT,
    (Action.SEARCH, "before"): LifecycleStage.BEFORE_SEARCH,
    (Action.DELETE_BY_QUERY, "before"): LifecycleStage.BEFORE_DELETE_BY_QUERY,
    (Action.CREATE_OR_REPLACE, "before"): LifecycleStage.BEFORE_CREATE_OR_REPLACE,
    (Action.REPLACE, "before"): LifecycleStage.BEFORE_REPLACE,
    (Action.UPDATE, "before"): LifecycleStage.BEFORE_UPDATE,
    (Action.DELETE, "before"): LifecycleStage.BEFORE_DELETE,
    (Action.GET, "after"): LifecycleStage.AFTER_GET,
    (Action.MGET, "after"): LifecycleStage.AFTER_MGET,
    (Action.SUBSCRIBE, "before"): LifecycleStage.BEFORE_SUBSCRIBE,
}


def stage_for(action: Action, phase: str) -> LifecycleStage | None:
    """
    The lifecycle stage for action in phase ("before" or "after").

    Returns None when nothing runs at that point (e.g. before a get).
    """
    return _ACTION_STAGES.get((action, phase))


class PolicyDispatcher:
    """
    Routes lifecycle stages to OwnershipPolicy operations.

    Attributes:
        policy: The engine whose operations are dispatched to
        _handlers: Operation to bound handler
    """

    def __init__(self, policy: OwnershipPolicy) -> None:
        self.policy = policy
        self._handlers: dict[Operation, Callable[[Request, Any], Decision]] = {
            Operation.PRE_MUTATION_CHECK: self._pre_mutation_check,
            Operation.QUERY_REWRITER: self._rewrite_query,
            Operation.SUBSCRIPTION_REWRITER: self._rewrite_subscription,
            Operation.POST_READ_CHECK: self._post_read_check,
            Operation.MULTI_READ_FILTER: self._filter_multi_read,
        }

    def stages(self) -> list[LifecycleStage]:
        """Stages bound under the current configuration, in table order."""
        return [stage for stage in PIPES if self.has(stage)]

    def has(self, stage: LifecycleStage) -> bool:
        if stage in OPTIONAL_STAGES:
            return self.policy.config.filter_subscriptions
        return stage in PIPES

    def operation_for(self, stage: LifecycleStage | str) -> Operation:
        """
        The operation bound to stage.

        Raises:
            UnknownStageError: If the stage is unknown or disabled
        """
        resolved = self._resolve(stage)
        return PIPES[resolved]

    def dispatch(
        self,
        stage: LifecycleStage | str,
        request: Request,
        payload: Any = None,
    ) -> Decision:
        """
        Run the operation bound to stage.

        Args:
            stage: Lifecycle stage or its event name
            request: The intercepted request
            payload: The fetched Document (afterGet) or ResultSet (afterMGet)

        Raises:
            UnknownStageError: If the stage is unknown or disabled
            InvalidRequestError: If an after-stage lacks its payload
        """
        operation = self.operation_for(stage)
        decision = self._handlers[operation](request, payload)
        logger.debug(
            "%s -> %s: %s (%s)",
            stage.value if isinstance(stage, LifecycleStage) else stage,
            operation.value,
            "allow" if decision.allowed else "deny",
            decision.rule,
        )
        return decision

    # =========================================================================
    # Handlers
    # =========================================================================

    def _pre_mutation_check(self, request: Request, payload: Any) -> Decision:
        return self.policy.pre_mutation_check(request)

    def _rewrite_query(self, request: Request, payload: Any) -> Decision:
        return self.policy.rewrite_query(request)

    def _rewrite_subscription(self, request: Request, payload: Any) -> Decision:
        return self.policy.rewrite_subscription(request)

    def _post_read_check(self, request: Request, payload: Any) -> Decision:
        if not isinstance(payload, Document):
            raise InvalidRequestError(
                action=request.action.value,
                reason="afterGet requires the fetched document",
            )
        return self.policy.post_read_check(request, payload)

    def _filter_multi_read(self, request: Request, payload: Any) -> Decision:
        if not isinstance(payload, ResultSet):
            raise InvalidRequestError(
                action=request.action.value,
                reason="afterMGet requires the fetched result set",
            )
        return self.policy.filter_multi_read(request, payload)

    def _resolve(self, stage: LifecycleStage | str) -> LifecycleStage:
        try:
            resolved = LifecycleStage(stage)
        except ValueError:
            resolved = None
        if resolved is None or not self.has(resolved):
            raise UnknownStageError(
                stage=stage.value if isinstance(stage, LifecycleStage) else str(stage),
                available_stages=[s.value for s in self.stages()],
            )
        return resolved

    def __repr__(self) -> str:
        stages = ", ".join(stage.value for stage in self.stages())
        return f"<PolicyDispatcher: [{stages}]>"
