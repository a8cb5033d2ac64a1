"""
Gateway for authorguard.

The Gateway plays the host's part around the reference store: it runs
each request through the before-stage bound in the dispatch table,
executes it against the store, then runs the after-stage on the result.

Execution Flow:
    1. Look up the before-stage for the action; dispatch it
       a. If denied: raise the denial
       b. If allowed: continue with the (possibly rewritten) request
    2. Execute the action against the store
    3. Look up the after-stage for the action; dispatch it on the result
       a. If denied: raise the denial, discarding the result
       b. If allowed: return the (possibly filtered) result
"""

import logging
from typing import Any

from authorguard.config import GuardConfig
from authorguard.dispatch import PolicyDispatcher, stage_for
from authorguard.errors import InvalidRequestError
from authorguard.policy import DenialFactory, OwnershipPolicy
from authorguard.schema import Action, Request
from authorguard.store.memory import InMemoryDocumentStore

logger = logging.getLogger(__name__)


class Gateway:
    """
    Runs document requests against a store under the ownership policy.

    Usage:
        gateway = Gateway(InMemoryDocumentStore())
        hits = gateway.execute(search_request)

    Attributes:
        store: The document store requests are executed against
        policy: The ownership policy, reading from the same store
        dispatcher: Lifecycle dispatch table bound to the policy
    """

    def __init__(
        self,
        store: InMemoryDocumentStore,
        config: GuardConfig | None = None,
        denials: DenialFactory | None = None,
    ) -> None:
        self.store = store
        self.policy = OwnershipPolicy(store, config=config, denials=denials)
        self.dispatcher = PolicyDispatcher(self.policy)

    @property
    def config(self) -> GuardConfig:
        return self.policy.config

    def execute(self, request: Request) -> Any:
        """
        Execute request with the policy applied before and after.

        Returns:
            The store result, filtered by the after-stage where one applies

        Raises:
            AccessDeniedError: If the policy rejects the request
            StoreError: If the store rejects the (allowed) request
        """
        before = stage_for(request.action, "before")
        if before is not None and self.dispatcher.has(before):
            decision = self.dispatcher.dispatch(before, request).raise_if_denied()
            request = decision.request or request

        result = self._perform(request)

        after = stage_for(request.action, "after")
        if after is not None and self.dispatcher.has(after):
            decision = self.dispatcher.dispatch(after, request, result).raise_if_denied()
            result = decision.result

        return result

    def _perform(self, request: Request) -> Any:
        """Execute an already-authorized request against the store."""
        logger.debug("Executing %s for %s", request.target, request.actor.id)

        if request.action.is_mutation:
            return self._mutate(request)
        if request.action.is_query:
            return self._query(request)

        locator = request.locator
        action = request.action
        if action == Action.GET:
            return self.store.get(locator)
        elif action == Action.MGET:
            ids = (request.body or {}).get("ids")
            if not isinstance(ids, list):
                raise InvalidRequestError(action=action.value, reason="body.ids must be a list")
            return self.store.mget(locator.index, locator.collection, ids)
        elif action == Action.SUBSCRIBE:
            # Registration belongs to the host; hand back the effective filter
            return request.body
        else:
            raise InvalidRequestError(action=action.value, reason="unsupported action")

    def _mutate(self, request: Request) -> Any:
        locator = request.locator
        actor_id = request.actor.id
        body = request.body or {}

        if request.action == Action.CREATE_OR_REPLACE:
            return self.store.create_or_replace(locator, body, author=actor_id)
        elif request.action == Action.REPLACE:
            return self.store.replace(locator, body, updater=actor_id)
        elif request.action == Action.UPDATE:
            return self.store.update(locator, body, updater=actor_id)
        return self.store.delete(locator)

    def _query(self, request: Request) -> Any:
        index, collection = request.locator.index, request.locator.collection

        if request.action == Action.SEARCH:
            return self.store.search(index, collection, request.body)
        elif request.action == Action.COUNT:
            return self.store.count(index, collection, request.body)
        return self.store.delete_by_query(index, collection, request.body)
