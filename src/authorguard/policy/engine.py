"""
Ownership Policy Engine for authorguard.

The engine enforces one invariant: a non-privileged actor may only read,
modify, delete or discover documents they authored.

Design Principles:
    - Privileged actors bypass every check, before any store round-trip
    - Stateless: every decision depends only on its inputs
    - Narrow-only rewrites: searches are ANDed with an ownership filter
    - Backend failures propagate untouched; only not-found is interpreted

Operations:
    pre_mutation_check    before createOrReplace / replace / update / delete
    rewrite_query         before search / count / deleteByQuery
    rewrite_subscription  before realtime subscription registration
    post_read_check       after a single-document get
    filter_multi_read     after a multi-document get

Security Note:
    This module is security-critical. A not-found on the pre-mutation read
    is an ALLOW, so that createOrReplace can create new documents.
"""

import logging

from authorguard.config import GuardConfig
from authorguard.errors import DocumentNotFoundError, InvalidRequestError
from authorguard.policy.decision import Decision
from authorguard.policy.denial import DenialFactory
from authorguard.policy.query import restrict_search_body, restrict_subscription_filter
from authorguard.schema import Actor, Document, DocumentMetadata, Request, ResultSet
from authorguard.store.base import DocumentReader

logger = logging.getLogger(__name__)


class OwnershipPolicy:
    """
    Decides whether a request touches only documents its actor authored.

    Usage:
        policy = OwnershipPolicy(reader)
        decision = policy.pre_mutation_check(request)
        decision.raise_if_denied()

    Attributes:
        reader: Store-reader capability used by pre_mutation_check
        config: Engine options
        denials: Error-construction capability used on denial
    """

    def __init__(
        self,
        reader: DocumentReader,
        config: GuardConfig | None = None,
        denials: DenialFactory | None = None,
    ) -> None:
        self.reader = reader
        self.config = config or GuardConfig()
        self.denials = denials or DenialFactory()
        if self.denials.anonymous_id is None:
            self.denials.anonymous_id = self.config.anonymous_id

    def is_privileged(self, actor: Actor) -> bool:
        """Whether actor holds the profile exempting it from ownership checks."""
        return self.config.admin_profile in actor.profiles

    # =========================================================================
    # Before-stages
    # =========================================================================

    def pre_mutation_check(self, request: Request) -> Decision:
        """
        Allow a mutation only if the target is absent or authored by the actor.

        Performs exactly one store read for non-privileged actors.

        Raises:
            InvalidRequestError: If the request has no document id
            Exception: Any store failure other than not-found, unchanged
        """
        if self.is_privileged(request.actor):
            return self._privileged(request)

        if request.locator.document_id is None:
            raise InvalidRequestError(
                action=request.action.value,
                reason="a document id is required to check ownership",
            )

        try:
            document = self.reader.read(request.locator)
        except DocumentNotFoundError:
            logger.debug(
                "%s by %s: target does not exist, allowing",
                request.target,
                request.actor.id,
            )
            return Decision.allow(
                "Document does not exist yet",
                rule="not_found",
                request=request,
            )

        if not self._owns(request.actor, document.meta):
            return self._deny(request, rule="author_mismatch")

        logger.debug("%s by %s: actor is the author", request.target, request.actor.id)
        return Decision.allow("Actor is the document author", rule="author", request=request)

    def rewrite_query(self, request: Request) -> Decision:
        """
        Narrow a search-like request to documents authored by the actor.

        Never denies. The inbound query, if any, is ANDed with the
        ownership filter.
        """
        if self.is_privileged(request.actor):
            return self._privileged(request)

        body = restrict_search_body(
            request.body,
            actor_id=request.actor.id,
            author_field=self.config.author_field,
        )
        logger.debug("%s by %s: query narrowed to author", request.target, request.actor.id)
        return Decision.allow(
            "Query restricted to documents authored by actor",
            rule="ownership_filter",
            request=request.with_body(body),
        )

    def rewrite_subscription(self, request: Request) -> Decision:
        """
        Narrow a realtime subscription filter to documents authored by the actor.

        Same contract as rewrite_query, using the subscription filter DSL.
        """
        if self.is_privileged(request.actor):
            return self._privileged(request)

        filters = restrict_subscription_filter(
            request.body,
            actor_id=request.actor.id,
            author_field=self.config.author_field,
        )
        logger.debug(
            "%s by %s: subscription narrowed to author", request.target, request.actor.id
        )
        return Decision.allow(
            "Subscription restricted to documents authored by actor",
            rule="ownership_filter",
            request=request.with_body(filters),
        )

    # =========================================================================
    # After-stages
    # =========================================================================

    def post_read_check(self, request: Request, document: Document) -> Decision:
        """Allow a fetched document through only if the actor authored it."""
        if self.is_privileged(request.actor):
            return self._privileged(request, result=document)

        if not self._owns(request.actor, document.meta):
            return self._deny(request, rule="author_mismatch")

        return Decision.allow(
            "Actor is the document author",
            rule="author",
            request=request,
            result=document,
        )

    def filter_multi_read(self, request: Request, results: ResultSet) -> Decision:
        """
        Redact every hit the actor did not author.

        Redacted hits become not-found placeholders at the same position,
        so missing and foreign documents are indistinguishable.
        """
        if self.is_privileged(request.actor):
            return self._privileged(request, result=results)

        hits = [
            hit if hit.found and self._owns(request.actor, hit.meta) else hit.as_missing()
            for hit in results.hits
        ]
        redacted = sum(1 for before, after in zip(results.hits, hits) if before is not after)
        logger.debug(
            "%s by %s: %d of %d hits redacted",
            request.target,
            request.actor.id,
            redacted,
            len(hits),
        )
        return Decision.allow(
            f"{len(hits) - redacted} of {len(hits)} documents authored by actor",
            rule="ownership_filter",
            request=request,
            result=ResultSet(hits=hits),
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _owns(actor: Actor, meta: DocumentMetadata | None) -> bool:
        return meta is not None and meta.author == actor.id

    def _privileged(self, request: Request, result: object = None) -> Decision:
        logger.debug("%s by %s: privileged, skipping checks", request.target, request.actor.id)
        return Decision.allow(
            f"Actor holds the {self.config.admin_profile} profile",
            rule="privileged",
            request=request,
            result=result,
        )

    def _deny(self, request: Request, rule: str) -> Decision:
        error = self.denials.for_request(request)
        logger.debug("%s by %s: denied (%s)", request.target, request.actor.id, rule)
        return Decision.deny(error, rule=rule)
