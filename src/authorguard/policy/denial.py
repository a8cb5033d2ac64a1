"""
Error-construction capability for denied requests.

Hosts that surface their own error types subclass DenialFactory and pass
it to OwnershipPolicy; the returned errors must still derive from
AccessDeniedError so Decision can carry them.
"""

from authorguard.errors import AccessDeniedError, ForbiddenError, UnauthenticatedError
from authorguard.schema import Actor, Request


class DenialFactory:
    """Builds the error returned when the ownership policy rejects a request."""

    def __init__(self, anonymous_id: str | None = None) -> None:
        # Left unset, OwnershipPolicy binds it to config.anonymous_id
        self.anonymous_id = anonymous_id

    def is_anonymous(self, actor: Actor) -> bool:
        return actor.id == self.anonymous_id

    def for_request(self, request: Request) -> AccessDeniedError:
        """Pick Unauthenticated for the anonymous sentinel, Forbidden otherwise."""
        if self.is_anonymous(request.actor):
            return self.unauthenticated(request)
        return self.forbidden(request)

    def unauthenticated(self, request: Request) -> AccessDeniedError:
        return UnauthenticatedError(**self._fields(request))

    def forbidden(self, request: Request) -> AccessDeniedError:
        return ForbiddenError(**self._fields(request))

    @staticmethod
    def _fields(request: Request) -> dict[str, str]:
        return {
            "index": request.locator.index,
            "collection": request.locator.collection,
            "controller": request.action.controller,
            "action": request.action.value,
            "actor_id": request.actor.id,
        }
