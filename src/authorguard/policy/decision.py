"""
Decision: the output of every policy operation.

A decision either allows the request, possibly carrying a rewritten
request or a filtered result, or denies it with the error the caller
must surface.
"""

from dataclasses import dataclass
from typing import Any

from authorguard.errors import AccessDeniedError
from authorguard.schema import Request


@dataclass(frozen=True)
class Decision:
    """
    Result of running one policy operation.

    Attributes:
        allowed: Whether the request may proceed
        reason: Human-readable explanation of the decision
        rule: Which rule produced this decision
        request: The request to continue with (possibly rewritten)
        result: The response to return (possibly filtered), for after-stages
        error: The denial to surface, when allowed is False
    """

    allowed: bool
    reason: str
    rule: str | None = None
    request: Request | None = None
    result: Any = None
    error: AccessDeniedError | None = None

    @classmethod
    def allow(
        cls,
        reason: str,
        rule: str | None = None,
        request: Request | None = None,
        result: Any = None,
    ) -> "Decision":
        """Create an ALLOW decision."""
        return cls(allowed=True, reason=reason, rule=rule, request=request, result=result)

    @classmethod
    def deny(cls, error: AccessDeniedError, rule: str | None = None) -> "Decision":
        """Create a DENY decision. The response, if any, is discarded."""
        return cls(allowed=False, reason=error.message, rule=rule, error=error)

    def raise_if_denied(self) -> "Decision":
        """Raise the carried error on denial, otherwise return self."""
        if not self.allowed:
            if self.error is None:
                msg = f"Denied decision without an error: {self.reason}"
                raise RuntimeError(msg)
            raise self.error
        return self
