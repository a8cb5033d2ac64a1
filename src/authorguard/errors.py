"""
Exception hierarchy for authorguard.

All authorguard exceptions inherit from AuthorGuardError, allowing callers
to catch every authorguard-specific exception with a single except clause.

Exception Categories:
    - AccessDeniedError: Request rejected by the ownership policy
      (ForbiddenError, UnauthenticatedError)
    - InvalidRequestError / UnknownStageError: Misuse of the engine
    - StoreError: Document store failures (DocumentNotFoundError, ...)
    - ConfigError: Configuration could not be loaded

Design Principles:
    - All errors have error codes for programmatic handling
    - All errors include context (index, collection, action where applicable)
    - Store errors other than not-found are never wrapped by the engine
"""

from dataclasses import dataclass, field
from typing import Any


# =============================================================================
# Error Codes
# =============================================================================

# Access errors: 1xxx
ERROR_ACCESS_DENIED = 1001
ERROR_FORBIDDEN = 1002
ERROR_UNAUTHENTICATED = 1003

# Request errors: 2xxx
ERROR_INVALID_REQUEST = 2001
ERROR_UNKNOWN_STAGE = 2002

# Store errors: 3xxx
ERROR_STORE = 3001
ERROR_DOCUMENT_NOT_FOUND = 3002
ERROR_DOCUMENT_EXISTS = 3003

# Configuration errors: 4xxx
ERROR_CONFIG = 4001


# =============================================================================
# Base Exception
# =============================================================================


@dataclass
class AuthorGuardError(Exception):
    """
    Base exception for all authorguard errors.

    Attributes:
        message: Human-readable error description
        code: Numeric error code for programmatic handling
        suggestion: Optional hint for how to resolve the error
        context: Optional dict with additional debugging info
    """

    message: str = ""
    code: int = 0
    suggestion: str | None = None
    context: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        """Format error for display."""
        parts = [f"[E{self.code}] {self.message}"]
        if self.suggestion:
            parts.append(f"\nSuggestion: {self.suggestion}")
        return "".join(parts)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"code={self.code}, "
            f"context={self.context!r})"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "code": self.code,
            "suggestion": self.suggestion,
            "context": self.context,
        }


# =============================================================================
# Access Errors
# =============================================================================


@dataclass
class AccessDeniedError(AuthorGuardError):
    """
    Raised when the ownership policy rejects a request outright.

    Attributes:
        index: Index of the targeted resource
        collection: Collection of the targeted resource
        controller: Controller of the attempted action (e.g. "document")
        action: The attempted action (e.g. "update")
        actor_id: Id of the requesting actor
    """

    index: str = ""
    collection: str = ""
    controller: str = ""
    action: str = ""
    actor_id: str = ""

    @property
    def target(self) -> str:
        """The index/collection/controller/action path of the request."""
        return f"{self.index}/{self.collection}/{self.controller}/{self.action}"

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Access denied [{self.target}]"
        if self.code == 0:
            self.code = ERROR_ACCESS_DENIED
        self.context.update({
            "index": self.index,
            "collection": self.collection,
            "controller": self.controller,
            "action": self.action,
            "actor_id": self.actor_id,
        })


@dataclass
class ForbiddenError(AccessDeniedError):
    """Raised when an authenticated actor is not the author of the document."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Forbidden action [{self.target}] for user {self.actor_id}"
        if self.code == 0:
            self.code = ERROR_FORBIDDEN
        super().__post_init__()


@dataclass
class UnauthenticatedError(AccessDeniedError):
    """Raised instead of ForbiddenError when the actor is anonymous."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Unauthorized action [{self.target}] for anonymous user"
        if self.code == 0:
            self.code = ERROR_UNAUTHENTICATED
        if not self.suggestion:
            self.suggestion = "Authenticate before accessing this collection"
        super().__post_init__()


# =============================================================================
# Request Errors
# =============================================================================


@dataclass
class InvalidRequestError(AuthorGuardError):
    """Raised when a request lacks data an operation needs."""

    action: str = ""
    reason: str = ""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Invalid {self.action} request: {self.reason}"
        if self.code == 0:
            self.code = ERROR_INVALID_REQUEST
        self.context.update({"action": self.action, "reason": self.reason})


@dataclass
class UnknownStageError(AuthorGuardError):
    """Raised when a lifecycle stage has no entry in the dispatch table."""

    stage: str = ""
    available_stages: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"No policy bound to lifecycle stage: {self.stage}"
        if self.code == 0:
            self.code = ERROR_UNKNOWN_STAGE
        if not self.suggestion and self.available_stages:
            self.suggestion = f"Bound stages: {', '.join(self.available_stages)}"
        self.context.update({
            "stage": self.stage,
            "available_stages": self.available_stages,
        })


# =============================================================================
# Store Errors
# =============================================================================


@dataclass
class StoreError(AuthorGuardError):
    """
    Base class for document store errors.

    Attributes:
        index: Index of the resource involved
        collection: Collection of the resource involved
        document_id: Id of the document involved, if any
    """

    index: str = ""
    collection: str = ""
    document_id: str | None = None

    def __post_init__(self) -> None:
        if self.code == 0:
            self.code = ERROR_STORE
        self.context.update({
            "index": self.index,
            "collection": self.collection,
            "document_id": self.document_id,
        })


@dataclass
class DocumentNotFoundError(StoreError):
    """Raised when a document does not exist in the store."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                f"Document not found: {self.index}/{self.collection}/{self.document_id}"
            )
        if self.code == 0:
            self.code = ERROR_DOCUMENT_NOT_FOUND
        super().__post_init__()


@dataclass
class DocumentExistsError(StoreError):
    """Raised when creating a document whose id is already taken."""

    def __post_init__(self) -> None:
        if not self.message:
            self.message = (
                f"Document already exists: {self.index}/{self.collection}/{self.document_id}"
            )
        if self.code == 0:
            self.code = ERROR_DOCUMENT_EXISTS
        if not self.suggestion:
            self.suggestion = "Use create_or_replace to overwrite an existing document"
        super().__post_init__()


# =============================================================================
# Configuration Errors
# =============================================================================


@dataclass
class ConfigError(AuthorGuardError):
    """Raised when configuration cannot be read or validated."""

    path: str | None = None

    def __post_init__(self) -> None:
        if not self.message:
            self.message = f"Invalid configuration: {self.path}"
        if self.code == 0:
            self.code = ERROR_CONFIG
        self.context["path"] = self.path
