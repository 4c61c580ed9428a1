"""
Custom exception hierarchy for the resource cache.

All exceptions inherit from StitchError, which provides optional context
for structured error handling and logging. The orchestrator reports the
fetch failures below as result objects; the classes exist so callers can
turn a failed result into an exception and match on its kind.
"""

from __future__ import annotations

from typing import Any

AUTH_REQUIRED_MESSAGE = "Authentication required"
REQUEST_IN_PROGRESS_MESSAGE = "Request in progress"


class StitchError(Exception):
    """Base exception for all resource cache errors.

    Attributes:
        message: Human-readable error message.
        context: Optional structured context for logging/debugging.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx_str})"
        return self.message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, context={self.context!r})"


class ConfigurationError(StitchError):
    """Raised when configuration is invalid or missing."""

    pass


class UnknownResourceError(StitchError):
    """Raised when a resource name is not part of the closed enumeration.

    Context should include:
        - resource: The rejected name
    """

    pass


class FetchError(StitchError):
    """Base class for failures reported by a resource fetch.

    Context should include:
        - resource: The resource being fetched
    """

    pass


class AuthRequiredError(FetchError):
    """No credential could be resolved; no network I/O was attempted."""

    def __init__(
        self,
        message: str = AUTH_REQUIRED_MESSAGE,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)


class RequestInProgressError(FetchError):
    """The in-flight guard rejected a duplicate fetch.

    Not a failure of the resource itself; the cache entry is untouched.
    """

    def __init__(
        self,
        message: str = REQUEST_IN_PROGRESS_MESSAGE,
        context: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, context)


class BackendError(FetchError):
    """The Backend API reported a failure or raised.

    Context should include:
        - resource: The resource being fetched
        - status_code: HTTP status code if applicable
    """

    pass


class CredentialError(StitchError):
    """Raised when the credential storage cannot be read or written.

    Context should include:
        - path: The storage location
    """

    pass
