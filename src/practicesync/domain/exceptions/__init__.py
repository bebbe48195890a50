"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, we store message as an attribute so code can inspect it without parsing str(exception).
    # Always raise a specific subclass so callers can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class ValidationException(DomainException):
    """Raised when entity validation fails (e.g. planned minutes below 1)."""

    pass


class ConfigurationError(DomainException):
    """Raised when a required setting is missing, e.g. an empty data source id."""

    pass


class NoCredentialError(DomainException):
    """Raised when no API key is available for the remote workspace.

    The UI should route the user to the key setup screen. No remote call is
    attempted while this is the state.
    """

    def __init__(self, message: str = "No API key configured") -> None:
        super().__init__(message)


# =============================================================================
# REMOTE ERRORS
# Hey future me - everything the Notion client can throw after it has a key.
# Pull folds these into LoadingState.error (unless data is already shown),
# push folds them into session_error. None of them are fatal.
# =============================================================================


class RemoteError(DomainException):
    """Base class for failures talking to the remote workspace."""

    pass


class NetworkError(RemoteError):
    """Transport-level failure (DNS, connect, timeout, reset)."""

    pass


class HttpError(RemoteError):
    """Remote answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str | None = None) -> None:
        super().__init__(f"HTTP {status_code}: {message or 'Unknown error'}")
        self.status_code = status_code
        self.detail = message

    @property
    def is_rate_limited(self) -> bool:
        """True for HTTP 429."""
        return self.status_code == 429


class DecodingError(RemoteError):
    """Response body could not be decoded as JSON."""

    pass


class InvalidResponseError(RemoteError):
    """Response decoded fine but has an unexpected shape."""

    def __init__(self, message: str = "Invalid response from server") -> None:
        super().__init__(message)


# =============================================================================
# LOCAL STORAGE ERRORS
# =============================================================================


class CacheError(DomainException):
    """Local cache read/write failed. Logged, never surfaced to the UI."""

    pass


class StorageUnavailableError(DomainException):
    """The credential store could not be read or written."""

    pass


__all__ = [
    "CacheError",
    "ConfigurationError",
    "DecodingError",
    "DomainException",
    "HttpError",
    "InvalidResponseError",
    "NetworkError",
    "NoCredentialError",
    "RemoteError",
    "StorageUnavailableError",
    "ValidationException",
]
