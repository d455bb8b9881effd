"""Error types raised by provider adapters and the provider factory."""

from enum import Enum


class ErrorKind(str, Enum):
    """Structured classification of a provider failure."""

    CONFIGURATION = "configuration"
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    CONNECTION = "connection"
    EMPTY_RESPONSE = "empty_response"
    MALFORMED_RESPONSE = "malformed_response"
    VENDOR = "vendor"


class ProviderError(Exception):
    """Failure reported by a provider adapter.

    Attributes:
        kind: Classification set by the adapter at the point of failure
        provider: Vendor label used as message prefix (e.g. "OpenAI")
    """

    def __init__(
        self, message: str, kind: ErrorKind = ErrorKind.VENDOR, provider: str = ""
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider

    @property
    def retryable(self) -> bool:
        return self.kind in (ErrorKind.RATE_LIMITED, ErrorKind.CONNECTION)


class ConfigurationError(ProviderError):
    """A required credential or setting is missing."""

    def __init__(self, message: str, provider: str = "") -> None:
        super().__init__(message, ErrorKind.CONFIGURATION, provider)


class ProviderNotImplementedError(NotImplementedError):
    """The requested provider name has no adapter."""


def kind_from_status(status_code: int | None) -> ErrorKind:
    """Map an HTTP status code to an error kind.

    Args:
        status_code: HTTP status returned by the vendor, if any

    Returns:
        ErrorKind: RATE_LIMITED for 429, UNAUTHORIZED for 401/403, VENDOR otherwise
    """
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code in (401, 403):
        return ErrorKind.UNAUTHORIZED
    return ErrorKind.VENDOR


class RecordNotFoundError(LookupError):
    """A referenced document or chunk does not exist in storage."""
