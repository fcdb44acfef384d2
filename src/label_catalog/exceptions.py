"""Custom exceptions for the label catalog enrichment core."""

from typing import Optional


class LabelCatalogError(Exception):
    """Base exception for label catalog errors."""
    pass


class ConfigurationError(LabelCatalogError):
    """Raised when there's an error in configuration."""
    pass


class CatalogError(LabelCatalogError):
    """Raised when the upstream music catalog cannot serve a request."""
    pass


class TransportError(CatalogError):
    """Raised on network failures, unexpected HTTP status or malformed payloads."""

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class RateLimitError(TransportError):
    """Raised when the upstream catalog answers with a rate-limit response."""

    def __init__(self, retry_after: Optional[float] = None):
        self.retry_after = retry_after
        message = "Catalog rate limit exceeded."
        if retry_after:
            message = f"Catalog rate limit exceeded. Retry after {retry_after} seconds."
        super().__init__(message, status=429)


class AuthError(CatalogError):
    """Raised when an access token cannot be obtained or is rejected."""
    pass
