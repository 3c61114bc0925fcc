# ruff: noqa: D107
"""Upstream service exceptions (assistant service, web search, blob storage)."""

from typing import Any

from .base import BaseAppException


class UpstreamError(BaseAppException):
    """Base exception for failures of an external service call."""

    def __init__(
        self,
        message: str = "Upstream service error occurred",
        status_code: int = 502,
        error_code: str = "UPSTREAM_ERROR",
        details: dict[str, Any] | None = None,
        upstream_status: int | None = None,
    ):
        self.upstream_status = upstream_status
        super().__init__(
            message=message,
            status_code=status_code,
            error_code=error_code,
            details=details,
        )


class AssistantServiceError(UpstreamError):
    """Exception raised when the assistant service rejects or fails a request."""

    def __init__(
        self,
        message: str = "Assistant service error occurred",
        details: dict[str, Any] | None = None,
        upstream_status: int | None = None,
    ):
        super().__init__(
            message=message,
            error_code="ASSISTANT_SERVICE_ERROR",
            details=details,
            upstream_status=upstream_status,
        )


class AssistantNotFoundError(UpstreamError):
    """Exception raised when the assistant service reports an unknown resource."""

    def __init__(
        self,
        message: str = "Resource not found in assistant service",
        details: dict[str, Any] | None = None,
        upstream_status: int | None = 404,
    ):
        super().__init__(
            message=message,
            status_code=404,
            error_code="ASSISTANT_NOT_FOUND",
            details=details,
            upstream_status=upstream_status,
        )


class AssistantAuthenticationError(UpstreamError):
    """Exception raised when the assistant service rejects our credentials."""

    def __init__(
        self,
        message: str = "Assistant service rejected the configured credentials",
        details: dict[str, Any] | None = None,
        upstream_status: int | None = 401,
    ):
        super().__init__(
            message=message,
            error_code="ASSISTANT_AUTHENTICATION_FAILED",
            details=details,
            upstream_status=upstream_status,
        )


class AssistantRateLimitError(UpstreamError):
    """Exception raised when the assistant service quota is exceeded."""

    def __init__(
        self,
        message: str = "Assistant service rate limit exceeded",
        details: dict[str, Any] | None = None,
        upstream_status: int | None = 429,
    ):
        super().__init__(
            message=message,
            status_code=503,
            error_code="ASSISTANT_RATE_LIMITED",
            details=details,
            upstream_status=upstream_status,
        )


class AssistantTimeoutError(UpstreamError):
    """Exception raised when an assistant service request times out."""

    def __init__(
        self,
        message: str = "Assistant service request timed out",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=504,
            error_code="ASSISTANT_TIMEOUT",
            details=details,
        )


class AssistantConfigurationError(BaseAppException):
    """Exception raised when the assistant service credentials are missing."""

    def __init__(
        self,
        message: str = "Assistant service is not configured",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=500,
            error_code="ASSISTANT_NOT_CONFIGURED",
            details=details,
        )


class SearchServiceError(UpstreamError):
    """Exception raised when the web search service fails."""

    def __init__(
        self,
        message: str = "Web search failed",
        details: dict[str, Any] | None = None,
        upstream_status: int | None = None,
    ):
        super().__init__(
            message=message,
            error_code="SEARCH_SERVICE_ERROR",
            details=details,
            upstream_status=upstream_status,
        )


class BlobStorageError(UpstreamError):
    """Exception raised when a blob storage call fails."""

    def __init__(
        self,
        message: str = "Blob storage request failed",
        details: dict[str, Any] | None = None,
        upstream_status: int | None = None,
    ):
        super().__init__(
            message=message,
            error_code="BLOB_STORAGE_ERROR",
            details=details,
            upstream_status=upstream_status,
        )


def map_upstream_error(status: int, message: str, details: dict[str, Any] | None = None) -> UpstreamError:
    """Pick the assistant exception matching an upstream HTTP status."""
    if status == 404:
        return AssistantNotFoundError(message=message, details=details, upstream_status=status)
    if status in (401, 403):
        return AssistantAuthenticationError(message=message, details=details, upstream_status=status)
    if status == 429:
        return AssistantRateLimitError(message=message, details=details, upstream_status=status)
    if status in (408, 504):
        return AssistantTimeoutError(message=message, details=details)
    return AssistantServiceError(message=message, details=details, upstream_status=status)
