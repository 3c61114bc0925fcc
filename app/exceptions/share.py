# ruff: noqa: D107
"""Thread sharing exceptions."""

from typing import Any

from .base import BaseAppException


class ShareNotFoundError(BaseAppException):
    """Exception raised when a share token is unknown or revoked."""

    def __init__(
        self,
        message: str = "Share link not found",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=404,
            error_code="SHARE_NOT_FOUND",
            details=details,
        )


class ShareExpiredError(BaseAppException):
    """Exception raised when a share token is past its expiry."""

    def __init__(
        self,
        message: str = "Share link has expired",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=410,
            error_code="SHARE_EXPIRED",
            details=details,
        )


class SharePermissionError(BaseAppException):
    """Exception raised when a share does not grant the requested access."""

    def __init__(
        self,
        message: str = "Share link does not allow this action",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=403,
            error_code="SHARE_PERMISSION_DENIED",
            details=details,
        )


class InvalidShareRequestError(BaseAppException):
    """Exception raised for malformed share requests."""

    def __init__(
        self,
        message: str = "Invalid share request",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=400,
            error_code="INVALID_SHARE_REQUEST",
            details=details,
        )
