# ruff: noqa: D107
"""File upload and serving exceptions."""

from typing import Any

from .base import BaseAppException


class FileTooLargeError(BaseAppException):
    """Exception raised when an upload exceeds the size cap."""

    def __init__(
        self,
        message: str = "File is too large",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=413,
            error_code="FILE_TOO_LARGE",
            details=details,
        )


class UnsupportedFileTypeError(BaseAppException):
    """Exception raised when an upload is outside the allow-list."""

    def __init__(
        self,
        message: str = "File type is not supported",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=message,
            status_code=415,
            error_code="UNSUPPORTED_FILE_TYPE",
            details=details,
        )


class StoredFileNotFoundError(BaseAppException):
    """Exception raised when a file id is unknown to every store."""

    def __init__(
        self,
        file_id: str,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message=f"File {file_id} not found",
            status_code=404,
            error_code="FILE_NOT_FOUND",
            details=details,
        )
