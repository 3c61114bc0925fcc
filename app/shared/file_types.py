"""Content-type tables and the local file-serving URL convention."""

import os

# Local download/preview links have this shape; the sanitizer matches the same prefix.
FILE_URL_PREFIX = "/api/files/"

DEFAULT_CONTENT_TYPE = "application/octet-stream"

CONTENT_TYPES_BY_EXTENSION = {
    # Office documents
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "doc": "application/msword",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "xls": "application/vnd.ms-excel",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "ppt": "application/vnd.ms-powerpoint",
    # Documents
    "pdf": "application/pdf",
    "txt": "text/plain",
    "rtf": "application/rtf",
    "odt": "application/vnd.oasis.opendocument.text",
    "ods": "application/vnd.oasis.opendocument.spreadsheet",
    # Data formats
    "json": "application/json",
    "csv": "text/csv",
    "xml": "application/xml",
    "html": "text/html",
    "htm": "text/html",
    "md": "text/markdown",
    # Images
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "svg": "image/svg+xml",
    "bmp": "image/bmp",
    "webp": "image/webp",
    # Archives
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "7z": "application/x-7z-compressed",
    "tar": "application/x-tar",
    "gz": "application/gzip",
}

EXTENSIONS_BY_CONTENT_TYPE = {
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": ".xlsx",
    "application/vnd.ms-excel": ".xls",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": ".pptx",
    "application/vnd.ms-powerpoint": ".ppt",
    "application/pdf": ".pdf",
    "text/plain": ".txt",
    "application/json": ".json",
    "text/csv": ".csv",
    "text/html": ".html",
    "text/markdown": ".md",
    "application/xml": ".xml",
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/svg+xml": ".svg",
    "application/zip": ".zip",
    "application/rtf": ".rtf",
}


def file_url(file_id: str) -> str:
    return f"{FILE_URL_PREFIX}{file_id}"


def content_type_from_filename(filename: str | None) -> str | None:
    """Guess a content type from the filename extension, or None if unknown."""
    if not filename or "." not in filename:
        return None
    extension = filename.rsplit(".", 1)[-1].lower()
    return CONTENT_TYPES_BY_EXTENSION.get(extension)


def extension_for_content_type(content_type: str | None) -> str:
    if not content_type:
        return ""
    # Drop parameters such as "; charset=utf-8"
    base_type = content_type.split(";", 1)[0].strip().lower()
    return EXTENSIONS_BY_CONTENT_TYPE.get(base_type, "")


def default_filename(file_id: str, content_type: str | None = None) -> str:
    return f"file-{file_id}{extension_for_content_type(content_type)}"


def is_allowed_upload(
    content_type: str | None,
    filename: str | None,
    allowed_types: list[str],
    allowed_extensions: list[str],
) -> bool:
    """True when the content type is allow-listed or the filename has an allow-listed extension."""
    base_type = (content_type or "").split(";", 1)[0].strip().lower()
    if base_type and base_type in allowed_types:
        return True
    extension = os.path.splitext(filename or "")[1].lower()
    return bool(extension) and extension in allowed_extensions
