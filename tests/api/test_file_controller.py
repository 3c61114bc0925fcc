"""
API tests for File controller.

Covers uploads (validation, blob mirroring) and serving files as
attachments or inline previews.
"""

from unittest.mock import patch

import pytest
from fastapi import status
from httpx import AsyncClient

from app.core.config import settings
from app.exceptions.assistant import AssistantNotFoundError


class TestUpload:
    """Test cases for the upload endpoint."""

    @pytest.mark.asyncio
    async def test_upload_file(self, client: AsyncClient, mock_gateway, mock_blob_storage, test_thread):
        response = await client.post(
            "/api/upload",
            files={"file": ("notes.txt", b"meeting notes", "text/plain")},
            data={"thread_id": test_thread.id},
        )

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()["data"]
        assert data["file_id"] == "file-abc123XYZ"
        assert data["url"] == "/api/files/file-abc123XYZ"
        assert data["size"] == len(b"meeting notes")
        assert data["blob_url"] == "https://blob.example.com/uploads/file.txt"
        assert data["thread_id"] == test_thread.id
        mock_gateway.upload_file.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_upload_markdown_by_extension(self, client: AsyncClient):
        """Markdown is accepted even when reported as a generic type."""
        response = await client.post(
            "/api/upload", files={"file": ("README.md", b"# Title", "application/octet-stream")}
        )

        assert response.status_code == status.HTTP_201_CREATED

    @pytest.mark.asyncio
    async def test_upload_unsupported_type(self, client: AsyncClient, mock_gateway):
        response = await client.post(
            "/api/upload", files={"file": ("tool.exe", b"MZ", "application/x-msdownload")}
        )

        assert response.status_code == status.HTTP_415_UNSUPPORTED_MEDIA_TYPE
        mock_gateway.upload_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upload_too_large(self, client: AsyncClient, mock_gateway):
        with patch.object(settings, "max_upload_size", 8):
            response = await client.post(
                "/api/upload", files={"file": ("notes.txt", b"more than eight bytes", "text/plain")}
            )

        assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        assert response.json()["error_code"] == "FILE_TOO_LARGE"
        mock_gateway.upload_file.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_upload_requires_file(self, client: AsyncClient):
        response = await client.post("/api/upload", data={"purpose": "assistants"})

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestServeFile:
    """Test cases for the file serving endpoint."""

    @pytest.mark.asyncio
    async def test_download_from_blob(self, client: AsyncClient, mock_blob_storage, stored_file):
        mock_blob_storage.download.return_value = b"\x89PNG"

        response = await client.get(f"/api/files/{stored_file.openai_file_id}")

        assert response.status_code == status.HTTP_200_OK
        assert response.content == b"\x89PNG"
        assert response.headers["content-type"] == "image/png"
        assert response.headers["content-disposition"] == "attachment; filename*=UTF-8''chart.png"
        assert response.headers["x-content-type-options"] == "nosniff"
        assert response.headers["cache-control"] == "public, max-age=31536000"

    @pytest.mark.asyncio
    async def test_preview_inline(self, client: AsyncClient, stored_file):
        response = await client.get(f"/api/files/{stored_file.openai_file_id}", params={"preview": "true"})

        assert response.headers["content-disposition"].startswith("inline;")
        assert "x-content-type-options" not in response.headers

    @pytest.mark.asyncio
    async def test_download_from_assistant_service(self, client: AsyncClient, mock_gateway):
        """Files with no blob copy are fetched from the assistant service."""
        mock_gateway.get_file.return_value = ({"filename": "Q3 report.pdf"}, b"%PDF-1.4")

        response = await client.get("/api/files/file-gen123")

        assert response.status_code == status.HTTP_200_OK
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["content-disposition"] == "attachment; filename*=UTF-8''Q3%20report.pdf"

    @pytest.mark.asyncio
    async def test_file_not_found(self, client: AsyncClient, mock_gateway):
        mock_gateway.get_file.side_effect = AssistantNotFoundError("No such file")

        response = await client.get("/api/files/file-missing")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["message"] == "File file-missing not found"
