"""
End-to-end functional tests for complete chat workflows.

Each test drives the public API through a full user journey with the
assistant service, search and blob storage replaced by doubles.
"""

import pytest
from fastapi import status
from httpx import AsyncClient

from app.exceptions.assistant import AssistantNotFoundError

from factories import assistant_message, user_message


class TestChatWorkflows:
    """End-to-end tests for chat turns on new and existing threads."""

    @pytest.mark.asyncio
    async def test_first_message_creates_thread(self, client: AsyncClient, mock_gateway):
        """A turn with no thread id mints a thread and returns the reply without sources."""
        mock_gateway.list_messages.return_value = [
            assistant_message("Paris is the capital of France."),
            user_message("What is the capital of France?"),
        ]

        response = await client.post(
            "/api/chat", json={"message": "What is the capital of France?", "webSearchEnabled": False}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["thread_id"] == "thread_new123"
        assert data["reply"] == "Paris is the capital of France."
        assert "**Sources:**" not in data["reply"]
        mock_gateway.create_thread.assert_awaited_once()

        # The new thread is listed with a title from the opening message
        threads = (await client.get("/api/threads")).json()["data"]["items"]
        assert [(t["id"], t["title"]) for t in threads] == [("thread_new123", "What is the capital of France?")]

    @pytest.mark.asyncio
    async def test_project_thread_lifecycle(self, client: AsyncClient, mock_gateway, sample_thread_messages):
        """Create a project, chat into it, read the thread, then delete the project."""
        project = (await client.post("/api/projects", json={"name": "Finance"})).json()["data"]
        mock_gateway.list_messages.return_value = sample_thread_messages

        chat = await client.post("/api/chat", json={"message": "How did revenue change?", "projectId": project["id"]})
        thread_id = chat.json()["data"]["thread_id"]

        listed = (await client.get(f"/api/projects/{project['id']}")).json()["data"]
        assert [t["id"] for t in listed["threads"]] == [thread_id]

        detail = (await client.get(f"/api/threads/{thread_id}")).json()["data"]
        assert detail["project"]["name"] == "Finance"
        assert len(detail["messages"]) == 2

        deleted = await client.delete(f"/api/projects/{project['id']}")
        assert deleted.json()["data"]["detached_threads"] == 1
        still_there = (await client.get("/api/threads")).json()["data"]["items"]
        assert still_there[0]["project_id"] is None


class TestFileWorkflows:
    @pytest.mark.asyncio
    async def test_preview_and_download_same_file(self, client: AsyncClient, mock_blob_storage, stored_file):
        """The preview flag only changes the disposition of a stored file."""
        mock_blob_storage.download.return_value = b"\x89PNG"
        url = f"/api/files/{stored_file.openai_file_id}"

        preview = await client.get(url, params={"preview": "true"})
        download = await client.get(url)

        assert preview.headers["content-disposition"].startswith("inline")
        assert preview.headers["content-type"] == "image/png"
        assert download.headers["content-disposition"].startswith("attachment")
        assert download.headers["content-type"] == "image/png"
        assert preview.content == download.content == b"\x89PNG"

    @pytest.mark.asyncio
    async def test_upload_then_serve(self, client: AsyncClient, mock_gateway, mock_blob_storage):
        """An uploaded file is later served from its blob copy."""
        mock_blob_storage.download.return_value = b"quarterly,numbers"

        upload = await client.post("/api/upload", files={"file": ("q3.csv", b"quarterly,numbers", "text/csv")})
        served = await client.get(upload.json()["data"]["url"])

        assert served.status_code == status.HTTP_200_OK
        assert served.content == b"quarterly,numbers"
        mock_gateway.get_file.assert_not_awaited()
        stats = (await client.get("/api/storage/stats")).json()["data"]
        assert stats["file_count"] == 1


class TestShareWorkflows:
    @pytest.mark.asyncio
    async def test_revoked_share_is_not_readable(self, client: AsyncClient, test_thread):
        """A share revoked right after creation can no longer be looked up."""
        created = await client.post(
            f"/api/threads/{test_thread.id}/shares", json={"permissions": "read", "expiryDays": 1}
        )
        token = created.json()["data"]["share_token"]
        assert (await client.get(f"/api/shared/thread/{token}")).status_code == status.HTTP_200_OK

        revoked = await client.delete(f"/api/threads/{test_thread.id}/shares", params={"token": token})
        assert revoked.status_code == status.HTTP_200_OK

        lookup = await client.get(f"/api/shared/thread/{token}")
        assert lookup.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_410_GONE)
        assert lookup.json()["status"] == "error"

    @pytest.mark.asyncio
    async def test_collaborator_continues_thread(
        self, client: AsyncClient, mock_gateway, collaborate_share, sample_thread_messages
    ):
        mock_gateway.list_messages.return_value = sample_thread_messages

        reply = await client.post(
            "/api/chat", json={"message": "And this quarter?", "shareToken": collaborate_share.share_token}
        )
        shared = await client.get(f"/api/shared/thread/{collaborate_share.share_token}")

        assert reply.json()["data"]["thread_id"] == collaborate_share.thread_id
        assert shared.json()["data"]["thread"]["message_count"] == 6


class TestErrorWorkflows:
    @pytest.mark.asyncio
    async def test_missing_upstream_thread(self, client: AsyncClient, mock_gateway):
        mock_gateway.post_message.side_effect = AssistantNotFoundError("No thread found with id 'thread_gone'")

        response = await client.post("/api/chat", json={"message": "hello", "threadId": "thread_gone"})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        body = response.json()
        assert body["error_code"] == "ASSISTANT_NOT_FOUND"
        assert body["request_id"]
        threads = (await client.get("/api/threads")).json()["data"]["items"]
        assert threads == []
