"""Client for the hosted assistant service (OpenAI Assistants API, v2).

The gateway owns no connection of its own; it borrows the application-scoped
``httpx.AsyncClient`` so connections are pooled across requests and closed on
shutdown.
"""

import logging
import os
from datetime import UTC, datetime
from typing import Any

import httpx

from app.core.config import Settings
from app.exceptions.assistant import (
    AssistantConfigurationError,
    AssistantServiceError,
    AssistantTimeoutError,
    UpstreamError,
    map_upstream_error,
)
from app.shared.file_types import file_url

logger = logging.getLogger(__name__)

CODE_INTERPRETER = "code_interpreter"
FILE_SEARCH = "file_search"
ASSISTANT_TOOLS = frozenset({CODE_INTERPRETER, FILE_SEARCH})

NO_RESPONSE_TEXT = "No response received."
IMAGE_FILE_PLACEHOLDER = "[Image file generated]"
IMAGE_URL_PLACEHOLDER = "[Image URL generated]"


class AssistantGateway:
    """Thin wrapper over the assistant service REST endpoints.

    Every non-2xx response, timeout or transport failure is raised as an
    ``UpstreamError`` subclass; nothing is retried here.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None,
        assistant_id: str | None,
        organization: str | None = None,
        base_url: str = "https://api.openai.com/v1",
    ):
        self.client = client
        self.api_key = api_key
        self.assistant_id = assistant_id
        self.organization = organization
        self.base_url = base_url.rstrip("/")

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "AssistantGateway":
        return cls(
            client=client,
            api_key=settings.openai_api_key,
            assistant_id=settings.openai_assistant_id,
            organization=settings.openai_organization,
            base_url=settings.openai_base_url,
        )

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key and self.assistant_id)

    def ensure_configured(self, require_assistant: bool = True) -> None:
        """Raise before any upstream call when credentials are missing."""
        if not self.api_key:
            raise AssistantConfigurationError("Missing assistant service API key")
        if require_assistant and not self.assistant_id:
            raise AssistantConfigurationError("Missing assistant id")

    def _headers(self) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "OpenAI-Beta": "assistants=v2",
        }
        if self.organization:
            headers["OpenAI-Organization"] = self.organization
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        try:
            response = await self.client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            logger.error(f"Assistant service timeout on {method} {path}")
            raise AssistantTimeoutError(details={"path": path}) from e
        except httpx.HTTPError as e:
            logger.error(f"Assistant service unreachable on {method} {path}: {e}")
            raise AssistantServiceError(
                message=f"Assistant service request failed: {e}", details={"path": path}
            ) from e

        if response.is_error:
            message = _error_message(response)
            logger.error(f"Assistant service returned {response.status_code} on {method} {path}: {message}")
            raise map_upstream_error(response.status_code, message, details={"path": path})
        return response

    async def _json(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        response = await self._request(method, path, **kwargs)
        try:
            data = response.json()
        except ValueError as e:
            raise AssistantServiceError(
                message="Malformed response from assistant service", details={"path": path}
            ) from e
        if not isinstance(data, dict):
            raise AssistantServiceError(
                message="Malformed response from assistant service", details={"path": path}
            )
        return data

    # ===== Threads and messages =====

    async def create_thread(self) -> str:
        data = await self._json("POST", "/threads", json={})
        thread_id = _require_id(data, "/threads")
        logger.info(f"Thread created: {thread_id}")
        return thread_id

    async def retrieve_thread(self, thread_id: str) -> dict[str, Any]:
        return await self._json("GET", f"/threads/{thread_id}")

    async def post_message(
        self,
        thread_id: str,
        content: str,
        attachments: list[str] | None = None,
    ) -> dict[str, Any]:
        """Add a user message; each attachment is enabled for document search."""
        payload: dict[str, Any] = {"role": "user", "content": content}
        if attachments:
            payload["attachments"] = [
                {"file_id": file_id, "tools": [{"type": FILE_SEARCH}]} for file_id in attachments
            ]
        return await self._json("POST", f"/threads/{thread_id}/messages", json=payload)

    async def list_messages(self, thread_id: str, limit: int = 100) -> list[dict[str, Any]]:
        """Messages newest first, as the service returns them."""
        data = await self._json(
            "GET", f"/threads/{thread_id}/messages", params={"limit": limit, "order": "desc"}
        )
        return data.get("data") or []

    # ===== Runs =====

    async def start_run(
        self,
        thread_id: str,
        tools: list[str],
        additional_instructions: str | None = None,
        response_format: dict[str, Any] | None = None,
    ) -> str:
        unknown = set(tools) - ASSISTANT_TOOLS
        if unknown:
            raise ValueError(f"Unsupported assistant tools: {sorted(unknown)}")

        payload: dict[str, Any] = {
            "assistant_id": self.assistant_id,
            "tools": [{"type": tool} for tool in tools],
        }
        if additional_instructions:
            payload["additional_instructions"] = additional_instructions
        if response_format:
            payload["response_format"] = response_format

        path = f"/threads/{thread_id}/runs"
        run_id = _require_id(await self._json("POST", path, json=payload), path)
        logger.info(f"Run created: {run_id} on thread {thread_id} with tools {tools}")
        return run_id

    async def poll_run(self, thread_id: str, run_id: str) -> str:
        data = await self._json("GET", f"/threads/{thread_id}/runs/{run_id}")
        return data.get("status", "")

    # ===== Files =====

    async def get_file_metadata(self, file_id: str) -> dict[str, Any]:
        return await self._json("GET", f"/files/{file_id}")

    async def download_file_content(self, file_id: str) -> tuple[bytes, str | None]:
        response = await self._request("GET", f"/files/{file_id}/content")
        return response.content, response.headers.get("content-type")

    async def get_file(self, file_id: str) -> tuple[dict[str, Any], bytes]:
        """Metadata and content; missing metadata degrades to an empty dict."""
        try:
            metadata = await self.get_file_metadata(file_id)
        except UpstreamError as e:
            logger.warning(f"Could not fetch metadata for file {file_id}: {e.message}")
            metadata = {}
        content, _content_type = await self.download_file_content(file_id)
        return metadata, content

    async def upload_file(
        self,
        filename: str,
        content: bytes,
        content_type: str | None,
        purpose: str = "assistants",
    ) -> dict[str, Any]:
        data = await self._json(
            "POST",
            "/files",
            data={"purpose": purpose},
            files={"file": (filename, content, content_type or "application/octet-stream")},
        )
        logger.info(f"File uploaded: {_require_id(data, '/files')} ({filename}, {len(content)} bytes)")
        return data


def _require_id(data: dict[str, Any], path: str) -> str:
    if not isinstance(data.get("id"), str) or not data["id"]:
        raise AssistantServiceError(
            message="Malformed response from assistant service", details={"path": path}
        )
    return data["id"]


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message") or response.reason_phrase
    return response.reason_phrase


def _rewrite_annotations(text: dict[str, Any]) -> str:
    value = text.get("value", "")
    for annotation in text.get("annotations") or []:
        if annotation.get("type") == "file_path":
            file_id = (annotation.get("file_path") or {}).get("file_id")
            if file_id and annotation.get("text"):
                value = value.replace(annotation["text"], file_url(file_id))
    return value


def extract_text(message: dict[str, Any] | None) -> str:
    """Flatten an assistant message into display text.

    Text parts are joined with blank lines, generated images become
    placeholders and sandbox file paths point at the local file route.
    """
    if not message or not message.get("content"):
        return NO_RESPONSE_TEXT

    content = message["content"]
    if isinstance(content, str):
        return content

    parts: list[str] = []
    for item in content:
        if isinstance(item, str):
            parts.append(item)
            continue
        item_type = item.get("type")
        if item_type == "text":
            text = item.get("text")
            if isinstance(text, dict):
                parts.append(_rewrite_annotations(text))
            elif isinstance(text, str):
                parts.append(text)
        elif item_type == "image_file":
            parts.append(IMAGE_FILE_PLACEHOLDER)
        elif item_type == "image_url":
            parts.append(IMAGE_URL_PLACEHOLDER)
        elif isinstance(item.get("text"), str):
            parts.append(item["text"])

    parts = [part for part in parts if part]
    return "\n\n".join(parts) if parts else NO_RESPONSE_TEXT


def message_files(message: dict[str, Any]) -> list[dict[str, Any]]:
    """Files referenced by a message: generated images, file paths and attachments."""
    files = []
    for item in message.get("content") or []:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "image_file":
            file_id = (item.get("image_file") or {}).get("file_id")
            if file_id:
                files.append(
                    {"type": "image", "file_id": file_id, "url": file_url(file_id), "description": "Generated image"}
                )
        elif item.get("type") == "text" and isinstance(item.get("text"), dict):
            for annotation in item["text"].get("annotations") or []:
                file_id = (annotation.get("file_path") or {}).get("file_id")
                if annotation.get("type") == "file_path" and file_id:
                    files.append(
                        {
                            "type": "file",
                            "file_id": file_id,
                            "url": file_url(file_id),
                            "description": os.path.basename(annotation.get("text", "")) or file_id,
                        }
                    )
    for attachment in message.get("attachments") or []:
        file_id = attachment.get("file_id")
        if file_id:
            files.append(
                {"type": "attachment", "file_id": file_id, "url": file_url(file_id), "description": "Attached file"}
            )
    return files


def to_messages(raw_messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Convert service messages (newest first) into chronological display messages."""
    messages = []
    for raw in reversed(raw_messages):
        created_at = raw.get("created_at")
        messages.append(
            {
                "id": raw.get("id"),
                "role": raw.get("role", "assistant"),
                "content": extract_text(raw),
                "files": message_files(raw),
                "timestamp": datetime.fromtimestamp(created_at, UTC) if created_at else None,
            }
        )
    return messages


def latest_assistant_message(raw_messages: list[dict[str, Any]]) -> dict[str, Any] | None:
    return next((m for m in raw_messages if m.get("role") == "assistant"), None)
