"""Packaging a conversation into a downloadable ZIP archive.

The archive holds a rendered HTML transcript (``chat-conversation.html``) and
an ``annexures/`` folder with a copy of every blob file recorded for the
thread. A file that cannot be downloaded is logged and left out; the archive
is still produced.
"""

import html
import io
import logging
import os
import re
import zipfile
from datetime import UTC, datetime
from typing import Any

from app.exceptions.assistant import UpstreamError
from app.services.assistant_gateway import AssistantGateway
from app.services.blob_storage import BlobStorageClient
from models import BlobFile

logger = logging.getLogger(__name__)

DOCUMENT_NAME = "chat-conversation.html"
ANNEX_FOLDER = "annexures"
DEFAULT_EXPORT_TITLE = "Conversation Export"
ASSISTANT_LABEL = "Assistant"

_STYLE = """
body { font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; line-height: 1.6;
       color: #333; max-width: 800px; margin: 0 auto; padding: 20px; }
.header { text-align: center; border-bottom: 2px solid #eee; padding-bottom: 20px; margin-bottom: 30px; }
.header h1 { color: #2563eb; margin-bottom: 10px; }
.subtitle, .timestamp, .file-info { color: #6b7280; font-size: 12px; }
.message { margin-bottom: 25px; padding: 15px; border-radius: 8px; border-left: 4px solid #e5e7eb; }
.message.user { background-color: #f3f4f6; border-left-color: #6b7280; }
.message.assistant { border: 1px solid #e5e7eb; border-left-color: #2563eb; }
.message-header { display: flex; justify-content: space-between; margin-bottom: 10px; font-size: 14px; }
.files-section { margin-top: 40px; padding-top: 20px; border-top: 2px solid #eee; }
.disclaimer { margin-top: 40px; text-align: center; font-size: 10px; color: #6b7280; }
"""


def _export_text(message: dict[str, Any]) -> str:
    parts = []
    for item in message.get("content") or []:
        if not isinstance(item, dict) or item.get("type") != "text":
            continue
        text = item.get("text") or {}
        value = text.get("value", "")
        for annotation in text.get("annotations") or []:
            file_id = (annotation.get("file_path") or {}).get("file_id")
            if annotation.get("type") == "file_path" and file_id and annotation.get("text"):
                value = value.replace(annotation["text"], f"[File: {file_id}]")
        parts.append(value)
    return "".join(parts)


def export_messages(raw_messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Chronological transcript entries from service messages (newest first)."""
    entries = []
    for raw in reversed(raw_messages):
        created_at = raw.get("created_at")
        entries.append(
            {
                "role": raw.get("role", "assistant"),
                "content": _export_text(raw),
                "timestamp": datetime.fromtimestamp(created_at, UTC) if created_at else None,
            }
        )
    return entries


def export_title(entries: list[dict[str, Any]]) -> str:
    """First user message, alphanumerics and spaces only, at most 50 characters."""
    first_user = next((entry for entry in entries if entry["role"] == "user"), None)
    if not first_user:
        return DEFAULT_EXPORT_TITLE
    title = re.sub(r"[^a-zA-Z0-9\s]", "", first_user["content"][:50]).strip()
    return title or DEFAULT_EXPORT_TITLE


def _render_content(content: str) -> str:
    escaped = html.escape(content)
    escaped = re.sub(r"\*\*(.*?)\*\*", r"<strong>\1</strong>", escaped)
    return escaped.replace("\n", "<br>")


def render_conversation_html(
    title: str,
    entries: list[dict[str, Any]],
    files: list[BlobFile],
    generated_at: datetime | None = None,
) -> str:
    generated_at = generated_at or datetime.now(UTC)
    messages_html = []
    for entry in entries:
        role = entry["role"]
        label = "User" if role == "user" else ASSISTANT_LABEL
        timestamp = entry["timestamp"].strftime("%Y-%m-%d %H:%M UTC") if entry["timestamp"] else ""
        messages_html.append(
            f'<div class="message {html.escape(role)}">'
            f'<div class="message-header"><strong>{label}</strong>'
            f'<span class="timestamp">{timestamp}</span></div>'
            f'<div class="message-content">{_render_content(entry["content"])}</div>'
            "</div>"
        )

    files_html = ""
    if files:
        items = "".join(
            f"<li><strong>{html.escape(f.filename)}</strong> "
            f'<span class="file-info">({f.file_size / 1024 / 1024:.2f} MB, {html.escape(f.content_type)})</span>'
            f'<br>Attached as {ANNEX_FOLDER}/{html.escape(f.filename)}</li>'
            for f in files
        )
        files_html = f'<div class="files-section"><h3>Referenced Files</h3><ul>{items}</ul></div>'

    return (
        "<!DOCTYPE html>\n"
        '<html><head><meta charset="utf-8">'
        f"<title>{html.escape(title)}</title><style>{_STYLE}</style></head><body>"
        f'<div class="header"><h1>{html.escape(title)}</h1>'
        f'<div class="subtitle">Conversation Export - Generated on {generated_at:%Y-%m-%d}</div></div>'
        f'<div class="messages">{"".join(messages_html)}</div>'
        f"{files_html}"
        '<div class="disclaimer">This is AI generated material and should be independently verified '
        "before use in decision-making.</div>"
        "</body></html>"
    )


def archive_filename(thread_id: str) -> str:
    return f"thread-{thread_id[:8]}.zip"


def _unique_name(name: str, used: set[str]) -> str:
    candidate, counter = name, 1
    stem, ext = os.path.splitext(name)
    while candidate in used:
        candidate = f"{stem} ({counter}){ext}"
        counter += 1
    used.add(candidate)
    return candidate


class ThreadExporter:
    """Builds the conversation archive for one thread."""

    def __init__(self, gateway: AssistantGateway, blob_storage: BlobStorageClient):
        self.gateway = gateway
        self.blob_storage = blob_storage

    async def build_archive(self, thread_id: str, files: list[BlobFile]) -> bytes:
        # Upstream failures here are fatal: there is nothing to export without messages
        raw_messages = await self.gateway.list_messages(thread_id)
        entries = export_messages(raw_messages)
        document = render_conversation_html(export_title(entries), entries, files)

        buffer = io.BytesIO()
        used_names: set[str] = set()
        skipped = 0
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as archive:
            archive.writestr(DOCUMENT_NAME, document)
            for blob_file in files:
                try:
                    content = await self.blob_storage.download(blob_file.blob_url)
                except UpstreamError as e:
                    skipped += 1
                    logger.warning(f"Skipping {blob_file.filename} in export of {thread_id}: {e.message}")
                    continue
                name = _unique_name(os.path.basename(blob_file.filename) or str(blob_file.id), used_names)
                archive.writestr(f"{ANNEX_FOLDER}/{name}", content)

        logger.info(
            f"Exported thread {thread_id}: {len(entries)} messages, "
            f"{len(files) - skipped} files, {skipped} skipped"
        )
        return buffer.getvalue()
