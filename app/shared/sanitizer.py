"""Post-processing of assistant replies.

Everything that scrubs assistant output goes through ``sanitize`` (chat
replies) or ``safe_clean`` (legacy cached messages). The rules are regular
expressions over anchored marker phrases, kept in ``SCAFFOLD_RULES`` so they
can be tested row by row.

File references are the one thing cleanup must never damage. ``safe_clean``
swaps every recognised reference for a numbered placeholder, runs the rules,
restores the references, and returns the untouched input if the number of
references changed along the way.
"""

import json
import logging
import re
from typing import Any

from app.shared.file_types import FILE_URL_PREFIX

logger = logging.getLogger(__name__)

# Markers written by the search context builder and removed again here
SEARCH_CONTEXT_START = "[INTERNAL SEARCH CONTEXT - DO NOT INCLUDE IN RESPONSE]:"
SEARCH_CONTEXT_END = "[END SEARCH CONTEXT]"
SEARCH_FAILURE_NOTE = (
    "[Note: Web search was requested but encountered an error. "
    "Responding based on available knowledge.]"
)

PLACEHOLDER_TEMPLATE = "__FILE_PLACEHOLDER_{}__"

CITATION_PATTERN = re.compile(r"【\d+:\d+†[^】]+】")
SANDBOX_REFERENCE_PATTERN = re.compile(r"\[sandbox:.*?\]")

_FILE_ID = r"[A-Za-z0-9_-]+"
_PREFIX = re.escape(FILE_URL_PREFIX)

# Order matters: the wider forms are replaced before their substrings.
FILE_REFERENCE_PATTERNS = [
    # [label](/api/files/<id>) and [label](https://host/api/files/<id>)
    re.compile(rf"\[[^\]\n]*\]\((?:https?://[^\s)]*?)?{_PREFIX}{_FILE_ID}(?:\?[^\s)]*)?\)"),
    # [label](sandbox:/mnt/data/report.csv)
    re.compile(r"\[[^\]\n]*\]\(sandbox:[^)\s]+\)"),
    # "/api/files/<id>" and '/api/files/<id>'
    re.compile(rf"([\"']){_PREFIX}{_FILE_ID}\1"),
    # bare /api/files/<id>, optionally absolute
    re.compile(rf"(?:https?://[^\s\"'()<>]*?)?{_PREFIX}{_FILE_ID}"),
    # bare sandbox:/mnt/data/... URL
    re.compile(r"sandbox:/[^\s)\]\"']+"),
    # upstream file ids
    re.compile(r"\bfile-[A-Za-z0-9]{8,}\b"),
]

_PLACEHOLDER_PATTERN = re.compile(r"__FILE_PLACEHOLDER_\d+__")

# (name, pattern, replacement)
SCAFFOLD_RULES: list[tuple[str, re.Pattern, str]] = [
    (
        "search_context_block",
        re.compile(r"\[INTERNAL SEARCH CONTEXT[^\]]*\]:[\s\S]*?\[END SEARCH CONTEXT\]", re.I),
        "",
    ),
    ("web_information_header", re.compile(r"\[Current Web Information[^\]]*\]:\s*", re.I), ""),
    ("web_summary", re.compile(r"Web Summary:\s*[^\n]*\n", re.I), ""),
    ("top_results_block", re.compile(r"Top Search Results:\s*\n[\s\S]*?Instructions:[^\n]*\n", re.I), ""),
    (
        "pdf_result",
        re.compile(r"\d+\.\s+\[PDF\]\s+[^\n]*\n\s*[^\n]*\.\.\.\s*Source:\s*https?://\S+\s*", re.I),
        "",
    ),
    ("result_line", re.compile(r"\d+\.\s+[^.]+\.\.\.\s*Source:\s*https?://\S+\s*", re.I), ""),
    ("incorporate_instruction", re.compile(r"Instructions: Please incorporate[^\n]*\n?", re.I), ""),
    ("important_instruction", re.compile(r"IMPORTANT:\s*Please provide[^\n]*\n?", re.I), ""),
    ("search_failure_note", re.compile(r"\[Note: Web search was requested[^\]]*\]", re.I), ""),
    ("search_timestamp", re.compile(r"Search performed on:\s*[^\n]*\n", re.I), ""),
    ("search_query", re.compile(r"Query:\s*\"[^\"]*\"\s*", re.I), ""),
    ("horizontal_rule", re.compile(r"^\s*---\s*$", re.M), ""),
    ("blank_lines", re.compile(r"\n{3,}"), "\n\n"),
]


def strip_citations(text: str) -> str:
    return CITATION_PATTERN.sub("", text)


def strip_sandbox_references(text: str) -> str:
    return SANDBOX_REFERENCE_PATTERN.sub("", text)


def strip_search_scaffold(text: str) -> str:
    """Apply every scaffold rule in order and trim the result."""
    for _name, pattern, replacement in SCAFFOLD_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def count_file_references(text: str) -> int:
    """Count file references, each occurrence counted once."""
    _, placeholders = protect_file_links(text)
    return len(placeholders)


def protect_file_links(text: str) -> tuple[str, dict[str, str]]:
    """Swap every file reference for a numbered placeholder.

    Returns the rewritten text and a placeholder -> original mapping.
    """
    placeholders: dict[str, str] = {}

    def _swap(match: re.Match) -> str:
        token = PLACEHOLDER_TEMPLATE.format(len(placeholders))
        placeholders[token] = match.group(0)
        return token

    for pattern in FILE_REFERENCE_PATTERNS:
        text = pattern.sub(_swap, text)
    return text, placeholders


def restore_file_links(text: str, placeholders: dict[str, str]) -> str:
    # Placeholders nest when a wider pattern swallowed an earlier token; restore newest first.
    for token in reversed(list(placeholders)):
        text = text.replace(token, placeholders[token], 1)
    return text


def safe_clean(text: str) -> str:
    """Strip search scaffold without losing any file reference.

    If the reference count before and after differs, the original text is
    returned unchanged.
    """
    if not isinstance(text, str) or not text:
        return text

    original_count = count_file_references(text)
    working, placeholders = protect_file_links(text)
    working = strip_search_scaffold(working)
    working = restore_file_links(working, placeholders)

    if _PLACEHOLDER_PATTERN.search(working) or count_file_references(working) != original_count:
        logger.warning(f"File reference count changed during cleanup ({original_count} before); keeping original text")
        return text
    return working


def sanitize(text: str) -> str:
    """Single entry point for cleaning an assistant reply before display or storage."""
    if not text:
        return text
    cleaned = strip_citations(text)
    cleaned = strip_sandbox_references(cleaned)
    return safe_clean(cleaned)


def parse_json_reply(text: str) -> dict[str, Any]:
    """Parse a reply produced under JSON response format.

    Tries the whole text, then a fenced ``json`` block, then the outermost
    braces. Falls back to wrapping the text with ``parsing_failed`` set.
    """
    candidates = [text]
    fenced = re.search(r"```json\s*([\s\S]*?)\s*```", text)
    if fenced:
        candidates.append(fenced.group(1))
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except (TypeError, ValueError):
            continue
        if isinstance(parsed, dict):
            return parsed

    logger.debug("Assistant reply is not valid JSON, wrapping as text")
    return {
        "content": text,
        "type": "text",
        "metadata": {"parsing_failed": True, "original_content": text},
    }
