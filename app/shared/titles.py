"""Thread title generation from conversation messages."""

import re
from datetime import date
from typing import Any

DEFAULT_TITLE = "New Chat"
GENERIC_TITLES = {"Untitled", DEFAULT_TITLE}
MAX_TITLE_LENGTH = 50

_GREETING = re.compile(
    r"^(hi|hello|hey|good morning|good afternoon|good evening|thanks|thank you)$", re.I
)
_LEADING_PHRASE = re.compile(
    r"^(what|how|why|when|where|who|which|can you|could you|please|help me|i need|i want"
    r"|tell me|explain|show me)\s+",
    re.I,
)

TOPIC_TITLES = [
    (("strategy", "strategic", "planning", "roadmap", "vision"), "Strategic Planning Discussion"),
    (("digital", "transformation", "digitalization", "modernization"), "Digital Transformation"),
    (("api", "apis", "integration", "endpoint", "rest", "graphql"), "API Development"),
    (("database", "sql", "query", "schema", "migration"), "Database Design"),
    (
        ("security", "authentication", "authorization", "encryption", "cybersecurity"),
        "Security Discussion",
    ),
    (("ui", "ux", "design", "interface", "user experience", "frontend"), "UI/UX Design"),
    (
        ("performance", "optimization", "speed", "efficiency", "scalability"),
        "Performance Optimization",
    ),
    (("testing", "qa", "quality assurance", "unit test", "integration test"), "Testing & QA"),
    (("deployment", "devops", "ci/cd", "pipeline", "infrastructure"), "DevOps & Deployment"),
    (
        ("government", "policy", "regulation", "compliance", "public sector"),
        "Government Policy Discussion",
    ),
    (("caribbean", "regional", "island", "tourism", "development"), "Caribbean Development"),
    (("budget", "cost", "pricing", "financial", "economics"), "Budget Planning"),
    (("project", "management", "timeline", "milestone", "deadline"), "Project Management"),
    (("research", "analysis", "study", "investigation", "report"), "Research & Analysis"),
]


def is_generic_title(title: str | None) -> bool:
    return not title or title in GENERIC_TITLES or title.startswith("Chat -")


def _user_texts(messages: list[dict[str, Any]]) -> list[str]:
    return [
        message["content"]
        for message in messages
        if message.get("role") == "user" and isinstance(message.get("content"), str)
    ]


def truncate_title(text: str, limit: int = MAX_TITLE_LENGTH) -> str:
    """Cut at a word boundary when one is close enough, adding an ellipsis."""
    if len(text) <= limit:
        return text
    truncated = text[: limit - 3]
    last_space = truncated.rfind(" ")
    if last_space > 20:
        truncated = truncated[:last_space]
    return truncated + "..."


def generate_smart_title(messages: list[dict[str, Any]], today: date | None = None) -> str:
    """Title from the first substantial user messages (greetings skipped)."""
    substantial = [
        text.strip()
        for text in _user_texts(messages)
        if len(text.strip()) > 5 and not _GREETING.match(text.strip())
    ][:3]
    if not substantial:
        return DEFAULT_TITLE

    content = re.sub(r"\s+", " ", " ".join(substantial))
    content = _LEADING_PHRASE.sub("", content)
    content = re.sub(r"[?!]+$", "", content)
    content = content[:1].upper() + content[1:]
    content = truncate_title(content)

    if len(content) < 3:
        return f"Chat - {(today or date.today()).isoformat()}"
    return content


def generate_contextual_title(messages: list[dict[str, Any]]) -> str:
    """Topic title when a known keyword appears, else the smart title."""
    texts = _user_texts(messages)
    if not texts:
        return DEFAULT_TITLE

    all_text = " ".join(text.lower() for text in texts)
    for keywords, title in TOPIC_TITLES:
        if any(keyword in all_text for keyword in keywords):
            return title
    return generate_smart_title(messages)


def title_from_first_message(message: str) -> str:
    """Title for a brand-new thread, taken from its opening message."""
    content = re.sub(r"\s+", " ", message or "").strip()
    return truncate_title(content) if content else DEFAULT_TITLE
