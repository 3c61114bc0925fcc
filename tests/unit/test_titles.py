"""Unit tests for thread title generation."""

from datetime import date

import pytest

from app.shared.titles import (
    DEFAULT_TITLE,
    generate_contextual_title,
    generate_smart_title,
    is_generic_title,
    title_from_first_message,
    truncate_title,
)


def _user(text):
    return {"role": "user", "content": text}


class TestTitleHelpers:
    def test_title_from_first_message_collapses_whitespace(self):
        assert title_from_first_message("  Plan   the\nlaunch ") == "Plan the launch"

    def test_title_from_empty_message(self):
        assert title_from_first_message("   ") == DEFAULT_TITLE

    def test_truncate_without_spaces(self):
        title = truncate_title("a" * 60)
        assert len(title) == 50
        assert title.endswith("...")

    def test_truncate_prefers_word_boundary(self):
        title = truncate_title("word " * 20)
        assert title.endswith("word...")
        assert len(title) <= 50

    @pytest.mark.parametrize(
        "title,generic",
        [
            (None, True),
            ("", True),
            ("New Chat", True),
            ("Untitled", True),
            ("Chat - 2025-01-01", True),
            ("Budget review", False),
        ],
    )
    def test_is_generic_title(self, title, generic):
        assert is_generic_title(title) is generic


class TestSmartTitle:
    def test_skips_greetings_and_leading_phrase(self):
        messages = [_user("hello"), _user("What is the capital of France?")]

        assert generate_smart_title(messages) == "Is the capital of France"

    def test_ignores_assistant_messages(self):
        messages = [{"role": "assistant", "content": "How can I help?"}]

        assert generate_smart_title(messages) == DEFAULT_TITLE

    def test_too_short_after_cleanup_uses_date(self):
        messages = [_user("please ??????")]

        assert generate_smart_title(messages, today=date(2025, 3, 1)) == "Chat - 2025-03-01"


class TestContextualTitle:
    def test_topic_keyword(self):
        assert generate_contextual_title([_user("Can we review the database schema?")]) == "Database Design"

    def test_first_matching_topic_wins(self):
        messages = [_user("Roadmap for our security work")]

        assert generate_contextual_title(messages) == "Strategic Planning Discussion"

    def test_falls_back_to_smart_title(self):
        messages = [_user("How did revenue change last quarter?")]

        assert generate_contextual_title(messages) == "Did revenue change last quarter"

    def test_no_user_messages(self):
        assert generate_contextual_title([]) == DEFAULT_TITLE
