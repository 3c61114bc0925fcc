"""
Unit tests for ChatService.

The assistant gateway and search service are mocks; the thread bookkeeping
runs against the SQLite session.
"""

import httpx
import pytest

from app.domains.chat.service import (
    FETCH_FAILED_TEXT,
    JSON_RESPONSE_FORMAT,
    RUN_FAILED_TEXT,
    RUN_TIMED_OUT_TEXT,
    ChatService,
)
from app.exceptions.assistant import (
    AssistantConfigurationError,
    AssistantServiceError,
    SearchServiceError,
)
from app.exceptions.share import SharePermissionError
from app.schemas.chat import ChatRequest
from app.services.run_poller import RunPoller
from app.services.search_service import SEARCH_RUN_INSTRUCTIONS, SearchHit, SearchResult, WebSearchService
from app.shared.sanitizer import SEARCH_CONTEXT_START, SEARCH_FAILURE_NOTE
from models import Thread

from factories import ThreadShareFactory, assistant_message


@pytest.fixture
def chat_service(test_db, mock_gateway, mock_search, no_sleep):
    poller = RunPoller(mock_gateway, interval=0, max_attempts=3, sleep=no_sleep)
    return ChatService(test_db, mock_gateway, mock_search, poller)


@pytest.fixture
def replying_gateway(mock_gateway):
    mock_gateway.list_messages.return_value = [assistant_message("Revenue grew 12%【4:0†source】.")]
    return mock_gateway


def _search_result():
    return SearchResult(
        query="latest rates",
        answer="Rates held steady.",
        hits=[SearchHit(title="Central bank update", url="https://news.test/a", content="text", score=0.9)],
    )


class TestSendMessage:
    """Test cases for a single chat turn."""

    @pytest.mark.asyncio
    async def test_new_thread_turn(self, chat_service, replying_gateway, test_db):
        result = await chat_service.send_message(ChatRequest(message="How did revenue change?"))

        assert result["thread_id"] == "thread_new123"
        assert result["reply"] == "Revenue grew 12%."
        assert result["run_state"] == "completed"
        assert result["web_search_performed"] is False
        assert result["parsed_response"] is None

        replying_gateway.create_thread.assert_awaited_once()
        replying_gateway.post_message.assert_awaited_once_with(
            "thread_new123", "How did revenue change?", attachments=None
        )
        replying_gateway.start_run.assert_awaited_once_with(
            "thread_new123", ["code_interpreter"], additional_instructions=None, response_format=None
        )

        thread = await test_db.get(Thread, "thread_new123")
        assert thread.title == "How did revenue change?"
        assert thread.message_count == 2

    @pytest.mark.asyncio
    async def test_original_message_is_stored(self, chat_service, replying_gateway, test_db):
        request = ChatRequest(message="[context] Summarise this", original_message="Summarise this")

        await chat_service.send_message(request)

        replying_gateway.post_message.assert_awaited_once_with("thread_new123", "Summarise this", attachments=None)
        assert (await test_db.get(Thread, "thread_new123")).title == "Summarise this"

    @pytest.mark.asyncio
    async def test_existing_thread_with_files(self, chat_service, replying_gateway, test_thread):
        request = ChatRequest(message="Chart this", thread_id=test_thread.id, file_ids=["file-abc123XYZ"])

        result = await chat_service.send_message(request)

        assert result["thread_id"] == test_thread.id
        replying_gateway.create_thread.assert_not_awaited()
        replying_gateway.post_message.assert_awaited_once_with(
            test_thread.id, "Chart this", attachments=["file-abc123XYZ"]
        )
        tools = replying_gateway.start_run.await_args.args[1]
        assert tools == ["code_interpreter", "file_search"]

    @pytest.mark.asyncio
    async def test_web_search_augments_turn(self, chat_service, replying_gateway, mock_search):
        mock_search.is_enabled = True
        mock_search.search.return_value = _search_result()

        result = await chat_service.send_message(ChatRequest(message="latest rates", web_search_enabled=True))

        assert result["web_search_performed"] is True
        assert result["search_sources"] == [
            {"title": "Central bank update", "url": "https://news.test/a", "score": 0.9}
        ]
        assert result["reply"].endswith("1. [Central bank update](https://news.test/a) (90% relevance)\n")

        assert replying_gateway.post_message.await_count == 2
        context_message = replying_gateway.post_message.await_args_list[1].args[1]
        assert SEARCH_CONTEXT_START in context_message
        assert "Rates held steady." in context_message

        kwargs = replying_gateway.start_run.await_args.kwargs
        assert kwargs["additional_instructions"] == SEARCH_RUN_INSTRUCTIONS
        assert replying_gateway.start_run.await_args.args[1] == ["code_interpreter", "file_search"]

    @pytest.mark.asyncio
    async def test_answer_only_search_counts_as_performed(self, chat_service, replying_gateway, mock_search):
        mock_search.is_enabled = True
        mock_search.search.return_value = SearchResult(query="q", answer="Just an answer.")

        result = await chat_service.send_message(ChatRequest(message="q", web_search_enabled=True))

        assert result["web_search_performed"] is True
        assert result["search_sources"] == []
        assert "**Sources:**" not in result["reply"]

    @pytest.mark.asyncio
    async def test_search_failure_degrades(self, chat_service, replying_gateway, mock_search):
        mock_search.is_enabled = True
        mock_search.search.side_effect = SearchServiceError("quota exceeded", upstream_status=429)

        result = await chat_service.send_message(ChatRequest(message="latest rates", web_search_enabled=True))

        assert result["web_search_performed"] is False
        assert result["run_state"] == "completed"
        note = replying_gateway.post_message.await_args_list[1].args[1]
        assert note == f"latest rates\n\n{SEARCH_FAILURE_NOTE}"
        assert replying_gateway.start_run.await_args.kwargs["additional_instructions"] is None

    @pytest.mark.asyncio
    async def test_search_not_configured_degrades(self, chat_service, replying_gateway, mock_search):
        result = await chat_service.send_message(ChatRequest(message="latest rates", web_search_enabled=True))

        assert result["web_search_performed"] is False
        mock_search.search.assert_not_awaited()
        assert SEARCH_FAILURE_NOTE in replying_gateway.post_message.await_args_list[1].args[1]

    @pytest.mark.asyncio
    async def test_malformed_search_body_degrades(self, test_db, replying_gateway, no_sleep):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, json=["x"]))
        async with httpx.AsyncClient(transport=transport) as http:
            search = WebSearchService(http, api_key="tvly-test")
            poller = RunPoller(replying_gateway, interval=0, max_attempts=3, sleep=no_sleep)
            service = ChatService(test_db, replying_gateway, search, poller)

            result = await service.send_message(ChatRequest(message="latest rates", web_search_enabled=True))

        assert result["web_search_performed"] is False
        assert result["run_state"] == "completed"
        assert replying_gateway.post_message.await_args_list[1].args[1] == f"latest rates\n\n{SEARCH_FAILURE_NOTE}"

    @pytest.mark.asyncio
    async def test_context_message_failure_is_not_fatal(self, chat_service, replying_gateway):
        replying_gateway.post_message.side_effect = [{"id": "msg_1"}, AssistantServiceError("rejected")]

        result = await chat_service.send_message(ChatRequest(message="Plan", use_json_format=True))

        assert result["run_state"] == "completed"

    @pytest.mark.asyncio
    async def test_json_format(self, chat_service, mock_gateway):
        mock_gateway.list_messages.return_value = [
            assistant_message('{"content": "Structured", "type": "standard_response"}')
        ]

        result = await chat_service.send_message(ChatRequest(message="Plan", use_json_format=True))

        assert result["use_json_format"] is True
        assert result["parsed_response"]["content"] == "Structured"
        assert mock_gateway.start_run.await_args.kwargs["response_format"] == JSON_RESPONSE_FORMAT
        assert '"type": "standard_response"' in mock_gateway.post_message.await_args_list[1].args[1]

    @pytest.mark.asyncio
    async def test_json_format_with_search_skips_sources_block(self, chat_service, mock_gateway, mock_search):
        mock_search.is_enabled = True
        mock_search.search.return_value = _search_result()
        mock_gateway.list_messages.return_value = [assistant_message('{"content": "ok", "sources": []}')]

        result = await chat_service.send_message(
            ChatRequest(message="rates", web_search_enabled=True, use_json_format=True)
        )

        assert result["reply"] == '{"content": "ok", "sources": []}'
        assert result["parsed_response"]["content"] == "ok"

    @pytest.mark.asyncio
    async def test_unparseable_json_falls_back(self, chat_service, mock_gateway):
        mock_gateway.list_messages.return_value = [assistant_message("plain prose")]

        result = await chat_service.send_message(ChatRequest(message="Plan", use_json_format=True))

        assert result["parsed_response"]["metadata"]["parsing_failed"] is True
        assert result["reply"] == "plain prose"


class TestRunOutcomes:
    @pytest.mark.asyncio
    async def test_failed_run(self, chat_service, mock_gateway, test_db):
        mock_gateway.poll_run.return_value = "failed"

        result = await chat_service.send_message(ChatRequest(message="hello there"))

        assert result["reply"] == RUN_FAILED_TEXT
        assert result["run_state"] == "failed"
        mock_gateway.list_messages.assert_not_awaited()
        assert (await test_db.get(Thread, "thread_new123")).message_count == 2

    @pytest.mark.asyncio
    async def test_timed_out_run(self, chat_service, mock_gateway):
        mock_gateway.poll_run.return_value = "in_progress"

        result = await chat_service.send_message(ChatRequest(message="hello there"))

        assert result["reply"] == RUN_TIMED_OUT_TEXT
        assert result["run_state"] == "timed_out"
        assert mock_gateway.poll_run.await_count == 3

    @pytest.mark.asyncio
    async def test_failed_run_skips_sources_and_json(self, chat_service, mock_gateway, mock_search):
        mock_search.is_enabled = True
        mock_search.search.return_value = _search_result()
        mock_gateway.poll_run.return_value = "expired"

        result = await chat_service.send_message(
            ChatRequest(message="rates", web_search_enabled=True, use_json_format=True)
        )

        assert result["reply"] == RUN_FAILED_TEXT
        assert result["parsed_response"] is None

    @pytest.mark.asyncio
    async def test_reply_fetch_failure(self, chat_service, mock_gateway):
        mock_gateway.list_messages.side_effect = AssistantServiceError("down")

        result = await chat_service.send_message(ChatRequest(message="hello there"))

        assert result["reply"] == FETCH_FAILED_TEXT

    @pytest.mark.asyncio
    async def test_not_configured(self, chat_service, mock_gateway):
        mock_gateway.ensure_configured.side_effect = AssistantConfigurationError()

        with pytest.raises(AssistantConfigurationError):
            await chat_service.send_message(ChatRequest(message="hello there"))
        mock_gateway.create_thread.assert_not_awaited()


class TestSharedThreadChat:
    @pytest.mark.asyncio
    async def test_collaborate_share_posts_to_shared_thread(self, chat_service, replying_gateway, collaborate_share):
        request = ChatRequest(message="Adding a question", share_token=collaborate_share.share_token)

        result = await chat_service.send_message(request)

        assert result["thread_id"] == collaborate_share.thread_id
        replying_gateway.create_thread.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_read_share_cannot_chat(self, chat_service, mock_gateway, test_db, test_thread):
        share = ThreadShareFactory.build(thread_id=test_thread.id)
        test_db.add(share)
        await test_db.commit()

        with pytest.raises(SharePermissionError):
            await chat_service.send_message(ChatRequest(message="hi there", share_token=share.share_token))
        mock_gateway.post_message.assert_not_awaited()


class TestChatRequest:
    def test_blank_message_rejected(self):
        with pytest.raises(ValueError):
            ChatRequest(message="   ")

    def test_camel_case_fields(self):
        request = ChatRequest.model_validate(
            {"message": "hi", "threadId": "thread_1", "webSearchEnabled": True, "fileIds": ["f"]}
        )

        assert request.thread_id == "thread_1"
        assert request.web_search_enabled is True
        assert request.file_ids == ["f"]
