"""Unit tests for web search augmentation."""

import json

import httpx
import pytest

from app.exceptions.assistant import SearchServiceError
from app.services.search_service import (
    SEARCH_ANSWER_INSTRUCTION,
    SearchHit,
    SearchResult,
    WebSearchService,
    build_json_format_request,
    build_search_context,
    build_search_failure_note,
    format_sources_block,
)
from app.shared.sanitizer import (
    SEARCH_CONTEXT_END,
    SEARCH_CONTEXT_START,
    SEARCH_FAILURE_NOTE,
    strip_search_scaffold,
)

TAVILY_RESPONSE = {
    "answer": "Rates held steady.",
    "results": [
        {"title": "Central bank update", "url": "https://news.test/a", "content": "x" * 300, "score": 0.91},
        {"title": None, "url": "https://news.test/b", "content": None, "score": None},
    ],
}


def make_service(handler, api_key="tvly-test"):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return WebSearchService(client, api_key, base_url="https://search.test", max_results=3)


class TestWebSearchService:
    async def test_search_parses_results(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, json=TAVILY_RESPONSE)

        result = await make_service(handler).search("interest rates")

        assert result.query == "interest rates"
        assert result.answer == "Rates held steady."
        assert [hit.title for hit in result.hits] == ["Central bank update", "https://news.test/b"]
        assert result.hits[1].content == ""
        assert result.sources[0] == {"title": "Central bank update", "url": "https://news.test/a", "score": 0.91}

        body = json.loads(requests[0].content)
        assert str(requests[0].url) == "https://search.test/search"
        assert body["query"] == "interest rates"
        assert body["include_answer"] is True
        assert body["max_results"] == 3
        assert body["search_depth"] == "basic"

    async def test_http_error(self):
        service = make_service(lambda request: httpx.Response(429, json={"detail": "quota"}))

        with pytest.raises(SearchServiceError) as exc_info:
            await service.search("q")

        assert exc_info.value.upstream_status == 429

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(SearchServiceError):
            await make_service(handler).search("q")

    async def test_not_configured(self):
        service = make_service(lambda request: httpx.Response(200, json={}), api_key=None)

        assert not service.is_enabled
        with pytest.raises(SearchServiceError):
            await service.search("q")

    @pytest.mark.parametrize(
        "body",
        [["x"], {"results": "nope"}, {"results": [{"url": "https://a.example"}, "stray"]}],
    )
    async def test_malformed_body(self, body):
        service = make_service(lambda request: httpx.Response(200, json=body))

        with pytest.raises(SearchServiceError) as exc_info:
            await service.search("q")

        assert exc_info.value.message == "Malformed search response"

    async def test_missing_results_is_empty(self):
        service = make_service(lambda request: httpx.Response(200, json={"answer": "42"}))

        result = await service.search("q")

        assert result.hits == []
        assert result.answer == "42"


class TestPromptBuilders:
    def test_search_context_layout(self):
        result = SearchResult(
            query="q",
            answer="Rates held steady.",
            hits=[SearchHit(title="Update", url="https://news.test/a", content="y" * 300, score=0.5)],
        )

        context = build_search_context("What happened to rates?", result)

        assert context.startswith("What happened to rates?\n\n" + SEARCH_CONTEXT_START)
        assert "Web Summary: Rates held steady." in context
        assert "1. Update\n   " + "y" * 200 + "...\n   Source: https://news.test/a" in context
        assert SEARCH_CONTEXT_END in context
        assert context.endswith(SEARCH_ANSWER_INSTRUCTION)

    def test_search_context_is_fully_strippable(self):
        result = SearchResult(query="q", answer="A", hits=[SearchHit(title="T", url="https://u.test")])

        echoed = "Answer text.\n" + build_search_context("msg", result).split("msg", 1)[1].split(
            "IMPORTANT:", 1
        )[0]

        assert strip_search_scaffold(echoed) == "Answer text."

    def test_search_context_json_request(self):
        result = SearchResult(query="q")

        assert '"type": "response_with_search"' in build_search_context("m", result, use_json_format=True)

    def test_failure_note(self):
        assert build_search_failure_note("m") == f"m\n\n{SEARCH_FAILURE_NOTE}"
        assert '"search_error": true' in build_search_failure_note("m", use_json_format=True)

    def test_json_format_request(self):
        request = build_json_format_request("Plan a trip")

        assert request.startswith("Plan a trip\n\n")
        assert '"type": "standard_response"' in request


class TestSourcesBlock:
    def test_empty(self):
        assert format_sources_block([]) == ""

    def test_format(self):
        block = format_sources_block(
            [
                {"title": "A", "url": "https://a.test", "score": 0.876},
                {"title": "B", "url": "https://b.test", "score": None},
            ]
        )

        assert block == (
            "\n\n---\n**Sources:**\n"
            "1. [A](https://a.test) (88% relevance)\n"
            "2. [B](https://b.test)\n"
        )
