"""Web search augmentation through the Tavily search API."""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.core.config import Settings
from app.exceptions.assistant import SearchServiceError
from app.shared.sanitizer import SEARCH_CONTEXT_END, SEARCH_CONTEXT_START, SEARCH_FAILURE_NOTE

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 200

SEARCH_ANSWER_INSTRUCTION = (
    "IMPORTANT: Please provide a natural response incorporating relevant information from the "
    "search results above. Cite sources naturally when using specific information, but do not "
    "mention the search context formatting. Focus on being helpful and accurate."
)

SEARCH_RUN_INSTRUCTIONS = (
    "You have access to current web search results. Use this information to provide accurate, "
    "up-to-date responses. When citing information from search results, reference sources "
    "naturally without exposing internal search formatting."
)

JSON_WITH_SEARCH_INSTRUCTION = (
    " Format your response as a valid JSON object with the following structure:\n\n"
    "{\n"
    '  "content": "Your main response content here",\n'
    '  "sources": ["source1", "source2"],\n'
    '  "type": "response_with_search",\n'
    '  "metadata": {\n'
    '    "search_performed": true,\n'
    '    "sources_count": number_of_sources\n'
    "  }\n"
    "}\n\n"
    "DO NOT include any text outside this JSON structure."
)

JSON_AFTER_SEARCH_ERROR_INSTRUCTION = (
    "\n\nPlease format your response as a valid JSON object with the following structure:\n\n"
    "{\n"
    '  "content": "Your response content here",\n'
    '  "type": "response_without_search",\n'
    '  "metadata": {\n'
    '    "search_performed": false,\n'
    '    "search_error": true\n'
    "  }\n"
    "}\n\n"
    "DO NOT include any text outside this JSON structure."
)

JSON_STANDARD_INSTRUCTION = (
    "\n\nPlease format your response as a valid JSON object with the following structure:\n\n"
    "{\n"
    '  "content": "Your response content here",\n'
    '  "type": "standard_response",\n'
    '  "metadata": {\n'
    '    "search_performed": false\n'
    "  }\n"
    "}\n\n"
    "DO NOT include any text outside this JSON structure."
)


@dataclass
class SearchHit:
    title: str
    url: str
    content: str = ""
    score: float | None = None

    def as_source(self) -> dict[str, Any]:
        return {"title": self.title, "url": self.url, "score": self.score}


@dataclass
class SearchResult:
    query: str
    answer: str | None = None
    hits: list[SearchHit] = field(default_factory=list)

    @property
    def sources(self) -> list[dict[str, Any]]:
        return [hit.as_source() for hit in self.hits]


class WebSearchService:
    """Tavily ``POST /search`` over the shared HTTP client."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str | None,
        base_url: str = "https://api.tavily.com",
        max_results: int = 5,
        search_depth: str = "basic",
        timeout: float = 30.0,
    ):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.max_results = max_results
        self.search_depth = search_depth
        self.timeout = timeout

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "WebSearchService":
        return cls(
            client=client,
            api_key=settings.tavily_api_key,
            base_url=settings.tavily_api_url,
            max_results=settings.search_max_results,
            search_depth=settings.search_depth.value,
            timeout=settings.search_request_timeout,
        )

    @property
    def is_enabled(self) -> bool:
        return bool(self.api_key)

    async def search(self, query: str) -> SearchResult:
        if not self.api_key:
            raise SearchServiceError("Web search is not configured")

        payload = {
            "api_key": self.api_key,
            "query": query,
            "search_depth": self.search_depth,
            "include_answer": True,
            "max_results": self.max_results,
        }
        try:
            response = await self.client.post(f"{self.base_url}/search", json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(f"Tavily search returned HTTP {e.response.status_code}")
            raise SearchServiceError(
                f"Search service error: HTTP {e.response.status_code}",
                upstream_status=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Tavily search failed: {e}")
            raise SearchServiceError(f"Search service error: {e}") from e

        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(data, dict) or not isinstance(results or [], list) or not all(
            isinstance(item, dict) for item in results or []
        ):
            logger.warning("Tavily search returned a malformed response")
            raise SearchServiceError("Malformed search response")

        hits = [
            SearchHit(
                title=item.get("title") or item.get("url", ""),
                url=item.get("url", ""),
                content=item.get("content") or "",
                score=item.get("score"),
            )
            for item in results or []
        ]
        logger.info(f"Tavily search returned {len(hits)} results")
        return SearchResult(query=query, answer=data.get("answer"), hits=hits)


def build_search_context(message: str, result: SearchResult, use_json_format: bool = False) -> str:
    """The prompt sent to the assistant when search results are available.

    The block is delimited by the markers the sanitizer strips, so any part of
    it the assistant echoes back is removed from the reply.
    """
    context = f"{message}\n\n{SEARCH_CONTEXT_START}\n"
    if result.answer:
        context += f"\nWeb Summary: {result.answer}\n"
    if result.hits:
        context += "\nCurrent Web Information:\n"
        for index, hit in enumerate(result.hits, start=1):
            context += f"{index}. {hit.title}\n"
            context += f"   {hit.content[:SNIPPET_LENGTH]}...\n"
            context += f"   Source: {hit.url}\n\n"
    context += f"\n{SEARCH_CONTEXT_END}\n\n"
    context += SEARCH_ANSWER_INSTRUCTION
    if use_json_format:
        context += JSON_WITH_SEARCH_INSTRUCTION
    return context


def build_search_failure_note(message: str, use_json_format: bool = False) -> str:
    note = f"{message}\n\n{SEARCH_FAILURE_NOTE}"
    if use_json_format:
        note += JSON_AFTER_SEARCH_ERROR_INSTRUCTION
    return note


def build_json_format_request(message: str) -> str:
    return f"{message}{JSON_STANDARD_INSTRUCTION}"


def format_sources_block(sources: list[dict[str, Any]]) -> str:
    """Markdown list of sources appended below a reply."""
    if not sources:
        return ""
    block = "\n\n---\n**Sources:**\n"
    for index, source in enumerate(sources, start=1):
        block += f"{index}. [{source['title']}]({source['url']})"
        if source.get("score"):
            block += f" ({source['score'] * 100:.0f}% relevance)"
        block += "\n"
    return block
