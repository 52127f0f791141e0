"""Tests for the Brave Search client using httpx.MockTransport."""

import httpx
import pytest

from ragcontext.integrations.brave.client import BraveSearchProvider, WebSearchHit, render_search_context
from ragcontext.rag.errors import CredentialMissingError, WebSearchError

BRAVE_URL = "https://api.search.brave.com/res/v1/web/search"

BRAVE_PAYLOAD = {
    "web": {
        "results": [
            {
                "title": "Paris - Wikipedia",
                "url": "https://en.wikipedia.org/wiki/Paris",
                "description": "Paris is the capital of France.",
                "extra_snippets": ["Population 2.1 million.", "On the Seine."],
            },
            {
                "title": "Visit Paris",
                "url": "https://parisjetaime.com",
                "description": "Official tourism site.",
            },
        ]
    },
    "news": {
        "results": [
            {
                "title": "Paris hosts summit",
                "url": "https://news.example.com/paris",
                "description": "Leaders met in Paris.",
                "updated": "2026-10-15",
            }
        ]
    },
}


def _provider(handler, api_key="brave-test-key") -> BraveSearchProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BraveSearchProvider(api_key=api_key, base_url=BRAVE_URL, client=client)


class TestBraveSearchProvider:
    @pytest.mark.asyncio
    async def test_request_shape(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=BRAVE_PAYLOAD)

        await _provider(handler).search("What is Paris?", max_results=5)

        assert len(seen) == 1
        request = seen[0]
        assert request.headers["X-Subscription-Token"] == "brave-test-key"
        assert request.url.params["q"] == "What is Paris?"
        assert request.url.params["count"] == "5"
        assert request.url.params["freshness"] == "week"

    @pytest.mark.asyncio
    async def test_web_and_news_sources(self):
        response = await _provider(lambda request: httpx.Response(200, json=BRAVE_PAYLOAD)).search("Paris")

        assert [s.id for s in response.sources] == ["web-1", "web-2", "news-1"]
        assert response.sources[0].metadata == {
            "source": "web",
            "url": "https://en.wikipedia.org/wiki/Paris",
            "title": "Paris - Wikipedia",
        }
        assert response.sources[2].metadata["date"] == "2026-10-15"
        assert "date" not in response.sources[1].metadata
        assert response.has_content

    @pytest.mark.asyncio
    async def test_rendered_context(self):
        response = await _provider(lambda request: httpx.Response(200, json=BRAVE_PAYLOAD)).search("Paris")

        assert response.context.startswith("From web search:\n\nSource 1: Paris - Wikipedia\n")
        assert "Additional information: Population 2.1 million. On the Seine.\n" in response.context
        assert "News results:\n\nSource 1: Paris hosts summit\n" in response.context
        assert "Date: 2026-10-15\n" in response.context

    @pytest.mark.asyncio
    async def test_no_results_means_no_content(self):
        response = await _provider(lambda request: httpx.Response(200, json={"web": {"results": []}})).search("zzz")

        assert response.context == ""
        assert response.sources == []
        assert not response.has_content

    @pytest.mark.asyncio
    async def test_http_error(self):
        provider = _provider(lambda request: httpx.Response(429, json={"error": "rate limited"}))

        with pytest.raises(WebSearchError, match="429"):
            await provider.search("Paris")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(WebSearchError, match="connection refused"):
            await _provider(handler).search("Paris")

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected without an API key")

        with pytest.raises(CredentialMissingError):
            await _provider(handler, api_key="").search("Paris")


def test_render_search_context_without_hits():
    assert render_search_context([]) == ("", [])


def test_render_search_context_numbers_each_section():
    hits = [
        WebSearchHit(title="A", url="https://a", description="a"),
        WebSearchHit(title="N", url="https://n", description="n", source="news"),
    ]

    context, sources = render_search_context(hits)

    assert context == (
        "From web search:\n\nSource 1: A\nURL: https://a\na\n\n"
        "News results:\n\nSource 1: N\nURL: https://n\nn\n\n"
    )
    assert [s.id for s in sources] == ["web-1", "news-1"]
