"""Brave Search client for the web-search fallback.

This module calls the Brave web search API and renders its web and news
results into a raw search text plus per-result source documents.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
from loguru import logger

from ragcontext.config.settings import Settings, settings as default_settings
from ragcontext.core.token_counting import estimate_tokens
from ragcontext.rag.errors import CredentialMissingError, WebSearchError
from ragcontext.rag.types import Document

HTTP_TIMEOUT = 10.0
DEFAULT_MAX_RESULTS = 5


@dataclass(frozen=True)
class WebSearchHit:
    """One web or news result."""

    title: str
    url: str
    description: str
    source: str = "web"
    extra_snippets: list[str] = field(default_factory=list)
    published: str | None = None


@dataclass
class WebSearchResponse:
    """Search results plus the rendered search text and sources.

    context is empty when the search returned nothing usable.
    """

    query: str
    context: str
    sources: list[Document]

    @property
    def has_content(self) -> bool:
        return bool(self.context.strip())


def _parse_hits(results: Any, source: str) -> list[WebSearchHit]:
    if not isinstance(results, list):
        return []
    hits: list[WebSearchHit] = []
    for item in results:
        if not isinstance(item, dict):
            continue
        extra = item.get("extra_snippets") or []
        hits.append(
            WebSearchHit(
                title=str(item.get("title") or ""),
                url=str(item.get("url") or ""),
                description=str(item.get("description") or ""),
                source=source,
                extra_snippets=[str(s) for s in extra] if isinstance(extra, list) else [],
                published=item.get("updated") or item.get("page_age") or item.get("age"),
            )
        )
    return hits


def render_search_context(hits: list[WebSearchHit]) -> tuple[str, list[Document]]:
    """Render hits into the raw search text and source documents.

    Web results come first under "From web search:", news results follow
    under "News results:". Source ids are web-N and news-N.

    Returns:
        Tuple of (search text, sources); ("", []) when there are no hits
    """
    web_hits = [h for h in hits if h.source == "web"]
    news_hits = [h for h in hits if h.source == "news"]
    sources: list[Document] = []
    parts: list[str] = []

    if web_hits:
        parts.append("From web search:\n\n")
        for index, hit in enumerate(web_hits, start=1):
            sources.append(
                Document(
                    id=f"web-{index}",
                    content=hit.description,
                    metadata={"source": "web", "url": hit.url, "title": hit.title},
                )
            )
            parts.append(f"Source {index}: {hit.title}\nURL: {hit.url}\n{hit.description}\n")
            if hit.extra_snippets:
                parts.append(f"Additional information: {' '.join(hit.extra_snippets)}\n")
            parts.append("\n")

    if news_hits:
        parts.append("News results:\n\n")
        for index, hit in enumerate(news_hits, start=1):
            metadata: dict[str, Any] = {"source": "news", "url": hit.url, "title": hit.title}
            if hit.published:
                metadata["date"] = hit.published
            sources.append(Document(id=f"news-{index}", content=hit.description, metadata=metadata))
            parts.append(f"Source {index}: {hit.title}\nURL: {hit.url}\n")
            if hit.published:
                parts.append(f"Date: {hit.published}\n")
            parts.append(f"{hit.description}\n\n")

    return "".join(parts), sources


class WebSearchProvider(ABC):
    @abstractmethod
    async def search(self, query: str, max_results: int = DEFAULT_MAX_RESULTS) -> WebSearchResponse:
        """Search the web.

        Raises:
            CredentialMissingError: If the provider has no API key
            WebSearchError: If the search call fails
        """


class BraveSearchProvider(WebSearchProvider):
    """WebSearchProvider backed by the Brave Search API."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = HTTP_TIMEOUT,
    ):
        """Initialize provider.

        Args:
            api_key: Brave subscription token (defaults to BRAVE_SEARCH_API_KEY)
            base_url: Search endpoint (defaults to BRAVE_SEARCH_URL)
            settings: Settings to read defaults from
            client: Shared HTTP client; a short-lived client is opened per call otherwise
            timeout: Request timeout in seconds
        """
        cfg = settings or default_settings
        self.api_key = api_key if api_key is not None else cfg.brave_search_api_key
        self.base_url = base_url or cfg.brave_search_url
        self.client = client
        self.timeout = timeout

    async def search(self, query: str, max_results: int = DEFAULT_MAX_RESULTS) -> WebSearchResponse:
        if not self.api_key:
            raise CredentialMissingError("brave", "Brave Search API key is required")

        params = {"q": query, "count": str(max_results), "freshness": "week"}
        headers = {
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
            "X-Subscription-Token": self.api_key,
        }

        logger.info("Brave search request", query=query, max_results=max_results)
        try:
            if self.client is not None:
                response = await self.client.get(self.base_url, params=params, headers=headers, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(timeout=self.timeout) as client:
                    response = await client.get(self.base_url, params=params, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise WebSearchError(
                f"Brave Search API error: {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except (httpx.RequestError, ValueError) as e:
            raise WebSearchError(f"Brave Search request failed: {e}") from e

        if not isinstance(data, dict):
            raise WebSearchError("Brave Search returned an unexpected payload")

        hits = _parse_hits((data.get("web") or {}).get("results"), "web")
        hits += _parse_hits((data.get("news") or {}).get("results"), "news")
        context, sources = render_search_context(hits)

        logger.info(
            "Brave search completed",
            query=query,
            results=len(sources),
            token_count=estimate_tokens(context),
        )
        return WebSearchResponse(query=query, context=context, sources=sources)
