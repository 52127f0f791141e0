"""Context orchestrator for instance-scoped RAG.

This is the single entry point of the pipeline:

    load config → embed → retrieve → build → (hit) return
                                          → (miss) web search → summarize

Every run resolves to a ContextOutcome (hit, web_search, diagnostic or
empty). get_context renders the outcome's ContextResult and never raises,
except for task cancellation initiated by the caller.
"""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from loguru import logger

from ragcontext.config.settings import Settings, settings as default_settings
from ragcontext.core.token_counting import estimate_tokens
from ragcontext.integrations.brave.client import DEFAULT_MAX_RESULTS, WebSearchProvider
from ragcontext.orchestrator.summarizer import WebSearchSummarizer
from ragcontext.rag.config_repository import (
    RagConfigRepository,
    StoredRagConfiguration,
    resolve_configuration,
)
from ragcontext.rag.embed.factory import EmbeddingProviderFactory
from ragcontext.rag.errors import ConfigurationError, ConfigurationMissingError, RagError
from ragcontext.rag.logging import log_fallback
from ragcontext.rag.retrieve.assembler import build_context
from ragcontext.rag.retrieve.retriever import DocumentRetriever
from ragcontext.rag.types import (
    ContextBuilderOptions,
    ContextOptions,
    ContextOutcome,
    ContextResult,
    OutcomeKind,
    RagConfiguration,
    RetrievalOptions,
)

T = TypeVar("T")

DIAGNOSTIC_PREFIX = (
    "Unable to retrieve contextual information from documents at this time. The RAG system encountered an error: "
)


def diagnostic_outcome(message: str) -> ContextOutcome:
    """Diagnostic text as context, no sources, token count of the text."""
    context = f"{DIAGNOSTIC_PREFIX}{message}"
    return ContextOutcome(
        kind=OutcomeKind.DIAGNOSTIC,
        result=ContextResult(context=context, sources=[], token_count=estimate_tokens(context)),
        error=message,
    )


def empty_outcome(error: str | None = None) -> ContextOutcome:
    return ContextOutcome(kind=OutcomeKind.EMPTY, result=ContextResult.empty(), error=error)


class _StageTimeoutError(RagError):
    def __init__(self, stage: str, seconds: float):
        self.stage = stage
        super().__init__(f"{stage} timed out after {seconds:g}s")


class ContextOrchestrator:
    """Produces prompt context for one AI instance, falling back to web search on a miss."""

    def __init__(
        self,
        *,
        config_repository: RagConfigRepository,
        embedding_factory: EmbeddingProviderFactory,
        retriever: DocumentRetriever,
        web_search: WebSearchProvider | None = None,
        summarizer: WebSearchSummarizer | None = None,
        settings: Settings | None = None,
    ):
        """Initialize orchestrator.

        Args:
            config_repository: Source of per-instance configuration
            embedding_factory: Builds the embedding provider named by the configuration
            retriever: Instance-scoped document retriever
            web_search: Web search used on a miss; no fallback when None
            summarizer: Summarizer for web search text; no fallback when None
            settings: Defaults and deadlines
        """
        self.config_repository = config_repository
        self.embedding_factory = embedding_factory
        self.retriever = retriever
        self.web_search = web_search
        self.summarizer = summarizer
        self.settings = settings or default_settings

    async def get_context(self, query: str, options: ContextOptions) -> ContextResult:
        """Get prompt context for a query.

        Args:
            query: Natural-language query
            options: Instance id and per-call overrides

        Returns:
            ContextResult; empty on a miss, diagnostic text on failure
        """
        outcome = await self.resolve(query, options)
        return outcome.result

    async def resolve(self, query: str, options: ContextOptions) -> ContextOutcome:
        """Run the pipeline and report how it ended."""
        deadline = self.settings.rag_request_timeout_seconds
        try:
            outcome = await asyncio.wait_for(self._run(query, options), timeout=deadline)
        except TimeoutError:
            logger.warning(
                "RAG request deadline exceeded, returning empty context",
                instance_id=options.instance_id,
                timeout=deadline,
            )
            return empty_outcome(f"request timed out after {deadline:g}s")
        except Exception as e:
            logger.exception("Unexpected error in RAG context pipeline", instance_id=options.instance_id)
            return diagnostic_outcome(str(e))

        logger.info(
            "RAG context resolved",
            instance_id=options.instance_id,
            outcome=outcome.kind.value,
            sources=len(outcome.result.sources),
            token_count=outcome.result.token_count,
        )
        return outcome

    async def _stage(self, stage: str, awaitable: Awaitable[T]) -> T:
        seconds = self.settings.rag_stage_timeout_seconds
        try:
            return await asyncio.wait_for(awaitable, timeout=seconds)
        except TimeoutError as e:
            raise _StageTimeoutError(stage, seconds) from e

    async def _load_configuration(self, options: ContextOptions) -> RagConfiguration:
        stored: StoredRagConfiguration | None = None
        try:
            stored = await self._stage("configuration lookup", self.config_repository.load(options.instance_id))
        except ConfigurationMissingError:
            logger.info("No RAG configuration found, using defaults", instance_id=options.instance_id)
        except Exception as e:
            logger.warning(
                "RAG configuration lookup failed, using defaults",
                instance_id=options.instance_id,
                error=str(e),
            )

        try:
            return resolve_configuration(stored, options, self.settings)
        except ValueError as e:
            raise ConfigurationError(f"Invalid RAG configuration for {options.instance_id}: {e}") from e

    async def _run(self, query: str, options: ContextOptions) -> ContextOutcome:
        instance_id = options.instance_id
        logger.info("Retrieving RAG context", instance_id=instance_id, query=query)

        try:
            config = await self._load_configuration(options)
            provider = self.embedding_factory.create(
                config.embedding_provider,
                config.embedding_model,
                track_usage=config.track_token_usage,
            )
            embedding = await self._stage("embedding", provider.generate_embedding(query, instance_id))
        except RagError as e:
            logger.error("Embedding stage failed", instance_id=instance_id, error=str(e))
            return diagnostic_outcome(str(e))

        try:
            retrieval = await self._stage(
                "retrieval",
                self.retriever.retrieve_documents(
                    embedding.embedding,
                    RetrievalOptions(
                        instance_id=instance_id,
                        max_chunks=config.max_chunks,
                        similarity_threshold=config.similarity_threshold,
                        filter=options.filter,
                    ),
                ),
            )
        except RagError as e:
            logger.error("Retrieval stage failed", instance_id=instance_id, error=str(e))
            return diagnostic_outcome(str(e))

        result = build_context(
            retrieval.documents,
            ContextBuilderOptions(
                max_context_length=options.max_tokens or self.settings.rag_default_max_tokens,
                format_as_json=False,
                include_metadata=True,
                deduplicate=config.enable_deduplication,
            ),
        )

        if result.sources:
            return ContextOutcome(kind=OutcomeKind.HIT, result=result)

        if not config.enable_fallback_search:
            log_fallback(instance_id, "disabled")
            return empty_outcome()

        return await self._web_search_fallback(query, instance_id, config)

    async def _web_search_fallback(self, query: str, instance_id: str, config: RagConfiguration) -> ContextOutcome:
        if self.web_search is None or self.summarizer is None:
            log_fallback(instance_id, "unavailable")
            return empty_outcome()

        log_fallback(instance_id, "web_search", query=query)
        try:
            response = await self._stage("web search", self.web_search.search(query, max_results=DEFAULT_MAX_RESULTS))
        except Exception as e:
            logger.warning("Web search failed, returning empty context", instance_id=instance_id, error=str(e))
            return empty_outcome(str(e))

        if not response.has_content:
            log_fallback(instance_id, "no_results")
            return empty_outcome()

        try:
            summary = await self._stage(
                "summarization",
                self.summarizer.summarize(response.context, instance_id, track_usage=config.track_token_usage),
            )
        except Exception as e:
            logger.warning("Web search summarization failed, returning empty context", instance_id=instance_id, error=str(e))
            return empty_outcome(str(e))

        log_fallback(instance_id, "summarized", sources=len(response.sources), total_tokens=summary.usage.total_tokens)
        return ContextOutcome(
            kind=OutcomeKind.WEB_SEARCH,
            result=ContextResult(
                context=summary.text,
                sources=response.sources,
                token_count=summary.usage.total_tokens,
            ),
        )
