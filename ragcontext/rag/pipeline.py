"""Wiring for the RAG context pipeline.

Builds a ContextOrchestrator from Settings: SQL document store and
configuration repository, usage tracker, embedding provider factory, Brave
web search and the completion-backed summarizer.
"""

from __future__ import annotations

import httpx
from loguru import logger

from ragcontext.config.settings import Settings, settings as default_settings
from ragcontext.core.logger import setup_logger
from ragcontext.db.session import SessionFactory, get_session_factory
from ragcontext.integrations.brave.client import BraveSearchProvider
from ragcontext.integrations.completion.client import OpenAICompatibleCompletionProvider
from ragcontext.orchestrator.context_orchestrator import ContextOrchestrator
from ragcontext.orchestrator.summarizer import WebSearchSummarizer
from ragcontext.rag.config_repository import SqlRagConfigRepository
from ragcontext.rag.embed.embedder import OpenAIClientFactory, default_openai_client_factory
from ragcontext.rag.embed.factory import EmbeddingProviderFactory
from ragcontext.rag.index.document_store import SqlDocumentStore
from ragcontext.rag.retrieve.retriever import DocumentRetriever
from ragcontext.rag.usage import UsageTracker


def build_context_orchestrator(
    settings: Settings | None = None,
    session_factory: SessionFactory | None = None,
    *,
    openai_client_factory: OpenAIClientFactory = default_openai_client_factory,
    http_client: httpx.AsyncClient | None = None,
    configure_logging: bool = False,
) -> ContextOrchestrator:
    """Build a fully wired orchestrator.

    Args:
        settings: Settings to wire from (defaults to the process settings)
        session_factory: Session factory for all database access (defaults to
            the process-wide factory)
        openai_client_factory: Builds clients for embedding and completion APIs
        http_client: Shared HTTP client for web search
        configure_logging: Install the console logger at LOG_LEVEL first

    Returns:
        ContextOrchestrator ready to serve get_context calls
    """
    cfg = settings or default_settings
    if configure_logging:
        setup_logger(level=cfg.log_level)

    factory = session_factory or get_session_factory()

    usage_tracker = UsageTracker(factory)
    store = SqlDocumentStore(factory, candidate_limit=cfg.rag_fallback_candidate_limit)
    summarizer = WebSearchSummarizer(
        OpenAICompatibleCompletionProvider(cfg, client_factory=openai_client_factory),
        provider=cfg.rag_summarization_provider,
        model_id=cfg.rag_summarization_model,
        usage_tracker=usage_tracker,
    )

    orchestrator = ContextOrchestrator(
        config_repository=SqlRagConfigRepository(factory),
        embedding_factory=EmbeddingProviderFactory(
            cfg,
            usage_tracker=usage_tracker,
            openai_client_factory=openai_client_factory,
        ),
        retriever=DocumentRetriever(store),
        web_search=BraveSearchProvider(settings=cfg, client=http_client),
        summarizer=summarizer,
        settings=cfg,
    )

    logger.info(
        "RAG context pipeline initialized",
        embedding_provider=cfg.rag_default_embedding_provider,
        summarization_provider=cfg.rag_summarization_provider,
        stage_timeout=cfg.rag_stage_timeout_seconds,
        request_timeout=cfg.rag_request_timeout_seconds,
    )
    return orchestrator
