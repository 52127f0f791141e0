"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

from dataclasses import dataclass
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from ragcontext.config.settings import Settings
from ragcontext.db.models import Base
from ragcontext.integrations.brave.client import WebSearchResponse
from ragcontext.integrations.completion.client import CompletionResponse, CompletionUsage
from ragcontext.orchestrator.context_orchestrator import ContextOrchestrator
from ragcontext.orchestrator.summarizer import WebSearchSummarizer
from ragcontext.rag.errors import ConfigurationMissingError
from ragcontext.rag.retrieve.retriever import DocumentRetriever
from ragcontext.rag.types import Document, EmbeddingResult


@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the developer's environment and .env file."""
    return Settings(
        _env_file=None,
        DATABASE_URL="sqlite://",
        FIREWORKS_API_KEY="fw-test-key",
        OPENAI_API_KEY="sk-test-key",
        OPENROUTER_API_KEY="or-test-key",
        AWS_ACCESS_KEY_ID="AKIATEST",
        AWS_SECRET_ACCESS_KEY="secret",
        AWS_REGION="us-east-1",
        BRAVE_SEARCH_API_KEY="brave-test-key",
        RAG_DEFAULT_EMBEDDING_PROVIDER="fireworks",
        RAG_DEFAULT_EMBEDDING_MODEL="deepseek-v3",
        RAG_DEFAULT_MAX_CHUNKS=5,
        RAG_DEFAULT_SIMILARITY_THRESHOLD=0.7,
        RAG_DEFAULT_MAX_TOKENS=4000,
        RAG_STAGE_TIMEOUT_SECONDS=5.0,
        RAG_REQUEST_TIMEOUT_SECONDS=10.0,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def db_engine():
    """In-memory SQLite engine shared across threads.

    StaticPool keeps a single connection so worker threads used by
    asyncio.to_thread see the same database.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@dataclass
class PipelineMocks:
    """Collaborators of a ContextOrchestrator under test."""

    config_repository: MagicMock
    embedding_factory: MagicMock
    embedding_provider: MagicMock
    store: MagicMock
    web_search: MagicMock
    completion_provider: MagicMock
    usage_tracker: MagicMock


@pytest.fixture
def pipeline_mocks() -> PipelineMocks:
    """Mocks for a miss-by-default pipeline with no stored configuration."""
    config_repository = MagicMock()
    config_repository.load = AsyncMock(side_effect=ConfigurationMissingError("inst-1"))

    embedding_provider = MagicMock()
    embedding_provider.generate_embedding = AsyncMock(
        return_value=EmbeddingResult(embedding=[0.1, 0.2, 0.3], token_count=4)
    )
    embedding_factory = MagicMock()
    embedding_factory.create = MagicMock(return_value=embedding_provider)

    store = MagicMock()
    store.search = AsyncMock(return_value=[])
    store.nearest_neighbors = AsyncMock(return_value=[])

    web_search = MagicMock()
    web_search.search = AsyncMock(
        return_value=WebSearchResponse(
            query="q",
            context="From web search:\n\nSource 1: Title\nURL: https://example.org\nDescription\n\n",
            sources=[
                Document(
                    id="web-1",
                    content="Description",
                    metadata={"source": "web", "url": "https://example.org", "title": "Title"},
                )
            ],
        )
    )

    completion_provider = MagicMock()
    completion_provider.invoke = AsyncMock(
        return_value=CompletionResponse(
            success=True,
            content="A short synthesis.",
            usage=CompletionUsage(context_tokens=120, completion_tokens=30, total_tokens=150),
        )
    )

    usage_tracker = MagicMock()
    usage_tracker.record = AsyncMock(return_value=None)

    return PipelineMocks(
        config_repository=config_repository,
        embedding_factory=embedding_factory,
        embedding_provider=embedding_provider,
        store=store,
        web_search=web_search,
        completion_provider=completion_provider,
        usage_tracker=usage_tracker,
    )


@pytest.fixture
def build_orchestrator(pipeline_mocks, test_settings):
    """Factory building a ContextOrchestrator over pipeline_mocks."""

    def _build(settings: Settings | None = None) -> ContextOrchestrator:
        cfg = settings or test_settings
        return ContextOrchestrator(
            config_repository=pipeline_mocks.config_repository,
            embedding_factory=pipeline_mocks.embedding_factory,
            retriever=DocumentRetriever(pipeline_mocks.store),
            web_search=pipeline_mocks.web_search,
            summarizer=WebSearchSummarizer(
                pipeline_mocks.completion_provider,
                provider=cfg.rag_summarization_provider,
                model_id=cfg.rag_summarization_model,
                usage_tracker=pipeline_mocks.usage_tracker,
            ),
            settings=cfg,
        )

    return _build
