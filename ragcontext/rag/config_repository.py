"""Per-instance RAG configuration lookup and resolution.

Every configuration field is resolved independently with the precedence
stored row → caller option → service default.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ragcontext.config.settings import Settings
from ragcontext.db.models import RagConfigurationRow
from ragcontext.db.session import SessionFactory, get_session
from ragcontext.rag.errors import ConfigurationMissingError, RagError
from ragcontext.rag.types import ContextOptions, RagConfiguration


@dataclass(frozen=True)
class StoredRagConfiguration:
    """Values of one rag_configurations row. None means "not configured"."""

    embedding_provider: str | None = None
    embedding_model: str | None = None
    max_chunks: int | None = None
    similarity_threshold: float | None = None
    enable_deduplication: bool | None = None
    track_token_usage: bool | None = None
    enable_fallback_search: bool | None = None


class RagConfigRepository(ABC):
    @abstractmethod
    async def load(self, instance_id: str) -> StoredRagConfiguration:
        """Load the stored configuration of an instance.

        Raises:
            ConfigurationMissingError: If the instance has no configuration row
            RagError: If the lookup fails
        """


class SqlRagConfigRepository(RagConfigRepository):
    """Reads rag_configurations through SQLAlchemy."""

    def __init__(self, session_factory: SessionFactory | None = None):
        self.session_factory = session_factory

    async def load(self, instance_id: str) -> StoredRagConfiguration:
        return await asyncio.to_thread(self._load, instance_id)

    def _load(self, instance_id: str) -> StoredRagConfiguration:
        try:
            with get_session(self.session_factory) as session:
                row = session.execute(
                    select(RagConfigurationRow).where(RagConfigurationRow.ai_instance_id == instance_id)
                ).scalar_one_or_none()
                stored = (
                    None
                    if row is None
                    else StoredRagConfiguration(
                        embedding_provider=row.embedding_provider,
                        embedding_model=row.embedding_model_id,
                        max_chunks=row.max_chunks,
                        similarity_threshold=row.similarity_threshold,
                        enable_deduplication=row.enable_deduplication,
                        track_token_usage=row.track_token_usage,
                        enable_fallback_search=row.enable_fallback_search,
                    )
                )
        except SQLAlchemyError as e:
            raise RagError(f"Failed to load RAG configuration for {instance_id}: {e}") from e

        if stored is None:
            raise ConfigurationMissingError(instance_id)
        return stored


def _first_set(*values):
    for value in values:
        if value is not None:
            return value
    return None


def _first_named(*values: str | None) -> str | None:
    """Like _first_set, but blank strings count as unset."""
    for value in values:
        if value is not None and value.strip():
            return value
    return None


def resolve_configuration(
    stored: StoredRagConfiguration | None,
    options: ContextOptions,
    settings: Settings,
) -> RagConfiguration:
    """Merge stored values, caller options and service defaults field by field.

    When neither the row nor the caller names a model, the default model is
    used only with the default provider; other providers get their own
    backend default.
    """
    row = stored or StoredRagConfiguration()

    provider = _first_named(row.embedding_provider, options.embedding_provider, settings.rag_default_embedding_provider)
    provider = (provider or "").strip().lower()
    default_model = settings.rag_default_embedding_model if provider == settings.rag_default_embedding_provider else ""

    return RagConfiguration(
        embedding_provider=provider,
        embedding_model=_first_named(row.embedding_model, options.embedding_model) or default_model,
        max_chunks=_first_set(row.max_chunks, options.max_chunks, settings.rag_default_max_chunks),
        similarity_threshold=_first_set(
            row.similarity_threshold,
            options.similarity_threshold,
            settings.rag_default_similarity_threshold,
        ),
        enable_deduplication=_first_set(row.enable_deduplication, True),
        track_token_usage=_first_set(row.track_token_usage, True),
        enable_fallback_search=_first_set(row.enable_fallback_search, options.enable_fallback_search, True),
    )
