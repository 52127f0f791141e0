"""Tests for configuration lookup and per-field precedence."""

import pytest

from ragcontext.db.models import RagConfigurationRow
from ragcontext.rag.config_repository import (
    SqlRagConfigRepository,
    StoredRagConfiguration,
    resolve_configuration,
)
from ragcontext.rag.errors import ConfigurationMissingError
from ragcontext.rag.types import ContextOptions


class TestSqlRagConfigRepository:
    @pytest.mark.asyncio
    async def test_loads_stored_row(self, session_factory, db_session):
        db_session.add(
            RagConfigurationRow(
                ai_instance_id="inst-1",
                embedding_provider="bedrock",
                embedding_model_id="amazon.titan-embed-text-v1",
                max_chunks=8,
                similarity_threshold=0.55,
                enable_fallback_search=False,
            )
        )
        db_session.commit()

        stored = await SqlRagConfigRepository(session_factory).load("inst-1")

        assert stored == StoredRagConfiguration(
            embedding_provider="bedrock",
            embedding_model="amazon.titan-embed-text-v1",
            max_chunks=8,
            similarity_threshold=0.55,
            enable_fallback_search=False,
        )

    @pytest.mark.asyncio
    async def test_missing_row_raises(self, session_factory):
        with pytest.raises(ConfigurationMissingError):
            await SqlRagConfigRepository(session_factory).load("unknown")


class TestResolveConfiguration:
    def test_defaults_without_row_or_options(self, test_settings):
        config = resolve_configuration(None, ContextOptions(instance_id="inst-1"), test_settings)

        assert config.embedding_provider == "fireworks"
        assert config.embedding_model == "deepseek-v3"
        assert config.max_chunks == 5
        assert config.similarity_threshold == 0.7
        assert config.enable_deduplication is True
        assert config.track_token_usage is True
        assert config.enable_fallback_search is True

    def test_row_beats_caller_beats_default(self, test_settings):
        stored = StoredRagConfiguration(max_chunks=3)
        options = ContextOptions(instance_id="inst-1", max_chunks=9, similarity_threshold=0.4)

        config = resolve_configuration(stored, options, test_settings)

        assert config.max_chunks == 3
        assert config.similarity_threshold == 0.4

    def test_caller_fallback_flag_applies_when_row_silent(self, test_settings):
        options = ContextOptions(instance_id="inst-1", enable_fallback_search=False)

        config = resolve_configuration(StoredRagConfiguration(), options, test_settings)

        assert config.enable_fallback_search is False

    def test_other_provider_uses_backend_default_model(self, test_settings):
        config = resolve_configuration(
            StoredRagConfiguration(embedding_provider="Bedrock"),
            ContextOptions(instance_id="inst-1"),
            test_settings,
        )

        assert config.embedding_provider == "bedrock"
        assert config.embedding_model == ""

    def test_blank_stored_names_fall_through(self, test_settings):
        """Empty provider and model columns behave like unset ones."""
        config = resolve_configuration(
            StoredRagConfiguration(embedding_provider="", embedding_model="  "),
            ContextOptions(instance_id="inst-1"),
            test_settings,
        )

        assert config.embedding_provider == "fireworks"
        assert config.embedding_model == "deepseek-v3"

    def test_blank_stored_provider_yields_to_caller(self, test_settings):
        config = resolve_configuration(
            StoredRagConfiguration(embedding_provider=""),
            ContextOptions(instance_id="inst-1", embedding_provider="openai", embedding_model="text-embedding-3-small"),
            test_settings,
        )

        assert config.embedding_provider == "openai"
        assert config.embedding_model == "text-embedding-3-small"

    def test_invalid_stored_value_rejected(self, test_settings):
        with pytest.raises(ValueError):
            resolve_configuration(
                StoredRagConfiguration(similarity_threshold=1.5),
                ContextOptions(instance_id="inst-1"),
                test_settings,
            )
