"""Tests for embedding provider selection."""

from unittest.mock import MagicMock

import pytest

from ragcontext.rag.embed.bedrock import BedrockEmbeddingProvider
from ragcontext.rag.embed.embedder import OpenAICompatibleEmbeddingProvider
from ragcontext.rag.embed.factory import EmbeddingProviderFactory, create_embedding_provider
from ragcontext.rag.embed.model_registry import EmbeddingBackend, parse_backend, resolve_model_id
from ragcontext.rag.errors import ConfigurationError


class TestModelRegistry:
    def test_parse_backend_is_case_insensitive(self):
        assert parse_backend(" Fireworks ") == EmbeddingBackend.FIREWORKS

    def test_unknown_backend_fails(self):
        with pytest.raises(ConfigurationError, match="Unknown embedding provider 'cohere'"):
            parse_backend("cohere")

    def test_fireworks_aliases(self):
        assert (
            resolve_model_id(EmbeddingBackend.FIREWORKS, "deepseek-v3")
            == "accounts/fireworks/models/deepseek-v3-embedding"
        )
        assert (
            resolve_model_id(EmbeddingBackend.FIREWORKS, "deepseek-v2-lite")
            == "accounts/fireworks/models/deepseek-v2-lite-embedding"
        )
        assert resolve_model_id(EmbeddingBackend.FIREWORKS, "custom/model") == "custom/model"

    def test_backend_defaults(self):
        assert resolve_model_id(EmbeddingBackend.BEDROCK, "") == "amazon.titan-embed-text-v1"
        assert resolve_model_id(EmbeddingBackend.OPENAI, None) == "text-embedding-3-small"


class TestCreateEmbeddingProvider:
    def test_fireworks(self, test_settings):
        provider = create_embedding_provider("fireworks", "deepseek-v3", settings=test_settings)

        assert isinstance(provider, OpenAICompatibleEmbeddingProvider)
        assert provider.provider_name == "fireworks"
        assert provider.model_id == "accounts/fireworks/models/deepseek-v3-embedding"
        assert provider.api_key == "fw-test-key"
        assert provider.base_url == test_settings.fireworks_base_url

    def test_openai(self, test_settings):
        provider = create_embedding_provider("openai", "text-embedding-3-large", settings=test_settings)

        assert isinstance(provider, OpenAICompatibleEmbeddingProvider)
        assert provider.provider_name == "openai"
        assert provider.api_key == "sk-test-key"

    def test_bedrock(self, test_settings):
        provider = create_embedding_provider("bedrock", None, settings=test_settings)

        assert isinstance(provider, BedrockEmbeddingProvider)
        assert provider.model_id == "amazon.titan-embed-text-v1"
        assert provider.region == "us-east-1"

    def test_unknown_provider_never_substitutes(self, test_settings):
        with pytest.raises(ConfigurationError):
            create_embedding_provider("anthropic", "x", settings=test_settings)

    def test_factory_passes_tracking_and_clients(self, test_settings):
        tracker = MagicMock()
        client_factory = MagicMock()
        factory = EmbeddingProviderFactory(
            test_settings,
            usage_tracker=tracker,
            openai_client_factory=client_factory,
        )

        provider = factory.create("fireworks", "deepseek-v3", track_usage=False)

        assert provider.usage_tracker is tracker
        assert provider.track_usage is False
        assert provider.client_factory is client_factory
