"""Embedding provider factory.

Maps a provider name and model id to a concrete EmbeddingProvider.
Unknown provider names fail with ConfigurationError.
"""

from loguru import logger

from ragcontext.config.settings import Settings, settings as default_settings
from ragcontext.rag.embed.bedrock import (
    BedrockClientFactory,
    BedrockEmbeddingProvider,
    default_bedrock_client_factory,
)
from ragcontext.rag.embed.embedder import (
    EmbeddingProvider,
    OpenAIClientFactory,
    OpenAICompatibleEmbeddingProvider,
    default_openai_client_factory,
)
from ragcontext.rag.embed.model_registry import EmbeddingBackend, parse_backend, resolve_model_id
from ragcontext.rag.usage import UsageTracker


def create_embedding_provider(
    provider: str,
    model: str | None = None,
    *,
    settings: Settings | None = None,
    usage_tracker: UsageTracker | None = None,
    track_usage: bool = True,
    openai_client_factory: OpenAIClientFactory = default_openai_client_factory,
    bedrock_client_factory: BedrockClientFactory = default_bedrock_client_factory,
) -> EmbeddingProvider:
    """Create an embedding provider.

    Args:
        provider: Provider name ("fireworks", "openai" or "bedrock")
        model: Model id or alias; empty selects the backend default
        settings: Settings holding credentials and base URLs
        usage_tracker: Tracker that receives embedding usage records
        track_usage: Whether to emit usage records
        openai_client_factory: Builds clients for the REST backends
        bedrock_client_factory: Builds bedrock-runtime clients

    Returns:
        EmbeddingProvider for the requested backend

    Raises:
        ConfigurationError: If the provider name is not supported
    """
    cfg = settings or default_settings
    backend = parse_backend(provider)
    model_id = resolve_model_id(backend, model)

    logger.debug("Creating embedding provider", provider=backend.value, model=model_id)

    if backend == EmbeddingBackend.BEDROCK:
        return BedrockEmbeddingProvider(
            model_id,
            region=cfg.aws_region,
            access_key_id=cfg.aws_access_key_id,
            secret_access_key=cfg.aws_secret_access_key,
            client_factory=bedrock_client_factory,
            usage_tracker=usage_tracker,
            track_usage=track_usage,
        )

    if backend == EmbeddingBackend.FIREWORKS:
        api_key, base_url = cfg.fireworks_api_key, cfg.fireworks_base_url
    else:
        api_key, base_url = cfg.openai_api_key, cfg.openai_base_url

    return OpenAICompatibleEmbeddingProvider(
        backend.value,
        model_id,
        api_key=api_key,
        base_url=base_url,
        client_factory=openai_client_factory,
        usage_tracker=usage_tracker,
        track_usage=track_usage,
    )


class EmbeddingProviderFactory:
    """Per-process factory bound to settings, client factories and the usage tracker.

    The orchestrator asks it for a provider once per request, after the
    instance configuration has been resolved.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        usage_tracker: UsageTracker | None = None,
        openai_client_factory: OpenAIClientFactory = default_openai_client_factory,
        bedrock_client_factory: BedrockClientFactory = default_bedrock_client_factory,
    ):
        self.settings = settings or default_settings
        self.usage_tracker = usage_tracker
        self.openai_client_factory = openai_client_factory
        self.bedrock_client_factory = bedrock_client_factory

    def create(self, provider: str, model: str | None, *, track_usage: bool = True) -> EmbeddingProvider:
        return create_embedding_provider(
            provider,
            model,
            settings=self.settings,
            usage_tracker=self.usage_tracker,
            track_usage=track_usage,
            openai_client_factory=self.openai_client_factory,
            bedrock_client_factory=self.bedrock_client_factory,
        )
