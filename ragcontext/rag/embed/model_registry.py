"""Embedding backend registry.

This module pins the closed set of embedding backends and their default
models so that the factory can reject unknown names instead of quietly
routing to another backend.
"""

from enum import StrEnum

from ragcontext.rag.errors import ConfigurationError


class EmbeddingBackend(StrEnum):
    """Supported embedding backends."""

    FIREWORKS = "fireworks"
    OPENAI = "openai"
    BEDROCK = "bedrock"


DEFAULT_MODELS: dict[EmbeddingBackend, str] = {
    EmbeddingBackend.FIREWORKS: "accounts/fireworks/models/deepseek-v3-embedding",
    EmbeddingBackend.OPENAI: "text-embedding-3-small",
    EmbeddingBackend.BEDROCK: "amazon.titan-embed-text-v1",
}

# Short model names accepted in rag_configurations.embedding_model_id
FIREWORKS_MODEL_ALIASES: dict[str, str] = {
    "deepseek-v3": "accounts/fireworks/models/deepseek-v3-embedding",
    "deepseek-v2-lite": "accounts/fireworks/models/deepseek-v2-lite-embedding",
}


def parse_backend(name: str) -> EmbeddingBackend:
    """Resolve a provider name to a backend.

    Args:
        name: Provider name (case-insensitive)

    Returns:
        Matching EmbeddingBackend

    Raises:
        ConfigurationError: If the name is not a supported backend
    """
    normalized = (name or "").strip().lower()
    try:
        return EmbeddingBackend(normalized)
    except ValueError as e:
        supported = ", ".join(b.value for b in EmbeddingBackend)
        raise ConfigurationError(f"Unknown embedding provider '{name}'. Supported providers: {supported}") from e


def resolve_model_id(backend: EmbeddingBackend, model: str | None) -> str:
    """Map a configured model name to the id the backend expects.

    Fireworks aliases are expanded; any other id is sent as given. An empty
    model name selects the backend default.
    """
    if not model:
        return DEFAULT_MODELS[backend]
    if backend == EmbeddingBackend.FIREWORKS:
        return FIREWORKS_MODEL_ALIASES.get(model, model)
    return model
