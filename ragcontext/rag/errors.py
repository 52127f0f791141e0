"""Canonical RAG error types.

How each error is handled by the context orchestrator:
- ConfigurationMissingError: non-fatal, defaults apply
- ConfigurationError / CredentialMissingError / EmbeddingProviderError:
  fatal for the invocation, rendered as a diagnostic context
- RetrievalError: fatal, except SearchFunctionMissingError which switches
  the retriever to its fallback query path
- WebSearchError / SummarizationError: caught locally, empty context
"""


class RagError(Exception):
    """Base exception for the RAG context pipeline."""


class ConfigurationError(RagError):
    """Raised for invalid configuration, such as an unknown backend name."""


class ConfigurationMissingError(RagError):
    """Raised when an instance has no rag_configurations row."""

    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        super().__init__(f"No RAG configuration found for AI instance {instance_id}")


class CredentialMissingError(RagError):
    """Raised when a backend is called without the credentials it needs.

    Attributes:
        backend: Backend name (e.g., "fireworks", "bedrock", "brave")
    """

    def __init__(self, backend: str, message: str | None = None) -> None:
        self.backend = backend
        super().__init__(message or f"{backend} credentials are required but not configured")


class EmbeddingProviderError(RagError):
    """Raised when an embedding backend call fails.

    Attributes:
        provider: Backend name
        status_code: HTTP status of the failed call, when known
    """

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"Failed to generate embedding with {provider}: {message}")


class RetrievalError(RagError):
    """Raised when document retrieval fails."""


class SearchFunctionMissingError(RetrievalError):
    """Raised when the datastore has no server-side similarity search function."""

    def __init__(self, function_name: str) -> None:
        self.function_name = function_name
        super().__init__(f'function "{function_name}" does not exist')


class WebSearchError(RagError):
    """Raised when the web search backend fails."""


class SummarizationError(RagError):
    """Raised when web search summarization fails."""
