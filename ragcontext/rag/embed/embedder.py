"""Query embedding providers.

This module defines the embedding provider contract and the
OpenAI-compatible REST implementation used for Fireworks and OpenAI.
Providers are built by the factory in ragcontext.rag.embed.factory; backend
SDK clients are created through an injected client factory.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable

from loguru import logger
from openai import APIError, APIStatusError, AsyncOpenAI

from ragcontext.core.token_counting import estimate_tokens
from ragcontext.rag.errors import CredentialMissingError, EmbeddingProviderError
from ragcontext.rag.types import EmbeddingResult, OperationType
from ragcontext.rag.usage import UsageTracker

OpenAIClientFactory = Callable[[str, str], AsyncOpenAI]


def default_openai_client_factory(api_key: str, base_url: str) -> AsyncOpenAI:
    """Build an AsyncOpenAI client with SDK retries disabled."""
    return AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)


class EmbeddingProvider(ABC):
    """Turns a query into a vector and reports the tokens it consumed."""

    provider_name: str

    def __init__(
        self,
        model_id: str,
        *,
        usage_tracker: UsageTracker | None = None,
        track_usage: bool = True,
    ):
        self.model_id = model_id
        self.usage_tracker = usage_tracker
        self.track_usage = track_usage

    async def generate_embedding(self, text: str, instance_id: str | None = None) -> EmbeddingResult:
        """Embed a single text.

        Args:
            text: Text to embed
            instance_id: Owning AI instance, used for usage accounting

        Returns:
            EmbeddingResult with the vector and token count

        Raises:
            CredentialMissingError: If the backend has no credentials
            EmbeddingProviderError: If the backend call fails
        """
        embedding, reported_tokens = await self._embed(text)
        token_count = reported_tokens if reported_tokens is not None else estimate_tokens(text)

        logger.debug(
            "Generated embedding",
            provider=self.provider_name,
            model=self.model_id,
            dimensions=len(embedding),
            token_count=token_count,
        )

        if self.track_usage and instance_id and self.usage_tracker is not None:
            await self.usage_tracker.record(
                instance_id=instance_id,
                provider=self.provider_name,
                model=self.model_id,
                operation_type=OperationType.EMBEDDING,
                input_tokens=token_count,
                output_tokens=0,
            )

        return EmbeddingResult(embedding=embedding, token_count=token_count)

    @abstractmethod
    async def _embed(self, text: str) -> tuple[list[float], int | None]:
        """Call the backend.

        Returns:
            Tuple of (vector, backend-reported token count or None)
        """


class OpenAICompatibleEmbeddingProvider(EmbeddingProvider):
    """Embeddings over the OpenAI-compatible REST API.

    Request `{model, input}`, response `{data: [{embedding}], usage: {total_tokens}}`.
    """

    def __init__(
        self,
        provider_name: str,
        model_id: str,
        *,
        api_key: str,
        base_url: str,
        client_factory: OpenAIClientFactory = default_openai_client_factory,
        usage_tracker: UsageTracker | None = None,
        track_usage: bool = True,
    ):
        super().__init__(model_id, usage_tracker=usage_tracker, track_usage=track_usage)
        self.provider_name = provider_name
        self.api_key = api_key
        self.base_url = base_url
        self.client_factory = client_factory

    async def _embed(self, text: str) -> tuple[list[float], int | None]:
        if not self.api_key:
            raise CredentialMissingError(self.provider_name, f"{self.provider_name} API key is required")

        client = self.client_factory(self.api_key, self.base_url)
        try:
            async with client:
                response = await client.embeddings.create(model=self.model_id, input=text)
        except APIStatusError as e:
            raise EmbeddingProviderError(self.provider_name, e.message, status_code=e.status_code) from e
        except APIError as e:
            raise EmbeddingProviderError(self.provider_name, str(e)) from e

        if not response.data or not response.data[0].embedding:
            raise EmbeddingProviderError(self.provider_name, "response contained no embedding")

        usage = getattr(response, "usage", None)
        total_tokens = getattr(usage, "total_tokens", None) if usage is not None else None
        return list(response.data[0].embedding), total_tokens
