"""Chat completion client used to summarize web search results.

One OpenAI-compatible client covers Fireworks, OpenAI and OpenRouter; they
differ only in API key and base URL.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from loguru import logger
from openai import APIError, APIStatusError

from ragcontext.config.settings import Settings, settings as default_settings
from ragcontext.core.token_counting import estimate_tokens, estimate_total_tokens
from ragcontext.rag.embed.embedder import OpenAIClientFactory, default_openai_client_factory
from ragcontext.rag.errors import ConfigurationError

SUPPORTED_PROVIDERS = ("fireworks", "openai", "openrouter")


@dataclass(frozen=True)
class CompletionUsage:
    context_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


@dataclass(frozen=True)
class CompletionRequest:
    """One chat completion call.

    messages are OpenAI-style `{"role": ..., "content": ...}` dicts.
    """

    provider: str
    model_id: str
    messages: list[dict[str, str]]
    max_tokens: int = 1000
    temperature: float = 0.7
    instance_id: str | None = None


@dataclass(frozen=True)
class CompletionResponse:
    """Outcome of a completion call. Failures are reported, not raised."""

    success: bool
    content: str = ""
    usage: CompletionUsage = field(default_factory=CompletionUsage)
    error: str | None = None


class CompletionProvider(ABC):
    @abstractmethod
    async def invoke(self, request: CompletionRequest) -> CompletionResponse:
        """Run a chat completion.

        Raises:
            ConfigurationError: If the request names an unsupported provider
        """


class OpenAICompatibleCompletionProvider(CompletionProvider):
    """CompletionProvider for OpenAI-compatible chat completion APIs."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        client_factory: OpenAIClientFactory = default_openai_client_factory,
    ):
        self.settings = settings or default_settings
        self.client_factory = client_factory

    def _endpoint(self, provider: str) -> tuple[str, str]:
        name = (provider or "").strip().lower()
        if name == "fireworks":
            return self.settings.fireworks_api_key, self.settings.fireworks_base_url
        if name == "openai":
            return self.settings.openai_api_key, self.settings.openai_base_url
        if name == "openrouter":
            return self.settings.openrouter_api_key, self.settings.openrouter_base_url
        raise ConfigurationError(
            f"Unknown completion provider '{provider}'. Supported providers: {', '.join(SUPPORTED_PROVIDERS)}"
        )

    async def invoke(self, request: CompletionRequest) -> CompletionResponse:
        api_key, base_url = self._endpoint(request.provider)
        if not api_key:
            return CompletionResponse(success=False, error=f"{request.provider} API key is required")

        client = self.client_factory(api_key, base_url)
        try:
            async with client:
                response = await client.chat.completions.create(
                    model=request.model_id,
                    messages=request.messages,
                    max_tokens=request.max_tokens,
                    temperature=request.temperature,
                )
        except APIStatusError as e:
            logger.warning(
                "Completion request failed",
                provider=request.provider,
                model=request.model_id,
                status_code=e.status_code,
                error=e.message,
            )
            return CompletionResponse(success=False, error=f"{e.status_code}: {e.message}")
        except APIError as e:
            logger.warning("Completion request failed", provider=request.provider, model=request.model_id, error=str(e))
            return CompletionResponse(success=False, error=str(e))

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""

        if response.usage is not None:
            usage = CompletionUsage(
                context_tokens=response.usage.prompt_tokens,
                completion_tokens=response.usage.completion_tokens,
                total_tokens=response.usage.total_tokens,
            )
        else:
            prompt_tokens = estimate_total_tokens([m.get("content", "") for m in request.messages])
            completion_tokens = estimate_tokens(content)
            usage = CompletionUsage(
                context_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            )

        return CompletionResponse(success=True, content=content, usage=usage)
