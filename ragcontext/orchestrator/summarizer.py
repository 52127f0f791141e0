"""Summarization of raw web search text."""

from dataclasses import dataclass

from loguru import logger

from ragcontext.integrations.completion.client import (
    CompletionProvider,
    CompletionRequest,
    CompletionUsage,
)
from ragcontext.rag.errors import SummarizationError
from ragcontext.rag.types import OperationType
from ragcontext.rag.usage import UsageTracker

SUMMARY_SYSTEM_PROMPT = "You are a helpful assistant that summarizes search results into concise, informative content."

SUMMARY_USER_PROMPT = """Please summarize the following search results into a comprehensive response. \
Extract the most relevant information and present it in a clear, objective manner. \
Include key facts and details from multiple sources when available.

Search Results:
{search_context}

Create a summary that:
1. Captures the main points and key information
2. Synthesizes information from multiple sources when possible
3. Maintains factual accuracy
4. Is formatted with clear paragraphs and bullet points where appropriate
5. Is between 200-500 words"""

WEB_SEARCH_DISCLAIMER = (
    "\n\n(This information is from web search results and may not be fully accurate. "
    "Refer to the original sources for verification.)"
)

SUMMARY_MAX_TOKENS = 1000
SUMMARY_TEMPERATURE = 0.3


@dataclass(frozen=True)
class WebSummary:
    text: str
    usage: CompletionUsage


def build_summary_messages(search_context: str) -> list[dict[str, str]]:
    return [
        {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
        {"role": "user", "content": SUMMARY_USER_PROMPT.format(search_context=search_context)},
    ]


class WebSearchSummarizer:
    """Condenses web search text into a short synthesis with a disclaimer."""

    def __init__(
        self,
        completion_provider: CompletionProvider,
        *,
        provider: str,
        model_id: str,
        usage_tracker: UsageTracker | None = None,
    ):
        self.completion_provider = completion_provider
        self.provider = provider
        self.model_id = model_id
        self.usage_tracker = usage_tracker

    async def summarize(self, search_context: str, instance_id: str, *, track_usage: bool = True) -> WebSummary:
        """Summarize search text.

        Args:
            search_context: Raw text rendered from the search results
            instance_id: Owning AI instance, used for usage accounting
            track_usage: Whether to record a summarization usage entry

        Returns:
            WebSummary with the disclaimer appended and the completion usage

        Raises:
            SummarizationError: If the completion fails or returns no content
        """
        request = CompletionRequest(
            provider=self.provider,
            model_id=self.model_id,
            messages=build_summary_messages(search_context),
            max_tokens=SUMMARY_MAX_TOKENS,
            temperature=SUMMARY_TEMPERATURE,
            instance_id=instance_id,
        )
        try:
            response = await self.completion_provider.invoke(request)
        except Exception as e:
            raise SummarizationError(f"Failed to summarize web results: {e}") from e

        if not response.success or not response.content:
            raise SummarizationError(f"Failed to summarize web results: {response.error or 'Unknown error'}")

        if track_usage and self.usage_tracker is not None:
            await self.usage_tracker.record(
                instance_id=instance_id,
                provider=self.provider,
                model=self.model_id,
                operation_type=OperationType.SUMMARIZATION,
                input_tokens=response.usage.context_tokens,
                output_tokens=response.usage.completion_tokens,
            )

        logger.info(
            "Web search results summarized",
            instance_id=instance_id,
            total_tokens=response.usage.total_tokens,
        )
        return WebSummary(text=f"{response.content}{WEB_SEARCH_DISCLAIMER}", usage=response.usage)
