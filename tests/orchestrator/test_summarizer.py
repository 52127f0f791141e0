"""Tests for web search summarization."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from ragcontext.integrations.completion.client import CompletionResponse, CompletionUsage
from ragcontext.orchestrator.summarizer import (
    SUMMARY_SYSTEM_PROMPT,
    WEB_SEARCH_DISCLAIMER,
    WebSearchSummarizer,
    build_summary_messages,
)
from ragcontext.rag.errors import SummarizationError


def _summarizer(response=None, error=None, tracker=None) -> tuple[WebSearchSummarizer, MagicMock]:
    completion = MagicMock()
    completion.invoke = AsyncMock(return_value=response, side_effect=error)
    summarizer = WebSearchSummarizer(
        completion,
        provider="fireworks",
        model_id="accounts/fireworks/models/claude-3-haiku-20240307",
        usage_tracker=tracker,
    )
    return summarizer, completion


def test_prompt_embeds_search_text():
    messages = build_summary_messages("RAW SEARCH TEXT")

    assert messages[0] == {"role": "system", "content": SUMMARY_SYSTEM_PROMPT}
    assert messages[1]["role"] == "user"
    assert "Search Results:\nRAW SEARCH TEXT\n" in messages[1]["content"]
    assert messages[1]["content"].endswith("5. Is between 200-500 words")


@pytest.mark.asyncio
async def test_summary_request_parameters():
    summarizer, completion = _summarizer(
        CompletionResponse(success=True, content="Sum", usage=CompletionUsage(10, 2, 12))
    )

    summary = await summarizer.summarize("raw", "inst-1", track_usage=False)

    request = completion.invoke.await_args.args[0]
    assert request.max_tokens == 1000
    assert request.temperature == 0.3
    assert request.provider == "fireworks"
    assert request.instance_id == "inst-1"
    assert summary.text == f"Sum{WEB_SEARCH_DISCLAIMER}"
    assert summary.usage.total_tokens == 12


@pytest.mark.asyncio
async def test_records_usage_when_tracking():
    tracker = MagicMock()
    tracker.record = AsyncMock(return_value=None)
    summarizer, _ = _summarizer(
        CompletionResponse(success=True, content="Sum", usage=CompletionUsage(10, 2, 12)), tracker=tracker
    )

    await summarizer.summarize("raw", "inst-1")

    kwargs = tracker.record.await_args.kwargs
    assert (kwargs["input_tokens"], kwargs["output_tokens"]) == (10, 2)
    assert kwargs["operation_type"] == "summarization"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        CompletionResponse(success=False, error="upstream 500"),
        CompletionResponse(success=True, content=""),
    ],
)
async def test_unsuccessful_completion_raises(response):
    summarizer, _ = _summarizer(response)

    with pytest.raises(SummarizationError):
        await summarizer.summarize("raw", "inst-1")


@pytest.mark.asyncio
async def test_completion_exception_wrapped():
    summarizer, _ = _summarizer(error=RuntimeError("socket closed"))

    with pytest.raises(SummarizationError, match="socket closed"):
        await summarizer.summarize("raw", "inst-1")
