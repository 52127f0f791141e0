"""Canonical RAG types for the context pipeline.

This module defines the data structures that flow between the embedding
provider, the retriever, the context builder and the orchestrator.
Externally visible values (Document, ContextResult, ContextOptions) are
pydantic models so that malformed inputs are rejected at the boundary;
internal stage results are plain dataclasses.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class OperationType(StrEnum):
    """Billable operations recorded in the usage ledger."""

    EMBEDDING = "embedding"
    COMPLETION = "completion"
    SUMMARIZATION = "summarization"


class Document(BaseModel):
    """A retrieved piece of text with provenance.

    Produced per request by the retriever or the web search; never
    persisted by the pipeline.
    """

    id: str | None = None
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    score: float | None = Field(default=None, ge=0.0, le=1.0)
    embedding: list[float] | None = None


class ContextResult(BaseModel):
    """The externally visible unit of work of one get_context call.

    Invariant: sources is empty exactly when context is empty or a
    diagnostic string.
    """

    context: str = ""
    sources: list[Document] = Field(default_factory=list)
    token_count: int = Field(default=0, ge=0)

    @classmethod
    def empty(cls) -> "ContextResult":
        return cls(context="", sources=[], token_count=0)


class ContextOptions(BaseModel):
    """Caller options for get_context.

    Unset fields fall back to the instance's stored configuration, then to
    the service defaults.
    """

    instance_id: str = Field(min_length=1)
    max_chunks: int | None = Field(default=None, gt=0)
    similarity_threshold: float | None = Field(default=None, ge=0.0, le=1.0)
    filter: dict[str, Any] | None = None
    enable_fallback_search: bool | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    embedding_provider: str | None = None
    embedding_model: str | None = None


@dataclass(frozen=True)
class EmbeddingResult:
    """Embedding of one query plus the tokens it consumed."""

    embedding: list[float]
    token_count: int


@dataclass(frozen=True)
class RetrievalOptions:
    """Scope and limits of one retrieval."""

    instance_id: str
    max_chunks: int
    similarity_threshold: float
    filter: dict[str, Any] | None = None


@dataclass
class RetrievalResult:
    """Documents returned by the retriever.

    total_found is the count reported by the search path before threshold
    and metadata filtering, so it may exceed len(documents).
    """

    documents: list[Document]
    total_found: int
    fallback_used: bool = False


@dataclass(frozen=True)
class ContextBuilderOptions:
    """Rendering options for the context builder.

    max_context_length is a token budget; None disables it.
    """

    max_context_length: int | None = 4000
    format_as_json: bool = False
    include_metadata: bool = True
    separator: str = "\n\n"
    deduplicate: bool = True


@dataclass(frozen=True)
class RagConfiguration:
    """Resolved per-instance RAG configuration. Never mutated by the pipeline."""

    embedding_provider: str = "fireworks"
    embedding_model: str = "deepseek-v3"
    max_chunks: int = 5
    similarity_threshold: float = 0.7
    enable_deduplication: bool = True
    track_token_usage: bool = True
    enable_fallback_search: bool = True

    def __post_init__(self) -> None:
        if self.max_chunks <= 0:
            raise ValueError(f"max_chunks must be positive, got {self.max_chunks}")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}")


class OutcomeKind(StrEnum):
    """How a get_context call ended."""

    HIT = "hit"
    WEB_SEARCH = "web_search"
    DIAGNOSTIC = "diagnostic"
    EMPTY = "empty"


@dataclass(frozen=True)
class ContextOutcome:
    """Result of one orchestrator run before it is rendered for the caller.

    error carries the failure message for diagnostic outcomes and the
    swallowed failure, if any, for empty ones.
    """

    kind: OutcomeKind
    result: ContextResult
    error: str | None = None


@dataclass(frozen=True)
class UsageRecord:
    """One append-only usage ledger entry."""

    instance_id: str
    provider: str
    model: str
    operation_type: OperationType
    input_tokens: int
    output_tokens: int
    total_tokens: int
    created_at: datetime
