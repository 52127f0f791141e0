"""Context assembler for retrieved documents.

This module turns retrieved documents into the text block injected into an
LLM prompt: deduplicate, rank by score, render as plain text or JSON, and
keep the result within a token budget.
"""

import json
from typing import Any

from ragcontext.core.token_counting import estimate_tokens
from ragcontext.rag.logging import log_context_assembly
from ragcontext.rag.types import ContextBuilderOptions, ContextResult, Document

FINGERPRINT_LENGTH = 100


def content_fingerprint(document: Document) -> str:
    """Fingerprint used for deduplication: the first 100 characters of content."""
    return document.content[:FINGERPRINT_LENGTH]


def drop_blank_documents(documents: list[Document]) -> list[Document]:
    """Drop documents with no textual content."""
    return [doc for doc in documents if doc.content.strip()]


def deduplicate_documents(documents: list[Document]) -> list[Document]:
    """Drop documents whose fingerprint was already seen.

    The first copy in input order wins, regardless of score.
    """
    seen: set[str] = set()
    unique: list[Document] = []
    for doc in documents:
        fingerprint = content_fingerprint(doc)
        if fingerprint in seen:
            continue
        seen.add(fingerprint)
        unique.append(doc)
    return unique


def rank_documents(documents: list[Document]) -> list[Document]:
    """Stable sort by score descending; a missing score counts as 0."""
    return sorted(documents, key=lambda d: d.score or 0.0, reverse=True)


def select_within_budget(documents: list[Document], budget: int | None) -> list[Document]:
    """Take documents in order while their summed token estimate fits the budget.

    The first document is always taken, even if it alone exceeds the budget.
    """
    if budget is None:
        return documents

    selected: list[Document] = []
    used = 0
    for doc in documents:
        tokens = estimate_tokens(doc.content)
        if selected and used + tokens > budget:
            break
        selected.append(doc)
        used += tokens
    return selected


def _format_metadata_value(value: Any) -> str:
    if isinstance(value, dict | list):
        return json.dumps(value, ensure_ascii=False)
    return str(value)


def format_metadata_line(metadata: dict[str, Any]) -> str:
    """Flatten metadata to `[k: v, k2: v2]`, or "" when there is none."""
    if not metadata:
        return ""
    return "[" + ", ".join(f"{key}: {_format_metadata_value(value)}" for key, value in metadata.items()) + "]"


def render_text(documents: list[Document], *, include_metadata: bool, separator: str) -> str:
    parts: list[str] = []
    for doc in documents:
        metadata_line = format_metadata_line(doc.metadata) if include_metadata else ""
        parts.append(f"{metadata_line}\n{doc.content}" if metadata_line else doc.content)
    return separator.join(parts)


def render_json(documents: list[Document], *, include_metadata: bool) -> str:
    items: list[dict[str, Any]] = []
    for doc in documents:
        item: dict[str, Any] = {"content": doc.content}
        if include_metadata:
            item["metadata"] = doc.metadata
        items.append(item)
    return json.dumps(items, indent=2, ensure_ascii=False)


def build_context(documents: list[Document], options: ContextBuilderOptions | None = None) -> ContextResult:
    """Assemble documents into a context block.

    Steps:
    1. Drop documents whose content is blank
    2. Deduplicate by content fingerprint (first copy in input order wins)
    3. Rank by score descending
    4. Keep documents within the token budget
    5. Render as plain text or JSON

    Args:
        documents: Retrieved documents
        options: Rendering options (defaults apply when omitted)

    Returns:
        ContextResult whose sources are the emitted documents and whose
        token_count is the sum of their content estimates
    """
    opts = options or ContextBuilderOptions()

    candidates = drop_blank_documents(documents)
    if opts.deduplicate:
        candidates = deduplicate_documents(candidates)
    ranked = rank_documents(candidates)
    emitted = select_within_budget(ranked, opts.max_context_length)

    if not emitted:
        result = ContextResult.empty()
    else:
        if opts.format_as_json:
            context = render_json(emitted, include_metadata=opts.include_metadata)
        else:
            context = render_text(emitted, include_metadata=opts.include_metadata, separator=opts.separator)
        result = ContextResult(
            context=context,
            sources=emitted,
            token_count=sum(estimate_tokens(doc.content) for doc in emitted),
        )

    log_context_assembly(result, input_documents=len(documents), budget=opts.max_context_length)
    return result
