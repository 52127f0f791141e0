"""Observability logging for RAG retrieval.

This module logs retrieval, context assembly and fallback decisions for
debugging and auditability.
"""

from typing import Any

from loguru import logger

from ragcontext.rag.types import ContextResult, Document


def log_retrieval(
    instance_id: str,
    k: int,
    similarity_threshold: float,
    *,
    documents: list[Document],
    total_found: int,
    filter_spec: dict[str, Any] | None = None,
    fallback_used: bool = False,
) -> None:
    """Log a retrieval operation.

    Args:
        instance_id: Owning AI instance
        k: Requested number of documents
        similarity_threshold: Minimum similarity requested
        documents: Documents returned after filtering
        total_found: Documents found before filtering
        filter_spec: Metadata filter applied
        fallback_used: Whether the local nearest-neighbor path answered
    """
    logger.info(
        "rag_retrieval",
        instance_id=instance_id,
        k_requested=k,
        similarity_threshold=similarity_threshold,
        total_found=total_found,
        documents_returned=len(documents),
        document_ids=[doc.id for doc in documents],
        filter_keys=sorted(filter_spec) if filter_spec else [],
        fallback_used=fallback_used,
    )


def log_context_assembly(result: ContextResult, *, input_documents: int, budget: int | None) -> None:
    """Log context assembly.

    Args:
        result: Assembled context
        input_documents: Documents handed to the builder
        budget: Token budget in force, if any
    """
    logger.info(
        "rag_context_assembly",
        input_documents=input_documents,
        emitted_documents=len(result.sources),
        token_count=result.token_count,
        token_budget=budget,
    )


def log_fallback(instance_id: str, stage: str, **fields: Any) -> None:
    """Log a step of the web-search fallback path.

    Args:
        instance_id: Owning AI instance
        stage: Fallback step (e.g., "disabled", "web_search", "summarized")
    """
    logger.info("rag_fallback", instance_id=instance_id, stage=stage, **fields)
