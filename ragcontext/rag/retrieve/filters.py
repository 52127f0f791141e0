"""Metadata filters applied after retrieval.

Filters are equality checks against document metadata. A few caller-facing
keys map to stored metadata keys; everything else matches the key as given.
Documents without metadata never pass a non-empty filter.
"""

from typing import Any

from ragcontext.rag.types import Document

# Caller filter key -> metadata key
FILTER_KEY_ALIASES: dict[str, str] = {
    "documentId": "document_id",
    "ownerId": "owner_id",
    "owner_id": "owner_id",
}

SCOPE_METADATA_KEY = "ai_instance_id"


def matches_filter(document: Document, filter_spec: dict[str, Any] | None) -> bool:
    """Check a document against an equality filter.

    Args:
        document: Retrieved document
        filter_spec: Mapping of filter key to required value

    Returns:
        True if every filter entry matches the document metadata
    """
    if not filter_spec:
        return True
    if not document.metadata:
        return False

    for key, expected in filter_spec.items():
        metadata_key = FILTER_KEY_ALIASES.get(key, key)
        if metadata_key not in document.metadata or document.metadata[metadata_key] != expected:
            return False
    return True


def filter_by_metadata(documents: list[Document], filter_spec: dict[str, Any] | None) -> list[Document]:
    """Keep documents whose metadata satisfies the filter, preserving order."""
    if not filter_spec:
        return documents
    return [doc for doc in documents if matches_filter(doc, filter_spec)]


def filter_by_threshold(documents: list[Document], threshold: float) -> list[Document]:
    """Keep documents scored at or above the threshold. Unscored documents are kept."""
    return [doc for doc in documents if doc.score is None or doc.score >= threshold]


def exclude_foreign_documents(documents: list[Document], instance_id: str) -> list[Document]:
    """Drop documents whose metadata names a different owning instance."""
    return [
        doc
        for doc in documents
        if SCOPE_METADATA_KEY not in doc.metadata or str(doc.metadata[SCOPE_METADATA_KEY]) == instance_id
    ]
