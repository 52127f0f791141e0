"""Instance-scoped document store.

The primary search path calls the server-side `match_documents` SQL
function, which ranks documents by vector similarity inside the database.
When that function is not installed, `nearest_neighbors` ranks the
instance's stored embeddings locally with exact cosine similarity.

Both paths take the instance id as a query parameter; neither can return
rows owned by another instance.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Any

import numpy as np
from loguru import logger
from sqlalchemy import select, text
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from ragcontext.db.models import DocumentVector
from ragcontext.db.session import SessionFactory, get_session
from ragcontext.rag.errors import RetrievalError, SearchFunctionMissingError
from ragcontext.rag.types import Document

MATCH_DOCUMENTS_FUNCTION = "match_documents"

# Postgres SQLSTATE for undefined_function
UNDEFINED_FUNCTION_SQLSTATE = "42883"

_MISSING_FUNCTION_MARKERS = ("does not exist", "no such function", "no such table")

MATCH_DOCUMENTS_SQL = text(
    "SELECT id, content, metadata, similarity "
    "FROM match_documents(CAST(:query_embedding AS vector), :match_threshold, :match_count, :p_ai_instance_id)"
)


def clamp_similarity(value: Any) -> float:
    """Coerce a similarity to a float in [0, 1]."""
    return min(1.0, max(0.0, float(value)))


def is_missing_function_error(exc: Exception) -> bool:
    """Check whether a database error means match_documents is not installed.

    Args:
        exc: Error raised by the driver or SQLAlchemy

    Returns:
        True for Postgres undefined_function or a "does not exist" style
        message that names the search function
    """
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == UNDEFINED_FUNCTION_SQLSTATE:
        return True
    message = str(orig if orig is not None else exc).lower()
    return MATCH_DOCUMENTS_FUNCTION in message and any(marker in message for marker in _MISSING_FUNCTION_MARKERS)


def _vector_literal(vector: list[float]) -> str:
    return "[" + ",".join(repr(float(x)) for x in vector) + "]"


class DocumentStore(ABC):
    """Similarity search over the documents of one AI instance."""

    @abstractmethod
    async def search(
        self,
        query_vector: list[float],
        threshold: float,
        limit: int,
        instance_id: str,
    ) -> list[Document]:
        """Server-side similarity search.

        Returns:
            Documents with similarity >= threshold, ranked by the datastore

        Raises:
            SearchFunctionMissingError: If the search function is not installed
            RetrievalError: For any other datastore failure
        """

    @abstractmethod
    async def nearest_neighbors(
        self,
        query_vector: list[float],
        instance_id: str,
        limit: int,
    ) -> list[Document]:
        """Raw nearest-neighbor ordering over the instance's documents.

        Scores are approximate and no threshold is applied.

        Raises:
            RetrievalError: If the query fails
        """


class SqlDocumentStore(DocumentStore):
    """DocumentStore backed by the document_vectors table."""

    def __init__(self, session_factory: SessionFactory | None = None, *, candidate_limit: int = 500):
        """Initialize store.

        Args:
            session_factory: Factory used to open a session per query
            candidate_limit: Rows scanned per instance on the fallback path
        """
        self.session_factory = session_factory
        self.candidate_limit = candidate_limit

    async def search(
        self,
        query_vector: list[float],
        threshold: float,
        limit: int,
        instance_id: str,
    ) -> list[Document]:
        return await asyncio.to_thread(self._search, query_vector, threshold, limit, instance_id)

    async def nearest_neighbors(
        self,
        query_vector: list[float],
        instance_id: str,
        limit: int,
    ) -> list[Document]:
        return await asyncio.to_thread(self._nearest_neighbors, query_vector, instance_id, limit)

    def _search(self, query_vector: list[float], threshold: float, limit: int, instance_id: str) -> list[Document]:
        params = {
            "query_embedding": _vector_literal(query_vector),
            "match_threshold": threshold,
            "match_count": limit,
            "p_ai_instance_id": instance_id,
        }
        try:
            with get_session(self.session_factory) as session:
                rows = session.execute(MATCH_DOCUMENTS_SQL, params).mappings().all()
        except DBAPIError as e:
            if is_missing_function_error(e):
                raise SearchFunctionMissingError(MATCH_DOCUMENTS_FUNCTION) from e
            raise RetrievalError(f"Error retrieving documents: {e.orig}") from e
        except SQLAlchemyError as e:
            raise RetrievalError(f"Error retrieving documents: {e}") from e

        return [
            Document(
                id=str(row["id"]) if row["id"] is not None else None,
                content=row["content"] or "",
                metadata=dict(row["metadata"] or {}),
                score=clamp_similarity(row["similarity"]),
            )
            for row in rows
        ]

    def _nearest_neighbors(self, query_vector: list[float], instance_id: str, limit: int) -> list[Document]:
        stmt = (
            select(DocumentVector)
            .where(DocumentVector.ai_instance_id == instance_id)
            .where(DocumentVector.embedding.is_not(None))
            .order_by(DocumentVector.created_at.desc())
            .limit(self.candidate_limit)
        )
        try:
            with get_session(self.session_factory) as session:
                rows = session.execute(stmt).scalars().all()
                candidates = [
                    (row.id, row.content, dict(row.doc_metadata or {}), list(row.embedding or []))
                    for row in rows
                ]
        except SQLAlchemyError as e:
            raise RetrievalError(f"Error in fallback search: {e}") from e

        query_array = np.array(query_vector, dtype=np.float32)
        query_norm = np.linalg.norm(query_array)
        if query_norm == 0:
            return []

        usable = [c for c in candidates if len(c[3]) == len(query_vector)]
        if len(usable) < len(candidates):
            logger.warning(
                "Skipping stored embeddings with mismatched dimensions",
                instance_id=instance_id,
                skipped=len(candidates) - len(usable),
                expected_dimensions=len(query_vector),
            )
        if not usable:
            return []

        vectors = np.array([c[3] for c in usable], dtype=np.float32)
        norms = np.linalg.norm(vectors, axis=1)
        norms = np.where(norms == 0, 1, norms)
        similarities = np.dot(vectors, query_array) / (norms * query_norm)

        top_indices = np.argsort(-similarities, kind="stable")[:limit]
        return [
            Document(
                id=usable[idx][0],
                content=usable[idx][1],
                metadata=usable[idx][2],
                score=clamp_similarity(similarities[idx]),
            )
            for idx in top_indices
        ]
