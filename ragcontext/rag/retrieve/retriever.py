"""Instance-scoped document retrieval.

Pipeline: server-side similarity search → scope check → threshold →
metadata filter. When the search function is missing from the datastore,
the local nearest-neighbor ordering is used instead.
"""

from loguru import logger

from ragcontext.rag.errors import RetrievalError, SearchFunctionMissingError
from ragcontext.rag.index.document_store import DocumentStore
from ragcontext.rag.logging import log_retrieval
from ragcontext.rag.retrieve.filters import exclude_foreign_documents, filter_by_metadata, filter_by_threshold
from ragcontext.rag.types import RetrievalOptions, RetrievalResult


class DocumentRetriever:
    """Retrieves the documents of one AI instance closest to a query vector."""

    def __init__(self, store: DocumentStore):
        """Initialize retriever.

        Args:
            store: Document store holding the instance documents
        """
        self.store = store

    async def retrieve_documents(self, query_vector: list[float], options: RetrievalOptions) -> RetrievalResult:
        """Retrieve documents for a query vector.

        Args:
            query_vector: Query embedding
            options: Instance scope, limit, threshold and metadata filter

        Returns:
            RetrievalResult; total_found is the count before threshold and metadata filtering

        Raises:
            RetrievalError: If the search fails for any reason other than a
                missing search function, or the fallback query fails
        """
        fallback_used = False
        try:
            documents = await self.store.search(
                query_vector,
                options.similarity_threshold,
                options.max_chunks,
                options.instance_id,
            )
        except SearchFunctionMissingError as e:
            logger.warning(
                "Similarity search function unavailable, using nearest-neighbor fallback",
                instance_id=options.instance_id,
                error=str(e),
            )
            fallback_used = True
            documents = await self.store.nearest_neighbors(query_vector, options.instance_id, options.max_chunks)
        except RetrievalError:
            raise
        except Exception as e:
            raise RetrievalError(f"Error retrieving documents: {e}") from e

        documents = exclude_foreign_documents(documents, options.instance_id)
        total_found = len(documents)
        documents = filter_by_threshold(documents, options.similarity_threshold)
        documents = filter_by_metadata(documents, options.filter)

        log_retrieval(
            options.instance_id,
            options.max_chunks,
            options.similarity_threshold,
            documents=documents,
            total_found=total_found,
            filter_spec=options.filter,
            fallback_used=fallback_used,
        )

        return RetrievalResult(documents=documents, total_found=total_found, fallback_used=fallback_used)
