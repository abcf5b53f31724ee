"""Retriever for semantic search over indexed chunks.

Handles:
- Query embedding generation
- Vector search with metadata filters
- Score thresholding
- Context assembly for LLM prompts
"""
import time
from typing import Any, Dict, List, Optional, Union
import structlog

from ragkit.errors import EmbeddingError, NotFoundError
from ragkit.models import (
    RESERVED_METADATA_PREFIX,
    QueryMetadata,
    QueryOptions,
    QueryResult,
    SearchResult,
)
from ragkit.rag.interfaces import EmbeddingGenerator, VectorStore

logger = structlog.get_logger()

CONTEXT_SEPARATOR = "\n---\n\n"


def _coerce_options(options: Optional[Union[QueryOptions, Dict[str, Any]]]) -> QueryOptions:
    if options is None:
        return QueryOptions()
    if isinstance(options, dict):
        return QueryOptions(**options)
    return options


def assemble_context(
    results: List[SearchResult],
    include_metadata: bool = True,
    max_chars: Optional[int] = None,
) -> str:
    """Format ranked results as a context string.

    Each result is labelled with its 1-based rank and score. Metadata keys
    with the reserved chunking prefix are left out.

    Args:
        results: Ranked search results
        include_metadata: Add a "Metadata:" line per result
        max_chars: Stop adding results once the context would exceed this

    Returns:
        Context string ready for an LLM prompt
    """
    context_parts = []
    total_chars = 0

    for rank, result in enumerate(results, 1):
        part = f"[Document {rank}] (score: {result.score:.3f})\n"

        if include_metadata:
            metadata = ", ".join(
                f"{key}: {value}"
                for key, value in result.document.metadata.items()
                if not key.startswith(RESERVED_METADATA_PREFIX)
            )
            if metadata:
                part += f"Metadata: {metadata}\n"

        part += f"{result.document.content}\n"

        added = len(part) + (len(CONTEXT_SEPARATOR) if context_parts else 0)
        if max_chars and total_chars + added > max_chars:
            logger.debug(
                "context_truncated",
                included=len(context_parts),
                available=len(results),
                max_chars=max_chars,
            )
            break

        context_parts.append(part)
        total_chars += added

    return CONTEXT_SEPARATOR.join(context_parts)


def _build_result(
    query: str,
    results: List[SearchResult],
    context: str,
    start_time: float,
) -> QueryResult:
    average = sum(r.score for r in results) / len(results) if results else 0.0
    return QueryResult(
        query=query,
        results=results,
        context=context,
        metadata=QueryMetadata(
            total_results=len(results),
            duration_ms=(time.perf_counter() - start_time) * 1000,
            average_score=average,
        ),
    )


class Retriever:
    """Semantic retriever for RAG pipeline."""

    def __init__(self, store: VectorStore, embedder: EmbeddingGenerator):
        """Initialize the retriever.

        Args:
            store: Vector store to search
            embedder: Embedding generator used for query texts
        """
        self.store = store
        self.embedder = embedder

        logger.info(
            "retriever_initialized",
            store=type(store).__name__,
            embedder=type(embedder).__name__,
        )

    async def embed_query(self, query: str) -> List[float]:
        """Embed a single query text.

        Raises:
            EmbeddingError: If the embedder returns no vector
        """
        embeddings = await self.embedder.embed([query])
        if len(embeddings) == 0 or len(embeddings[0]) == 0:
            raise EmbeddingError("Empty embedding returned for query")
        return embeddings[0]

    async def query(
        self,
        query: str,
        options: Optional[Union[QueryOptions, Dict[str, Any]]] = None,
    ) -> QueryResult:
        """Retrieve relevant chunks for a query.

        Args:
            query: User query text
            options: QueryOptions or a dict of its fields

        Returns:
            QueryResult with results at or above the threshold, best first

        Raises:
            pydantic.ValidationError: If the options are malformed
            Exception: Embedder and store failures propagate unchanged
        """
        options = _coerce_options(options)
        start_time = time.perf_counter()

        logger.info("retrieval_started", query_length=len(query), limit=options.limit)

        try:
            query_embedding = await self.embed_query(query)
            search_results = await self.store.search(
                query_embedding, options.limit, options.filter
            )
        except Exception as e:
            logger.error(
                "retrieval_failed",
                error=str(e),
                error_type=type(e).__name__,
                query_preview=query[:100],
            )
            raise

        results = [r for r in search_results if r.score >= options.threshold]
        context = assemble_context(
            results, options.include_metadata, options.max_context_chars
        )

        result = _build_result(query, results, context, start_time)

        logger.info(
            "retrieval_completed",
            query_length=len(query),
            results_returned=len(results),
            top_score=results[0].score if results else None,
        )

        return result

    async def search(
        self,
        query: str,
        options: Optional[Union[QueryOptions, Dict[str, Any]]] = None,
    ) -> QueryResult:
        """Perform semantic search (alias for query)."""
        return await self.query(query, options)

    async def find_similar(
        self,
        chunk_id: str,
        options: Optional[Union[QueryOptions, Dict[str, Any]]] = None,
    ) -> QueryResult:
        """Find chunks similar to a stored chunk, excluding the chunk itself.

        Args:
            chunk_id: Id of a stored chunk
            options: QueryOptions or a dict of its fields

        Returns:
            QueryResult with at most ``limit`` neighbours

        Raises:
            NotFoundError: If the chunk does not exist or has no embedding
        """
        options = _coerce_options(options)

        document = await self.store.get_document(chunk_id)
        if document is None:
            raise NotFoundError(f"Document {chunk_id} not found")
        if document.embedding is None:
            raise NotFoundError(f"Document {chunk_id} has no embedding")

        start_time = time.perf_counter()

        # One extra slot for the chunk matching itself
        search_results = await self.store.search(
            document.embedding, options.limit + 1, options.filter
        )

        results = [
            r
            for r in search_results
            if r.document.id != chunk_id and r.score >= options.threshold
        ][: options.limit]

        context = assemble_context(
            results, options.include_metadata, options.max_context_chars
        )

        logger.info(
            "similar_chunks_found",
            chunk_id=chunk_id,
            results_returned=len(results),
        )

        return _build_result(f"[Similar to {chunk_id}]", results, context, start_time)
