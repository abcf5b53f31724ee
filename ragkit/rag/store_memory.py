"""In-memory vector store for semantic search.

Handles:
- Embedding dimension enforcement
- Chunk upsert, update, delete and lookup
- Metadata-filtered exact similarity search (full scan)
- Store statistics

The store keeps its own copies of chunks and hands out copies, so callers
cannot desynchronise a stored chunk from its cached vector.

Writes are serialised with an asyncio lock. Searches score a snapshot of
the stored entries, so they never observe a half-applied write.
"""
import asyncio
import copy
from collections.abc import Mapping, Sequence
from dataclasses import fields, replace
from typing import Any, Dict, List, Optional, Tuple, Union
import numpy as np
import structlog

from ragkit import config
from ragkit.errors import (
    DimensionMismatchError,
    InvalidFilterError,
    InvalidQueryError,
    MissingEmbeddingError,
    NotFoundError,
)
from ragkit.models import DocumentChunk, SearchResult, VectorStoreConfig
from ragkit.rag.filters import FilterNode, matches, parse_filter
from ragkit.rag.interfaces import VectorStore
from ragkit.rag.similarity import score_matrix

logger = structlog.get_logger()

_UPDATABLE_FIELDS = {f.name for f in fields(DocumentChunk)} - {"id"}


def _deep_merge(base: Dict[str, Any], update: Mapping) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in update.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _copy_chunk(doc: DocumentChunk, embedding: Any = None) -> DocumentChunk:
    if embedding is None and doc.embedding is not None:
        embedding = list(doc.embedding)
    return replace(doc, metadata=copy.deepcopy(doc.metadata), embedding=embedding)


class InMemoryVectorStore(VectorStore):
    """Volatile vector store with exact cosine / dot / euclidean search."""

    def __init__(
        self,
        store_config: Optional[VectorStoreConfig] = None,
        **kwargs: Any,
    ):
        """Initialize the in-memory vector store.

        Args:
            store_config: Store configuration; alternatively pass its fields
                as keyword arguments (collection_name, embedding_dimensions,
                distance_metric)

        Raises:
            pydantic.ValidationError: If the configuration is invalid
        """
        if store_config is None:
            kwargs.setdefault("distance_metric", config.DISTANCE_METRIC)
            store_config = VectorStoreConfig(**kwargs)
        self.config = store_config

        self._documents: Dict[str, DocumentChunk] = {}
        self._vectors: Dict[str, np.ndarray] = {}
        self._write_lock = asyncio.Lock()

        logger.info(
            "memory_store_initialized",
            collection=self.config.collection_name,
            dimension=self.config.embedding_dimensions,
            distance_metric=self.config.distance_metric,
        )

    def _check_embedding(self, chunk_id: str, embedding: Any) -> np.ndarray:
        if embedding is None:
            raise MissingEmbeddingError(chunk_id)

        vector = np.array(embedding, dtype=np.float64)
        if vector.ndim != 1 or vector.shape[0] != self.config.embedding_dimensions:
            actual = vector.shape[0] if vector.ndim == 1 else vector.size
            raise DimensionMismatchError(
                self.config.embedding_dimensions, actual, chunk_id
            )
        return vector

    async def add_documents(self, documents: List[DocumentChunk]) -> None:
        """Add (or overwrite) embedded chunks.

        All chunks are validated before any is inserted, so a failing call
        leaves the store unchanged.

        Args:
            documents: Chunks with embeddings attached

        Raises:
            MissingEmbeddingError: If a chunk has no embedding
            DimensionMismatchError: If an embedding has the wrong length
        """
        try:
            vectors = [
                self._check_embedding(doc.id, doc.embedding) for doc in documents
            ]
        except (MissingEmbeddingError, DimensionMismatchError) as e:
            logger.error(
                "add_documents_rejected",
                collection=self.config.collection_name,
                error=str(e),
            )
            raise

        async with self._write_lock:
            for doc, vector in zip(documents, vectors):
                self._documents[doc.id] = _copy_chunk(doc, vector.tolist())
                self._vectors[doc.id] = vector

        logger.info(
            "vectors_added",
            count=len(documents),
            total_vectors=len(self._documents),
        )

    async def search(
        self,
        query: Sequence[float],
        limit: int = 10,
        filter: Optional[Union[FilterNode, Dict[str, Any]]] = None,
    ) -> List[SearchResult]:
        """Search for the chunks most similar to a query vector.

        Args:
            query: Query embedding
            limit: Maximum number of results
            filter: Optional metadata filter applied before scoring, as a
                filter tree or its dict form

        Returns:
            Results sorted by descending score, ties broken by chunk id

        Raises:
            InvalidQueryError: If the query is not a numeric vector
            InvalidFilterError: If the filter is malformed
            DimensionMismatchError: If the query has the wrong length
        """
        if isinstance(filter, dict):
            filter = parse_filter(filter)
        elif filter is not None and not isinstance(filter, FilterNode):
            raise InvalidFilterError(
                f"Filter must be a dict or FilterNode, got {type(filter).__name__}"
            )

        if isinstance(query, (str, bytes)) or not isinstance(
            query, (Sequence, np.ndarray)
        ):
            raise InvalidQueryError(
                "Query must be an embedding vector for in-memory store"
            )

        try:
            query_vector = np.asarray(query, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InvalidQueryError(f"Query vector is not numeric: {e}") from e

        if query_vector.ndim != 1 or query_vector.shape[0] != self.config.embedding_dimensions:
            raise DimensionMismatchError(
                self.config.embedding_dimensions, query_vector.size
            )

        if limit <= 0:
            return []

        candidates: List[Tuple[DocumentChunk, np.ndarray]] = [
            (doc, self._vectors[doc_id])
            for doc_id, doc in list(self._documents.items())
            if doc.embedding is not None
            and (filter is None or matches(doc.metadata, filter))
        ]

        if not candidates:
            logger.debug("vector_search_no_candidates", filtered=filter is not None)
            return []

        matrix = np.vstack([vector for _, vector in candidates])
        scores, distances = score_matrix(
            self.config.distance_metric, query_vector, matrix
        )

        results = [
            SearchResult(document=doc, score=float(score), distance=float(distance))
            for (doc, _), score, distance in zip(candidates, scores, distances)
        ]
        results.sort(key=lambda r: (-r.score, r.document.id))

        logger.debug(
            "vector_search_completed",
            candidates=len(candidates),
            limit=limit,
            results_found=min(limit, len(results)),
        )

        return [
            replace(r, document=_copy_chunk(r.document)) for r in results[:limit]
        ]

    async def delete_documents(self, ids: List[str]) -> None:
        """Remove chunks by id. Unknown ids are ignored."""
        async with self._write_lock:
            removed = 0
            for doc_id in ids:
                if self._documents.pop(doc_id, None) is not None:
                    removed += 1
                self._vectors.pop(doc_id, None)

        logger.info("vectors_deleted", requested=len(ids), removed=removed)

    async def update_document(
        self,
        id: str,
        update: Dict[str, Any],
        replace_metadata: bool = False,
    ) -> None:
        """Merge partial fields into a stored chunk.

        Metadata is deep-merged into the existing metadata unless
        ``replace_metadata`` is set, in which case it replaces it wholesale.

        Args:
            id: Chunk id
            update: Partial chunk fields
            replace_metadata: Replace instead of merge the metadata dict

        Raises:
            NotFoundError: If no chunk has this id
            ValueError: If the update names unknown fields or changes the id
            DimensionMismatchError: If a new embedding has the wrong length
        """
        if "id" in update and update["id"] != id:
            raise ValueError(f"Cannot change chunk id {id} to {update['id']}")

        unknown = set(update) - _UPDATABLE_FIELDS - {"id"}
        if unknown:
            raise ValueError(f"Unknown chunk fields: {sorted(unknown)}")

        async with self._write_lock:
            existing = self._documents.get(id)
            if existing is None:
                raise NotFoundError(f"Document {id} not found")

            changes = {k: v for k, v in update.items() if k != "id"}

            if "metadata" in changes and not replace_metadata:
                changes["metadata"] = _deep_merge(
                    existing.metadata, changes["metadata"] or {}
                )

            vector = self._vectors.get(id)
            if "embedding" in changes:
                vector = self._check_embedding(id, changes["embedding"])

            updated = replace(existing, **changes)
            self._documents[id] = _copy_chunk(updated, vector.tolist())
            self._vectors[id] = vector

        logger.info("vector_updated", id=id, fields=sorted(changes))

    async def get_document(self, id: str) -> Optional[DocumentChunk]:
        """Get a copy of a stored chunk by id, or None."""
        doc = self._documents.get(id)
        return _copy_chunk(doc) if doc is not None else None

    async def clear(self) -> None:
        """Drop every stored chunk."""
        async with self._write_lock:
            count = len(self._documents)
            self._documents.clear()
            self._vectors.clear()

        logger.warning(
            "store_cleared", collection=self.config.collection_name, removed=count
        )

    def count(self) -> int:
        return len(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the vector store.

        Returns:
            Dictionary with store statistics
        """
        return {
            "document_count": len(self._documents),
            "collection_name": self.config.collection_name,
            "dimensions": self.config.embedding_dimensions,
            "distance_metric": self.config.distance_metric,
        }

