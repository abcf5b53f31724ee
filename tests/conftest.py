"""Pytest configuration and shared fixtures."""
import math
from typing import Callable, Dict, List, Optional

import pytest

from ragkit.models import DocumentChunk
from ragkit.rag.interfaces import EmbeddingGenerator
from ragkit.rag.store_memory import InMemoryVectorStore


class HashEmbeddingGenerator(EmbeddingGenerator):
    """Deterministic character-histogram embeddings for tests.

    Not a semantic embedding: each character bumps one dimension, then the
    vector is L2-normalised.
    """

    def __init__(self, dimensions: int = 384):
        self.dimensions = dimensions
        self.calls: List[List[str]] = []

    async def embed(self, texts: List[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self._embed_one(text) for text in texts]

    def get_dimensions(self) -> int:
        return self.dimensions

    def _embed_one(self, text: str) -> List[float]:
        vector = [0.0] * self.dimensions
        for char in text:
            vector[ord(char) % self.dimensions] += 1.0
        magnitude = math.sqrt(sum(v * v for v in vector))
        if magnitude > 0:
            vector = [v / magnitude for v in vector]
        return vector


@pytest.fixture
def embedder() -> HashEmbeddingGenerator:
    """384-dimensional deterministic embedder."""
    return HashEmbeddingGenerator(dimensions=384)


@pytest.fixture
def store() -> InMemoryVectorStore:
    """Empty 3-dimensional cosine store."""
    return InMemoryVectorStore(
        collection_name="test",
        embedding_dimensions=3,
        distance_metric="cosine",
    )


@pytest.fixture
def make_chunk() -> Callable[..., DocumentChunk]:
    """Factory for small embedded chunks."""

    def _make(
        id: str,
        embedding: Optional[List[float]],
        metadata: Optional[Dict] = None,
        content: Optional[str] = None,
    ) -> DocumentChunk:
        return DocumentChunk(
            id=id,
            document_id=f"doc-{id}",
            content=content or f"Content for {id}",
            index=0,
            metadata={"chunk_index": 0, "chunk_count": 1, **(metadata or {})},
            embedding=embedding,
        )

    return _make
