"""Embedding generation backed by an Ollama server.

Each call to ``embed`` is a single batched HTTP request, so callers control
request volume through their batch size.
"""
from typing import List, Optional
import httpx
import structlog

from ragkit import config
from ragkit.errors import EmbeddingError
from ragkit.llm_client import OllamaClient
from ragkit.rag.interfaces import EmbeddingGenerator

logger = structlog.get_logger()


class OllamaEmbeddingGenerator(EmbeddingGenerator):
    """EmbeddingGenerator that calls Ollama's ``/api/embed`` endpoint."""

    def __init__(
        self,
        client: Optional[OllamaClient] = None,
        embedding_model: str = None,
        dimensions: Optional[int] = None,
    ):
        """Initialize the generator.

        Args:
            client: Ollama client (a default one is created if not provided)
            embedding_model: Embedding model name (default from config)
            dimensions: Expected vector length (default from config)
        """
        self.client = client or OllamaClient()
        self.embedding_model = embedding_model or config.EMBEDDING_MODEL
        self.dimensions = dimensions or config.EMBEDDING_DIMENSIONS

    def get_dimensions(self) -> int:
        return self.dimensions

    async def detect_dimensions(self) -> int:
        """Detect embedding dimension by embedding a test string.

        Updates ``self.dimensions`` to the detected value.

        Returns:
            Embedding dimension

        Raises:
            EmbeddingError: If embedding fails
        """
        logger.info("detecting_embedding_dimension", model=self.embedding_model)

        [vector] = await self._request(["test"])
        self.dimensions = len(vector)
        logger.info("embedding_dimension_detected", dimension=self.dimensions)
        return self.dimensions

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts.

        Args:
            texts: Texts to embed

        Returns:
            One vector per text, in input order

        Raises:
            EmbeddingError: If the request fails or the response is unusable
        """
        if not texts:
            return []

        embeddings = await self._request(texts)

        for embedding in embeddings:
            if len(embedding) != self.dimensions:
                raise EmbeddingError(
                    f"Model {self.embedding_model} returned {len(embedding)}-dim "
                    f"vectors, expected {self.dimensions}"
                )

        return embeddings

    async def _request(self, texts: List[str]) -> List[List[float]]:
        try:
            response = await self.client.embed(texts, model=self.embedding_model)
        except httpx.HTTPError as e:
            raise EmbeddingError(f"Failed to generate embeddings: {e}") from e

        embeddings = response.get("embeddings") or []

        if len(embeddings) != len(texts) or not all(embeddings):
            logger.error(
                "embedding_response_invalid",
                model=self.embedding_model,
                requested=len(texts),
                returned=len(embeddings),
            )
            raise EmbeddingError(
                f"Expected {len(texts)} embeddings, got {len(embeddings)}"
            )

        return embeddings
