"""Ollama embedding client wrapper with error handling."""
from typing import Dict, List, Optional
import httpx
import structlog

from ragkit import config

logger = structlog.get_logger()


class OllamaClient:
    """Async client for the Ollama embedding API."""

    def __init__(
        self,
        base_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to config.OLLAMA_BASE_URL)
            timeout: Request timeout in seconds (defaults to config.EMBEDDING_TIMEOUT)
            transport: Optional httpx transport (used to stub the API in tests)
        """
        self.base_url = base_url or config.OLLAMA_BASE_URL
        self.timeout = timeout or config.EMBEDDING_TIMEOUT
        self.transport = transport

    def _client(self, timeout: float = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            transport=self.transport,
        )

    async def embed(
        self,
        texts: List[str],
        model: str = None,
    ) -> Dict:
        """Generate embeddings for a batch of texts in one request.

        Args:
            texts: Texts to embed
            model: Model to use (defaults to config.EMBEDDING_MODEL)

        Returns:
            Response dict with 'embeddings' list (one vector per text)

        Raises:
            httpx.HTTPError: On API errors or timeouts
        """
        model = model or config.EMBEDDING_MODEL

        payload = {
            "model": model,
            "input": texts,
        }

        try:
            async with self._client() as client:
                logger.debug(
                    "ollama_embedding_request",
                    model=model,
                    batch_size=len(texts),
                )

                response = await client.post("/api/embed", json=payload)
                response.raise_for_status()

                data = response.json()

                logger.debug(
                    "ollama_embedding_response",
                    model=model,
                    count=len(data.get("embeddings", [])),
                )

                return data

        except httpx.HTTPError as e:
            logger.error(
                "ollama_embedding_error",
                error=str(e),
                status_code=getattr(getattr(e, "response", None), "status_code", None),
            )
            raise

