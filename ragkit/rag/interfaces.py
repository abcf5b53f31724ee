"""Capability interfaces the pipelines are wired against.

Concrete loaders, embedders and stores are injected through the pipeline
constructors.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Union

from ragkit.models import Document, DocumentChunk, LoaderConfig, SearchResult
from ragkit.rag.filters import FilterNode


class DocumentLoader(ABC):
    """Turns a source path into plain-text documents."""

    supported_extensions: Sequence[str] = ()

    @abstractmethod
    async def load(
        self, source: str, config: Optional[LoaderConfig] = None
    ) -> List[Document]:
        """Load ``source``. Every document's metadata carries ``source``."""


class EmbeddingGenerator(ABC):
    """Turns texts into fixed-length vectors."""

    @abstractmethod
    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed ``texts``; output has the same length and order as input."""

    @abstractmethod
    def get_dimensions(self) -> int:
        """Length of every vector ``embed`` returns."""


class VectorStore(ABC):
    """Owns embedded chunks and answers similarity queries."""

    @abstractmethod
    async def add_documents(self, documents: List[DocumentChunk]) -> None:
        ...

    @abstractmethod
    async def search(
        self,
        query: Sequence[float],
        limit: int = 10,
        filter: Optional[Union[FilterNode, Dict[str, Any]]] = None,
    ) -> List[SearchResult]:
        ...

    @abstractmethod
    async def delete_documents(self, ids: List[str]) -> None:
        ...

    @abstractmethod
    async def update_document(self, id: str, update: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def get_document(self, id: str) -> Optional[DocumentChunk]:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...
