"""ragkit - a minimal retrieval-augmented-generation toolkit."""
from ragkit.errors import (
    DimensionMismatchError,
    EmbeddingError,
    InvalidFilterError,
    InvalidQueryError,
    LoaderError,
    MissingEmbeddingError,
    NotFoundError,
    RagError,
)
from ragkit.models import (
    Document,
    DocumentChunk,
    IngestionResult,
    IngestOptions,
    LoaderConfig,
    QueryOptions,
    QueryResult,
    SearchResult,
    VectorStoreConfig,
)
from ragkit.rag.chunker import TextChunker
from ragkit.rag.embedding import OllamaEmbeddingGenerator
from ragkit.rag.filters import AndFilter, FieldFilter, OrFilter, parse_filter
from ragkit.rag.ingest import IngestPipeline
from ragkit.rag.loaders import ExtensionLoader, HTMLLoader, MarkdownLoader, TextLoader
from ragkit.rag.retriever import Retriever
from ragkit.rag.store_memory import InMemoryVectorStore

__version__ = "0.1.0"

__all__ = [
    "AndFilter",
    "DimensionMismatchError",
    "Document",
    "DocumentChunk",
    "EmbeddingError",
    "ExtensionLoader",
    "FieldFilter",
    "HTMLLoader",
    "InMemoryVectorStore",
    "IngestionResult",
    "IngestOptions",
    "IngestPipeline",
    "InvalidFilterError",
    "InvalidQueryError",
    "LoaderConfig",
    "LoaderError",
    "MarkdownLoader",
    "MissingEmbeddingError",
    "NotFoundError",
    "OllamaEmbeddingGenerator",
    "OrFilter",
    "QueryOptions",
    "QueryResult",
    "RagError",
    "Retriever",
    "SearchResult",
    "TextChunker",
    "TextLoader",
    "VectorStoreConfig",
    "parse_filter",
]
