"""Data model for documents, chunks, search results and pipeline options.

Value types are plain dataclasses. Configuration and option objects are
pydantic models so malformed settings fail at construction time, before any
loading or embedding work begins.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ragkit import config
from ragkit.rag.filters import FilterNode, parse_filter

DistanceMetric = Literal["cosine", "dot", "euclidean"]

# Metadata keys stamped by the chunker
CHUNK_INDEX = "chunk_index"
CHUNK_COUNT = "chunk_count"
START_CHAR = "start_char"
END_CHAR = "end_char"
PARENT_DOCUMENT_ID = "parent_document_id"
SECTION = "section"
TOKEN_COUNT = "token_count"

# Keys with this prefix are chunking bookkeeping, not user-facing metadata
RESERVED_METADATA_PREFIX = "chunk_"


@dataclass
class Document:
    """A loaded source document."""

    id: str
    content: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    embedding: Optional[List[float]] = None


@dataclass
class DocumentChunk:
    """A slice of a document; the unit that is embedded, stored and searched."""

    id: str
    document_id: str
    content: str
    index: int
    metadata: Dict[str, Any] = field(default_factory=dict)
    embedding: Optional[List[float]] = None


@dataclass
class SearchResult:
    """A ranked match. ``score`` is always higher-is-better."""

    document: DocumentChunk
    score: float
    distance: Optional[float] = None


class VectorStoreConfig(BaseModel):
    """Fixed configuration of a vector store."""

    collection_name: str
    embedding_dimensions: int = Field(gt=0)
    distance_metric: DistanceMetric = "cosine"


class LoaderConfig(BaseModel):
    """Options passed through to document loaders."""

    preserve_formatting: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


ProgressCallback = Callable[[int, int, Optional[Dict[str, Any]]], Any]


class IngestOptions(BaseModel):
    """Options for a single ingestion run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    batch_size: int = Field(default=config.EMBEDDING_BATCH_SIZE, gt=0)
    chunk_size: Optional[int] = Field(default=None, gt=0)
    chunk_overlap: Optional[int] = Field(default=None, ge=0)
    split_sections: bool = False
    loader_config: LoaderConfig = Field(default_factory=LoaderConfig)
    on_progress: Optional[ProgressCallback] = None


class QueryOptions(BaseModel):
    """Options for a retrieval query."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    limit: int = Field(default=config.RETRIEVAL_TOP_K, gt=0)
    threshold: float = 0.0
    filter: Optional[Any] = None
    include_metadata: bool = True
    max_context_chars: Optional[int] = Field(
        default=config.MAX_CONTEXT_CHARS or None, gt=0
    )

    @field_validator("filter", mode="before")
    @classmethod
    def _coerce_filter(cls, value: Any) -> Optional[FilterNode]:
        if value is None or isinstance(value, FilterNode):
            return value
        if isinstance(value, dict):
            return parse_filter(value)
        raise ValueError(f"Unsupported filter type: {type(value).__name__}")


@dataclass
class IngestionError:
    """A per-source failure recorded during ingestion."""

    file: str
    error: str


@dataclass
class IngestionResult:
    """Summary of an ingestion run."""

    documents_processed: int
    chunks_generated: int
    errors: List[IngestionError]
    duration_ms: float


@dataclass
class QueryMetadata:
    total_results: int
    duration_ms: float
    average_score: float


@dataclass
class QueryResult:
    """Search results plus the context string assembled from them."""

    query: str
    results: List[SearchResult]
    context: str
    metadata: QueryMetadata
