"""Text chunking with overlap for RAG pipeline.

Implements character-based chunking to avoid tokenizer dependencies.
Windows are fixed-size and overlap by a fixed amount, so the chunk count for
a given text and configuration is deterministic and every character of the
text is covered.
"""
import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
import structlog

from ragkit import config
from ragkit.models import (
    CHUNK_COUNT,
    CHUNK_INDEX,
    END_CHAR,
    PARENT_DOCUMENT_ID,
    SECTION,
    START_CHAR,
    TOKEN_COUNT,
    Document,
    DocumentChunk,
)

logger = structlog.get_logger()

# Markdown headings mark hard section boundaries
HEADING_PATTERN = re.compile(r"^(#{1,6})[ \t]+(.+?)[ \t]*$", re.MULTILINE)

INTRODUCTION_SECTION = "Introduction"


@dataclass
class TextChunk:
    """Represents a chunk of text with position information."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


@dataclass
class Section:
    """A heading-delimited region of a document."""

    title: str
    char_start: int
    char_end: int


class TextChunker:
    """Character-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in characters (default from config)
            chunk_overlap: Overlap between chunks in characters (default from config)

        Raises:
            ValueError: If chunk_size is not positive or chunk_overlap is negative
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = (
            config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        )

        if self.chunk_size <= 0:
            raise ValueError(f"Chunk size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0:
            raise ValueError(
                f"Chunk overlap must not be negative, got {self.chunk_overlap}"
            )

        # Overlap >= size would never advance
        if self.chunk_overlap >= self.chunk_size:
            logger.warning(
                "chunk_overlap_clamped",
                chunk_size=self.chunk_size,
                requested_overlap=self.chunk_overlap,
                chunk_overlap=self.chunk_size - 1,
            )
            self.chunk_overlap = self.chunk_size - 1

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )

    @property
    def step(self) -> int:
        """Distance between the starts of consecutive windows."""
        return self.chunk_size - self.chunk_overlap

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split text into overlapping chunks.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects
        """
        if not text:
            return []

        text_length = len(text)

        # Handle text shorter than chunk size
        if text_length <= self.chunk_size:
            logger.debug(
                "text_shorter_than_chunk_size",
                text_length=text_length,
                chunk_size=self.chunk_size,
            )
            return [
                TextChunk(
                    content=text,
                    char_start=0,
                    char_end=text_length,
                    chunk_index=0,
                )
            ]

        chunks = []
        start = 0

        while start < text_length:
            end = min(start + self.chunk_size, text_length)

            chunks.append(
                TextChunk(
                    content=text[start:end],
                    char_start=start,
                    char_end=end,
                    chunk_index=len(chunks),
                )
            )

            start += self.step

        logger.debug(
            "text_chunked",
            text_length=text_length,
            chunk_count=len(chunks),
            avg_chunk_size=sum(len(c.content) for c in chunks) // len(chunks),
        )

        return chunks

    def chunk(
        self,
        content: str,
        base_metadata: Optional[Dict[str, Any]] = None,
        document_id: str = "document",
    ) -> List[DocumentChunk]:
        """Split content into position-tracked document chunks.

        Args:
            content: Document text
            base_metadata: Metadata copied onto every chunk
            document_id: Id of the originating document

        Returns:
            Ordered list of DocumentChunk objects (no embeddings yet)
        """
        spans = [
            (span.content, span.char_start, span.char_end, None)
            for span in self.chunk_text(content)
        ]
        return self._build_chunks(spans, base_metadata or {}, document_id)

    def chunk_document(self, document: Document) -> List[DocumentChunk]:
        """Chunk a loaded document with fixed-size windows."""
        return self.chunk(document.content, document.metadata, document.id)

    def chunk_sections(self, document: Document) -> List[DocumentChunk]:
        """Chunk a structured document section by section.

        Each heading-delimited section is treated as its own sub-document.
        Sections that fit in ``chunk_size`` become one chunk, longer ones are
        windowed. Offsets stay absolute and numbering runs across the whole
        document.

        Args:
            document: Document whose content contains Markdown headings

        Returns:
            Ordered list of DocumentChunk objects tagged with ``section``
        """
        content = document.content
        spans: List[Tuple[str, int, int, Optional[str]]] = []

        for section in split_sections(content):
            section_text = content[section.char_start : section.char_end]
            for span in self.chunk_text(section_text):
                spans.append(
                    (
                        span.content,
                        section.char_start + span.char_start,
                        section.char_start + span.char_end,
                        section.title,
                    )
                )

        logger.debug(
            "document_sections_chunked",
            document_id=document.id,
            chunk_count=len(spans),
        )

        return self._build_chunks(spans, document.metadata, document.id)

    def _build_chunks(
        self,
        spans: List[Tuple[str, int, int, Optional[str]]],
        base_metadata: Dict[str, Any],
        document_id: str,
    ) -> List[DocumentChunk]:
        chunks = []

        for index, (text, char_start, char_end, section) in enumerate(spans):
            metadata = dict(base_metadata)
            metadata.update(
                {
                    CHUNK_INDEX: index,
                    START_CHAR: char_start,
                    END_CHAR: char_end,
                    PARENT_DOCUMENT_ID: document_id,
                    TOKEN_COUNT: math.ceil(len(text) / config.CHARS_PER_TOKEN),
                }
            )
            if section is not None:
                metadata[SECTION] = section

            chunks.append(
                DocumentChunk(
                    id=f"{document_id}-chunk-{index}",
                    document_id=document_id,
                    content=text,
                    index=index,
                    metadata=metadata,
                )
            )

        # Total is only known once every chunk exists
        for chunk in chunks:
            chunk.metadata[CHUNK_COUNT] = len(chunks)

        return chunks

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of TextChunk or DocumentChunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_chars": 0,
                "avg_chunk_size": 0,
                "min_chunk_size": 0,
                "max_chunk_size": 0,
                "overlap": self.chunk_overlap,
            }

        chunk_sizes = [len(c.content) for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_chars": sum(chunk_sizes),
            "avg_chunk_size": sum(chunk_sizes) // len(chunks),
            "min_chunk_size": min(chunk_sizes),
            "max_chunk_size": max(chunk_sizes),
            "overlap": self.chunk_overlap,
        }


def split_sections(content: str) -> List[Section]:
    """Split Markdown content at heading lines.

    The heading line itself is not part of its section. Text before the
    first heading becomes the "Introduction" section. Whitespace-only
    sections are dropped.

    Args:
        content: Markdown text

    Returns:
        Sections in document order
    """
    sections = []
    headings = list(HEADING_PATTERN.finditer(content))

    first_start = headings[0].start() if headings else len(content)
    sections.append(Section(INTRODUCTION_SECTION, 0, first_start))

    for i, match in enumerate(headings):
        body_start = match.end()
        if content.startswith("\n", body_start):
            body_start += 1
        body_end = headings[i + 1].start() if i + 1 < len(headings) else len(content)
        sections.append(Section(match.group(2), body_start, max(body_start, body_end)))

    return [s for s in sections if content[s.char_start : s.char_end].strip()]
