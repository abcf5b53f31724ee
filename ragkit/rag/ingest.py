"""Ingest pipeline for indexing documents.

Orchestrates:
- Document loading
- Text chunking
- Batched embedding generation
- Vector storage

Sources are processed one after another. A failing source is recorded in
the result and never aborts the run.
"""
import time
from typing import Any, Dict, List, Optional, Union
import structlog

from ragkit.errors import EmbeddingError
from ragkit.models import (
    DocumentChunk,
    IngestionError,
    IngestionResult,
    IngestOptions,
)
from ragkit.rag.chunker import TextChunker
from ragkit.rag.interfaces import DocumentLoader, EmbeddingGenerator, VectorStore

logger = structlog.get_logger()


class IngestPipeline:
    """Pipeline for ingesting documents into a vector store."""

    def __init__(
        self,
        loader: DocumentLoader,
        embedder: EmbeddingGenerator,
        store: VectorStore,
        chunker: Optional[TextChunker] = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            loader: Loader turning source paths into documents
            embedder: Embedding generator
            store: Destination vector store
            chunker: Default chunker (built from config if not provided)
        """
        self.loader = loader
        self.embedder = embedder
        self.store = store
        self.chunker = chunker or TextChunker()

        logger.info(
            "ingest_pipeline_initialized",
            loader=type(loader).__name__,
            embedder=type(embedder).__name__,
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
        )

    def _chunker_for(self, options: IngestOptions) -> TextChunker:
        if options.chunk_size is None and options.chunk_overlap is None:
            return self.chunker
        return TextChunker(
            chunk_size=(
                self.chunker.chunk_size if options.chunk_size is None else options.chunk_size
            ),
            chunk_overlap=(
                self.chunker.chunk_overlap
                if options.chunk_overlap is None
                else options.chunk_overlap
            ),
        )

    async def generate_embeddings_batch(
        self,
        chunks: List[DocumentChunk],
        batch_size: int,
        on_batch=None,
    ) -> None:
        """Attach embeddings to chunks, one embedder call per batch.

        Args:
            chunks: Chunks to embed (modified in place)
            batch_size: Number of chunk texts per embedder call
            on_batch: Optional callback(embedded_so_far) after each batch

        Raises:
            EmbeddingError: If the embedder returns the wrong number of vectors
        """
        for i in range(0, len(chunks), batch_size):
            batch = chunks[i : i + batch_size]
            embeddings = await self.embedder.embed([chunk.content for chunk in batch])

            if len(embeddings) != len(batch):
                raise EmbeddingError(
                    f"Embedder returned {len(embeddings)} vectors "
                    f"for {len(batch)} texts"
                )

            for chunk, embedding in zip(batch, embeddings):
                chunk.embedding = embedding

            logger.debug(
                "embeddings_batch_generated",
                batch_size=len(batch),
                total_so_far=i + len(batch),
            )

            if on_batch:
                on_batch(i + len(batch))

    async def ingest_file(
        self,
        path: str,
        options: IngestOptions,
        path_index: int = 1,
        total_paths: int = 1,
    ) -> Dict[str, int]:
        """Ingest a single source.

        Args:
            path: Source path
            options: Ingestion options
            path_index: 1-based position of this path in the run
            total_paths: Number of paths in the run

        Returns:
            Dictionary with documents_processed and chunks_generated

        Raises:
            Exception: If any stage fails; nothing is stored in that case
        """
        logger.info("ingesting_file", path=path)

        documents = await self.loader.load(path, options.loader_config)
        chunker = self._chunker_for(options)

        chunks: List[DocumentChunk] = []
        for document in documents:
            if options.split_sections:
                chunks.extend(chunker.chunk_sections(document))
            else:
                chunks.extend(chunker.chunk_document(document))

        if not chunks:
            logger.warning("no_chunks_created", path=path)

        def report(embedded: int) -> None:
            if options.on_progress:
                options.on_progress(
                    path_index,
                    total_paths,
                    {
                        "current_file": path,
                        "documents_processed": len(documents),
                        "chunks_embedded": embedded,
                        "chunks_generated": len(chunks),
                    },
                )

        await self.generate_embeddings_batch(chunks, options.batch_size, report)

        if chunks:
            await self.store.add_documents(chunks)

        logger.info(
            "file_ingested",
            path=path,
            documents=len(documents),
            chunks_created=len(chunks),
        )

        return {
            "documents_processed": len(documents),
            "chunks_generated": len(chunks),
        }

    async def ingest(
        self,
        paths: Union[str, List[str]],
        options: Optional[Union[IngestOptions, Dict[str, Any]]] = None,
    ) -> IngestionResult:
        """Ingest one or more sources.

        Args:
            paths: Source path or list of paths
            options: IngestOptions or a dict of its fields

        Returns:
            IngestionResult; per-source failures are listed in ``errors``

        Raises:
            pydantic.ValidationError: If the options are malformed
            ValueError: If the chunking options are invalid
        """
        if isinstance(paths, str):
            paths = [paths]
        if options is None:
            options = IngestOptions()
        elif isinstance(options, dict):
            options = IngestOptions(**options)

        # Fail on bad chunking options before touching any source
        self._chunker_for(options)

        start_time = time.perf_counter()
        documents_processed = 0
        chunks_generated = 0
        errors: List[IngestionError] = []

        logger.info("starting_ingest", path_count=len(paths), batch_size=options.batch_size)

        for idx, path in enumerate(paths, 1):
            try:
                stats = await self.ingest_file(path, options, idx, len(paths))
            except Exception as e:
                logger.error(
                    "file_ingestion_failed",
                    path=path,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                errors.append(IngestionError(file=path, error=str(e)))
                # Continue with next file instead of failing entirely
                continue

            documents_processed += stats["documents_processed"]
            chunks_generated += stats["chunks_generated"]

        result = IngestionResult(
            documents_processed=documents_processed,
            chunks_generated=chunks_generated,
            errors=errors,
            duration_ms=(time.perf_counter() - start_time) * 1000,
        )

        logger.info(
            "ingest_completed",
            documents_processed=result.documents_processed,
            chunks_generated=result.chunks_generated,
            files_failed=len(errors),
            duration_ms=round(result.duration_ms, 1),
        )

        return result
