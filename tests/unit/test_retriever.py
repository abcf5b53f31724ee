"""Tests for the Retriever query pipeline."""
from unittest.mock import AsyncMock

import numpy as np
import pytest
from pydantic import ValidationError

from ragkit.errors import EmbeddingError, NotFoundError
from ragkit.models import DocumentChunk, QueryOptions, SearchResult
from ragkit.rag.filters import FieldFilter
from ragkit.rag.retriever import Retriever, assemble_context
from ragkit.rag.store_memory import InMemoryVectorStore

TEXTS = [
    "Machine learning is a subset of artificial intelligence",
    "Deep learning uses neural networks with multiple layers",
    "Natural language processing helps computers understand text",
]


@pytest.fixture
async def populated_store(embedder):
    store = InMemoryVectorStore(
        collection_name="test", embedding_dimensions=384, distance_metric="cosine"
    )
    embeddings = await embedder.embed(TEXTS)
    await store.add_documents(
        [
            DocumentChunk(
                id=f"chunk-{i}",
                document_id=f"doc-{i}",
                content=text,
                index=i,
                metadata={"chunk_index": i, "chunk_count": 1, "topic": "AI"},
                embedding=embeddings[i],
            )
            for i, text in enumerate(TEXTS)
        ]
    )
    return store


@pytest.fixture
def retriever(populated_store, embedder):
    return Retriever(populated_store, embedder)


@pytest.mark.asyncio
async def test_query_returns_ranked_results(retriever):
    result = await retriever.query("what is machine learning?")

    assert result.query == "what is machine learning?"
    assert len(result.results) == 3
    assert result.metadata.total_results == 3
    scores = [r.score for r in result.results]
    assert scores == sorted(scores, reverse=True)


@pytest.mark.asyncio
async def test_query_embeds_text_as_single_item_batch(retriever, embedder):
    embedder.calls.clear()

    await retriever.query("neural networks")

    assert embedder.calls == [["neural networks"]]


@pytest.mark.asyncio
async def test_query_limits_results(retriever):
    result = await retriever.query("AI and neural networks", QueryOptions(limit=2))

    assert len(result.results) == 2


@pytest.mark.asyncio
async def test_query_filters_by_metadata(retriever):
    matching = await retriever.query(
        "machine learning", {"filter": {"field": "topic", "operator": "eq", "value": "AI"}}
    )
    excluded = await retriever.query(
        "machine learning", QueryOptions(filter=FieldFilter("topic", "ne", "AI"))
    )

    assert all(r.document.metadata["topic"] == "AI" for r in matching.results)
    assert len(matching.results) == 3
    assert excluded.results == []
    assert excluded.context == ""


@pytest.mark.asyncio
async def test_query_applies_inclusive_threshold(retriever):
    unfiltered = await retriever.query("deep learning")
    middle = unfiltered.results[1].score

    result = await retriever.query("deep learning", {"threshold": middle})

    assert [r.document.id for r in result.results] == [
        r.document.id for r in unfiltered.results[:2]
    ]
    assert all(r.score >= middle for r in result.results)


@pytest.mark.asyncio
async def test_query_with_unreachable_threshold(retriever):
    result = await retriever.query("irrelevant query xyz", {"threshold": 1.5})

    assert result.results == []
    assert result.metadata.average_score == 0.0


@pytest.mark.asyncio
async def test_context_labels_rank_score_and_metadata(retriever):
    result = await retriever.query("neural networks")

    assert result.context.startswith("[Document 1] (score: ")
    assert "[Document 3]" in result.context
    assert "Metadata: topic: AI" in result.context
    assert "chunk_index" not in result.context
    assert result.context.count("\n---\n\n") == 2
    for text in TEXTS:
        assert text in result.context


@pytest.mark.asyncio
async def test_context_without_metadata(retriever):
    result = await retriever.query("neural networks", {"include_metadata": False})

    assert "Metadata:" not in result.context


@pytest.mark.asyncio
async def test_metadata_statistics(retriever):
    result = await retriever.query("deep learning")

    assert 0 < result.metadata.average_score <= 1
    assert result.metadata.average_score == pytest.approx(
        sum(r.score for r in result.results) / len(result.results)
    )
    assert result.metadata.duration_ms >= 0


@pytest.mark.asyncio
async def test_search_is_an_alias_for_query(retriever):
    first = await retriever.search("machine learning", {"limit": 1})
    second = await retriever.query("machine learning", {"limit": 1})

    assert first.results[0].document.id == second.results[0].document.id


@pytest.mark.asyncio
async def test_find_similar_excludes_source_chunk(retriever):
    result = await retriever.find_similar("chunk-0", {"limit": 5})

    assert result.query == "[Similar to chunk-0]"
    assert len(result.results) == 2
    assert all(r.document.id != "chunk-0" for r in result.results)


@pytest.mark.asyncio
async def test_find_similar_respects_limit(retriever):
    result = await retriever.find_similar("chunk-1", {"limit": 1})

    assert len(result.results) == 1
    assert result.results[0].document.id != "chunk-1"


@pytest.mark.asyncio
async def test_find_similar_missing_chunk_raises(retriever):
    with pytest.raises(NotFoundError, match="not found"):
        await retriever.find_similar("nonexistent")


@pytest.mark.asyncio
async def test_find_similar_without_embedding_raises(embedder):
    store = AsyncMock()
    store.get_document.return_value = DocumentChunk(
        id="bare", document_id="doc", content="x", index=0, embedding=None
    )

    with pytest.raises(NotFoundError, match="no embedding"):
        await Retriever(store, embedder).find_similar("bare")

    store.search.assert_not_called()


@pytest.mark.asyncio
async def test_embedder_failures_propagate(populated_store):
    embedder = AsyncMock()
    embedder.embed.side_effect = EmbeddingError("backend down")

    with pytest.raises(EmbeddingError, match="backend down"):
        await Retriever(populated_store, embedder).query("anything")


@pytest.mark.asyncio
async def test_empty_query_embedding_is_an_error(populated_store):
    embedder = AsyncMock()
    embedder.embed.return_value = [[]]

    with pytest.raises(EmbeddingError):
        await Retriever(populated_store, embedder).query("anything")


@pytest.mark.asyncio
async def test_invalid_options_raise_before_search(retriever):
    with pytest.raises(ValidationError):
        await retriever.query("x", {"limit": 0})
    with pytest.raises(ValidationError):
        await retriever.query("x", {"filter": {"field": "topic", "operator": "in", "value": "AI"}})


def _result(id, score, content="text", metadata=None):
    return SearchResult(
        document=DocumentChunk(
            id=id, document_id="d", content=content, index=0, metadata=metadata or {}
        ),
        score=score,
    )


def test_assemble_context_format():
    context = assemble_context(
        [
            _result("a", 0.91234, "alpha", {"source": "a.txt", "chunk_count": 2}),
            _result("b", 0.5, "beta"),
        ]
    )

    assert context == (
        "[Document 1] (score: 0.912)\nMetadata: source: a.txt\nalpha\n"
        "\n---\n\n"
        "[Document 2] (score: 0.500)\nbeta\n"
    )


def test_assemble_context_respects_max_chars():
    results = [_result(str(i), 0.9, "x" * 50) for i in range(5)]

    # Each part is 79 chars, plus a 6-char separator between parts
    context = assemble_context(results, max_chars=170)

    assert "[Document 1]" in context
    assert "[Document 2]" in context
    assert "[Document 3]" not in context
    assert len(context) == 164


@pytest.mark.asyncio
async def test_query_accepts_numpy_embeddings(populated_store, embedder):
    numpy_embedder = AsyncMock()
    numpy_embedder.embed.side_effect = lambda texts: [
        np.asarray(embedder._embed_one(text)) for text in texts
    ]

    result = await Retriever(populated_store, numpy_embedder).query(TEXTS[0], {"limit": 1})

    assert result.results[0].document.id == "chunk-0"


@pytest.mark.asyncio
async def test_empty_numpy_query_embedding_is_an_error(populated_store):
    numpy_embedder = AsyncMock()
    numpy_embedder.embed.return_value = [np.array([])]

    with pytest.raises(EmbeddingError):
        await Retriever(populated_store, numpy_embedder).query("anything")
