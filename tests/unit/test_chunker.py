"""Tests for TextChunker windowing and section-aware chunking."""
import pytest

from ragkit.models import Document
from ragkit.rag.chunker import TextChunker, split_sections


@pytest.mark.parametrize(
    "length,size,overlap",
    [
        (1, 5, 0),
        (10, 4, 2),
        (100, 10, 0),
        (101, 10, 3),
        (2500, 1000, 200),
        (999, 7, 6),
    ],
)
def test_chunks_cover_text_without_gaps(length, size, overlap):
    text = "".join(chr(ord("a") + i % 26) for i in range(length))
    chunker = TextChunker(chunk_size=size, chunk_overlap=overlap)

    chunks = chunker.chunk(text, document_id="doc")

    assert chunks[0].metadata["start_char"] == 0
    assert chunks[-1].metadata["end_char"] == length
    for prev, nxt in zip(chunks, chunks[1:]):
        assert nxt.metadata["start_char"] <= prev.metadata["end_char"]
        assert nxt.metadata["start_char"] > prev.metadata["start_char"]
    for chunk in chunks:
        start, end = chunk.metadata["start_char"], chunk.metadata["end_char"]
        assert chunk.content == text[start:end]
        assert end - start <= size
        assert chunk.metadata["chunk_count"] == len(chunks)


def test_chunk_count_is_deterministic():
    chunker = TextChunker(chunk_size=1000, chunk_overlap=200)
    text = "x" * 2500

    first = chunker.chunk_text(text)
    second = chunker.chunk_text(text)

    assert [(c.char_start, c.char_end) for c in first] == [
        (0, 1000),
        (800, 1800),
        (1600, 2500),
        (2400, 2500),
    ]
    assert [(c.char_start, c.char_end) for c in second] == [
        (c.char_start, c.char_end) for c in first
    ]


def test_windows_advance_until_start_passes_end():
    chunker = TextChunker(chunk_size=1000, chunk_overlap=200)

    chunks = chunker.chunk_text("x" * 1700)

    assert [(c.char_start, c.char_end) for c in chunks] == [
        (0, 1000),
        (800, 1700),
        (1600, 1700),
    ]
    assert [c.chunk_index for c in chunks] == [0, 1, 2]


def test_adjacent_full_chunks_share_overlap():
    text = "The quick brown fox jumps over the lazy dog. " * 20
    chunker = TextChunker(chunk_size=50, chunk_overlap=12)

    chunks = chunker.chunk_text(text)

    assert len(chunks) > 2
    for prev, nxt in zip(chunks, chunks[1:]):
        if len(prev.content) == 50:
            assert prev.content[-12:] == nxt.content[:12]


def test_short_text_yields_single_chunk():
    chunker = TextChunker(chunk_size=100, chunk_overlap=20)

    chunks = chunker.chunk("short text", document_id="doc-1")

    assert len(chunks) == 1
    assert chunks[0].metadata["start_char"] == 0
    assert chunks[0].metadata["end_char"] == len("short text")
    assert chunks[0].metadata["chunk_index"] == 0
    assert chunks[0].metadata["chunk_count"] == 1


def test_text_exactly_chunk_size_is_one_chunk():
    chunker = TextChunker(chunk_size=10, chunk_overlap=2)

    assert len(chunker.chunk_text("0123456789")) == 1


def test_empty_text_yields_no_chunks():
    chunker = TextChunker(chunk_size=10, chunk_overlap=2)

    assert chunker.chunk("") == []
    assert chunker.chunk_text("") == []


def test_overlap_is_clamped_below_chunk_size():
    chunker = TextChunker(chunk_size=5, chunk_overlap=9)

    assert chunker.chunk_overlap == 4
    chunks = chunker.chunk_text("abcdefghij")
    assert [c.char_start for c in chunks] == list(range(10))
    assert chunks[-1].content == "j"


def test_zero_overlap_is_respected():
    chunker = TextChunker(chunk_size=5, chunk_overlap=0)

    assert chunker.chunk_overlap == 0
    assert [c.content for c in chunker.chunk_text("abcdefghij")] == ["abcde", "fghij"]


@pytest.mark.parametrize("size,overlap", [(0, 0), (-3, 0), (10, -1)])
def test_invalid_configuration_raises(size, overlap):
    with pytest.raises(ValueError):
        TextChunker(chunk_size=size, chunk_overlap=overlap)


def test_chunk_document_stamps_ids_and_metadata():
    document = Document(
        id="doc-7",
        content="a" * 25,
        metadata={"source": "notes.txt", "chunk_index": 99},
    )
    chunker = TextChunker(chunk_size=10, chunk_overlap=0)

    chunks = chunker.chunk_document(document)

    assert [c.id for c in chunks] == ["doc-7-chunk-0", "doc-7-chunk-1", "doc-7-chunk-2"]
    assert [c.index for c in chunks] == [0, 1, 2]
    for i, chunk in enumerate(chunks):
        assert chunk.document_id == "doc-7"
        assert chunk.embedding is None
        assert chunk.metadata["source"] == "notes.txt"
        assert chunk.metadata["chunk_index"] == i
        assert chunk.metadata["parent_document_id"] == "doc-7"
        assert 0 <= chunk.metadata["chunk_index"] < chunk.metadata["chunk_count"]
    assert chunks[0].metadata["token_count"] == 3
    assert chunks[2].metadata["token_count"] == 2
    # Base metadata is copied, not shared
    assert document.metadata["chunk_index"] == 99


SECTIONED = "Preface line.\n# Alpha\nShort alpha.\n# Beta\n" + "b" * 45


def test_split_sections_tracks_absolute_offsets():
    sections = split_sections(SECTIONED)

    assert [(s.title, s.char_start, s.char_end) for s in sections] == [
        ("Introduction", 0, 14),
        ("Alpha", 22, 35),
        ("Beta", 42, 87),
    ]


def test_split_sections_drops_blank_sections():
    sections = split_sections("# One\n\n# Two\nbody\n")

    assert [s.title for s in sections] == ["Two"]


def test_chunk_sections_numbers_globally_and_windows_large_sections():
    document = Document(id="md-1", content=SECTIONED, metadata={"type": "markdown"})
    chunker = TextChunker(chunk_size=20, chunk_overlap=5)

    chunks = chunker.chunk_sections(document)

    assert [c.metadata["section"] for c in chunks] == [
        "Introduction",
        "Alpha",
        "Beta",
        "Beta",
        "Beta",
    ]
    assert [(c.metadata["start_char"], c.metadata["end_char"]) for c in chunks] == [
        (0, 14),
        (22, 35),
        (42, 62),
        (57, 77),
        (72, 87),
    ]
    assert [c.metadata["chunk_index"] for c in chunks] == [0, 1, 2, 3, 4]
    assert all(c.metadata["chunk_count"] == 5 for c in chunks)
    for chunk in chunks:
        start, end = chunk.metadata["start_char"], chunk.metadata["end_char"]
        assert chunk.content == SECTIONED[start:end]
        assert end <= len(SECTIONED)


def test_chunk_sections_without_headings_is_one_introduction_section():
    document = Document(id="plain", content="no headings here")
    chunker = TextChunker(chunk_size=100, chunk_overlap=10)

    chunks = chunker.chunk_sections(document)

    assert len(chunks) == 1
    assert chunks[0].metadata["section"] == "Introduction"


def test_get_chunk_stats():
    chunker = TextChunker(chunk_size=10, chunk_overlap=0)
    chunks = chunker.chunk_text("a" * 25)

    stats = chunker.get_chunk_stats(chunks)

    assert stats["chunk_count"] == 3
    assert stats["total_chars"] == 25
    assert stats["min_chunk_size"] == 5
    assert stats["max_chunk_size"] == 10
    assert stats["overlap"] == 0


def test_get_chunk_stats_on_empty_input_has_same_keys():
    chunker = TextChunker(chunk_size=10, chunk_overlap=3)

    empty = chunker.get_chunk_stats([])
    full = chunker.get_chunk_stats(chunker.chunk_text("a" * 25))

    assert empty["chunk_count"] == 0
    assert empty["overlap"] == 3
    assert set(empty) == set(full)
