"""Exception types raised by the toolkit."""


class RagError(Exception):
    """Base class for all toolkit errors."""


class DimensionMismatchError(RagError, ValueError):
    """An embedding's length differs from the store's configured dimensions."""

    def __init__(self, expected: int, actual: int, chunk_id: str = None):
        self.expected = expected
        self.actual = actual
        self.chunk_id = chunk_id
        where = f" for {chunk_id}" if chunk_id else ""
        super().__init__(
            f"Embedding dimension mismatch{where}: expected {expected}, got {actual}"
        )


class MissingEmbeddingError(RagError, ValueError):
    """A chunk was handed to the store without an embedding vector."""

    def __init__(self, chunk_id: str):
        self.chunk_id = chunk_id
        super().__init__(f"Document {chunk_id} is missing embedding vector")


class NotFoundError(RagError, LookupError):
    """The targeted chunk id does not exist."""


class InvalidQueryError(RagError, TypeError):
    """A vector query was given something that is not a vector."""


class InvalidFilterError(RagError, ValueError):
    """A metadata filter is malformed."""


class LoaderError(RagError, RuntimeError):
    """A document source could not be loaded."""


class EmbeddingError(RagError, RuntimeError):
    """The embedding backend failed or returned unusable vectors."""
