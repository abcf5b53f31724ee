"""Toolkit configuration with sensible defaults."""
import os

# Ollama configuration
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "mxbai-embed-large:latest")
EMBEDDING_DIMENSIONS = int(os.getenv("EMBEDDING_DIMENSIONS", "1024"))
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "60.0"))
EMBEDDING_BATCH_SIZE = int(os.getenv("EMBEDDING_BATCH_SIZE", "32"))

# Chunking parameters (character-based to avoid tokenizer inconsistencies)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))          # ≈250 tokens
CHUNK_OVERLAP = int(os.getenv("CHUNK_OVERLAP", "200"))     # ≈50 tokens
CHARS_PER_TOKEN = 4

# Retrieval parameters
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "10"))
DISTANCE_METRIC = os.getenv("DISTANCE_METRIC", "cosine")   # cosine | dot | euclidean
MAX_CONTEXT_CHARS = int(os.getenv("MAX_CONTEXT_CHARS", "0"))  # 0 = unlimited

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
