"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Document loading (text, Markdown, HTML)
- Document chunking with overlap
- Similarity metrics and metadata filters
- Embedding generation
- In-memory vector storage
- Ingestion and semantic retrieval pipelines
"""
