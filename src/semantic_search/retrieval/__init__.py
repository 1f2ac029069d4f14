"""
Retrieval module - document persistence and vector similarity search.

This module provides:
- Document: The document model
- PgDocumentStore: PostgreSQL production store
- InMemoryDocumentStore / FileDocumentStore: development and testing stores
- get_document_store(): Factory function
- SimilarityIndex: in-memory top-K index rebuilt from a store
"""

# Document model
from semantic_search.retrieval.document import Document

# Store implementations and factory
from semantic_search.retrieval.store import (
    PgDocumentStore,
    InMemoryDocumentStore,
    FileDocumentStore,
    get_document_store,
)

# Index
from semantic_search.retrieval.index import (
    SimilarityIndex,
    cosine_similarity,
    l2_normalize,
)

__all__ = [
    # Document
    "Document",
    # Stores
    "PgDocumentStore",
    "InMemoryDocumentStore",
    "FileDocumentStore",
    "get_document_store",
    # Index
    "SimilarityIndex",
    "cosine_similarity",
    "l2_normalize",
]
