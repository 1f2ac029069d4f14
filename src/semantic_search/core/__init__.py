"""
Core module - shared protocols, result types and the error taxonomy.

USAGE:
------
from semantic_search.core import DocumentStore, EmbeddingProvider, ProviderError
"""

from semantic_search.core.errors import (
    SemanticSearchError,
    ValidationError,
    NotFoundError,
    DimensionError,
    ProviderError,
    EmbeddingPendingError,
    StoreError,
)
from semantic_search.core.protocols import (
    # Protocols
    EmbeddingProvider,
    DocumentStore,
    # Data classes
    SearchResult,
)

__all__ = [
    # Errors
    "SemanticSearchError",
    "ValidationError",
    "NotFoundError",
    "DimensionError",
    "ProviderError",
    "EmbeddingPendingError",
    "StoreError",
    # Protocols
    "EmbeddingProvider",
    "DocumentStore",
    # Data classes
    "SearchResult",
]
