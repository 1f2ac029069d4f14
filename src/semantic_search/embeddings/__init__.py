"""
Embeddings module - text embedding generation.

1. Protocol (EmbeddingProvider, in core.protocols) defines the interface
2. Production implementation (WorkersAIEmbeddings) plus OpenAIEmbeddings
3. Test double (MockEmbeddings) for fast testing
4. Factory function (get_embedding_provider)
"""

from semantic_search.core.protocols import EmbeddingProvider
from semantic_search.embeddings.providers import (
    WorkersAIEmbeddings,
    OpenAIEmbeddings,
    MockEmbeddings,
    get_embedding_provider,
    parse_vectors,
)

__all__ = [
    "EmbeddingProvider",
    "WorkersAIEmbeddings",
    "OpenAIEmbeddings",
    "MockEmbeddings",
    "get_embedding_provider",
    "parse_vectors",
]
