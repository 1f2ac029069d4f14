"""
Core protocols defining contracts for the entire service.

All infrastructure components implement these protocols, which lets the
engines take their collaborators by injection and lets tests swap in the
in-memory versions.

PATTERN:
--------
- Protocol defines the contract
- Production implementation (Workers AI / PostgreSQL)
- Test double (MockEmbeddings / InMemoryDocumentStore)
- Factory function for instantiation from config
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from semantic_search.retrieval.document import Document


# ---------------------------------------------------------------------------
# EMBEDDING PROVIDER PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    embed_batch returns exactly one vector per input text, in input order.
    Failures raise ProviderError. Implementations never retry on their own.

    Implementations:
    - WorkersAIEmbeddings (production)
    - OpenAIEmbeddings (alternative)
    - MockEmbeddings (testing)
    """

    @property
    def dimensions(self) -> int:
        """Length of every vector this provider returns."""
        ...

    def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        ...

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts."""
        ...


# ---------------------------------------------------------------------------
# DOCUMENT STORE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class DocumentStore(Protocol):
    """
    Contract for durable document persistence.

    Implementations:
    - PgDocumentStore (production with PostgreSQL + pgvector)
    - FileDocumentStore (single-process local persistence)
    - InMemoryDocumentStore (testing/development)
    """

    def open(self) -> None:
        """Acquire connections / load persisted state."""
        ...

    def close(self) -> None:
        """Release connections."""
        ...

    def create(self, title: str, content: str) -> Document:
        """Create a document with no embedding."""
        ...

    def attach_embedding(self, document_id: int, vector: Sequence[float]) -> None:
        """Set the embedding of an existing document."""
        ...

    def get(self, document_id: int) -> Document:
        """Fetch one document or raise NotFoundError."""
        ...

    def delete(self, document_id: int) -> None:
        """Remove one document or raise NotFoundError."""
        ...

    def list_embedded(self) -> list[Document]:
        """All documents that have an embedding, ascending id."""
        ...

    def list_pending(self) -> list[Document]:
        """All documents still waiting for an embedding, ascending id."""
        ...

    def count(self) -> int:
        """Total number of stored documents."""
        ...


# ---------------------------------------------------------------------------
# SEARCH RESULT
# ---------------------------------------------------------------------------


@dataclass
class SearchResult:
    """A retrieved document paired with its raw similarity score."""

    document: Document
    score: float
