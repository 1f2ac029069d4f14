"""
Ingestion pipeline - text in, searchable document out.

Pipeline:
1. validate and create the document (embedding NULL)
2. embed "title\\ncontent" (with the retry policy)
3. attach the embedding in the store, then upsert it into the index

A document is searchable only after step 3. If step 2 fails the document is
NOT rolled back: it stays stored with a NULL embedding and the failure is
raised as EmbeddingPendingError, which names the stored documents. Pending
documents are recovered with embed_document() or embed_pending().
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Iterable, Sequence

import numpy as np

from semantic_search.core.errors import EmbeddingPendingError, NotFoundError, ProviderError
from semantic_search.engine.retry import RetryPolicy
from semantic_search.observability import (
    INGEST_DOCUMENT_ID,
    INGEST_EMBEDDED,
    get_tracer,
    ingest_attributes,
)
from semantic_search.retrieval.document import Document, validate_fields

if TYPE_CHECKING:
    from semantic_search.core.protocols import DocumentStore, EmbeddingProvider
    from semantic_search.observability import SpanProtocol
    from semantic_search.retrieval.index import SimilarityIndex

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """
    Writes documents into the store and the similarity index.

    Dependencies are INJECTED, not created internally.
    """

    def __init__(
        self,
        provider: EmbeddingProvider,
        store: DocumentStore,
        index: SimilarityIndex,
        retry: RetryPolicy | None = None,
    ):
        self._provider = provider
        self._store = store
        self._index = index
        self._retry = retry or RetryPolicy()

    @property
    def _model(self) -> str | None:
        return getattr(self._provider, "model", None)

    def _embed(
        self, documents: list[Document], span: SpanProtocol | None = None
    ) -> list[np.ndarray]:
        texts = [doc.text for doc in documents]
        try:
            return self._retry.call(
                lambda: self._provider.embed_batch(texts), "document embedding"
            )
        except ProviderError as e:
            ids = ", ".join(str(doc.id) for doc in documents)
            logger.warning(f"Embedding failed, documents left pending: {ids} ({e.message})")
            if span is not None:
                span.record_error(e)
            raise EmbeddingPendingError(e, documents) from e

    def _attach(self, document: Document, vector: Sequence[float]) -> Document:
        self._store.attach_embedding(document.id, vector)
        self._index.upsert(document.id, vector)
        try:
            self._store.get(document.id)
        except NotFoundError:
            # Deleted between attach and upsert; drop the orphaned index entry.
            self._index.remove(document.id)
            raise
        return replace(document, embedding=np.asarray(vector, dtype=np.float32))

    def ingest(self, title: str, content: str) -> Document:
        """
        Store a document and make it searchable.

        Raises:
            ValidationError: empty title or content (nothing stored)
            EmbeddingPendingError: stored, but the embedding could not be made
        """
        document = self._store.create(title, content)

        with get_tracer().start_span("ingest", attributes=ingest_attributes(1, self._model)) as span:
            span.set_attribute(INGEST_DOCUMENT_ID, document.id)
            span.set_attribute(INGEST_EMBEDDED, False)
            vector = self._embed([document], span)[0]
            document = self._attach(document, vector)
            span.set_attribute(INGEST_EMBEDDED, True)

        logger.info(f"Ingested document {document.id}")
        return document

    def ingest_batch(self, entries: Iterable[tuple[str, str]]) -> list[Document]:
        """
        Store several documents with a single provider call.

        Every entry is validated before any document is created. Vectors
        are matched to documents by position.
        """
        entries = [validate_fields(title, content) for title, content in entries]
        if not entries:
            return []

        documents = [self._store.create(title, content) for title, content in entries]

        attrs = ingest_attributes(len(documents), self._model)
        with get_tracer().start_span("ingest_batch", attributes=attrs) as span:
            span.set_attribute(INGEST_EMBEDDED, False)
            vectors = self._embed(documents, span)
            documents = [self._attach(doc, vec) for doc, vec in zip(documents, vectors)]
            span.set_attribute(INGEST_EMBEDDED, True)

        logger.info(f"Ingested batch of {len(documents)} documents")
        return documents

    def embed_document(self, document_id: int) -> Document:
        """(Re)compute the embedding of a stored document and index it."""
        document = self._store.get(document_id)
        vector = self._embed([document])[0]
        return self._attach(document, vector)

    def embed_pending(self, batch_size: int = 32) -> int:
        """
        Embed every document that is still missing an embedding.

        Work is committed batch by batch; a provider failure stops the run
        and is raised, leaving earlier batches embedded.

        Returns:
            Number of documents embedded
        """
        pending = self._store.list_pending()
        embedded = 0
        for start in range(0, len(pending), batch_size):
            batch = pending[start:start + batch_size]
            vectors = self._embed(batch)
            for doc, vector in zip(batch, vectors):
                self._attach(doc, vector)
            embedded += len(batch)
            logger.info(f"Embedded {embedded}/{len(pending)} pending documents")
        return embedded

    def delete(self, document_id: int) -> None:
        """Remove a document from the store and the index."""
        self._store.delete(document_id)
        self._index.remove(document_id)
