"""
Query engine - text in, ranked documents out.

Pipeline:
1. validate the query text
2. embed it (with the retry policy)
3. ask the similarity index for the top K ids
4. load each document from the store

The index and the store are not updated atomically together: a document can
be deleted after the index returned its id. Such ids are skipped, so a search
may return fewer than k results. That is the only failure this engine
tolerates silently.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Sequence

from semantic_search.core.errors import NotFoundError, ProviderError, ValidationError
from semantic_search.core.protocols import SearchResult
from semantic_search.engine.retry import RetryPolicy
from semantic_search.observability import (
    SEARCH_RESULT_COUNT,
    SEARCH_SKIPPED_COUNT,
    SEARCH_TOP_SCORE,
    get_tracer,
    search_attributes,
)
from semantic_search.observability.config import get_config as get_tracing_config

if TYPE_CHECKING:
    from semantic_search.core.protocols import DocumentStore, EmbeddingProvider
    from semantic_search.retrieval.index import SimilarityIndex

logger = logging.getLogger(__name__)


class QueryEngine:
    """
    Similarity search over the indexed corpus.

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

    def search(self, text: str, k: int = 10) -> list[SearchResult]:
        """
        Rank stored documents by similarity to a query text.

        Raises:
            ValidationError: empty query or k < 1
            ProviderError: the query could not be embedded
        """
        if not text or not text.strip():
            raise ValidationError("Query text is required")
        if k < 1:
            raise ValidationError("k must be at least 1")

        capture = get_tracing_config().capture_text
        attrs = search_attributes(k, len(self._index), text if capture else None)
        with get_tracer().start_span("search", attributes=attrs) as span:
            start = time.time()
            try:
                vector = self._retry.call(
                    lambda: self._provider.embed_batch([text])[0], "query embedding"
                )
            except ProviderError as e:
                span.record_error(e)
                raise
            results, skipped = self._rank(vector, k)

            span.set_attribute(SEARCH_RESULT_COUNT, len(results))
            span.set_attribute(SEARCH_SKIPPED_COUNT, skipped)
            if results:
                span.set_attribute(SEARCH_TOP_SCORE, results[0].score)

        logger.debug(
            f"search k={k} returned {len(results)} results in {(time.time() - start) * 1000:.1f}ms"
        )
        return results

    def search_by_vector(self, vector: Sequence[float], k: int = 10) -> list[SearchResult]:
        """Rank stored documents against an already computed embedding."""
        results, _ = self._rank(vector, k)
        return results

    def _rank(self, vector: Sequence[float], k: int) -> tuple[list[SearchResult], int]:
        results = []
        skipped = 0
        for document_id, score in self._index.top_k(vector, k):
            try:
                document = self._store.get(document_id)
            except NotFoundError:
                # Deleted between index lookup and fetch.
                logger.debug(f"Skipping document {document_id}: no longer in store")
                skipped += 1
                continue
            results.append(SearchResult(document=document, score=score))
        return results, skipped
