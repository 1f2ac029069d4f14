"""
Process-wide service wiring.

The container owns the long-lived resources (store connections, provider
HTTP session, similarity index). It is created once at startup, started
explicitly and shut down explicitly; nothing reaches for these resources
through module globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from semantic_search.config import ServiceConfig
from semantic_search.core.protocols import DocumentStore, EmbeddingProvider
from semantic_search.embeddings import get_embedding_provider
from semantic_search.engine.ingest import IngestionPipeline
from semantic_search.engine.query import QueryEngine
from semantic_search.engine.retry import RetryPolicy
from semantic_search.retrieval.index import SimilarityIndex
from semantic_search.retrieval.store import get_document_store

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """All collaborators of a running service."""

    config: ServiceConfig
    provider: EmbeddingProvider
    store: DocumentStore
    index: SimilarityIndex
    query_engine: QueryEngine
    ingestion: IngestionPipeline
    retry: RetryPolicy
    started: bool = False

    def startup(self) -> None:
        """Open the store, create the schema if configured, load the index."""
        if self.started:
            return
        self.store.open()
        if self.config.database.create_schema and hasattr(self.store, "create_schema"):
            self.store.create_schema()
        self.index.rebuild(self.store)
        self.started = True
        logger.info(
            f"Service started: store={self.config.document_store} "
            f"provider={self.config.provider.name} indexed={len(self.index)}"
        )

    def shutdown(self) -> None:
        """Drain store connections and close the provider session."""
        if not self.started:
            return
        self.store.close()
        close = getattr(self.provider, "close", None)
        if close is not None:
            close()
        self.started = False
        logger.info("Service stopped")


def build_container(
    config: ServiceConfig,
    provider: EmbeddingProvider | None = None,
    store: DocumentStore | None = None,
) -> ServiceContainer:
    """
    Wire the service from config.

    Args:
        config: Service configuration
        provider: Override the configured embedding provider (tests)
        store: Override the configured document store (tests)
    """
    if provider is None:
        provider = get_embedding_provider(config.provider)
    if store is None:
        store = get_document_store(config)
    index = SimilarityIndex(
        dimensions=config.provider.dimensions,
        metric=config.search.metric,
        score_scale=config.search.score_scale,
    )
    retry = RetryPolicy(
        max_retries=config.provider.max_retries,
        backoff_seconds=config.provider.backoff_seconds,
    )
    return ServiceContainer(
        config=config,
        provider=provider,
        store=store,
        index=index,
        query_engine=QueryEngine(provider, store, index, retry),
        ingestion=IngestionPipeline(provider, store, index, retry),
        retry=retry,
    )
