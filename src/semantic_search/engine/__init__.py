"""
Engine module - orchestration of search and ingestion.

- QueryEngine: embed query -> top K from the index -> documents from the store
- IngestionPipeline: create document -> embed -> attach + index
- RetryPolicy: bounded retry for provider calls
- ServiceContainer / build_container(): wires everything from a ServiceConfig
"""

from semantic_search.engine.retry import RetryPolicy
from semantic_search.engine.query import QueryEngine
from semantic_search.engine.ingest import IngestionPipeline
from semantic_search.engine.container import ServiceContainer, build_container

__all__ = [
    "RetryPolicy",
    "QueryEngine",
    "IngestionPipeline",
    "ServiceContainer",
    "build_container",
]
