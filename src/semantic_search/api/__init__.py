"""HTTP facade over the query engine and the ingestion pipeline."""

from semantic_search.api.app import create_app

__all__ = ["create_app"]
