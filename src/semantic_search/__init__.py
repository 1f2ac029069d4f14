"""Similarity-ranked document search over text embeddings."""

__version__ = "0.1.0"
