"""
Document model for the retrieval system.

Single responsibility: Define the structure of documents
held by the document stores and returned by search.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone

import numpy as np

from semantic_search.core.errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate_fields(title: str | None, content: str | None) -> tuple[str, str]:
    """Reject missing or blank title/content before anything is persisted."""
    if not title or not title.strip():
        raise ValidationError("Title and content are required", "title is empty")
    if not content or not content.strip():
        raise ValidationError("Title and content are required", "content is empty")
    return title, content


@dataclass
class Document:
    """
    A stored document.

    id is assigned by the store and never changes. embedding stays None
    until ingestion attaches one; such documents are never searchable.
    """

    id: int
    title: str
    content: str
    embedding: np.ndarray | None = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_embedded(self) -> bool:
        return self.embedding is not None

    @property
    def text(self) -> str:
        """Text sent to the embedding provider for this document."""
        return f"{self.title}\n{self.content}"

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "embedded": self.is_embedded,
        }
