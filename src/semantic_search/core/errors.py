"""
Error taxonomy shared by every layer of the service.

Components RAISE these; only the HTTP facade translates them into status
codes. Each class carries the status it maps to.

    ValidationError  -> 400  bad caller input, never retried
    NotFoundError    -> 404  unknown document id
    DimensionError   -> 500  embedding size drift, a configuration bug
    ProviderError    -> 502  embedding provider failed (retried upstream)
    StoreError       -> 500  persistence failure
"""

from __future__ import annotations


class SemanticSearchError(Exception):
    """Base class for all service errors."""

    status_code: int = 500

    def __init__(self, message: str, details: str | None = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(SemanticSearchError):
    """Caller supplied invalid input."""

    status_code = 400


class NotFoundError(SemanticSearchError):
    """Requested document does not exist."""

    status_code = 404

    def __init__(self, document_id: int):
        super().__init__(f"Document {document_id} not found")
        self.document_id = document_id


class DimensionError(SemanticSearchError):
    """Vector length does not match the corpus dimension."""

    status_code = 500

    def __init__(self, expected: int, actual: int):
        super().__init__(
            f"Embedding dimension mismatch: expected {expected}, got {actual}"
        )
        self.expected = expected
        self.actual = actual


class ProviderError(SemanticSearchError):
    """
    Embedding provider call failed.

    Attributes:
        upstream_status: HTTP status the provider answered with, if any.
        body: Raw upstream response body, if any.
        retryable: True for timeouts, connection failures and 5xx responses.
    """

    status_code = 502

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        body: str | None = None,
        retryable: bool = False,
    ):
        super().__init__(message, details=body)
        self.upstream_status = status_code
        self.body = body
        self.retryable = retryable


class EmbeddingPendingError(ProviderError):
    """
    Provider failed after documents were already stored.

    The documents keep a null embedding and stay out of search results
    until embedding is retried for them.
    """

    def __init__(self, cause: ProviderError, documents: list):
        super().__init__(
            cause.message,
            status_code=cause.upstream_status,
            body=cause.body,
            retryable=cause.retryable,
        )
        self.documents = documents


class StoreError(SemanticSearchError):
    """Document store operation failed."""

    status_code = 500
