"""
Shared fixtures: a keyword-driven embedding provider and a wired-up
in-memory service (store + index + engines).
"""

from contextlib import contextmanager

import numpy as np
import pytest

from semantic_search.core.errors import ProviderError
from semantic_search.engine.ingest import IngestionPipeline
from semantic_search.engine.query import QueryEngine
from semantic_search.engine.retry import RetryPolicy
from semantic_search.retrieval.index import SimilarityIndex
from semantic_search.retrieval.store import InMemoryDocumentStore


class KeywordEmbeddings:
    """
    Test provider mapping texts to fixed vectors by keyword.

    The first keyword contained in the (lowercased) text wins; texts with
    no keyword get the fallback vector. Texts containing fail_on raise a
    retryable 500 ProviderError.
    """

    def __init__(self, vectors, fallback=None, fail_on=None, dimensions=2):
        self._vectors = vectors
        self._fallback = fallback or [1.0] * dimensions
        self._fail_on = fail_on
        self._dimensions = dimensions
        self.model = "keyword-test"
        self.calls = []

    @property
    def dimensions(self):
        return self._dimensions

    def _vector_for(self, text):
        lowered = text.lower()
        for keyword, vector in self._vectors.items():
            if keyword in lowered:
                return vector
        return self._fallback

    def embed(self, text):
        return self.embed_batch([text])[0]

    def embed_batch(self, texts):
        self.calls.append(list(texts))
        for text in texts:
            if self._fail_on and self._fail_on in text:
                raise ProviderError(
                    "Embedding provider error",
                    status_code=500,
                    body="upstream exploded",
                    retryable=True,
                )
        return [np.array(self._vector_for(t), dtype=np.float32) for t in texts]


@pytest.fixture
def keyword_provider():
    """Cats and rockets are orthogonal; 'feline' sits close to cats."""
    return KeywordEmbeddings(
        {
            "feline": [0.9, 0.1],
            "cats": [1.0, 0.0],
            "rockets": [0.0, 1.0],
        },
        fallback=[0.6, 0.8],
        fail_on="FAIL",
    )


@pytest.fixture
def no_sleep_retry():
    """Retry policy that never actually sleeps."""
    return RetryPolicy(max_retries=2, backoff_seconds=0.0, sleep=lambda _: None)


@pytest.fixture
def memory_store():
    return InMemoryDocumentStore(dimensions=2)


@pytest.fixture
def index():
    return SimilarityIndex(dimensions=2)


@pytest.fixture
def query_engine(keyword_provider, memory_store, index, no_sleep_retry):
    return QueryEngine(keyword_provider, memory_store, index, no_sleep_retry)


@pytest.fixture
def ingestion(keyword_provider, memory_store, index, no_sleep_retry):
    return IngestionPipeline(keyword_provider, memory_store, index, no_sleep_retry)


class RecordingSpan:
    def __init__(self, name, attributes):
        self.name = name
        self.attributes = dict(attributes or {})
        self.errors = []

    def set_attribute(self, key, value):
        self.attributes[key] = value

    def record_error(self, error):
        self.errors.append(error)


class RecordingTracer:
    """Keeps every span it opens so tests can inspect them."""

    def __init__(self):
        self.spans = []

    @contextmanager
    def start_span(self, name, attributes=None):
        span = RecordingSpan(name, attributes)
        self.spans.append(span)
        yield span


@pytest.fixture
def recording_tracer(monkeypatch):
    tracer = RecordingTracer()
    monkeypatch.setattr("semantic_search.engine.query.get_tracer", lambda: tracer)
    monkeypatch.setattr("semantic_search.engine.ingest.get_tracer", lambda: tracer)
    return tracer
