"""
Embeddings Module - Single Responsibility: Turn text into vectors.

It has ONE job: call an embedding model and hand back one float vector per
input text, in input order. No database logic, no ranking, no retries.
Retry policy belongs to the engines that call it.

Every failure mode is reported as ProviderError:
- network error / timeout          -> retryable
- upstream 5xx or 429              -> retryable
- upstream 4xx                     -> not retryable
- body not in the expected format  -> not retryable
"""

from __future__ import annotations

import hashlib
import logging
from typing import Any

import numpy as np
import requests
from openai import APIConnectionError, APIStatusError, APITimeoutError, OpenAI, OpenAIError

from semantic_search.config import ProviderConfig
from semantic_search.core.errors import ProviderError
from semantic_search.core.protocols import EmbeddingProvider

logger = logging.getLogger(__name__)

WORKERS_AI_URL = "https://api.cloudflare.com/client/v4/accounts/{account_id}/ai/run/{model}"


def _is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code == 429


def parse_vectors(payload: Any, expected_count: int) -> list[np.ndarray]:
    """
    Extract the embedding rows from a provider response body.

    Accepts `{"result": [[...], ...]}` as well as the Workers AI shape
    `{"result": {"shape": [n, d], "data": [[...], ...]}}`.
    """
    if not isinstance(payload, dict) or "result" not in payload:
        raise ProviderError("Invalid response from embedding provider", body=str(payload)[:500])

    rows = payload["result"]
    if isinstance(rows, dict):
        rows = rows.get("data")

    if not isinstance(rows, list):
        raise ProviderError("Invalid response from embedding provider", body=str(payload)[:500])
    if len(rows) != expected_count:
        raise ProviderError(
            f"Embedding provider returned {len(rows)} vectors for {expected_count} texts",
            body=str(payload)[:500],
        )

    vectors = []
    for row in rows:
        if not isinstance(row, list) or not row:
            raise ProviderError("Invalid embedding vector in provider response")
        try:
            vector = np.asarray(row, dtype=np.float32)
        except (TypeError, ValueError) as e:
            raise ProviderError("Invalid embedding vector in provider response", body=str(e)) from e
        if vector.ndim != 1:
            raise ProviderError("Invalid embedding vector in provider response")
        vectors.append(vector)
    return vectors


class WorkersAIEmbeddings:
    """
    Cloudflare Workers AI embedding provider.

    Uses @cf/baai/bge-base-en-v1.5 by default (768 dimensions).
    Request body is `{"text": [...]}`; vectors come back under `result`.
    """

    def __init__(
        self,
        account_id: str,
        api_token: str,
        model: str = "@cf/baai/bge-base-en-v1.5",
        dimensions: int = 768,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        if not account_id or not api_token:
            raise ValueError("CLOUDFLARE_ACCOUNT_ID and CLOUDFLARE_API_TOKEN are required")
        self.model = model
        self.url = WORKERS_AI_URL.format(account_id=account_id, model=model)
        self.timeout = timeout
        self._dimensions = dimensions
        self._session = session or requests.Session()
        self._session.headers.update({
            "Authorization": f"Bearer {api_token}",
            "Content-Type": "application/json",
        })

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def request(self, texts: list[str]) -> requests.Response:
        """POST texts to the model; transport failures become ProviderError."""
        try:
            return self._session.post(self.url, json={"text": texts}, timeout=self.timeout)
        except requests.Timeout as e:
            raise ProviderError(
                f"Embedding provider timed out after {self.timeout}s", retryable=True
            ) from e
        except requests.RequestException as e:
            raise ProviderError(
                "Embedding provider unreachable", body=str(e), retryable=True
            ) from e

    def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts in one call."""
        if not texts:
            return []

        response = self.request(texts)
        if not response.ok:
            logger.warning(
                f"Embedding provider returned {response.status_code}: {response.text[:200]}"
            )
            raise ProviderError(
                "Embedding provider error",
                status_code=response.status_code,
                body=response.text,
                retryable=_is_retryable_status(response.status_code),
            )

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(
                "Invalid JSON response from embedding provider", body=response.text
            ) from e

        return parse_vectors(payload, expected_count=len(texts))

    def close(self) -> None:
        self._session.close()


class OpenAIEmbeddings:
    """
    OpenAI-based embedding provider.

    The SDK's own retry loop is disabled so that retries stay with the
    engines like for every other provider.
    """

    def __init__(
        self,
        model: str = "text-embedding-3-small",
        api_key: str | None = None,
        dimensions: int = 1536,
        timeout: float = 10.0,
    ):
        self.model = model
        self._dimensions = dimensions
        self._client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        return self.embed_batch([text])[0]

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts efficiently."""
        if not texts:
            return []

        try:
            response = self._client.embeddings.create(input=texts, model=self.model)
        except APITimeoutError as e:
            raise ProviderError("Embedding provider timed out", retryable=True) from e
        except APIConnectionError as e:
            raise ProviderError("Embedding provider unreachable", body=str(e), retryable=True) from e
        except APIStatusError as e:
            raise ProviderError(
                "Embedding provider error",
                status_code=e.status_code,
                body=e.response.text,
                retryable=_is_retryable_status(e.status_code),
            ) from e
        except OpenAIError as e:
            raise ProviderError("Embedding provider error", body=str(e)) from e

        # Response items carry their input index; order by it explicitly.
        items = sorted(response.data, key=lambda item: item.index)
        return parse_vectors(
            {"result": [item.embedding for item in items]}, expected_count=len(texts)
        )

    def close(self) -> None:
        self._client.close()


class MockEmbeddings:
    """
    Mock embedding provider for testing without API calls.

    Generates deterministic pseudo-embeddings seeded from text hashes.
    NOT for production use - only for testing/development.
    """

    def __init__(self, dimensions: int = 768):
        self._dimensions = dimensions
        self.calls: list[list[str]] = []

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        """Generate deterministic pseudo-embedding from text hash."""
        seed = int.from_bytes(hashlib.sha256(text.encode()).digest()[:8], "big")
        rng = np.random.default_rng(seed)
        return rng.standard_normal(self._dimensions).astype(np.float32)

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts."""
        self.calls.append(list(texts))
        return [self.embed(text) for text in texts]

    def close(self) -> None:
        pass


def get_embedding_provider(config: ProviderConfig) -> EmbeddingProvider:
    """
    Factory function to get the configured embedding provider.

    Args:
        config: Provider settings; config.name selects the implementation
    """
    if config.name == "mock":
        return MockEmbeddings(dimensions=config.dimensions)
    if config.name == "openai":
        return OpenAIEmbeddings(
            model=config.model,
            api_key=config.openai_api_key,
            dimensions=config.dimensions,
            timeout=config.timeout_seconds,
        )
    if config.name == "workers-ai":
        return WorkersAIEmbeddings(
            account_id=config.account_id or "",
            api_token=config.api_token or "",
            model=config.model,
            dimensions=config.dimensions,
            timeout=config.timeout_seconds,
        )
    raise ValueError(f"Unknown embedding provider: {config.name}")
