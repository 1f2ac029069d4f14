"""
Similarity index - in-memory top-K retrieval over document embeddings.

The index is a derived cache of the document store: it maps document id to
embedding and can always be rebuilt from store.list_embedded().

RANKING:
--------
Cosine similarity of L2-normalized vectors (or plain dot product when the
metric is "dot"). Search is an exact brute-force scan: one matrix-vector
product, then np.partition to find the K-th best score without sorting the
whole corpus. Ties are broken by ascending document id so that results are a
pure function of (index contents, query).

CONCURRENCY:
------------
Rows live in preallocated buffers that are only ever appended to. A reader
grabs the current snapshot (read-only views of the first n rows) by
reference and never takes a lock. Writers serialize on a lock and publish
the next snapshot before releasing it:

- new id:      write row n of the buffer, publish n + 1 rows (amortized O(D),
               the buffer doubles when full)
- replace:     copy the buffer, overwrite one row, publish the copy
- remove:      copy the buffer, move the last row into the hole, publish

Rows visible to an existing snapshot are never written again, so a search
that started before a write finishes on the state it started with.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING, Sequence

import numpy as np

from semantic_search.core.errors import DimensionError, ValidationError

if TYPE_CHECKING:
    from semantic_search.core.protocols import DocumentStore

logger = logging.getLogger(__name__)

METRICS = ("cosine", "dot")
SCORE_SCALES = ("unit", "raw")

MIN_CAPACITY = 16


def l2_normalize(vector: np.ndarray) -> np.ndarray:
    """Scale to unit length; the zero vector stays zero."""
    norm = np.linalg.norm(vector)
    if norm == 0:
        return vector
    return vector / norm


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Calculate cosine similarity between two vectors (0.0 if either is zero)."""
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(a) * np.linalg.norm(b)
    if norm == 0:
        return 0.0
    return float(np.dot(a, b) / norm)


@dataclass(frozen=True)
class _Snapshot:
    ids: np.ndarray      # int64, row order (not sorted)
    matrix: np.ndarray   # (n, dim) float32, row i belongs to ids[i]


class SimilarityIndex:
    """
    Exact top-K similarity index.

    Args:
        dimensions: Embedding dimension D; every vector must match it
        metric: "cosine" (default) or "dot"
        score_scale: "unit" reports cosine as (score + 1) / 2, "raw" as-is
    """

    def __init__(self, dimensions: int, metric: str = "cosine", score_scale: str = "unit"):
        if metric not in METRICS:
            raise ValueError(f"Unknown similarity metric: {metric}")
        if score_scale not in SCORE_SCALES:
            raise ValueError(f"Unknown score scale: {score_scale}")
        self.dimensions = dimensions
        self.metric = metric
        self.score_scale = score_scale
        self._lock = threading.Lock()
        self._positions: dict[int, int] = {}
        self._id_buffer, self._row_buffer = self._allocate(MIN_CAPACITY)
        self._publish(0)

    # -----------------------------------------------------------------------
    # BUFFERS (writer side, caller holds the lock)
    # -----------------------------------------------------------------------

    def _allocate(self, capacity: int) -> tuple[np.ndarray, np.ndarray]:
        return (
            np.empty(capacity, dtype=np.int64),
            np.empty((capacity, self.dimensions), dtype=np.float32),
        )

    def _copy_buffers(self, rows: int, capacity: int) -> None:
        """Move the first `rows` rows into fresh buffers of `capacity`."""
        ids, matrix = self._allocate(capacity)
        ids[:rows] = self._id_buffer[:rows]
        matrix[:rows] = self._row_buffer[:rows]
        self._id_buffer, self._row_buffer = ids, matrix

    def _publish(self, rows: int) -> _Snapshot:
        ids = self._id_buffer[:rows]
        matrix = self._row_buffer[:rows]
        ids.setflags(write=False)
        matrix.setflags(write=False)
        self._snapshot = _Snapshot(ids=ids, matrix=matrix)
        return self._snapshot

    # -----------------------------------------------------------------------
    # WRITES
    # -----------------------------------------------------------------------

    def _prepare(self, vector: Sequence[float]) -> np.ndarray:
        """Validate length and return the stored (normalized) form."""
        arr = np.asarray(vector, dtype=np.float32)
        if arr.ndim != 1 or arr.shape[0] != self.dimensions:
            raise DimensionError(self.dimensions, arr.shape[0] if arr.ndim == 1 else arr.size)
        if not np.all(np.isfinite(arr)):
            raise ValidationError("Embedding contains non-finite values")
        if self.metric == "cosine":
            arr = l2_normalize(arr)
        return arr

    def upsert(self, document_id: int, vector: Sequence[float]) -> None:
        """Insert or replace the vector for a document."""
        prepared = self._prepare(vector)
        with self._lock:
            rows = len(self._positions)
            position = self._positions.get(document_id)
            if position is None:
                if rows == len(self._id_buffer):
                    self._copy_buffers(rows, max(MIN_CAPACITY, 2 * rows))
                position = rows
                rows += 1
                self._id_buffer[position] = document_id
                self._positions[document_id] = position
            else:
                self._copy_buffers(rows, len(self._id_buffer))
            self._row_buffer[position] = prepared
            self._publish(rows)

    def remove(self, document_id: int) -> None:
        """Drop a document's vector; no-op if it is not indexed."""
        with self._lock:
            position = self._positions.pop(document_id, None)
            if position is None:
                return
            last = len(self._positions)
            self._copy_buffers(last + 1, len(self._id_buffer))
            if position != last:
                moved = int(self._id_buffer[last])
                self._id_buffer[position] = moved
                self._row_buffer[position] = self._row_buffer[last]
                self._positions[moved] = position
            self._publish(last)

    def rebuild(self, store: DocumentStore) -> int:
        """
        Replace the whole index with the embedded documents of a store.

        Used at startup and after bulk changes. The writer lock is held
        while the store is read, so an upsert or remove issued meanwhile is
        applied on top of the rebuilt contents. Returns the number of
        indexed documents.
        """
        with self._lock:
            documents = store.list_embedded()
            rows = [self._prepare(doc.embedding) for doc in documents]

            ids, matrix = self._allocate(max(MIN_CAPACITY, len(rows)))
            positions = {}
            for position, (doc, row) in enumerate(zip(documents, rows)):
                ids[position] = doc.id
                matrix[position] = row
                positions[doc.id] = position

            self._id_buffer, self._row_buffer, self._positions = ids, matrix, positions
            self._publish(len(rows))

        logger.info(f"Similarity index rebuilt with {len(rows)} documents")
        return len(rows)

    # -----------------------------------------------------------------------
    # READS
    # -----------------------------------------------------------------------

    def top_k(self, query: Sequence[float], k: int) -> list[tuple[int, float]]:
        """
        Return up to k (document_id, score) pairs, best first.

        Length is min(k, len(index)). Scores are non-increasing and equal
        scores are ordered by ascending id.
        """
        if k < 1:
            raise ValidationError("k must be at least 1")
        q = self._prepare(query)
        snapshot = self._snapshot

        n = len(snapshot.ids)
        if n == 0:
            return []

        scores = snapshot.matrix @ q
        k = min(k, n)

        if k < n:
            # Keep every candidate tied with the k-th best so the id
            # tie-break below sees all of them.
            kth = np.partition(scores, n - k)[n - k]
            candidates = np.flatnonzero(scores >= kth)
        else:
            candidates = np.arange(n)

        order = np.lexsort((snapshot.ids[candidates], -scores[candidates]))[:k]
        picked = candidates[order]
        return [(int(snapshot.ids[i]), float(scores[i])) for i in picked]

    def display_score(self, score: float) -> float:
        """Map a raw score to the scale reported to API callers."""
        if self.metric == "cosine" and self.score_scale == "unit":
            return (score + 1.0) / 2.0
        return score

    def ids(self) -> list[int]:
        return sorted(int(i) for i in self._snapshot.ids)

    def vector(self, document_id: int) -> np.ndarray | None:
        """Stored (normalized) vector for an id, if indexed."""
        with self._lock:
            position = self._positions.get(document_id)
            if position is None:
                return None
            return self._snapshot.matrix[position]

    def __len__(self) -> int:
        return len(self._snapshot.ids)

    def __contains__(self, document_id: object) -> bool:
        return document_id in self._positions
