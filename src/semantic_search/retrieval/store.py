"""
Document store implementations.

Pattern: Protocol -> Production impl -> Test double -> Factory

This module contains:
1. PgDocumentStore - PostgreSQL with pgvector (production)
2. InMemoryDocumentStore - In-memory store (testing/development)
3. FileDocumentStore - In-memory store persisted to a JSON file (local use)
4. get_document_store() - Factory function

The store is the source of truth. The similarity index is rebuilt from
list_embedded() and is never consulted here.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Iterator, Sequence

import numpy as np
import psycopg
from pgvector.psycopg import register_vector
from psycopg import sql
from psycopg_pool import ConnectionPool, PoolTimeout

from semantic_search.config import DatabaseConfig, ServiceConfig
from semantic_search.core.errors import DimensionError, NotFoundError, StoreError
from semantic_search.core.protocols import DocumentStore
from semantic_search.retrieval.document import Document, validate_fields

logger = logging.getLogger(__name__)


def _as_vector(vector: Sequence[float], dimensions: int) -> np.ndarray:
    arr = np.asarray(vector, dtype=np.float32)
    if arr.ndim != 1 or arr.shape[0] != dimensions:
        raise DimensionError(dimensions, arr.shape[0] if arr.ndim == 1 else arr.size)
    return arr


# ---------------------------------------------------------------------------
# PGVECTOR STORE (Production)
# ---------------------------------------------------------------------------


class PgDocumentStore:
    """
    PostgreSQL document store using pgvector.

    Connections come from a psycopg pool opened by open() and drained by
    close(). Every connection runs in autocommit mode with a server-side
    statement_timeout, so a write that returned is durable and no query can
    hang past the configured timeout.
    """

    _COLUMNS = sql.SQL("id, title, content, embedding, created_at")

    def __init__(self, config: DatabaseConfig, dimensions: int):
        self.config = config
        self.dimensions = dimensions
        self._table = sql.Identifier(config.table_name)
        self._pool: ConnectionPool | None = None

    @staticmethod
    def _configure(conn: psycopg.Connection) -> None:
        conn.execute("CREATE EXTENSION IF NOT EXISTS vector")
        register_vector(conn)

    def open(self) -> None:
        """Open the connection pool and wait for the first connection."""
        if self._pool is not None:
            return

        timeout_ms = int(self.config.timeout_seconds * 1000)
        pool = ConnectionPool(
            self.config.connection_string,
            min_size=self.config.min_pool_size,
            max_size=self.config.max_pool_size,
            timeout=self.config.timeout_seconds,
            kwargs={
                "autocommit": True,
                "options": f"-c statement_timeout={timeout_ms}",
            },
            configure=self._configure,
            open=False,
        )
        try:
            pool.open(wait=True, timeout=self.config.timeout_seconds)
        except (PoolTimeout, psycopg.Error) as e:
            pool.close()
            raise StoreError("Could not connect to database", str(e)) from e

        self._pool = pool
        logger.info(f"Connected to PostgreSQL, table {self.config.table_name}")

    def close(self) -> None:
        """Close the pool, waiting for checked-out connections to return."""
        if self._pool is not None:
            self._pool.close()
            self._pool = None

    @contextmanager
    def _connection(self) -> Iterator[psycopg.Connection]:
        if self._pool is None:
            self.open()
        try:
            with self._pool.connection(timeout=self.config.timeout_seconds) as conn:
                yield conn
        except PoolTimeout as e:
            raise StoreError("Timed out waiting for a database connection", str(e)) from e
        except psycopg.Error as e:
            logger.error(f"Database error: {e}")
            raise StoreError("Database operation failed", str(e)) from e

    def create_schema(self) -> None:
        """Create the documents table if it does not exist."""
        with self._connection() as conn:
            conn.execute(
                sql.SQL(
                    """
                    CREATE TABLE IF NOT EXISTS {table} (
                        id BIGSERIAL PRIMARY KEY,
                        title TEXT NOT NULL,
                        content TEXT NOT NULL,
                        embedding vector({dim}),
                        created_at TIMESTAMPTZ NOT NULL DEFAULT now()
                    )
                    """
                ).format(table=self._table, dim=sql.Literal(self.dimensions))
            )

    @staticmethod
    def _row_to_document(row: tuple) -> Document:
        embedding = row[3]
        if embedding is not None:
            embedding = np.asarray(embedding, dtype=np.float32)
        return Document(
            id=row[0],
            title=row[1],
            content=row[2],
            embedding=embedding,
            created_at=row[4],
        )

    def create(self, title: str, content: str) -> Document:
        """Insert a document with a NULL embedding."""
        title, content = validate_fields(title, content)
        with self._connection() as conn:
            row = conn.execute(
                sql.SQL(
                    "INSERT INTO {table} (title, content, embedding) VALUES (%s, %s, NULL) "
                    "RETURNING {columns}"
                ).format(table=self._table, columns=self._COLUMNS),
                (title, content),
            ).fetchone()
        return self._row_to_document(row)

    def attach_embedding(self, document_id: int, vector: Sequence[float]) -> None:
        """Set the embedding of an existing document."""
        arr = _as_vector(vector, self.dimensions)
        with self._connection() as conn:
            cur = conn.execute(
                sql.SQL("UPDATE {table} SET embedding = %s WHERE id = %s").format(
                    table=self._table
                ),
                (arr, document_id),
            )
            if cur.rowcount == 0:
                raise NotFoundError(document_id)

    def get(self, document_id: int) -> Document:
        with self._connection() as conn:
            row = conn.execute(
                sql.SQL("SELECT {columns} FROM {table} WHERE id = %s").format(
                    table=self._table, columns=self._COLUMNS
                ),
                (document_id,),
            ).fetchone()
        if row is None:
            raise NotFoundError(document_id)
        return self._row_to_document(row)

    def delete(self, document_id: int) -> None:
        with self._connection() as conn:
            cur = conn.execute(
                sql.SQL("DELETE FROM {table} WHERE id = %s").format(table=self._table),
                (document_id,),
            )
            if cur.rowcount == 0:
                raise NotFoundError(document_id)

    def _select_where(self, condition: str) -> list[Document]:
        with self._connection() as conn:
            rows = conn.execute(
                sql.SQL("SELECT {columns} FROM {table} WHERE {condition} ORDER BY id").format(
                    table=self._table, columns=self._COLUMNS, condition=sql.SQL(condition)
                )
            ).fetchall()
        return [self._row_to_document(row) for row in rows]

    def list_embedded(self) -> list[Document]:
        return self._select_where("embedding IS NOT NULL")

    def list_pending(self) -> list[Document]:
        return self._select_where("embedding IS NULL")

    def count(self) -> int:
        with self._connection() as conn:
            row = conn.execute(
                sql.SQL("SELECT count(*) FROM {table}").format(table=self._table)
            ).fetchone()
        return int(row[0])


# ---------------------------------------------------------------------------
# IN-MEMORY STORE (Testing/Development)
# ---------------------------------------------------------------------------


class InMemoryDocumentStore:
    """
    In-memory document store for development/testing.

    Implements the same interface as PgDocumentStore but doesn't require
    Postgres. Nothing survives the process.
    """

    def __init__(self, dimensions: int):
        self.dimensions = dimensions
        self._documents: dict[int, Document] = {}
        self._next_id = 1
        self._lock = threading.RLock()

    def open(self) -> None:
        """No-op for in-memory store."""
        pass

    def close(self) -> None:
        """No-op for in-memory store."""
        pass

    def create_schema(self) -> None:
        """No-op for in-memory store."""
        pass

    def _persist(self) -> None:
        """Hook called after every mutation, while holding the lock."""
        pass

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        """Apply a change and persist it; a failed persist undoes the change."""
        with self._lock:
            documents, next_id = dict(self._documents), self._next_id
            try:
                yield
                self._persist()
            except StoreError:
                self._documents, self._next_id = documents, next_id
                raise

    def create(self, title: str, content: str) -> Document:
        title, content = validate_fields(title, content)
        with self._mutation():
            doc = Document(id=self._next_id, title=title, content=content)
            self._documents[doc.id] = doc
            self._next_id += 1
        return replace(doc)

    def attach_embedding(self, document_id: int, vector: Sequence[float]) -> None:
        arr = _as_vector(vector, self.dimensions)
        with self._mutation():
            doc = self._documents.get(document_id)
            if doc is None:
                raise NotFoundError(document_id)
            self._documents[document_id] = replace(doc, embedding=arr.copy())

    def get(self, document_id: int) -> Document:
        with self._lock:
            doc = self._documents.get(document_id)
        if doc is None:
            raise NotFoundError(document_id)
        return replace(doc)

    def delete(self, document_id: int) -> None:
        with self._mutation():
            if self._documents.pop(document_id, None) is None:
                raise NotFoundError(document_id)

    def list_embedded(self) -> list[Document]:
        with self._lock:
            docs = [d for d in self._documents.values() if d.embedding is not None]
        return sorted((replace(d) for d in docs), key=lambda d: d.id)

    def list_pending(self) -> list[Document]:
        with self._lock:
            docs = [d for d in self._documents.values() if d.embedding is None]
        return sorted((replace(d) for d in docs), key=lambda d: d.id)

    def count(self) -> int:
        return len(self._documents)


# ---------------------------------------------------------------------------
# FILE STORE (Local persistence)
# ---------------------------------------------------------------------------


class FileDocumentStore(InMemoryDocumentStore):
    """
    Document store persisted to a single JSON file.

    The whole file is rewritten after every mutation: written to a temp file
    in the same directory, fsynced, then atomically renamed over the old one.
    Meant for single-process local use with small corpora.
    """

    def __init__(self, path: Path | str, dimensions: int):
        super().__init__(dimensions)
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def open(self) -> None:
        """Load documents from the file, if it exists."""
        if not self._path.exists():
            return

        try:
            with open(self._path) as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Could not load document store from {self._path}", str(e)) from e

        documents = {}
        for item in data.get("documents", []):
            embedding = item.get("embedding")
            doc = Document(
                id=int(item["id"]),
                title=item["title"],
                content=item["content"],
                embedding=None if embedding is None else _as_vector(embedding, self.dimensions),
                created_at=datetime.fromisoformat(item["created_at"]),
            )
            documents[doc.id] = doc

        with self._lock:
            self._documents = documents
            self._next_id = int(data.get("next_id", max(documents, default=0) + 1))
        logger.info(f"Loaded {len(documents)} documents from {self._path}")

    def _persist(self) -> None:
        data = {
            "next_id": self._next_id,
            "documents": [
                {
                    "id": doc.id,
                    "title": doc.title,
                    "content": doc.content,
                    "embedding": None if doc.embedding is None else doc.embedding.tolist(),
                    "created_at": doc.created_at.isoformat(),
                }
                for doc in sorted(self._documents.values(), key=lambda d: d.id)
            ],
        }

        directory = self._path.parent
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=f".{self._path.name}.")
            try:
                with os.fdopen(fd, "w") as f:
                    json.dump(data, f)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self._path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Could not write document store to {self._path}", str(e)) from e


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_document_store(config: ServiceConfig) -> DocumentStore:
    """
    Factory function to get the configured document store.

    Args:
        config: Service configuration; config.document_store selects
            postgres, file or memory

    Returns:
        DocumentStore implementation
    """
    dimensions = config.provider.dimensions
    if config.document_store == "postgres":
        return PgDocumentStore(config.database, dimensions)
    if config.document_store == "file":
        return FileDocumentStore(config.document_store_path, dimensions)
    if config.document_store == "memory":
        return InMemoryDocumentStore(dimensions)
    raise ValueError(f"Unknown document store: {config.document_store}")
