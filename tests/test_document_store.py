"""
Unit Tests for the in-memory and file-backed document stores

Both stores share one contract, so most tests run against each of them
through a parametrized fixture.
"""

import os

import pytest

from semantic_search.config import ServiceConfig
from semantic_search.core.errors import DimensionError, NotFoundError, StoreError, ValidationError
from semantic_search.retrieval.store import (
    FileDocumentStore,
    InMemoryDocumentStore,
    PgDocumentStore,
    get_document_store,
)


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    """Each contract test runs against both implementations."""
    if request.param == "memory":
        s = InMemoryDocumentStore(dimensions=3)
    else:
        s = FileDocumentStore(tmp_path / "docs.json", dimensions=3)
    s.open()
    yield s
    s.close()


# ---------------------------------------------------------------------------
# CONTRACT
# ---------------------------------------------------------------------------


class TestCreate:
    """Test document creation."""

    def test_create_assigns_increasing_ids(self, store):
        a = store.create("First", "one")
        b = store.create("Second", "two")

        assert b.id > a.id

    def test_create_has_no_embedding(self, store):
        doc = store.create("Title", "Body")

        assert doc.embedding is None
        assert not doc.is_embedded
        assert doc.created_at is not None

    @pytest.mark.parametrize("title,content", [("", "body"), ("title", ""), ("   ", "body"), (None, "body")])
    def test_create_rejects_empty_fields(self, store, title, content):
        with pytest.raises(ValidationError):
            store.create(title, content)

        assert store.count() == 0


class TestAttachEmbedding:
    """Test attaching embeddings."""

    def test_attach_then_get(self, store):
        doc = store.create("Title", "Body")

        store.attach_embedding(doc.id, [0.1, 0.2, 0.3])

        fetched = store.get(doc.id)
        assert fetched.embedding.tolist() == pytest.approx([0.1, 0.2, 0.3])

    def test_attach_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.attach_embedding(12345, [0.1, 0.2, 0.3])

    def test_attach_wrong_dimension(self, store):
        doc = store.create("Title", "Body")

        with pytest.raises(DimensionError):
            store.attach_embedding(doc.id, [0.1, 0.2])

        assert store.get(doc.id).embedding is None


class TestReads:
    """Test get/list/delete."""

    def test_get_unknown_id(self, store):
        with pytest.raises(NotFoundError):
            store.get(99)

    def test_get_returns_copy(self, store):
        doc = store.create("Title", "Body")

        fetched = store.get(doc.id)
        fetched.title = "Changed"

        assert store.get(doc.id).title == "Title"

    def test_list_embedded_and_pending(self, store):
        a = store.create("A", "a")
        b = store.create("B", "b")
        c = store.create("C", "c")
        store.attach_embedding(c.id, [1.0, 0.0, 0.0])
        store.attach_embedding(a.id, [0.0, 1.0, 0.0])

        assert [d.id for d in store.list_embedded()] == [a.id, c.id]
        assert [d.id for d in store.list_pending()] == [b.id]

    def test_delete(self, store):
        doc = store.create("Title", "Body")

        store.delete(doc.id)

        with pytest.raises(NotFoundError):
            store.get(doc.id)
        assert store.count() == 0

    def test_delete_unknown(self, store):
        with pytest.raises(NotFoundError):
            store.delete(5)


# ---------------------------------------------------------------------------
# FILE STORE DURABILITY
# ---------------------------------------------------------------------------


class TestFileDocumentStore:
    """Test persistence across store instances."""

    def test_survives_restart(self, tmp_path):
        path = tmp_path / "docs.json"
        first = FileDocumentStore(path, dimensions=2)
        first.open()
        doc = first.create("Cats", "Cats are small mammals")
        first.attach_embedding(doc.id, [1.0, 0.0])
        pending = first.create("Rockets", "Rockets fly to space")
        first.close()

        second = FileDocumentStore(path, dimensions=2)
        second.open()

        restored = second.get(doc.id)
        assert restored.title == "Cats"
        assert restored.embedding.tolist() == [1.0, 0.0]
        assert restored.created_at == doc.created_at
        assert second.get(pending.id).embedding is None

    def test_ids_not_reused_after_restart(self, tmp_path):
        path = tmp_path / "docs.json"
        first = FileDocumentStore(path, dimensions=2)
        first.create("A", "a")
        last = first.create("B", "b")
        first.delete(last.id)

        second = FileDocumentStore(path, dimensions=2)
        second.open()

        assert second.create("C", "c").id > last.id

    def test_no_temp_files_left(self, tmp_path):
        store = FileDocumentStore(tmp_path / "docs.json", dimensions=2)
        store.create("A", "a")
        store.create("B", "b")

        assert [p.name for p in tmp_path.iterdir()] == ["docs.json"]

    def test_failed_write_is_rolled_back(self, tmp_path, monkeypatch):
        store = FileDocumentStore(tmp_path / "docs.json", dimensions=2)
        kept = store.create("Kept", "saved before the failure")

        def broken_replace(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", broken_replace)

        with pytest.raises(StoreError):
            store.create("Lost", "never persisted")

        assert store.count() == 1
        assert store.get(kept.id).title == "Kept"

    def test_corrupt_file_raises_store_error(self, tmp_path):
        path = tmp_path / "docs.json"
        path.write_text("{not json")

        store = FileDocumentStore(path, dimensions=2)

        with pytest.raises(StoreError):
            store.open()

    def test_missing_file_starts_empty(self, tmp_path):
        store = FileDocumentStore(tmp_path / "nothing-here.json", dimensions=2)
        store.open()

        assert store.count() == 0


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


class TestGetDocumentStore:
    """Test the get_document_store factory function."""

    def test_memory(self):
        store = get_document_store(ServiceConfig(document_store="memory"))

        assert isinstance(store, InMemoryDocumentStore)
        assert store.dimensions == 768

    def test_file(self, tmp_path):
        config = ServiceConfig(document_store="file", document_store_path=str(tmp_path / "d.json"))

        store = get_document_store(config)

        assert isinstance(store, FileDocumentStore)
        assert store.path == tmp_path / "d.json"

    def test_postgres(self):
        store = get_document_store(ServiceConfig(document_store="postgres"))

        assert isinstance(store, PgDocumentStore)

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_document_store(ServiceConfig(document_store="mongo"))
