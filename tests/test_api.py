"""
Tests for the HTTP API

Runs the FastAPI app in-process with TestClient over the in-memory store
and the keyword provider from conftest. Covers every endpoint and the
mapping of service errors to status codes.
"""

import pytest
from fastapi.testclient import TestClient

from semantic_search.api.app import create_app
from semantic_search.config import ProviderConfig, SearchConfig, ServiceConfig
from semantic_search.core.errors import ProviderError, StoreError
from semantic_search.engine.container import build_container


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def container(keyword_provider):
    config = ServiceConfig(
        document_store="memory",
        provider=ProviderConfig(name="mock", dimensions=2, backoff_seconds=0.0),
    )
    return build_container(config, provider=keyword_provider)


@pytest.fixture
def client(container):
    with TestClient(create_app(container=container)) as test_client:
        yield test_client


def insert(client, title, content):
    return client.post("/insert", json={"title": title, "content": content})


@pytest.fixture
def corpus(client):
    cats = insert(client, "Cats", "Cats are small mammals").json()["document"]
    rockets = insert(client, "Rockets", "Rockets fly to space").json()["document"]
    return cats, rockets


# ---------------------------------------------------------------------------
# SERVICE INFO
# ---------------------------------------------------------------------------


class TestServiceInfo:
    """Test root and health endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Semantic Search"

    def test_health_counts(self, client, corpus):
        insert(client, "FAIL", "stays pending")

        body = client.get("/health").json()

        assert body == {"status": "ok", "documents": 3, "indexed": 2}

    def test_store_failure_is_500(self, client, container, monkeypatch):
        def broken_count():
            raise StoreError("Database operation failed", "connection reset")

        monkeypatch.setattr(container.store, "count", broken_count)

        response = client.get("/health")

        assert response.status_code == 500
        assert response.json() == {"error": "Database operation failed", "details": "connection reset"}

    def test_lifecycle(self, keyword_provider):
        container = build_container(
            ServiceConfig(document_store="memory", provider=ProviderConfig(name="mock", dimensions=2)),
            provider=keyword_provider,
        )

        with TestClient(create_app(container=container)):
            assert container.started

        assert not container.started


# ---------------------------------------------------------------------------
# INSERT
# ---------------------------------------------------------------------------


class TestInsert:
    """Test POST /insert and /insert/batch."""

    def test_insert(self, client):
        response = insert(client, "Cats", "Cats are small mammals")

        assert response.status_code == 200
        body = response.json()
        assert body["embedded"] is True
        assert body["message"] == "Document inserted successfully"
        assert body["document"] == {"id": 1, "title": "Cats", "content": "Cats are small mammals"}

    @pytest.mark.parametrize(
        "payload",
        [
            {"content": "no title"},
            {"title": "no content"},
            {"title": "", "content": "body"},
            {"title": "   ", "content": "body"},
            {},
        ],
    )
    def test_missing_fields_rejected(self, client, container, payload):
        response = client.post("/insert", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "Title and content are required"
        assert container.store.count() == 0

    def test_malformed_body_rejected(self, client):
        response = client.post(
            "/insert", content="not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    def test_provider_failure_keeps_document_pending(self, client, container):
        response = insert(client, "FAIL", "provider refuses")

        assert response.status_code == 200
        body = response.json()
        assert body["embedded"] is False
        assert "embedding pending" in body["message"]

        detail = client.get(f"/documents/{body['document']['id']}").json()
        assert detail["embedded"] is False
        assert len(container.index) == 0

    def test_batch_insert(self, client, keyword_provider):
        response = client.post(
            "/insert/batch",
            json={"documents": [
                {"title": "Cats", "content": "Cats are small mammals"},
                {"title": "Rockets", "content": "Rockets fly to space"},
            ]},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["embedded"] is True
        assert [d["title"] for d in body["documents"]] == ["Cats", "Rockets"]
        assert len(keyword_provider.calls) == 1

    def test_batch_insert_empty(self, client):
        response = client.post("/insert/batch", json={"documents": []})

        assert response.status_code == 400

    def test_batch_insert_invalid_entry(self, client, container):
        response = client.post(
            "/insert/batch",
            json={"documents": [{"title": "Cats", "content": "fine"}, {"title": "Empty"}]},
        )

        assert response.status_code == 400
        assert container.store.count() == 0


# ---------------------------------------------------------------------------
# SEARCH
# ---------------------------------------------------------------------------


class TestSearch:
    """Test GET /search."""

    def test_ranked_results(self, client, corpus):
        cats, rockets = corpus

        response = client.get("/search", params={"query": "feline pets", "k": 2})

        assert response.status_code == 200
        hits = response.json()
        assert [h["doc"]["id"] for h in hits] == [cats["id"], rockets["id"]]
        assert hits[0]["doc"] == cats
        assert 0.0 <= hits[1]["similarity_score"] < hits[0]["similarity_score"] <= 1.0

    def test_default_k(self, client, corpus):
        hits = client.get("/search", params={"query": "feline pets"}).json()

        assert len(hits) == 2

    def test_exact_match_scores_one(self, client, corpus):
        hits = client.get("/search", params={"query": "Rockets\nRockets fly to space", "k": 1}).json()

        assert hits[0]["doc"]["title"] == "Rockets"
        assert hits[0]["similarity_score"] == pytest.approx(1.0, abs=1e-6)

    def test_empty_corpus(self, client):
        response = client.get("/search", params={"query": "anything"})

        assert response.status_code == 200
        assert response.json() == []

    @pytest.mark.parametrize("params", [{}, {"query": ""}, {"query": "   "}])
    def test_missing_query(self, client, params):
        response = client.get("/search", params=params)

        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.parametrize("k", ["0", "101", "-3", "many"])
    def test_invalid_k(self, client, k):
        response = client.get("/search", params={"query": "cats", "k": k})

        assert response.status_code == 400

    def test_k_above_configured_max(self, keyword_provider):
        config = ServiceConfig(
            document_store="memory",
            provider=ProviderConfig(name="mock", dimensions=2, backoff_seconds=0.0),
            search=SearchConfig(max_k=5),
        )
        container = build_container(config, provider=keyword_provider)

        with TestClient(create_app(container=container)) as client:
            too_many = client.get("/search", params={"query": "cats", "k": 6})
            at_limit = client.get("/search", params={"query": "cats", "k": 5})

        assert too_many.status_code == 400
        assert too_many.json()["error"] == "k must be at most 5"
        assert at_limit.status_code == 200

    def test_provider_failure_is_502(self, client, corpus):
        response = client.get("/search", params={"query": "FAIL"})

        assert response.status_code == 502
        assert response.json()["error"] == "Embedding provider error"


# ---------------------------------------------------------------------------
# DOCUMENTS
# ---------------------------------------------------------------------------


class TestDocuments:
    """Test the per-document endpoints."""

    def test_get_document(self, client, corpus):
        cats, _ = corpus

        body = client.get(f"/documents/{cats['id']}").json()

        assert body["title"] == "Cats"
        assert body["embedded"] is True
        assert "created_at" in body

    def test_get_unknown_document(self, client):
        response = client.get("/documents/99")

        assert response.status_code == 404
        assert response.json() == {"error": "Document 99 not found"}

    def test_embed_pending_document(self, client, keyword_provider):
        doc_id = insert(client, "FAIL", "first attempt fails").json()["document"]["id"]
        keyword_provider._fail_on = None

        response = client.post(f"/documents/{doc_id}/embed")

        assert response.status_code == 200
        assert response.json()["embedded"] is True
        assert client.get(f"/documents/{doc_id}").json()["embedded"] is True

    def test_embed_still_failing(self, client):
        doc_id = insert(client, "FAIL", "keeps failing").json()["document"]["id"]

        response = client.post(f"/documents/{doc_id}/embed")

        assert response.status_code == 502

    def test_delete_document(self, client, corpus):
        cats, rockets = corpus

        response = client.delete(f"/documents/{cats['id']}")

        assert response.status_code == 200
        assert response.json() == {"message": "Document deleted", "id": cats["id"]}
        hits = client.get("/search", params={"query": "feline pets"}).json()
        assert [h["doc"]["id"] for h in hits] == [rockets["id"]]

    def test_delete_unknown_document(self, client):
        assert client.delete("/documents/99").status_code == 404


# ---------------------------------------------------------------------------
# GENERATE EMBEDDINGS
# ---------------------------------------------------------------------------


class TestGenerateEmbeddings:
    """Test POST /generate_embeddings."""

    def test_single_text(self, client):
        response = client.post("/generate_embeddings", json={"text": "cats"})

        assert response.status_code == 200
        assert response.json()["embeddings"] == [[1.0, 0.0]]

    def test_list_of_texts(self, client, keyword_provider):
        response = client.post("/generate_embeddings", json={"text": ["cats", "rockets"]})

        assert response.json()["embeddings"] == [[1.0, 0.0], [0.0, 1.0]]
        assert len(keyword_provider.calls) == 1

    @pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": []}])
    def test_missing_text(self, client, payload):
        response = client.post("/generate_embeddings", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "Text input is required."

    def test_upstream_status_relayed(self, client):
        response = client.post("/generate_embeddings", json={"text": "FAIL"})

        assert response.status_code == 500
        assert response.json() == {"error": "Embedding provider error", "details": "upstream exploded"}

    def test_unparseable_provider_response_is_500(self, client, keyword_provider, monkeypatch):
        def garbled(texts):
            raise ProviderError("Invalid JSON response from embedding provider", body="<html>")

        monkeypatch.setattr(keyword_provider, "embed_batch", garbled)

        response = client.post("/generate_embeddings", json={"text": "cats"})

        assert response.status_code == 500
        assert response.json() == {
            "error": "Invalid JSON response from embedding provider",
            "details": "<html>",
        }

    def test_does_not_store_anything(self, client, container):
        client.post("/generate_embeddings", json={"text": "cats"})

        assert container.store.count() == 0
