"""Search, insert and embedding endpoints."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from semantic_search.api.models import (
    BatchInsertRequest,
    BatchInsertResponse,
    DeleteResponse,
    DocumentDetail,
    DocumentOut,
    EmbeddingsRequest,
    EmbeddingsResponse,
    HealthResponse,
    InsertRequest,
    InsertResponse,
    SearchHit,
)
from semantic_search.core.errors import EmbeddingPendingError, ProviderError, ValidationError
from semantic_search.engine.container import ServiceContainer

logger = logging.getLogger(__name__)

router = APIRouter()


def get_container(request: Request) -> ServiceContainer:
    """Dependency to get the running service container."""
    return request.app.state.container


Container = Annotated[ServiceContainer, Depends(get_container)]


@router.get("/health", response_model=HealthResponse)
def health(container: Container):
    """Liveness plus corpus counts."""
    return HealthResponse(
        status="ok",
        documents=container.store.count(),
        indexed=len(container.index),
    )


@router.get("/search", response_model=list[SearchHit])
def search(
    container: Container,
    query: Annotated[str | None, Query(description="Text to search for")] = None,
    k: Annotated[int | None, Query(ge=1, description="Max results")] = None,
):
    """Rank stored documents by similarity to the query text."""
    if query is None or not query.strip():
        raise ValidationError("Query parameter 'query' is required")

    k = k or container.config.search.default_k
    if k > container.config.search.max_k:
        raise ValidationError(f"k must be at most {container.config.search.max_k}")
    results = container.query_engine.search(query, k=k)
    return [
        SearchHit(
            doc=DocumentOut.from_document(result.document),
            similarity_score=container.index.display_score(result.score),
        )
        for result in results
    ]


@router.post("/insert", response_model=InsertResponse)
def insert(body: InsertRequest, container: Container):
    """Store a document and make it searchable.

    If the embedding provider fails after the document was stored, the
    document is kept without an embedding and reported with embedded=false.
    """
    try:
        document = container.ingestion.ingest(body.title, body.content)
    except EmbeddingPendingError as e:
        return InsertResponse(
            message=f"Document inserted, embedding pending: {e.message}",
            document=DocumentOut.from_document(e.documents[0]),
            embedded=False,
        )

    return InsertResponse(
        message="Document inserted successfully",
        document=DocumentOut.from_document(document),
        embedded=True,
    )


@router.post("/insert/batch", response_model=BatchInsertResponse)
def insert_batch(body: BatchInsertRequest, container: Container):
    """Store several documents with one embedding call."""
    if not body.documents:
        raise ValidationError("At least one document is required")

    entries = [(item.title, item.content) for item in body.documents]
    try:
        documents = container.ingestion.ingest_batch(entries)
    except EmbeddingPendingError as e:
        return BatchInsertResponse(
            message=f"Inserted {len(e.documents)} document(s), embedding pending: {e.message}",
            documents=[DocumentOut.from_document(doc) for doc in e.documents],
            embedded=False,
        )

    return BatchInsertResponse(
        message=f"Inserted {len(documents)} document(s)",
        documents=[DocumentOut.from_document(doc) for doc in documents],
        embedded=True,
    )


@router.get("/documents/{document_id}", response_model=DocumentDetail)
def get_document(document_id: int, container: Container):
    return DocumentDetail.from_document(container.store.get(document_id))


@router.post("/documents/{document_id}/embed", response_model=InsertResponse)
def embed_document(document_id: int, container: Container):
    """Retry the embedding of a stored document."""
    document = container.ingestion.embed_document(document_id)
    return InsertResponse(
        message="Document embedded successfully",
        document=DocumentOut.from_document(document),
        embedded=True,
    )


@router.delete("/documents/{document_id}", response_model=DeleteResponse)
def delete_document(document_id: int, container: Container):
    container.ingestion.delete(document_id)
    return DeleteResponse(message="Document deleted", id=document_id)


@router.post("/generate_embeddings", response_model=EmbeddingsResponse)
def generate_embeddings(body: EmbeddingsRequest, container: Container):
    """Embed raw text with the configured provider and return the vectors.

    Provider error responses are relayed with their original status code.
    """
    texts = body.texts()
    if not texts:
        raise ValidationError("Text input is required.")

    try:
        vectors = container.retry.call(lambda: container.provider.embed_batch(texts))
    except ProviderError as e:
        if e.upstream_status is not None:
            status = e.upstream_status
        elif e.retryable:
            status = 502
        else:
            status = 500
        logger.error(f"Embedding generation failed: {e.message}")
        return JSONResponse(status_code=status, content=e.to_dict())

    return EmbeddingsResponse(
        message=f"Generated embeddings for {len(texts)} document(s)",
        embeddings=[vector.tolist() for vector in vectors],
    )
