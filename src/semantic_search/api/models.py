"""Request and response models for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from semantic_search.retrieval.document import Document


class DocumentOut(BaseModel):
    """Document as returned by insert and search."""

    id: int
    title: str
    content: str

    @classmethod
    def from_document(cls, document: Document) -> "DocumentOut":
        return cls(id=document.id, title=document.title, content=document.content)


class DocumentDetail(DocumentOut):
    """Document with bookkeeping fields."""

    created_at: datetime
    embedded: bool

    @classmethod
    def from_document(cls, document: Document) -> "DocumentDetail":
        return cls(
            id=document.id,
            title=document.title,
            content=document.content,
            created_at=document.created_at,
            embedded=document.is_embedded,
        )


class SearchHit(BaseModel):
    """One ranked search result."""

    doc: DocumentOut
    similarity_score: float


class InsertRequest(BaseModel):
    """Body of POST /insert. Emptiness is checked by the ingestion pipeline."""

    title: str | None = None
    content: str | None = None


class InsertResponse(BaseModel):
    message: str
    document: DocumentOut
    embedded: bool


class BatchInsertRequest(BaseModel):
    documents: list[InsertRequest] = Field(default_factory=list)


class BatchInsertResponse(BaseModel):
    message: str
    documents: list[DocumentOut]
    embedded: bool


class EmbeddingsRequest(BaseModel):
    """Body of POST /generate_embeddings; text may be one string or a list."""

    text: str | list[str] | None = None

    def texts(self) -> list[str]:
        if self.text is None:
            return []
        if isinstance(self.text, str):
            return [self.text] if self.text.strip() else []
        return self.text


class EmbeddingsResponse(BaseModel):
    message: str
    embeddings: list[list[float]]


class DeleteResponse(BaseModel):
    message: str
    id: int


class HealthResponse(BaseModel):
    status: str
    documents: int
    indexed: int


class ErrorResponse(BaseModel):
    error: str
    details: str | None = None
