"""
Semantic Conventions for Span Attributes

Attribute keys for search and ingestion spans, plus the OTel GenAI keys
used on embedding calls.

Reference: https://opentelemetry.io/docs/specs/semconv/gen-ai/
"""

# ---------------------------------------------------------------------------
# GENAI NAMESPACE (OTel standard)
# ---------------------------------------------------------------------------

GEN_AI_OPERATION_NAME = "gen_ai.operation.name"  # "embeddings"
GEN_AI_REQUEST_MODEL = "gen_ai.request.model"  # "@cf/baai/bge-base-en-v1.5"


# ---------------------------------------------------------------------------
# SEARCH NAMESPACE (custom)
# ---------------------------------------------------------------------------

SEARCH_QUERY_TEXT = "search.query.text"  # only with TRACING_CAPTURE_TEXT
SEARCH_K = "search.k"
SEARCH_RESULT_COUNT = "search.result_count"
SEARCH_SKIPPED_COUNT = "search.skipped_count"  # deleted between lookup and fetch
SEARCH_TOP_SCORE = "search.top_score"
SEARCH_INDEX_SIZE = "search.index_size"


# ---------------------------------------------------------------------------
# INGEST NAMESPACE (custom)
# ---------------------------------------------------------------------------

INGEST_DOCUMENT_ID = "ingest.document_id"
INGEST_BATCH_SIZE = "ingest.batch_size"
INGEST_EMBEDDED = "ingest.embedded"  # bool


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


def search_attributes(k: int, index_size: int, text: str | None = None) -> dict:
    """Build attributes for a search span."""
    attrs = {SEARCH_K: k, SEARCH_INDEX_SIZE: index_size}
    if text is not None:
        attrs[SEARCH_QUERY_TEXT] = text
    return attrs


def ingest_attributes(batch_size: int, model: str | None = None) -> dict:
    """Build attributes for an ingest span."""
    attrs = {INGEST_BATCH_SIZE: batch_size, GEN_AI_OPERATION_NAME: "embeddings"}
    if model:
        attrs[GEN_AI_REQUEST_MODEL] = model
    return attrs
