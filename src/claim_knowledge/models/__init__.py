"""Pydantic models for claims, index documents and retrieval."""

from claim_knowledge.models.claim import (
    INDEX_FIELDS,
    SCHEMA_VERSION,
    ClaimRecord,
    IndexDocument,
)
from claim_knowledge.models.retrieval import (
    NOT_FOUND,
    OutputMode,
    ReasoningEffort,
    RetrievalMessage,
    RetrievalOutcome,
    RetrievalRequest,
    RetrievalResponse,
    RetrievalResult,
)

__all__ = [
    "INDEX_FIELDS",
    "SCHEMA_VERSION",
    "ClaimRecord",
    "IndexDocument",
    "NOT_FOUND",
    "OutputMode",
    "ReasoningEffort",
    "RetrievalMessage",
    "RetrievalOutcome",
    "RetrievalRequest",
    "RetrievalResponse",
    "RetrievalResult",
]
