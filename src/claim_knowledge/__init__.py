"""Claims knowledge retrieval engine.

Search index schema, embedding pipeline, agentic and direct retrieval, and
direct completions over insurance claims.
"""

from claim_knowledge.engine import KnowledgeEngine
from claim_knowledge.errors import (
    ConfigurationError,
    InvalidInput,
    KnowledgeEngineError,
    ResourceNotFound,
    UpstreamFailure,
)
from claim_knowledge.models import NOT_FOUND, ClaimRecord, IndexDocument, RetrievalResult

__all__ = [
    "KnowledgeEngine",
    "ConfigurationError",
    "InvalidInput",
    "KnowledgeEngineError",
    "ResourceNotFound",
    "UpstreamFailure",
    "NOT_FOUND",
    "ClaimRecord",
    "IndexDocument",
    "RetrievalResult",
]
