"""Search service integration: schema, knowledge source/base, indexing and retrieval."""

from claim_knowledge.search.client import SearchServiceClient
from claim_knowledge.search.schema import IndexSchemaManager, build_index_definition
from claim_knowledge.search.knowledge import KnowledgeBaseConfigurator, KnowledgeSourceBinder
from claim_knowledge.search.indexer import DocumentIndexer, build_searchable_content
from claim_knowledge.search.retrieval import RetrievalCoordinator

__all__ = [
    "SearchServiceClient",
    "IndexSchemaManager",
    "build_index_definition",
    "KnowledgeSourceBinder",
    "KnowledgeBaseConfigurator",
    "DocumentIndexer",
    "build_searchable_content",
    "RetrievalCoordinator",
]
