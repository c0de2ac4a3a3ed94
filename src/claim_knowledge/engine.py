"""Knowledge retrieval engine: wires every component from one configuration.

Provisioning must run once, in order, before indexing or retrieval:
index -> knowledge source -> knowledge base.
"""

import logging
from pathlib import Path
from typing import Iterable

import httpx
import openai

from claim_knowledge.config.llm import get_openai_client
from claim_knowledge.config.settings import EngineConfig
from claim_knowledge.llm.completion import DirectCompletionClient
from claim_knowledge.llm.embeddings import EmbeddingCache, EmbeddingGenerator
from claim_knowledge.models.claim import ClaimRecord
from claim_knowledge.models.retrieval import RetrievalResult
from claim_knowledge.observability.logger import log_claim_event
from claim_knowledge.search.client import SearchServiceClient
from claim_knowledge.search.indexer import DocumentIndexer
from claim_knowledge.search.knowledge import KnowledgeBaseConfigurator, KnowledgeSourceBinder
from claim_knowledge.search.retrieval import DEFAULT_TOP_RESULTS, RetrievalCoordinator
from claim_knowledge.search.schema import IndexSchemaManager
from claim_knowledge.tools.data_loader import load_claim_records
from claim_knowledge.utils.retry import RetryPolicy

logger = logging.getLogger(__name__)


class KnowledgeEngine:
    """Facade over schema, knowledge source/base, indexing, retrieval and completion."""

    def __init__(
        self,
        config: EngineConfig,
        search_client: SearchServiceClient | None = None,
        openai_client: openai.AzureOpenAI | None = None,
        retry: RetryPolicy | None = None,
        embedding_cache: EmbeddingCache | None = None,
    ):
        """Initialize the engine.

        Args:
            config: Engine configuration (validated at construction)
            search_client: Search REST client; built from config if omitted
            openai_client: Azure OpenAI client; built from config if omitted
            retry: Retry policy for upstream calls; defaults to config.retry_attempts
            embedding_cache: Optional embedding cache (disabled by default)
        """
        self.config = config
        self.search_client = search_client or SearchServiceClient(
            endpoint=config.search_endpoint,
            api_key=config.search_api_key,
            api_version=config.search_api_version,
            timeout=config.search_timeout,
        )
        self.openai_client = openai_client or get_openai_client(config)
        self.retry = retry or RetryPolicy(max_attempts=config.retry_attempts)

        self.schema = IndexSchemaManager(self.search_client, config.index_name)
        self.knowledge_source = KnowledgeSourceBinder(
            self.search_client, config.knowledge_source_name, config.index_name
        )
        self.knowledge_base = KnowledgeBaseConfigurator(self.search_client, config)
        self.embedder = EmbeddingGenerator(
            self.openai_client,
            config.embedding_model,
            dimensions=config.embedding_dimensions,
            retry=self.retry,
            cache=embedding_cache,
        )
        self.indexer = DocumentIndexer(self.search_client, self.embedder, config.index_name)
        self.retrieval = RetrievalCoordinator(
            self.search_client,
            config.index_name,
            config.knowledge_base_name,
            retry=self.retry,
        )
        self.completion = DirectCompletionClient(
            self.openai_client, config.language_model, retry=self.retry
        )

    @classmethod
    def from_env(
        cls,
        transport: httpx.BaseTransport | None = None,
        **kwargs,
    ) -> "KnowledgeEngine":
        """Build an engine from environment variables.

        Raises:
            ConfigurationError: If required settings are missing.
        """
        config = EngineConfig.from_env()
        search_client = None
        if transport is not None:
            search_client = SearchServiceClient(
                endpoint=config.search_endpoint,
                api_key=config.search_api_key,
                api_version=config.search_api_version,
                timeout=config.search_timeout,
                transport=transport,
            )
        return cls(config, search_client=search_client, **kwargs)

    def close(self) -> None:
        self.search_client.close()

    def __enter__(self) -> "KnowledgeEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Provisioning
    # ------------------------------------------------------------------

    def provision(self) -> dict[str, bool]:
        """Ensure index, knowledge source and knowledge base, in that order.

        Stops at the first failure; the error is fatal and propagates.

        Returns:
            {"index_created": ..., "knowledge_source": True, "knowledge_base": True}
        """
        index_created = self.schema.ensure_index()
        self.knowledge_source.ensure_knowledge_source()
        self.knowledge_base.ensure_knowledge_base()
        log_claim_event(
            logger,
            "provisioned",
            index=self.config.index_name,
            knowledge_source=self.config.knowledge_source_name,
            knowledge_base=self.config.knowledge_base_name,
            index_created=index_created,
        )
        return {"index_created": index_created, "knowledge_source": True, "knowledge_base": True}

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def embed(self, text: str) -> list[float]:
        return self.embedder.embed(text)

    def index_batch(self, records: Iterable[ClaimRecord | dict]) -> int:
        return self.indexer.index_batch(records)

    def index_file(self, path: str | Path | None = None) -> int:
        """Load claims from a JSON file and index them as one batch."""
        records = load_claim_records(path)
        logger.info("Loaded %d claims for indexing", len(records))
        return self.indexer.index_batch(records)

    def retrieve(
        self,
        query: str,
        instructions: str | None = None,
        top_results: int = DEFAULT_TOP_RESULTS,
    ) -> str:
        return self.retrieval.retrieve(query, instructions, top_results)

    def retrieve_result(
        self,
        query: str,
        instructions: str | None = None,
        top_results: int = DEFAULT_TOP_RESULTS,
    ) -> RetrievalResult:
        return self.retrieval.retrieve_result(query, instructions, top_results)

    def get_by_key(self, claim_number: str, include_vector: bool = False):
        return self.retrieval.get_by_key(claim_number, include_vector=include_vector)

    def complete(self, system_prompt: str, user_prompt: str, model: str | None = None) -> str:
        return self.completion.complete(system_prompt, user_prompt, model)
