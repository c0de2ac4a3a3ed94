"""Knowledge source and knowledge base declarations.

Both are create-or-update (PUT) and therefore convergent: re-applying an
unchanged declaration is a no-op on the service.
"""

import logging
from typing import Any

from claim_knowledge.config.settings import EngineConfig
from claim_knowledge.models.retrieval import OutputMode, ReasoningEffort
from claim_knowledge.observability.metrics import get_metrics
from claim_knowledge.search.client import SearchServiceClient
from claim_knowledge.search.schema import CLAIM_FIELDS, UNEXPOSED_FIELDS

logger = logging.getLogger(__name__)

KNOWLEDGE_BASE_DESCRIPTION = "Zava Insurance knowledge base for claims"


def exposed_fields() -> list[str]:
    """Index fields exposed to the retrieval layer, in schema order."""
    return [f.name for f in CLAIM_FIELDS if f.name not in UNEXPOSED_FIELDS]


class KnowledgeSourceBinder:
    """Declares which index fields the retrieval layer may read."""

    def __init__(self, client: SearchServiceClient, source_name: str, index_name: str):
        self.client = client
        self.source_name = source_name
        self.index_name = index_name

    def build_definition(self) -> dict[str, Any]:
        return {
            "name": self.source_name,
            "kind": "searchIndex",
            "description": f"Claims from index {self.index_name}",
            "searchIndexParameters": {
                "searchIndexName": self.index_name,
                "sourceDataFields": [{"name": name} for name in exposed_fields()],
            },
        }

    def ensure_knowledge_source(self) -> dict[str, Any]:
        """Create or update the knowledge source."""
        with get_metrics().track("provision"):
            result = self.client.put_knowledge_source(self.build_definition())
        logger.info("Knowledge source %r applied (index=%s)", self.source_name, self.index_name)
        return result


class KnowledgeBaseConfigurator:
    """Declares the knowledge base used for answer-synthesis retrieval."""

    def __init__(self, client: SearchServiceClient, config: EngineConfig):
        self.client = client
        self.config = config

    @property
    def model_name(self) -> str:
        return self.config.language_model

    def build_definition(self) -> dict[str, Any]:
        return {
            "name": self.config.knowledge_base_name,
            "description": KNOWLEDGE_BASE_DESCRIPTION,
            "knowledgeSources": [{"name": self.config.knowledge_source_name}],
            "models": [
                {
                    "kind": "azureOpenAI",
                    "azureOpenAIParameters": {
                        "resourceUri": self.config.models_endpoint,
                        "apiKey": self.config.models_api_key,
                        "deploymentId": self.model_name,
                        "modelName": self.model_name,
                    },
                }
            ],
            # Queries are narrow lookups over a bounded domain: favor latency
            "retrievalReasoningEffort": {"kind": ReasoningEffort.LOW.value},
            "outputMode": OutputMode.ANSWER_SYNTHESIS.value,
        }

    def ensure_knowledge_base(self) -> dict[str, Any]:
        """Create or update the knowledge base."""
        with get_metrics().track("provision", model=self.model_name):
            result = self.client.put_knowledge_base(self.build_definition())
        logger.info(
            "Knowledge base %r applied with model %r",
            self.config.knowledge_base_name,
            self.model_name,
        )
        return result
