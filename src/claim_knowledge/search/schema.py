"""Claims index schema and idempotent index creation."""

import logging
from dataclasses import dataclass
from typing import Any

from claim_knowledge.errors import ResourceNotFound
from claim_knowledge.models.claim import SCHEMA_VERSION, VECTOR_DIMENSIONS
from claim_knowledge.observability.metrics import get_metrics
from claim_knowledge.search.client import SearchServiceClient

logger = logging.getLogger(__name__)

KEY_FIELD = "id"
LOOKUP_FIELD = "claimNumber"
VECTOR_FIELD = "contentVector"

VECTOR_PROFILE = "vector-profile"
HNSW_CONFIG = "hnsw-config"
SEMANTIC_CONFIG = "Claims semantic search"

# Semantic configuration: title, content and keywords fields
SEMANTIC_TITLE_FIELD = "claimNumber"
SEMANTIC_CONTENT_FIELD = "description"
SEMANTIC_KEYWORDS_FIELD = "assignedAdjuster"


@dataclass(frozen=True)
class FieldSpec:
    """One index field and its attributes."""

    name: str
    type: str = "Edm.String"
    key: bool = False
    searchable: bool = False
    filterable: bool = False
    sortable: bool = False
    facetable: bool = False

    def to_definition(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "key": self.key,
            "searchable": self.searchable,
            "filterable": self.filterable,
            "sortable": self.sortable,
            "facetable": self.facetable,
            "retrievable": True,
        }


def _text(name: str, **attrs: bool) -> FieldSpec:
    return FieldSpec(name, "Edm.String", searchable=True, **attrs)


CLAIM_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec(KEY_FIELD, "Edm.String", key=True, filterable=True),
    _text("claimNumber", filterable=True, sortable=True),
    _text("policyholderName", filterable=True),
    _text("policyNumber", filterable=True),
    _text("status", filterable=True, facetable=True),
    _text("claimType", filterable=True, facetable=True),
    _text("region", filterable=True, facetable=True),
    _text("assignedAdjuster", filterable=True),
    FieldSpec("dateFiled", "Edm.DateTimeOffset", filterable=True, sortable=True),
    FieldSpec("dateResolved", "Edm.DateTimeOffset", filterable=True, sortable=True),
    _text("description"),
    _text("location", filterable=True),
    _text("severity", filterable=True, facetable=True),
    FieldSpec("claimAmount", "Edm.Double", filterable=True, sortable=True),
    FieldSpec("fraudScore", "Edm.Int32", filterable=True, sortable=True),
    _text("fraudIndicators"),
    _text("adjusterNotes"),
    FieldSpec("imageUrl", "Edm.String"),
    FieldSpec("thumbnailUrl", "Edm.String"),
    FieldSpec("recordId", "Edm.Int32", filterable=True),
    FieldSpec("isDocumentationComplete", "Edm.Boolean", filterable=True, facetable=True),
    _text("missingDocumentation"),
    _text("searchableContent"),
)

# Never exposed to the retrieval layer
UNEXPOSED_FIELDS = frozenset({VECTOR_FIELD, "imageUrl", "thumbnailUrl"})


def index_description() -> str:
    return f"Insurance claims (schema v{SCHEMA_VERSION})"


def vector_field_definition() -> dict[str, Any]:
    return {
        "name": VECTOR_FIELD,
        "type": "Collection(Edm.Single)",
        "searchable": True,
        "retrievable": True,
        "dimensions": VECTOR_DIMENSIONS,
        "vectorSearchProfile": VECTOR_PROFILE,
    }


def build_index_definition(name: str) -> dict[str, Any]:
    """Full index definition: claim fields, vector field, vector and semantic search."""
    return {
        "name": name,
        "description": index_description(),
        "fields": [f.to_definition() for f in CLAIM_FIELDS] + [vector_field_definition()],
        "vectorSearch": {
            "profiles": [{"name": VECTOR_PROFILE, "algorithm": HNSW_CONFIG}],
            "algorithms": [{"name": HNSW_CONFIG, "kind": "hnsw"}],
        },
        # Semantic search is required by the knowledge base API
        "semantic": {
            "defaultConfiguration": SEMANTIC_CONFIG,
            "configurations": [
                {
                    "name": SEMANTIC_CONFIG,
                    "prioritizedFields": {
                        "titleField": {"fieldName": SEMANTIC_TITLE_FIELD},
                        "prioritizedContentFields": [{"fieldName": SEMANTIC_CONTENT_FIELD}],
                        "prioritizedKeywordsFields": [{"fieldName": SEMANTIC_KEYWORDS_FIELD}],
                    },
                }
            ],
        },
    }


class IndexSchemaManager:
    """Declares the claims index and creates it when absent."""

    def __init__(
        self,
        client: SearchServiceClient,
        index_name: str,
    ):
        self.client = client
        self.index_name = index_name

    def ensure_index(self) -> bool:
        """Create the index if it does not exist. Safe to call on every start.

        Returns:
            True if this call created the index, False if it already existed.

        Raises:
            UpstreamFailure: If the lookup or creation fails (fatal; do not index
                documents against a missing or malformed index).
        """
        with get_metrics().track("provision"):
            try:
                existing = self.client.get_index(self.index_name)
            except ResourceNotFound:
                existing = None

            if existing is not None:
                if existing.get("description") not in (None, index_description()):
                    logger.warning(
                        "Index %r has description %r; expected %r. Recreate it to apply schema changes.",
                        self.index_name,
                        existing.get("description"),
                        index_description(),
                    )
                logger.info("Claims index %r already exists", self.index_name)
                return False

            logger.info("Creating claims index %r", self.index_name)
            created = self.client.create_index(
                build_index_definition(self.index_name)
            )

        if created:
            logger.info("Claims index %r created", self.index_name)
        else:
            logger.info("Claims index %r was created concurrently; skipping", self.index_name)
        return created
