"""Centralized configuration from environment variables with defaults."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from claim_knowledge.errors import ConfigurationError
from claim_knowledge.models.claim import VECTOR_DIMENSIONS

load_dotenv()


def _str(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip() or default


def _float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
DEFAULT_LANGUAGE_MODEL = "gpt-4.1"
# The index vector field is fixed at this length; any other setting is rejected
DEFAULT_EMBEDDING_DIMENSIONS = VECTOR_DIMENSIONS

DEFAULT_SEARCH_API_VERSION = "2025-11-01-preview"
DEFAULT_OPENAI_API_VERSION = "2024-10-21"

DEFAULT_INDEX_NAME = "claims-index"
DEFAULT_KNOWLEDGE_SOURCE_NAME = "claims-knowledge-source"
DEFAULT_KNOWLEDGE_BASE_NAME = "zava-insurance-kb"

# Direct completion: low temperature for consistent structured output
COMPLETION_TEMPERATURE = 0.1
COMPLETION_MAX_TOKENS = 2000

REQUIRED_SETTINGS = (
    "AZURE_AI_SEARCH_ENDPOINT",
    "SECRET_AZURE_AI_SEARCH_API_KEY",
    "MODELS_ENDPOINT",
    "MODELS_API_KEY",
)


def get_language_model_name() -> str:
    """Completion model deployment name, falling back to gpt-4.1."""
    return _str("LANGUAGE_MODEL_NAME", DEFAULT_LANGUAGE_MODEL)


def get_embedding_model_name() -> str:
    """Embedding model deployment name, falling back to text-embedding-ada-002."""
    return _str("EMBEDDING_MODEL_NAME", DEFAULT_EMBEDDING_MODEL)


@dataclass(frozen=True)
class EngineConfig:
    """Read-only settings shared by every engine component."""

    search_endpoint: str
    search_api_key: str
    models_endpoint: str
    models_api_key: str
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    language_model: str = DEFAULT_LANGUAGE_MODEL
    embedding_dimensions: int = DEFAULT_EMBEDDING_DIMENSIONS
    search_api_version: str = DEFAULT_SEARCH_API_VERSION
    openai_api_version: str = DEFAULT_OPENAI_API_VERSION
    index_name: str = DEFAULT_INDEX_NAME
    knowledge_source_name: str = DEFAULT_KNOWLEDGE_SOURCE_NAME
    knowledge_base_name: str = DEFAULT_KNOWLEDGE_BASE_NAME
    search_timeout: float = 30.0
    models_timeout: float = 60.0
    retry_attempts: int = 3

    def __post_init__(self) -> None:
        missing = [
            env_name
            for env_name, value in (
                ("AZURE_AI_SEARCH_ENDPOINT", self.search_endpoint),
                ("SECRET_AZURE_AI_SEARCH_API_KEY", self.search_api_key),
                ("MODELS_ENDPOINT", self.models_endpoint),
                ("MODELS_API_KEY", self.models_api_key),
            )
            if not value or not value.strip()
        ]
        if missing:
            raise ConfigurationError(missing)
        if self.embedding_dimensions != VECTOR_DIMENSIONS:
            raise ConfigurationError(
                message=(
                    f"EMBEDDING_DIMENSIONS must be {VECTOR_DIMENSIONS}, "
                    f"got {self.embedding_dimensions}"
                )
            )

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Create config from environment variables.

        Raises:
            ConfigurationError: If any of REQUIRED_SETTINGS is unset or blank.
        """
        return cls(
            search_endpoint=_str("AZURE_AI_SEARCH_ENDPOINT").rstrip("/"),
            search_api_key=_str("SECRET_AZURE_AI_SEARCH_API_KEY"),
            models_endpoint=_str("MODELS_ENDPOINT").rstrip("/"),
            models_api_key=_str("MODELS_API_KEY"),
            embedding_model=get_embedding_model_name(),
            language_model=get_language_model_name(),
            embedding_dimensions=_int("EMBEDDING_DIMENSIONS", DEFAULT_EMBEDDING_DIMENSIONS),
            search_api_version=_str("AZURE_AI_SEARCH_API_VERSION", DEFAULT_SEARCH_API_VERSION),
            openai_api_version=_str("AZURE_OPENAI_API_VERSION", DEFAULT_OPENAI_API_VERSION),
            index_name=_str("CLAIMS_INDEX_NAME", DEFAULT_INDEX_NAME),
            knowledge_source_name=_str(
                "CLAIMS_KNOWLEDGE_SOURCE_NAME", DEFAULT_KNOWLEDGE_SOURCE_NAME
            ),
            knowledge_base_name=_str("KNOWLEDGE_BASE_NAME", DEFAULT_KNOWLEDGE_BASE_NAME),
            search_timeout=_float("SEARCH_TIMEOUT_SECONDS", 30.0),
            models_timeout=_float("MODELS_TIMEOUT_SECONDS", 60.0),
            retry_attempts=max(1, _int("UPSTREAM_RETRY_ATTEMPTS", 3)),
        )

    def redacted(self) -> dict[str, object]:
        """Settings safe to print (API keys removed)."""
        return {
            "search_endpoint": self.search_endpoint,
            "models_endpoint": self.models_endpoint,
            "embedding_model": self.embedding_model,
            "language_model": self.language_model,
            "embedding_dimensions": self.embedding_dimensions,
            "search_api_version": self.search_api_version,
            "openai_api_version": self.openai_api_version,
            "index_name": self.index_name,
            "knowledge_source_name": self.knowledge_source_name,
            "knowledge_base_name": self.knowledge_base_name,
            "retry_attempts": self.retry_attempts,
        }
