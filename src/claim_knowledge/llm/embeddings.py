"""Embedding generation for claim documents.

One round trip per call to an Azure OpenAI embeddings deployment. An optional
content-hash cache avoids re-embedding unchanged text across reindex runs.
"""

import hashlib
import logging
import threading
from collections import OrderedDict
from typing import Optional

import numpy as np
import openai

from claim_knowledge.errors import InvalidInput, UpstreamFailure
from claim_knowledge.llm.errors import as_upstream_failure
from claim_knowledge.models.claim import VECTOR_DIMENSIONS
from claim_knowledge.observability.metrics import get_metrics
from claim_knowledge.utils.retry import NO_RETRY, RetryPolicy

logger = logging.getLogger(__name__)


def content_hash(text: str) -> str:
    """SHA-256 hex digest of the text, used as the cache key."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class EmbeddingCache:
    """Thread-safe LRU cache of embeddings keyed by content hash."""

    def __init__(self, max_entries: int = 10_000):
        self.max_entries = max_entries
        self._entries: OrderedDict[str, list[float]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, text: str) -> Optional[list[float]]:
        key = content_hash(text)
        with self._lock:
            vector = self._entries.get(key)
            if vector is not None:
                self._entries.move_to_end(key)
            return vector

    def put(self, text: str, vector: list[float]) -> None:
        key = content_hash(text)
        with self._lock:
            self._entries[key] = vector
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                self._entries.popitem(last=False)


class EmbeddingGenerator:
    """Turns text into a fixed-length vector via an embeddings deployment."""

    def __init__(
        self,
        client: openai.AzureOpenAI,
        model_name: str,
        dimensions: int = VECTOR_DIMENSIONS,
        retry: RetryPolicy = NO_RETRY,
        cache: EmbeddingCache | None = None,
    ):
        """Initialize the generator.

        Args:
            client: Azure OpenAI client
            model_name: Embedding deployment name
            dimensions: Expected vector length
            retry: Retry policy for transient failures
            cache: Optional cache; None means every call hits the model
        """
        self.client = client
        self.model_name = model_name
        self.dimensions = dimensions
        self.retry = retry
        self.cache = cache

    @property
    def dimension(self) -> int:
        return self.dimensions

    def _call_embeddings_api(self, text: str):
        try:
            return self.client.embeddings.create(model=self.model_name, input=text)
        except openai.OpenAIError as e:
            raise as_upstream_failure(e, "Embedding request") from e

    def embed(self, text: str) -> list[float]:
        """Generate the embedding for a single text.

        Raises:
            InvalidInput: If text is empty or blank.
            UpstreamFailure: On network/quota errors, or if the model returns a
                vector of the wrong length.
        """
        if not text or not text.strip():
            raise InvalidInput("Cannot embed empty text")

        if self.cache is not None:
            cached = self.cache.get(text)
            if cached is not None:
                logger.debug("Embedding cache hit (%d chars)", len(text))
                return list(cached)

        with get_metrics().track("embed", model=self.model_name) as tracker:
            response = self.retry.call(self._call_embeddings_api, text)
            usage = getattr(response, "usage", None)
            if usage is not None:
                tracker.set_usage(getattr(usage, "prompt_tokens", 0), 0)
            if not response.data:
                raise UpstreamFailure("Embedding response contained no data")
            vector = np.asarray(response.data[0].embedding, dtype=np.float32)

        if vector.ndim != 1 or vector.shape[0] != self.dimensions:
            raise UpstreamFailure(
                f"Embedding model {self.model_name!r} returned {vector.size} dimensions, "
                f"expected {self.dimensions}"
            )
        if not np.isfinite(vector).all():
            raise UpstreamFailure(f"Embedding model {self.model_name!r} returned non-finite values")

        result = vector.tolist()
        if self.cache is not None:
            self.cache.put(text, result)
        return result
