"""Azure OpenAI model access: embeddings and direct completions."""

from claim_knowledge.llm.completion import DirectCompletionClient
from claim_knowledge.llm.embeddings import EmbeddingCache, EmbeddingGenerator

__all__ = ["DirectCompletionClient", "EmbeddingCache", "EmbeddingGenerator"]
