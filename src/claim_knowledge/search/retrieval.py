"""Query-time retrieval: agentic answer synthesis and direct structured lookup.

Synthesis retrieval trades determinism for natural-language quality on broad
queries ("claims with high severity in the Northeast"); direct lookup returns
bit-exact fields for a single known claim number. Callers choose which to use.
"""

import logging

from pydantic import ValidationError

from claim_knowledge.errors import InvalidInput, KnowledgeEngineError, UpstreamFailure
from claim_knowledge.models.claim import INDEX_FIELDS, IndexDocument
from claim_knowledge.models.retrieval import (
    NOT_FOUND,
    OutputMode,
    ReasoningEffort,
    RetrievalMessage,
    RetrievalRequest,
    RetrievalResponse,
    RetrievalResult,
)
from claim_knowledge.observability.logger import claim_context
from claim_knowledge.observability.metrics import get_metrics
from claim_knowledge.search.client import SearchServiceClient
from claim_knowledge.search.schema import LOOKUP_FIELD, VECTOR_FIELD
from claim_knowledge.utils.retry import NO_RETRY, RetryPolicy
from claim_knowledge.utils.sanitization import (
    MAX_INSTRUCTIONS_LENGTH,
    MAX_QUERY_LENGTH,
    key_filter,
    sanitize_text,
    validate_key,
)

logger = logging.getLogger(__name__)

DEFAULT_TOP_RESULTS = 5

UNAVAILABLE_MESSAGE = "Search is currently unavailable"


def build_retrieval_request(query: str, instructions: str | None = None) -> RetrievalRequest:
    """Instructions (if any) first as an assistant message, the query last as a user message."""
    messages = []
    if instructions:
        messages.append(RetrievalMessage.of("assistant", instructions))
    messages.append(RetrievalMessage.of("user", query))
    return RetrievalRequest(
        messages=messages,
        reasoning_effort=ReasoningEffort.LOW,
        output_mode=OutputMode.ANSWER_SYNTHESIS,
    )


class RetrievalCoordinator:
    """Entry point for query-time retrieval."""

    def __init__(
        self,
        client: SearchServiceClient,
        index_name: str,
        knowledge_base_name: str,
        retry: RetryPolicy = NO_RETRY,
    ):
        self.client = client
        self.index_name = index_name
        self.knowledge_base_name = knowledge_base_name
        self.retry = retry

    # ------------------------------------------------------------------
    # Agentic synthesis retrieval
    # ------------------------------------------------------------------

    def retrieve(
        self,
        query: str,
        instructions: str | None = None,
        top_results: int = DEFAULT_TOP_RESULTS,
    ) -> str:
        """Synthesized answer for a natural-language query.

        Args:
            query: Natural language query
            instructions: Optional formatting instructions, sent as an assistant message
            top_results: Requested number of source documents. Validated and logged
                only: the knowledge base retrieve call has no per-request result
                count, so the service applies its own limit.

        Returns:
            The answer text; an empty string when nothing matched.

        Raises:
            InvalidInput: If the query is blank or too long, or top_results < 1.
            UpstreamFailure: If the knowledge base call fails.
        """
        cleaned = sanitize_text(query, MAX_QUERY_LENGTH, "Retrieval query")
        if not cleaned:
            raise InvalidInput("Retrieval query cannot be empty")
        if top_results < 1:
            raise InvalidInput(f"top_results must be at least 1, got {top_results}")
        steering = sanitize_text(instructions, MAX_INSTRUCTIONS_LENGTH, "Instruction text") or None

        request = build_retrieval_request(cleaned, steering)
        logger.info(
            "Knowledge base retrieval: kb=%s, top_results=%d, instructions=%s",
            self.knowledge_base_name,
            top_results,
            "yes" if steering else "no",
        )
        with get_metrics().track("retrieve"):
            body = self.retry.call(
                self.client.retrieve, self.knowledge_base_name, request.to_payload()
            )
            try:
                response = RetrievalResponse.model_validate(body)
            except ValidationError as e:
                raise UpstreamFailure(f"Malformed retrieval response: {e}") from e

        answer = response.answer_text()
        if not answer:
            logger.info("Knowledge base returned no answer for query")
        return answer

    def retrieve_result(
        self,
        query: str,
        instructions: str | None = None,
        top_results: int = DEFAULT_TOP_RESULTS,
    ) -> RetrievalResult:
        """Like retrieve, but reports found / no_match / failure explicitly.

        Invalid input still raises; only upstream errors become a failure result.
        """
        try:
            answer = self.retrieve(query, instructions, top_results)
        except InvalidInput:
            raise
        except KnowledgeEngineError as e:
            logger.warning("Retrieval failed: %s", e)
            return RetrievalResult.failure(f"{UNAVAILABLE_MESSAGE}: {e}")
        if not answer.strip():
            return RetrievalResult.no_match()
        return RetrievalResult.found(answer)

    # ------------------------------------------------------------------
    # Direct structured lookup
    # ------------------------------------------------------------------

    def get_by_key(self, claim_number: str, include_vector: bool = False):
        """Exact-match lookup of one claim by claim number.

        Args:
            claim_number: The claim number to retrieve
            include_vector: Also return contentVector (large; off by default)

        Returns:
            The IndexDocument, or NOT_FOUND if no document has that key.

        Raises:
            InvalidInput: If claim_number could never have been indexed (blank,
                over MAX_KEY_LENGTH, or containing control characters).
            ResourceNotFound: If the index itself does not exist.
            UpstreamFailure: If the search call fails.
        """
        key = validate_key(claim_number)
        fields = [f for f in INDEX_FIELDS if include_vector or f != VECTOR_FIELD]
        body = {
            "search": "*",
            "filter": key_filter(LOOKUP_FIELD, key),
            "top": 1,
            "select": ",".join(fields),
        }

        with claim_context(claim_number=key, operation="lookup"):
            with get_metrics().track("lookup"):
                results = self.retry.call(self.client.search, self.index_name, body)
            if not results:
                logger.info("Claim not found")
                return NOT_FOUND
            try:
                return IndexDocument.model_validate(results[0])
            except ValidationError as e:
                raise UpstreamFailure(f"Malformed document for claim {key!r}: {e}") from e
