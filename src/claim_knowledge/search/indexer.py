"""Batch indexing of claim records.

Every record in a batch is embedded before anything is uploaded, and the
batch goes up as a single upload. An embedding or validation failure on any
record aborts the whole batch with nothing uploaded.
"""

import logging
from typing import Iterable

from pydantic import ValidationError

from claim_knowledge.errors import InvalidInput
from claim_knowledge.llm.embeddings import EmbeddingGenerator
from claim_knowledge.models.claim import ClaimRecord, IndexDocument
from claim_knowledge.observability.logger import claim_context, log_claim_event
from claim_knowledge.observability.metrics import get_metrics
from claim_knowledge.search.client import SearchServiceClient

logger = logging.getLogger(__name__)


def build_searchable_content(record: ClaimRecord) -> str:
    """Natural-language summary of a claim used for semantic relevance.

    Fixed order: claim number, type, policyholder, status, location,
    description, severity, cost.
    """
    return (
        f"Claim {record.claim_number} - {record.claim_type} for {record.policyholder_name}. "
        f"Status: {record.status}. Location: {record.location}. "
        f"Description: {record.description}. "
        f"Severity: {record.severity}. Estimated Cost: ${record.estimated_cost:,.2f}."
    )


def _coerce_record(raw: ClaimRecord | dict, position: int) -> ClaimRecord:
    if isinstance(raw, ClaimRecord):
        return raw
    try:
        return ClaimRecord.model_validate(raw)
    except ValidationError as e:
        raise InvalidInput(f"Malformed claim record at position {position}: {e}") from e


class DocumentIndexer:
    """Maps claim records to index documents and uploads them in one batch."""

    def __init__(
        self,
        client: SearchServiceClient,
        embedder: EmbeddingGenerator,
        index_name: str,
    ):
        self.client = client
        self.embedder = embedder
        self.index_name = index_name

    def build_document(self, record: ClaimRecord) -> IndexDocument:
        """Embed one record and assemble its index document."""
        with claim_context(claim_number=record.claim_number, operation="index"):
            content = build_searchable_content(record)
            vector = self.embedder.embed(content)
            try:
                return IndexDocument.from_claim(
                    record, content, vector, dimensions=self.embedder.dimension
                )
            except ValueError as e:
                raise InvalidInput(str(e)) from e

    def build_documents(self, records: Iterable[ClaimRecord | dict]) -> list[IndexDocument]:
        """Build documents for the whole batch; the first failure aborts it.

        Raises:
            InvalidInput: On a malformed record or duplicate claim number.
            UpstreamFailure: If any embedding call fails.
        """
        documents: list[IndexDocument] = []
        seen: set[str] = set()
        for position, raw in enumerate(records):
            record = _coerce_record(raw, position)
            if record.claim_number in seen:
                raise InvalidInput(
                    f"Duplicate claim number {record.claim_number!r} in batch at position {position}"
                )
            seen.add(record.claim_number)
            documents.append(self.build_document(record))
        return documents

    def index_batch(self, records: Iterable[ClaimRecord | dict]) -> int:
        """Embed and upload a batch of records.

        Returns:
            Number of documents uploaded.

        Raises:
            InvalidInput: On a malformed record; nothing is uploaded.
            UpstreamFailure: If an embedding or the upload fails; nothing from the
                batch is uploaded when an embedding fails.
        """
        documents = self.build_documents(records)
        if not documents:
            logger.warning("No claims to index")
            return 0

        logger.info("Uploading %d claims to index %r", len(documents), self.index_name)
        with get_metrics().track("index_upload"):
            self.client.upload_documents(
                self.index_name, [doc.to_upload_payload() for doc in documents]
            )
        log_claim_event(logger, "batch_indexed", index=self.index_name, count=len(documents))
        return len(documents)
