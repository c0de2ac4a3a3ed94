"""Pydantic models for claim records and the index documents derived from them."""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from claim_knowledge.utils.sanitization import validate_key

# Bump when INDEX_FIELDS changes; the index must be recreated to pick it up.
SCHEMA_VERSION = "2"

VECTOR_DIMENSIONS = 1536


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so they survive a round trip through the index."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ClaimRecord(BaseModel):
    """Raw claim record as loaded from sample data or an upstream claims system.

    Accepts the camelCase keys of the claims JSON feed as well as the
    snake_case attribute names.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    record_id: Optional[int] = Field(default=None, alias="id", description="Source record identifier")
    claim_number: str = Field(..., alias="claimNumber", min_length=1, description="Claim number (index key)")
    policyholder_name: str = Field(..., alias="policyholderName", description="Policyholder full name")
    policy_number: str = Field(..., alias="policyNumber", description="Insurance policy number")
    status: str = Field(..., description="Claim status (e.g., Open, Under Review, Approved)")
    claim_type: str = Field(..., alias="claimType", description="Claim type (e.g., Auto Collision)")
    region: str = Field(..., description="Geographic region")
    assigned_adjuster: str = Field(..., alias="assignedAdjuster", description="Assigned adjuster name")
    date_filed: datetime = Field(..., alias="dateFiled", description="Filing timestamp")
    date_resolved: Optional[datetime] = Field(
        default=None, alias="dateResolved", description="Resolution timestamp, if resolved"
    )
    description: str = Field(..., description="Incident description")
    location: str = Field(..., description="Incident location")
    severity: str = Field(..., description="Severity (e.g., Low, Medium, High)")
    estimated_cost: float = Field(..., alias="estimatedCost", description="Estimated cost in dollars")
    fraud_risk_score: int = Field(
        ..., alias="fraudRiskScore", ge=0, le=100, description="Fraud risk score 0-100"
    )
    fraud_indicators: str = Field(default="", alias="fraudIndicators", description="Fraud indicators")
    is_documentation_complete: bool = Field(
        default=False, alias="isDocumentationComplete", description="Whether documentation is complete"
    )
    missing_documentation: str = Field(
        default="", alias="missingDocumentation", description="Missing documentation, if any"
    )
    adjuster_notes: Optional[str] = Field(default=None, alias="adjusterNotes", description="Adjuster notes")
    image_url: Optional[str] = Field(default=None, alias="imageUrl", description="Damage photo URL")
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl", description="Thumbnail URL")

    @field_validator("claim_number")
    @classmethod
    def _usable_key(cls, value: str) -> str:
        return validate_key(value)

    @field_validator("fraud_indicators", "missing_documentation", mode="before")
    @classmethod
    def _join_text(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (list, tuple)):
            return ", ".join(str(v) for v in value if v)
        return value

    @field_validator("date_filed", "date_resolved")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @property
    def effective_adjuster_notes(self) -> str:
        """Adjuster notes, defaulting to the assignment line when none were recorded."""
        if self.adjuster_notes:
            return self.adjuster_notes
        return f"Assigned to {self.assigned_adjuster}"


class IndexDocument(BaseModel):
    """Search index document: one per claim, keyed by claim number.

    Field aliases are the index field names; ``model_dump(by_alias=True)``
    yields the upload payload.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., description="Index key; equals claimNumber")
    claim_number: str = Field(..., alias="claimNumber")
    policyholder_name: str = Field(..., alias="policyholderName")
    policy_number: str = Field(..., alias="policyNumber")
    status: str
    claim_type: str = Field(..., alias="claimType")
    region: str
    assigned_adjuster: str = Field(..., alias="assignedAdjuster")
    date_filed: datetime = Field(..., alias="dateFiled")
    date_resolved: Optional[datetime] = Field(default=None, alias="dateResolved")
    description: str
    location: str
    severity: str
    claim_amount: float = Field(..., alias="claimAmount")
    fraud_score: int = Field(..., alias="fraudScore", ge=0, le=100)
    fraud_indicators: str = Field(default="", alias="fraudIndicators")
    adjuster_notes: str = Field(default="", alias="adjusterNotes")
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    record_id: Optional[int] = Field(default=None, alias="recordId")
    is_documentation_complete: bool = Field(default=False, alias="isDocumentationComplete")
    missing_documentation: str = Field(default="", alias="missingDocumentation")
    searchable_content: str = Field(default="", alias="searchableContent")
    # Absent on lookups that do not select the vector field
    content_vector: Optional[list[float]] = Field(default=None, alias="contentVector")

    @field_validator("fraud_indicators", "missing_documentation", "adjuster_notes", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("date_filed", "date_resolved")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    @model_validator(mode="after")
    def _key_matches_claim_number(self) -> "IndexDocument":
        if self.id != self.claim_number:
            raise ValueError(
                f"Document key {self.id!r} must equal claim number {self.claim_number!r}"
            )
        return self

    @classmethod
    def from_claim(
        cls,
        record: ClaimRecord,
        searchable_content: str,
        content_vector: list[float],
        dimensions: int = VECTOR_DIMENSIONS,
    ) -> "IndexDocument":
        """Map a claim record to its index document.

        Raises:
            ValueError: If the vector does not have exactly ``dimensions`` entries.
        """
        if len(content_vector) != dimensions:
            raise ValueError(
                f"contentVector for {record.claim_number} has {len(content_vector)} "
                f"dimensions, expected {dimensions}"
            )
        return cls(
            id=record.claim_number,
            claim_number=record.claim_number,
            policyholder_name=record.policyholder_name,
            policy_number=record.policy_number,
            status=record.status,
            claim_type=record.claim_type,
            region=record.region,
            assigned_adjuster=record.assigned_adjuster,
            date_filed=record.date_filed,
            date_resolved=record.date_resolved,
            description=record.description,
            location=record.location,
            severity=record.severity,
            claim_amount=record.estimated_cost,
            fraud_score=record.fraud_risk_score,
            fraud_indicators=record.fraud_indicators,
            adjuster_notes=record.effective_adjuster_notes,
            image_url=record.image_url,
            thumbnail_url=record.thumbnail_url,
            record_id=record.record_id,
            is_documentation_complete=record.is_documentation_complete,
            missing_documentation=record.missing_documentation,
            searchable_content=searchable_content,
            content_vector=[float(x) for x in content_vector],
        )

    def to_claim(self) -> ClaimRecord:
        """Rebuild the claim record this document was derived from."""
        return ClaimRecord(
            record_id=self.record_id,
            claim_number=self.claim_number,
            policyholder_name=self.policyholder_name,
            policy_number=self.policy_number,
            status=self.status,
            claim_type=self.claim_type,
            region=self.region,
            assigned_adjuster=self.assigned_adjuster,
            date_filed=self.date_filed,
            date_resolved=self.date_resolved,
            description=self.description,
            location=self.location,
            severity=self.severity,
            estimated_cost=self.claim_amount,
            fraud_risk_score=self.fraud_score,
            fraud_indicators=self.fraud_indicators,
            is_documentation_complete=self.is_documentation_complete,
            missing_documentation=self.missing_documentation,
            adjuster_notes=self.adjuster_notes or None,
            image_url=self.image_url,
            thumbnail_url=self.thumbnail_url,
        )

    def to_upload_payload(self) -> dict[str, Any]:
        """JSON-ready upload payload keyed by index field name."""
        return self.model_dump(by_alias=True, mode="json")


# Versioned field list, in declaration order
INDEX_FIELDS: tuple[str, ...] = tuple(
    info.alias or name for name, info in IndexDocument.model_fields.items()
)
