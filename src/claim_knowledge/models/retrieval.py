"""Pydantic models for knowledge base retrieval requests, responses and results."""

from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ReasoningEffort(str, Enum):
    """Retrieval reasoning effort profile."""

    MINIMAL = "minimal"
    LOW = "low"
    MEDIUM = "medium"


class OutputMode(str, Enum):
    """Raw matched results vs. a synthesized answer."""

    EXTRACTIVE_DATA = "extractiveData"
    ANSWER_SYNTHESIS = "answerSynthesis"


class TextContent(BaseModel):
    """A single text content block."""

    type: Literal["text"] = "text"
    text: str


class RetrievalMessage(BaseModel):
    """Role-tagged message sent to the knowledge base."""

    role: Literal["user", "assistant"]
    content: list[TextContent] = Field(default_factory=list)

    @classmethod
    def of(cls, role: Literal["user", "assistant"], text: str) -> "RetrievalMessage":
        return cls(role=role, content=[TextContent(text=text)])


class RetrievalRequest(BaseModel):
    """Ordered messages plus reasoning-effort and output-mode settings."""

    messages: list[RetrievalMessage] = Field(default_factory=list)
    reasoning_effort: ReasoningEffort = ReasoningEffort.LOW
    output_mode: OutputMode = OutputMode.ANSWER_SYNTHESIS

    def to_payload(self) -> dict[str, Any]:
        """Request body for ``POST /knowledgebases/{name}/retrieve``."""
        return {
            "messages": [m.model_dump(mode="json") for m in self.messages],
            "retrievalReasoningEffort": {"kind": self.reasoning_effort.value},
            "outputMode": self.output_mode.value,
        }


class ContentBlock(BaseModel):
    """Response content block; only ``text`` blocks contribute to the answer."""

    model_config = ConfigDict(extra="allow")

    type: str = "text"
    text: Optional[str] = None


class ResponseMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Optional[str] = None
    content: list[ContentBlock] = Field(default_factory=list)


class RetrievalResponse(BaseModel):
    """Knowledge base retrieval response (``response`` messages plus diagnostics)."""

    model_config = ConfigDict(extra="allow")

    response: list[ResponseMessage] = Field(default_factory=list)
    activity: list[dict[str, Any]] = Field(default_factory=list)
    references: list[dict[str, Any]] = Field(default_factory=list)

    def text_blocks(self) -> list[str]:
        """Text of every text content block, in order."""
        return [
            block.text
            for message in self.response
            for block in message.content
            if block.type == "text" and block.text
        ]

    def answer_text(self) -> str:
        """Synthesized answer: text blocks joined in order, one per line."""
        return "\n".join(self.text_blocks())


class RetrievalOutcome(str, Enum):
    FOUND = "found"
    NO_MATCH = "no_match"
    FAILURE = "failure"


class RetrievalResult(BaseModel):
    """Explicit outcome of a synthesis retrieval.

    Distinguishes a genuine empty answer from an upstream failure, which a
    bare string cannot.
    """

    outcome: RetrievalOutcome
    text: str = ""
    reason: Optional[str] = None

    @classmethod
    def found(cls, text: str) -> "RetrievalResult":
        return cls(outcome=RetrievalOutcome.FOUND, text=text)

    @classmethod
    def no_match(cls) -> "RetrievalResult":
        return cls(outcome=RetrievalOutcome.NO_MATCH)

    @classmethod
    def failure(cls, reason: str) -> "RetrievalResult":
        return cls(outcome=RetrievalOutcome.FAILURE, reason=reason)

    @property
    def ok(self) -> bool:
        return self.outcome != RetrievalOutcome.FAILURE


class _NotFound:
    """Sentinel returned by direct lookup when no document matches the key."""

    _instance: "_NotFound | None" = None

    def __new__(cls) -> "_NotFound":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_FOUND"


NOT_FOUND = _NotFound()
