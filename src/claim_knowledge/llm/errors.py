"""Mapping of OpenAI SDK exceptions onto the engine's error taxonomy."""

import openai

from claim_knowledge.errors import UpstreamFailure
from claim_knowledge.utils.retry import RETRYABLE_STATUS_CODES


def as_upstream_failure(exc: openai.OpenAIError, action: str) -> UpstreamFailure:
    """Wrap an SDK error; connection, timeout, rate-limit and 5xx errors are transient."""
    if isinstance(exc, openai.APIConnectionError):
        return UpstreamFailure(f"{action} failed: model endpoint unreachable: {exc}", transient=True)
    if isinstance(exc, openai.APIStatusError):
        status = exc.status_code
        return UpstreamFailure(
            f"{action} failed with status {status}: {exc.message}",
            status_code=status,
            transient=status in RETRYABLE_STATUS_CODES,
        )
    return UpstreamFailure(f"{action} failed: {exc}")
