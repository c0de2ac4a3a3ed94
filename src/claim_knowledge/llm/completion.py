"""Direct chat completions, bypassing the index and knowledge base.

Used when the caller needs the model to reason over caller-supplied data with
strict structured output (e.g. fraud scoring) rather than a grounded answer.
"""

import logging

import openai

from claim_knowledge.config.settings import COMPLETION_MAX_TOKENS, COMPLETION_TEMPERATURE
from claim_knowledge.errors import InvalidInput, UpstreamFailure
from claim_knowledge.llm.errors import as_upstream_failure
from claim_knowledge.observability.metrics import get_metrics
from claim_knowledge.utils.retry import NO_RETRY, RetryPolicy

logger = logging.getLogger(__name__)

# Characters of the response echoed to the log
_LOG_PREVIEW = 100


class DirectCompletionClient:
    """Sends a system/user message pair to a chat-completion deployment."""

    def __init__(
        self,
        client: openai.AzureOpenAI,
        default_model: str,
        retry: RetryPolicy = NO_RETRY,
        temperature: float = COMPLETION_TEMPERATURE,
        max_tokens: int = COMPLETION_MAX_TOKENS,
    ):
        self.client = client
        self.default_model = default_model
        self.retry = retry
        self.temperature = temperature
        self.max_tokens = max_tokens

    def _create(self, model: str, messages: list[dict[str, str]]):
        try:
            return self.client.chat.completions.create(
                model=model,
                messages=messages,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except openai.OpenAIError as e:
            raise as_upstream_failure(e, "Chat completion") from e

    def complete(self, system_prompt: str, user_prompt: str, model: str | None = None) -> str:
        """Return the first completion's text verbatim.

        Args:
            system_prompt: System instructions for the model
            user_prompt: Caller-supplied data and question; no retrieval grounding is added
            model: Deployment name; defaults to the configured completion model

        Raises:
            InvalidInput: If user_prompt is empty.
            UpstreamFailure: If the call fails or returns no content.
        """
        if not user_prompt or not user_prompt.strip():
            raise InvalidInput("user_prompt cannot be empty")
        resolved = model.strip() if model and model.strip() else self.default_model
        messages = [
            {"role": "system", "content": system_prompt or ""},
            {"role": "user", "content": user_prompt},
        ]

        logger.info("Calling chat completion directly (model: %s)", resolved)
        with get_metrics().track("complete", model=resolved) as tracker:
            response = self.retry.call(self._create, resolved, messages)
            usage = getattr(response, "usage", None)
            if usage is not None:
                tracker.set_usage(
                    getattr(usage, "prompt_tokens", 0), getattr(usage, "completion_tokens", 0)
                )
            if not response.choices:
                raise UpstreamFailure(f"Chat completion from {resolved!r} returned no choices")
            content = response.choices[0].message.content
            if content is None:
                raise UpstreamFailure(f"Chat completion from {resolved!r} returned no content")

        logger.debug("Direct completion response: %s...", content[:_LOG_PREVIEW])
        return content
