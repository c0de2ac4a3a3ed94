"""Error taxonomy for the knowledge retrieval engine.

Provisioning errors are fatal; retrieval and completion errors surface to the
immediate caller, which decides the user-facing wording. A missing claim on
direct lookup is not an error (see ``claim_knowledge.models.retrieval.NOT_FOUND``).
"""


class KnowledgeEngineError(Exception):
    """Base class for all engine errors."""


class ConfigurationError(KnowledgeEngineError):
    """Raised at construction when required settings are absent or unusable."""

    def __init__(
        self,
        missing: list[str] | tuple[str, ...] | str = (),
        message: str | None = None,
    ) -> None:
        if isinstance(missing, str):
            missing = [missing]
        self.missing = list(missing)
        super().__init__(
            message or f"Missing required configuration: {', '.join(self.missing)}"
        )


class ResourceNotFound(KnowledgeEngineError):
    """Raised when an index, knowledge source or knowledge base does not exist."""

    def __init__(self, resource: str, message: str | None = None) -> None:
        self.resource = resource
        super().__init__(message or f"Resource not found: {resource}")


class UpstreamFailure(KnowledgeEngineError):
    """Raised for network, timeout, quota or service-side failures."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        transient: bool = False,
    ) -> None:
        self.status_code = status_code
        self.transient = transient
        super().__init__(message)


class InvalidInput(KnowledgeEngineError, ValueError):
    """Raised for empty text to embed or a malformed batch record."""
