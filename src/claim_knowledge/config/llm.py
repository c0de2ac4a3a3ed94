"""Azure OpenAI client configuration for embeddings and direct completions."""

import logging

from openai import AzureOpenAI

from claim_knowledge.config.settings import EngineConfig

logger = logging.getLogger(__name__)


def get_openai_client(config: EngineConfig) -> AzureOpenAI:
    """Return an Azure OpenAI client for the configured models endpoint.

    Retries are disabled on the SDK client; the engine applies its own
    bounded retry policy at the component boundary.
    """
    logger.debug(
        "Configuring Azure OpenAI client: endpoint=%s, api_version=%s",
        config.models_endpoint,
        config.openai_api_version,
    )
    return AzureOpenAI(
        azure_endpoint=config.models_endpoint,
        api_key=config.models_api_key,
        api_version=config.openai_api_version,
        timeout=config.models_timeout,
        max_retries=0,
    )