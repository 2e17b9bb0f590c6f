"""Factory for creating LLM providers."""

import logging

from workflow_studio.config import LLMConfig
from workflow_studio.llm.openai_provider import OpenAIProvider
from workflow_studio.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class LLMFactory:
    @staticmethod
    def create(config: LLMConfig) -> LLMProvider | None:
        """Create the configured provider, or None when no credentials are set.

        Raises:
            ValueError: If the provider type is not supported.
        """
        if config.provider != "openai":
            raise ValueError(f"Unsupported LLM provider: {config.provider}")
        if not config.enabled:
            logger.info("LLM provider disabled (no API key configured)")
            return None
        return OpenAIProvider(config)
