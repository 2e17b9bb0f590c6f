"""OpenAI chat provider."""

import logging
from typing import Any

from openai import OpenAI

from workflow_studio.config import LLMConfig
from workflow_studio.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    def __init__(self, config: LLMConfig, client: OpenAI | None = None) -> None:
        """Initialize the provider.

        Raises:
            ValueError: If no API key is configured and no client is injected.
        """
        if client is None and not config.enabled:
            raise ValueError("OpenAI API key is required")

        self.client = client or OpenAI(api_key=config.openai_api_key)
        self.model = config.openai_model
        self.temperature = config.openai_temperature
        self.max_tokens = config.max_tokens

        logger.info("OpenAI provider initialized", extra={"model": self.model})

    def chat(
        self,
        messages: list[dict[str, str]],
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,  # type: ignore[arg-type]
            max_tokens=max_tokens or self.max_tokens,
            temperature=temperature if temperature is not None else self.temperature,
            **kwargs,
        )
        content = response.choices[0].message.content or ""
        logger.debug("Chat completion received", extra={"chars": len(content)})
        return content
