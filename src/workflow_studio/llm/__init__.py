"""LLM provider abstraction used by the product assistant."""

from workflow_studio.llm.factory import LLMFactory
from workflow_studio.llm.provider import LLMProvider

__all__ = ["LLMFactory", "LLMProvider"]
