"""LLM provider abstraction module."""

from filerouter.providers.base import LLMProvider, LLMResponse
from filerouter.providers.litellm_provider import LiteLLMProvider

__all__ = ["LLMProvider", "LLMResponse", "LiteLLMProvider"]
