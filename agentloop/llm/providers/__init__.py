"""Provider implementations: a wire translator plus a transport each."""

from agentloop.llm.providers.anthropic import AnthropicProvider
from agentloop.llm.providers.base import Provider
from agentloop.llm.providers.http import HTTPSSEProvider
from agentloop.llm.providers.openai_compat import OpenAICompatProvider

__all__ = [
    "AnthropicProvider",
    "HTTPSSEProvider",
    "OpenAICompatProvider",
    "Provider",
]
