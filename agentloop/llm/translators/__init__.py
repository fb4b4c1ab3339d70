"""Wire translators between the message model and provider schemas."""

from agentloop.llm.translators.anthropic import AnthropicMessagesTranslator
from agentloop.llm.translators.base import WireTranslator, map_finish_reason
from agentloop.llm.translators.openai import OpenAIChatTranslator

__all__ = [
    "AnthropicMessagesTranslator",
    "OpenAIChatTranslator",
    "WireTranslator",
    "map_finish_reason",
]
