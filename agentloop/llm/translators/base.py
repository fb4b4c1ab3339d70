"""Abstract base class for wire translators."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

from agentloop.llm.types import FinishReason, Message, StreamEvent, ToolSpec, TurnOptions

logger = logging.getLogger(__name__)

_TOOL_CALL_REASONS = {"tool_calls", "function_call", "tool_use"}
_STOP_REASONS = {
    "stop",
    "length",
    "end_turn",
    "max_tokens",
    "stop_sequence",
    "content_filter",
    "pause_turn",
    "refusal",
}


def map_finish_reason(raw: str) -> FinishReason:
    """Map a provider's finish/stop reason onto ``FinishReason``."""
    if raw in _TOOL_CALL_REASONS:
        return FinishReason.TOOL_CALLS
    if raw not in _STOP_REASONS:
        logger.warning("Unknown finish reason %r, treating as stop", raw)
    return FinishReason.STOP


class WireTranslator(ABC):
    """
    Maps the normalized message model to and from one provider's schema.

    Implementations must be pure: no I/O and no state kept between calls.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier, e.g. ``"openai"``."""
        ...

    @abstractmethod
    def to_wire_request(
        self,
        messages: list[Message],
        tools: list[ToolSpec] | None,
        options: TurnOptions,
    ) -> dict[str, Any]:
        """Build a streaming request body for the conversation so far."""
        ...

    @abstractmethod
    def from_wire_chunk(self, data: dict[str, Any]) -> list[StreamEvent]:
        """Convert one decoded stream payload into zero or more stream events."""
        ...

    @abstractmethod
    def from_wire_messages(self, wire_messages: list[dict[str, Any]]) -> list[Message]:
        """Rebuild normalized messages from a request body's message list."""
        ...

    @abstractmethod
    def tool_schema(self, spec: ToolSpec) -> dict[str, Any]:
        """Render a tool catalog entry in the provider's format."""
        ...
