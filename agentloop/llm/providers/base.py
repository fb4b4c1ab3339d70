"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from agentloop.llm.stream_decoder import decode_stream
from agentloop.llm.translators.base import WireTranslator
from agentloop.llm.types import Message, StreamEvent, ToolSpec, TurnOptions


class Provider(ABC):
    """
    A provider pairs a wire translator with a transport to one endpoint.

    Implementations must support:
      - Opening a streaming request and yielding raw payloads (``open_stream``).
      - Reporting a human-readable ``name``.

    ``stream_turn`` composes translator, transport and decoder into the
    typed event stream the orchestrator consumes.
    """

    def __init__(self, translator: WireTranslator) -> None:
        self.translator = translator

    @abstractmethod
    async def open_stream(self, request: dict[str, Any]) -> AsyncIterator[str]:
        """
        Send *request* and yield the raw payload of each stream event.

        Raises ``TransportError`` if the endpoint cannot be reached or
        answers with a non-2xx status.
        """
        ...
        # Make the method an async generator so sub-classes can ``yield``.
        # This line is unreachable but satisfies the type checker.
        if False:  # pragma: no cover
            yield ""  # type: ignore[misc]

    async def stream_turn(
        self,
        messages: list[Message],
        tools: list[ToolSpec] | None,
        options: TurnOptions,
    ) -> AsyncIterator[StreamEvent]:
        """Run one turn and yield its ``StreamEvent`` sequence."""
        request = self.translator.to_wire_request(messages, tools, options)
        async for event in decode_stream(self.open_stream(request), self.translator):
            yield event

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. ``"openai-compat"``)."""
        ...
