"""
Live progress events and the sinks that receive them.

The orchestrator writes ``SessionEvent`` objects to an ``EventSink`` as a
run progresses.  Sinks are purely observational: they never see or touch the
conversation's message list, and a failing sink does not affect the run.
``QueueEventSink`` decouples the loop from the host: the loop puts events on
an ``asyncio.Queue`` and the host drains it at its own pace.
"""

from __future__ import annotations

import asyncio
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Protocol


# ---------------------------------------------------------------------------
# Base event
# ---------------------------------------------------------------------------


@dataclass
class SessionEvent:
    """
    A single progress notification.

    Attributes
    ----------
    event_type:
        One of the event type constants below (``text_delta``,
        ``thinking_delta``, ``tool_started``, ``tool_finished``,
        ``turn_complete``, ``fatal_error``).
    payload:
        Event-specific data as a JSON-compatible dict.
    event_id:
        Unique identifier for the event (UUID4).
    turn:
        Zero-based index of the turn that produced the event.
    timestamp:
        UTC timestamp of event creation.
    """

    event_type: str
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    turn: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        """True for the last event of a run."""
        return self.event_type in (EVENT_TURN_COMPLETE, EVENT_FATAL_ERROR)

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain JSON-compatible dict."""
        d = asdict(self)
        d["timestamp"] = self.timestamp.isoformat()
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionEvent:
        """Reconstruct a SessionEvent from a dict produced by ``to_dict``."""
        data = dict(data)  # shallow copy so we don't mutate the caller's dict
        ts = data.get("timestamp")
        if isinstance(ts, str):
            data["timestamp"] = datetime.fromisoformat(ts)
        return cls(**data)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

EVENT_TEXT_DELTA = "text_delta"
EVENT_THINKING_DELTA = "thinking_delta"
EVENT_TOOL_STARTED = "tool_started"
EVENT_TOOL_FINISHED = "tool_finished"
EVENT_TURN_COMPLETE = "turn_complete"
EVENT_FATAL_ERROR = "fatal_error"


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


def text_delta_event(turn: int, text: str) -> SessionEvent:
    """Create a ``text_delta`` event."""
    return SessionEvent(event_type=EVENT_TEXT_DELTA, payload={"text": text}, turn=turn)


def thinking_delta_event(turn: int, text: str) -> SessionEvent:
    """Create a ``thinking_delta`` event."""
    return SessionEvent(event_type=EVENT_THINKING_DELTA, payload={"text": text}, turn=turn)


def tool_started_event(
    turn: int,
    invocation_id: str,
    tool_name: str,
    arguments: Any,
) -> SessionEvent:
    """Create a ``tool_started`` event."""
    return SessionEvent(
        event_type=EVENT_TOOL_STARTED,
        payload={
            "id": invocation_id,
            "name": tool_name,
            "arguments": arguments,
        },
        turn=turn,
    )


def tool_finished_event(
    turn: int,
    invocation_id: str,
    tool_name: str,
    content: str,
    is_error: bool,
) -> SessionEvent:
    """Create a ``tool_finished`` event."""
    return SessionEvent(
        event_type=EVENT_TOOL_FINISHED,
        payload={
            "id": invocation_id,
            "name": tool_name,
            "content": content,
            "is_error": is_error,
        },
        turn=turn,
    )


def turn_complete_event(turn: int, final_text: str) -> SessionEvent:
    """Create a ``turn_complete`` event (the run ended normally)."""
    return SessionEvent(
        event_type=EVENT_TURN_COMPLETE,
        payload={"final_text": final_text},
        turn=turn,
    )


def fatal_error_event(turn: int, message: str) -> SessionEvent:
    """Create a ``fatal_error`` event (the run was aborted)."""
    return SessionEvent(
        event_type=EVENT_FATAL_ERROR,
        payload={"message": message},
        turn=turn,
    )


# ---------------------------------------------------------------------------
# Sinks
# ---------------------------------------------------------------------------


class EventSink(Protocol):
    def emit(self, event: SessionEvent) -> None: ...


class NullEventSink:
    """Discards every event."""

    def emit(self, event: SessionEvent) -> None:
        pass


class ListEventSink:
    """Collects events in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[SessionEvent] = []

    def emit(self, event: SessionEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: str) -> list[SessionEvent]:
        return [e for e in self.events if e.event_type == event_type]


class QueueEventSink:
    """
    Puts events on an unbounded ``asyncio.Queue`` for the host to drain.

    ``emit`` never blocks, so a slow consumer cannot stall the loop.
    """

    def __init__(self) -> None:
        self.queue: asyncio.Queue[SessionEvent | None] = asyncio.Queue()

    def emit(self, event: SessionEvent) -> None:
        self.queue.put_nowait(event)

    def close(self) -> None:
        """Stop ``events`` once the queued events are drained."""
        self.queue.put_nowait(None)

    async def events(self) -> AsyncIterator[SessionEvent]:
        """Yield events until (and including) the run's terminal event, or until closed."""
        while True:
            event = await self.queue.get()
            if event is None:
                return
            yield event
            if event.is_terminal:
                return
