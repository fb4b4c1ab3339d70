"""Session management: conversation state and live progress events."""

from agentloop.session.events import (
    EVENT_FATAL_ERROR,
    EVENT_TEXT_DELTA,
    EVENT_THINKING_DELTA,
    EVENT_TOOL_FINISHED,
    EVENT_TOOL_STARTED,
    EVENT_TURN_COMPLETE,
    EventSink,
    ListEventSink,
    NullEventSink,
    QueueEventSink,
    SessionEvent,
    fatal_error_event,
    text_delta_event,
    thinking_delta_event,
    tool_finished_event,
    tool_started_event,
    turn_complete_event,
)
from agentloop.session.session import ConversationSession, SessionConfig

__all__ = [
    "ConversationSession",
    "EventSink",
    "ListEventSink",
    "NullEventSink",
    "QueueEventSink",
    "SessionConfig",
    "SessionEvent",
    # Event type constants
    "EVENT_FATAL_ERROR",
    "EVENT_TEXT_DELTA",
    "EVENT_THINKING_DELTA",
    "EVENT_TOOL_FINISHED",
    "EVENT_TOOL_STARTED",
    "EVENT_TURN_COMPLETE",
    # Factory functions
    "fatal_error_event",
    "text_delta_event",
    "thinking_delta_event",
    "tool_finished_event",
    "tool_started_event",
    "turn_complete_event",
]
