"""LLM subsystem -- message model, wire translators, streaming and tool-call accumulation."""

from agentloop.llm.router import LLMRouter
from agentloop.llm.stream_decoder import decode_stream
from agentloop.llm.tool_call_assembler import ToolCallAccumulator
from agentloop.llm.types import (
    AccumulationError,
    FinishReason,
    Message,
    ResolvedToolCall,
    StreamEvent,
    TextBlock,
    TextDelta,
    ThinkingDelta,
    ToolCallDelta,
    ToolInvocationRequest,
    ToolInvocationResult,
    ToolSpec,
    TurnFinished,
    TurnOptions,
    validate_transcript,
)

__all__ = [
    "AccumulationError",
    "FinishReason",
    "LLMRouter",
    "Message",
    "ResolvedToolCall",
    "StreamEvent",
    "TextBlock",
    "TextDelta",
    "ThinkingDelta",
    "ToolCallAccumulator",
    "ToolCallDelta",
    "ToolInvocationRequest",
    "ToolInvocationResult",
    "ToolSpec",
    "TurnFinished",
    "TurnOptions",
    "decode_stream",
    "validate_transcript",
]
