"""Core types for the LLM subsystem."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from agentloop.types import ProtocolError

ROLE_SYSTEM = "system"
ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
ROLE_TOOL = "tool"


# ---------------------------------------------------------------------------
# Content blocks
# ---------------------------------------------------------------------------


@dataclass
class TextBlock:
    text: str


@dataclass
class ToolInvocationRequest:
    """A tool call issued by the assistant.  Only valid in assistant messages."""

    id: str
    name: str
    arguments: Any = field(default_factory=dict)


@dataclass
class ToolInvocationResult:
    """The answer to a ``ToolInvocationRequest``.  Only valid in tool messages."""

    invocation_id: str
    content: str
    is_error: bool = False


ContentBlock = Union[TextBlock, ToolInvocationRequest, ToolInvocationResult]


@dataclass
class Message:
    """
    A single message in a conversation.

    *content* is an ordered list of blocks.  A ``tool`` message carries
    exactly one ``ToolInvocationResult``; requests may only appear in
    ``assistant`` messages.
    """

    role: str  # "user", "assistant", "tool" ("system" for translator input)
    content: list[ContentBlock] = field(default_factory=list)

    def __post_init__(self) -> None:
        for block in self.content:
            if isinstance(block, ToolInvocationRequest) and self.role != ROLE_ASSISTANT:
                raise ProtocolError(
                    f"tool invocation request inside a {self.role!r} message"
                )
            if isinstance(block, ToolInvocationResult) and self.role != ROLE_TOOL:
                raise ProtocolError(
                    f"tool invocation result inside a {self.role!r} message"
                )
        if self.role == ROLE_TOOL:
            if len(self.content) != 1 or not isinstance(
                self.content[0], ToolInvocationResult
            ):
                raise ProtocolError(
                    "a tool message must carry exactly one tool invocation result"
                )

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def system(cls, text: str) -> Message:
        return cls(role=ROLE_SYSTEM, content=[TextBlock(text)])

    @classmethod
    def user(cls, text: str) -> Message:
        return cls(role=ROLE_USER, content=[TextBlock(text)])

    @classmethod
    def assistant(
        cls,
        text: str = "",
        requests: list[ToolInvocationRequest] | None = None,
    ) -> Message:
        blocks: list[ContentBlock] = []
        if text or not requests:
            blocks.append(TextBlock(text))
        blocks.extend(requests or [])
        return cls(role=ROLE_ASSISTANT, content=blocks)

    @classmethod
    def tool_result(
        cls, invocation_id: str, content: str, is_error: bool = False
    ) -> Message:
        return cls(
            role=ROLE_TOOL,
            content=[ToolInvocationResult(invocation_id, content, is_error)],
        )

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def text(self) -> str:
        return "".join(b.text for b in self.content if isinstance(b, TextBlock))

    @property
    def tool_requests(self) -> list[ToolInvocationRequest]:
        return [b for b in self.content if isinstance(b, ToolInvocationRequest)]

    @property
    def tool_results(self) -> list[ToolInvocationResult]:
        return [b for b in self.content if isinstance(b, ToolInvocationResult)]

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        blocks: list[dict[str, Any]] = []
        for b in self.content:
            if isinstance(b, TextBlock):
                blocks.append({"type": "text", "text": b.text})
            elif isinstance(b, ToolInvocationRequest):
                blocks.append(
                    {"type": "tool_request", "id": b.id, "name": b.name, "arguments": b.arguments}
                )
            else:
                blocks.append(
                    {
                        "type": "tool_result",
                        "invocation_id": b.invocation_id,
                        "content": b.content,
                        "is_error": b.is_error,
                    }
                )
        return {"role": self.role, "content": blocks}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        blocks: list[ContentBlock] = []
        for raw in data.get("content", []):
            kind = raw.get("type")
            if kind == "text":
                blocks.append(TextBlock(raw.get("text", "")))
            elif kind == "tool_request":
                blocks.append(
                    ToolInvocationRequest(raw["id"], raw["name"], raw.get("arguments", {}))
                )
            elif kind == "tool_result":
                blocks.append(
                    ToolInvocationResult(
                        raw["invocation_id"], raw.get("content", ""), bool(raw.get("is_error"))
                    )
                )
            else:
                raise ValueError(f"Unknown content block type: {kind!r}")
        return cls(role=data["role"], content=blocks)


def validate_transcript(messages: list[Message], *, allow_trailing: bool = False) -> None:
    """
    Check that every tool invocation request is answered before the conversation moves on.

    Results must follow their assistant message directly, one per request, in
    request order.  With *allow_trailing* the transcript may end with
    requests that have not been answered yet.

    Raises ``ProtocolError`` on the first violation.
    """
    pending: list[str] = []
    for pos, msg in enumerate(messages):
        if msg.role == ROLE_TOOL:
            result = msg.content[0]
            if not pending:
                raise ProtocolError(
                    f"message {pos}: result for {result.invocation_id!r} has no open request"
                )
            expected = pending.pop(0)
            if result.invocation_id != expected:
                raise ProtocolError(
                    f"message {pos}: expected result for {expected!r}, "
                    f"got {result.invocation_id!r}"
                )
            continue

        if pending:
            raise ProtocolError(
                f"message {pos}: requests {pending} were not answered before a "
                f"{msg.role!r} message"
            )
        pending = [r.id for r in msg.tool_requests]

    if pending and not allow_trailing:
        raise ProtocolError(f"requests {pending} were never answered")


# ---------------------------------------------------------------------------
# Stream events (transient, one turn)
# ---------------------------------------------------------------------------


class FinishReason(str, Enum):
    STOP = "stop"
    TOOL_CALLS = "tool_calls"
    ERROR = "error"


@dataclass
class TextDelta:
    text: str


@dataclass
class ThinkingDelta:
    """Reasoning text streamed by models with extended thinking.  Never persisted."""

    text: str


@dataclass
class ToolCallDelta:
    """
    An incremental fragment of a streaming tool call.

    *index* is the call's position in the provider stream.  *id* and *name*
    normally arrive once, on the first delta for an index; *args_fragment*
    is appended to the call's argument buffer.
    """

    index: int
    id: str | None = None
    name: str | None = None
    args_fragment: str = ""


@dataclass
class TurnFinished:
    reason: FinishReason
    detail: str | None = None


StreamEvent = Union[TextDelta, ThinkingDelta, ToolCallDelta, TurnFinished]


# ---------------------------------------------------------------------------
# Accumulator output
# ---------------------------------------------------------------------------


@dataclass
class ResolvedToolCall:
    """A tool call whose identity and arguments are complete and parsed."""

    index: int
    id: str
    name: str
    arguments: Any


@dataclass
class AccumulationError:
    """
    A tool-call slot that could not be resolved.

    The slot is still answered with a failed result, so it keeps an id
    (``call_<index>`` when the provider never sent one).
    """

    index: int
    id: str
    name: str | None
    raw_buffer: str
    parse_error: str

    def describe(self) -> str:
        return (
            f"Could not parse arguments for tool call {self.name or '<unnamed>'} "
            f"(index {self.index}): {self.parse_error}. Raw arguments: "
            f"{self.raw_buffer[:500]!r}"
        )


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@dataclass
class ToolSpec:
    """A catalog entry describing a tool to the remote model."""

    name: str
    description: str
    parameters: dict = field(default_factory=lambda: {"type": "object", "properties": {}})


@dataclass
class TurnOptions:
    model: str
    max_tokens: int = 4096
    temperature: float | None = None
    system_prompt: str | None = None
    tools_enabled: bool = True
    thinking_budget: int | None = None
