from dataclasses import dataclass, field
from pathlib import Path


@dataclass
class ToolResult:
    content: str
    is_error: bool = False
    error_code: str | None = None
    data: dict | list | None = None
    metadata: dict = field(default_factory=dict)


@dataclass
class ExecutionContext:
    session_id: str = ""
    turn: int = 0
    workspace: Path | None = None
    metadata: dict = field(default_factory=dict)


class ErrorCode:
    VALIDATION_ERROR = "validation_error"
    TIMEOUT = "timeout"
    TOOL_EXCEPTION = "tool_exception"
    UNKNOWN_TOOL = "unknown_tool"
    CANCELLED = "cancelled"
    ARGUMENT_PARSE_ERROR = "argument_parse_error"


class AgentLoopError(Exception):
    """Base class for errors raised by agentloop."""


class TransportError(AgentLoopError):
    """The remote service could not be reached or the stream broke off."""


class ProtocolError(AgentLoopError):
    """A transcript violates the request/result pairing rules."""
