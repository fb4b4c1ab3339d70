"""
Conversation session.

Owns the ordered message list, the tool catalog and the policy limits for
one conversation.  While a run is in progress only the orchestrator appends
to ``messages``.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from typing import Any

from agentloop.llm.types import Message, ToolSpec, TurnOptions, validate_transcript

DEFAULT_MAX_TURNS = 25


@dataclass
class SessionConfig:
    system_prompt: str | None = None
    max_turns: int = DEFAULT_MAX_TURNS
    tools_enabled: bool = True
    max_tokens: int = 4096
    model: str = "gpt-4o"
    temperature: float | None = None
    thinking_budget: int | None = None

    def __post_init__(self) -> None:
        if self.max_turns < 1:
            raise ValueError(f"max_turns must be at least 1, got {self.max_turns}")


class ConversationSession:
    """
    A single conversation.

    Parameters
    ----------
    config:
        Limits and request options.
    tools:
        The tool catalog offered to the model.
    messages:
        Existing history to resume from.  Must satisfy the request/result
        pairing rules.
    session_id:
        Identifier passed to tools through the execution context.
    """

    def __init__(
        self,
        config: SessionConfig | None = None,
        tools: list[ToolSpec] | None = None,
        messages: list[Message] | None = None,
        session_id: str | None = None,
    ) -> None:
        self.config = config or SessionConfig()
        self.tools: list[ToolSpec] = list(tools or [])
        self.messages: list[Message] = list(messages or [])
        self.session_id = session_id or str(uuid.uuid4())
        self.turn_count = 0
        if self.messages:
            validate_transcript(self.messages)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def add_user_message(self, text: str) -> Message:
        msg = Message.user(text)
        self.append(msg)
        return msg

    def append(self, message: Message) -> None:
        self.messages.append(message)

    @property
    def last_assistant_text(self) -> str:
        for msg in reversed(self.messages):
            if msg.role == "assistant":
                return msg.text
        return ""

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def turn_options(self) -> TurnOptions:
        cfg = self.config
        return TurnOptions(
            model=cfg.model,
            max_tokens=cfg.max_tokens,
            temperature=cfg.temperature,
            system_prompt=cfg.system_prompt,
            tools_enabled=cfg.tools_enabled,
            thinking_budget=cfg.thinking_budget,
        )

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "config": asdict(self.config),
            "tools": [asdict(t) for t in self.tools],
            "messages": [m.to_dict() for m in self.messages],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationSession:
        return cls(
            config=SessionConfig(**data.get("config", {})),
            tools=[ToolSpec(**t) for t in data.get("tools", [])],
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
            session_id=data.get("session_id"),
        )
