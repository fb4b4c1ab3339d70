"""
Translator for the Anthropic Messages API (``/v1/messages``).

This protocol has no ``tool`` role: results travel as ``tool_result`` blocks
inside a ``user`` message.  Consecutive tool messages are therefore merged
into one user message on the way out and split back into one tool message
per block on the way in.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from agentloop.llm.translators.base import WireTranslator, map_finish_reason
from agentloop.llm.types import (
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    ROLE_TOOL,
    ROLE_USER,
    ContentBlock,
    FinishReason,
    Message,
    StreamEvent,
    TextBlock,
    TextDelta,
    ThinkingDelta,
    ToolCallDelta,
    ToolInvocationRequest,
    ToolSpec,
    TurnFinished,
    TurnOptions,
    validate_transcript,
)

logger = logging.getLogger(__name__)


class AnthropicMessagesTranslator(WireTranslator):
    """Messages API mapping, including ``tool_result`` merging."""

    @property
    def name(self) -> str:
        return "anthropic"

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def tool_schema(self, spec: ToolSpec) -> dict[str, Any]:
        return {
            "name": spec.name,
            "description": spec.description,
            "input_schema": spec.parameters,
        }

    def to_wire_request(
        self,
        messages: list[Message],
        tools: list[ToolSpec] | None,
        options: TurnOptions,
    ) -> dict[str, Any]:
        validate_transcript(messages)

        system_parts: list[str] = []
        if options.system_prompt:
            system_parts.append(options.system_prompt)

        wire_messages: list[dict[str, Any]] = []
        for msg in messages:
            if msg.role == ROLE_SYSTEM:
                system_parts.append(msg.text)
                continue

            if msg.role == ROLE_TOOL:
                result = msg.tool_results[0]
                block = {
                    "type": "tool_result",
                    "tool_use_id": result.invocation_id,
                    "content": result.content,
                }
                if result.is_error:
                    block["is_error"] = True
                prev = wire_messages[-1] if wire_messages else None
                if prev is not None and prev["role"] == "user" and _is_tool_result_message(prev):
                    prev["content"].append(block)
                else:
                    wire_messages.append({"role": "user", "content": [block]})
                continue

            blocks = self._blocks_to_wire(msg.content)
            if not blocks:
                # The API rejects empty content; an empty turn carries nothing anyway.
                continue
            wire_messages.append({"role": msg.role, "content": blocks})

        thinking = bool(options.thinking_budget)
        if thinking and _in_tool_loop(messages):
            # Thinking blocks are not kept in history, so the tool_use turn being
            # answered cannot lead with one; the API rejects that with thinking on.
            logger.debug("Omitting extended thinking while a tool loop is in progress")
            thinking = False
        body: dict[str, Any] = {
            "model": options.model,
            "messages": wire_messages,
            "max_tokens": options.max_tokens,
            "stream": True,
        }
        if system_parts:
            body["system"] = "\n\n".join(system_parts)
        if options.temperature is not None and not thinking:
            body["temperature"] = options.temperature
        if thinking:
            body["thinking"] = {"type": "enabled", "budget_tokens": options.thinking_budget}
            body["max_tokens"] = max(options.max_tokens, options.thinking_budget + 1024)
        if tools and options.tools_enabled:
            body["tools"] = [self.tool_schema(t) for t in tools]
        return body

    @staticmethod
    def _blocks_to_wire(content: list[ContentBlock]) -> list[dict[str, Any]]:
        blocks: list[dict[str, Any]] = []
        for b in content:
            if isinstance(b, TextBlock):
                if b.text:
                    blocks.append({"type": "text", "text": b.text})
            elif isinstance(b, ToolInvocationRequest):
                blocks.append(
                    {"type": "tool_use", "id": b.id, "name": b.name, "input": b.arguments}
                )
        return blocks

    def from_wire_messages(self, wire_messages: list[dict[str, Any]]) -> list[Message]:
        messages: list[Message] = []
        for m in wire_messages:
            role = m.get("role")
            content = m.get("content")
            if isinstance(content, str):
                messages.append(Message(role=role, content=[TextBlock(content)]))
                continue

            if role == ROLE_USER:
                texts: list[ContentBlock] = []
                for b in content:
                    if b.get("type") == "tool_result":
                        messages.append(
                            Message.tool_result(
                                b["tool_use_id"],
                                _result_text(b.get("content")),
                                bool(b.get("is_error", False)),
                            )
                        )
                    elif b.get("type") == "text":
                        texts.append(TextBlock(b.get("text", "")))
                if texts:
                    messages.append(Message(role=ROLE_USER, content=texts))
            elif role == ROLE_ASSISTANT:
                blocks: list[ContentBlock] = []
                for b in content:
                    if b.get("type") == "text":
                        blocks.append(TextBlock(b.get("text", "")))
                    elif b.get("type") == "tool_use":
                        blocks.append(
                            ToolInvocationRequest(b["id"], b["name"], b.get("input", {}))
                        )
                messages.append(Message(role=ROLE_ASSISTANT, content=blocks))
            else:
                raise ValueError(f"Unknown wire role: {role!r}")
        return messages

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def from_wire_chunk(self, data: dict[str, Any]) -> list[StreamEvent]:
        etype = data.get("type")

        if etype == "content_block_start":
            block = data.get("content_block") or {}
            if block.get("type") == "tool_use":
                initial = block.get("input")
                return [
                    ToolCallDelta(
                        index=data["index"],
                        id=block.get("id"),
                        name=block.get("name"),
                        args_fragment=json.dumps(initial) if initial else "",
                    )
                ]
            if block.get("type") == "text" and block.get("text"):
                return [TextDelta(block["text"])]
            return []

        if etype == "content_block_delta":
            delta = data.get("delta") or {}
            dtype = delta.get("type")
            if dtype == "text_delta" and delta.get("text"):
                return [TextDelta(delta["text"])]
            if dtype == "input_json_delta":
                return [
                    ToolCallDelta(index=data["index"], args_fragment=delta.get("partial_json", ""))
                ]
            if dtype == "thinking_delta" and delta.get("thinking"):
                return [ThinkingDelta(delta["thinking"])]
            return []

        if etype == "message_delta":
            stop_reason = (data.get("delta") or {}).get("stop_reason")
            if stop_reason:
                return [TurnFinished(map_finish_reason(stop_reason))]
            return []

        if etype == "error":
            err = data.get("error") or {}
            return [TurnFinished(FinishReason.ERROR, detail=err.get("message", str(err)))]

        # message_start, content_block_stop, message_stop, ping
        return []


def _in_tool_loop(messages: list[Message]) -> bool:
    """True when an assistant tool_use turn follows the latest user message."""
    for msg in reversed(messages):
        if msg.role == ROLE_USER:
            return False
        if msg.role == ROLE_ASSISTANT and msg.tool_requests:
            return True
    return False


def _is_tool_result_message(wire_message: dict[str, Any]) -> bool:
    content = wire_message.get("content")
    return isinstance(content, list) and all(
        b.get("type") == "tool_result" for b in content
    )


def _result_text(content: Any) -> str:
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    return "".join(b.get("text", "") for b in content if b.get("type") == "text")
