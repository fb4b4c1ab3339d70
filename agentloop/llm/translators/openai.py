"""
Translator for the OpenAI ``/v1/chat/completions`` wire protocol.

Works for any endpoint speaking that protocol -- OpenAI itself, Azure
OpenAI, vLLM, LM Studio, OpenRouter, Groq, etc.
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
    ToolCallDelta,
    ToolInvocationRequest,
    ToolSpec,
    TurnFinished,
    TurnOptions,
    validate_transcript,
)

logger = logging.getLogger(__name__)


class OpenAIChatTranslator(WireTranslator):
    """
    Chat-completions mapping.

    The tool-result ``is_error`` flag has no wire representation in this
    protocol and is dropped; the error text itself is carried in ``content``.
    """

    @property
    def name(self) -> str:
        return "openai"

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def tool_schema(self, spec: ToolSpec) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": spec.name,
                "description": spec.description,
                "parameters": spec.parameters,
            },
        }

    def to_wire_request(
        self,
        messages: list[Message],
        tools: list[ToolSpec] | None,
        options: TurnOptions,
    ) -> dict[str, Any]:
        validate_transcript(messages)

        wire_messages: list[dict[str, Any]] = []
        if options.system_prompt:
            wire_messages.append({"role": "system", "content": options.system_prompt})

        for msg in messages:
            wire_messages.append(self._message_to_wire(msg))

        body: dict[str, Any] = {
            "model": options.model,
            "messages": wire_messages,
            "max_tokens": options.max_tokens,
            "stream": True,
        }
        if options.temperature is not None:
            body["temperature"] = options.temperature
        if tools and options.tools_enabled:
            body["tools"] = [self.tool_schema(t) for t in tools]
            body["tool_choice"] = "auto"
        return body

    def _message_to_wire(self, msg: Message) -> dict[str, Any]:
        if msg.role == ROLE_TOOL:
            result = msg.tool_results[0]
            return {
                "role": "tool",
                "tool_call_id": result.invocation_id,
                "content": result.content,
            }

        requests = msg.tool_requests
        if msg.role == ROLE_ASSISTANT and requests:
            return {
                "role": "assistant",
                "content": msg.text or None,
                "tool_calls": [
                    {
                        "id": r.id,
                        "type": "function",
                        "function": {
                            "name": r.name,
                            "arguments": json.dumps(r.arguments),
                        },
                    }
                    for r in requests
                ],
            }

        return {"role": msg.role, "content": msg.text}

    def from_wire_messages(self, wire_messages: list[dict[str, Any]]) -> list[Message]:
        messages: list[Message] = []
        for m in wire_messages:
            role = m.get("role")
            content = m.get("content")
            if isinstance(content, list):
                # Content-part arrays: keep the text parts only.
                content = "".join(
                    p.get("text", "") for p in content if p.get("type") == "text"
                )

            if role == "tool":
                messages.append(Message.tool_result(m["tool_call_id"], content or ""))
            elif role == "assistant":
                blocks: list[ContentBlock] = []
                if content:
                    blocks.append(TextBlock(content))
                for tc in m.get("tool_calls") or []:
                    func = tc.get("function", {})
                    raw_args = func.get("arguments") or "{}"
                    blocks.append(
                        ToolInvocationRequest(
                            id=tc["id"], name=func.get("name", ""), arguments=json.loads(raw_args)
                        )
                    )
                if not blocks:
                    blocks.append(TextBlock(""))
                messages.append(Message(role=ROLE_ASSISTANT, content=blocks))
            elif role in (ROLE_USER, ROLE_SYSTEM):
                messages.append(Message(role=role, content=[TextBlock(content or "")]))
            else:
                raise ValueError(f"Unknown wire role: {role!r}")
        return messages

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def from_wire_chunk(self, data: dict[str, Any]) -> list[StreamEvent]:
        if "error" in data and data["error"]:
            err = data["error"]
            detail = err.get("message") if isinstance(err, dict) else str(err)
            return [TurnFinished(FinishReason.ERROR, detail=detail)]

        choices = data.get("choices")
        if not choices:
            return []

        choice = choices[0]
        delta = choice.get("delta") or {}
        events: list[StreamEvent] = []

        text = delta.get("content")
        if text:
            events.append(TextDelta(text))

        for raw_tc in delta.get("tool_calls") or []:
            func = raw_tc.get("function") or {}
            events.append(
                ToolCallDelta(
                    index=raw_tc.get("index", 0),
                    id=raw_tc.get("id") or None,
                    name=func.get("name") or None,
                    args_fragment=func.get("arguments") or "",
                )
            )

        finish_reason = choice.get("finish_reason")
        if finish_reason:
            events.append(TurnFinished(map_finish_reason(finish_reason)))
        return events
