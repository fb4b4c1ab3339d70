"""Tests for the OpenAI and Anthropic wire translators."""

from __future__ import annotations

import json
import logging

import pytest

from agentloop.llm.translators import (
    AnthropicMessagesTranslator,
    OpenAIChatTranslator,
    map_finish_reason,
)
from agentloop.llm.types import (
    FinishReason,
    Message,
    TextBlock,
    TextDelta,
    ThinkingDelta,
    ToolCallDelta,
    ToolInvocationRequest,
    ToolSpec,
    TurnFinished,
    TurnOptions,
)
from agentloop.types import ProtocolError
from tests.mock_providers import openai_finish, openai_text, openai_tool_delta

SEARCH = ToolSpec(
    name="search",
    description="Search the web",
    parameters={"type": "object", "properties": {"q": {"type": "string"}}},
)


def _tool_transcript() -> list[Message]:
    """User question, assistant text + two requests, two results."""
    return [
        Message.user("compare a and b"),
        Message.assistant(
            "Looking both up.",
            [
                ToolInvocationRequest("call_a", "search", {"q": "a"}),
                ToolInvocationRequest("call_b", "search", {"q": "b", "limit": 3}),
            ],
        ),
        Message.tool_result("call_a", "result a"),
        Message.tool_result("call_b", "result b"),
    ]


# ---------------------------------------------------------------------------
# Finish reasons
# ---------------------------------------------------------------------------


class TestFinishReason:
    @pytest.mark.parametrize("raw", ["tool_calls", "tool_use", "function_call"])
    def test_tool_reasons(self, raw):
        assert map_finish_reason(raw) == FinishReason.TOOL_CALLS

    @pytest.mark.parametrize("raw", ["stop", "end_turn", "length", "max_tokens"])
    def test_stop_reasons(self, raw):
        assert map_finish_reason(raw) == FinishReason.STOP

    def test_unknown_reason_is_stop_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert map_finish_reason("mystery") == FinishReason.STOP
        assert "mystery" in caplog.text


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------


class TestOpenAIRequest:
    def setup_method(self):
        self.t = OpenAIChatTranslator()

    def test_basic_request(self):
        body = self.t.to_wire_request(
            [Message.user("hi")],
            [SEARCH],
            TurnOptions(model="gpt-4o", system_prompt="be brief", temperature=0.2),
        )
        assert body["model"] == "gpt-4o"
        assert body["stream"] is True
        assert body["temperature"] == 0.2
        assert body["messages"] == [
            {"role": "system", "content": "be brief"},
            {"role": "user", "content": "hi"},
        ]
        assert body["tools"] == [
            {
                "type": "function",
                "function": {
                    "name": "search",
                    "description": "Search the web",
                    "parameters": SEARCH.parameters,
                },
            }
        ]
        assert body["tool_choice"] == "auto"

    def test_tools_disabled(self):
        body = self.t.to_wire_request(
            [Message.user("hi")], [SEARCH], TurnOptions(model="m", tools_enabled=False)
        )
        assert "tools" not in body
        assert "tool_choice" not in body

    def test_no_temperature_by_default(self):
        body = self.t.to_wire_request([Message.user("hi")], None, TurnOptions(model="m"))
        assert "temperature" not in body

    def test_tool_history_mapping(self):
        body = self.t.to_wire_request(_tool_transcript(), None, TurnOptions(model="m"))
        assistant = body["messages"][1]
        assert assistant["role"] == "assistant"
        assert assistant["content"] == "Looking both up."
        assert [tc["id"] for tc in assistant["tool_calls"]] == ["call_a", "call_b"]
        assert json.loads(assistant["tool_calls"][1]["function"]["arguments"]) == {
            "q": "b",
            "limit": 3,
        }
        assert body["messages"][2] == {
            "role": "tool",
            "tool_call_id": "call_a",
            "content": "result a",
        }

    def test_assistant_without_text_sends_null_content(self):
        messages = [
            Message.user("go"),
            Message.assistant("", [ToolInvocationRequest("c1", "search", {})]),
            Message.tool_result("c1", "ok"),
        ]
        body = self.t.to_wire_request(messages, None, TurnOptions(model="m"))
        assert body["messages"][1]["content"] is None

    def test_unpaired_history_is_rejected(self):
        messages = [
            Message.user("go"),
            Message.assistant("", [ToolInvocationRequest("c1", "search", {})]),
            Message.user("and?"),
        ]
        with pytest.raises(ProtocolError):
            self.t.to_wire_request(messages, None, TurnOptions(model="m"))


class TestOpenAIChunks:
    def setup_method(self):
        self.t = OpenAIChatTranslator()

    def test_text_chunk(self):
        assert self.t.from_wire_chunk(openai_text("Hel")) == [TextDelta("Hel")]

    def test_tool_start_without_arguments(self):
        events = self.t.from_wire_chunk(openai_tool_delta(0, id="c1", name="search"))
        assert events == [ToolCallDelta(index=0, id="c1", name="search", args_fragment="")]

    def test_tool_continuation_without_identity(self):
        events = self.t.from_wire_chunk(openai_tool_delta(1, args='{"q"'))
        assert events == [ToolCallDelta(index=1, id=None, name=None, args_fragment='{"q"')]

    def test_finish(self):
        assert self.t.from_wire_chunk(openai_finish("tool_calls")) == [
            TurnFinished(FinishReason.TOOL_CALLS)
        ]

    def test_empty_choices(self):
        assert self.t.from_wire_chunk({"choices": []}) == []
        assert self.t.from_wire_chunk({"usage": {"total_tokens": 5}}) == []

    def test_in_band_error(self):
        [event] = self.t.from_wire_chunk({"error": {"message": "overloaded"}})
        assert event == TurnFinished(FinishReason.ERROR, detail="overloaded")


class TestOpenAIRoundTrip:
    def test_text_and_two_requests(self):
        t = OpenAIChatTranslator()
        original = _tool_transcript()
        body = t.to_wire_request(original, None, TurnOptions(model="m"))
        assert t.from_wire_messages(body["messages"]) == original

    def test_system_prompt_comes_back_as_system_message(self):
        t = OpenAIChatTranslator()
        body = t.to_wire_request(
            [Message.user("hi")], None, TurnOptions(model="m", system_prompt="sys")
        )
        assert t.from_wire_messages(body["messages"]) == [
            Message.system("sys"),
            Message.user("hi"),
        ]


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------


class TestAnthropicRequest:
    def setup_method(self):
        self.t = AnthropicMessagesTranslator()

    def test_system_goes_to_top_level(self):
        body = self.t.to_wire_request(
            [Message.user("hi")], None, TurnOptions(model="claude-x", system_prompt="sys")
        )
        assert body["system"] == "sys"
        assert body["messages"] == [{"role": "user", "content": [{"type": "text", "text": "hi"}]}]

    def test_tool_schema_uses_input_schema(self):
        body = self.t.to_wire_request([Message.user("hi")], [SEARCH], TurnOptions(model="m"))
        assert body["tools"] == [
            {"name": "search", "description": "Search the web", "input_schema": SEARCH.parameters}
        ]

    def test_results_merge_into_one_user_message(self):
        body = self.t.to_wire_request(_tool_transcript(), None, TurnOptions(model="m"))
        assert len(body["messages"]) == 3
        merged = body["messages"][2]
        assert merged["role"] == "user"
        assert [b["tool_use_id"] for b in merged["content"]] == ["call_a", "call_b"]

    def test_error_flag_is_kept(self):
        messages = [
            Message.user("go"),
            Message.assistant("", [ToolInvocationRequest("c1", "search", {})]),
            Message.tool_result("c1", "failed", is_error=True),
        ]
        body = self.t.to_wire_request(messages, None, TurnOptions(model="m"))
        assert body["messages"][2]["content"][0]["is_error"] is True

    def test_thinking_budget(self):
        body = self.t.to_wire_request(
            [Message.user("hi")],
            None,
            TurnOptions(model="m", max_tokens=1000, temperature=0.5, thinking_budget=2048),
        )
        assert body["thinking"] == {"type": "enabled", "budget_tokens": 2048}
        assert body["max_tokens"] == 2048 + 1024
        assert "temperature" not in body

    def test_thinking_omitted_while_answering_tool_use(self):
        options = TurnOptions(model="m", max_tokens=1000, temperature=0.5, thinking_budget=2048)
        body = self.t.to_wire_request(_tool_transcript(), None, options)

        assert "thinking" not in body
        assert body["max_tokens"] == 1000
        assert body["temperature"] == 0.5
        assert body["messages"][1]["content"][0] == {"type": "text", "text": "Looking both up."}

    def test_thinking_resumes_after_next_user_message(self):
        messages = _tool_transcript() + [
            Message.assistant("a is better."),
            Message.user("why?"),
        ]
        options = TurnOptions(model="m", max_tokens=1000, thinking_budget=2048)
        body = self.t.to_wire_request(messages, None, options)

        assert body["thinking"] == {"type": "enabled", "budget_tokens": 2048}


class TestAnthropicChunks:
    def setup_method(self):
        self.t = AnthropicMessagesTranslator()

    def test_tool_use_start(self):
        events = self.t.from_wire_chunk(
            {
                "type": "content_block_start",
                "index": 1,
                "content_block": {"type": "tool_use", "id": "toolu_1", "name": "search", "input": {}},
            }
        )
        assert events == [ToolCallDelta(index=1, id="toolu_1", name="search", args_fragment="")]

    def test_input_json_delta(self):
        events = self.t.from_wire_chunk(
            {
                "type": "content_block_delta",
                "index": 1,
                "delta": {"type": "input_json_delta", "partial_json": '{"q": '},
            }
        )
        assert events == [ToolCallDelta(index=1, args_fragment='{"q": ')]

    def test_text_and_thinking(self):
        assert self.t.from_wire_chunk(
            {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "hi"}}
        ) == [TextDelta("hi")]
        assert self.t.from_wire_chunk(
            {
                "type": "content_block_delta",
                "index": 0,
                "delta": {"type": "thinking_delta", "thinking": "hmm"},
            }
        ) == [ThinkingDelta("hmm")]

    def test_stop_reason(self):
        assert self.t.from_wire_chunk(
            {"type": "message_delta", "delta": {"stop_reason": "tool_use"}}
        ) == [TurnFinished(FinishReason.TOOL_CALLS)]

    def test_bookkeeping_events_are_ignored(self):
        for data in ({"type": "ping"}, {"type": "message_stop"}, {"type": "content_block_stop", "index": 0}):
            assert self.t.from_wire_chunk(data) == []

    def test_error_event(self):
        [event] = self.t.from_wire_chunk(
            {"type": "error", "error": {"type": "overloaded_error", "message": "Overloaded"}}
        )
        assert event.reason == FinishReason.ERROR
        assert event.detail == "Overloaded"


class TestAnthropicRoundTrip:
    def test_text_and_two_requests(self):
        t = AnthropicMessagesTranslator()
        original = _tool_transcript()
        body = t.to_wire_request(original, None, TurnOptions(model="m"))
        assert t.from_wire_messages(body["messages"]) == original

    def test_error_results_survive(self):
        t = AnthropicMessagesTranslator()
        original = [
            Message.user("go"),
            Message.assistant("", [ToolInvocationRequest("c1", "search", {"q": "x"})]),
            Message.tool_result("c1", "no such thing", is_error=True),
            Message.assistant("Sorry."),
        ]
        body = t.to_wire_request(original, None, TurnOptions(model="m"))
        rebuilt = t.from_wire_messages(body["messages"])
        assert rebuilt == original
        assert rebuilt[1].content == [ToolInvocationRequest("c1", "search", {"q": "x"})]
        assert rebuilt[3].content == [TextBlock("Sorry.")]
