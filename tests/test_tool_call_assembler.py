"""Tests for agentloop.llm.tool_call_assembler.ToolCallAccumulator."""

from __future__ import annotations

import logging

from agentloop.llm.tool_call_assembler import ToolCallAccumulator
from agentloop.llm.types import AccumulationError, ResolvedToolCall, ToolCallDelta


class TestSingleToolCall:
    """Assemble a single tool call from incremental deltas."""

    def test_basic_assembly(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="call_1", name="read_file"))
        acc.accept(ToolCallDelta(index=0, args_fragment='{"path": '))
        acc.accept(ToolCallDelta(index=0, args_fragment='"/etc/hosts"}'))

        result = acc.finalize()
        assert len(result) == 1
        tc = result[0]
        assert isinstance(tc, ResolvedToolCall)
        assert tc.id == "call_1"
        assert tc.name == "read_file"
        assert tc.arguments == {"path": "/etc/hosts"}

    def test_single_delta_with_everything(self):
        acc = ToolCallAccumulator()
        acc.accept(
            ToolCallDelta(index=0, id="call_x", name="ping", args_fragment='{"host": "localhost"}')
        )
        [tc] = acc.finalize()
        assert tc.arguments == {"host": "localhost"}

    def test_empty_arguments_resolve_to_empty_object(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="call_1", name="list_things"))
        [tc] = acc.finalize()
        assert isinstance(tc, ResolvedToolCall)
        assert tc.arguments == {}

    def test_whitespace_arguments_resolve_to_empty_object(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="call_1", name="list_things", args_fragment="  \n"))
        [tc] = acc.finalize()
        assert tc.arguments == {}


class TestInterleavedCalls:
    def test_two_calls_interleaved(self):
        """Fragments for two indices arrive interleaved."""
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="A", name="f", args_fragment='{"x":'))
        acc.accept(ToolCallDelta(index=1, id="B", name="g", args_fragment='{"y":'))
        acc.accept(ToolCallDelta(index=0, args_fragment="1}"))
        acc.accept(ToolCallDelta(index=1, args_fragment="2}"))

        result = acc.finalize()
        assert [(c.id, c.name, c.arguments) for c in result] == [
            ("A", "f", {"x": 1}),
            ("B", "g", {"y": 2}),
        ]

    def test_results_sorted_by_index(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=2, id="C", name="h"))
        acc.accept(ToolCallDelta(index=0, id="A", name="f"))
        acc.accept(ToolCallDelta(index=1, id="B", name="g"))
        assert [c.id for c in acc.finalize()] == ["A", "B", "C"]

    def test_fragments_concatenated_in_arrival_order(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="A", name="f"))
        for frag in ['{"t', 'ext"', ': "ab', 'c"}']:
            acc.accept(ToolCallDelta(index=0, args_fragment=frag))
        [tc] = acc.finalize()
        assert tc.arguments == {"text": "abc"}


class TestIdentity:
    def test_first_writer_wins_for_id(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="first", name="f"))
        acc.accept(ToolCallDelta(index=0, id="second"))
        [tc] = acc.finalize()
        assert tc.id == "first"

    def test_first_writer_wins_for_name(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="A", name="original"))
        acc.accept(ToolCallDelta(index=0, name="replacement"))
        [tc] = acc.finalize()
        assert tc.name == "original"

    def test_id_arriving_late_is_kept(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, name="f", args_fragment="{}"))
        acc.accept(ToolCallDelta(index=0, id="late"))
        [tc] = acc.finalize()
        assert isinstance(tc, ResolvedToolCall)
        assert tc.id == "late"

    def test_missing_id_is_an_error_with_synthesized_id(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=3, name="f", args_fragment="{}"))
        [err] = acc.finalize()
        assert isinstance(err, AccumulationError)
        assert err.id == "call_3"
        assert err.name == "f"
        assert "id" in err.parse_error

    def test_missing_name_is_an_error(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="A", args_fragment="{}"))
        [err] = acc.finalize()
        assert isinstance(err, AccumulationError)
        assert err.id == "A"
        assert err.name is None
        assert "name" in err.parse_error


class TestParseFailures:
    def test_invalid_json_becomes_error(self, caplog):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="bad", name="f", args_fragment='{"key": INVALID'))
        with caplog.at_level(logging.WARNING):
            [err] = acc.finalize()

        assert isinstance(err, AccumulationError)
        assert err.id == "bad"
        assert err.raw_buffer == '{"key": INVALID'
        assert err.parse_error
        assert "tool_call_json_parse_failed" in caplog.text

    def test_failure_is_isolated_to_its_slot(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="A", name="f", args_fragment='{"x": 1}'))
        acc.accept(ToolCallDelta(index=1, id="B", name="g", args_fragment="{not json"))
        acc.accept(ToolCallDelta(index=2, id="C", name="h", args_fragment='{"z": 3}'))

        a, b, c = acc.finalize()
        assert isinstance(a, ResolvedToolCall) and a.arguments == {"x": 1}
        assert isinstance(b, AccumulationError) and b.id == "B"
        assert isinstance(c, ResolvedToolCall) and c.arguments == {"z": 3}

    def test_describe_mentions_tool_and_raw_arguments(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="bad", name="search", args_fragment="{oops"))
        [err] = acc.finalize()
        text = err.describe()
        assert "search" in text
        assert "{oops" in text

    def test_non_object_json_is_still_resolved(self):
        """Argument shape is the executor's concern, not the accumulator's."""
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="A", name="f", args_fragment="[1, 2]"))
        [tc] = acc.finalize()
        assert isinstance(tc, ResolvedToolCall)
        assert tc.arguments == [1, 2]


class TestLifecycle:
    def test_finalize_clears_arena(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="A", name="f"))
        assert acc.has_pending
        acc.finalize()
        assert not acc.has_pending
        assert acc.finalize() == []

    def test_reset(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="A", name="f"))
        acc.reset()
        assert not acc.has_pending

    def test_no_deltas_yields_nothing(self):
        assert ToolCallAccumulator().finalize() == []


class TestPerIndexIsolation:
    def test_second_call_with_empty_object(self):
        acc = ToolCallAccumulator()
        acc.accept(ToolCallDelta(index=0, id="a", name="f", args_fragment='{"x":'))
        acc.accept(ToolCallDelta(index=0, args_fragment="1}"))
        acc.accept(ToolCallDelta(index=1, id="b", name="g", args_fragment="{}"))

        assert acc.finalize() == [
            ResolvedToolCall(index=0, id="a", name="f", arguments={"x": 1}),
            ResolvedToolCall(index=1, id="b", name="g", arguments={}),
        ]
