"""
Orchestrator core -- the state machine that drives a tool-using conversation.

The orchestrator:
1. Builds a request from the session history and opens a streaming turn
2. Forwards text to the event sink while accumulating tool-call deltas
3. Appends the assistant message with one request block per tool call
4. Executes the calls one at a time, in request order, appending each result
5. Loops until a turn ends with no tool calls, or the turn ceiling is hit

Only transport failures (and cancellation) abort a run.  Everything that
goes wrong with an individual tool call becomes an error result the model
sees on the next turn.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from agentloop.llm.providers.base import Provider
from agentloop.llm.tool_call_assembler import ToolCallAccumulator
from agentloop.llm.types import (
    AccumulationError,
    FinishReason,
    Message,
    ResolvedToolCall,
    TextDelta,
    ThinkingDelta,
    ToolCallDelta,
    ToolInvocationRequest,
    TurnFinished,
)
from agentloop.session.events import (
    EventSink,
    NullEventSink,
    SessionEvent,
    fatal_error_event,
    text_delta_event,
    thinking_delta_event,
    tool_finished_event,
    tool_started_event,
    turn_complete_event,
)
from agentloop.session.session import ConversationSession
from agentloop.tools.executor import ToolExecutor
from agentloop.types import ErrorCode, ExecutionContext, ToolResult, TransportError

logger = logging.getLogger(__name__)

STOP_COMPLETED = "completed"
STOP_MAX_TURNS = "max_turns"

CANCELLED_RESULT = "Tool call cancelled before it completed."


class LoopState(str, Enum):
    AWAITING_TURN = "awaiting_turn"
    STREAMING = "streaming"
    ACCUMULATING = "accumulating"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"
    TERMINATED = "terminated"


@dataclass
class ToolExecution:
    """One tool call as it was executed (or failed) during a run."""

    id: str
    name: str
    arguments: Any
    content: str
    is_error: bool
    error_code: str | None = None
    duration_ms: int = 0


@dataclass
class RunResult:
    content: str
    full_text: str
    thinking: str = ""
    tool_executions: list[ToolExecution] = field(default_factory=list)
    turns: int = 0
    stop_reason: str = STOP_COMPLETED


@dataclass
class _TurnOutput:
    text: str
    reason: FinishReason
    calls: list[ResolvedToolCall | AccumulationError]
    thinking: str = ""


class Orchestrator:
    """
    Main orchestrator loop.

    Parameters
    ----------
    session : ConversationSession
        Conversation state.  The orchestrator is the only writer of
        ``session.messages`` while ``run`` is active.
    provider : Provider
        Translator + transport for the remote model.
    executor : ToolExecutor
        Gateway that performs tool side effects.
    sink : EventSink
        Receives live progress events.  Purely observational.
    context : ExecutionContext
        Template for the context handed to every tool call; ``session_id``
        and ``turn`` are filled in per call.
    """

    def __init__(
        self,
        session: ConversationSession,
        provider: Provider,
        executor: ToolExecutor,
        sink: EventSink | None = None,
        context: ExecutionContext | None = None,
    ) -> None:
        self.session = session
        self.provider = provider
        self.executor = executor
        self.sink = sink or NullEventSink()
        self.context = context or ExecutionContext()
        self.state = LoopState.AWAITING_TURN
        self.tool_executions: list[ToolExecution] = []
        self._turn = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run(self, user_input: str | None = None) -> RunResult:
        """
        Drive the conversation until the model produces a final answer.

        If *user_input* is given it is appended as a user message first.

        Raises ``TransportError`` when the remote service fails, and
        re-raises ``asyncio.CancelledError`` after leaving the history in a
        consistent state.
        """
        if self._running:
            raise RuntimeError("Orchestrator is already running for this session")

        self._running = True
        self.tool_executions = []
        self._turn = 0
        try:
            if user_input is not None:
                self.session.add_user_message(user_input)
            return await self._loop()
        except asyncio.CancelledError:
            self.state = LoopState.TERMINATED
            logger.info("Run cancelled during turn %d", self._turn)
            self._emit(fatal_error_event(self._turn, "Run cancelled"))
            raise
        except Exception as exc:
            self.state = LoopState.TERMINATED
            logger.error("Run aborted during turn %d: %s", self._turn, exc)
            self._emit(fatal_error_event(self._turn, str(exc)))
            raise
        finally:
            self._running = False

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    async def _loop(self) -> RunResult:
        max_turns = self.session.config.max_turns
        full_text: list[str] = []
        thinking: list[str] = []

        while True:
            self.state = LoopState.AWAITING_TURN
            output = await self._stream_turn()
            full_text.append(output.text)
            thinking.append(output.thinking)
            self.session.turn_count += 1

            self.state = LoopState.ACCUMULATING
            if not output.calls:
                if output.reason == FinishReason.TOOL_CALLS:
                    logger.warning("Turn %d finished for tool calls but none arrived", self._turn)
                self.session.append(Message.assistant(output.text))
                return self._finish(output.text, full_text, thinking, STOP_COMPLETED)

            if output.reason != FinishReason.TOOL_CALLS:
                logger.warning(
                    "Turn %d finished with %r but has %d pending tool call(s); executing them",
                    self._turn,
                    output.reason.value,
                    len(output.calls),
                )

            self.session.append(
                Message.assistant(output.text, [_to_request(c) for c in output.calls])
            )

            self.state = LoopState.EXECUTING_TOOLS
            await self._execute_tools(output.calls)

            self._turn += 1
            if self._turn >= max_turns:
                notice = (
                    f"Stopped after reaching the limit of {max_turns} tool-use turns. "
                    "Send another message to continue."
                )
                logger.warning("Turn ceiling of %d reached", max_turns)
                self.session.append(Message.assistant(notice))
                return self._finish(notice, full_text, thinking, STOP_MAX_TURNS)

    async def _stream_turn(self) -> _TurnOutput:
        """Run one streaming turn.  Nothing is written to the session here."""
        accumulator = ToolCallAccumulator()
        text_parts: list[str] = []
        thinking_parts: list[str] = []
        finished: TurnFinished | None = None

        self.state = LoopState.STREAMING
        async for event in self.provider.stream_turn(
            list(self.session.messages),
            self.session.tools,
            self.session.turn_options(),
        ):
            if isinstance(event, TextDelta):
                text_parts.append(event.text)
                self._emit(text_delta_event(self._turn, event.text))
            elif isinstance(event, ThinkingDelta):
                thinking_parts.append(event.text)
                self._emit(thinking_delta_event(self._turn, event.text))
            elif isinstance(event, ToolCallDelta):
                accumulator.accept(event)
            elif isinstance(event, TurnFinished):
                finished = event

        if finished is None:
            raise TransportError("stream ended without a finish event")
        if finished.reason == FinishReason.ERROR:
            raise TransportError(finished.detail or "remote service reported an error")

        return _TurnOutput(
            text="".join(text_parts),
            reason=finished.reason,
            calls=accumulator.finalize(),
            thinking="".join(thinking_parts),
        )

    async def _execute_tools(
        self, calls: list[ResolvedToolCall | AccumulationError]
    ) -> None:
        """Execute *calls* sequentially and append one result message per call."""
        for pos, call in enumerate(calls):
            try:
                execution = await self._execute_one(call)
            except asyncio.CancelledError:
                # The in-flight call already announced itself; the rest never started.
                cancelled = ToolResult(
                    content=CANCELLED_RESULT, is_error=True, error_code=ErrorCode.CANCELLED
                )
                for offset, skipped in enumerate(calls[pos:]):
                    self.tool_executions.append(
                        self._record(skipped, cancelled, duration_ms=0, notify=offset == 0)
                    )
                raise
            self.tool_executions.append(execution)

    async def _execute_one(
        self, call: ResolvedToolCall | AccumulationError
    ) -> ToolExecution:
        self._emit(
            tool_started_event(self._turn, call.id, _call_name(call), _call_arguments(call))
        )

        start = time.monotonic()
        if isinstance(call, AccumulationError):
            result = ToolResult(
                content=call.describe(),
                is_error=True,
                error_code=ErrorCode.ARGUMENT_PARSE_ERROR,
            )
        else:
            context = dataclasses.replace(
                self.context, session_id=self.session.session_id, turn=self._turn
            )
            try:
                result = await self.executor.execute(call.name, call.arguments, context)
            except Exception as e:
                logger.warning("Tool %s (%s) raised: %s", call.name, call.id, e)
                result = ToolResult(
                    content=str(e) or type(e).__name__,
                    is_error=True,
                    error_code=ErrorCode.TOOL_EXCEPTION,
                )
        duration_ms = int((time.monotonic() - start) * 1000)

        return self._record(call, result, duration_ms)

    def _record(
        self,
        call: ResolvedToolCall | AccumulationError,
        result: ToolResult,
        duration_ms: int,
        notify: bool = True,
    ) -> ToolExecution:
        """Append the result message for *call* and notify the sink."""
        self.session.append(Message.tool_result(call.id, result.content, result.is_error))
        if notify:
            self._emit(
                tool_finished_event(
                    self._turn, call.id, _call_name(call), result.content, result.is_error
                )
            )
        return ToolExecution(
            id=call.id,
            name=_call_name(call),
            arguments=_call_arguments(call),
            content=result.content,
            is_error=result.is_error,
            error_code=result.error_code,
            duration_ms=duration_ms,
        )

    def _finish(
        self, content: str, full_text: list[str], thinking: list[str], stop_reason: str
    ) -> RunResult:
        self.state = LoopState.DONE
        self._emit(turn_complete_event(self._turn, content))
        return RunResult(
            content=content,
            full_text="".join(full_text),
            thinking="".join(thinking),
            tool_executions=list(self.tool_executions),
            turns=len(full_text),
            stop_reason=stop_reason,
        )

    # ------------------------------------------------------------------
    # Event sink
    # ------------------------------------------------------------------

    def _emit(self, event: SessionEvent) -> None:
        try:
            self.sink.emit(event)
        except Exception:
            logger.exception("Event sink failed on %s", event.event_type)


def _call_name(call: ResolvedToolCall | AccumulationError) -> str:
    return call.name or "unknown_tool"


def _call_arguments(call: ResolvedToolCall | AccumulationError) -> Any:
    # Unparseable arguments are replaced by an empty object in the transcript.
    return call.arguments if isinstance(call, ResolvedToolCall) else {}


def _to_request(call: ResolvedToolCall | AccumulationError) -> ToolInvocationRequest:
    return ToolInvocationRequest(
        id=call.id, name=_call_name(call), arguments=_call_arguments(call)
    )
