"""
Accumulates streaming tool-call deltas into resolved tool calls.

Design goals:
  - Partial state is an arena keyed by the provider's stream ``index``; it is
    only promoted to an id-keyed ``ResolvedToolCall`` on ``finalize()``,
    because the id may not be known until a later delta.
  - Identity fields are first-writer-wins.  Argument fragments are appended
    in arrival order and never reordered or deduplicated.
  - A slot whose arguments do not parse (or which never received an id or a
    name) is returned as an ``AccumulationError`` instead of being dropped,
    so the caller can still answer it with a failed result.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from agentloop.llm.types import AccumulationError, ResolvedToolCall, ToolCallDelta

logger = logging.getLogger(__name__)


@dataclass
class PendingToolCall:
    id: str | None = None
    name: str | None = None
    arguments_buffer: str = ""


class ToolCallAccumulator:
    """Buffers tool-call deltas for a single turn."""

    def __init__(self) -> None:
        self._buf: dict[int, PendingToolCall] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def accept(self, delta: ToolCallDelta) -> None:
        """Merge one ``ToolCallDelta`` into the slot at ``delta.index``."""
        pending = self._buf.setdefault(delta.index, PendingToolCall())

        if delta.id and pending.id is None:
            pending.id = delta.id
        elif delta.id and delta.id != pending.id:
            logger.debug(
                "Ignoring second id %r for tool call index %d (kept %r)",
                delta.id,
                delta.index,
                pending.id,
            )

        if delta.name and pending.name is None:
            pending.name = delta.name

        if delta.args_fragment:
            pending.arguments_buffer += delta.args_fragment

    @property
    def has_pending(self) -> bool:
        return bool(self._buf)

    def finalize(self) -> list[ResolvedToolCall | AccumulationError]:
        """
        Resolve every slot, in index order, and clear the arena.

        An empty argument buffer resolves to ``{}``.
        """
        items: list[ResolvedToolCall | AccumulationError] = []
        for idx in sorted(self._buf):
            items.append(self._resolve(idx, self._buf[idx]))
        self._buf.clear()
        return items

    def reset(self) -> None:
        """Discard all accumulated state."""
        self._buf.clear()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(
        self, idx: int, pending: PendingToolCall
    ) -> ResolvedToolCall | AccumulationError:
        call_id = pending.id or f"call_{idx}"
        raw_args = pending.arguments_buffer

        if pending.id is None or not pending.name:
            missing = [f for f, v in (("id", pending.id), ("name", pending.name)) if not v]
            return AccumulationError(
                index=idx,
                id=call_id,
                name=pending.name,
                raw_buffer=raw_args,
                parse_error=f"tool call is missing {' and '.join(missing)}",
            )

        try:
            args = json.loads(raw_args) if raw_args.strip() else {}
        except (json.JSONDecodeError, ValueError) as exc:
            logger.warning("tool_call_json_parse_failed idx=%d err=%s", idx, exc)
            return AccumulationError(
                index=idx,
                id=call_id,
                name=pending.name,
                raw_buffer=raw_args,
                parse_error=str(exc),
            )

        return ResolvedToolCall(index=idx, id=call_id, name=pending.name, arguments=args)
