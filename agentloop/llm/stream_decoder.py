"""
Stream decoder -- raw payloads of one turn in, typed stream events out.

Guarantees:
  - Exactly one ``TurnFinished`` is yielded, and it is always the last event.
  - A payload that is not valid JSON, or that the translator cannot make
    sense of, is logged and skipped.  The stream keeps going.
  - A stream that ends before any finish reason arrived raises
    ``TransportError``.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator

from agentloop.llm.translators.base import WireTranslator
from agentloop.llm.types import StreamEvent, TurnFinished
from agentloop.types import TransportError

logger = logging.getLogger(__name__)


async def decode_stream(
    payloads: AsyncIterator[str],
    translator: WireTranslator,
) -> AsyncIterator[StreamEvent]:
    """Lazily map raw stream payloads to ``StreamEvent`` objects."""
    skipped = 0
    try:
        async for payload in payloads:
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                skipped += 1
                logger.warning("Failed to parse stream payload: %s", payload[:200])
                continue

            if not isinstance(data, dict):
                skipped += 1
                logger.warning("Ignoring non-object stream payload: %s", payload[:200])
                continue

            try:
                events = translator.from_wire_chunk(data)
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                skipped += 1
                logger.warning(
                    "%s: dropping malformed chunk (%s): %s",
                    translator.name,
                    exc,
                    payload[:200],
                )
                continue

            for event in events:
                yield event
                if isinstance(event, TurnFinished):
                    if skipped:
                        logger.info("Turn finished with %d skipped chunk(s)", skipped)
                    return
    finally:
        aclose = getattr(payloads, "aclose", None)
        if aclose is not None:
            await aclose()

    raise TransportError("stream closed before the turn finished")
