"""Server-Sent Events framing."""

from __future__ import annotations

from typing import AsyncIterator

DONE_SENTINEL = "[DONE]"


async def iter_sse_data(chunks: AsyncIterator[bytes | str]) -> AsyncIterator[str]:
    """
    Yield the ``data`` payload of each Server-Sent Event in a byte stream.

    Each SSE event has the form::

        event: name\\n
        data: {json}\\n\\n

    Multiple ``data:`` lines in one event are joined with newlines.  Comment
    lines and other fields are ignored.  The OpenAI sentinel
    ``data: [DONE]`` ends iteration.
    """
    buffer = ""
    data_lines: list[str] = []

    async for raw in chunks:
        buffer += raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw

        while "\n" in buffer:
            line, buffer = buffer.split("\n", 1)
            line = line.rstrip("\r")

            if not line:
                # Empty line -- SSE event boundary.
                if data_lines:
                    payload = "\n".join(data_lines)
                    data_lines = []
                    if payload.strip() == DONE_SENTINEL:
                        return
                    yield payload
                continue

            if line.startswith(":"):
                continue

            if line.startswith("data:"):
                data_lines.append(line[len("data:"):].lstrip(" "))

    # Flush an event that was not terminated by a blank line.
    if buffer.strip().startswith("data:"):
        data_lines.append(buffer.strip()[len("data:"):].lstrip(" "))
    if data_lines:
        payload = "\n".join(data_lines)
        if payload.strip() != DONE_SENTINEL:
            yield payload
