"""
Shared HTTP transport for providers that stream Server-Sent Events.

Dependencies: ``httpx`` (async HTTP client).  No vendor SDK needed.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

import httpx

from agentloop.llm.providers.base import Provider
from agentloop.llm.sse import iter_sse_data
from agentloop.llm.translators.base import WireTranslator
from agentloop.types import TransportError

logger = logging.getLogger(__name__)


class HTTPSSEProvider(Provider):
    """
    POSTs a JSON body and streams the SSE response.

    Retries transient failures (HTTP 429/5xx and connection errors) up to
    *max_retries* times before any byte of the stream has been consumed.
    Everything else surfaces as ``TransportError``.

    Parameters
    ----------
    translator:
        Wire translator for the endpoint's schema.
    url:
        Base URL of the API.
    path:
        Endpoint path appended to *url*.
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Number of automatic retries on transient HTTP errors.
    transport:
        Optional ``httpx.AsyncBaseTransport`` (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        translator: WireTranslator,
        url: str,
        path: str,
        timeout: float = 120.0,
        max_retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(translator)
        self._url = url.rstrip("/")
        self._path = path
        self._timeout = timeout
        self._max_retries = max_retries
        self._transport = transport

    def _build_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

    async def open_stream(self, request: dict[str, Any]) -> AsyncIterator[str]:
        url = f"{self._url}{self._path}"
        headers = self._build_headers()
        logger.info(
            "REQUEST: provider=%s model=%s tools=%d messages=%d",
            self.name,
            request.get("model"),
            len(request.get("tools") or []),
            len(request.get("messages") or []),
        )

        last_error: Exception | None = None
        started = False
        for attempt in range(1 + self._max_retries):
            try:
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport
                ) as client:
                    async with client.stream(
                        "POST", url, json=request, headers=headers
                    ) as response:
                        if response.status_code == 429 or response.status_code >= 500:
                            # Retryable -- read body so the connection is released.
                            await response.aread()
                            last_error = TransportError(
                                f"HTTP {response.status_code} from {url}"
                            )
                            logger.warning(
                                "%s: HTTP %d (attempt %d/%d)",
                                self.name,
                                response.status_code,
                                attempt + 1,
                                1 + self._max_retries,
                            )
                            continue

                        if response.status_code >= 400:
                            body = (await response.aread()).decode("utf-8", errors="replace")
                            raise TransportError(
                                f"HTTP {response.status_code} from {url}: {body[:500]}"
                            )

                        async for payload in iter_sse_data(response.aiter_text()):
                            started = True
                            yield payload
                        return  # success
            except httpx.TransportError as exc:
                if started:
                    # Part of the turn was already delivered; a retry would replay it.
                    raise TransportError(f"stream interrupted: {exc}") from exc
                last_error = exc
                logger.warning(
                    "%s: transport error %s (attempt %d/%d)",
                    self.name,
                    exc,
                    attempt + 1,
                    1 + self._max_retries,
                )
                continue
            except httpx.HTTPError as exc:
                raise TransportError(str(exc)) from exc

        if isinstance(last_error, TransportError):
            raise last_error
        raise TransportError(str(last_error)) from last_error
