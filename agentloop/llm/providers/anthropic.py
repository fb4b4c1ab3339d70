"""Anthropic Messages API provider (``/v1/messages`` with ``stream: true``)."""

from __future__ import annotations

import httpx

from agentloop.llm.providers.http import HTTPSSEProvider
from agentloop.llm.translators.anthropic import AnthropicMessagesTranslator

ANTHROPIC_VERSION = "2023-06-01"


class AnthropicProvider(HTTPSSEProvider):
    """
    Stream-capable provider for the Anthropic Messages API.

    Parameters
    ----------
    url:
        Base URL of the API (``"https://api.anthropic.com/v1"``).
    api_key:
        Value of the ``x-api-key`` header.
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Number of automatic retries on transient HTTP errors (5xx, 429).
    """

    def __init__(
        self,
        url: str = "https://api.anthropic.com/v1",
        api_key: str = "",
        timeout: float = 120.0,
        max_retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            AnthropicMessagesTranslator(),
            url=url,
            path="/messages",
            timeout=timeout,
            max_retries=max_retries,
            transport=transport,
        )
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "anthropic"

    def _build_headers(self) -> dict[str, str]:
        headers = super()._build_headers()
        headers["anthropic-version"] = ANTHROPIC_VERSION
        if self._api_key:
            headers["x-api-key"] = self._api_key
        return headers
