"""
OpenAI-compatible chat-completion provider.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions`` wire
protocol -- OpenAI itself, Azure OpenAI, vLLM, LM Studio, LocalAI, etc.
"""

from __future__ import annotations

import httpx

from agentloop.llm.providers.http import HTTPSSEProvider
from agentloop.llm.translators.openai import OpenAIChatTranslator


class OpenAICompatProvider(HTTPSSEProvider):
    """
    Stream-capable provider for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Base URL of the API, e.g. ``"https://api.openai.com/v1"`` or
        ``"http://localhost:8080/v1"``.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Number of automatic retries on transient HTTP errors (5xx, 429).
    """

    def __init__(
        self,
        url: str = "https://api.openai.com/v1",
        api_key: str = "",
        timeout: float = 120.0,
        max_retries: int = 2,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            OpenAIChatTranslator(),
            url=url,
            path="/chat/completions",
            timeout=timeout,
            max_retries=max_retries,
            transport=transport,
        )
        self._api_key = api_key

    @property
    def name(self) -> str:
        return "openai-compat"

    def _build_headers(self) -> dict[str, str]:
        headers = super()._build_headers()
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers
