"""
LLM Router -- manages multiple providers and picks one per model.

Providers are registered under a name.  ``provider_for(model)`` resolves a
model identifier to a provider by prefix (``claude-`` goes to the provider
registered as ``"anthropic"``, ``gpt-``/``o1``/``o3`` to ``"openai"``, and so
on), falling back to the active provider.
"""

from __future__ import annotations

import logging

from agentloop.llm.providers.base import Provider

logger = logging.getLogger(__name__)

DEFAULT_PREFIXES: dict[str, str] = {
    "claude-": "anthropic",
    "gpt-": "openai",
    "o1": "openai",
    "o3": "openai",
    "o4": "openai",
    "openrouter/": "openrouter",
    "llama-": "groq",
    "mixtral-": "groq",
}


class LLMRouter:
    """
    Routes chat requests to a named provider.
    """

    def __init__(self, prefixes: dict[str, str] | None = None) -> None:
        self._providers: dict[str, Provider] = {}
        self._active: str | None = None
        self._prefixes = dict(DEFAULT_PREFIXES if prefixes is None else prefixes)

    # ------------------------------------------------------------------
    # Provider management
    # ------------------------------------------------------------------

    def register_provider(self, name: str, provider: Provider) -> None:
        """Register a provider under *name*.  Overwrites any existing entry."""
        self._providers[name] = provider
        if self._active is None:
            self._active = name

    def set_active(self, name: str) -> None:
        """
        Switch the active provider.

        Raises ``KeyError`` if *name* has not been registered.
        """
        if name not in self._providers:
            raise KeyError(
                f"Unknown provider {name!r}. "
                f"Registered: {list(self._providers)}"
            )
        self._active = name

    @property
    def active_name(self) -> str | None:
        """Return the name of the currently active provider (or ``None``)."""
        return self._active

    @property
    def active_provider(self) -> Provider:
        """
        Return the active ``Provider`` instance.

        Raises ``RuntimeError`` if no provider is active.
        """
        if self._active is None or self._active not in self._providers:
            raise RuntimeError("No active LLM provider")
        return self._providers[self._active]

    @property
    def provider_names(self) -> list[str]:
        """Return the list of registered provider names."""
        return list(self._providers)

    # ------------------------------------------------------------------
    # Model routing
    # ------------------------------------------------------------------

    def provider_for(self, model: str | None) -> Provider:
        """
        Return the provider that serves *model*.

        The longest matching prefix wins.  Models with no matching prefix, or
        whose provider is not registered, go to the active provider.
        """
        if model:
            matches = [p for p in self._prefixes if model.startswith(p)]
            for prefix in sorted(matches, key=len, reverse=True):
                name = self._prefixes[prefix]
                if name in self._providers:
                    logger.debug("Routing model %s to provider %s", model, name)
                    return self._providers[name]
        return self.active_provider
