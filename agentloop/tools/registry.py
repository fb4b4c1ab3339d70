from __future__ import annotations

from agentloop.llm.types import ToolSpec
from agentloop.tools.base import Tool


class ToolRegistry:
    def __init__(self, disabled: set[str] | None = None):
        self._tools: dict[str, Tool] = {}
        self._disabled = set(disabled or ())

    def register(self, tool: Tool, *, overwrite: bool = False) -> None:
        if tool.name in self._tools and not overwrite:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        if name in self._disabled:
            return None
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        t = self.get(name)
        if not t:
            raise KeyError(name)
        return t

    def list(self) -> list[Tool]:
        tools = [t for t in self._tools.values() if t.name not in self._disabled]
        return sorted(tools, key=lambda t: t.name)

    def catalog(self) -> list[ToolSpec]:
        return [t.spec for t in self.list()]
