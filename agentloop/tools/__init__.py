"""Tool catalog, validation and the executor gateway."""

from agentloop.tools.base import Tool
from agentloop.tools.executor import RegistryExecutor, ToolExecutor
from agentloop.tools.registry import ToolRegistry

__all__ = ["RegistryExecutor", "Tool", "ToolExecutor", "ToolRegistry"]
