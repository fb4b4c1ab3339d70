"""
Tool executor gateway.

The orchestrator only depends on the ``ToolExecutor`` protocol.
``RegistryExecutor`` is the stock implementation: lookup, argument
validation and an optional timeout around a registered ``Tool``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from agentloop.tools.registry import ToolRegistry
from agentloop.tools.validation import ToolValidator
from agentloop.types import ErrorCode, ExecutionContext, ToolResult

logger = logging.getLogger(__name__)


class ToolExecutor(Protocol):
    async def execute(
        self, name: str, arguments: Any, context: ExecutionContext
    ) -> ToolResult:
        """Perform the side effect for one tool call.  May raise."""
        ...


class RegistryExecutor:
    """
    Runs tools from a ``ToolRegistry``.

    Unknown tools, invalid arguments and timeouts come back as error
    results.  Exceptions raised by the tool itself propagate to the caller.

    Parameters
    ----------
    registry : ToolRegistry
        Registered tools.
    timeout : float | None
        Max seconds for a single tool execution (``None`` for no limit).
    """

    def __init__(self, registry: ToolRegistry, timeout: float | None = None) -> None:
        self.registry = registry
        self.timeout = timeout

    async def execute(
        self, name: str, arguments: Any, context: ExecutionContext
    ) -> ToolResult:
        tool = self.registry.get(name)
        if tool is None:
            return ToolResult(
                content=f"Unknown tool: {name}",
                is_error=True,
                error_code=ErrorCode.UNKNOWN_TOOL,
            )

        valid, error_msg = ToolValidator.validate(tool, arguments)
        if not valid:
            return ToolResult(
                content=f"Validation error: {error_msg}",
                is_error=True,
                error_code=ErrorCode.VALIDATION_ERROR,
            )

        try:
            return await asyncio.wait_for(
                tool.execute(arguments, context), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            logger.warning("Tool %s timed out after %ss", name, self.timeout)
            return ToolResult(
                content=f"Tool timed out after {self.timeout}s",
                is_error=True,
                error_code=ErrorCode.TIMEOUT,
            )
