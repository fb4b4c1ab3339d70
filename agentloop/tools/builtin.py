"""Built-in read-only tools, confined to the execution context's workspace."""

from __future__ import annotations

from pathlib import Path

from agentloop.tools.base import Tool
from agentloop.types import ExecutionContext, ToolResult

MAX_READ_BYTES = 100_000


def _resolve_in_workspace(context: ExecutionContext, raw_path: str) -> Path:
    root = (context.workspace or Path.cwd()).resolve()
    target = (root / raw_path).resolve()
    if target != root and root not in target.parents:
        raise PermissionError(f"{raw_path} is outside the workspace")
    return target


class ReadFileTool(Tool):
    @property
    def name(self) -> str:
        return "read_file"

    @property
    def description(self) -> str:
        return "Read a UTF-8 text file from the workspace."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {"type": "string", "description": "Path relative to the workspace"},
            },
            "required": ["path"],
        }

    async def execute(self, arguments: dict, context: ExecutionContext) -> ToolResult:
        try:
            path = _resolve_in_workspace(context, arguments["path"])
        except PermissionError as e:
            return ToolResult(content=str(e), is_error=True)

        if not path.is_file():
            return ToolResult(content=f"File not found: {arguments['path']}", is_error=True)

        data = path.read_bytes()
        text = data[:MAX_READ_BYTES].decode("utf-8", errors="replace")
        if len(data) > MAX_READ_BYTES:
            text += f"\n[truncated, {len(data)} bytes total]"
        return ToolResult(content=text, metadata={"size_bytes": len(data)})


class ListDirectoryTool(Tool):
    @property
    def name(self) -> str:
        return "list_directory"

    @property
    def description(self) -> str:
        return "List the entries of a directory in the workspace."

    @property
    def parameters(self) -> dict:
        return {
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Directory relative to the workspace (default: workspace root)",
                },
            },
        }

    async def execute(self, arguments: dict, context: ExecutionContext) -> ToolResult:
        try:
            path = _resolve_in_workspace(context, arguments.get("path", "."))
        except PermissionError as e:
            return ToolResult(content=str(e), is_error=True)

        if not path.is_dir():
            return ToolResult(content=f"Not a directory: {arguments.get('path', '.')}", is_error=True)

        entries = sorted(path.iterdir(), key=lambda p: (not p.is_dir(), p.name))
        lines = [f"{p.name}/" if p.is_dir() else p.name for p in entries]
        return ToolResult(content="\n".join(lines) or "(empty)", data=lines)


BUILTIN_TOOLS: list[type[Tool]] = [ReadFileTool, ListDirectoryTool]
