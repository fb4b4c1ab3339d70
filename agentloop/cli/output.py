"""Output formatting utilities for the CLI."""

from __future__ import annotations

import json
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from agentloop.orchestrator.core import RunResult
from agentloop.session.events import SessionEvent
from agentloop.tools.base import Tool

MAX_PREVIEW_CHARS = 200


def _preview(text: str, limit: int = MAX_PREVIEW_CHARS) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


class OutputFormatter:
    """Rich-based output formatting for the agentloop CLI."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def format_tool_list(self, tools: list[Tool]) -> None:
        if not tools:
            self.console.print("[dim]No tools registered.[/dim]")
            return

        table = Table(title="Registered Tools", show_lines=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Parameters", no_wrap=True)
        table.add_column("Description")

        for t in tools:
            params = ", ".join(t.parameters.get("properties", {})) or "-"
            table.add_row(t.name, params, t.description)

        self.console.print(table)

    def format_tool_info(self, tool: Tool) -> None:
        self.console.print(Panel(
            f"[bold]{tool.name}[/bold]\n\n{tool.description}",
            title=f"Tool: {tool.name}",
        ))
        schema_json = json.dumps(tool.parameters, indent=2)
        self.console.print(Syntax(schema_json, "json", theme="monokai"))

    # ------------------------------------------------------------------
    # Live events
    # ------------------------------------------------------------------

    def format_event(self, event: SessionEvent) -> None:
        """Render one sink event.  Text deltas are printed without a newline."""
        payload: dict[str, Any] = event.payload
        etype = event.event_type

        if etype == "text_delta":
            self.console.print(payload.get("text", ""), end="", markup=False)
        elif etype == "thinking_delta":
            self.console.print(Text(payload.get("text", ""), style="dim italic"), end="")
        elif etype == "tool_started":
            args = json.dumps(payload.get("arguments", {}), default=str)
            name = escape(payload.get("name", "?"))
            self.console.print(
                f"\n  [yellow]>[/yellow] [bold]{name}[/bold]"
                f"[dim]({escape(_preview(args, 80))})[/dim]",
                highlight=False,
            )
        elif etype == "tool_finished":
            if payload.get("is_error"):
                status = "[red]ERROR[/red]"
            else:
                status = "[green]OK[/green]"
            label = f"[{payload.get('name', '?')}]"
            self.console.print(
                f"  {escape(label)} {status}: ",
                end="",
                highlight=False,
            )
            self.console.print(_preview(payload.get("content", "")), markup=False)
        elif etype == "turn_complete":
            self.console.print()
        elif etype == "fatal_error":
            self.format_error(payload.get("message", "unknown error"))

    def format_error(self, message: str) -> None:
        self.console.print(f"\n[red]Error:[/red] {escape(message)}", highlight=False)

    def format_run_summary(self, result: RunResult) -> None:
        errors = sum(1 for ex in result.tool_executions if ex.is_error)
        parts = [f"{result.turns} turn(s)", f"{len(result.tool_executions)} tool call(s)"]
        if errors:
            parts.append(f"{errors} failed")
        if result.stop_reason != "completed":
            parts.append(f"stopped: {result.stop_reason}")
        self.console.print(f"[dim]({', '.join(parts)})[/dim]")

    def format_config(self, config: dict) -> None:
        json_str = json.dumps(config, indent=2, default=str)
        self.console.print(Syntax(json_str, "json", theme="monokai"))
