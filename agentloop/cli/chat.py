"""Interactive chat session handler."""

from __future__ import annotations

import asyncio
import contextlib
import signal

from rich.console import Console
from rich.markup import escape

from agentloop.cli.output import OutputFormatter
from agentloop.llm.router import LLMRouter
from agentloop.orchestrator.core import Orchestrator, RunResult
from agentloop.session.events import EVENT_FATAL_ERROR, QueueEventSink
from agentloop.tools.registry import ToolRegistry


class ChatHandler:
    """
    Manages the interactive chat loop.

    Each user message starts an orchestrator run as a task.  Progress events
    are drained from a ``QueueEventSink`` while the run is in flight, so text
    appears as it streams.  Ctrl-C during a run cancels it; the conversation
    stays usable afterwards.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        registry: ToolRegistry,
        router: LLMRouter | None = None,
        console: Console | None = None,
    ) -> None:
        self.orchestrator = orchestrator
        self.registry = registry
        self.router = router
        self.console = console or Console()
        self.formatter = OutputFormatter(self.console)
        self._running = True

    async def handle_command(self, command: str) -> bool:
        """
        Handle inline commands. Returns True if the command was handled.
        """
        parts = command.strip().split(None, 1)
        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "/quit":
            self._running = False
            self.console.print("[dim]Goodbye.[/dim]")
            return True

        if cmd == "/tools":
            self.formatter.format_tool_list(self.registry.list())
            return True

        if cmd == "/history":
            session = self.orchestrator.session
            for msg in session.messages:
                summary = msg.text or ", ".join(
                    r.name for r in msg.tool_requests
                ) or "(tool result)"
                self.console.print(f"  [dim]{msg.role:>9s}[/dim]  {escape(summary[:100])}")
            self.console.print(f"  [dim]{len(session.messages)} message(s), "
                               f"{session.turn_count} turn(s)[/dim]")
            return True

        if cmd == "/model":
            config = self.orchestrator.session.config
            if not arg:
                self.console.print(f"  Model: [bold]{config.model}[/bold]")
                if self.router is not None:
                    self.console.print(
                        f"  Providers: {', '.join(self.router.provider_names)}"
                    )
            else:
                config.model = arg
                if self.router is not None:
                    self.orchestrator.provider = self.router.provider_for(arg)
                self.console.print(f"  Switched to model: [bold]{arg}[/bold]")
            return True

        if cmd == "/help":
            self.console.print(
                "  [bold]Commands:[/bold]\n"
                "  /quit           - Exit the chat\n"
                "  /history        - Show the conversation so far\n"
                "  /tools          - List available tools\n"
                "  /model [NAME]   - Show or switch the model\n"
                "  /help           - Show this help\n"
            )
            return True

        return False

    async def handle_input(self, user_input: str) -> RunResult | None:
        """Run the orchestrator on *user_input* and render its events live."""
        if self.orchestrator.running:
            self.formatter.format_error("A run is already in progress")
            return None

        sink = QueueEventSink()
        self.orchestrator.sink = sink
        run_task = asyncio.create_task(self.orchestrator.run(user_input))
        render_task = asyncio.create_task(self._render(sink))

        try:
            with _interrupt_cancels(run_task):
                await asyncio.wait({run_task})
        finally:
            if not run_task.done():
                run_task.cancel()
                await asyncio.wait({run_task})
            sink.close()
            reported = await render_task

        if run_task.cancelled():
            self.console.print("\n[dim]Cancelled.[/dim]")
            return None
        exc = run_task.exception()
        if exc is not None:
            if not reported:
                self.formatter.format_error(str(exc) or type(exc).__name__)
            return None

        result = run_task.result()
        self.formatter.format_run_summary(result)
        return result

    async def _render(self, sink: QueueEventSink) -> bool:
        """Render events until the run ends.  Returns True if a fatal error was shown."""
        reported = False
        async for event in sink.events():
            self.formatter.format_event(event)
            reported = reported or event.event_type == EVENT_FATAL_ERROR
        return reported

    async def run_loop(self) -> None:
        """Main interactive loop."""
        self.console.print(
            "[bold]agentloop[/bold] - tool-using chat\n"
            "[dim]Type /help for commands, /quit to exit.[/dim]\n"
        )

        loop = asyncio.get_running_loop()
        while self._running:
            try:
                user_input = await loop.run_in_executor(
                    None, lambda: input("you> ").strip()
                )
            except (EOFError, KeyboardInterrupt):
                self.console.print("\n[dim]Goodbye.[/dim]")
                break

            if not user_input:
                continue

            if user_input.startswith("/"):
                handled = await self.handle_command(user_input)
                if handled:
                    continue

            self.console.print("[dim]assistant>[/dim] ", end="")
            await self.handle_input(user_input)


@contextlib.contextmanager
def _interrupt_cancels(task: asyncio.Task):
    """
    Route SIGINT to ``task.cancel`` while the block runs.

    Without this, Ctrl-C goes to ``asyncio.run``, which cancels the main task
    and treats a second interrupt as fatal.
    """
    loop = asyncio.get_running_loop()
    previous = signal.getsignal(signal.SIGINT)
    try:
        loop.add_signal_handler(signal.SIGINT, task.cancel)
    except (NotImplementedError, RuntimeError):
        # No loop signal handlers on Windows or outside the main thread.
        yield
        return
    try:
        yield
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        if previous is not None:
            signal.signal(signal.SIGINT, previous)
