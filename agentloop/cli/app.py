"""
Main CLI application for agentloop.

Usage:
    agentloop chat [--model NAME] [--profile NAME] [--max-turns N] [--no-tools]
    agentloop tools list|info
    agentloop config show|validate
    agentloop version
"""

from __future__ import annotations

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from agentloop import __version__
from agentloop.config import AgentLoopConfig, load_config

app = typer.Typer(name="agentloop", help="agentloop - streaming tool-use chat CLI")
tools_app = typer.Typer(help="Tool management")
config_app = typer.Typer(help="Configuration management")

app.add_typer(tools_app, name="tools")
app.add_typer(config_app, name="config")

console = Console()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _get_config_path() -> Path | None:
    """Find config file in standard locations."""
    candidates = [
        Path.cwd() / "agentloop.yaml",
        Path.cwd() / "agentloop.yml",
        Path.home() / ".config" / "agentloop" / "config.yaml",
        Path.home() / ".agentloop" / "config.yaml",
    ]
    for p in candidates:
        if p.is_file():
            return p
    return None


def _setup_logging(level: str, verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _build_registry(cfg: AgentLoopConfig):
    from agentloop.tools.builtin import BUILTIN_TOOLS
    from agentloop.tools.registry import ToolRegistry

    registry = ToolRegistry(disabled=set(cfg.tools.disabled))
    for tool_cls in BUILTIN_TOOLS:
        registry.register(tool_cls())
    return registry


def _build_router(cfg: AgentLoopConfig):
    """Register the configured provider with a router."""
    from agentloop.llm.providers.anthropic import AnthropicProvider
    from agentloop.llm.providers.openai_compat import OpenAICompatProvider
    from agentloop.llm.router import LLMRouter

    api_key = os.environ.get(cfg.llm.api_key_env, "")
    kwargs: dict[str, Any] = {
        "api_key": api_key,
        "timeout": float(cfg.llm.timeout_seconds),
        "max_retries": cfg.llm.max_retries,
    }
    if cfg.llm.api_base:
        kwargs["url"] = cfg.llm.api_base

    if cfg.llm.name == "anthropic":
        provider = AnthropicProvider(**kwargs)
    else:
        provider = OpenAICompatProvider(**kwargs)

    router = LLMRouter()
    router.register_provider(cfg.llm.name, provider)
    return router


def _setup_stack(cfg: AgentLoopConfig):
    """Wire up the full stack for chat."""
    from agentloop.cli.chat import ChatHandler
    from agentloop.orchestrator.core import Orchestrator
    from agentloop.prompts.system import build_system_prompt
    from agentloop.session.session import ConversationSession, SessionConfig
    from agentloop.tools.executor import RegistryExecutor
    from agentloop.types import ExecutionContext

    registry = _build_registry(cfg)
    catalog = registry.catalog() if cfg.session.tools_enabled else []

    session = ConversationSession(
        config=SessionConfig(
            system_prompt=build_system_prompt(
                tools=catalog, base_prompt=cfg.session.system_prompt or None
            ),
            max_turns=cfg.session.max_turns,
            tools_enabled=cfg.session.tools_enabled,
            max_tokens=cfg.llm.max_output_tokens,
            model=cfg.llm.model,
            temperature=cfg.llm.temperature,
            thinking_budget=cfg.llm.thinking_budget,
        ),
        tools=catalog,
    )

    router = _build_router(cfg)
    orchestrator = Orchestrator(
        session=session,
        provider=router.provider_for(cfg.llm.model),
        executor=RegistryExecutor(registry, timeout=cfg.tools.timeout_seconds),
        context=ExecutionContext(workspace=Path(cfg.tools.workspace).expanduser()),
    )

    return ChatHandler(orchestrator, registry, router=router, console=console)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

@app.command()
def chat(
    model: Optional[str] = typer.Option(None, help="Model identifier"),
    provider: Optional[str] = typer.Option(None, help="Provider name (openai or anthropic)"),
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
    max_turns: Optional[int] = typer.Option(None, "--max-turns", help="Tool-use turn ceiling"),
    no_tools: bool = typer.Option(False, "--no-tools", help="Do not offer tools to the model"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Start an interactive chat session."""
    overrides: dict[str, Any] = {}
    if model:
        overrides["llm.model"] = model
    if provider:
        overrides["llm.name"] = provider
    if max_turns is not None:
        overrides["session.max_turns"] = max_turns
    if no_tools:
        overrides["session.tools_enabled"] = False

    try:
        cfg = load_config(_get_config_path(), profile=profile, cli_overrides=overrides)
    except (KeyError, ValueError) as e:
        console.print(f"[red]Config error:[/red] {e}")
        raise typer.Exit(1)

    problems = cfg.validate()
    if problems:
        for problem in problems:
            console.print(f"[red]Config error:[/red] {problem}")
        raise typer.Exit(1)

    _setup_logging(cfg.logging.level, verbose)
    handler = _setup_stack(cfg)
    asyncio.run(handler.run_loop())


@tools_app.command("list")
def tools_list():
    """List registered tools."""
    from agentloop.cli.output import OutputFormatter

    registry = _build_registry(load_config(_get_config_path()))
    OutputFormatter(console).format_tool_list(registry.list())


@tools_app.command("info")
def tools_info(tool_name: str = typer.Argument(..., help="Tool name")):
    """Show tool details and schema."""
    from agentloop.cli.output import OutputFormatter

    registry = _build_registry(load_config(_get_config_path()))
    tool = registry.get(tool_name)
    if not tool:
        console.print(f"[red]Tool not found:[/red] {tool_name}")
        raise typer.Exit(1)

    OutputFormatter(console).format_tool_info(tool)


@config_app.command("show")
def config_show(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Show effective config."""
    from agentloop.cli.output import OutputFormatter

    cfg = load_config(_get_config_path(), profile=profile)
    OutputFormatter(console).format_config(cfg.to_dict())


@config_app.command("validate")
def config_validate(
    profile: Optional[str] = typer.Option(None, help="Config profile name"),
):
    """Validate config and show any issues."""
    config_path = _get_config_path()
    try:
        cfg = load_config(config_path, profile=profile)
    except Exception as e:
        console.print(f"[red]Config validation failed:[/red] {e}")
        raise typer.Exit(1)

    problems = cfg.validate()
    if problems:
        console.print("[red]Config validation failed:[/red]")
        for problem in problems:
            console.print(f"  - {problem}")
        raise typer.Exit(1)

    console.print("[green]Config is valid.[/green]")
    if config_path:
        console.print(f"  Loaded from: {config_path}")
    else:
        console.print("  [dim]No config file found, using defaults.[/dim]")
    console.print(f"  LLM provider: {cfg.llm.name} ({cfg.llm.model})")
    console.print(f"  Max turns: {cfg.session.max_turns}")
    console.print(f"  Tools enabled: {cfg.session.tools_enabled}")


@app.command()
def version():
    """Show version."""
    console.print(f"agentloop v{__version__}")


def main():
    app()


if __name__ == "__main__":
    main()
