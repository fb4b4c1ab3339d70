"""System prompt builder."""

from __future__ import annotations

from agentloop.llm.types import ToolSpec


def build_system_prompt(
    tools: list[ToolSpec] | None = None,
    base_prompt: str | None = None,
    extra_sections: list[str] | None = None,
) -> str:
    """
    Build the system prompt for the orchestrator.

    *base_prompt* replaces the default opening paragraph; the tool
    discipline section and the tool list are always appended.
    """
    sections: list[str] = []

    sections.append(
        base_prompt
        or (
            "You are a helpful assistant with access to tools. "
            "When a request needs information you can get with a tool, call the tool "
            "instead of guessing. When you have enough information, answer directly."
        )
    )

    sections.append(TOOL_DISCIPLINE_SECTION)

    if tools:
        tool_lines = [f"- **{t.name}**: {t.description}" for t in tools]
        sections.append("## Available Tools\n\n" + "\n".join(tool_lines))

    if extra_sections:
        sections.extend(extra_sections)

    return "\n\n".join(sections)


TOOL_DISCIPLINE_SECTION = """## Tool Discipline

- Only pass arguments that match the tool's parameter schema.
- Tool results arrive in the next message. Read them before deciding what to do next.
- If a tool returns an error, do not repeat the identical call. Fix the arguments or try another approach.
- Tool calls in one response run one at a time, in the order you list them."""
