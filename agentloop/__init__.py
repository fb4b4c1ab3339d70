"""agentloop -- a streaming, multi-turn tool-use orchestration loop."""

__version__ = "0.1.0"
