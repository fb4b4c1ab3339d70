from agentloop.orchestrator.core import (
    LoopState,
    Orchestrator,
    RunResult,
    ToolExecution,
)

__all__ = ["LoopState", "Orchestrator", "RunResult", "ToolExecution"]
