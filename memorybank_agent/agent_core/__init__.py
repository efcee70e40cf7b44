"""Planning, execution and context core of the Memory Bank agent.

Design overview
---------------

- ``planning.Planner`` turns a request plus situational context into a
  ``Plan`` with one structured model call, falling back to a single-step
  plan when the model fails.
- ``runtime.ExecutionEngine`` runs the plan through a LangGraph state
  machine, one step at a time, retrying transient tool failures once.
- ``context.ContextStore`` keeps the token-budgeted interaction history and
  snapshots it before it overflows.
- ``reflection.ReflectionEngine`` summarizes each run.
- ``repos`` persists one ``EventRecord`` per interaction.

Typical usage
-------------

Most applications should use ``factory.build_orchestrator`` and call
``AgentOrchestrator.handle_request``.
"""

from .errors import (
    AgentCoreError,
    ContextLoadError,
    ErrorKind,
    PersistenceError,
    PlanningError,
    ToolError,
    ToolExecutionError,
    ToolNotFoundError,
)
from .schemas.domain import (
    ContextEntry,
    EventRecord,
    InteractionResult,
    Plan,
    PlanStep,
    Reflection,
    StepResult,
    StepState,
)
from .service import AgentOrchestrator, OrchestratorDeps

__all__ = [
    "AgentCoreError",
    "ContextLoadError",
    "ErrorKind",
    "PersistenceError",
    "PlanningError",
    "ToolError",
    "ToolExecutionError",
    "ToolNotFoundError",
    "ContextEntry",
    "EventRecord",
    "InteractionResult",
    "Plan",
    "PlanStep",
    "Reflection",
    "StepResult",
    "StepState",
    "AgentOrchestrator",
    "OrchestratorDeps",
]
