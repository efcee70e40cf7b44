"""Schemas and DTOs for the agent core."""

from .domain import (
    ContextEntry,
    ContextRole,
    ContextSnapshot,
    EventFilter,
    EventRecord,
    InteractionResult,
    Plan,
    PlanStep,
    Reflection,
    StepResult,
    StepState,
    ToolInfo,
    ToolParameter,
)

__all__ = [
    "ContextEntry",
    "ContextRole",
    "ContextSnapshot",
    "EventFilter",
    "EventRecord",
    "InteractionResult",
    "Plan",
    "PlanStep",
    "Reflection",
    "StepResult",
    "StepState",
    "ToolInfo",
    "ToolParameter",
]
