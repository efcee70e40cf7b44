from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import Field

from ..errors import ErrorKind
from .base import BaseSchema, FrozenSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class ContextRole(str, Enum):
    user = "user"
    assistant = "assistant"
    system = "system"


class StepState(str, Enum):
    pending = "pending"
    running = "running"
    success = "success"
    failed = "failed"
    retrying = "retrying"
    failed_final = "failed_final"


class PlanStep(BaseSchema):
    """One tool invocation inside a plan.

    ``is_critical`` and ``depends_on`` are advisory unless the engine is
    configured with ``stop_on_critical_failure``.
    """

    description: str = ""
    tool: str
    params: Dict[str, Any] = Field(default_factory=dict)
    is_critical: bool = Field(default=True, alias="isCritical")
    depends_on: List[str] = Field(default_factory=list, alias="dependsOn")


class Plan(BaseSchema):
    steps: List[PlanStep] = Field(min_length=1)
    reasoning: Optional[str] = None
    is_fallback: bool = False
    fallback_reason: Optional[str] = None


class StepResult(BaseSchema):
    success: bool
    result: Any = None
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    step: PlanStep
    step_index: int
    was_retry: bool = False
    state: StepState = StepState.pending


class ContextEntry(FrozenSchema):
    """A single history entry. ``content`` holds text, ``payload`` structured data."""

    role: ContextRole
    content: Optional[str] = None
    payload: Any = None
    tool: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utc_now)


class ContextSnapshot(BaseSchema):
    history: List[ContextEntry] = Field(default_factory=list)
    current_context: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utc_now)


class ToolParameter(BaseSchema):
    type: str = "string"
    description: str = ""
    required: bool = False
    default: Any = None


class ToolInfo(BaseSchema):
    name: str
    description: str
    parameters: Dict[str, ToolParameter] = Field(default_factory=dict)


class Reflection(BaseSchema):
    success: bool
    success_rate: float
    message: str
    suggestions: List[str] = Field(default_factory=list)
    successful_steps: int = 0
    failed_steps: int = 0
    stopped_at_step: Optional[int] = None
    stop_reason: Optional[str] = None


class InteractionResult(BaseSchema):
    """Aggregate outcome of one ``handle_request`` call."""

    success: bool
    results: List[StepResult] = Field(default_factory=list)
    reflection: Optional[Reflection] = None
    plan: Optional[Plan] = None
    stopped_at_step: Optional[int] = None
    stop_reason: Optional[str] = None
    error: Optional[str] = None


class EventRecord(FrozenSchema):
    id: str = Field(default_factory=lambda: str(uuid4()))
    type: str = "interaction"
    input: str
    plan: Dict[str, Any] = Field(default_factory=dict)
    results: List[Dict[str, Any]] = Field(default_factory=list)
    reflection: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=_utc_now)
    success: bool


class EventFilter(BaseSchema):
    type: Optional[str] = None
    success: Optional[bool] = None
    from_: Optional[datetime] = Field(default=None, alias="from")
    to: Optional[datetime] = None
