from __future__ import annotations

"""Runtime dependency bundle, run outcome and LangGraph state types.

- ``EngineDeps`` collects the registry and context store the engine needs.
- ``ExecutionOutcome`` is what ``ExecutionEngine.run`` returns.
- ``_GraphState`` is the mutable state passed between LangGraph nodes.
"""

from dataclasses import dataclass, field
from typing import List, NotRequired, Optional, Required, TypedDict

from ..context.store import ContextStore
from ..errors import ErrorKind
from ..schemas.domain import Plan, PlanStep, StepResult
from ..tools.registry import ToolRegistry


@dataclass(frozen=True)
class EngineDeps:
    """Dependency bundle for ``ExecutionEngine``.

    ``stop_on_critical_failure`` turns ``PlanStep.is_critical`` from advisory
    metadata into a stop condition.
    """

    registry: ToolRegistry
    context: ContextStore
    stop_on_critical_failure: bool = False


@dataclass(frozen=True)
class ExecutionOutcome:
    success: bool
    results: List[StepResult] = field(default_factory=list)
    stopped_at_step: Optional[int] = None
    stop_reason: Optional[str] = None


class _GraphState(TypedDict):
    """Mutable LangGraph state for a single plan execution.

    Required keys:

    - ``plan``: the plan being executed.
    - ``idx``: index of the current step.
    - ``results``: terminal results so far, one per finished step.
    - ``success``: false once any step has failed terminally.

    Optional keys:

    - ``step``: the step being dispatched (variables resolved; modified on retry).
    - ``attempt``: 0 for the first dispatch of a step, 1 for its retry.
    - ``last_error`` / ``last_kind``: failure of the previous dispatch.
    - ``stopped_at_step`` / ``stop_reason``: set when a critical step halts the run.
    - ``_outcome``: routing decision of the dispatch node.
    """

    plan: Required[Plan]
    idx: Required[int]
    results: Required[List[StepResult]]
    success: Required[bool]
    step: NotRequired[Optional[PlanStep]]
    attempt: NotRequired[int]
    last_error: NotRequired[Optional[str]]
    last_kind: NotRequired[Optional[ErrorKind]]
    stopped_at_step: NotRequired[Optional[int]]
    stop_reason: NotRequired[Optional[str]]
    _outcome: NotRequired[str]
