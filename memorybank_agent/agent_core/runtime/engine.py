from __future__ import annotations

"""LangGraph execution engine.

``ExecutionEngine`` executes a ``Plan`` produced by the planner.

Execution model
---------------

- The engine runs a LangGraph state machine over a mutable ``_GraphState``.
- Steps run strictly in plan order, one dispatch at a time.
- Per step: PENDING -> RUNNING -> SUCCESS | FAILED, where FAILED may move
  once to RETRYING and then ends in SUCCESS | FAILED_FINAL.

Dispatch
--------

1. Resolve ``$PREVIOUS_STEP`` / ``$STEP[n]`` references in the params.
2. Select the tool. An unknown tool fails the step ("Tool not found") and
   execution continues with the next step.
3. Await ``tool.run(params)``. Success is appended to the context store.
4. A failure is appended to the context store as feedback and classified.
   Transient failures are retried exactly once with a modified step; every
   other failure is final.

The run succeeds only when every step succeeds. The engine never aborts
early unless ``EngineDeps.stop_on_critical_failure`` is set, in which case
a critical step that fails terminally halts the run.
"""

import logging
from typing import Any, Optional

from langgraph.graph import END, StateGraph

from ..errors import ErrorKind
from ..schemas.domain import Plan, PlanStep, StepResult, StepState
from .models import EngineDeps, ExecutionOutcome, _GraphState
from .retry import error_kind_of, modify_step_after_failure, should_retry
from .variables import resolve_variables

logger = logging.getLogger(__name__)

# dispatch, retry, dispatch, advance per step in the worst case
_SUPERSTEPS_PER_STEP = 4


class ExecutionEngine:
    """Execute a plan against the tool registry, recording into the context store."""

    def __init__(self, *, deps: EngineDeps) -> None:
        """
        Initialize the ExecutionEngine.

        Args:
            deps: The registry, context store and execution flags.
        """
        self._deps = deps
        self._graph = self._build_graph()

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("start", self._node_start)
        g.add_node("dispatch", self._node_dispatch)
        g.add_node("retry", self._node_retry)
        g.add_node("advance", self._node_advance)
        g.add_node("finish", self._node_finish)

        g.set_entry_point("start")
        g.add_conditional_edges("start", self._route_next_step, {"dispatch": "dispatch", "finish": "finish"})
        g.add_conditional_edges(
            "dispatch",
            self._route_after_dispatch,
            {
                "retry": "retry",
                "advance": "advance",
                "finish": "finish",
            },
        )
        g.add_edge("retry", "dispatch")
        g.add_conditional_edges("advance", self._route_next_step, {"dispatch": "dispatch", "finish": "finish"})
        g.add_edge("finish", END)
        return g.compile()

    async def run(self, plan: Plan) -> ExecutionOutcome:
        """Execute every step of ``plan`` and return the collected results."""
        state: _GraphState = {
            "plan": plan,
            "idx": 0,
            "results": [],
            "success": True,
        }
        limit = _SUPERSTEPS_PER_STEP * len(plan.steps) + 10
        final = await self._graph.ainvoke(state, config={"recursion_limit": limit})
        return ExecutionOutcome(
            success=bool(final.get("success")),
            results=list(final.get("results") or []),
            stopped_at_step=final.get("stopped_at_step"),
            stop_reason=final.get("stop_reason"),
        )

    async def _node_start(self, state: _GraphState) -> _GraphState:
        """Graph entry node."""
        logger.info(f"Executing plan with {len(state['plan'].steps)} steps")
        state["step"] = None
        state["attempt"] = 0
        return state

    async def _node_dispatch(self, state: _GraphState) -> _GraphState:
        """Dispatch the current step (first attempt or retry) and record the outcome."""
        idx = state["idx"]
        attempt = int(state.get("attempt") or 0)
        step = state.get("step")
        if step is None:
            planned = state["plan"].steps[idx]
            step = planned.model_copy(update={"params": resolve_variables(planned.params, state["results"])})
            state["step"] = step

        self._transition(idx, StepState.retrying if attempt else StepState.running, step)
        tool = self._deps.registry.select(step.tool)
        if tool is None:
            return self._fail_final(state, step, f"Tool not found: {step.tool}", None)

        try:
            output = await tool.run(step.params)
        except Exception as exc:
            error = str(exc) or type(exc).__name__
            kind = error_kind_of(exc)
            self._deps.context.add_feedback(step, error)
            self._transition(idx, StepState.failed, step, error)
            if attempt == 0 and should_retry(error, kind):
                state["last_error"] = error
                state["last_kind"] = kind
                state["_outcome"] = "retry"
                return state
            return self._fail_final(state, step, error, kind)

        self._deps.context.add_step_result(step, output)
        self._transition(idx, StepState.success, step)
        state["results"].append(
            StepResult(
                success=True,
                result=output,
                step=step,
                step_index=idx,
                was_retry=attempt > 0,
                state=StepState.success,
            )
        )
        state["_outcome"] = "advance"
        return state

    def _fail_final(
        self, state: _GraphState, step: PlanStep, error: str, kind: Optional[ErrorKind]
    ) -> _GraphState:
        idx = state["idx"]
        attempt = int(state.get("attempt") or 0)
        self._transition(idx, StepState.failed_final, step, error)
        state["results"].append(
            StepResult(
                success=False,
                error=error,
                error_kind=kind,
                step=step,
                step_index=idx,
                was_retry=attempt > 0,
                state=StepState.failed_final,
            )
        )
        state["success"] = False
        state["_outcome"] = "advance"

        if self._deps.stop_on_critical_failure and state["plan"].steps[idx].is_critical:
            state["stopped_at_step"] = idx
            state["stop_reason"] = f"Critical step failed: {error}"
            state["_outcome"] = "finish"
            logger.warning(f"Stopping execution at critical step {idx}: {error}")
        return state

    async def _node_retry(self, state: _GraphState) -> _GraphState:
        """Replace the current step with its modified retry variant."""
        step = state.get("step")
        error = str(state.get("last_error") or "")
        if step is None:
            raise ValueError("retry requested without a dispatched step")
        state["step"] = modify_step_after_failure(step, error)
        state["attempt"] = 1
        logger.info(f"Retrying step {state['idx']} ({step.tool}) after transient error: {error}")
        return state

    async def _node_advance(self, state: _GraphState) -> _GraphState:
        state["idx"] = state["idx"] + 1
        state["step"] = None
        state["attempt"] = 0
        state["last_error"] = None
        state["last_kind"] = None
        return state

    async def _node_finish(self, state: _GraphState) -> _GraphState:
        """Finish node. Logs the run summary."""
        done = sum(1 for r in state["results"] if r.success)
        logger.info(f"Plan finished: {done}/{len(state['plan'].steps)} steps succeeded")
        return state

    def _route_next_step(self, state: _GraphState) -> str:
        return "dispatch" if state["idx"] < len(state["plan"].steps) else "finish"

    def _route_after_dispatch(self, state: _GraphState) -> str:
        return str(state.get("_outcome") or "advance")

    @staticmethod
    def _transition(idx: int, new_state: StepState, step: PlanStep, detail: Any = None) -> None:
        suffix = f": {detail}" if detail is not None else ""
        logger.debug(f"Step {idx} [{step.tool}] -> {new_state.value}{suffix}")
