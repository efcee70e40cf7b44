from __future__ import annotations

"""High-level orchestration of one user request.

``AgentOrchestrator`` wires the components for a single interaction:

1. ``ContextStore.update`` records the request and merges its context.
2. ``Planner.plan`` produces a ``Plan`` (or the fallback plan).
3. ``ExecutionEngine.run`` dispatches every step in order.
4. ``ReflectionEngine.reflect`` summarizes the run.
5. ``EventLog.save_event`` persists one ``EventRecord``.

The orchestrator owns its dependencies exclusively; nothing is looked up
from global state. Requests on one instance are serialized so the shared
context store has a single writer.

``handle_request`` always returns an ``InteractionResult``. An unexpected
failure is returned as ``success=False`` with ``error`` set.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel

from .context.store import ContextStore
from .context.tokens import to_jsonable
from .planning.planner import Planner
from .reflection.engine import ReflectionEngine
from .repos.interfaces import EventLog
from .runtime.engine import ExecutionEngine
from .schemas.domain import EventRecord, InteractionResult
from .tools.registry import ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrchestratorDeps:
    """Dependency bundle for ``AgentOrchestrator``.

    ``engine`` must be built over the same ``registry`` and ``context`` so
    step results land in the history the planner reads.
    """

    registry: ToolRegistry
    context: ContextStore
    planner: Planner
    engine: ExecutionEngine
    reflection: ReflectionEngine
    events: EventLog


class AgentOrchestrator:
    """Plan, execute, reflect and record for each request."""

    def __init__(self, *, deps: OrchestratorDeps) -> None:
        self._deps = deps
        self._lock = asyncio.Lock()

    @property
    def registry(self) -> ToolRegistry:
        return self._deps.registry

    @property
    def context(self) -> ContextStore:
        return self._deps.context

    @property
    def events(self) -> EventLog:
        return self._deps.events

    async def handle_request(
        self, user_input: str, context: Optional[Mapping[str, Any]] = None
    ) -> InteractionResult:
        """Handle one request end to end.

        Parameters
        ----------
        user_input:
            The natural-language request.
        context:
            Situational context (``filePath``, ``language``, ``selection``,
            ...) merged into the context store before planning.

        Returns
        -------
        InteractionResult
            Aggregate success, per-step results, the plan and its reflection.
        """
        async with self._lock:
            try:
                result = await self._handle(user_input, context)
            except Exception as exc:
                logger.exception(f"Request failed: {exc}")
                return InteractionResult(success=False, error=str(exc) or type(exc).__name__)

            await self._record(user_input, result)
            return result

    async def _handle(self, user_input: str, context: Optional[Mapping[str, Any]]) -> InteractionResult:
        self._deps.context.update(user_input, context)
        plan = await self._deps.planner.plan(user_input, self._deps.context.current_context)
        if plan.is_fallback:
            logger.info(f"Using fallback plan: {plan.fallback_reason}")

        outcome = await self._deps.engine.run(plan)
        reflection = self._deps.reflection.reflect(
            plan,
            outcome.results,
            stopped_at_step=outcome.stopped_at_step,
            stop_reason=outcome.stop_reason,
        )
        logger.info(reflection.message)
        return InteractionResult(
            success=outcome.success,
            results=outcome.results,
            reflection=reflection,
            plan=plan,
            stopped_at_step=outcome.stopped_at_step,
            stop_reason=outcome.stop_reason,
        )

    async def _record(self, user_input: str, result: InteractionResult) -> None:
        try:
            record = EventRecord(
                input=user_input,
                plan=_dump(result.plan) if result.plan is not None else {},
                results=[_dump(r) for r in result.results],
                reflection=_dump(result.reflection) if result.reflection is not None else {},
                success=result.success,
            )
            saved = await self._deps.events.save_event(record)
        except Exception as exc:
            logger.error(f"Could not record interaction event: {exc}")
            return
        if not saved:
            logger.warning(f"Event {record.id} was not persisted")


def _dump(model: BaseModel) -> Dict[str, Any]:
    try:
        return model.model_dump(mode="json")
    except ValueError:
        # a step result holding a value pydantic cannot serialize
        return to_jsonable(model)
