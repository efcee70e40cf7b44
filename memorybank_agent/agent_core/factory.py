from __future__ import annotations

"""Convenience factories for wiring the agent core.

This module builds the default tool registry, the event log selected by
``Settings.database_url`` and a fully wired ``AgentOrchestrator``.

Every component can be passed in explicitly; defaults come from
``Settings``.
"""

from pathlib import Path
from typing import Iterable, Optional

from ..core.config import Settings
from ..core.config import settings as default_settings
from .context.storage import LocalFileStorage, SnapshotStorage
from .context.store import ContextStore
from .planning.model_service import ModelService, PydanticAIModelService
from .planning.planner import Planner
from .reflection.engine import ReflectionEngine
from .repos.interfaces import EventLog
from .repos.memory import InMemoryEventLog
from .repos.sql import SqlEventLog, create_all, create_engine, create_sessionmaker
from .runtime.engine import ExecutionEngine
from .runtime.models import EngineDeps
from .service import AgentOrchestrator, OrchestratorDeps
from .tools.registry import ToolRegistry


def build_default_registry(tool_paths: Optional[Iterable[str]] = None) -> ToolRegistry:
    """Build a ``ToolRegistry`` loaded with the default tool set.

    Tools that fail to load are skipped; see ``ToolRegistry.load_default_tools``.
    """
    reg = ToolRegistry()
    reg.load_default_tools(tool_paths if tool_paths is not None else default_settings.default_tools)
    return reg


def build_model_service(cfg: Settings) -> Optional[ModelService]:
    """Return a Pydantic AI model service when a planner model is configured."""
    if not cfg.planner_model:
        return None
    return PydanticAIModelService(model=cfg.planner_model)


async def build_event_log(cfg: Settings) -> EventLog:
    """Build the event log: SQL when ``database_url`` is set, otherwise in-memory."""
    if not cfg.database_url:
        return InMemoryEventLog()
    engine = create_engine(cfg.database_url)
    await create_all(engine)
    return SqlEventLog(session_factory=create_sessionmaker(engine))


def build_orchestrator(
    *,
    cfg: Optional[Settings] = None,
    registry: Optional[ToolRegistry] = None,
    model_service: Optional[ModelService] = None,
    event_log: Optional[EventLog] = None,
    storage: Optional[SnapshotStorage] = None,
) -> AgentOrchestrator:
    """Construct an ``AgentOrchestrator`` from settings and optional overrides."""
    cfg = cfg or default_settings
    registry = registry if registry is not None else build_default_registry(cfg.default_tools)
    context = ContextStore(
        storage=storage if storage is not None else LocalFileStorage(Path(cfg.storage_dir)),
        max_tokens=cfg.max_context_tokens,
        persist_threshold=cfg.persist_threshold,
    )
    planner = Planner(
        registry=registry,
        model_service=model_service if model_service is not None else build_model_service(cfg),
        fallback_tool=cfg.fallback_tool,
    )
    engine = ExecutionEngine(
        deps=EngineDeps(
            registry=registry,
            context=context,
            stop_on_critical_failure=cfg.stop_on_critical_failure,
        )
    )
    return AgentOrchestrator(
        deps=OrchestratorDeps(
            registry=registry,
            context=context,
            planner=planner,
            engine=engine,
            reflection=ReflectionEngine(),
            events=event_log if event_log is not None else InMemoryEventLog(),
        )
    )


async def create_orchestrator(cfg: Optional[Settings] = None, **overrides) -> AgentOrchestrator:
    """Async variant of ``build_orchestrator`` that also prepares the configured event log."""
    cfg = cfg or default_settings
    if overrides.get("event_log") is None:
        overrides["event_log"] = await build_event_log(cfg)
    return build_orchestrator(cfg=cfg, **overrides)
