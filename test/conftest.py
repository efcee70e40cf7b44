from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List

import pytest

from memorybank_agent.agent_core.context import ContextStore, LocalFileStorage
from memorybank_agent.agent_core.schemas.domain import ToolParameter
from memorybank_agent.agent_core.tools.registry import ToolRegistry


class RecordingTool:
    """Tool double that returns canned outputs or raises canned errors, in order."""

    def __init__(self, name: str, outcomes: List[Any] | None = None, description: str = "") -> None:
        self.name = name
        self.description = description
        self.parameters: Dict[str, ToolParameter] = {}
        self._outcomes = list(outcomes or [{"ok": True}])
        self.calls: List[Dict[str, Any]] = []

    async def run(self, params: Dict[str, Any]) -> Any:
        self.calls.append(dict(params))
        outcome = self._outcomes.pop(0) if len(self._outcomes) > 1 else self._outcomes[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


@pytest.fixture
def storage(tmp_path: Path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "store")


@pytest.fixture
def context_store(storage: LocalFileStorage) -> ContextStore:
    return ContextStore(storage=storage)


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry()


@pytest.fixture
def make_tool():
    return RecordingTool
