from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pytest

from memorybank_agent.agent_core.planning.planner import Planner, PlanResponse
from memorybank_agent.agent_core.tools.registry import ToolRegistry


class _FakeModelService:
    def __init__(self, response: Any = None, error: Optional[BaseException] = None) -> None:
        self.response = response
        self.error = error
        self.calls: List[Dict[str, Any]] = []

    async def chat_completion(
        self, messages: Sequence[Dict[str, str]], model: Optional[str] = None, *, output_schema: Any
    ) -> Any:
        self.calls.append({"messages": list(messages), "model": model, "output_schema": output_schema})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def catalog_registry(registry: ToolRegistry, make_tool) -> ToolRegistry:
    registry.register(make_tool("ReadFileTool", description="Read a file"))
    registry.register(make_tool("ExecuteCommandTool", description="Run a command"))
    return registry


@pytest.mark.asyncio
async def test_planner_without_model_service_returns_fallback(catalog_registry: ToolRegistry) -> None:
    planner = Planner(registry=catalog_registry)
    plan = await planner.plan("list files")

    assert plan.is_fallback is True
    assert len(plan.steps) == 1
    assert plan.steps[0].tool == "ExecuteCommandTool"
    assert plan.steps[0].params == {"command": "list files"}


@pytest.mark.asyncio
async def test_planner_issues_one_call_with_system_and_user_messages(catalog_registry: ToolRegistry) -> None:
    service = _FakeModelService(
        response=PlanResponse.model_validate(
            {"plan": {"steps": [{"description": "read", "tool": "ReadFileTool", "params": {"path": "a.py"}}]}}
        )
    )
    planner = Planner(registry=catalog_registry, model_service=service, model="test-model")

    plan = await planner.plan(
        "explain a.py", {"filePath": "src/a.py", "language": "python", "selection": "def f(): pass"}
    )

    assert len(service.calls) == 1
    call = service.calls[0]
    assert call["model"] == "test-model"
    assert call["output_schema"] is PlanResponse
    roles = [m["role"] for m in call["messages"]]
    assert roles == ["system", "user"]
    user = call["messages"][1]["content"]
    assert 'User request: "explain a.py"' in user
    assert "File: src/a.py" in user
    assert "Language: python" in user
    assert "Selected text: Yes (length: 13)" in user
    assert "- ReadFileTool: Read a file" in user
    assert "- ExecuteCommandTool: Run a command" in user

    assert plan.is_fallback is False
    assert [s.tool for s in plan.steps] == ["ReadFileTool"]
    assert plan.steps[0].params == {"path": "a.py"}
    assert plan.steps[0].is_critical is True


@pytest.mark.asyncio
async def test_planner_accepts_dict_and_json_responses(catalog_registry: ToolRegistry) -> None:
    body = {"plan": {"steps": [{"description": "run", "tool": "ExecuteCommandTool", "params": {"command": "ls"}}]}}

    plan = await Planner(registry=catalog_registry, model_service=_FakeModelService(response=body)).plan("x")
    assert plan.steps[0].params == {"command": "ls"}

    raw = '{"plan": {"steps": [{"tool": "ReadFileTool", "params": {"path": "b"}}]}}'
    plan = await Planner(registry=catalog_registry, model_service=_FakeModelService(response=raw)).plan("x")
    assert plan.steps[0].tool == "ReadFileTool"
    assert plan.steps[0].description == ""


@pytest.mark.asyncio
async def test_planner_falls_back_when_model_service_raises(catalog_registry: ToolRegistry) -> None:
    service = _FakeModelService(error=ConnectionError("model unreachable"))
    planner = Planner(registry=catalog_registry, model_service=service)

    plan = await planner.plan("run the tests")

    assert len(service.calls) == 1
    assert plan.is_fallback is True
    assert len(plan.steps) == 1
    assert plan.steps[0].tool == "ExecuteCommandTool"
    assert plan.steps[0].params["command"] == "run the tests"
    assert "model unreachable" in (plan.fallback_reason or "")


@pytest.mark.parametrize(
    "response",
    [
        "not json at all",
        {"plan": {"steps": "nope"}},
        {"plan": {"steps": []}},
        {"steps": [{"tool": "ReadFileTool"}]},
        None,
    ],
)
@pytest.mark.asyncio
async def test_planner_falls_back_on_malformed_response(catalog_registry: ToolRegistry, response: Any) -> None:
    planner = Planner(registry=catalog_registry, model_service=_FakeModelService(response=response))
    plan = await planner.plan("do it")

    assert plan.is_fallback is True
    assert plan.steps[0].params == {"command": "do it"}
    assert plan.fallback_reason


@pytest.mark.asyncio
async def test_planner_uses_configured_fallback_tool(catalog_registry: ToolRegistry) -> None:
    planner = Planner(registry=catalog_registry, fallback_tool="AnalyzeCodeTool")
    plan = await planner.plan("analyze")
    assert plan.steps[0].tool == "AnalyzeCodeTool"


def test_build_messages_with_empty_catalog(registry: ToolRegistry) -> None:
    messages = Planner(registry=registry).build_messages("hi")
    assert "(no tools registered)" in messages[1]["content"]
    assert "File: None" in messages[1]["content"]
    assert "Language: Unknown" in messages[1]["content"]
    assert "Selected text: None" in messages[1]["content"]
