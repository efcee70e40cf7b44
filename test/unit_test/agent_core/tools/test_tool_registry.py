from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import pytest

from memorybank_agent.agent_core.errors import ErrorKind, ToolError, ToolExecutionError, ToolNotFoundError
from memorybank_agent.agent_core.schemas.domain import ToolParameter
from memorybank_agent.agent_core.tools.registry import DEFAULT_DESCRIPTION, ToolRegistry


@dataclass
class _EchoTool:
    name: str = "EchoTool"
    description: str = "Echo params back"
    parameters: Dict[str, Any] = None  # type: ignore[assignment]

    async def run(self, params: Dict[str, Any]) -> Dict[str, Any]:
        return {"echo": params}


@dataclass
class _NoRunTool:
    name: str = "Broken"


class _FailingTool:
    name = "FailingTool"
    description = ""
    parameters: Dict[str, Any] = {}

    async def run(self, params: Dict[str, Any]) -> Any:
        raise ToolError("rate limit hit", kind=ErrorKind.transient)


class _ExplodingCtorTool:
    name = "Exploding"

    def __init__(self) -> None:
        raise RuntimeError("cannot build")


def test_register_then_select_returns_same_instance(registry: ToolRegistry) -> None:
    tool = _EchoTool()
    assert registry.register(tool) is True
    assert registry.select("EchoTool") is tool
    assert registry.has("EchoTool")


def test_register_rejects_tool_without_name(registry: ToolRegistry) -> None:
    assert registry.register(_EchoTool(name="")) is False
    assert registry.get_available_tools() == []


def test_register_rejects_tool_without_run(registry: ToolRegistry) -> None:
    assert registry.register(_NoRunTool()) is False  # type: ignore[arg-type]
    assert registry.has("Broken") is False


def test_register_overwrites_existing_name_with_warning(
    registry: ToolRegistry, caplog: pytest.LogCaptureFixture
) -> None:
    first, second = _EchoTool(), _EchoTool()
    registry.register(first)
    with caplog.at_level(logging.WARNING):
        assert registry.register(second) is True
    assert registry.select("EchoTool") is second
    assert "overwriting" in caplog.text


def test_select_missing_returns_none(registry: ToolRegistry) -> None:
    assert registry.select("ListFilesTool") is None


@pytest.mark.asyncio
async def test_execute_runs_tool(registry: ToolRegistry) -> None:
    registry.register(_EchoTool())
    assert await registry.execute("EchoTool", {"a": 1}) == {"echo": {"a": 1}}


@pytest.mark.asyncio
async def test_execute_missing_tool_raises_not_found(registry: ToolRegistry) -> None:
    with pytest.raises(ToolNotFoundError) as err:
        await registry.execute("Nope", {})
    assert err.value.tool_name == "Nope"


@pytest.mark.asyncio
async def test_execute_wraps_tool_failure_with_name_and_kind(registry: ToolRegistry) -> None:
    registry.register(_FailingTool())
    with pytest.raises(ToolExecutionError) as err:
        await registry.execute("FailingTool", {})
    assert err.value.tool_name == "FailingTool"
    assert err.value.kind == ErrorKind.transient
    assert "FailingTool" in str(err.value)
    assert isinstance(err.value.__cause__, ToolError)


def test_load_default_tools_skips_failures_and_loads_the_rest(registry: ToolRegistry) -> None:
    loaded = registry.load_default_tools(
        [
            "memorybank_agent.agent_core.tools.builtin.ReadFileTool",
            "memorybank_agent.agent_core.tools.builtin.DoesNotExist",
            "not_a_real_module.Tool",
            f"{__name__}._ExplodingCtorTool",
            "memorybank_agent.agent_core.tools.builtin.ExecuteCommandTool",
        ]
    )
    assert loaded == ["ReadFileTool", "ExecuteCommandTool"]
    assert registry.has("ReadFileTool")
    assert registry.has("ExecuteCommandTool")


def test_tool_info_defaults_description_and_normalizes_parameters(registry: ToolRegistry) -> None:
    registry.register(_EchoTool(description="", parameters={"x": {"type": "number", "required": True}}))
    info = registry.get_tool_info("EchoTool")
    assert info is not None
    assert info.description == DEFAULT_DESCRIPTION
    assert info.parameters["x"] == ToolParameter(type="number", required=True)
    assert registry.get_tool_info("missing") is None


def test_get_available_tools_lists_every_registered_tool(registry: ToolRegistry) -> None:
    registry.register(_EchoTool())
    registry.register(_FailingTool())
    names = [t.name for t in registry.get_available_tools()]
    assert names == ["EchoTool", "FailingTool"]
