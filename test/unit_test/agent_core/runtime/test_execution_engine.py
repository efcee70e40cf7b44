from __future__ import annotations

from typing import List

import pytest

from memorybank_agent.agent_core.context import ContextStore
from memorybank_agent.agent_core.errors import ErrorKind, ToolError
from memorybank_agent.agent_core.runtime.engine import ExecutionEngine
from memorybank_agent.agent_core.runtime.models import EngineDeps
from memorybank_agent.agent_core.schemas.domain import ContextRole, Plan, PlanStep, StepState
from memorybank_agent.agent_core.tools.registry import ToolRegistry


def _plan(*steps: PlanStep) -> Plan:
    return Plan(steps=list(steps))


def _engine(registry: ToolRegistry, context_store: ContextStore, **flags) -> ExecutionEngine:
    return ExecutionEngine(deps=EngineDeps(registry=registry, context=context_store, **flags))


@pytest.mark.asyncio
async def test_all_steps_succeed(registry: ToolRegistry, context_store: ContextStore, make_tool) -> None:
    tools = [make_tool(f"Tool{i}", [{"n": i}]) for i in range(4)]
    for tool in tools:
        registry.register(tool)

    outcome = await _engine(registry, context_store).run(
        _plan(*[PlanStep(description=f"step {i}", tool=f"Tool{i}") for i in range(4)])
    )

    assert outcome.success is True
    assert [r.result for r in outcome.results] == [{"n": 0}, {"n": 1}, {"n": 2}, {"n": 3}]
    assert all(r.state == StepState.success and not r.was_retry for r in outcome.results)
    assert [r.step_index for r in outcome.results] == [0, 1, 2, 3]
    assert all(len(t.calls) == 1 for t in tools)
    history = context_store.get_history()
    assert [e.role for e in history] == [ContextRole.assistant] * 4
    assert [e.tool for e in history] == ["Tool0", "Tool1", "Tool2", "Tool3"]


@pytest.mark.asyncio
async def test_missing_tool_fails_step_and_execution_continues(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    after = make_tool("ReadFileTool", [{"content": "x"}])
    registry.register(after)

    outcome = await _engine(registry, context_store).run(
        _plan(PlanStep(description="list", tool="ListFilesTool"), PlanStep(description="read", tool="ReadFileTool"))
    )

    assert outcome.success is False
    assert len(outcome.results) == 2
    missing, ok = outcome.results
    assert missing.success is False
    assert missing.state == StepState.failed_final
    assert "Tool not found" in (missing.error or "")
    assert ok.success is True
    assert len(after.calls) == 1


@pytest.mark.asyncio
async def test_transient_failure_is_retried_exactly_once_and_succeeds(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    flaky = make_tool("Flaky", [RuntimeError("Request timeout"), {"done": True}])
    registry.register(flaky)

    outcome = await _engine(registry, context_store).run(
        _plan(PlanStep(description="fetch", tool="Flaky", params={"q": 1}))
    )

    assert outcome.success is True
    (result,) = outcome.results
    assert result.was_retry is True
    assert result.state == StepState.success
    assert len(flaky.calls) == 2
    assert flaky.calls[0] == {"q": 1}
    assert flaky.calls[1] == {"q": 1, "previousError": "Request timeout"}
    assert "Request timeout" in result.step.description
    roles = [e.role for e in context_store.get_history()]
    assert roles == [ContextRole.system, ContextRole.assistant]


@pytest.mark.asyncio
async def test_second_transient_failure_is_final(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    flaky = make_tool("Flaky", [RuntimeError("network down")])
    registry.register(flaky)

    outcome = await _engine(registry, context_store).run(_plan(PlanStep(tool="Flaky")))

    assert outcome.success is False
    (result,) = outcome.results
    assert result.state == StepState.failed_final
    assert result.was_retry is True
    assert len(flaky.calls) == 2


@pytest.mark.asyncio
async def test_non_transient_failure_is_not_retried(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    broken = make_tool("Broken", [ValueError("syntax error in input")])
    nxt = make_tool("Next", [{"ok": True}])
    registry.register(broken)
    registry.register(nxt)

    outcome = await _engine(registry, context_store).run(_plan(PlanStep(tool="Broken"), PlanStep(tool="Next")))

    assert outcome.success is False
    assert len(broken.calls) == 1
    assert outcome.results[0].was_retry is False
    assert outcome.results[0].error == "syntax error in input"
    assert outcome.results[1].success is True
    feedback = [e for e in context_store.get_history() if e.role == ContextRole.system]
    assert len(feedback) == 1
    assert feedback[0].payload["error"] == "syntax error in input"


@pytest.mark.asyncio
async def test_error_kind_takes_precedence_over_message(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    permanent = make_tool("Permanent", [ToolError("connection string invalid", kind=ErrorKind.permanent)])
    transient = make_tool("Transient", [ToolError("busy", kind=ErrorKind.transient), {"ok": 1}])
    registry.register(permanent)
    registry.register(transient)

    outcome = await _engine(registry, context_store).run(
        _plan(PlanStep(tool="Permanent"), PlanStep(tool="Transient"))
    )

    assert len(permanent.calls) == 1
    assert outcome.results[0].error_kind == ErrorKind.permanent
    assert len(transient.calls) == 2
    assert outcome.results[1].was_retry is True


@pytest.mark.asyncio
async def test_critical_failure_is_advisory_by_default(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    registry.register(make_tool("Broken", [ValueError("bad")]))
    tail = make_tool("Tail", [{"ok": True}])
    registry.register(tail)

    outcome = await _engine(registry, context_store).run(
        _plan(PlanStep(tool="Broken", is_critical=True), PlanStep(tool="Tail"))
    )

    assert outcome.stopped_at_step is None
    assert len(tail.calls) == 1


@pytest.mark.asyncio
async def test_stop_on_critical_failure_halts_remaining_steps(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    registry.register(make_tool("Optional", [ValueError("meh")]))
    registry.register(make_tool("Critical", [ValueError("fatal")]))
    tail = make_tool("Tail", [{"ok": True}])
    registry.register(tail)

    outcome = await _engine(registry, context_store, stop_on_critical_failure=True).run(
        _plan(
            PlanStep(tool="Optional", is_critical=False),
            PlanStep(tool="Critical"),
            PlanStep(tool="Tail"),
        )
    )

    assert outcome.success is False
    assert outcome.stopped_at_step == 1
    assert "fatal" in (outcome.stop_reason or "")
    assert len(outcome.results) == 2
    assert tail.calls == []


@pytest.mark.asyncio
async def test_step_params_resolve_previous_results(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    registry.register(make_tool("FindFileTool", [{"matches": ["src/app.py"], "pattern": "**/app.py", "found": True}]))
    registry.register(make_tool("ReadFileTool", [{"content": "print('hi')", "path": "src/app.py"}]))
    analyze = make_tool("AnalyzeCodeTool", [{"text": "looks fine"}])
    registry.register(analyze)

    outcome = await _engine(registry, context_store).run(
        _plan(
            PlanStep(tool="FindFileTool", params={"pattern": "**/app.py"}),
            PlanStep(tool="ReadFileTool", params={"path": "$PREVIOUS_STEP.path"}),
            PlanStep(tool="AnalyzeCodeTool", params={"content": "$STEP[1].content", "sourcePath": "$STEP[0].matches[0]"}),
        )
    )

    assert outcome.success is True
    assert outcome.results[1].step.params == {"path": "src/app.py"}
    assert analyze.calls == [{"content": "print('hi')", "sourcePath": "src/app.py"}]


@pytest.mark.asyncio
async def test_long_plan_does_not_hit_graph_recursion_limit(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    registry.register(make_tool("Flaky", [RuntimeError("temporary glitch")]))

    steps: List[PlanStep] = [PlanStep(tool="Flaky") for _ in range(30)]
    outcome = await _engine(registry, context_store).run(_plan(*steps))

    assert len(outcome.results) == 30
    assert all(r.was_retry for r in outcome.results)


@pytest.mark.asyncio
async def test_tool_error_without_kind_is_classified_by_message(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    net = make_tool("NetTool", [ToolError("connection reset by peer"), {"ok": True}])
    registry.register(net)

    outcome = await _engine(registry, context_store).run(_plan(PlanStep(tool="NetTool")))

    assert len(net.calls) == 2
    assert outcome.success is True
    assert outcome.results[0].was_retry is True


@pytest.mark.asyncio
async def test_unserializable_results_do_not_break_the_run(
    registry: ToolRegistry, context_store: ContextStore, make_tool
) -> None:
    registry.register(make_tool("OpaqueTool", [object()]))
    registry.register(make_tool("BytesTool", [b"\xff\xfe"]))
    tail = make_tool("OkTool", [{"ok": True}])
    registry.register(tail)

    outcome = await _engine(registry, context_store).run(
        _plan(PlanStep(tool="OpaqueTool"), PlanStep(tool="BytesTool"), PlanStep(tool="OkTool"))
    )

    assert outcome.success is True
    assert len(outcome.results) == 3
    assert len(tail.calls) == 1
    payloads = [e.payload for e in context_store.get_history()]
    assert isinstance(payloads[0], str)
    assert payloads[1] == str(b"\xff\xfe")
    assert context_store.token_count > 0
