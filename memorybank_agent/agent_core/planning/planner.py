from __future__ import annotations

"""Structured planning for user requests.

Responsibilities
----------------

- Turn a request plus situational context (file path, language, selection)
  into a ``Plan``.
- Describe every registered tool to the model so it only plans with tools
  that exist.

The planner is intentionally constrained:

- It issues exactly one model call per request and never retries.
- It never raises: any failure (transport error, malformed reply, empty
  step list) yields a single-step fallback plan that hands the raw request
  to the generic command tool. The failure reason is kept on the plan.
"""

import json
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..errors import PlanningError
from ..schemas.domain import Plan, PlanStep, ToolInfo
from ..tools.registry import ToolRegistry
from .model_service import ChatMessage, ModelService

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a planning assistant for the Memory Bank Agent. Break the user's request into a short "
    "sequence of steps that the agent executes with its tools. Respond only with JSON."
)

_VARIABLE_GUIDE = """\
When a parameter needs the result of an earlier step:
- use "$PREVIOUS_STEP.content" for the content read by the previous step,
- use "$PREVIOUS_STEP.<property>" for any other property of the previous result,
- use "$STEP[n].<property>" to reference step n (0-based).
For FindFileTool always use recursive patterns such as "**/*name*"."""

_RESPONSE_FORMAT = """\
Respond in the following JSON format:
{"plan": {"steps": [{"description": "Step description", "tool": "ToolName", "params": {"param1": "value1"}}]}}"""


class PlanResponseStep(BaseModel):
    model_config = ConfigDict(extra="ignore")

    description: str = ""
    tool: str
    params: Dict[str, Any] = Field(default_factory=dict)


class PlanResponseBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    steps: List[PlanResponseStep]
    reasoning: Optional[str] = None


class PlanResponse(BaseModel):
    """Fixed output schema requested from the model: ``{plan: {steps: [...]}}``."""

    model_config = ConfigDict(extra="ignore")

    plan: PlanResponseBody


class Planner:
    """Planner that produces a ``Plan`` with one structured model call.

    - ``model_service=None``: deterministic mode that always returns the
      fallback plan. Useful for tests and offline deployments.
    - ``model_service!=None``: asks the service for a ``PlanResponse``.
    """

    def __init__(
        self,
        *,
        registry: ToolRegistry,
        model_service: Optional[ModelService] = None,
        model: Optional[str] = None,
        fallback_tool: str = "ExecuteCommandTool",
    ) -> None:
        self._registry = registry
        self._model_service = model_service
        self._model = model
        self._fallback_tool = fallback_tool

    def build_messages(self, user_input: str, context: Optional[Mapping[str, Any]] = None) -> List[ChatMessage]:
        """Build the system+user message pair for one planning call."""
        ctx = dict(context or {})
        selection = ctx.get("selection")
        selection_text = f"Yes (length: {len(str(selection))})" if selection else "None"
        tools = self._registry.get_available_tools()

        user = "\n".join(
            [
                f'User request: "{user_input}"',
                "",
                "Current context:",
                f"File: {ctx.get('filePath') or 'None'}",
                f"Language: {ctx.get('language') or 'Unknown'}",
                f"Selected text: {selection_text}",
                "",
                "Available tools:",
                _format_catalog(tools),
                "",
                _VARIABLE_GUIDE,
                "",
                _RESPONSE_FORMAT,
            ]
        )
        return [{"role": "system", "content": SYSTEM_PROMPT}, {"role": "user", "content": user}]

    async def plan(self, user_input: str, context: Optional[Mapping[str, Any]] = None) -> Plan:
        """Generate a plan for a request.

        Parameters
        ----------
        user_input:
            The natural-language request.
        context:
            Situational context; ``filePath``, ``language`` and ``selection``
            are embedded in the prompt.

        Returns
        -------
        Plan
            The model's plan, or the single-step fallback plan.
        """
        if self._model_service is None:
            return self.fallback_plan(user_input, "no model service configured")

        messages = self.build_messages(user_input, context)
        try:
            response = await self._model_service.chat_completion(
                messages, self._model, output_schema=PlanResponse
            )
            plan = self._to_plan(response)
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
            logger.warning(f"Planning failed, using fallback plan: {reason}")
            return self.fallback_plan(user_input, reason)

        logger.info(f"Created plan with {len(plan.steps)} steps")
        return plan

    def fallback_plan(self, user_input: str, reason: str) -> Plan:
        return Plan(
            steps=[
                PlanStep(
                    description=f"Execute request directly: {user_input}",
                    tool=self._fallback_tool,
                    params={"command": user_input},
                )
            ],
            reasoning="Fallback plan",
            is_fallback=True,
            fallback_reason=reason,
        )

    @staticmethod
    def _to_plan(response: Any) -> Plan:
        if isinstance(response, str):
            parsed = PlanResponse.model_validate_json(response)
        elif isinstance(response, PlanResponse):
            parsed = response
        else:
            parsed = PlanResponse.model_validate(response)

        if not parsed.plan.steps:
            raise PlanningError("model returned an empty step list")
        return Plan(
            steps=[PlanStep(description=s.description, tool=s.tool, params=s.params) for s in parsed.plan.steps],
            reasoning=parsed.plan.reasoning,
        )


def _format_catalog(tools: List[ToolInfo]) -> str:
    if not tools:
        return "- (no tools registered)"
    lines = []
    for tool in tools:
        lines.append(f"- {tool.name}: {tool.description}")
        if tool.parameters:
            params = {key: spec.model_dump(exclude_none=True) for key, spec in tool.parameters.items()}
            lines.append(f"  parameters: {json.dumps(params, default=str)}")
    return "\n".join(lines)
