from __future__ import annotations

"""Model service abstraction used by the planner.

The planner talks to the language model through ``ModelService`` so the
transport stays opaque: tests inject a fake, applications use the default
Pydantic AI implementation.
"""

import logging
from typing import Any, Dict, Optional, Protocol, Sequence, Type, TypeVar

from pydantic import BaseModel
from pydantic_ai import Agent

logger = logging.getLogger(__name__)

OutputT = TypeVar("OutputT", bound=BaseModel)

ChatMessage = Dict[str, str]


class ModelService(Protocol):
    """Structured chat completion."""

    async def chat_completion(
        self,
        messages: Sequence[ChatMessage],
        model: Optional[str] = None,
        *,
        output_schema: Type[OutputT],
    ) -> OutputT:
        """
        Send an ordered list of ``{role, content}`` messages and parse the reply.

        Args:
            messages: Chat messages, system messages first.
            model: Optional model override for this call.
            output_schema: Pydantic model the reply must validate against.

        Returns:
            An instance of ``output_schema``.
        """
        ...


class PydanticAIModelService:
    """``ModelService`` backed by a Pydantic AI ``Agent``.

    System messages become the agent's system prompt; the remaining messages
    are joined into the user prompt.
    """

    def __init__(self, *, model: Any) -> None:
        """
        Args:
            model: A Pydantic AI model instance or model name (e.g. ``"openai:gpt-4o"``).
        """
        self._model = model

    async def chat_completion(
        self,
        messages: Sequence[ChatMessage],
        model: Optional[str] = None,
        *,
        output_schema: Type[OutputT],
    ) -> OutputT:
        system_prompt = "\n\n".join(m["content"] for m in messages if m.get("role") == "system")
        prompt = "\n\n".join(m["content"] for m in messages if m.get("role") != "system")

        agent: Agent = Agent(
            model or self._model,
            output_type=output_schema,
            system_prompt=system_prompt,
        )
        logger.debug(f"Requesting {output_schema.__name__} from model {model or self._model!r}")
        result = await agent.run(prompt)
        return result.output
