from __future__ import annotations

"""Tool capability protocol and shared base class.

A tool is the concrete execution unit for a plan step. The execution engine
resolves ``PlanStep.tool`` through a ``ToolRegistry`` and awaits
``run(params)``.

Tools should:

- validate their own parameters (``BaseTool`` does this from ``parameters``),
- return structured, JSON-serializable results,
- signal failures by raising ``ToolError`` with an explicit ``ErrorKind`` so
  the engine can decide on a retry without parsing the message,
- enforce their own deadlines; the engine does not wrap ``run`` in a timeout.
"""

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Protocol, runtime_checkable

from ..errors import ErrorKind, ToolError
from ..schemas.domain import ToolParameter


@runtime_checkable
class ToolCapability(Protocol):
    """Protocol for tool implementations."""

    name: str
    description: str
    parameters: Dict[str, ToolParameter]

    async def run(self, params: Dict[str, Any]) -> Any: ...


class BaseTool(ABC):
    """Base class for tools with declarative parameters.

    Subclasses set ``name``, ``description`` and ``parameters`` and implement
    ``run_impl``. ``run`` fills in defaults and rejects calls that miss a
    required parameter before the implementation is reached.
    """

    name: ClassVar[str] = ""
    description: ClassVar[str] = ""
    parameters: ClassVar[Dict[str, ToolParameter]] = {}

    def required_params(self) -> List[str]:
        return [key for key, spec in self.parameters.items() if spec.required]

    def validate_params(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Apply declared defaults and check required parameters.

        Args:
            params: Raw parameters from the plan step.

        Returns:
            A new dict with defaults filled in.

        Raises:
            ToolError: With ``ErrorKind.invalid_params`` when required parameters are missing.
        """
        resolved = dict(params)
        for key, spec in self.parameters.items():
            if resolved.get(key) is None and spec.default is not None:
                resolved[key] = spec.default

        missing = [key for key in self.required_params() if resolved.get(key) is None]
        if missing:
            raise ToolError(
                f"{self.name}: missing required parameters: {', '.join(missing)}",
                kind=ErrorKind.invalid_params,
            )
        return resolved

    async def run(self, params: Dict[str, Any]) -> Any:
        return await self.run_impl(self.validate_params(params or {}))

    @abstractmethod
    async def run_impl(self, params: Dict[str, Any]) -> Any: ...
