from __future__ import annotations

"""Tool registry.

The registry maps a tool name to an executable ``ToolCapability``.

The planner reads the catalog (``get_available_tools``) to describe the
tools to the model, and the execution engine resolves ``PlanStep.tool``
values with ``select``.
"""

import importlib
import logging
from typing import Any, Dict, Iterable, List, Optional

from ..errors import ToolExecutionError, ToolNotFoundError
from ..schemas.domain import ToolInfo, ToolParameter
from .base import ToolCapability

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "No description provided"


def _load_object(path: str) -> Any:
    module_name, _, attr = path.rpartition(".")
    if not module_name:
        raise ImportError(f"not a dotted path: {path}")
    return getattr(importlib.import_module(module_name), attr)


class ToolRegistry:
    """
    In-memory mapping of tool names to implementations.

    Notes:
        - ``register`` never raises; invalid tools are rejected and logged.
        - ``register`` overwrites an existing mapping with a warning.
        - ``select`` returns ``None`` for unknown names.
    """

    def __init__(self) -> None:
        """Initialize an empty tool registry."""
        self._tools: Dict[str, ToolCapability] = {}

    def register(self, tool: ToolCapability) -> bool:
        """
        Register a tool implementation.

        Args:
            tool: The tool instance. It must expose a non-empty ``name`` and a callable ``run``.

        Returns:
            True when the tool was registered, False when it was rejected.
        """
        name = getattr(tool, "name", None)
        if not name:
            logger.error(f"Rejected tool without a name: {tool!r}")
            return False
        if not callable(getattr(tool, "run", None)):
            logger.error(f"Rejected tool '{name}': missing run operation")
            return False

        if name in self._tools:
            logger.warning(f"Tool '{name}' is already registered; overwriting")
        self._tools[name] = tool
        logger.debug(f"Registered tool '{name}'")
        return True

    def select(self, name: str) -> Optional[ToolCapability]:
        """
        Look up a tool by name.

        Args:
            name: The tool name.

        Returns:
            The tool implementation, or None if it is not registered.
        """
        tool = self._tools.get(name)
        if tool is None:
            logger.warning(f"Tool not found: {name}")
        return tool

    def has(self, name: str) -> bool:
        return name in self._tools

    async def execute(self, name: str, params: Dict[str, Any]) -> Any:
        """
        Select a tool and run it.

        Raises:
            ToolNotFoundError: If no tool is registered under ``name``.
            ToolExecutionError: If the tool raised; the original error is chained.
        """
        tool = self.select(name)
        if tool is None:
            raise ToolNotFoundError(name)
        try:
            return await tool.run(params)
        except Exception as exc:
            raise ToolExecutionError(name, exc) from exc

    def load_default_tools(self, paths: Iterable[str]) -> List[str]:
        """
        Instantiate and register tools from dotted import paths.

        A path that fails to import, instantiate or register is skipped with a
        warning; the remaining paths are still loaded.

        Returns:
            The names of the tools that were registered.
        """
        loaded: List[str] = []
        for path in paths:
            try:
                tool = _load_object(path)()
            except Exception as exc:
                logger.warning(f"Skipping tool '{path}': {exc}")
                continue
            if self.register(tool):
                loaded.append(tool.name)
        logger.info(f"Loaded {len(loaded)} default tools: {', '.join(loaded)}")
        return loaded

    def get_available_tools(self) -> List[ToolInfo]:
        return [self._info(tool) for tool in self._tools.values()]

    def get_tool_info(self, name: str) -> Optional[ToolInfo]:
        tool = self._tools.get(name)
        return self._info(tool) if tool is not None else None

    @staticmethod
    def _info(tool: ToolCapability) -> ToolInfo:
        raw = getattr(tool, "parameters", None) or {}
        parameters = {
            key: spec if isinstance(spec, ToolParameter) else ToolParameter.model_validate(spec)
            for key, spec in raw.items()
        }
        return ToolInfo(
            name=tool.name,
            description=getattr(tool, "description", None) or DEFAULT_DESCRIPTION,
            parameters=parameters,
        )
