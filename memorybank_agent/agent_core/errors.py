from __future__ import annotations

"""Exception taxonomy for the agent core.

Only ``PlanningError`` and the setup failures of a request can reach the
orchestrator boundary. Every other error is absorbed into a structured step
result or logged:

- ``ToolNotFoundError``: a plan step referenced an unregistered capability.
- ``ToolError``: raised by well-behaved tools, optionally with an ``ErrorKind``
  so the engine does not have to guess from the message text.
- ``ToolExecutionError``: any tool failure, re-raised by the registry with
  the tool name attached.
- ``PersistenceError`` / ``ContextLoadError``: snapshot and event-log I/O.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    transient = "transient"
    permanent = "permanent"
    invalid_params = "invalid_params"


class AgentCoreError(Exception):
    """Base class for all agent core errors."""


class PlanningError(AgentCoreError):
    """The model service returned no usable plan."""


class ToolNotFoundError(AgentCoreError):
    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Tool not found: {tool_name}")
        self.tool_name = tool_name


class ToolError(AgentCoreError):
    """Failure signalled by a tool implementation.

    Attributes
    ----------
    kind:
        How the engine should treat the failure. ``transient`` errors are
        retried once, the other kinds fail the step immediately. ``None``
        leaves the decision to the message text, as for any other exception.
    """

    def __init__(self, message: str, *, kind: Optional[ErrorKind] = None) -> None:
        super().__init__(message)
        self.kind = kind


class ToolExecutionError(AgentCoreError):
    """A tool raised while running; carries the tool name and the original kind."""

    def __init__(self, tool_name: str, cause: BaseException) -> None:
        super().__init__(f"{tool_name}: {cause}")
        self.tool_name = tool_name
        self.cause = cause
        self.kind: Optional[ErrorKind] = cause.kind if isinstance(cause, ToolError) else None


class PersistenceError(AgentCoreError):
    def __init__(self, message: str, *, path: Optional[str] = None) -> None:
        super().__init__(message)
        self.path = path


class ContextLoadError(PersistenceError):
    """A context snapshot could not be read or parsed."""
