"""LangGraph-based execution runtime for plans.

The runtime takes a ``Plan`` and executes its steps in order through the
tool registry, with a single retry for transient failures.

The main entry point is ``ExecutionEngine``; its dependencies are bundled in
``EngineDeps``.
"""

from .engine import ExecutionEngine
from .models import EngineDeps, ExecutionOutcome

__all__ = [
    "EngineDeps",
    "ExecutionEngine",
    "ExecutionOutcome",
]
