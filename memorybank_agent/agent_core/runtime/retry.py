from __future__ import annotations

"""Retry classification for failed steps.

A failed step is retried at most once. Eligibility is decided by the
``ErrorKind`` a ``ToolError`` carries, when it carries one; otherwise the
lower-cased error text is matched against ``TRANSIENT_MARKERS``.
"""

from typing import Optional

from ..errors import ErrorKind, ToolError, ToolExecutionError
from ..schemas.domain import PlanStep

TRANSIENT_MARKERS = ("timeout", "rate limit", "connection", "network", "temporary")


def error_kind_of(exc: BaseException) -> Optional[ErrorKind]:
    if isinstance(exc, ToolError):
        return exc.kind
    if isinstance(exc, ToolExecutionError):
        return exc.kind
    return None


def should_retry(error_text: str, kind: Optional[ErrorKind] = None) -> bool:
    if kind is not None:
        return kind == ErrorKind.transient
    text = error_text.lower()
    return any(marker in text for marker in TRANSIENT_MARKERS)


def modify_step_after_failure(step: PlanStep, error_text: str) -> PlanStep:
    """Same tool; description suffixed with the error; ``previousError`` added to params."""
    return step.model_copy(
        update={
            "description": f"{step.description} (retry after error: {error_text})",
            "params": {**step.params, "previousError": error_text},
        }
    )
