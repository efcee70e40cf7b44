from __future__ import annotations

"""Post-run reflection.

The reflection is a deterministic summary of a finished run: success flag,
success rate and suggestions. It makes no model calls.
"""

from typing import Optional, Sequence

from ..schemas.domain import Plan, Reflection, StepResult

GENERIC_SUGGESTION = "Review the failed steps and retry with more specific instructions."


class ReflectionEngine:
    def reflect(
        self,
        plan: Plan,
        results: Sequence[StepResult],
        *,
        stopped_at_step: Optional[int] = None,
        stop_reason: Optional[str] = None,
    ) -> Reflection:
        """
        Summarize a run.

        ``success`` holds only when every planned step produced a successful
        result; ``success_rate`` is 0 for an empty plan.
        """
        total = len(plan.steps)
        succeeded = sum(1 for r in results if r.success)
        failed = total - succeeded
        success = succeeded == total
        rate = succeeded / total if total else 0.0

        if success:
            message = f"All {total} steps completed successfully."
        else:
            message = f"{succeeded} of {total} steps completed successfully."
        if stopped_at_step is not None:
            message += f" Execution stopped at step {stopped_at_step}: {stop_reason}"

        return Reflection(
            success=success,
            success_rate=rate,
            message=message,
            suggestions=[] if success else [GENERIC_SUGGESTION],
            successful_steps=succeeded,
            failed_steps=failed,
            stopped_at_step=stopped_at_step,
            stop_reason=stop_reason,
        )
