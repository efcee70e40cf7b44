from __future__ import annotations

"""Token-budgeted interaction history.

``ContextStore`` keeps the append-only history of one orchestrator together
with a merged "current context" map (active file, language, selection, ...).

Budget model
------------

- Every entry is costed with ``estimate_tokens``; the running total also
  includes the current-context map.
- ``get_recent_history`` produces a truncated *view* that fits a budget. The
  stored history itself is never truncated.
- When a mutation brings the total above ``persist_threshold`` of
  ``max_tokens``, a snapshot of the full state is written in a
  detached task. Snapshot failures are logged and never reach the caller.

Snapshots are JSON documents ``{history, current_context, timestamp}`` stored
under ``context/context_<epoch_ms>_<suffix>.json`` in the configured storage.
Tool results and context values are stored in their JSON form
(see ``to_jsonable``), so a snapshot can always be written.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, List, Mapping, Optional, Set
from uuid import uuid4

from ..errors import ContextLoadError, PersistenceError
from ..schemas.domain import ContextEntry, ContextRole, ContextSnapshot, PlanStep
from .storage import SnapshotStorage
from .tokens import estimate_tokens, to_jsonable

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 16000
DEFAULT_PERSIST_THRESHOLD = 0.9


class ContextStore:
    """Append-only history with token accounting and automatic snapshots."""

    def __init__(
        self,
        *,
        storage: SnapshotStorage,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        persist_threshold: float = DEFAULT_PERSIST_THRESHOLD,
        snapshot_dir: str = "context",
    ) -> None:
        self._storage = storage
        self._max_tokens = max_tokens
        self._persist_threshold = persist_threshold
        self._snapshot_dir = snapshot_dir

        self._history: List[ContextEntry] = []
        self._current_context: Dict[str, Any] = {}
        self._token_count = 0
        self._snapshotted_at: Optional[int] = None
        self._pending: Set[asyncio.Task[Optional[str]]] = set()
        self.last_snapshot_task: Optional[asyncio.Task[Optional[str]]] = None

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    @property
    def token_count(self) -> int:
        return self._token_count

    @property
    def current_context(self) -> Dict[str, Any]:
        return dict(self._current_context)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def update(self, user_input: str, context_patch: Optional[Mapping[str, Any]] = None) -> None:
        """Record a user request and merge ``context_patch`` into the current context."""
        self._append(ContextEntry(role=ContextRole.user, content=user_input))
        if context_patch:
            self._current_context.update(to_jsonable(dict(context_patch)))
        self.update_token_count()

    def add_step_result(self, step: PlanStep, result: Any) -> None:
        self._append(ContextEntry(role=ContextRole.assistant, tool=step.tool, payload=to_jsonable(result)))
        self.update_token_count()

    def add_feedback(self, step: PlanStep, error: str) -> None:
        self._append(
            ContextEntry(
                role=ContextRole.system,
                tool=step.tool,
                content=f"Step '{step.description}' failed: {error}",
                payload={"tool": step.tool, "error": error, "params": to_jsonable(step.params)},
            )
        )
        self.update_token_count()

    def clear(self) -> None:
        self._history = []
        self._current_context = {}
        self._token_count = 0
        self._snapshotted_at = None

    def _append(self, entry: ContextEntry) -> None:
        self._history.append(entry)

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def get_history(self) -> List[ContextEntry]:
        return list(self._history)

    def get_recent_history(self, max_tokens: Optional[int] = None) -> List[ContextEntry]:
        """
        Return the most recent entries that fit ``max_tokens``.

        The full history is returned when it fits. Otherwise entries are taken
        from the newest backwards until the next one would exceed the budget.
        The result is in chronological order.
        """
        budget = self._max_tokens if max_tokens is None else max_tokens
        costs = [estimate_tokens(entry) for entry in self._history]
        if sum(costs) <= budget:
            return list(self._history)

        selected: List[ContextEntry] = []
        total = 0
        for entry, cost in zip(reversed(self._history), reversed(costs)):
            if total + cost > budget:
                break
            selected.append(entry)
            total += cost
        selected.reverse()
        return selected

    def get_formatted_history(self, max_tokens: Optional[int] = None) -> List[Dict[str, str]]:
        """Role-tagged ``{role, content}`` messages for model consumption."""
        return [
            {"role": entry.role.value, "content": _format_entry(entry)}
            for entry in self.get_recent_history(max_tokens)
        ]

    def get_summary(self) -> Dict[str, int]:
        return {
            "history_items": len(self._history),
            "token_count": self._token_count,
            "context_size": len(self._current_context),
        }

    # ------------------------------------------------------------------
    # Token accounting
    # ------------------------------------------------------------------

    def update_token_count(self) -> int:
        """
        Recompute the running token total.

        Schedules a detached snapshot when the total is strictly above the
        persistence threshold and this exact total has not been snapshotted
        yet, so repeated calls without a mutation do nothing further.
        """
        self._token_count = self._compute_tokens()
        threshold = self._max_tokens * self._persist_threshold
        if self._token_count > threshold and self._snapshotted_at != self._token_count:
            self._snapshotted_at = self._token_count
            logger.info(
                f"Context size {self._token_count} reached {self._persist_threshold:.0%} "
                f"of {self._max_tokens}; scheduling snapshot"
            )
            self._schedule_snapshot()
        return self._token_count

    def _compute_tokens(self) -> int:
        history = sum(estimate_tokens(entry) for entry in self._history)
        return history + estimate_tokens(self._current_context or None)

    def _schedule_snapshot(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; automatic context snapshot skipped")
            return
        snapshot = self._snapshot()
        task = loop.create_task(self.persist_to_disk(snapshot))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        self.last_snapshot_task = task

    async def wait_for_snapshots(self) -> None:
        """Await every snapshot task that is still running."""
        if self._pending:
            await asyncio.gather(*list(self._pending))

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _snapshot(self) -> ContextSnapshot:
        return ContextSnapshot(history=list(self._history), current_context=dict(self._current_context))

    async def persist_to_disk(self, snapshot: Optional[ContextSnapshot] = None) -> Optional[str]:
        """
        Write a snapshot of the full state.

        Returns:
            The location written to, or None when the write failed.
        """
        snapshot = snapshot or self._snapshot()
        path = f"{self._snapshot_dir}/context_{int(time.time() * 1000)}_{uuid4().hex[:8]}.json"
        try:
            location = await self._write_snapshot(path, snapshot)
        except PersistenceError as exc:
            logger.error(f"Context snapshot failed: {exc}")
            return None
        logger.info(f"Context snapshot written to {location}")
        return location

    async def _write_snapshot(self, path: str, snapshot: ContextSnapshot) -> str:
        try:
            return await self._storage.write(path, snapshot.model_dump_json(indent=2))
        except Exception as exc:
            raise PersistenceError(f"could not write {path}: {exc}", path=path) from exc

    async def load_from_disk(self, path: str) -> bool:
        """
        Replace history and current context with the snapshot at ``path``.

        On any read or parse error the store is reset to empty.

        Returns:
            True when the snapshot was loaded.
        """
        try:
            snapshot = await self._read_snapshot(path)
        except ContextLoadError as exc:
            logger.error(f"Context load failed, resetting to empty: {exc}")
            self.clear()
            return False

        self._history = list(snapshot.history)
        self._current_context = dict(snapshot.current_context)
        self._token_count = self._compute_tokens()
        self._snapshotted_at = self._token_count
        logger.info(f"Loaded {len(self._history)} history entries from {path}")
        return True

    async def _read_snapshot(self, path: str) -> ContextSnapshot:
        try:
            blob = await self._storage.read(path)
            return ContextSnapshot.model_validate_json(blob)
        except Exception as exc:
            raise ContextLoadError(f"could not load {path}: {exc}", path=path) from exc


def _format_entry(entry: ContextEntry) -> str:
    if entry.role == ContextRole.assistant:
        payload = entry.payload
        if isinstance(payload, dict) and isinstance(payload.get("text"), str):
            return payload["text"]
        if isinstance(payload, str):
            return payload
        return f"Used {entry.tool} tool: {json.dumps(payload, default=str)}"
    return entry.content or ""
