from __future__ import annotations

"""Repository interface contracts.

The orchestrator depends on these Protocols instead of concrete persistence
implementations.

Contract guidelines
-------------------

- All methods are async.
- The event log is append-only; records are never updated.
- ``save_event`` reports failure through its return value instead of
  raising, so a broken store never fails an interaction.
"""

from typing import Optional, Protocol

from ..schemas.domain import EventFilter, EventRecord


class EventLog(Protocol):
    """Persist and query one record per completed interaction."""

    async def save_event(self, record: EventRecord) -> bool:
        """
        Append an event record.

        Args:
            record: The immutable event to persist.

        Returns:
            True if the record was stored, False otherwise.
        """
        ...

    async def get_events(self, event_filter: Optional[EventFilter] = None, limit: int = 100) -> list[EventRecord]:
        """
        Query events, newest first.

        Args:
            event_filter: Optional filter on type, success and time range (inclusive).
            limit: Max number of records to return.

        Returns:
            Matching records sorted by timestamp, newest first.
        """
        ...
