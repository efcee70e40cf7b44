from __future__ import annotations

"""In-memory ``EventLog`` used when no database is configured, and in tests."""

from datetime import datetime, timezone
from typing import List, Optional

from ..schemas.domain import EventFilter, EventRecord


def matches(record: EventRecord, event_filter: Optional[EventFilter]) -> bool:
    if event_filter is None:
        return True
    if event_filter.type is not None and record.type != event_filter.type:
        return False
    if event_filter.success is not None and record.success != event_filter.success:
        return False
    ts = _aware(record.timestamp)
    if event_filter.from_ is not None and ts < _aware(event_filter.from_):
        return False
    if event_filter.to is not None and ts > _aware(event_filter.to):
        return False
    return True


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


class InMemoryEventLog:
    def __init__(self) -> None:
        self._records: List[EventRecord] = []

    async def save_event(self, record: EventRecord) -> bool:
        self._records.append(record)
        return True

    async def get_events(self, event_filter: Optional[EventFilter] = None, limit: int = 100) -> list[EventRecord]:
        selected = [r for r in self._records if matches(r, event_filter)]
        selected.sort(key=lambda r: _aware(r.timestamp), reverse=True)
        return selected[:limit]
