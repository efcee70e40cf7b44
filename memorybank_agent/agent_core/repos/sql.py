from __future__ import annotations

"""SQLAlchemy async event log.

Usage
-----

- Create an async engine with ``create_engine``.
- Create tables with ``create_all``.
- Create a session factory with ``create_sessionmaker``.
- Build the log with ``SqlEventLog(session_factory=...)``.

Transaction model
-----------------

Each method opens an ``AsyncSession``, performs its operation and commits,
so a record is durable when ``save_event`` returns True.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from ..errors import PersistenceError
from ..schemas.domain import EventFilter, EventRecord
from .interfaces import EventLog
from .models import Base, EventRow

logger = logging.getLogger(__name__)


def create_engine(db_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Plain SQLite URLs are rewritten to use the ``aiosqlite`` driver, e.g.
    ``sqlite:///events.db`` becomes ``sqlite+aiosqlite:///events.db``.
    """
    url = re.sub(r"^sqlite(?:\+[a-z0-9_]+)?://", "sqlite+aiosqlite://", db_url, count=1)
    return create_async_engine(url)


def create_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an ``async_sessionmaker`` with safe defaults for this project."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def create_all(engine: AsyncEngine) -> None:
    """Create all tables for the current ORM metadata."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


def _utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; every stored timestamp is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class SqlEventLog(EventLog):
    """SQL implementation of ``EventLog`` (append-only)."""

    session_factory: async_sessionmaker[AsyncSession]

    async def save_event(self, record: EventRecord) -> bool:
        """
        Append a new event.

        Args:
            record: The event domain object.

        Returns:
            True when committed; False when the write failed (the error is logged).
        """
        try:
            await self._insert(record)
        except PersistenceError as exc:
            logger.error(f"Failed to save event {record.id}: {exc}")
            return False
        return True

    async def _insert(self, record: EventRecord) -> None:
        try:
            async with self.session_factory() as s:
                s.add(
                    EventRow(
                        id=record.id,
                        type=record.type,
                        input=record.input,
                        plan=record.plan,
                        results=record.results,
                        reflection=record.reflection,
                        success=record.success,
                        timestamp=_utc(record.timestamp),
                    )
                )
                await s.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc)) from exc

    async def get_events(self, event_filter: Optional[EventFilter] = None, limit: int = 100) -> list[EventRecord]:
        """
        List events, newest first.

        Args:
            event_filter: Optional type/success/time-range filter.
            limit: Max number of events to return.
        """
        stmt = select(EventRow)
        if event_filter is not None:
            if event_filter.type is not None:
                stmt = stmt.where(EventRow.type == event_filter.type)
            if event_filter.success is not None:
                stmt = stmt.where(EventRow.success == event_filter.success)
            if event_filter.from_ is not None:
                stmt = stmt.where(EventRow.timestamp >= _utc(event_filter.from_))
            if event_filter.to is not None:
                stmt = stmt.where(EventRow.timestamp <= _utc(event_filter.to))
        stmt = stmt.order_by(EventRow.timestamp.desc()).limit(limit)

        async with self.session_factory() as s:
            result = await s.execute(stmt)
            rows = result.scalars().all()

        return [
            EventRecord(
                id=row.id,
                type=row.type,
                input=row.input,
                plan=row.plan,
                results=row.results,
                reflection=row.reflection,
                success=row.success,
                timestamp=_utc(row.timestamp),
            )
            for row in rows
        ]
