"""Event log interface and its in-memory and SQL implementations.

The event log is the persistence boundary of the orchestrator: one immutable
``EventRecord`` per completed interaction.

The orchestrator is written against the ``EventLog`` Protocol so it can be
used with:

- ``InMemoryEventLog`` (default when no database URL is configured, tests),
- ``SqlEventLog`` (async SQLAlchemy; SQLite via aiosqlite or Postgres).
"""

from .interfaces import EventLog
from .memory import InMemoryEventLog
from .sql import SqlEventLog, create_all, create_engine, create_sessionmaker

__all__ = [
    "EventLog",
    "InMemoryEventLog",
    "SqlEventLog",
    "create_all",
    "create_engine",
    "create_sessionmaker",
]
