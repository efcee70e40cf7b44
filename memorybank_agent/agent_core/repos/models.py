from __future__ import annotations

"""SQLAlchemy ORM models for the event log.

These ORM models define the SQL schema used by ``repos.sql``.

JSON payloads use the generic ``JSON`` type, upgraded to ``JSONB`` on
Postgres, so the same metadata works on SQLite (tests, local use) and
Postgres.

Table names are prefixed with ``mb_`` to avoid collisions in shared databases.
"""

from datetime import datetime
from typing import Any, Dict, List

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

JsonType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class EventRow(Base):
    """Row model for ``mb_agent_events``.

    One row per completed interaction: the request, the plan that was
    executed, the per-step results and the reflection.
    """

    __tablename__ = "mb_agent_events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    type: Mapped[str] = mapped_column(String(64), index=True)

    input: Mapped[str] = mapped_column(Text)
    plan: Mapped[Dict[str, Any]] = mapped_column(JsonType)
    results: Mapped[List[Dict[str, Any]]] = mapped_column(JsonType)
    reflection: Mapped[Dict[str, Any]] = mapped_column(JsonType)

    success: Mapped[bool] = mapped_column(Boolean, index=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
