"""
Incident Store - ORM Models.

Tables:
- incidents: One row per incident, current status and lifecycle timestamps
- incident_timeline_entries: Append-only events owned by an incident
- postmortems: Zero or one retrospective per incident

Timeline entries and postmortems are deleted with their incident,
both through the ORM cascade and the foreign key ON DELETE rule.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .engine import Base


# =============================================================
# 1. INCIDENTS TABLE
# =============================================================

class IncidentModel(Base):
    """
    Persisted incident.

    status and ended_at only change through the conditional
    update in IncidentRepository.compare_and_set_status.
    """
    __tablename__ = "incidents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    incident_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False, index=True)

    # External references
    service_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    owner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    runbook_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    runbook_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # cached

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    severity: Mapped[str] = mapped_column(String(10), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open", index=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Lifecycle
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # Relationships
    timeline_entries: Mapped[List["TimelineEntryModel"]] = relationship(
        back_populates="incident",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    postmortem: Mapped[Optional["PostmortemModel"]] = relationship(
        back_populates="incident",
        cascade="all, delete-orphan",
        passive_deletes=True,
        uselist=False,
    )

    __table_args__ = (
        Index("idx_incidents_service_started", "service_id", "started_at"),
    )


# =============================================================
# 2. TIMELINE ENTRIES TABLE
# =============================================================

class TimelineEntryModel(Base):
    """
    One timeline event.

    Insert-only. Ordered by (occurred_at, created_at, id); the
    autoincrement id breaks ties between entries appended within
    the same clock tick.
    """
    __tablename__ = "incident_timeline_entries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    entry_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    incident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("incidents.incident_id", ondelete="CASCADE"),
        nullable=False,
    )

    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    body: Mapped[str] = mapped_column(Text, nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    incident: Mapped["IncidentModel"] = relationship(back_populates="timeline_entries")

    __table_args__ = (
        Index("idx_timeline_incident_occurred", "incident_id", "occurred_at", "created_at"),
    )


# =============================================================
# 3. POSTMORTEMS TABLE
# =============================================================

class PostmortemModel(Base):
    """
    Retrospective for one incident.

    The unique incident_id is the idempotence boundary for
    synthesis: a second materialization attempt fails on insert.
    """
    __tablename__ = "postmortems"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    postmortem_id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    incident_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("incidents.incident_id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    impact_markdown: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    root_cause_markdown: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    detection_markdown: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    resolution_markdown: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    action_items_markdown: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    incident: Mapped["IncidentModel"] = relationship(back_populates="postmortem")
