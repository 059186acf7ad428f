"""
Incidents - Repository.

============================================================
PURPOSE
============================================================
Database operations for incident persistence.

RESPONSIBILITIES:
- Save/load incidents
- Conditional (compare-and-swap) status writes
- Insert/list timeline entries
- Save/load postmortems

Repositories add and flush. Committing is the calling
service's job, so one operation is one transaction.

============================================================
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update, desc
from sqlalchemy.orm import Session

from core.clock import ensure_utc
from database.models import IncidentModel, TimelineEntryModel, PostmortemModel

from .types import (
    Incident,
    IncidentSeverity,
    IncidentStatus,
    Postmortem,
    PostmortemSections,
    TimelineEntry,
    TimelineEntryType,
)


logger = logging.getLogger(__name__)


# ============================================================
# INCIDENT REPOSITORY
# ============================================================

class IncidentRepository:
    """Repository for incident rows."""

    def __init__(self, session: Session):
        """
        Initialize repository.

        Args:
            session: SQLAlchemy session
        """
        self._session = session

    def add(self, incident: Incident) -> IncidentModel:
        """Insert a new incident."""
        model = IncidentModel(
            incident_id=incident.incident_id,
            service_id=incident.service_id,
            owner_id=incident.owner_id,
            runbook_id=incident.runbook_id,
            runbook_title=incident.runbook_title,
            title=incident.title,
            severity=incident.severity.value,
            status=incident.status.value,
            summary=incident.summary,
            started_at=incident.started_at,
            ended_at=incident.ended_at,
            created_at=incident.created_at,
            updated_at=incident.updated_at,
        )
        self._session.add(model)
        self._session.flush()
        return model

    def get_model(
        self,
        incident_id: str,
        owner_id: Optional[str] = None,
    ) -> Optional[IncidentModel]:
        """Get incident model by ID, optionally scoped to an owner."""
        query = select(IncidentModel).where(IncidentModel.incident_id == incident_id)
        if owner_id is not None:
            query = query.where(IncidentModel.owner_id == owner_id)
        return self._session.execute(query).scalar_one_or_none()

    def get(self, incident_id: str, owner_id: Optional[str] = None) -> Optional[Incident]:
        """Get incident record by ID."""
        model = self.get_model(incident_id, owner_id)
        if model:
            return model_to_incident(model)
        return None

    def list_for_service(
        self,
        service_id: str,
        owner_id: Optional[str] = None,
        limit: int = 100,
    ) -> List[Incident]:
        """Incidents of a service, newest start first."""
        query = select(IncidentModel).where(IncidentModel.service_id == service_id)
        if owner_id is not None:
            query = query.where(IncidentModel.owner_id == owner_id)
        query = query.order_by(desc(IncidentModel.started_at)).limit(limit)
        return [model_to_incident(m) for m in self._session.execute(query).scalars()]

    def apply_changes(
        self,
        model: IncidentModel,
        changes: Dict[str, Any],
        now: datetime,
    ) -> IncidentModel:
        """Write already-validated attribute changes."""
        for name, value in changes.items():
            setattr(model, name, value)
        model.updated_at = now
        self._session.flush()
        return model

    def compare_and_set_status(
        self,
        incident_id: str,
        expected_status: IncidentStatus,
        new_status: IncidentStatus,
        ended_at: Optional[datetime],
        now: datetime,
    ) -> bool:
        """
        Conditionally write a status change.

        The UPDATE only matches while the row still holds
        `expected_status`, so of two racing transitions from the
        same status at most one lands.

        Returns:
            True if the row was updated
        """
        result = self._session.execute(
            update(IncidentModel)
            .where(
                IncidentModel.incident_id == incident_id,
                IncidentModel.status == expected_status.value,
            )
            .values(
                status=new_status.value,
                ended_at=ended_at,
                updated_at=now,
            )
        )
        return result.rowcount == 1

    def refresh(self, model: IncidentModel) -> IncidentModel:
        """Reload a model from the database."""
        self._session.refresh(model)
        return model

    def delete(self, model: IncidentModel) -> None:
        """Delete an incident; timeline and postmortem cascade."""
        self._session.delete(model)
        self._session.flush()


# ============================================================
# TIMELINE REPOSITORY
# ============================================================

class TimelineRepository:
    """
    Repository for timeline entries.

    Exposes insert and read only.
    """

    def __init__(self, session: Session):
        self._session = session

    def insert(
        self,
        incident_id: str,
        entry_type: TimelineEntryType,
        body: str,
        occurred_at: datetime,
        created_at: datetime,
    ) -> TimelineEntry:
        """Insert one entry."""
        model = TimelineEntryModel(
            entry_id=str(uuid.uuid4()),
            incident_id=incident_id,
            entry_type=entry_type.value,
            body=body,
            occurred_at=occurred_at,
            created_at=created_at,
        )
        self._session.add(model)
        self._session.flush()
        return model_to_entry(model)

    def list_for_incident(self, incident_id: str) -> List[TimelineEntry]:
        """All entries of an incident, oldest first."""
        result = self._session.execute(
            select(TimelineEntryModel)
            .where(TimelineEntryModel.incident_id == incident_id)
            .order_by(
                TimelineEntryModel.occurred_at,
                TimelineEntryModel.created_at,
                TimelineEntryModel.id,
            )
        )
        return [model_to_entry(m) for m in result.scalars()]


# ============================================================
# POSTMORTEM REPOSITORY
# ============================================================

class PostmortemRepository:
    """Repository for postmortems."""

    def __init__(self, session: Session):
        self._session = session

    def get_model(self, incident_id: str) -> Optional[PostmortemModel]:
        result = self._session.execute(
            select(PostmortemModel).where(PostmortemModel.incident_id == incident_id)
        )
        return result.scalar_one_or_none()

    def get(self, incident_id: str) -> Optional[Postmortem]:
        model = self.get_model(incident_id)
        if model:
            return model_to_postmortem(model)
        return None

    def add(
        self,
        incident_id: str,
        sections: PostmortemSections,
        now: datetime,
    ) -> PostmortemModel:
        """Insert a postmortem. Fails with IntegrityError if one already exists."""
        model = PostmortemModel(
            postmortem_id=str(uuid.uuid4()),
            incident_id=incident_id,
            impact_markdown=sections.impact,
            root_cause_markdown=sections.root_cause,
            detection_markdown=sections.detection,
            resolution_markdown=sections.resolution,
            action_items_markdown=sections.action_items,
            created_at=now,
            updated_at=now,
        )
        self._session.add(model)
        self._session.flush()
        return model

    def patch(
        self,
        model: PostmortemModel,
        changes: Dict[str, str],
        now: datetime,
    ) -> PostmortemModel:
        """Overwrite only the supplied sections."""
        for name, value in changes.items():
            setattr(model, f"{name}_markdown", value)
        model.updated_at = now
        self._session.flush()
        return model


# ============================================================
# MODEL CONVERSION
# ============================================================

def model_to_incident(model: IncidentModel) -> Incident:
    """Convert model to incident record."""
    return Incident(
        incident_id=model.incident_id,
        service_id=model.service_id,
        title=model.title,
        severity=IncidentSeverity(model.severity),
        status=IncidentStatus(model.status),
        started_at=ensure_utc(model.started_at),
        ended_at=ensure_utc(model.ended_at),
        summary=model.summary,
        runbook_id=model.runbook_id,
        runbook_title=model.runbook_title,
        owner_id=model.owner_id,
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
    )


def model_to_entry(model: TimelineEntryModel) -> TimelineEntry:
    """Convert model to timeline entry record."""
    return TimelineEntry(
        entry_id=model.entry_id,
        incident_id=model.incident_id,
        entry_type=TimelineEntryType(model.entry_type),
        occurred_at=ensure_utc(model.occurred_at),
        body=model.body,
        created_at=ensure_utc(model.created_at),
    )


def model_to_postmortem(model: PostmortemModel) -> Postmortem:
    """Convert model to postmortem record."""
    return Postmortem(
        postmortem_id=model.postmortem_id,
        incident_id=model.incident_id,
        sections=PostmortemSections(
            impact=model.impact_markdown,
            root_cause=model.root_cause_markdown,
            detection=model.detection_markdown,
            resolution=model.resolution_markdown,
            action_items=model.action_items_markdown,
        ),
        created_at=ensure_utc(model.created_at),
        updated_at=ensure_utc(model.updated_at),
    )
