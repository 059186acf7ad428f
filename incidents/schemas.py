"""
Pydantic Schemas for incident engine request payloads.

Enum-valued fields stay plain strings here. They are converted
by the closed-set parsers in incidents.types so that a bad value
surfaces as InvalidArgument with the offending field name.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class IncidentCreate(BaseModel):
    """Payload for opening an incident."""
    service_id: str
    title: str
    severity: str
    started_at: datetime
    summary: Optional[str] = None
    runbook_id: Optional[str] = None


class IncidentUpdate(BaseModel):
    """
    Partial incident update.

    Only fields that are not None are applied. Status is not
    updatable here; use IncidentService.transition.
    """
    title: Optional[str] = None
    severity: Optional[str] = None
    summary: Optional[str] = None
    ended_at: Optional[datetime] = None

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class TimelineEntryCreate(BaseModel):
    """Payload for appending a timeline entry. occurred_at is never accepted."""
    entry_type: str
    body: str


class StatusTransitionRequest(BaseModel):
    status: str


class PostmortemUpdate(BaseModel):
    """Partial postmortem update. Sections left as None are untouched."""
    impact: Optional[str] = Field(None, description="Impact summary markdown")
    root_cause: Optional[str] = Field(None, description="Root cause analysis markdown")
    detection: Optional[str] = Field(None, description="Detection markdown")
    resolution: Optional[str] = Field(None, description="Resolution markdown")
    action_items: Optional[str] = Field(None, description="Action items markdown")

    def changes(self) -> Dict[str, str]:
        return self.model_dump(exclude_none=True)
