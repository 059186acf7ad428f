"""
Incidents - Types.

============================================================
PURPOSE
============================================================
All type definitions for the incident lifecycle engine.

Severity, status and timeline entry type are CLOSED sets.
Raw strings are converted with `parse()`, which is the only
place an unrecognized value can be rejected. Past that point
every decision works on enum members.

============================================================
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from core.exceptions import InvalidArgument


def _parse_member(enum_cls, value: Any, field_name: str):
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value)
        except ValueError:
            pass
    allowed = ", ".join(m.value for m in enum_cls)
    raise InvalidArgument(
        field=field_name,
        message=f"Invalid {field_name}. Must be one of: {allowed}",
        actual=value,
    )


# ============================================================
# SEVERITY
# ============================================================

class IncidentSeverity(Enum):
    """
    Incident severity.

    Ordered by decreasing urgency: SEV1 is the most urgent.
    """

    SEV1 = "sev1"
    """Critical - major outage."""

    SEV2 = "sev2"
    """High - significant impact."""

    SEV3 = "sev3"
    """Medium - limited impact."""

    SEV4 = "sev4"
    """Low - minor issue."""

    @classmethod
    def parse(cls, value: Any) -> "IncidentSeverity":
        return _parse_member(cls, value, "severity")

    @property
    def label(self) -> str:
        return self.value.upper()


# ============================================================
# STATUS
# ============================================================

class IncidentStatus(Enum):
    """
    Incident lifecycle status.

    See state_machine.VALID_TRANSITIONS for the legal edges.
    """

    OPEN = "open"
    INVESTIGATING = "investigating"
    MITIGATED = "mitigated"
    RESOLVED = "resolved"

    @classmethod
    def parse(cls, value: Any) -> "IncidentStatus":
        return _parse_member(cls, value, "status")

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]

    def is_resolved(self) -> bool:
        return self is IncidentStatus.RESOLVED


_STATUS_LABELS = {
    IncidentStatus.OPEN: "Open",
    IncidentStatus.INVESTIGATING: "Investigating",
    IncidentStatus.MITIGATED: "Mitigated",
    IncidentStatus.RESOLVED: "Resolved",
}


# ============================================================
# TIMELINE ENTRY TYPE
# ============================================================

class TimelineEntryType(Enum):
    """Kind of timeline entry."""

    NOTE = "note"
    """Free-form color. Never used by postmortem synthesis."""

    ACTION = "action"
    """Something the responders did."""

    DECISION = "decision"
    """A call the responders made."""

    OBSERVATION = "observation"
    """Something the responders saw."""

    @classmethod
    def parse(cls, value: Any) -> "TimelineEntryType":
        return _parse_member(cls, value, "entry_type")

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def icon(self) -> str:
        return _ENTRY_ICONS[self]


_ENTRY_ICONS = {
    TimelineEntryType.NOTE: "\U0001F4DD",
    TimelineEntryType.ACTION: "\u26A1",
    TimelineEntryType.DECISION: "\U0001F3AF",
    TimelineEntryType.OBSERVATION: "\U0001F441\uFE0F",
}


# ============================================================
# RECORDS
# ============================================================

def _iso(dt: Optional[datetime]) -> Optional[str]:
    return dt.isoformat() if dt else None


@dataclass
class Incident:
    """An operational incident tracked against a service."""

    incident_id: str
    service_id: str
    title: str
    severity: IncidentSeverity
    status: IncidentStatus
    started_at: datetime
    ended_at: Optional[datetime] = None
    summary: Optional[str] = None
    runbook_id: Optional[str] = None
    runbook_title: Optional[str] = None
    owner_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def duration(self):
        """Elapsed time between start and end, None while unresolved."""
        if self.ended_at is None:
            return None
        return self.ended_at - self.started_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incident_id": self.incident_id,
            "service_id": self.service_id,
            "title": self.title,
            "severity": self.severity.value,
            "status": self.status.value,
            "started_at": _iso(self.started_at),
            "ended_at": _iso(self.ended_at),
            "summary": self.summary,
            "runbook_id": self.runbook_id,
            "runbook_title": self.runbook_title,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class TimelineEntry:
    """One immutable timeline record."""

    entry_id: str
    incident_id: str
    entry_type: TimelineEntryType
    occurred_at: datetime
    body: str
    created_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "entry_id": self.entry_id,
            "incident_id": self.incident_id,
            "entry_type": self.entry_type.value,
            "occurred_at": _iso(self.occurred_at),
            "body": self.body,
            "created_at": _iso(self.created_at),
        }


@dataclass
class PostmortemSections:
    """The five markdown sections of a postmortem."""

    impact: Optional[str] = None
    root_cause: Optional[str] = None
    detection: Optional[str] = None
    resolution: Optional[str] = None
    action_items: Optional[str] = None

    SECTION_NAMES = ("impact", "root_cause", "detection", "resolution", "action_items")

    def non_empty(self):
        """Yield (name, text) for sections holding non-whitespace text, in fixed order."""
        for name in self.SECTION_NAMES:
            text = getattr(self, name)
            if text and text.strip():
                yield name, text


@dataclass
class Postmortem:
    """Retrospective document tied 1:1 to an incident."""

    postmortem_id: str
    incident_id: str
    sections: PostmortemSections = field(default_factory=PostmortemSections)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "postmortem_id": self.postmortem_id,
            "incident_id": self.incident_id,
            "impact": self.sections.impact,
            "root_cause": self.sections.root_cause,
            "detection": self.sections.detection,
            "resolution": self.sections.resolution,
            "action_items": self.sections.action_items,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a successful status transition."""

    incident_id: str
    previous_status: IncidentStatus
    new_status: IncidentStatus
    ended_at: Optional[datetime]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "incident_id": self.incident_id,
            "previous_status": self.previous_status.value,
            "new_status": self.new_status.value,
            "ended_at": _iso(self.ended_at),
        }
