"""
Reporting - Postmortem Synthesizer.

============================================================
PURPOSE
============================================================
Turns an incident and its timeline into a draft postmortem,
exactly once.

SYNTHESIS (templated from structured facts):
- Impact:       summary, severity, start/end, duration
- Root Cause:   every DECISION entry, time-stamped
- Detection:    every OBSERVATION entry, time-stamped
- Resolution:   runbook title, then every ACTION entry
- Action Items: empty table template
NOTE entries are never used.

INVARIANTS:
- A stored postmortem is never re-derived, even after new
  timeline entries are appended
- get_or_synthesize only materializes for RESOLVED incidents
- update materializes first (any status), then patches the
  supplied sections

============================================================
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.clock import ClockProtocol, get_clock
from core.exceptions import InvalidArgument, NotFound, PersistenceError
from database.engine import managed_transaction
from database.models import IncidentModel, PostmortemModel
from incidents.collaborators import RunbookCatalog, resolve_runbook_title
from incidents.repository import (
    IncidentRepository,
    PostmortemRepository,
    TimelineRepository,
    model_to_incident,
    model_to_postmortem,
)
from incidents.schemas import PostmortemUpdate
from incidents.types import (
    Incident,
    IncidentStatus,
    Postmortem,
    PostmortemSections,
    TimelineEntry,
    TimelineEntryType,
)

from .formatting import format_clock_time, format_duration, format_timestamp


logger = logging.getLogger(__name__)


# ============================================================
# SECTION TEMPLATES
# ============================================================

IMPACT_PROMPT = "*Action needed: describe the customer and business impact.*"
ROOT_CAUSE_PROMPT = "*Action needed: identify the root cause using 5 Whys or a similar technique.*"
DETECTION_PROMPT = "*Action needed: how was the incident detected? Could detection be improved?*"
RESOLUTION_PROMPT = "*Action needed: describe the resolution steps and confirm the fix.*"
ACTION_ITEMS_PROMPT = "*Action needed: list follow-up actions to prevent recurrence.*"

ACTION_ITEMS_TABLE = (
    "| Action | Owner | Due Date | Status |",
    "|--------|-------|----------|--------|",
    "| *Add action items* | | | |",
)


def _entries_of(entries: Iterable[TimelineEntry], entry_type: TimelineEntryType) -> List[TimelineEntry]:
    return [e for e in entries if e.entry_type is entry_type]


def _bullets(entries: Iterable[TimelineEntry]) -> List[str]:
    return [f"- [{format_clock_time(e.occurred_at)}] {e.body}" for e in entries]


def _join(lines: List[str]) -> str:
    return "\n".join(lines) + "\n"


def _impact_section(incident: Incident) -> str:
    lines = ["## Impact Summary", ""]

    if incident.summary and incident.summary.strip():
        lines += [incident.summary, ""]

    lines.append(f"- **Severity**: {incident.severity.label}")
    lines.append(f"- **Started**: {format_timestamp(incident.started_at)} UTC")
    if incident.ended_at is not None:
        lines.append(f"- **Ended**: {format_timestamp(incident.ended_at)} UTC")
        lines.append(f"- **Duration**: {format_duration(incident.duration)}")

    lines += ["", IMPACT_PROMPT]
    return _join(lines)


def _entry_section(heading: str, subheading: str, entries: List[TimelineEntry], prompt: str) -> str:
    lines = [heading, ""]
    if entries:
        lines.append(subheading)
        lines += _bullets(entries)
        lines.append("")
    lines.append(prompt)
    return _join(lines)


def _resolution_section(runbook_title: Optional[str], actions: List[TimelineEntry]) -> str:
    lines = ["## Resolution", ""]
    if runbook_title:
        lines += ["### Runbook Reference", f"- **Runbook**: {runbook_title}", ""]
    if actions:
        lines.append("### Actions Taken")
        lines += _bullets(actions)
        lines.append("")
    lines.append(RESOLUTION_PROMPT)
    return _join(lines)


def _action_items_section() -> str:
    return _join(["## Action Items", "", *ACTION_ITEMS_TABLE, "", ACTION_ITEMS_PROMPT])


def synthesize_postmortem(
    incident: Incident,
    entries: Iterable[TimelineEntry],
    runbook_title: Optional[str] = None,
) -> PostmortemSections:
    """
    Build the five draft sections.

    Pure: same incident and entries give the same text.

    Args:
        incident: The incident
        entries: Its timeline, in log order
        runbook_title: Overrides the title cached on the incident

    Returns:
        PostmortemSections
    """
    entries = list(entries)
    title = runbook_title if runbook_title is not None else incident.runbook_title

    return PostmortemSections(
        impact=_impact_section(incident),
        root_cause=_entry_section(
            "## Root Cause Analysis",
            "### Decisions Made During Incident",
            _entries_of(entries, TimelineEntryType.DECISION),
            ROOT_CAUSE_PROMPT,
        ),
        detection=_entry_section(
            "## Detection",
            "### Observations During Incident",
            _entries_of(entries, TimelineEntryType.OBSERVATION),
            DETECTION_PROMPT,
        ),
        resolution=_resolution_section(title, _entries_of(entries, TimelineEntryType.ACTION)),
        action_items=_action_items_section(),
    )


# ============================================================
# POSTMORTEM SERVICE
# ============================================================

class PostmortemService:
    """Lazy, one-shot postmortem materialization plus partial edits."""

    def __init__(
        self,
        session: Session,
        clock: Optional[ClockProtocol] = None,
        owner_id: Optional[str] = None,
        runbook_catalog: Optional[RunbookCatalog] = None,
    ):
        self.session = session
        self.clock = clock or get_clock()
        self.owner_id = owner_id
        self.runbook_catalog = runbook_catalog
        self._incidents = IncidentRepository(session)
        self._entries = TimelineRepository(session)
        self._postmortems = PostmortemRepository(session)

    def _load_incident(self, incident_id: str) -> IncidentModel:
        model = self._incidents.get_model(incident_id, self.owner_id)
        if model is None:
            raise NotFound("Incident", incident_id)
        return model

    def _runbook_title(self, incident: Incident) -> Optional[str]:
        return resolve_runbook_title(self.runbook_catalog, incident.runbook_id, incident.runbook_title)

    def _materialize(self, incident_model: IncidentModel) -> PostmortemModel:
        """Synthesize and store. If a concurrent caller stored one first, return theirs."""
        incident = model_to_incident(incident_model)
        entries = self._entries.list_for_incident(incident.incident_id)
        sections = synthesize_postmortem(incident, entries, self._runbook_title(incident))

        try:
            with managed_transaction(self.session):
                model = self._postmortems.add(incident.incident_id, sections, self.clock.now())
        except PersistenceError as e:
            if not isinstance(e.cause, IntegrityError):
                raise
            existing = self._postmortems.get_model(incident.incident_id)
            if existing is None:
                raise
            logger.warning(f"Postmortem for incident {incident.incident_id} was created concurrently")
            return existing

        logger.info(
            f"Postmortem synthesized: incident={incident.incident_id} "
            f"entries_used={len([e for e in entries if e.entry_type is not TimelineEntryType.NOTE])}"
        )
        return model

    def get_or_synthesize(self, incident_id: str) -> Postmortem:
        """
        Return the stored postmortem, synthesizing it for a resolved incident.

        Raises:
            NotFound: Incident missing, or not resolved and no postmortem stored
        """
        incident_model = self._load_incident(incident_id)

        existing = self._postmortems.get_model(incident_id)
        if existing is not None:
            return model_to_postmortem(existing)

        if IncidentStatus(incident_model.status) is not IncidentStatus.RESOLVED:
            raise NotFound("Postmortem", incident_id)

        return model_to_postmortem(self._materialize(incident_model))

    def get(self, incident_id: str) -> Optional[Postmortem]:
        """Stored postmortem without synthesis, or None."""
        self._load_incident(incident_id)
        return self._postmortems.get(incident_id)

    def update(
        self,
        incident_id: str,
        patch: Union[PostmortemUpdate, Dict[str, Any]],
    ) -> Postmortem:
        """
        Materialize if needed (any status), then apply non-null sections.

        Raises:
            NotFound: Incident missing or not visible
            InvalidArgument: Patch is malformed
        """
        if isinstance(patch, dict):
            try:
                patch = PostmortemUpdate.model_validate(patch)
            except ValidationError as e:
                first = e.errors()[0]
                field = str(first["loc"][0]) if first.get("loc") else "payload"
                raise InvalidArgument(field=field, message=first.get("msg", "Invalid value")) from e

        incident_model = self._load_incident(incident_id)

        model = self._postmortems.get_model(incident_id)
        if model is None:
            model = self._materialize(incident_model)

        changes = patch.changes()
        if changes:
            with managed_transaction(self.session):
                self._postmortems.patch(model, changes, self.clock.now())
            logger.info(f"Postmortem updated: incident={incident_id} sections={sorted(changes)}")

        return model_to_postmortem(model)
