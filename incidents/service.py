"""
Incident Service.

This service handles:
- Opening incidents (with runbook auto-attach)
- Reading and listing incidents
- Partial updates of descriptive fields
- Status transitions through the state machine
- Administrative delete

Every public write runs in its own transaction on the
caller's session. Validation always precedes the first write.
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError
from sqlalchemy.orm import Session

from core.clock import ClockProtocol, ensure_utc, get_clock
from core.exceptions import InvalidArgument, InvalidTransition, NotFound
from database.engine import managed_transaction
from database.models import IncidentModel

from .collaborators import RunbookCatalog
from .repository import IncidentRepository, model_to_incident
from .schemas import IncidentCreate, IncidentUpdate, StatusTransitionRequest
from .state_machine import get_valid_transitions, plan_transition
from .types import (
    Incident,
    IncidentSeverity,
    IncidentStatus,
    TransitionResult,
)

logger = logging.getLogger(__name__)


# Attempts at the conditional status write before giving up
MAX_TRANSITION_ATTEMPTS = 3


def _validation_to_invalid_argument(error: ValidationError) -> InvalidArgument:
    first = error.errors()[0]
    field = str(first["loc"][0]) if first.get("loc") else "payload"
    return InvalidArgument(field=field, message=first.get("msg", "Invalid value"))


def _require_text(field: str, value: Optional[str]) -> str:
    if value is None or not value.strip():
        raise InvalidArgument(field=field, message=f"{field} is required")
    return value


# =============================================================
# INCIDENT SERVICE
# =============================================================

class IncidentService:
    """Service for the incident lifecycle."""

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

    # ---------------------------------------------------------
    # LOOKUP
    # ---------------------------------------------------------

    def load_model(self, incident_id: str) -> IncidentModel:
        """Load the incident row visible to this caller, or raise NotFound."""
        model = self._incidents.get_model(incident_id, self.owner_id)
        if model is None:
            raise NotFound("Incident", incident_id)
        return model

    def get(self, incident_id: str) -> Incident:
        return model_to_incident(self.load_model(incident_id))

    def list_for_service(self, service_id: str, limit: int = 100) -> List[Incident]:
        """Incidents of a service, most recently started first."""
        return self._incidents.list_for_service(service_id, self.owner_id, limit)

    # ---------------------------------------------------------
    # CREATE
    # ---------------------------------------------------------

    def create(
        self,
        service_id: str,
        title: str,
        severity: Union[str, IncidentSeverity],
        started_at: datetime,
        summary: Optional[str] = None,
        runbook_id: Optional[str] = None,
    ) -> Incident:
        """
        Open a new incident.

        The incident starts in OPEN with no ended_at. If no runbook
        is given and a catalog is wired, the service's latest
        runbook is attached.

        Raises:
            InvalidArgument: Empty service id or title, unknown severity
        """
        _require_text("service_id", service_id)
        _require_text("title", title)
        parsed_severity = IncidentSeverity.parse(severity)
        if started_at is None:
            raise InvalidArgument(field="started_at", message="started_at is required")

        runbook_title = None
        if self.runbook_catalog is not None:
            if runbook_id is None:
                latest = self.runbook_catalog.latest_for_service(service_id)
                if latest is not None:
                    runbook_id = latest.runbook_id
                    runbook_title = latest.title
            else:
                runbook_title = self.runbook_catalog.get_title(runbook_id)

        now = self.clock.now()
        incident = Incident(
            incident_id=str(uuid.uuid4()),
            service_id=service_id,
            title=title.strip(),
            severity=parsed_severity,
            status=IncidentStatus.OPEN,
            started_at=ensure_utc(started_at),
            ended_at=None,
            summary=summary,
            runbook_id=runbook_id,
            runbook_title=runbook_title,
            owner_id=self.owner_id,
            created_at=now,
            updated_at=now,
        )

        with managed_transaction(self.session):
            self._incidents.add(incident)

        logger.info(
            f"Incident created: {incident.incident_id} "
            f"service={service_id} severity={parsed_severity.value}"
        )
        return incident

    def create_from(self, data: IncidentCreate) -> Incident:
        """Open an incident from a validated payload."""
        return self.create(
            service_id=data.service_id,
            title=data.title,
            severity=data.severity,
            started_at=data.started_at,
            summary=data.summary,
            runbook_id=data.runbook_id,
        )

    # ---------------------------------------------------------
    # UPDATE
    # ---------------------------------------------------------

    def update(
        self,
        incident_id: str,
        patch: Union[IncidentUpdate, Dict[str, Any]],
    ) -> Incident:
        """
        Apply a partial update to title, severity, summary or ended_at.

        Fields that are None are left unchanged. ended_at may only
        be corrected on a resolved incident and never before
        started_at, so ended_at stays set exactly when resolved.

        Raises:
            NotFound: Incident missing or owned by someone else
            InvalidArgument: Any field fails validation
        """
        if isinstance(patch, dict):
            try:
                patch = IncidentUpdate.model_validate(patch)
            except ValidationError as e:
                raise _validation_to_invalid_argument(e) from e

        model = self.load_model(incident_id)
        requested = patch.changes()
        changes: Dict[str, Any] = {}

        if "title" in requested:
            changes["title"] = _require_text("title", requested["title"]).strip()

        if "severity" in requested:
            changes["severity"] = IncidentSeverity.parse(requested["severity"]).value

        if "summary" in requested:
            changes["summary"] = requested["summary"]

        if "ended_at" in requested:
            if not IncidentStatus(model.status).is_resolved():
                raise InvalidArgument(
                    field="ended_at",
                    message="ended_at can only be set on a resolved incident",
                )
            ended_at = ensure_utc(requested["ended_at"])
            if ended_at < ensure_utc(model.started_at):
                raise InvalidArgument(
                    field="ended_at",
                    message="ended_at cannot be earlier than started_at",
                    actual=ended_at.isoformat(),
                )
            changes["ended_at"] = ended_at

        if not changes:
            return model_to_incident(model)

        with managed_transaction(self.session):
            self._incidents.apply_changes(model, changes, self.clock.now())

        logger.info(f"Incident updated: {incident_id} fields={sorted(changes)}")
        return model_to_incident(model)

    # ---------------------------------------------------------
    # STATUS TRANSITION
    # ---------------------------------------------------------

    def transition(
        self,
        incident_id: str,
        target_status: Union[str, IncidentStatus],
    ) -> TransitionResult:
        """
        Move an incident to `target_status`.

        The write is conditional on the status that was read. If
        another writer changed it in between, the incident is
        re-read and the request is re-validated against the new
        status.

        Raises:
            InvalidArgument: Unknown status value
            NotFound: Incident missing or owned by someone else
            InvalidTransition: Edge not in the transition table
        """
        target = IncidentStatus.parse(target_status)

        for attempt in range(1, MAX_TRANSITION_ATTEMPTS + 1):
            model = self.load_model(incident_id)
            current = IncidentStatus(model.status)
            now = self.clock.now()
            plan = plan_transition(current, target, ensure_utc(model.ended_at), now)

            with managed_transaction(self.session):
                applied = self._incidents.compare_and_set_status(
                    incident_id=incident_id,
                    expected_status=plan.from_status,
                    new_status=plan.to_status,
                    ended_at=plan.ended_at,
                    now=now,
                )

            if applied:
                self._incidents.refresh(model)
                logger.info(
                    f"Incident {incident_id} status: "
                    f"{plan.from_status.value} -> {plan.to_status.value}"
                )
                return TransitionResult(
                    incident_id=incident_id,
                    previous_status=plan.from_status,
                    new_status=plan.to_status,
                    ended_at=plan.ended_at,
                )

            logger.warning(
                f"Concurrent status change on incident {incident_id} "
                f"(expected {current.value}, attempt {attempt})"
            )
            self.session.expire_all()

        current = IncidentStatus(self.load_model(incident_id).status)
        raise InvalidTransition(
            current_status=current.value,
            requested_status=target.value,
            valid_transitions=[s.value for s in get_valid_transitions(current)],
        )

    def transition_from(self, incident_id: str, data: StatusTransitionRequest) -> TransitionResult:
        """Move an incident to the status named in a validated payload."""
        return self.transition(incident_id, data.status)

    # ---------------------------------------------------------
    # DELETE
    # ---------------------------------------------------------

    def delete(self, incident_id: str) -> None:
        """Delete an incident together with its timeline and postmortem."""
        model = self.load_model(incident_id)

        with managed_transaction(self.session):
            self._incidents.delete(model)

        logger.info(f"Incident deleted: {incident_id}")
