"""
Incidents - Timeline Log.

============================================================
PURPOSE
============================================================
Append-only, chronologically ordered record of what happened
during an incident.

INVARIANTS:
- occurred_at is assigned from the server clock at append time
- Entries are never updated or deleted through this interface
- list_for returns entries in non-decreasing occurred_at order,
  ties broken by insertion

============================================================
"""

import logging
from typing import List, Optional, Union

from sqlalchemy.orm import Session

from core.clock import ClockProtocol, get_clock
from core.exceptions import InvalidArgument, NotFound
from database.engine import managed_transaction

from .repository import IncidentRepository, TimelineRepository
from .schemas import TimelineEntryCreate
from .types import TimelineEntry, TimelineEntryType


logger = logging.getLogger(__name__)


class TimelineLog:
    """
    Timeline of one or more incidents, bound to a session.

    There is deliberately no update or delete.
    """

    def __init__(
        self,
        session: Session,
        clock: Optional[ClockProtocol] = None,
        owner_id: Optional[str] = None,
    ):
        self.session = session
        self.clock = clock or get_clock()
        self.owner_id = owner_id
        self._incidents = IncidentRepository(session)
        self._entries = TimelineRepository(session)

    def _require_incident(self, incident_id: str) -> None:
        if self._incidents.get_model(incident_id, self.owner_id) is None:
            raise NotFound("Incident", incident_id)

    def append(
        self,
        incident_id: str,
        entry_type: Union[str, TimelineEntryType],
        body: str,
    ) -> TimelineEntry:
        """
        Append one entry.

        Args:
            incident_id: Owning incident
            entry_type: note, action, decision or observation
            body: Markdown text, must not be blank

        Returns:
            The stored entry

        Raises:
            NotFound: Incident missing or not visible
            InvalidArgument: Unknown entry type or blank body
        """
        self._require_incident(incident_id)

        parsed_type = TimelineEntryType.parse(entry_type)
        if body is None or not body.strip():
            raise InvalidArgument(field="body", message="Body markdown is required")

        now = self.clock.now()
        with managed_transaction(self.session):
            entry = self._entries.insert(
                incident_id=incident_id,
                entry_type=parsed_type,
                body=body,
                occurred_at=now,
                created_at=now,
            )

        logger.info(
            f"Timeline entry appended: incident={incident_id} "
            f"type={parsed_type.value} entry={entry.entry_id}"
        )
        return entry

    def append_from(self, incident_id: str, data: TimelineEntryCreate) -> TimelineEntry:
        return self.append(incident_id, data.entry_type, data.body)

    def list_for(self, incident_id: str) -> List[TimelineEntry]:
        """All entries of an incident, oldest first. Empty list if none."""
        self._require_incident(incident_id)
        return self._entries.list_for_incident(incident_id)
