"""
Tests for the append-only timeline log.
"""

import pytest

from core.exceptions import InvalidArgument, NotFound
from incidents.schemas import TimelineEntryCreate
from incidents.timeline import TimelineLog
from incidents.types import TimelineEntryType


class TestAppend:
    """Appending entries."""

    def test_append_returns_stored_entry(self, timeline, open_incident, clock):
        entry = timeline.append(open_incident.incident_id, "observation", "Error rate at 12%")

        assert entry.entry_type is TimelineEntryType.OBSERVATION
        assert entry.body == "Error rate at 12%"
        assert entry.incident_id == open_incident.incident_id
        assert entry.occurred_at == clock.now()
        assert entry.created_at == clock.now()

    def test_occurred_at_comes_from_clock(self, timeline, open_incident, clock):
        clock.advance(minutes=42)
        entry = timeline.append(open_incident.incident_id, "note", "Paged on-call")
        assert entry.occurred_at == clock.now()

    @pytest.mark.parametrize("entry_type", ["DECISION", "Note", " action", "observation "])
    def test_entry_type_must_match_exactly(self, timeline, open_incident, entry_type):
        with pytest.raises(InvalidArgument) as exc_info:
            timeline.append(open_incident.incident_id, entry_type, "Roll back")
        assert exc_info.value.field == "entry_type"
        assert timeline.list_for(open_incident.incident_id) == []

    def test_unknown_entry_type_rejected(self, timeline, open_incident):
        with pytest.raises(InvalidArgument) as exc_info:
            timeline.append(open_incident.incident_id, "comment", "hello")
        assert exc_info.value.field == "entry_type"

    @pytest.mark.parametrize("body", ["", "   ", "\n\t"])
    def test_blank_body_rejected(self, timeline, open_incident, body):
        with pytest.raises(InvalidArgument) as exc_info:
            timeline.append(open_incident.incident_id, "note", body)
        assert exc_info.value.field == "body"

    def test_rejected_append_writes_nothing(self, timeline, open_incident):
        with pytest.raises(InvalidArgument):
            timeline.append(open_incident.incident_id, "note", " ")
        assert timeline.list_for(open_incident.incident_id) == []

    def test_unknown_incident(self, timeline):
        with pytest.raises(NotFound):
            timeline.append("missing", "note", "text")

    def test_append_from_schema(self, timeline, open_incident):
        data = TimelineEntryCreate(entry_type="action", body="Restarted pods")
        entry = timeline.append_from(open_incident.incident_id, data)
        assert entry.entry_type is TimelineEntryType.ACTION


class TestListFor:
    """Reading the log back."""

    def test_empty_log(self, timeline, open_incident):
        assert timeline.list_for(open_incident.incident_id) == []

    def test_unknown_incident(self, timeline):
        with pytest.raises(NotFound):
            timeline.list_for("missing")

    def test_n_appends_give_n_entries_in_order(self, timeline, open_incident, clock):
        bodies = [f"step {i}" for i in range(5)]
        for body in bodies:
            timeline.append(open_incident.incident_id, "action", body)
            clock.advance(minutes=1)

        entries = timeline.list_for(open_incident.incident_id)

        assert [e.body for e in entries] == bodies
        times = [e.occurred_at for e in entries]
        assert times == sorted(times)

    def test_same_tick_appends_keep_insertion_order(self, timeline, open_incident):
        for body in ("first", "second", "third"):
            timeline.append(open_incident.incident_id, "note", body)

        entries = timeline.list_for(open_incident.incident_id)
        assert [e.body for e in entries] == ["first", "second", "third"]

    def test_entries_are_scoped_to_incident(self, timeline, incident_service, open_incident, clock):
        other = incident_service.create("svc-api", "Other", "sev4", clock.now())
        timeline.append(open_incident.incident_id, "note", "mine")
        timeline.append(other.incident_id, "note", "theirs")

        assert [e.body for e in timeline.list_for(open_incident.incident_id)] == ["mine"]

    def test_entries_unchanged_after_more_appends(self, timeline, open_incident, clock):
        first = timeline.append(open_incident.incident_id, "observation", "original")
        clock.advance(minutes=5)
        timeline.append(open_incident.incident_id, "note", "later")

        stored = timeline.list_for(open_incident.incident_id)[0]
        assert stored.entry_id == first.entry_id
        assert stored.body == first.body
        assert stored.occurred_at == first.occurred_at

    def test_no_update_or_delete(self):
        assert not hasattr(TimelineLog, "update")
        assert not hasattr(TimelineLog, "delete")


class TestOwnerScoping:

    def test_other_owner_sees_not_found(self, session, clock):
        from incidents.service import IncidentService

        owned = IncidentService(session, clock=clock, owner_id="alice").create(
            "svc-api", "Alice's incident", "sev3", clock.now()
        )
        bob = TimelineLog(session, clock=clock, owner_id="bob")

        with pytest.raises(NotFound):
            bob.append(owned.incident_id, "note", "peek")
