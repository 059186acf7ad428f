"""
End-to-end incident lifecycle.

open -> investigating -> (observation, action) -> resolved
-> postmortem -> export
"""

from incidents.types import IncidentStatus


class TestIncidentLifecycle:

    def test_open_to_export(self, incident_service, timeline, postmortems, exporter, open_incident, clock):
        incident_id = open_incident.incident_id
        assert open_incident.status is IncidentStatus.OPEN

        result = incident_service.transition(incident_id, "investigating")
        assert result.new_status is IncidentStatus.INVESTIGATING

        clock.advance(minutes=5)
        timeline.append(incident_id, "observation", "Checkout p99 at 6s since 09:00")
        clock.advance(minutes=10)
        timeline.append(incident_id, "action", "Rolled back release 2024.01.15-2")

        clock.advance(minutes=30)
        result = incident_service.transition(incident_id, "resolved")
        assert result.ended_at == clock.now()
        assert incident_service.get(incident_id).ended_at == clock.now()

        postmortem = postmortems.get_or_synthesize(incident_id)
        assert "Checkout p99 at 6s since 09:00" in postmortem.sections.detection
        assert "Rolled back release 2024.01.15-2" in postmortem.sections.resolution
        assert "- **Duration**: 45m" in postmortem.sections.impact

        export = exporter.export(incident_id)
        content = export.content

        assert "Checkout latency spike" in content
        assert "SEV2" in content
        assert "Resolved" in content
        assert "Checkout p99 at 6s since 09:00" in content
        assert "Rolled back release 2024.01.15-2" in content
        assert "# Postmortem" in content
        assert "| **Duration** | 45m |" in content
        assert export.filename == "incident-2024-01-15-checkout-latency-spike.md"

    def test_reopen_and_resolve_again(self, incident_service, postmortems, open_incident, clock):
        incident_id = open_incident.incident_id
        incident_service.transition(incident_id, "investigating")
        incident_service.transition(incident_id, "resolved")
        first = postmortems.get_or_synthesize(incident_id)

        incident_service.transition(incident_id, "open")
        assert incident_service.get(incident_id).ended_at is None

        clock.advance(hours=2)
        incident_service.transition(incident_id, "investigating")
        incident_service.transition(incident_id, "mitigated")
        incident_service.transition(incident_id, "resolved")

        assert incident_service.get(incident_id).ended_at == clock.now()
        assert postmortems.get_or_synthesize(incident_id).to_dict() == first.to_dict()
