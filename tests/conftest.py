"""
Shared fixtures for the incident tracker tests.

Every test gets its own in-memory SQLite database (single
shared connection via StaticPool) and a MockClock pinned to
a known instant.
"""

import pytest
from datetime import datetime, timezone

from core.clock import MockClock
from database.engine import Base, create_all_tables, create_database_engine, make_session_factory


# ============================================================
# FIXTURES
# ============================================================

T0 = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    """In-memory database with all tables created."""
    engine = create_database_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session(engine):
    """Session bound to the in-memory database."""
    session = make_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture
def clock():
    """Clock pinned to 2024-01-15 09:00:00 UTC."""
    return MockClock(T0)


@pytest.fixture
def incident_service(session, clock):
    from incidents.service import IncidentService
    return IncidentService(session, clock=clock)


@pytest.fixture
def timeline(session, clock):
    from incidents.timeline import TimelineLog
    return TimelineLog(session, clock=clock)


@pytest.fixture
def postmortems(session, clock):
    from reporting.postmortem import PostmortemService
    return PostmortemService(session, clock=clock)


@pytest.fixture
def exporter(session, clock):
    from incidents.collaborators import StaticServiceDirectory
    from reporting.export import ExportPipeline
    directory = StaticServiceDirectory({"svc-api": "Payments API"})
    return ExportPipeline(session, service_directory=directory, clock=clock)


@pytest.fixture
def open_incident(incident_service):
    """A SEV2 incident on svc-api, started at T0."""
    return incident_service.create(
        service_id="svc-api",
        title="Checkout latency spike",
        severity="sev2",
        started_at=T0,
        summary="p99 latency above 4s on checkout",
    )
