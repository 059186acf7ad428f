"""
Incidents Package.

Incident lifecycle: records, the status state machine, the
append-only timeline and the service that drives them.

Components:
- types: Enums and records
- state_machine: Legal status transitions
- schemas: Pydantic request payloads
- repository: SQLAlchemy persistence
- collaborators: Service directory and runbook catalog lookups
- service: IncidentService
- timeline: TimelineLog
- config: IncidentTrackerConfig
"""

from .types import (
    Incident,
    IncidentSeverity,
    IncidentStatus,
    Postmortem,
    PostmortemSections,
    TimelineEntry,
    TimelineEntryType,
    TransitionResult,
)
from .state_machine import (
    VALID_TRANSITIONS,
    TransitionGuard,
    TransitionPlan,
    get_valid_transitions,
    plan_transition,
)
from .collaborators import (
    RunbookCatalog,
    RunbookRef,
    ServiceDirectory,
    StaticRunbookCatalog,
    StaticServiceDirectory,
    resolve_runbook_title,
)
from .config import (
    DatabaseConfig,
    ExportConfig,
    IncidentTrackerConfig,
    get_default_config,
    get_testing_config,
)
from .service import IncidentService
from .timeline import TimelineLog

__all__ = [
    # Types
    "Incident",
    "IncidentSeverity",
    "IncidentStatus",
    "Postmortem",
    "PostmortemSections",
    "TimelineEntry",
    "TimelineEntryType",
    "TransitionResult",
    # State machine
    "VALID_TRANSITIONS",
    "TransitionGuard",
    "TransitionPlan",
    "get_valid_transitions",
    "plan_transition",
    # Collaborators
    "RunbookCatalog",
    "RunbookRef",
    "ServiceDirectory",
    "StaticRunbookCatalog",
    "StaticServiceDirectory",
    "resolve_runbook_title",
    # Config
    "DatabaseConfig",
    "ExportConfig",
    "IncidentTrackerConfig",
    "get_default_config",
    "get_testing_config",
    # Services
    "IncidentService",
    "TimelineLog",
]
