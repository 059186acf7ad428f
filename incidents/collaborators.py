"""
Incidents - External Collaborators.

The engine reads two things it does not own:
- Service directory: service id -> display name (export only)
- Runbook catalog: runbook id -> title, and the latest runbook
  written for a service (auto-attached at incident creation)

Both are read-only lookups. A missing value is None, never an error.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional


# ============================================================
# SERVICE DIRECTORY
# ============================================================

class ServiceDirectory(ABC):
    """Lookup of service display names."""

    @abstractmethod
    def get_service_name(self, service_id: str) -> Optional[str]:
        """Display name for a service, or None if unknown."""
        pass


class StaticServiceDirectory(ServiceDirectory):
    """In-memory directory backed by a dict."""

    def __init__(self, names: Optional[Dict[str, str]] = None):
        self._names: Dict[str, str] = dict(names or {})

    def register(self, service_id: str, name: str) -> None:
        self._names[service_id] = name

    def get_service_name(self, service_id: str) -> Optional[str]:
        return self._names.get(service_id)


# ============================================================
# RUNBOOK CATALOG
# ============================================================

@dataclass(frozen=True)
class RunbookRef:
    """A runbook as seen by the incident engine."""

    runbook_id: str
    service_id: str
    title: str
    updated_at: datetime


class RunbookCatalog(ABC):
    """Lookup of runbooks."""

    @abstractmethod
    def get_title(self, runbook_id: str) -> Optional[str]:
        """Title of a runbook, or None if unknown."""
        pass

    @abstractmethod
    def latest_for_service(self, service_id: str) -> Optional[RunbookRef]:
        """Most recently updated runbook of a service, or None."""
        pass


class StaticRunbookCatalog(RunbookCatalog):
    """In-memory catalog."""

    def __init__(self, runbooks: Optional[Iterable[RunbookRef]] = None):
        self._runbooks: Dict[str, RunbookRef] = {}
        for runbook in runbooks or ():
            self.register(runbook)

    def register(self, runbook: RunbookRef) -> None:
        self._runbooks[runbook.runbook_id] = runbook

    def get_title(self, runbook_id: str) -> Optional[str]:
        runbook = self._runbooks.get(runbook_id)
        return runbook.title if runbook else None

    def latest_for_service(self, service_id: str) -> Optional[RunbookRef]:
        candidates: List[RunbookRef] = [
            r for r in self._runbooks.values() if r.service_id == service_id
        ]
        if not candidates:
            return None
        return max(candidates, key=lambda r: r.updated_at)


def resolve_runbook_title(
    catalog: Optional[RunbookCatalog],
    runbook_id: Optional[str],
    cached_title: Optional[str],
) -> Optional[str]:
    """Current catalog title of a runbook, else the title cached on the incident."""
    if catalog is not None and runbook_id:
        title = catalog.get_title(runbook_id)
        if title is not None:
            return title
    return cached_title
