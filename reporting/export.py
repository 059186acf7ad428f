"""
Reporting - Markdown Export Pipeline.

============================================================
PURPOSE
============================================================
Composes incident + timeline + postmortem + service name into
one sanitized markdown document and a filesystem-safe filename.

DOCUMENT LAYOUT:
    # Incident Report: {title}
    ## Overview     (metadata table)
    ## Summary      (only if present)
    ## Timeline
    # Postmortem    (only if one is stored)
    footer

RULES:
- Every piece of free text goes through redaction
- Export never synthesizes a postmortem; it shows what is stored
- Output is deterministic unless the footer timestamp is enabled

============================================================
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from core.clock import ClockProtocol, get_clock
from core.exceptions import NotFound
from incidents.collaborators import RunbookCatalog, ServiceDirectory, resolve_runbook_title
from incidents.config import ExportConfig
from incidents.repository import (
    IncidentRepository,
    PostmortemRepository,
    TimelineRepository,
    model_to_incident,
)
from incidents.types import Incident, PostmortemSections, TimelineEntry

from .formatting import build_export_filename, format_duration, format_timestamp
from .redaction import DEFAULT_REDACTION_RULES, RedactionRule, redact_text


logger = logging.getLogger(__name__)


MARKDOWN_CONTENT_TYPE = "text/markdown"
NO_TIMELINE_ENTRIES = "*No timeline entries recorded.*"


@dataclass(frozen=True)
class ExportResult:
    """A rendered export."""

    content: str
    filename: str
    content_type: str = MARKDOWN_CONTENT_TYPE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "filename": self.filename,
            "content_type": self.content_type,
        }


# ============================================================
# RENDERING
# ============================================================

def _cell(value: str) -> str:
    """Make a value safe inside a markdown table cell."""
    return value.replace("|", "\\|").replace("\r", " ").replace("\n", " ")


def render_incident_markdown(
    incident: Incident,
    entries: Iterable[TimelineEntry],
    postmortem: Optional[PostmortemSections] = None,
    service_name: Optional[str] = None,
    config: Optional[ExportConfig] = None,
    exported_at: Optional[datetime] = None,
    rules: Sequence[RedactionRule] = DEFAULT_REDACTION_RULES,
    runbook_title: Optional[str] = None,
) -> str:
    """
    Render the export document.

    Args:
        incident: The incident
        entries: Its timeline, in log order
        postmortem: Stored sections, if any
        service_name: From the service directory
        config: Export settings
        exported_at: Footer timestamp, used only when enabled in config
        rules: Redaction rules
        runbook_title: Live runbook title; defaults to the one cached on the incident

    Returns:
        Markdown text
    """
    config = config or ExportConfig()
    runbook_title = runbook_title or incident.runbook_title

    def clean(text: Optional[str]) -> str:
        return redact_text(text, rules) or ""

    lines: List[str] = []

    # Header
    lines += [f"# Incident Report: {clean(incident.title)}", "", "---", ""]

    # Metadata table
    lines += [
        "## Overview",
        "",
        "| Field | Value |",
        "|-------|-------|",
        f"| **Service** | {_cell(clean(service_name or config.unknown_service_label))} |",
        f"| **Severity** | {incident.severity.label} |",
        f"| **Status** | {incident.status.label} |",
        f"| **Started** | {format_timestamp(incident.started_at)} UTC |",
    ]
    if incident.ended_at is not None:
        lines.append(f"| **Ended** | {format_timestamp(incident.ended_at)} UTC |")
        lines.append(f"| **Duration** | {format_duration(incident.duration)} |")
    if runbook_title:
        lines.append(f"| **Runbook** | {_cell(clean(runbook_title))} |")
    lines.append("")

    # Summary
    if incident.summary and incident.summary.strip():
        lines += ["## Summary", "", clean(incident.summary), ""]

    # Timeline
    lines += ["## Timeline", ""]
    entries = list(entries)
    if entries:
        for entry in entries:
            lines.append(
                f"### {format_timestamp(entry.occurred_at)} UTC - "
                f"{entry.entry_type.icon} {entry.entry_type.label}"
            )
            lines += ["", clean(entry.body), ""]
    else:
        lines += [NO_TIMELINE_ENTRIES, ""]

    # Postmortem
    if postmortem is not None:
        lines += ["---", "", "# Postmortem", ""]
        for _, text in postmortem.non_empty():
            lines += [clean(text), ""]

    # Footer
    footer = f"*Exported from {config.product_name}"
    if config.include_export_timestamp and exported_at is not None:
        footer += f" on {format_timestamp(exported_at)} UTC"
    lines += ["---", "", footer + "*"]

    return "\n".join(lines) + "\n"


# ============================================================
# EXPORT PIPELINE
# ============================================================

class ExportPipeline:
    """Reads the latest persisted state and renders it."""

    def __init__(
        self,
        session: Session,
        service_directory: Optional[ServiceDirectory] = None,
        clock: Optional[ClockProtocol] = None,
        owner_id: Optional[str] = None,
        config: Optional[ExportConfig] = None,
        rules: Sequence[RedactionRule] = DEFAULT_REDACTION_RULES,
        runbook_catalog: Optional[RunbookCatalog] = None,
    ):
        self.session = session
        self.service_directory = service_directory
        self.runbook_catalog = runbook_catalog
        self.clock = clock or get_clock()
        self.owner_id = owner_id
        self.config = config or ExportConfig()
        self.rules = tuple(rules)
        self._incidents = IncidentRepository(session)
        self._entries = TimelineRepository(session)
        self._postmortems = PostmortemRepository(session)

    def export(self, incident_id: str) -> ExportResult:
        """
        Export one incident.

        The filename slug is built from the redacted title, not the raw
        one, so the filename never carries a secret the document hides.

        Raises:
            NotFound: Incident missing or not visible
        """
        model = self._incidents.get_model(incident_id, self.owner_id)
        if model is None:
            raise NotFound("Incident", incident_id)

        incident = model_to_incident(model)
        entries = self._entries.list_for_incident(incident_id)
        postmortem = self._postmortems.get(incident_id)

        service_name = None
        if self.service_directory is not None:
            service_name = self.service_directory.get_service_name(incident.service_id)

        content = render_incident_markdown(
            incident=incident,
            entries=entries,
            postmortem=postmortem.sections if postmortem else None,
            service_name=service_name,
            config=self.config,
            exported_at=self.clock.now(),
            rules=self.rules,
            runbook_title=resolve_runbook_title(
                self.runbook_catalog, incident.runbook_id, incident.runbook_title
            ),
        )
        filename = build_export_filename(
            redact_text(incident.title, self.rules),
            incident.started_at,
            self.config.slug_max_length,
        )

        logger.info(
            f"Incident exported: {incident_id} file={filename} "
            f"bytes={len(content.encode('utf-8'))}"
        )
        return ExportResult(content=content, filename=filename)
