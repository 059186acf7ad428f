"""
Reporting Package.

This package turns incident records into documents.

Modules:
- redaction: Secret-scrubbing rules applied to exported text
- formatting: Durations, timestamps, export filenames
- postmortem: Draft postmortem synthesis and edits
- export: Sanitized markdown export
"""

from .redaction import RedactionRule, DEFAULT_REDACTION_RULES, redact_text
from .formatting import (
    format_duration,
    format_timestamp,
    format_clock_time,
    slugify_title,
    build_export_filename,
)
from .postmortem import PostmortemService, synthesize_postmortem
from .export import ExportPipeline, ExportResult, render_incident_markdown

__all__ = [
    # Redaction
    "RedactionRule",
    "DEFAULT_REDACTION_RULES",
    "redact_text",
    # Formatting
    "format_duration",
    "format_timestamp",
    "format_clock_time",
    "slugify_title",
    "build_export_filename",
    # Postmortem
    "PostmortemService",
    "synthesize_postmortem",
    # Export
    "ExportPipeline",
    "ExportResult",
    "render_incident_markdown",
]
