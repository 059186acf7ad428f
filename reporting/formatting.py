"""
Reporting - Formatting Helpers.

Shared by the postmortem synthesizer and the export pipeline.
All timestamps are rendered in UTC.
"""

import re
from datetime import datetime, timedelta
from typing import Optional

from core.clock import ensure_utc


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
CLOCK_TIME_FORMAT = "%H:%M"
DATE_FORMAT = "%Y-%m-%d"

DEFAULT_SLUG_MAX_LENGTH = 50
EMPTY_SLUG = "unnamed"

_NON_SLUG_CHARS = re.compile(r"[^\w\s\-]")
_WHITESPACE_RUN = re.compile(r"\s+")


# ============================================================
# DURATION
# ============================================================

def format_duration(duration: timedelta) -> str:
    """
    Render a duration as "1d 2h 30m", "2h 30m" or "45m".

    Components are truncated, never rounded. Negative
    durations render as "0m".
    """
    total_minutes = max(int(duration.total_seconds() // 60), 0)
    total_hours, minutes = divmod(total_minutes, 60)
    days, hours = divmod(total_hours, 24)

    if days >= 1:
        return f"{days}d {hours}h {minutes}m"
    if total_hours >= 1:
        return f"{total_hours}h {minutes}m"
    return f"{total_minutes}m"


# ============================================================
# TIMESTAMPS
# ============================================================

def format_timestamp(dt: datetime) -> str:
    """2024-01-15 09:30:00 (UTC, no suffix)."""
    return ensure_utc(dt).strftime(TIMESTAMP_FORMAT)


def format_clock_time(dt: datetime) -> str:
    """09:30 (UTC)."""
    return ensure_utc(dt).strftime(CLOCK_TIME_FORMAT)


# ============================================================
# FILENAMES
# ============================================================

def slugify_title(title: Optional[str], max_length: int = DEFAULT_SLUG_MAX_LENGTH) -> str:
    """
    Filesystem-safe slug of an incident title.

    Drops everything but word characters, whitespace and
    hyphens, collapses whitespace runs to one hyphen,
    lower-cases and truncates. Falls back to "unnamed".
    """
    if not title:
        return EMPTY_SLUG

    slug = _NON_SLUG_CHARS.sub("", title)
    slug = _WHITESPACE_RUN.sub("-", slug)
    slug = slug.lower()[:max_length]

    return slug or EMPTY_SLUG


def build_export_filename(
    title: Optional[str],
    started_at: datetime,
    max_length: int = DEFAULT_SLUG_MAX_LENGTH,
) -> str:
    """incident-YYYY-MM-DD-{slug}.md"""
    date = ensure_utc(started_at).strftime(DATE_FORMAT)
    return f"incident-{date}-{slugify_title(title, max_length)}.md"
