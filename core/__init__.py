"""
Core Module Package.

This package contains the infrastructure components that all
other packages depend on.

Components:
- clock: Unified time abstraction
- exceptions: Custom exception hierarchy
- logging_config: Process logging setup
"""

from .clock import ClockProtocol, SystemClock, MockClock, ensure_utc, get_clock, set_clock
from .exceptions import (
    IncidentTrackerError,
    InvalidArgument,
    InvalidTransition,
    NotFound,
    PersistenceError,
)
from .logging_config import setup_logging

__all__ = [
    "ClockProtocol",
    "SystemClock",
    "MockClock",
    "ensure_utc",
    "get_clock",
    "set_clock",
    "IncidentTrackerError",
    "InvalidArgument",
    "InvalidTransition",
    "NotFound",
    "PersistenceError",
    "setup_logging",
]
