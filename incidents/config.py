"""
Incident Tracker Configuration.

============================================================
PURPOSE
============================================================
Centralized configuration for the incident engine.

All values have defaults. `IncidentTrackerConfig.from_env()`
overrides them from the process environment (a `.env` file
is loaded first).

============================================================
"""

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from database.engine import DEFAULT_DATABASE_URL


_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE_VALUES


# ============================================================
# DATABASE CONFIGURATION
# ============================================================

@dataclass
class DatabaseConfig:
    """Database connection settings."""

    url: str = DEFAULT_DATABASE_URL
    """SQLAlchemy database URL."""

    echo: bool = False
    """Log SQL statements."""


# ============================================================
# EXPORT CONFIGURATION
# ============================================================

@dataclass
class ExportConfig:
    """Settings for the markdown export."""

    product_name: str = "Incident Tracker"
    """Name shown in the document footer."""

    include_export_timestamp: bool = False
    """Append the export time to the footer. Off keeps exports deterministic."""

    slug_max_length: int = 50
    """Maximum length of the title slug in export filenames."""

    unknown_service_label: str = "Unknown"
    """Shown when the service directory has no name for the service."""


# ============================================================
# MASTER CONFIGURATION
# ============================================================

@dataclass
class IncidentTrackerConfig:
    """
    Master configuration for the incident tracker.
    """

    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    """Database configuration."""

    export: ExportConfig = field(default_factory=ExportConfig)
    """Export configuration."""

    log_level: str = "INFO"
    """Root log level."""

    log_format: str = "text"
    """Log line format: text or json."""

    @classmethod
    def from_env(cls) -> "IncidentTrackerConfig":
        """Build configuration from environment variables."""
        load_dotenv()

        database = DatabaseConfig(
            url=os.getenv("INCIDENT_DB_URL") or os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL,
            echo=_env_flag("INCIDENT_DB_ECHO", False),
        )
        export = ExportConfig(
            product_name=os.getenv("EXPORT_PRODUCT_NAME", ExportConfig.product_name),
            include_export_timestamp=_env_flag("EXPORT_INCLUDE_TIMESTAMP", False),
        )
        return cls(
            database=database,
            export=export,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_format=os.getenv("LOG_FORMAT", "text").lower(),
        )


def get_default_config() -> IncidentTrackerConfig:
    """Get default configuration."""
    return IncidentTrackerConfig()


def get_testing_config() -> IncidentTrackerConfig:
    """Get configuration for testing: in-memory database, debug logging."""
    return IncidentTrackerConfig(
        database=DatabaseConfig(url="sqlite://"),
        log_level="DEBUG",
    )
