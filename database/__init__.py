"""
Database Package.

Session management and ORM models for the incident store.

Usage:
    from database import transaction_scope

    with transaction_scope() as session:
        IncidentService(session).transition(incident_id, "resolved")
"""

from .engine import (
    Base,
    DEFAULT_DATABASE_URL,
    REQUIRED_TABLES,
    configure_engine,
    create_all_tables,
    create_database_engine,
    get_database_url,
    get_db_session,
    get_engine,
    get_session,
    get_session_factory,
    initialize_database,
    make_session_factory,
    managed_transaction,
    transaction_scope,
    verify_database_connection,
)
from .models import IncidentModel, TimelineEntryModel, PostmortemModel

__all__ = [
    # Base
    "Base",
    # Engine & Session
    "configure_engine",
    "create_database_engine",
    "get_database_url",
    "get_db_session",
    "get_engine",
    "get_session",
    "get_session_factory",
    "make_session_factory",
    "managed_transaction",
    "transaction_scope",
    # Initialization
    "create_all_tables",
    "initialize_database",
    "verify_database_connection",
    # Constants
    "DEFAULT_DATABASE_URL",
    "REQUIRED_TABLES",
    # Models
    "IncidentModel",
    "TimelineEntryModel",
    "PostmortemModel",
]
