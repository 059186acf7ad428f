"""
Incidents - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line interface for the incident tracker.

- Creates the database schema
- Exports an incident to a markdown file
- Prints the status transition table

============================================================
USAGE
============================================================
python -m incidents.cli init-db
python -m incidents.cli export 3f2c... --output-dir reports/
python -m incidents.cli transitions

============================================================
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from core.exceptions import IncidentTrackerError, NotFound
from core.logging_config import setup_logging
from database.engine import create_database_engine, initialize_database, make_session_factory
from reporting.export import ExportPipeline

from .config import IncidentTrackerConfig
from .state_machine import get_valid_transitions
from .types import IncidentStatus


logger = logging.getLogger(__name__)


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="incident-tracker",
        description="Incident lifecycle tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s init-db
  %(prog)s export <incident_id> --output-dir reports/
  %(prog)s --database-url postgresql://user@host/db transitions
        """
    )

    parser.add_argument(
        "--database-url",
        type=str,
        metavar="URL",
        help="Database URL (default: INCIDENT_DB_URL or sqlite:///incidents.db)",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: LOG_LEVEL or INFO)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Logging format (default: LOG_FORMAT or text)",
    )

    # --------------------------------------------------------
    # Commands
    # --------------------------------------------------------
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("init-db", help="Create database tables")

    export_parser = commands.add_parser("export", help="Export an incident as markdown")
    export_parser.add_argument("incident_id", help="Incident to export")
    export_parser.add_argument(
        "--output-dir",
        type=str,
        default=".",
        metavar="DIR",
        help="Directory for the exported file (default: current directory)",
    )

    commands.add_parser("transitions", help="Show the status transition table")

    return parser


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

def build_config(args: argparse.Namespace) -> IncidentTrackerConfig:
    """Environment configuration with CLI overrides applied."""
    config = IncidentTrackerConfig.from_env()

    if args.database_url:
        config.database.url = args.database_url
    if args.log_level:
        config.log_level = args.log_level
    if args.log_format:
        config.log_format = args.log_format

    return config


# ============================================================
# COMMANDS
# ============================================================

def run_init_db(config: IncidentTrackerConfig) -> int:
    engine = create_database_engine(config.database.url, echo=config.database.echo)
    try:
        initialize_database(engine)
    finally:
        engine.dispose()

    print("Database initialized")
    return 0


def run_export(config: IncidentTrackerConfig, incident_id: str, output_dir: str) -> int:
    engine = create_database_engine(config.database.url, echo=config.database.echo)
    session = make_session_factory(engine)()
    try:
        result = ExportPipeline(session, config=config.export).export(incident_id)
    finally:
        session.close()
        engine.dispose()

    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / result.filename
    path.write_text(result.content, encoding="utf-8")

    print(path)
    return 0


def show_transitions() -> None:
    """Print the status transition table."""
    print("\nIncident status transitions")
    print("=" * 60)

    for status in IncidentStatus:
        targets = ", ".join(s.value for s in get_valid_transitions(status)) or "-"
        print(f"  {status.value:15s} -> {targets}")

    print()


# ============================================================
# MAIN ENTRY POINT
# ============================================================

def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == "transitions":
        show_transitions()
        return 0

    config = build_config(args)
    setup_logging(config.log_level, config.log_format)

    try:
        if args.command == "init-db":
            return run_init_db(config)
        return run_export(config, args.incident_id, args.output_dir)

    except NotFound as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except IncidentTrackerError as e:
        logger.error(f"Command failed: {e.code}: {e.message}")
        print(f"Error: {e.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
