"""
Tests for the incident tracker CLI.
"""

import pytest
from datetime import datetime, timezone

from database.engine import create_database_engine, initialize_database, make_session_factory
from incidents.cli import create_parser, main
from incidents.service import IncidentService


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'incidents.db'}"


@pytest.fixture
def seeded_incident(db_url):
    engine = create_database_engine(db_url)
    initialize_database(engine)
    session = make_session_factory(engine)()
    try:
        incident = IncidentService(session).create(
            "svc-api",
            "Critical Bug: API/Auth #123 (prod)",
            "sev1",
            datetime(2024, 1, 15, 8, 0, tzinfo=timezone.utc),
        )
    finally:
        session.close()
        engine.dispose()
    return incident


class TestParser:

    def test_command_required(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args([])

    def test_export_args(self):
        args = create_parser().parse_args(["export", "abc", "--output-dir", "out"])
        assert args.command == "export"
        assert args.incident_id == "abc"
        assert args.output_dir == "out"


class TestCommands:

    def test_init_db(self, db_url, capsys):
        assert main(["--database-url", db_url, "init-db"]) == 0
        assert "Database initialized" in capsys.readouterr().out

    def test_export_writes_file(self, db_url, seeded_incident, tmp_path, capsys):
        out_dir = tmp_path / "reports"

        code = main([
            "--database-url", db_url,
            "export", seeded_incident.incident_id,
            "--output-dir", str(out_dir),
        ])

        assert code == 0
        path = out_dir / "incident-2024-01-15-critical-bug-apiauth-123-prod.md"
        assert path.exists()
        assert path.read_text(encoding="utf-8").startswith(
            "# Incident Report: Critical Bug: API/Auth #123 (prod)"
        )
        assert str(path) in capsys.readouterr().out

    def test_export_missing_incident(self, db_url, tmp_path, capsys):
        main(["--database-url", db_url, "init-db"])

        code = main(["--database-url", db_url, "export", "missing", "--output-dir", str(tmp_path)])

        assert code == 1
        assert "Incident not found" in capsys.readouterr().err

    def test_transitions(self, capsys):
        assert main(["transitions"]) == 0
        out = capsys.readouterr().out
        assert "investigating   -> mitigated, resolved" in out
        assert "resolved        -> open" in out
