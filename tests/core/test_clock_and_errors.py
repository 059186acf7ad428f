"""
Tests for core clock and exception taxonomy.
"""

from datetime import datetime, timedelta, timezone

from core.clock import MockClock, SystemClock, ensure_utc
from core.exceptions import (
    IncidentTrackerError,
    InvalidArgument,
    InvalidTransition,
    NotFound,
    PersistenceError,
)


T0 = datetime(2024, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


# =============================================================
# TEST: Clock
# =============================================================

class TestMockClock:

    def test_advance(self):
        clock = MockClock(T0)
        clock.advance(minutes=90)
        assert clock.now() == T0 + timedelta(minutes=90)

    def test_set_time(self):
        clock = MockClock(T0)
        clock.set_time(datetime(2025, 1, 1))
        assert clock.now() == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_freeze_restores(self):
        clock = MockClock(T0)
        with clock.freeze(T0 + timedelta(days=1)):
            assert clock.now() == T0 + timedelta(days=1)
        assert clock.now() == T0

    def test_system_clock_is_utc(self):
        assert SystemClock().now().tzinfo == timezone.utc


class TestEnsureUtc:

    def test_none(self):
        assert ensure_utc(None) is None

    def test_naive_assumed_utc(self):
        assert ensure_utc(datetime(2024, 1, 15, 9, 0)) == T0

    def test_offset_converted(self):
        dt = datetime(2024, 1, 15, 10, 0, tzinfo=timezone(timedelta(hours=1)))
        converted = ensure_utc(dt)
        assert converted == T0
        assert converted.tzinfo == timezone.utc


# =============================================================
# TEST: Exceptions
# =============================================================

class TestExceptions:

    def test_hierarchy(self):
        for cls in (InvalidArgument, InvalidTransition, NotFound, PersistenceError):
            assert issubclass(cls, IncidentTrackerError)

    def test_invalid_argument(self):
        error = InvalidArgument(field="body", message="Body markdown is required", actual="")
        assert error.field == "body"
        assert error.to_dict() == {
            "code": "VALIDATION_ERROR",
            "message": "Body markdown is required",
            "field": "body",
            "actual": "",
        }

    def test_invalid_transition_without_targets(self):
        error = InvalidTransition("open", "resolved", [])
        assert "No transitions available" in error.message

    def test_not_found(self):
        error = NotFound("Incident", "abc")
        assert error.code == "NOT_FOUND"
        assert error.to_dict()["resource_id"] == "abc"

    def test_persistence_error_records_cause(self):
        cause = RuntimeError("disk full")
        error = PersistenceError("Transaction failed", cause=cause)
        assert error.code == "INTERNAL_ERROR"
        assert error.context["cause_type"] == "RuntimeError"
