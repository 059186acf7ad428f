"""
Tests for the incident status state machine.

Tests cover:
- Transition table contents
- Self-transition rejection
- InvalidTransition payload
- ended_at planning
"""

import pytest
from datetime import datetime, timedelta, timezone

from core.exceptions import InvalidTransition
from incidents.state_machine import (
    VALID_TRANSITIONS,
    TransitionGuard,
    all_edges,
    get_valid_transitions,
    plan_transition,
)
from incidents.types import IncidentStatus


NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)

S = IncidentStatus


# =============================================================
# TEST: Transition table
# =============================================================

class TestTransitionTable:
    """The table holds exactly the documented edges."""

    def test_every_status_has_an_entry(self):
        assert set(VALID_TRANSITIONS) == set(IncidentStatus)

    def test_edges(self):
        assert all_edges() == {
            (S.OPEN, S.INVESTIGATING),
            (S.INVESTIGATING, S.MITIGATED),
            (S.INVESTIGATING, S.RESOLVED),
            (S.MITIGATED, S.RESOLVED),
            (S.MITIGATED, S.INVESTIGATING),
            (S.RESOLVED, S.OPEN),
        }

    def test_valid_transitions_order(self):
        assert get_valid_transitions(S.INVESTIGATING) == [S.MITIGATED, S.RESOLVED]
        assert get_valid_transitions(S.MITIGATED) == [S.RESOLVED, S.INVESTIGATING]

    def test_no_self_loops_in_table(self):
        for src, dst in all_edges():
            assert src != dst


# =============================================================
# TEST: Guard
# =============================================================

class TestTransitionGuard:

    @pytest.mark.parametrize("status", list(IncidentStatus))
    def test_self_transition_rejected(self, status):
        allowed, reason = TransitionGuard.can_transition(status, status)
        assert allowed is False
        assert "already" in reason

    def test_every_edge_allowed_and_nothing_else(self):
        edges = all_edges()
        for src in IncidentStatus:
            for dst in IncidentStatus:
                allowed, _ = TransitionGuard.can_transition(src, dst)
                assert allowed == ((src, dst) in edges)

    def test_check_raises_with_payload(self):
        with pytest.raises(InvalidTransition) as exc_info:
            TransitionGuard.check(S.OPEN, S.RESOLVED)

        error = exc_info.value
        assert error.current_status == "open"
        assert error.requested_status == "resolved"
        assert error.valid_transitions == ["investigating"]
        assert error.code == "INVALID_STATUS_TRANSITION"
        assert "Valid next statuses: investigating." in error.message

    def test_error_to_dict(self):
        with pytest.raises(InvalidTransition) as exc_info:
            TransitionGuard.check(S.MITIGATED, S.OPEN)

        payload = exc_info.value.to_dict()
        assert payload["code"] == "INVALID_STATUS_TRANSITION"
        assert payload["current_status"] == "mitigated"
        assert payload["requested_status"] == "open"
        assert payload["valid_transitions"] == ["resolved", "investigating"]


# =============================================================
# TEST: Planning
# =============================================================

class TestPlanTransition:

    def test_resolving_stamps_ended_at(self):
        plan = plan_transition(S.INVESTIGATING, S.RESOLVED, None, NOW)
        assert plan.to_status is S.RESOLVED
        assert plan.ended_at == NOW

    def test_reopening_clears_ended_at(self):
        plan = plan_transition(S.RESOLVED, S.OPEN, NOW - timedelta(hours=1), NOW)
        assert plan.ended_at is None

    def test_other_transitions_keep_ended_at(self):
        plan = plan_transition(S.INVESTIGATING, S.MITIGATED, None, NOW)
        assert plan.ended_at is None

    def test_illegal_plan_raises(self):
        with pytest.raises(InvalidTransition):
            plan_transition(S.OPEN, S.MITIGATED, None, NOW)

    def test_self_transition_plan_raises(self):
        with pytest.raises(InvalidTransition) as exc_info:
            plan_transition(S.RESOLVED, S.RESOLVED, NOW, NOW)
        assert exc_info.value.valid_transitions == ["open"]
