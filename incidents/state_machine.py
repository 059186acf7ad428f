"""
Incidents - Status State Machine.

============================================================
PURPOSE
============================================================
Owns the legal incident status transitions.

STATE MACHINE:

    OPEN ──────► INVESTIGATING ◄──────┐
     ▲                │               │
     │                ├──► MITIGATED ─┤
     │                │               │
     │                ▼               │
     └────────── RESOLVED ◄───────────┘

    open          -> investigating
    investigating -> mitigated, resolved
    mitigated     -> resolved, investigating
    resolved      -> open

INVARIANTS:
- Self-transitions are always illegal
- ended_at is set if and only if status is RESOLVED
- Entering RESOLVED stamps ended_at, entering OPEN clears it

============================================================
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Tuple

from core.exceptions import InvalidTransition

from .types import IncidentStatus


logger = logging.getLogger(__name__)


# ============================================================
# STATE TRANSITION RULES
# ============================================================

# Valid transitions from each state, in display order
VALID_TRANSITIONS: Dict[IncidentStatus, Tuple[IncidentStatus, ...]] = {
    IncidentStatus.OPEN: (
        IncidentStatus.INVESTIGATING,
    ),
    IncidentStatus.INVESTIGATING: (
        IncidentStatus.MITIGATED,
        IncidentStatus.RESOLVED,
    ),
    IncidentStatus.MITIGATED: (
        IncidentStatus.RESOLVED,
        IncidentStatus.INVESTIGATING,
    ),
    IncidentStatus.RESOLVED: (
        IncidentStatus.OPEN,
    ),
}


def get_valid_transitions(from_status: IncidentStatus) -> List[IncidentStatus]:
    """Statuses reachable in one step from `from_status`."""
    return list(VALID_TRANSITIONS.get(from_status, ()))


def all_edges() -> FrozenSet[Tuple[IncidentStatus, IncidentStatus]]:
    """Every legal (from, to) pair."""
    return frozenset(
        (src, dst)
        for src, targets in VALID_TRANSITIONS.items()
        for dst in targets
    )


# ============================================================
# STATE TRANSITION GUARD
# ============================================================

class TransitionGuard:
    """
    Guard for status transitions.

    Ensures transitions are valid and provides reason for denial.
    """

    @staticmethod
    def can_transition(
        from_status: IncidentStatus,
        to_status: IncidentStatus,
    ) -> Tuple[bool, str]:
        """
        Check if transition is allowed.

        Args:
            from_status: Current status
            to_status: Target status

        Returns:
            Tuple of (allowed, reason)
        """
        if from_status == to_status:
            return False, f"Incident is already {from_status.value}"

        if to_status in VALID_TRANSITIONS.get(from_status, ()):
            return True, "Valid transition"

        return False, f"Invalid transition: {from_status.value} -> {to_status.value}"

    @staticmethod
    def check(from_status: IncidentStatus, to_status: IncidentStatus) -> None:
        """
        Raise InvalidTransition unless the edge exists.

        Raises:
            InvalidTransition: With current, requested and valid-next statuses
        """
        allowed, reason = TransitionGuard.can_transition(from_status, to_status)
        if not allowed:
            logger.warning(f"Rejected status change: {reason}")
            raise InvalidTransition(
                current_status=from_status.value,
                requested_status=to_status.value,
                valid_transitions=[s.value for s in get_valid_transitions(from_status)],
            )


# ============================================================
# TRANSITION PLAN
# ============================================================

@dataclass(frozen=True)
class TransitionPlan:
    """The writes a validated transition will perform."""

    from_status: IncidentStatus
    to_status: IncidentStatus
    ended_at: Optional[datetime]


def plan_transition(
    from_status: IncidentStatus,
    to_status: IncidentStatus,
    current_ended_at: Optional[datetime],
    now: datetime,
) -> TransitionPlan:
    """
    Validate a transition and derive the resulting ended_at.

    Args:
        from_status: Current status
        to_status: Target status
        current_ended_at: Stored ended_at
        now: Current system time

    Returns:
        TransitionPlan

    Raises:
        InvalidTransition: If the edge is not in the table
    """
    TransitionGuard.check(from_status, to_status)

    if to_status is IncidentStatus.RESOLVED:
        ended_at = now
    elif to_status is IncidentStatus.OPEN:
        ended_at = None
    else:
        ended_at = current_ended_at

    return TransitionPlan(
        from_status=from_status,
        to_status=to_status,
        ended_at=ended_at,
    )
