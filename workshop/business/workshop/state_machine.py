"""
State machine for the workshop job lifecycle

Encodes valid status transitions.
Keeps "what is allowed" separate from "how persistence occurs".
"""

from typing import Dict, Set
from workshop.business.errors import InvalidStateError


class JobStateMachine:
    """
    State machine for WorkshopJob.status transitions.

    Jobs start as draft. completed and cancelled are terminal.
    """

    DRAFT = 'draft'
    SCHEDULED = 'scheduled'
    IN_PROGRESS = 'in_progress'
    ON_HOLD = 'on_hold'
    COMPLETED = 'completed'
    CANCELLED = 'cancelled'

    ALL_STATES = {DRAFT, SCHEDULED, IN_PROGRESS, ON_HOLD, COMPLETED, CANCELLED}

    # Terminal states (cannot transition from these)
    TERMINAL_STATES = {COMPLETED, CANCELLED}

    # Jobs in these states may not be deleted
    UNDELETABLE_STATES = {IN_PROGRESS, COMPLETED}

    # Valid transitions: from_status -> set of allowed to_status values
    TRANSITIONS: Dict[str, Set[str]] = {
        DRAFT: {SCHEDULED, IN_PROGRESS, ON_HOLD, COMPLETED, CANCELLED},
        SCHEDULED: {IN_PROGRESS, ON_HOLD, COMPLETED, CANCELLED, DRAFT},
        IN_PROGRESS: {ON_HOLD, COMPLETED, CANCELLED},
        ON_HOLD: {SCHEDULED, IN_PROGRESS, COMPLETED, CANCELLED},
        # COMPLETED and CANCELLED are terminal - no transitions out
    }

    @classmethod
    def is_terminal(cls, status: str) -> bool:
        return status in cls.TERMINAL_STATES

    @classmethod
    def can_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if transition is valid.

        Args:
            from_status: Current status
            to_status: Target status

        Returns:
            bool: True if transition is allowed
        """
        if to_status not in cls.ALL_STATES:
            return False

        # Allow staying in same state (no-op)
        if from_status == to_status:
            return True

        if from_status in cls.TERMINAL_STATES:
            return False

        return to_status in cls.TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(cls, from_status: str, to_status: str) -> None:
        """
        Validate transition and raise exception if invalid.

        Raises:
            InvalidStateError: If transition is not allowed
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateError(
                f"Invalid job status transition: {from_status} → {to_status}"
            )

    @classmethod
    def ensure_mutable(cls, status: str, action: str = 'modify') -> None:
        """Raise unless the job is still open for changes"""
        if status in cls.TERMINAL_STATES:
            raise InvalidStateError(f"Cannot {action} a {status} job")

    @classmethod
    def can_delete(cls, status: str) -> bool:
        return status not in cls.UNDELETABLE_STATES

    @classmethod
    def get_allowed_transitions(cls, from_status: str) -> Set[str]:
        """Get set of allowed target statuses from current status"""
        if from_status in cls.TERMINAL_STATES:
            return set()
        return cls.TRANSITIONS.get(from_status, set())
