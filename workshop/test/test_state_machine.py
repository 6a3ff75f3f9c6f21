import pytest

from workshop.business.errors import InvalidStateError
from workshop.business.workshop.state_machine import JobStateMachine as SM


def test_terminal_states_have_no_way_out():
    for terminal in (SM.COMPLETED, SM.CANCELLED):
        assert SM.get_allowed_transitions(terminal) == set()
        for target in SM.ALL_STATES - {terminal}:
            assert not SM.can_transition(terminal, target)


def test_same_state_is_a_noop():
    assert SM.can_transition(SM.IN_PROGRESS, SM.IN_PROGRESS)


def test_in_progress_cannot_go_back_to_draft_or_scheduled():
    assert not SM.can_transition(SM.IN_PROGRESS, SM.DRAFT)
    assert not SM.can_transition(SM.IN_PROGRESS, SM.SCHEDULED)
    with pytest.raises(InvalidStateError):
        SM.validate_transition(SM.IN_PROGRESS, SM.DRAFT)


def test_unknown_status_is_rejected():
    assert not SM.can_transition(SM.DRAFT, 'archived')


def test_ensure_mutable_rejects_terminal_jobs():
    SM.ensure_mutable(SM.ON_HOLD, 'update')
    with pytest.raises(InvalidStateError) as exc:
        SM.ensure_mutable(SM.CANCELLED, 'update')
    assert exc.value.status_code == 400


def test_delete_is_blocked_for_started_or_finished_jobs():
    assert SM.can_delete(SM.DRAFT)
    assert SM.can_delete(SM.CANCELLED)
    assert not SM.can_delete(SM.IN_PROGRESS)
    assert not SM.can_delete(SM.COMPLETED)
