"""
Progress policy tests: both policies and the [0, 100] bounds.
"""
from types import SimpleNamespace

import pytest

from workshop.business.workshop.progress_policy import (
    IncrementalProgressPolicy,
    RatioProgressPolicy,
    clamp_progress,
    get_progress_policy,
)


def _job(statuses, progress=0):
    return SimpleNamespace(tasks=[SimpleNamespace(status=s) for s in statuses], progress=progress)


@pytest.mark.parametrize('value,expected', [(-20, 0), (0, 0), (42.4, 42), (42.6, 43), (100, 100), (250, 100)])
def test_clamp_progress(value, expected):
    assert clamp_progress(value) == expected


def test_ratio_policy_uses_completed_share():
    policy = RatioProgressPolicy()
    assert policy.compute(_job(['completed', 'todo', 'todo'])) == 33
    assert policy.compute(_job(['completed', 'completed'])) == 100


def test_ratio_policy_can_lower_progress():
    job = _job(['completed', 'todo', 'todo', 'todo'], progress=100)
    assert RatioProgressPolicy().compute(job) == 25


def test_ratio_policy_leaves_jobs_without_tasks_alone():
    assert RatioProgressPolicy().compute(_job([], progress=10)) is None


def test_incremental_policy_never_lowers_progress():
    policy = IncrementalProgressPolicy()
    assert policy.compute(_job(['completed', 'completed'], progress=10)) == 40
    assert policy.compute(_job(['completed'], progress=60)) is None


def test_incremental_policy_caps_at_100():
    job = _job(['completed'] * 30, progress=90)
    assert IncrementalProgressPolicy().compute(job) == 100


def test_policies_stay_in_bounds_for_any_task_mix():
    for total in range(1, 25):
        for done in range(total + 1):
            statuses = ['completed'] * done + ['todo'] * (total - done)
            for policy in (RatioProgressPolicy(), IncrementalProgressPolicy()):
                value = policy.compute(_job(statuses))
                assert value is None or 0 <= value <= 100


def test_get_progress_policy_by_name_and_config(app):
    assert isinstance(get_progress_policy('incremental'), IncrementalProgressPolicy)
    assert isinstance(get_progress_policy(), RatioProgressPolicy)
    app.config['PROGRESS_POLICY'] = 'incremental'
    assert isinstance(get_progress_policy(), IncrementalProgressPolicy)
    with pytest.raises(ValueError):
        get_progress_policy('linear')
