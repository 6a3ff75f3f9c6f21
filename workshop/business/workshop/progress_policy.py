"""
Progress policy for workshop jobs

Every fixed progress value used by the job lifecycle lives here. Task-driven
progress is computed by one configured policy so the per-task path and the
generic update path always agree.
"""

from typing import Optional

# Fixed jumps
CREATED_PROGRESS = 10                # quality check completed
TECHNICIAN_ASSIGNED_PROGRESS = 20    # first individual assignment on a scheduled job
RESOURCES_ALLOCATED_PROGRESS = 30    # first bulk assignment on a scheduled job
COMPLETED_PROGRESS = 100

# Incremental policy
TASK_BASE_PROGRESS = 30
TASK_STEP_PROGRESS = 5

MIN_PROGRESS = 0
MAX_PROGRESS = 100


def clamp_progress(value) -> int:
    """Round and clamp any numeric value into [0, 100]"""
    return max(MIN_PROGRESS, min(MAX_PROGRESS, int(round(float(value)))))


class ProgressPolicy:
    name = 'base'

    def compute(self, job) -> Optional[int]:
        """Return the new progress for the job, or None to leave it unchanged"""
        raise NotImplementedError


class RatioProgressPolicy(ProgressPolicy):
    """
    round(100 * completed / total). Self-correcting when tasks are added or
    removed, so it may lower progress.
    """
    name = 'ratio'

    def compute(self, job) -> Optional[int]:
        total = len(job.tasks)
        if total == 0:
            return None
        done = sum(1 for task in job.tasks if task.status == 'completed')
        return clamp_progress(100 * done / total)


class IncrementalProgressPolicy(ProgressPolicy):
    """min(100, 30 + 5 * completed); never lowers progress"""
    name = 'incremental'

    def compute(self, job) -> Optional[int]:
        done = sum(1 for task in job.tasks if task.status == 'completed')
        if done == 0:
            return None
        candidate = clamp_progress(TASK_BASE_PROGRESS + TASK_STEP_PROGRESS * done)
        if candidate <= (job.progress or 0):
            return None
        return candidate


POLICIES = {
    RatioProgressPolicy.name: RatioProgressPolicy,
    IncrementalProgressPolicy.name: IncrementalProgressPolicy,
}


def get_progress_policy(name=None) -> ProgressPolicy:
    """
    Build the policy named by `name`, or by the PROGRESS_POLICY app setting.
    Unknown names raise ValueError.
    """
    if name is None:
        from flask import current_app, has_app_context
        name = current_app.config.get('PROGRESS_POLICY', 'ratio') if has_app_context() else 'ratio'
    try:
        return POLICIES[name]()
    except KeyError:
        raise ValueError(f"Unknown progress policy: {name}")
