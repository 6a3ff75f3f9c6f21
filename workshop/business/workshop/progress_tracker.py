"""
Status and progress bookkeeping shared by every job manager.

All writes to WorkshopJob.status and WorkshopJob.progress go through here so
the transition table is checked, progress stays in [0, 100], the card number
is issued once, and the progress history gets its entry.
"""

from datetime import datetime
from workshop.business.workshop.progress_policy import clamp_progress
from workshop.business.workshop.state_machine import JobStateMachine
from workshop.data.workshop.job import WorkshopJob
from workshop.data.workshop.progress_history import JobProgressEntry


class ProgressTracker:

    @staticmethod
    def record(job: WorkshopJob, step: str, message: str = None, actor_id: int = None) -> JobProgressEntry:
        """Append a history entry snapshotting the job's current progress and status"""
        entry = JobProgressEntry(
            progress=job.progress or 0,
            status=job.status,
            step=step,
            message=message,
            actor_id=actor_id,
            timestamp=datetime.utcnow(),
        )
        job.progress_history.append(entry)
        return entry

    @staticmethod
    def set_progress(job: WorkshopJob, value, step: str, message: str = None,
                     actor_id: int = None) -> bool:
        """
        Clamp and apply a progress value.

        Returns:
            bool: True when progress changed (a history entry was written)
        """
        new_progress = clamp_progress(value)
        if new_progress == (job.progress or 0):
            return False
        job.progress = new_progress
        ProgressTracker.record(job, step, message, actor_id)
        return True

    @staticmethod
    def apply_policy(job: WorkshopJob, policy, actor_id: int = None,
                     step: str = 'task_update', message: str = None) -> bool:
        """Recompute progress from tasks with the configured policy"""
        computed = policy.compute(job)
        if computed is None:
            return False
        return ProgressTracker.set_progress(
            job, computed, step,
            message or f"Progress recalculated from tasks ({policy.name})",
            actor_id,
        )

    @staticmethod
    def transition(job: WorkshopJob, to_status: str, actor_id: int = None) -> bool:
        """
        Move the job to another status along the transition table.

        Returns:
            bool: False for a same-state no-op

        Raises:
            InvalidStateError: If the transition is not allowed
        """
        JobStateMachine.validate_transition(job.status, to_status)
        if job.status == to_status:
            return False
        job.status = to_status
        if to_status != JobStateMachine.DRAFT and not job.card_number:
            job.card_number = WorkshopJob.generate_card_number()
        if to_status == JobStateMachine.CANCELLED:
            job.is_active = False
        job.last_updated_by_id = actor_id
        return True
