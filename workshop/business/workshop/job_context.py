"""
Job Context
Business logic context manager for workshop jobs.

Wraps a WorkshopJob and exposes every lifecycle operation. Each public
mutation runs inside one unit of work: it either commits completely or
leaves the database untouched.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union
from workshop import db
from workshop.business.core.customer_resolver import CustomerResolver
from workshop.business.core.settings_snapshot import SettingsSnapshot
from workshop.business.core.unit_of_work import unit_of_work
from workshop.business.errors import InvalidStateError, NotFoundError, ValidationError
from workshop.business.workshop.completion_manager import CompletionManager
from workshop.business.workshop.job_analytics import JobAnalytics
from workshop.business.workshop.job_factory import JobFactory
from workshop.business.workshop.parts_availability import PartsAvailability
from workshop.business.workshop.payloads import first_present, parse_datetime, parse_float, parse_int
from workshop.business.workshop.progress_policy import (
    TECHNICIAN_ASSIGNED_PROGRESS,
    ProgressPolicy,
    get_progress_policy,
)
from workshop.business.workshop.progress_tracker import ProgressTracker
from workshop.business.workshop.resource_reservation_manager import ResourceReservationManager
from workshop.business.workshop.state_machine import JobStateMachine
from workshop.data.billing.invoice import Invoice
from workshop.data.workshop.job import WorkshopJob
from workshop.data.workshop.job_task import JobTask
from workshop.utils.logger import get_logger

logger = get_logger("workshop.business.workshop.job_context")

# Plain columns the generic update may set: payload key -> (column, parser)
_UPDATABLE_FIELDS = {
    'title': ('title', None),
    'description': ('description', None),
    'deadline': ('deadline', lambda value: parse_datetime(value, 'deadline')),
    'estimatedDuration': ('estimated_duration', parse_int),
    'repairRequest': ('repair_request', None),
    'customerName': ('customer_name', None),
}


class JobContext:
    """
    Business logic context manager for a single workshop job.
    """

    def __init__(self, job: WorkshopJob, progress_policy: Optional[ProgressPolicy] = None):
        self._job = job
        self._policy = progress_policy

    @classmethod
    def from_id(cls, job_id: Union[int, str], progress_policy: Optional[ProgressPolicy] = None) -> 'JobContext':
        """
        Raises:
            NotFoundError: If no job has this id
        """
        job = db.session.get(WorkshopJob, parse_int(job_id)) if parse_int(job_id) is not None else None
        if job is None:
            raise NotFoundError('Job not found')
        return cls(job, progress_policy)

    @classmethod
    def create(cls, data: Dict[str, Any], user_id: int) -> 'JobContext':
        return cls(JobFactory.create(data, user_id))

    @property
    def job(self) -> WorkshopJob:
        return self._job

    @property
    def job_id(self) -> int:
        return self._job.id

    @property
    def policy(self) -> ProgressPolicy:
        if self._policy is None:
            self._policy = get_progress_policy()
        return self._policy

    # Scheduling and status

    def schedule(self, start, end, user_id: int) -> 'JobContext':
        """
        Set the schedule window and move the job to scheduled.

        Parts availability is re-checked first; any shortage rejects the
        whole operation.
        """
        job = self._job
        JobStateMachine.ensure_mutable(job.status, 'schedule')
        start = parse_datetime(start, 'start')
        end = parse_datetime(end, 'end')
        if start is None or end is None:
            raise ValidationError('Both start and end are required')
        if end < start:
            raise ValidationError('End must be after start')
        JobStateMachine.validate_transition(job.status, JobStateMachine.SCHEDULED)

        PartsAvailability.ensure_job_parts_available(job)

        with unit_of_work('Schedule job'):
            PartsAvailability.refresh_job_parts(job)
            job.scheduled_start = start
            job.scheduled_end = end
            job.updated_by_id = user_id
            ProgressTracker.transition(job, JobStateMachine.SCHEDULED, user_id)
            ProgressTracker.record(job, 'scheduled', f"Scheduled {start.isoformat()} - {end.isoformat()}", user_id)

        logger.info(f"Job {job.id} scheduled by user {user_id}")
        return self

    def update(self, data: Dict[str, Any], user_id: int,
               settings: Optional[SettingsSnapshot] = None) -> Tuple['JobContext', Optional[Invoice]]:
        """
        Generic update of job fields, optional status change and task list
        replacement, followed by a progress recompute.

        Moving to completed runs the full completion; moving to cancelled
        runs the cancellation.
        """
        job = self._job
        data = data or {}
        JobStateMachine.ensure_mutable(job.status, 'update')

        target_status = data.get('status')
        if target_status is not None:
            JobStateMachine.validate_transition(job.status, target_status)
        if 'title' in data and not (data.get('title') or '').strip():
            raise ValidationError('Title cannot be empty')
        if 'priority' in data and data['priority'] not in WorkshopJob.PRIORITIES:
            raise ValidationError(f"Invalid priority: {data['priority']}")
        if target_status == JobStateMachine.SCHEDULED and job.status != JobStateMachine.SCHEDULED:
            PartsAvailability.ensure_job_parts_available(job)

        invoice = None
        with unit_of_work('Update job'):
            for key, (column, parser) in _UPDATABLE_FIELDS.items():
                if key in data:
                    value = data[key]
                    setattr(job, column, parser(value) if parser else value)
            if 'priority' in data:
                job.priority = data['priority']
            if 'customerPhone' in data or 'customer' in data:
                customer = CustomerResolver.resolve_customer(
                    data.get('customerPhone'), first_present(data, 'customer', 'customerId'))
                job.customer_id = customer.id if customer else None
                job.customer_phone = CustomerResolver.normalize_phone(data.get('customerPhone')) or (
                    customer.phone if customer else None)
            if isinstance(data.get('vehicle'), dict):
                vehicle = data['vehicle']
                job.vehicle_make = vehicle.get('make', job.vehicle_make)
                job.vehicle_model = vehicle.get('model', job.vehicle_model)
                job.vehicle_reg_number = vehicle.get('regNumber', job.vehicle_reg_number)
                if 'odometer' in vehicle:
                    job.vehicle_odometer = parse_int(vehicle.get('odometer'))
            if 'tasks' in data:
                self._replace_tasks(data.get('tasks'), user_id)

            job.updated_by_id = user_id
            job.last_updated_by_id = user_id

            if target_status == JobStateMachine.COMPLETED:
                _, invoice = CompletionManager(settings or SettingsSnapshot.load()).complete(job, data, user_id)
            elif target_status == JobStateMachine.CANCELLED:
                self._cancel(user_id, data.get('reason'))
            else:
                if target_status is not None and ProgressTracker.transition(job, target_status, user_id):
                    ProgressTracker.record(job, 'status_change', f"Status changed to {target_status}", user_id)
                db.session.flush()
                ProgressTracker.apply_policy(job, self.policy, user_id, step='job_update')

        logger.info(f"Job {job.id} updated by user {user_id}")
        return self, invoice

    def update_progress(self, progress, status, user_id: int,
                        settings: Optional[SettingsSnapshot] = None) -> Tuple['JobContext', Optional[Invoice]]:
        """Manual progress and/or status update; progress is clamped into [0, 100]"""
        job = self._job
        JobStateMachine.ensure_mutable(job.status, 'update progress of')
        if progress is None and status is None:
            raise ValidationError('progress or status is required')
        value = None
        if progress is not None:
            value = parse_float(progress)
            if value is None:
                raise ValidationError('progress must be a number')
        if status is not None:
            JobStateMachine.validate_transition(job.status, status)

        invoice = None
        with unit_of_work('Update job progress'):
            if status == JobStateMachine.COMPLETED:
                _, invoice = CompletionManager(settings or SettingsSnapshot.load()).complete(job, {}, user_id)
            elif status == JobStateMachine.CANCELLED:
                self._cancel(user_id)
            else:
                status_changed = status is not None and ProgressTracker.transition(job, status, user_id)
                changed = value is not None and ProgressTracker.set_progress(
                    job, value, 'manual_update', 'Progress updated manually', user_id)
                if status_changed and not changed:
                    ProgressTracker.record(job, 'status_change', f"Status changed to {status}", user_id)
                job.last_updated_by_id = user_id

        logger.info(f"Job {job.id} progress updated to {job.progress} ({job.status}) by user {user_id}")
        return self, invoice

    # Tasks

    def _replace_tasks(self, tasks_payload, user_id):
        if not isinstance(tasks_payload, list):
            raise ValidationError('tasks must be a list')
        new_tasks = [JobFactory.build_task(task_data, user_id, index)
                     for index, task_data in enumerate(tasks_payload)]
        self._job.tasks[:] = new_tasks

    def add_task(self, data: Dict[str, Any], user_id: int) -> JobTask:
        job = self._job
        JobStateMachine.ensure_mutable(job.status, 'add tasks to')
        task = JobFactory.build_task(data or {}, user_id)
        with unit_of_work('Add task'):
            job.tasks.append(task)
            job.last_updated_by_id = user_id
            db.session.flush()
            ProgressTracker.apply_policy(job, self.policy, user_id, step='task_added',
                                         message=f"Task '{task.title}' added")
        logger.info(f"Task {task.id} added to job {job.id} by user {user_id}")
        return task

    def update_task(self, task_id, data: Dict[str, Any], user_id: int) -> JobTask:
        """
        Update a task. completed stamps completed_at, in_progress stamps
        started_at; progress is recomputed with the configured policy.
        """
        job = self._job
        JobStateMachine.ensure_mutable(job.status, 'update tasks of')
        task = job.find_task(parse_int(task_id))
        if task is None:
            raise NotFoundError('Task not found')
        data = data or {}
        status = data.get('status')
        if status is not None and status not in JobTask.STATUSES:
            raise ValidationError(f"Invalid task status: {status}")

        with unit_of_work('Update task'):
            for key, column in (('title', 'title'), ('description', 'description'),
                                ('notes', 'notes'), ('priority', 'priority'),
                                ('assigneeName', 'assignee_name')):
                if key in data:
                    setattr(task, column, data[key])
            if 'assignee' in data or 'assigneeId' in data:
                task.assignee_id = parse_int(first_present(data, 'assignee', 'assigneeId'))
            if 'estimatedDuration' in data:
                task.estimated_duration = parse_int(data['estimatedDuration'])
            if 'actualDuration' in data:
                task.actual_duration = parse_int(data['actualDuration'])

            if status is not None and status != task.status:
                now = datetime.utcnow()
                if status == 'completed':
                    task.completed_at = now
                    if task.started_at is None:
                        task.started_at = now
                elif status == 'in_progress':
                    task.started_at = task.started_at or now
                    task.completed_at = None
                else:
                    task.completed_at = None
                task.status = status

            task.updated_by_id = user_id
            job.last_updated_by_id = user_id
            ProgressTracker.apply_policy(job, self.policy, user_id, step='task_update',
                                         message=f"Task '{task.title}' is {task.status}")

        logger.info(f"Task {task.id} of job {job.id} updated by user {user_id}")
        return task

    # Resources

    def assign_technician(self, technician_id, user_id: int, role: str = 'technician') -> 'JobContext':
        with unit_of_work('Assign technician'):
            ResourceReservationManager.assign_technician(self._job, technician_id, user_id, role)
            ResourceReservationManager.start_work_if_scheduled(
                self._job, TECHNICIAN_ASSIGNED_PROGRESS, user_id, 'Technician assigned, work started')
        return self

    def remove_technician(self, technician_id, user_id: int) -> 'JobContext':
        with unit_of_work('Remove technician'):
            ResourceReservationManager.remove_technician(self._job, technician_id, user_id)
        return self

    def assign_tool(self, tool_id, user_id: int, required_from=None, required_until=None) -> 'JobContext':
        with unit_of_work('Assign tool'):
            ResourceReservationManager.assign_tool(self._job, tool_id, user_id, required_from, required_until)
            ResourceReservationManager.start_work_if_scheduled(
                self._job, TECHNICIAN_ASSIGNED_PROGRESS, user_id, 'Tool assigned, work started')
        return self

    def book_machine(self, machine_id, user_id: int, required_from=None, required_until=None) -> 'JobContext':
        with unit_of_work('Book machine'):
            ResourceReservationManager.book_machine(self._job, machine_id, user_id, required_from, required_until)
            ResourceReservationManager.start_work_if_scheduled(
                self._job, TECHNICIAN_ASSIGNED_PROGRESS, user_id, 'Machine booked, work started')
        return self

    def book_workstation(self, workstation_id, user_id: int, required_from=None,
                         required_until=None) -> 'JobContext':
        with unit_of_work('Book workstation'):
            ResourceReservationManager.book_workstation(
                self._job, workstation_id, user_id, required_from, required_until)
            ResourceReservationManager.start_work_if_scheduled(
                self._job, TECHNICIAN_ASSIGNED_PROGRESS, user_id, 'Workstation booked, work started')
        return self

    def add_part(self, product_id, quantity, user_id: int) -> 'JobContext':
        with unit_of_work('Add part'):
            ResourceReservationManager.add_part(self._job, product_id, quantity, user_id)
            ResourceReservationManager.start_work_if_scheduled(
                self._job, TECHNICIAN_ASSIGNED_PROGRESS, user_id, 'Parts assigned, work started')
        return self

    def assign_resources(self, payload: Dict[str, Any], user_id: int) -> Dict[str, Any]:
        with unit_of_work('Assign resources'):
            result = ResourceReservationManager.assign_resources(self._job, payload, user_id)
        return result

    # Parts

    def check_parts(self) -> List[Dict[str, Any]]:
        """Refresh part snapshots and return the shortage list; status is untouched"""
        with unit_of_work('Check parts'):
            shortages = PartsAvailability.refresh_job_parts(self._job)
        return shortages

    def reserve_parts(self, user_id: int) -> int:
        JobStateMachine.ensure_mutable(self._job.status, 'reserve parts for')
        with unit_of_work('Reserve parts'):
            reserved = PartsAvailability.reserve_job_parts(self._job, user_id)
            self._job.last_updated_by_id = user_id
        logger.info(f"{reserved} parts reserved on job {self._job.id} by user {user_id}")
        return reserved

    # Completion, cancellation, deletion

    def complete(self, payload: Dict[str, Any], user_id: int,
                 settings: Optional[SettingsSnapshot] = None) -> Optional[Invoice]:
        with unit_of_work('Complete job'):
            _, invoice = CompletionManager(settings or SettingsSnapshot.load()).complete(
                self._job, payload, user_id)
        return invoice

    def _cancel(self, user_id: int, reason: Optional[str] = None):
        job = self._job
        if JobStateMachine.is_terminal(job.status):
            raise InvalidStateError(f"Job is already {job.status}")
        ResourceReservationManager.release_all(job, user_id)
        ProgressTracker.transition(job, JobStateMachine.CANCELLED, user_id)
        job.is_active = False
        ProgressTracker.record(job, 'cancelled', reason or 'Job cancelled', user_id)

    def cancel(self, user_id: int, reason: Optional[str] = None) -> 'JobContext':
        """
        Cancel the job and release every resource it holds. No stock is
        touched since nothing was deducted before completion.

        Raises:
            InvalidStateError: If the job is already cancelled or completed
        """
        with unit_of_work('Cancel job'):
            self._cancel(user_id, reason)
        logger.info(f"Job {self._job.id} cancelled by user {user_id}")
        return self

    def delete(self, user_id: int) -> None:
        """
        Permanently delete a job that has not started work.

        Raises:
            InvalidStateError: If the job is in progress or completed
        """
        job = self._job
        if not JobStateMachine.can_delete(job.status):
            raise InvalidStateError(f"Cannot delete a job that is {job.status}")
        job_id = job.id
        with unit_of_work('Delete job'):
            ResourceReservationManager.release_all(job, user_id)
            db.session.delete(job)
        logger.info(f"Job {job_id} deleted by user {user_id}")

    # Read side

    def analytics(self) -> Dict[str, Any]:
        return JobAnalytics(self._job).to_dict()

    def to_dict(self) -> Dict[str, Any]:
        data = self._job.to_dict()
        data['allowed_transitions'] = sorted(JobStateMachine.get_allowed_transitions(self._job.status))
        return data
