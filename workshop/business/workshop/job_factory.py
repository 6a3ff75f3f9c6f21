"""
JobFactory - creation of workshop jobs from a request payload

Creation is all-or-nothing: the parts shortage check runs before anything is
written, and validation failures leave no job behind.
"""

from datetime import datetime
from typing import Any, Dict
from workshop import db
from workshop.business.core.customer_resolver import CustomerResolver
from workshop.business.core.unit_of_work import unit_of_work
from workshop.business.errors import ValidationError
from workshop.business.inventory.inventory_manager import InventoryManager
from workshop.business.workshop.parts_availability import PartsAvailability
from workshop.business.workshop.payloads import first_present, parse_datetime, parse_float, parse_int
from workshop.business.workshop.progress_policy import CREATED_PROGRESS
from workshop.business.workshop.progress_tracker import ProgressTracker
from workshop.business.workshop.state_machine import JobStateMachine
from workshop.data.workshop.job import WorkshopJob
from workshop.data.workshop.job_part import JobPart
from workshop.data.workshop.job_task import JobTask
from workshop.utils.logger import get_logger

logger = get_logger("workshop.business.workshop.job_factory")


class JobFactory:

    @staticmethod
    def create(data: Dict[str, Any], user_id: int) -> WorkshopJob:
        """
        Create a job card.

        Args:
            data: JSON body (title, customer, customerPhone, customerName, parts[],
                  tasks[], scheduled{start,end}, vehicle{}, ...)
            user_id: acting user

        Raises:
            ValidationError: malformed payload
            NotFoundError: explicit customer id does not exist
            InsufficientStockError: any requested part is short
        """
        data = data or {}
        title = (data.get('title') or '').strip()
        if not title:
            raise ValidationError('Title is required')

        priority = data.get('priority') or 'medium'
        if priority not in WorkshopJob.PRIORITIES:
            raise ValidationError(f"Invalid priority: {priority}")

        customer = CustomerResolver.resolve_customer(
            data.get('customerPhone'), first_present(data, 'customer', 'customerId')
        )

        parts_payload = data.get('parts') or []
        if not isinstance(parts_payload, list):
            raise ValidationError('parts must be a list')
        requested = PartsAvailability.requested_from_payload(parts_payload)
        PartsAvailability.ensure_available(requested)

        invalid = [
            f"parts[{index}] needs a product and a positive quantityRequired"
            for index, (product_id, quantity) in enumerate(requested)
            if not product_id or not quantity or quantity <= 0
        ]
        if invalid:
            raise ValidationError('Invalid parts', errors=invalid)

        tasks_payload = data.get('tasks') or []
        if not isinstance(tasks_payload, list):
            raise ValidationError('tasks must be a list')

        scheduled = data.get('scheduled') or {}
        scheduled_start = parse_datetime(first_present(scheduled, 'start') or data.get('scheduledStart'), 'scheduled start')
        scheduled_end = parse_datetime(first_present(scheduled, 'end') or data.get('scheduledEnd'), 'scheduled end')
        if scheduled_start and scheduled_end and scheduled_end < scheduled_start:
            raise ValidationError('Scheduled end must be after scheduled start')

        estimated_duration = first_present(data, 'estimatedDuration')
        if estimated_duration is None:
            estimated_duration = scheduled.get('estimatedDuration')

        vehicle = data.get('vehicle') or {}
        phone = CustomerResolver.normalize_phone(data.get('customerPhone'))

        with unit_of_work('Create job'):
            job = WorkshopJob(
                title=title,
                description=data.get('description'),
                priority=priority,
                status=JobStateMachine.DRAFT,
                progress=0,
                customer_id=customer.id if customer else None,
                customer_phone=phone or (customer.phone if customer else None),
                customer_name=data.get('customerName') or (customer.full_name if customer else None),
                deadline=parse_datetime(data.get('deadline'), 'deadline'),
                scheduled_start=scheduled_start,
                scheduled_end=scheduled_end,
                estimated_duration=parse_int(estimated_duration),
                repair_request=data.get('repairRequest'),
                vehicle_make=vehicle.get('make'),
                vehicle_model=vehicle.get('model'),
                vehicle_reg_number=vehicle.get('regNumber'),
                vehicle_odometer=parse_int(vehicle.get('odometer')),
                created_by_id=user_id,
                updated_by_id=user_id,
                last_updated_by_id=user_id,
            )
            db.session.add(job)

            for product_id, quantity in requested:
                JobFactory._add_part(job, product_id, quantity, user_id)

            for index, task_data in enumerate(tasks_payload):
                job.tasks.append(JobFactory.build_task(task_data, user_id, index))

            if scheduled_start and scheduled_end:
                ProgressTracker.transition(job, JobStateMachine.SCHEDULED, user_id)

            ProgressTracker.set_progress(
                job, CREATED_PROGRESS, 'quality_check', 'Job created, quality check completed', user_id
            )

        logger.info(f"Job {job.id} ({job.title}) created by user {user_id}")
        return job

    @staticmethod
    def _add_part(job, product_id, quantity, user_id):
        existing = job.find_part(product_id)
        if existing is not None:
            existing.quantity_required += quantity
            existing.total_cost = existing.unit_cost * existing.quantity_required
            return existing
        part = JobPart(product_id=product_id, quantity_required=quantity,
                       created_by_id=user_id, updated_by_id=user_id)
        product = InventoryManager.get_product(product_id)
        if product is not None:
            part.refresh_snapshot(product)
        job.parts.append(part)
        return part

    @staticmethod
    def build_task(task_data, user_id, index=0) -> JobTask:
        """Build a JobTask from {title, description, assignee, status, estimatedDuration, ...}"""
        if not isinstance(task_data, dict):
            raise ValidationError(f"tasks[{index}] must be an object")
        title = (task_data.get('title') or '').strip()
        if not title:
            raise ValidationError(f"tasks[{index}] needs a title")
        status = task_data.get('status') or 'todo'
        if status not in JobTask.STATUSES:
            raise ValidationError(f"Invalid task status: {status}")

        now = datetime.utcnow()
        return JobTask(
            title=title,
            description=task_data.get('description'),
            assignee_id=parse_int(first_present(task_data, 'assignee', 'assigneeId')),
            assignee_name=task_data.get('assigneeName'),
            status=status,
            priority=task_data.get('priority') or 'medium',
            estimated_duration=parse_int(task_data.get('estimatedDuration')),
            actual_duration=parse_int(task_data.get('actualDuration')),
            notes=task_data.get('notes'),
            started_at=now if status == 'in_progress' else None,
            completed_at=now if status == 'completed' else None,
            created_by_id=user_id,
            updated_by_id=user_id,
        )
