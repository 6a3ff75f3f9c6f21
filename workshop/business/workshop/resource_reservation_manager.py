"""
ResourceReservationManager - claims and releases resource pool entries for a job

Responsibilities:
- Individual assignment (technician, tool, machine, workstation, part)
- Bulk assignment that collects per-item failures instead of aborting
- Releasing every resource a job holds (completion, cancellation, deletion)

Availability is checked on the pool row and the write goes to the same
versioned row, so two jobs racing for one resource cannot both commit.
Methods here never commit; JobContext wraps each call in a unit of work.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from workshop import db
from workshop.business.errors import (
    InvalidStateError,
    NotFoundError,
    ValidationError,
    WorkshopDomainError,
)
from workshop.business.inventory.inventory_manager import InventoryManager
from workshop.business.workshop.parts_availability import PartsAvailability
from workshop.business.workshop.payloads import first_present, parse_datetime, parse_float, parse_int
from workshop.business.workshop.progress_policy import (
    RESOURCES_ALLOCATED_PROGRESS,
    TECHNICIAN_ASSIGNED_PROGRESS,
)
from workshop.business.workshop.progress_tracker import ProgressTracker
from workshop.business.workshop.state_machine import JobStateMachine
from workshop.data.resources.machine import Machine
from workshop.data.resources.technician import Technician
from workshop.data.resources.tool import Tool
from workshop.data.resources.workstation import WorkStation
from workshop.data.workshop.job import WorkshopJob
from workshop.data.workshop.job_part import JobPart
from workshop.data.workshop.job_resources import JobMachine, JobTechnician, JobTool, JobWorkStation
from workshop.utils.logger import get_logger

logger = get_logger("workshop.business.workshop.reservations")


def _load(model, resource_id, label):
    resource = db.session.get(model, resource_id) if resource_id is not None else None
    if resource is None:
        raise NotFoundError(f"{label} {resource_id} not found")
    return resource


class ResourceReservationManager:

    # Individual assignment

    @staticmethod
    def assign_technician(job: WorkshopJob, technician_id, user_id, role='technician') -> JobTechnician:
        JobStateMachine.ensure_mutable(job.status, 'assign technicians to')
        technician = _load(Technician, parse_int(technician_id), 'Technician')

        if job.find_technician(technician.id) is not None or technician.is_assigned_to(job.id):
            raise InvalidStateError(f"Technician {technician.name} is already assigned to this job")
        if not technician.is_currently_available:
            raise InvalidStateError(f"Technician {technician.name} is not available")

        technician.assign_job(job.id, role or 'technician')
        technician.updated_by_id = user_id
        entry = JobTechnician(
            technician_id=technician.id,
            name=technician.name,
            role=role or 'technician',
            assigned_at=datetime.utcnow(),
            assigned_by_id=user_id,
        )
        job.technicians.append(entry)
        logger.info(f"Technician {technician.id} assigned to job {job.id} by user {user_id}")
        return entry

    @staticmethod
    def remove_technician(job: WorkshopJob, technician_id, user_id) -> None:
        JobStateMachine.ensure_mutable(job.status, 'remove technicians from')
        technician_id = parse_int(technician_id)
        entry = job.find_technician(technician_id)
        if entry is None:
            raise NotFoundError(f"Technician {technician_id} is not assigned to this job")

        technician = db.session.get(Technician, technician_id)
        if technician is not None:
            technician.remove_job(job.id)
            technician.updated_by_id = user_id
        job.technicians.remove(entry)
        logger.info(f"Technician {technician_id} removed from job {job.id} by user {user_id}")

    @staticmethod
    def assign_tool(job: WorkshopJob, tool_id, user_id, required_from=None, required_until=None) -> JobTool:
        JobStateMachine.ensure_mutable(job.status, 'assign tools to')
        tool = _load(Tool, parse_int(tool_id), 'Tool')
        if not tool.is_assignable:
            raise InvalidStateError(f"Tool {tool.name} is not available")

        required_from = parse_datetime(required_from, 'requiredFrom')
        required_until = parse_datetime(required_until, 'requiredUntil')
        tool.assign(job.id, user_id, expected_return=required_until)
        tool.updated_by_id = user_id
        entry = JobTool(
            tool_id=tool.id,
            name=tool.name,
            required_from=required_from,
            required_until=required_until,
            is_available=True,
            assigned_at=datetime.utcnow(),
            assigned_by_id=user_id,
        )
        job.tools.append(entry)
        logger.info(f"Tool {tool.id} assigned to job {job.id} by user {user_id}")
        return entry

    @staticmethod
    def book_machine(job: WorkshopJob, machine_id, user_id, required_from=None, required_until=None) -> JobMachine:
        JobStateMachine.ensure_mutable(job.status, 'book machines for')
        machine = _load(Machine, parse_int(machine_id), 'Machine')
        if machine.status != 'operational':
            raise InvalidStateError(f"Machine {machine.name} is not operational ({machine.status})")
        if not machine.is_available:
            raise InvalidStateError(f"Machine {machine.name} is already booked")

        required_from = parse_datetime(required_from, 'requiredFrom')
        required_until = parse_datetime(required_until, 'requiredUntil')
        machine.book(job.id, user_id, until=required_until)
        machine.updated_by_id = user_id
        entry = JobMachine(
            machine_id=machine.id,
            name=machine.name,
            required_from=required_from,
            required_until=required_until,
            is_available=True,
            assigned_at=datetime.utcnow(),
            assigned_by_id=user_id,
        )
        job.machines.append(entry)
        logger.info(f"Machine {machine.id} booked for job {job.id} by user {user_id}")
        return entry

    @staticmethod
    def book_workstation(job: WorkshopJob, workstation_id, user_id, required_from=None,
                         required_until=None) -> JobWorkStation:
        JobStateMachine.ensure_mutable(job.status, 'book workstations for')
        station = _load(WorkStation, parse_int(workstation_id), 'Workstation')
        if not station.is_bookable:
            raise InvalidStateError(f"Workstation {station.name} is not available")

        required_from = parse_datetime(required_from, 'requiredFrom')
        required_until = parse_datetime(required_until, 'requiredUntil')
        station.book(job.id, user_id, until=required_until)
        station.updated_by_id = user_id
        entry = JobWorkStation(
            workstation_id=station.id,
            name=station.name,
            required_from=required_from,
            required_until=required_until,
            is_available=True,
            assigned_at=datetime.utcnow(),
            assigned_by_id=user_id,
        )
        job.workstations.append(entry)
        logger.info(f"Workstation {station.id} booked for job {job.id} by user {user_id}")
        return entry

    @staticmethod
    def add_part(job: WorkshopJob, product_id, quantity, user_id) -> JobPart:
        """
        Require a part on the job. Stock must cover the new total required
        quantity; nothing is deducted until completion.
        """
        JobStateMachine.ensure_mutable(job.status, 'add parts to')
        product_id = parse_int(product_id)
        quantity = parse_float(quantity)
        if not product_id or not quantity or quantity <= 0:
            raise ValidationError('A product and a positive quantity are required')

        product = InventoryManager.get_product(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")

        existing = job.find_part(product_id)
        total_required = quantity + (existing.quantity_required if existing else 0)
        PartsAvailability.ensure_available([(product_id, total_required)])

        if existing is not None:
            existing.quantity_required = total_required
            existing.refresh_snapshot(product)
            existing.updated_by_id = user_id
            part = existing
        else:
            part = JobPart(product_id=product_id, quantity_required=quantity,
                           created_by_id=user_id, updated_by_id=user_id)
            part.refresh_snapshot(product)
            job.parts.append(part)

        logger.info(f"Part {product_id} x{quantity} added to job {job.id} by user {user_id}")
        return part

    @staticmethod
    def start_work_if_scheduled(job: WorkshopJob, progress_value: int, user_id, message: str) -> bool:
        """
        The first successful assignment on a scheduled job moves it to
        in_progress and jumps progress to a fixed value.
        """
        if job.status != JobStateMachine.SCHEDULED:
            return False
        ProgressTracker.transition(job, JobStateMachine.IN_PROGRESS, user_id)
        step = 'resources_allocated' if progress_value == RESOURCES_ALLOCATED_PROGRESS else 'technician_assigned'
        if not ProgressTracker.set_progress(job, max(job.progress or 0, progress_value), step, message, user_id):
            ProgressTracker.record(job, step, message, user_id)
        return True

    # Bulk assignment

    @staticmethod
    def assign_resources(job: WorkshopJob, payload: Dict[str, Any], user_id) -> Dict[str, Any]:
        """
        Assign technicians, tools, machines, workstations and parts in one call.

        Failures of individual items are collected into `errors`; the items
        that succeeded are kept.

        Returns:
            dict: {'assigned': {...ids per kind}, 'errors': [{type, id, message}]}
        """
        JobStateMachine.ensure_mutable(job.status, 'assign resources to')
        payload = payload or {}
        assigned = {'technicians': [], 'tools': [], 'machines': [], 'workstations': [], 'parts': []}
        errors: List[Dict[str, Any]] = []

        def attempt(kind, resource_id, action):
            try:
                action()
                assigned[kind].append(resource_id)
            except WorkshopDomainError as e:
                errors.append({'type': kind[:-1], 'id': resource_id, 'message': e.message})

        for item in _as_entries(payload.get('technicians'), 'technicianId', 'technician'):
            tech_id = item.get('_id')
            attempt('technicians', tech_id, lambda: ResourceReservationManager.assign_technician(
                job, tech_id, user_id, item.get('role') or 'technician'))

        for item in _as_entries(payload.get('tools'), 'toolId', 'tool'):
            tool_id = item.get('_id')
            attempt('tools', tool_id, lambda: ResourceReservationManager.assign_tool(
                job, tool_id, user_id, item.get('requiredFrom'), item.get('requiredUntil')))

        for item in _as_entries(payload.get('machines'), 'machineId', 'machine'):
            machine_id = item.get('_id')
            attempt('machines', machine_id, lambda: ResourceReservationManager.book_machine(
                job, machine_id, user_id, item.get('requiredFrom'), item.get('requiredUntil')))

        for item in _as_entries(payload.get('workstations'), 'workstationId', 'stationId', 'workstation'):
            station_id = item.get('_id')
            attempt('workstations', station_id, lambda: ResourceReservationManager.book_workstation(
                job, station_id, user_id, item.get('requiredFrom'), item.get('requiredUntil')))

        for item in _as_entries(payload.get('parts'), 'productId', 'product'):
            product_id = item.get('_id')
            quantity = first_present(item, 'quantity', 'quantityRequired')
            attempt('parts', product_id, lambda: ResourceReservationManager.add_part(
                job, product_id, quantity, user_id))

        if any(assigned.values()):
            ResourceReservationManager.start_work_if_scheduled(
                job, RESOURCES_ALLOCATED_PROGRESS, user_id, 'Resources allocated, work started')

        logger.info(
            f"Bulk assignment on job {job.id} by user {user_id}: "
            f"{sum(len(v) for v in assigned.values())} assigned, {len(errors)} failed"
        )
        return {'assigned': assigned, 'errors': errors}

    # Release

    @staticmethod
    def release_all(job: WorkshopJob, user_id, completed: bool = False) -> Dict[str, int]:
        """
        Release every technician, tool, machine and workstation held by the job.

        Pool rows already released (or now held by another job) are left
        untouched, so releasing twice never double-counts.

        Returns:
            dict: number of rows released per kind
        """
        now = datetime.utcnow()
        released = {'technicians': 0, 'tools': 0, 'machines': 0, 'workstations': 0}

        for entry in job.technicians:
            technician = db.session.get(Technician, entry.technician_id)
            if technician is None:
                continue
            changed = technician.complete_job(job.id) if completed else technician.remove_job(job.id)
            if changed:
                technician.updated_by_id = user_id
                released['technicians'] += 1

        for kind, entries, model, attr in (
            ('tools', job.tools, Tool, 'tool_id'),
            ('machines', job.machines, Machine, 'machine_id'),
            ('workstations', job.workstations, WorkStation, 'workstation_id'),
        ):
            for entry in entries:
                if entry.returned_at is not None:
                    continue
                resource = db.session.get(model, getattr(entry, attr))
                if resource is not None and resource.current_job_id == job.id:
                    resource.release()
                    resource.updated_by_id = user_id
                    released[kind] += 1
                entry.returned_at = now

        logger.info(f"Released resources of job {job.id} by user {user_id}: {released}")
        return released


def _as_entries(raw, *id_keys) -> List[Dict[str, Any]]:
    """Normalize [1, {"technicianId": 2, ...}] into dicts carrying '_id'"""
    entries = []
    for item in raw or []:
        if isinstance(item, dict):
            entry = dict(item)
            entry['_id'] = parse_int(first_present(item, *id_keys, 'id'))
        else:
            entry = {'_id': parse_int(item)}
        entries.append(entry)
    return entries
