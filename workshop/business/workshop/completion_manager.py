"""
CompletionManager - finalizes a workshop job

Steps, inside the caller's single transaction:
1. Resolve used/returned quantities for every part and refuse any shortage
2. Write "out" and "in" stock movements and adjust product stock
3. Release technicians, tools, machines and workstations
4. Mark the job completed (progress 100, completion details, history entry)
5. Build the invoice inside a SAVEPOINT

An invoice failure rolls back only the SAVEPOINT; it is logged and the
completion still succeeds with no invoice.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from workshop import db
from workshop.business.billing.invoice_builder import InvoiceBuilder
from workshop.business.core.settings_snapshot import SettingsSnapshot
from workshop.business.errors import ValidationError
from workshop.business.inventory.inventory_manager import InventoryManager
from workshop.business.workshop.parts_availability import PartsAvailability
from workshop.business.workshop.payloads import first_present, parse_float, parse_int, parse_quantity_map
from workshop.business.workshop.progress_policy import COMPLETED_PROGRESS
from workshop.business.workshop.progress_tracker import ProgressTracker
from workshop.business.workshop.resource_reservation_manager import ResourceReservationManager
from workshop.business.workshop.state_machine import JobStateMachine
from workshop.data.billing.invoice import Invoice
from workshop.data.workshop.job import WorkshopJob
from workshop.data.workshop.job_charge import JobCharge
from workshop.utils.logger import get_logger

logger = get_logger("workshop.business.workshop.completion")


class CompletionManager:

    def __init__(self, settings: SettingsSnapshot, invoice_builder: Optional[InvoiceBuilder] = None):
        self.settings = settings
        self.invoice_builder = invoice_builder or InvoiceBuilder(settings)

    @staticmethod
    def parse_charges(raw) -> List[Dict[str, Any]]:
        if not raw:
            return []
        if not isinstance(raw, list):
            raise ValidationError('charges must be a list')
        charges, errors = [], []
        for index, entry in enumerate(raw):
            name = (entry.get('name') or entry.get('description') or '').strip() if isinstance(entry, dict) else ''
            amount = parse_float(entry.get('amount')) if isinstance(entry, dict) else None
            tax_rate = parse_float(first_present(entry, 'taxRate', 'tax_rate')) if isinstance(entry, dict) else None
            if not name or amount is None or amount < 0:
                errors.append(f"charges[{index}] needs a name and a non-negative amount")
                continue
            charges.append({'name': name, 'amount': amount, 'tax_rate': tax_rate or 0})
        if errors:
            raise ValidationError('Invalid charges', errors=errors)
        return charges

    def complete(self, job: WorkshopJob, payload: Dict[str, Any], user_id) -> Tuple[WorkshopJob, Optional[Invoice]]:
        """
        Complete the job.

        Args:
            payload: {actualDuration, charges[], partsUsed{}, partsReturned{}, notes}

        Raises:
            InvalidStateError: job already completed or cancelled
            ValidationError: malformed payload
            InsufficientStockError: a used quantity exceeds current stock
        """
        JobStateMachine.ensure_mutable(job.status, 'complete')
        JobStateMachine.validate_transition(job.status, JobStateMachine.COMPLETED)

        payload = payload or {}
        parts_used = parse_quantity_map(payload.get('partsUsed'), 'partsUsed')
        parts_returned = parse_quantity_map(payload.get('partsReturned'), 'partsReturned')
        charges = self.parse_charges(payload.get('charges'))
        actual_duration = parse_int(payload.get('actualDuration'))
        now = datetime.utcnow()

        PartsAvailability.ensure_available([
            (part.product_id, parts_used.get(part.product_id, part.quantity_required or 0))
            for part in job.parts
        ])
        consumed = self._settle_parts(job, parts_used, parts_returned, user_id, now)

        for charge in charges:
            job.charges.append(JobCharge(**charge))

        ResourceReservationManager.release_all(job, user_id, completed=True)

        ProgressTracker.transition(job, JobStateMachine.COMPLETED, user_id)
        job.progress = COMPLETED_PROGRESS
        job.actual_duration = actual_duration
        job.completion_notes = payload.get('notes') or payload.get('completionNotes')
        job.completed_by_id = user_id
        job.completed_at = now
        ProgressTracker.record(job, 'completed', 'Job completed', user_id)

        # Versioned rows are flushed here so a conflict aborts the whole completion
        db.session.flush()
        invoice = self._create_invoice(job, consumed, user_id)

        logger.info(f"Job {job.id} completed by user {user_id}"
                    f" (invoice {invoice.invoice_number if invoice else 'none'})")
        return job, invoice

    def _settle_parts(self, job, parts_used, parts_returned, user_id, now):
        consumed = []
        for part in job.parts:
            used = parts_used.get(part.product_id, part.quantity_required or 0)
            returned = parts_returned.get(part.product_id, 0)
            part.quantity_used = used
            part.quantity_returned = returned
            part.issued_at = now
            part.updated_by_id = user_id

            product = InventoryManager.get_product(part.product_id)
            if product is None:
                logger.warning(f"Job {job.id}: product {part.product_id} no longer exists, stock not adjusted")
                continue

            if used > 0:
                InventoryManager.issue_to_job(product, used, job.id, user_id)
            if returned > 0:
                InventoryManager.return_from_job(product, returned, job.id, user_id)

            billable = max(0, used - returned)
            if billable > 0:
                consumed.append((product, billable))
        return consumed

    def _create_invoice(self, job, consumed, user_id) -> Optional[Invoice]:
        try:
            with db.session.begin_nested():
                return self.invoice_builder.build_for_job(job, consumed, user_id)
        except Exception as e:
            logger.error(f"Invoice creation failed for job {job.id}, completing without invoice: {e}",
                         exc_info=True)
            return None
