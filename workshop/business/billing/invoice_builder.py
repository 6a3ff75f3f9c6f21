"""
InvoiceBuilder - builds the sale invoice for a completed workshop job

Line items come from consumed parts (priced at the product's selling price
and tax rate) and from the service charges supplied at completion. Totals
are computed by Invoice.calculate_totals().
"""

from datetime import timedelta, datetime
from typing import List, Optional
from workshop import db
from workshop.business.core.settings_snapshot import SettingsSnapshot
from workshop.data.billing.invoice import Invoice, InvoiceItem
from workshop.utils.logger import get_logger

logger = get_logger("workshop.business.billing.invoice_builder")


class InvoiceBuilder:

    def __init__(self, settings: SettingsSnapshot):
        self.settings = settings

    def part_item(self, product, quantity) -> InvoiceItem:
        return InvoiceItem(
            product_id=product.id,
            name=product.name,
            description=product.description,
            sku=product.sku,
            quantity=quantity,
            unit_price=product.selling_price or 0,
            discount=0,
            tax_rate=self.settings.tax_rate_for(product.tax_rate),
        )

    @staticmethod
    def charge_item(charge) -> InvoiceItem:
        return InvoiceItem(
            product_id=None,
            name=charge.name,
            quantity=1,
            unit_price=charge.amount or 0,
            discount=0,
            tax_rate=charge.tax_rate or 0,
        )

    def build_for_job(self, job, consumed, user_id) -> Optional[Invoice]:
        """
        Create the invoice for a job.

        Args:
            job: WorkshopJob being completed
            consumed: list of (product, quantity) actually billed
            user_id: acting user

        Returns:
            Invoice, or None when there is nothing to bill
        """
        items: List[InvoiceItem] = [self.part_item(product, qty) for product, qty in consumed if qty > 0]
        items.extend(self.charge_item(charge) for charge in job.charges)
        if not items:
            logger.info(f"Job {job.id} has nothing billable, no invoice created")
            return None

        now = datetime.utcnow()
        invoice = Invoice(
            invoice_number=Invoice.generate_invoice_number('sale', now),
            invoice_type='sale',
            status='pending',
            customer_id=job.customer_id,
            customer_phone=job.customer_phone,
            workshop_job_id=job.id,
            currency=self.settings.default_currency,
            total_discount=0,
            shipping_cost=0,
            paid=0,
            invoice_date=now,
            due_date=now + timedelta(days=self.settings.invoice_due_days or 0),
            notes=f"Workshop Job {job.card_number or job.id} - {job.title or ''}".strip(),
            created_by_id=user_id,
            updated_by_id=user_id,
        )
        invoice.items.extend(items)
        invoice.calculate_totals()
        db.session.add(invoice)
        db.session.flush()

        logger.info(f"Invoice {invoice.invoice_number} created for job {job.id}: total {invoice.total}")
        return invoice
