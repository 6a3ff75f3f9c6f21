from datetime import datetime
from workshop import db
from workshop.data.core.user_created_base import UserCreatedBase


class Invoice(UserCreatedBase):
    __tablename__ = 'invoices'

    INVOICE_TYPES = ('sale', 'proforma', 'credit_note', 'debit_note', 'delivery_note')
    STATUSES = ('draft', 'pending', 'paid', 'partial', 'overdue', 'cancelled', 'refunded')

    invoice_number = db.Column(db.String(30), unique=True, nullable=False)
    invoice_type = db.Column(db.String(20), nullable=False, default='sale')
    status = db.Column(db.String(20), nullable=False, default='pending')
    customer_id = db.Column(db.Integer, db.ForeignKey('customers.id'), nullable=True, index=True)
    customer_phone = db.Column(db.String(30), nullable=True)
    workshop_job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='SET NULL'),
                                nullable=True, index=True)
    currency = db.Column(db.String(3), nullable=False, default='USD')

    subtotal = db.Column(db.Float, nullable=False, default=0.0)
    total_discount = db.Column(db.Float, nullable=False, default=0.0)
    total_tax = db.Column(db.Float, nullable=False, default=0.0)
    shipping_cost = db.Column(db.Float, nullable=False, default=0.0)
    total = db.Column(db.Float, nullable=False, default=0.0)
    paid = db.Column(db.Float, nullable=False, default=0.0)
    balance = db.Column(db.Float, nullable=False, default=0.0)

    invoice_date = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    due_date = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    items = db.relationship('InvoiceItem', back_populates='invoice', cascade='all, delete-orphan',
                            order_by='InvoiceItem.id')
    workshop_job = db.relationship('WorkshopJob', back_populates='invoice')
    customer = db.relationship('Customer')

    def __repr__(self):
        return f'<Invoice {self.invoice_number}: {self.total}>'

    @staticmethod
    def generate_invoice_number(invoice_type='sale', now=None):
        """e.g. SAL-202610-0001; the counter runs per invoice type and month"""
        now = now or datetime.utcnow()
        prefix = f"{invoice_type.upper()[:3]}-{now.year}{now.month:02d}-"
        latest = db.session.query(db.func.max(Invoice.invoice_number)).filter(
            Invoice.invoice_number.like(f"{prefix}%")
        ).scalar()
        sequence = int(latest[len(prefix):]) + 1 if latest else 1
        return f"{prefix}{sequence:04d}"

    def calculate_totals(self):
        """Derive every total from the line items"""
        subtotal = 0.0
        total_tax = 0.0
        for item in self.items:
            after_discount = item.amount_after_discount()
            tax_amount = after_discount * (item.tax_rate or 0) / 100
            item.total = round(after_discount + tax_amount, 2)
            subtotal += after_discount
            total_tax += tax_amount

        self.subtotal = round(subtotal, 2)
        self.total_tax = round(total_tax, 2)
        self.total = round(subtotal - (self.total_discount or 0) + total_tax + (self.shipping_cost or 0), 2)
        self.balance = round(self.total - (self.paid or 0), 2)

        if self.balance <= 0 and self.total > 0:
            self.status = 'paid'
        elif (self.paid or 0) > 0:
            self.status = 'partial'
        return self.total

    def to_dict(self, include_audit_fields=True, exclude=None):
        data = super().to_dict(include_audit_fields, exclude)
        data['items'] = [item.to_dict() for item in self.items]
        return data


class InvoiceItem(db.Model):
    __tablename__ = 'invoice_items'

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey('invoices.id', ondelete='CASCADE'),
                           nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=True)  # None for service charges
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    sku = db.Column(db.String(100), nullable=True)
    quantity = db.Column(db.Float, nullable=False, default=1.0)
    unit_price = db.Column(db.Float, nullable=False, default=0.0)
    discount = db.Column(db.Float, nullable=False, default=0.0)  # percent
    tax_rate = db.Column(db.Float, nullable=False, default=0.0)  # percent
    total = db.Column(db.Float, nullable=False, default=0.0)

    invoice = db.relationship('Invoice', back_populates='items')

    def amount_after_discount(self):
        gross = (self.unit_price or 0) * (self.quantity or 0)
        return gross - gross * (self.discount or 0) / 100

    def to_dict(self):
        return {
            'id': self.id,
            'product_id': self.product_id,
            'name': self.name,
            'sku': self.sku,
            'quantity': self.quantity,
            'unit_price': self.unit_price,
            'discount': self.discount,
            'tax_rate': self.tax_rate,
            'total': self.total,
        }
