from workshop import db
from workshop.data.core.user_created_base import UserCreatedBase


class JobPart(UserCreatedBase):
    """
    A product required by a job.

    Only quantity_required is meaningful before completion; quantity_used and
    quantity_returned stay None until the job is completed.
    """
    __tablename__ = 'job_parts'

    job_id = db.Column(db.Integer, db.ForeignKey('workshop_jobs.id', ondelete='CASCADE'),
                       nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False)
    product_name = db.Column(db.String(200), nullable=True)
    product_sku = db.Column(db.String(100), nullable=True)

    quantity_required = db.Column(db.Float, nullable=False)
    quantity_used = db.Column(db.Float, nullable=True)
    quantity_returned = db.Column(db.Float, nullable=True)

    # Snapshot refreshed by the availability check
    quantity_available = db.Column(db.Float, nullable=False, default=0.0)
    unit_cost = db.Column(db.Float, nullable=False, default=0.0)
    total_cost = db.Column(db.Float, nullable=False, default=0.0)
    is_available = db.Column(db.Boolean, nullable=False, default=True)

    reserved_at = db.Column(db.DateTime, nullable=True)
    issued_at = db.Column(db.DateTime, nullable=True)
    notes = db.Column(db.String(500), nullable=True)

    job = db.relationship('WorkshopJob', back_populates='parts')
    product = db.relationship('Product')

    __table_args__ = (
        db.CheckConstraint('quantity_required > 0', name='ck_job_part_quantity_required_positive'),
    )

    def refresh_snapshot(self, product):
        self.product_name = product.name
        self.product_sku = product.sku
        self.quantity_available = product.current_stock or 0
        self.unit_cost = product.cost_price or 0
        self.total_cost = self.unit_cost * self.quantity_required
        self.is_available = self.quantity_available >= self.quantity_required
