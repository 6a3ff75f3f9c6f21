from workshop import db
from workshop.data.core.user_created_base import UserCreatedBase


class StockMovement(UserCreatedBase):
    """
    Append-only ledger entry for a single stock change.

    Conventions:
    - `quantity` is always positive; the direction comes from `movement_type`.
    - `previous_stock` / `new_stock` snapshot the product row around the change.
    """
    __tablename__ = 'stock_movements'

    MOVEMENT_TYPES = ('in', 'out')

    product_id = db.Column(db.Integer, db.ForeignKey('products.id'), nullable=False, index=True)
    movement_type = db.Column(db.String(20), nullable=False)
    quantity = db.Column(db.Float, nullable=False)
    unit_cost = db.Column(db.Float, nullable=False, default=0.0)
    total_cost = db.Column(db.Float, nullable=False, default=0.0)
    previous_stock = db.Column(db.Float, nullable=False)
    new_stock = db.Column(db.Float, nullable=False)

    # Reference Fields
    reference_type = db.Column(db.String(50), nullable=False, default='manual')
    reference_id = db.Column(db.Integer, nullable=True, index=True)
    reason = db.Column(db.String(500), nullable=True)

    product = db.relationship('Product', back_populates='movements')

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='ck_stock_movement_quantity_positive'),
    )

    def __repr__(self):
        return f'<StockMovement {self.movement_type}: Product {self.product_id}, Qty {self.quantity}>'
