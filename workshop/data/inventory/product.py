from workshop import db
from workshop.data.core.user_created_base import VersionedResourceBase

# Stock is kept on the product row for ease of access; every change to
# current_stock must go through InventoryManager so a StockMovement is written.


class Product(VersionedResourceBase):
    __tablename__ = 'products'

    name = db.Column(db.String(200), nullable=False)
    sku = db.Column(db.String(100), unique=True, nullable=False)
    description = db.Column(db.Text, nullable=True)
    cost_price = db.Column(db.Float, nullable=False, default=0.0)
    selling_price = db.Column(db.Float, nullable=False, default=0.0)
    tax_rate = db.Column(db.Float, nullable=True)  # percent; None means "use the default tax rate"
    current_stock = db.Column(db.Float, nullable=False, default=0.0)
    minimum_stock = db.Column(db.Float, nullable=False, default=0.0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    movements = db.relationship('StockMovement', back_populates='product', lazy='dynamic')

    def __repr__(self):
        return f'<Product {self.sku}: {self.name} stock={self.current_stock}>'

    def has_stock_for(self, quantity):
        return (self.current_stock or 0) >= quantity
