from workshop import db
from workshop.data.core.user_created_base import UserCreatedBase


class Customer(UserCreatedBase):
    """
    Customer record. Jobs reference a customer when one can be resolved,
    otherwise they keep the raw phone/name of a walk-in guest.
    """
    __tablename__ = 'customers'

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=True)
    email = db.Column(db.String(120), nullable=True)
    phone = db.Column(db.String(40), unique=True, nullable=True, index=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)

    jobs = db.relationship('WorkshopJob', back_populates='customer', lazy='dynamic')

    @property
    def full_name(self):
        return " ".join(part for part in (self.first_name, self.last_name) if part)

    def __repr__(self):
        return f'<Customer {self.id}: {self.full_name}>'
