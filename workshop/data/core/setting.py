from workshop import db
from workshop.data.core.user_created_base import UserCreatedBase


class Setting(UserCreatedBase):
    """
    Company-wide business settings. A single row is expected; business code
    never reads it directly but goes through SettingsSnapshot.
    """
    __tablename__ = 'settings'

    company_name = db.Column(db.String(200), nullable=False, default='Workshop')
    default_currency = db.Column(db.String(3), nullable=False, default='USD')
    default_tax_rate = db.Column(db.Float, nullable=False, default=10.0)  # percent
    invoice_due_days = db.Column(db.Integer, nullable=False, default=30)

    @classmethod
    def current(cls):
        """Return the settings row, or None when the build step has not run."""
        return cls.query.order_by(cls.id).first()

    def __repr__(self):
        return f'<Setting {self.company_name} {self.default_currency} tax={self.default_tax_rate}%>'
