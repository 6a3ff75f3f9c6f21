"""
Customer resolution shared by every caller that accepts "customer id or phone".
"""

from typing import Optional
from workshop import db
from workshop.business.errors import NotFoundError
from workshop.data.core.customer import Customer


class CustomerResolver:
    """
    Find-or-treat-as-guest lookup.

    An explicit id wins and must exist. Otherwise an exact phone match on an
    active customer is used. Otherwise the caller is a guest (None).
    """

    @staticmethod
    def normalize_phone(phone) -> Optional[str]:
        if phone is None:
            return None
        phone = str(phone).strip()
        return phone or None

    @staticmethod
    def resolve_customer(phone=None, explicit_id=None) -> Optional[Customer]:
        if explicit_id not in (None, ''):
            try:
                customer_id = int(explicit_id)
            except (TypeError, ValueError):
                raise NotFoundError(f"Customer {explicit_id} not found")
            customer = db.session.get(Customer, customer_id)
            if customer is None:
                raise NotFoundError(f"Customer {explicit_id} not found")
            return customer

        phone = CustomerResolver.normalize_phone(phone)
        if phone is None:
            return None

        return Customer.query.filter_by(phone=phone, is_active=True).first()
