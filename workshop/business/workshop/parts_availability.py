"""
Parts availability checks used by job creation, scheduling, part assignment
and the check/reserve endpoints.

Checks never deduct stock; deduction happens only at completion.
"""

from datetime import datetime
from typing import Dict, List
from workshop.business.errors import InsufficientStockError
from workshop.business.inventory.inventory_manager import InventoryManager
from workshop.business.workshop.payloads import first_present, parse_float, parse_int


class PartsAvailability:

    @staticmethod
    def requested_from_payload(parts) -> List[tuple]:
        """[{product, quantityRequired}, ...] -> [(product_id, quantity)]"""
        requested = []
        for entry in parts or []:
            if not isinstance(entry, dict):
                continue
            product_id = parse_int(first_present(entry, 'product', 'productId', 'product_id'))
            quantity = parse_float(first_present(entry, 'quantityRequired', 'quantity', 'quantity_required'))
            requested.append((product_id, quantity))
        return requested

    @staticmethod
    def ensure_available(requested) -> None:
        """
        Raise InsufficientStockError carrying the full shortage list when any
        requested part is short. Nothing is written either way.
        """
        shortages = InventoryManager.find_shortages(requested)
        if shortages:
            raise InsufficientStockError(shortages)

    @staticmethod
    def ensure_job_parts_available(job) -> None:
        PartsAvailability.ensure_available(
            [(part.product_id, part.quantity_required) for part in job.parts]
        )

    @staticmethod
    def refresh_job_parts(job) -> List[Dict]:
        """
        Refresh the stock/cost snapshot on every job part.

        Returns:
            list: shortage entries for parts that are now short
        """
        shortages = []
        for part in job.parts:
            product = InventoryManager.get_product(part.product_id)
            if product is None:
                part.is_available = False
                shortages.append({'product': str(part.product_id), 'reason': 'Product not found'})
                continue
            part.refresh_snapshot(product)
            if not part.is_available:
                shortages.append({
                    'product': product.id,
                    'name': product.name,
                    'available': part.quantity_available,
                    'required': part.quantity_required,
                })
        return shortages

    @staticmethod
    def reserve_job_parts(job, user_id=None) -> int:
        """
        Stamp reserved_at on every part once all of them are in stock.

        Returns:
            int: number of parts newly marked reserved
        """
        shortages = PartsAvailability.refresh_job_parts(job)
        if shortages:
            raise InsufficientStockError(shortages)
        now = datetime.utcnow()
        reserved = 0
        for part in job.parts:
            if part.reserved_at is None:
                part.reserved_at = now
                part.updated_by_id = user_id
                reserved += 1
        return reserved
