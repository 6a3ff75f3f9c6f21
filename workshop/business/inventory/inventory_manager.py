"""
InventoryManager - Business logic for stock levels and stock movements

Responsibilities:
- Write a StockMovement for every change to Product.current_stock
- Issue parts to a workshop job and take returned parts back
- Check stock for a list of requested parts (shortage list)

Managers never commit; the calling context commits once per operation.
"""

from typing import Dict, List, Optional
from workshop import db
from workshop.business.errors import InsufficientStockError
from workshop.data.inventory.product import Product
from workshop.data.inventory.stock_movement import StockMovement
from workshop.utils.logger import get_logger

logger = get_logger("workshop.business.inventory")


class InventoryManager:
    """Manages product stock and the stock movement ledger"""

    @staticmethod
    def get_product(product_id) -> Optional[Product]:
        try:
            return db.session.get(Product, int(product_id))
        except (TypeError, ValueError):
            return None

    @staticmethod
    def find_shortages(requested_parts) -> List[Dict]:
        """
        Check requested parts against current stock.

        Args:
            requested_parts: iterable of (product_id, quantity_required)

        Returns:
            list of shortage dicts; empty when every part is in stock.
            Entries with no product or a non-positive quantity are skipped.
            Quantities for the same product are summed before the check.
        """
        totals = {}
        for product_id, quantity in requested_parts:
            if not product_id or not quantity or quantity <= 0:
                continue
            totals[product_id] = totals.get(product_id, 0) + quantity

        shortages = []
        for product_id, quantity in totals.items():
            product = InventoryManager.get_product(product_id)
            if product is None:
                shortages.append({'product': str(product_id), 'reason': 'Product not found'})
                continue
            if not product.has_stock_for(quantity):
                shortages.append({
                    'product': product.id,
                    'name': product.name,
                    'available': product.current_stock or 0,
                    'required': quantity,
                })
        return shortages

    @staticmethod
    def _record(product, movement_type, quantity, new_stock, user_id, reference_type,
                reference_id, reason):
        unit_cost = product.cost_price or 0
        movement = StockMovement(
            product_id=product.id,
            movement_type=movement_type,
            quantity=quantity,
            unit_cost=unit_cost,
            total_cost=unit_cost * quantity,
            previous_stock=product.current_stock or 0,
            new_stock=new_stock,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
            created_by_id=user_id,
        )
        db.session.add(movement)
        product.current_stock = new_stock
        product.updated_by_id = user_id
        return movement

    @staticmethod
    def issue_to_job(product, quantity, job_id, user_id, reason=None):
        """
        Take parts out of stock for a job ("out" movement).

        Raises:
            InsufficientStockError: If the product holds less than quantity
        """
        previous = product.current_stock or 0
        if previous < quantity:
            raise InsufficientStockError([{
                'product': product.id,
                'name': product.name,
                'available': previous,
                'required': quantity,
            }])
        new_stock = previous - quantity
        movement = InventoryManager._record(
            product, 'out', quantity, new_stock, user_id,
            reference_type='workshop_job',
            reference_id=job_id,
            reason=reason or f"Workshop job {job_id} completion",
        )
        logger.info(f"Issued {quantity} x product {product.id} to job {job_id}: {previous} -> {new_stock}")
        return movement

    @staticmethod
    def return_from_job(product, quantity, job_id, user_id, reason=None):
        """Put unused parts back into stock ("in" movement)"""
        previous = product.current_stock or 0
        new_stock = previous + quantity
        movement = InventoryManager._record(
            product, 'in', quantity, new_stock, user_id,
            reference_type='workshop_job',
            reference_id=job_id,
            reason=reason or f"Workshop job {job_id} parts returned",
        )
        logger.info(f"Returned {quantity} x product {product.id} from job {job_id}: {previous} -> {new_stock}")
        return movement
