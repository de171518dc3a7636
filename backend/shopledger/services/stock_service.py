# Overview: Service-layer operations for stock; encapsulates business logic and database work.

# backend/shopledger/services/stock_service.py

import logging

from sqlalchemy import update

from ..extensions import db
from ..models import Product
from ..errors import NotFoundError, InsufficientStockError, ValidationError
from ..validation import MAX_QUANTITY
from .concurrency import lock_for_update, begin_write, run_with_retry
"""
Stock Invariants (authoritative)

- Product.quantity is the on-hand count and is never negative.
- Every change goes through adjust_stock(); a decrement is a conditional
  UPDATE (quantity + delta >= 0). Zero affected rows is a hard failure
  (InsufficientStockError, or NotFoundError when the row is missing),
  never a warning, and aborts the enclosing transaction.
- Inactive (soft-deleted) products cannot be adjusted.
- With commit=False the change joins the caller's transaction and becomes
  visible only when that transaction commits.
"""

logger = logging.getLogger(__name__)


def _get_active_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None or not product.is_active:
        raise NotFoundError(f"Product {product_id} not found", details={"product_id": product_id})
    return product


def _apply_delta(product_id: int, delta: int) -> Product:
    """Core conditional update without transaction control or commit."""
    product = _get_active_product(product_id, lock=True)

    result = db.session.execute(
        update(Product)
        .where(
            Product.id == product_id,
            Product.is_active.is_(True),
            Product.quantity + delta >= 0,
        )
        .values(quantity=Product.quantity + delta)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        # Row exists (checked above under lock), so the guard rejected it
        logger.info(
            "Rejected stock change for product %s: on hand %s, delta %s",
            product_id, product.quantity, delta,
        )
        raise InsufficientStockError(
            f"Insufficient stock for {product.name}",
            details={
                "product_id": product_id,
                "on_hand": product.quantity,
                "requested_quantity": -delta,
            },
        )

    db.session.refresh(product)
    return product


def adjust_stock(product_id: int, delta: int, *, commit: bool = True) -> Product:
    """
    Adjust a product's on-hand quantity by delta.

    delta > 0 is a receipt, delta < 0 a decrement. delta == 0 is rejected.

    commit=True: runs as its own atomic transaction (retried on lock
    conflicts).
    commit=False: joins the caller's transaction; the caller owns
    begin/commit/rollback. Used by sales_service.create_sale.
    """
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise ValidationError("delta must be an integer")
    if delta == 0:
        raise ValidationError("delta must be non-zero")
    if abs(delta) > MAX_QUANTITY:
        raise ValidationError(f"delta cannot exceed {MAX_QUANTITY:,}")

    if not commit:
        return _apply_delta(product_id, delta)

    def _op():
        begin_write()
        product = _apply_delta(product_id, delta)
        db.session.commit()
        logger.info("Stock for product %s adjusted by %s (now %s)", product_id, delta, product.quantity)
        return product

    return run_with_retry(_op)


def receive_stock(product_id: int, quantity: int) -> Product:
    """Record a stock receipt (goods in). quantity must be positive."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise ValidationError("quantity_received must be a positive integer")
    return adjust_stock(product_id, quantity)


def get_quantity_on_hand(product_id: int) -> int:
    product = _get_active_product(product_id)
    return product.quantity
