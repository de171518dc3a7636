"""
Sales Service - one-shot sale creation

WHY: A sale, its line items and the matching stock decrements either all
exist or none of them do. The whole cart is posted inside one database
transaction; the first failure rolls everything back.

PRICING: Unit price and unit cost are snapshotted from the locked product
rows. Client-submitted prices, costs and totals are only cross-checked,
never trusted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, asdict

from sqlalchemy.orm import joinedload

from ..extensions import db
from ..models import Sale, SaleItem, Customer
from ..errors import NotFoundError, ValidationError
from ..validation import MAX_QUANTITY
from .stock_service import adjust_stock, _get_active_product
from .payment_service import classify_payment_status, clamp_amount_paid
from .concurrency import lock_for_update, begin_write, run_with_retry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CartItem:
    product_id: int
    quantity: int
    price_at_sale_cents: int | None = None
    cost_at_sale_cents: int | None = None


@dataclass(frozen=True)
class SaleReceipt:
    sale_id: int
    total_amount_cents: int
    total_cost_cents: int
    amount_paid_cents: int
    payment_status: str
    profit_cents: int

    def to_dict(self) -> dict:
        return asdict(self)


def _as_cart_items(items) -> list[CartItem]:
    cart = []
    for item in items:
        if isinstance(item, CartItem):
            cart.append(item)
        else:
            cart.append(CartItem(**item))
    return cart


def _validate_cart(cart: list[CartItem]) -> None:
    if not cart:
        raise ValidationError("Sale must contain items")
    for index, item in enumerate(cart):
        if isinstance(item.quantity, bool) or not isinstance(item.quantity, int) or item.quantity <= 0:
            raise ValidationError(
                "Item quantity must be greater than zero",
                details={"line": index + 1, "product_id": item.product_id},
            )
        if item.quantity > MAX_QUANTITY:
            raise ValidationError(
                f"Item quantity cannot exceed {MAX_QUANTITY:,}",
                details={"line": index + 1, "product_id": item.product_id},
            )


def _check_snapshot(line: int, item: CartItem, field: str, submitted: int | None, actual: int) -> None:
    if submitted is not None and submitted != actual:
        raise ValidationError(
            f"{field} does not match the current product record",
            details={
                "line": line,
                "product_id": item.product_id,
                "submitted": submitted,
                "expected": actual,
            },
        )


def _create_sale_locked(
    customer_id: int,
    cart: list[CartItem],
    declared_total_cents: int | None,
    amount_paid_offered_cents: int,
) -> Sale:
    customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
    if not customer or not customer.is_active:
        raise NotFoundError(f"Customer {customer_id} not found", details={"customer_id": customer_id})

    sale = Sale(
        customer_id=customer.id,
        total_amount_cents=0,
        total_cost_cents=0,
        amount_paid_cents=0,
        payment_status=classify_payment_status(0, 0),
    )
    db.session.add(sale)
    db.session.flush()

    total_amount = 0
    total_cost = 0

    for line, item in enumerate(cart, start=1):
        product = _get_active_product(item.product_id, lock=True)

        _check_snapshot(line, item, "price_at_sale_cents", item.price_at_sale_cents, product.price_cents)
        _check_snapshot(line, item, "cost_at_sale_cents", item.cost_at_sale_cents, product.cost_cents)

        sale.items.append(
            SaleItem(
                product_id=product.id,
                quantity=item.quantity,
                price_at_sale_cents=product.price_cents,
                cost_at_sale_cents=product.cost_cents,
            )
        )
        db.session.flush()

        # Re-evaluated per line, so a product listed twice is checked against its running quantity
        adjust_stock(product.id, -item.quantity, commit=False)

        total_amount += product.price_cents * item.quantity
        total_cost += product.cost_cents * item.quantity

    if declared_total_cents is not None and declared_total_cents != total_amount:
        raise ValidationError(
            "Declared total does not match the sum of line subtotals",
            details={"declared_total_cents": declared_total_cents, "computed_total_cents": total_amount},
        )

    amount_paid = clamp_amount_paid(amount_paid_offered_cents, total_amount)

    sale.total_amount_cents = total_amount
    sale.total_cost_cents = total_cost
    sale.amount_paid_cents = amount_paid
    sale.payment_status = classify_payment_status(amount_paid, total_amount)

    return sale


def create_sale(
    customer_id: int,
    items,
    declared_total_cents: int | None = None,
    amount_paid_cents: int = 0,
) -> SaleReceipt:
    """
    Create a sale atomically: sale row, line items and stock decrements.

    Args:
        customer_id: Owning customer (must exist and be active)
        items: Ordered cart lines, CartItem or dicts with product_id, quantity
            and optional price_at_sale_cents / cost_at_sale_cents
        declared_total_cents: Client-computed total, cross-checked if given
        amount_paid_cents: Initial payment offered, clamped to [0, total]

    Returns:
        SaleReceipt with the computed totals and payment status

    Raises:
        ValidationError, NotFoundError, InsufficientStockError, StorageFailure.
        On any error nothing is persisted.
    """
    cart = _as_cart_items(items or [])
    _validate_cart(cart)
    offered = amount_paid_cents or 0

    def _op():
        begin_write()
        sale = _create_sale_locked(customer_id, cart, declared_total_cents, offered)
        db.session.commit()
        return SaleReceipt(
            sale_id=sale.id,
            total_amount_cents=sale.total_amount_cents,
            total_cost_cents=sale.total_cost_cents,
            amount_paid_cents=sale.amount_paid_cents,
            payment_status=sale.payment_status,
            profit_cents=sale.profit_cents,
        )

    receipt = run_with_retry(_op)
    logger.info(
        "Created sale %s for customer %s: %d lines, total %s, paid %s (%s)",
        receipt.sale_id, customer_id, len(cart),
        receipt.total_amount_cents, receipt.amount_paid_cents, receipt.payment_status,
    )
    return receipt


def get_sale(sale_id: int) -> Sale:
    sale = (
        db.session.query(Sale)
        .options(joinedload(Sale.customer), joinedload(Sale.items).joinedload(SaleItem.product))
        .filter(Sale.id == sale_id)
        .first()
    )
    if not sale:
        raise NotFoundError(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return sale


def get_sale_detail(sale_id: int) -> dict:
    """Sale with its customer and line items."""
    sale = get_sale(sale_id)
    customer = sale.customer
    data = sale.to_dict()
    data.update({
        "customer_name": customer.name if customer else None,
        "customer_phone": customer.phone if customer else None,
        "customer_address": customer.address if customer else None,
        "items": [item.to_dict() for item in sale.items],
    })
    return data
