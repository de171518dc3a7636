from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

class Product(db.Model):
    """
    Product master data with its on-hand quantity.

    QUANTITY: Product.quantity is the authoritative on-hand count.
    It is only changed through services.stock_service (receipt, adjust,
    sale decrement) or a direct product edit, and never goes below zero:
    the CHECK constraint backs up the conditional decrement in the service.

    PRICING: price_cents is the current unit sale price, cost_cents the
    current unit cost. Sales snapshot both into SaleItem, so later edits
    never rewrite history.

    DELETION: Products are soft-deleted (is_active=False) so historical
    sale items keep a valid reference.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_products_name"),
        db.CheckConstraint("quantity >= 0", name="ck_products_quantity_nonneg"),
        db.CheckConstraint("price_cents >= 0", name="ck_products_price_nonneg"),
        db.CheckConstraint("cost_cents >= 0", name="ck_products_cost_nonneg"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False, default=0)
    cost_cents = db.Column(db.Integer, nullable=False, default=0)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "quantity": self.quantity,
            "price_cents": self.price_cents,
            "cost_cents": self.cost_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
