from __future__ import annotations

from ..extensions import db
from shopledger.time_utils import to_utc_z

class Sale(db.Model):
    """
    Completed point-of-sale transaction.

    IMMUTABLE after creation except amount_paid_cents and payment_status,
    which only the payment ledger (services.payment_service) may change.

    INVARIANTS:
    - 0 <= amount_paid_cents <= total_amount_cents
    - payment_status == classify_payment_status(amount_paid_cents, total_amount_cents)

    version_id gives optimistic locking for databases that ignore
    SELECT ... FOR UPDATE; a stale write raises StaleDataError and the
    operation is retried.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.CheckConstraint("amount_paid_cents >= 0", name="ck_sales_paid_nonneg"),
        db.CheckConstraint("amount_paid_cents <= total_amount_cents", name="ck_sales_paid_le_total"),
        db.Index("ix_sales_customer_created", "customer_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    # Totals frozen at sale time (all amounts in cents)
    total_amount_cents = db.Column(db.Integer, nullable=False)
    total_cost_cents = db.Column(db.Integer, nullable=False)

    # Payment tracking
    amount_paid_cents = db.Column(db.Integer, nullable=False, default=0)
    payment_status = db.Column(db.String(16), nullable=False, default="unpaid", index=True)  # unpaid, partial, paid

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship(
        "SaleItem",
        back_populates="sale",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SaleItem.id",
    )
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def profit_cents(self) -> int:
        return self.total_amount_cents - self.total_cost_cents

    @property
    def balance_due_cents(self) -> int:
        return self.total_amount_cents - self.amount_paid_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "created_at": to_utc_z(self.created_at),
            "total_amount_cents": self.total_amount_cents,
            "total_cost_cents": self.total_cost_cents,
            "amount_paid_cents": self.amount_paid_cents,
            "balance_due_cents": self.balance_due_cents,
            "profit_cents": self.profit_cents,
            "payment_status": self.payment_status,
            "version_id": self.version_id,
        }

class SaleItem(db.Model):
    """Line item on a sale; price and cost are snapshots taken at sale time."""
    __tablename__ = "sale_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_pos"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    price_at_sale_cents = db.Column(db.Integer, nullable=False)
    cost_at_sale_cents = db.Column(db.Integer, nullable=False)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    @property
    def subtotal_cents(self) -> int:
        return self.quantity * self.price_at_sale_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "quantity": self.quantity,
            "price_at_sale_cents": self.price_at_sale_cents,
            "cost_at_sale_cents": self.cost_at_sale_cents,
            "subtotal_cents": self.subtotal_cents,
        }
