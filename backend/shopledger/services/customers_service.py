# Overview: Service helpers for customers service.

from __future__ import annotations

import logging

from sqlalchemy import or_
from sqlalchemy.orm import selectinload

from ..extensions import db
from ..models import Customer, Sale, SaleItem
from ..errors import NotFoundError
from .payment_service import OUTSTANDING_STATUSES
from .query_utils import paginate

logger = logging.getLogger(__name__)

CUSTOMER_MUTABLE_FIELDS = {"name", "phone", "address"}
DEFAULT_HISTORY_LIMIT = 5


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if customer is None or not customer.is_active:
        raise NotFoundError("Customer not found", details={"customer_id": customer_id})
    return customer


def list_customers(
    *,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    fetch_all: bool = False,
) -> dict:
    query = db.session.query(Customer).filter(Customer.is_active.is_(True))

    term = (search or "").strip()
    if term:
        pattern = f"%{term}%"
        query = query.filter(or_(Customer.name.ilike(pattern), Customer.phone.ilike(pattern)))

    query = query.order_by(Customer.name.asc(), Customer.id.asc())
    return paginate(query, page=page, limit=per_page, fetch_all=fetch_all)


def create_customer(*, patch: dict) -> dict:
    c = Customer(is_active=True)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(c, k, v)
    db.session.add(c)
    db.session.commit()

    logger.info("Created customer %s (%s)", c.id, c.name)
    return c.to_dict()


def update_customer(*, customer_id: int, patch: dict) -> dict:
    c = get_customer(customer_id)
    for k, v in patch.items():
        if k in CUSTOMER_MUTABLE_FIELDS:
            setattr(c, k, v)
    db.session.commit()
    return c.to_dict()


def delete_customer(*, customer_id: int) -> dict:
    """Soft-delete; existing sales keep their customer reference."""
    c = get_customer(customer_id)
    c.is_active = False
    db.session.commit()

    logger.info("Deactivated customer %s (%s)", c.id, c.name)
    return {"id": c.id, "deleted": True}


def _sale_with_items(sale: Sale) -> dict:
    body = sale.to_dict()
    body["items"] = [item.to_dict() for item in sale.items]
    return body


def list_customer_sales(*, customer_id: int, page: int | None = None, per_page: int | None = None) -> dict:
    """Newest-first purchase history for one customer, line items included."""
    get_customer(customer_id)

    query = (
        db.session.query(Sale)
        .options(selectinload(Sale.items).joinedload(SaleItem.product))
        .filter(Sale.customer_id == customer_id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
    )
    return paginate(query, page=page, limit=per_page or DEFAULT_HISTORY_LIMIT, serialize=_sale_with_items)


def count_customers_with_outstanding_balance() -> int:
    return (
        db.session.query(db.func.count(db.distinct(Sale.customer_id)))
        .filter(Sale.payment_status.in_(OUTSTANDING_STATUSES))
        .scalar()
        or 0
    )
