# backend/shopledger/services/products_service.py
"""
Products Service

Plain CRUD for the product catalogue. Stock quantities are normally moved
through stock_service; a direct edit of quantity is allowed here for
stock-take corrections, matching the dashboard's product form.
"""
from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..errors import ConflictError, NotFoundError
from .query_utils import paginate

logger = logging.getLogger(__name__)

PRODUCT_MUTABLE_FIELDS = {"name", "quantity", "price_cents", "cost_cents"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product.id).filter(db.func.lower(Product.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Product name already exists: {name}")


def _commit_unique(name: str) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError(f"Product name already exists: {name}") from exc


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if product is None or not product.is_active:
        raise NotFoundError("Product not found", details={"product_id": product_id})
    return product


def list_products(
    *,
    search: str | None = None,
    page: int | None = None,
    per_page: int | None = None,
    fetch_all: bool = False,
) -> dict:
    """
    Active products ordered by name, with optional name search and paging.

    Args:
        search: Substring matched against product name (case-insensitive LIKE)
        page: Page number (1-indexed)
        per_page: Items per page (default 10, max 100)
        fetch_all: Return every match in one page (limit=all)
    """
    query = db.session.query(Product).filter(Product.is_active.is_(True))

    term = (search or "").strip()
    if term:
        query = query.filter(Product.name.ilike(f"%{term}%"))

    query = query.order_by(Product.name.asc(), Product.id.asc())
    return paginate(query, page=page, limit=per_page, fetch_all=fetch_all)


def create_product(*, patch: dict) -> dict:
    """Create product using a validated patch dict."""
    _ensure_unique_name(patch["name"])

    p = Product(is_active=True)
    apply_product_patch(p, patch)
    db.session.add(p)
    _commit_unique(p.name)

    logger.info("Created product %s (%s)", p.id, p.name)
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    p = get_product(product_id)

    if "name" in patch:
        _ensure_unique_name(patch["name"], exclude_id=p.id)

    apply_product_patch(p, patch)
    _commit_unique(p.name)
    return p.to_dict()


def delete_product(*, product_id: int) -> dict:
    """
    Soft-delete a product.

    Historical sale items keep pointing at the row; the product simply
    disappears from listings and can no longer be sold or restocked.
    """
    p = get_product(product_id)
    p.is_active = False
    db.session.commit()

    logger.info("Deactivated product %s (%s)", p.id, p.name)
    return {"id": p.id, "deleted": True}


def count_low_stock(threshold: int) -> int:
    return (
        db.session.query(db.func.count(Product.id))
        .filter(Product.is_active.is_(True), Product.quantity < threshold)
        .scalar()
        or 0
    )
