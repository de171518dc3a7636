# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/shopledger/routes/products.py
"""
Product catalogue and stock routes.

Stock only moves through /receive and /adjust (and sale creation).
"""
from flask import Blueprint, request, current_app

from ..services import products_service, stock_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    enforce_rules_stock_receive,
    enforce_rules_stock_adjust,
    coerce_int,
    int_arg,
    page_args,
    MAX_QUANTITY,
    ValidationError,
)
from ..decorators import ledger_errors

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "quantity", "price_cents", "cost_cents"},
    required_on_create={"name", "price_cents", "cost_cents"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@ledger_errors("list products")
def list_products():
    """
    List active products.

    Query params:
    - search: str (optional) - name contains
    - page: int (optional) - page number (1-indexed)
    - limit: int | "all" (optional) - items per page (default 10, max 100)
    """
    paging = page_args(request.args)
    return products_service.list_products(search=request.args.get("search"), **paging)


@products_bp.post("")
@ledger_errors("create product")
def create_product_route():
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    patch.setdefault("quantity", 0)

    return products_service.create_product(patch=patch), 201


@products_bp.get("/low-stock/count")
@ledger_errors("count low-stock products")
def low_stock_count():
    threshold = int_arg(request.args, "threshold", current_app.config["LOW_STOCK_THRESHOLD"])
    if threshold < 0 or threshold > MAX_QUANTITY:
        raise ValidationError(f"threshold must be between 0 and {MAX_QUANTITY}")
    return {"count": products_service.count_low_stock(threshold), "threshold": threshold}


@products_bp.get("/<int:product_id>")
@ledger_errors("get product")
def get_product_route(product_id: int):
    return products_service.get_product(product_id).to_dict()


@products_bp.put("/<int:product_id>")
@ledger_errors("update product")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)

    return products_service.update_product(product_id=product_id, patch=patch)


@products_bp.delete("/<int:product_id>")
@ledger_errors("delete product")
def delete_product_route(product_id: int):
    return products_service.delete_product(product_id=product_id)


@products_bp.post("/<int:product_id>/receive")
@ledger_errors("receive stock")
def receive_stock_route(product_id: int):
    """Add received units to on-hand stock. Body: {quantity_received}."""
    data = request.get_json(silent=True) or {}
    if data.get("quantity_received") is None:
        raise ValidationError("quantity_received is required")

    quantity = coerce_int(data["quantity_received"], "quantity_received")
    enforce_rules_stock_receive(quantity)

    product = stock_service.receive_stock(product_id, quantity)
    return {"message": "Stock received", "product": product.to_dict()}


@products_bp.post("/<int:product_id>/adjust")
@ledger_errors("adjust stock")
def adjust_stock_route(product_id: int):
    """Signed stock correction. Body: {delta} (non-zero)."""
    data = request.get_json(silent=True) or {}
    if data.get("delta") is None:
        raise ValidationError("delta is required")

    delta = coerce_int(data["delta"], "delta")
    enforce_rules_stock_adjust(delta)

    product = stock_service.adjust_stock(product_id, delta)
    return {"message": "Stock adjusted", "product": product.to_dict()}
