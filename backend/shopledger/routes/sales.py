# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/shopledger/routes/sales.py
"""Sales API routes: sale creation, payments and sales lists."""

from flask import Blueprint, request, jsonify

from ..services import sales_service, payment_service, reporting_service
from ..errors import InvalidAmountError
from ..validation import coerce_int, check_id, int_arg, page_args, enforce_rules_sale, ValidationError
from ..decorators import ledger_errors


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

ITEM_FIELDS = {"product_id", "quantity", "price_at_sale_cents", "cost_at_sale_cents"}


def _parse_items(raw_items) -> list[dict]:
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    items = []
    for index, raw in enumerate(raw_items, start=1):
        if not isinstance(raw, dict):
            raise ValidationError("Each item must be an object", details={"line": index})
        unknown = sorted(set(raw) - ITEM_FIELDS)
        if unknown:
            raise ValidationError(f"Field not allowed: {unknown[0]}", details={"line": index})
        for field in ("product_id", "quantity"):
            if raw.get(field) is None:
                raise ValidationError(f"{field} is required", details={"line": index})

        item = {
            "product_id": coerce_int(raw["product_id"], "product_id"),
            "quantity": coerce_int(raw["quantity"], "quantity"),
        }
        for field in ("price_at_sale_cents", "cost_at_sale_cents"):
            if raw.get(field) is not None:
                item[field] = coerce_int(raw[field], field)
        items.append(item)
    return items


@sales_bp.post("")
@ledger_errors("create sale")
def create_sale_route():
    """
    Create a sale in one step.

    Body:
        customer_id: int
        items: [{product_id, quantity, price_at_sale_cents?, cost_at_sale_cents?}]
        total_amount_cents: int (optional, cross-checked)
        amount_paid_cents: int (optional, default 0)
    """
    data = request.get_json(silent=True) or {}

    if data.get("customer_id") is None:
        raise ValidationError("customer_id is required")
    customer_id = coerce_int(data["customer_id"], "customer_id")
    items = _parse_items(data.get("items"))

    patch = {"customer_id": customer_id}
    for field in ("total_amount_cents", "amount_paid_cents"):
        if data.get(field) is not None:
            patch[field] = coerce_int(data[field], field)
    enforce_rules_sale(patch, items)

    receipt = sales_service.create_sale(
        customer_id,
        items,
        declared_total_cents=patch.get("total_amount_cents"),
        amount_paid_cents=patch.get("amount_paid_cents", 0),
    )
    return {"message": "Sale created", **receipt.to_dict()}, 201


@sales_bp.post("/<int:sale_id>/record-payment")
@ledger_errors("record payment")
def record_payment_route(sale_id: int):
    """Apply an incremental payment. Body: {amount_received_cents}."""
    data = request.get_json(silent=True) or {}
    raw = data.get("amount_received_cents")
    if raw is None:
        raise InvalidAmountError("amount_received_cents is required")
    try:
        amount = coerce_int(raw, "amount_received_cents")
    except ValidationError as e:
        raise InvalidAmountError(e.message, details={"amount_received_cents": raw}) from e

    payment_service.record_payment(sale_id, amount)
    return {"message": "Payment recorded", "sale": sales_service.get_sale_detail(sale_id)}


@sales_bp.get("/<int:sale_id>/balance")
@ledger_errors("get sale balance")
def sale_balance_route(sale_id: int):
    return payment_service.get_balance(sale_id)


@sales_bp.get("/recent")
@ledger_errors("list recent sales")
def recent_sales_route():
    limit = int_arg(request.args, "limit", reporting_service.DEFAULT_RECENT_LIMIT)
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return jsonify(reporting_service.recent_sales(limit))


@sales_bp.get("/history")
@ledger_errors("list sales history")
def sales_history_route():
    """
    Query params:
    - page / limit
    - customer_id: int (optional; "all" or blank means every customer)
    - start_date / end_date: YYYY-MM-DD, inclusive
    """
    paging = page_args(request.args)
    customer_raw = request.args.get("customer_id")
    customer_id = None if customer_raw in (None, "", "all") else coerce_int(customer_raw, "customer_id")
    if customer_id is not None:
        check_id(customer_id, "customer_id")

    return reporting_service.sales_history(
        page=paging["page"],
        per_page=paging["per_page"],
        fetch_all=paging["fetch_all"],
        customer_id=customer_id,
        start=request.args.get("start_date"),
        end=request.args.get("end_date"),
    )


@sales_bp.get("/outstanding")
@ledger_errors("list outstanding sales")
def outstanding_sales_route():
    paging = page_args(request.args)
    return reporting_service.outstanding_sales(
        page=paging["page"], per_page=paging["per_page"], fetch_all=paging["fetch_all"]
    )


@sales_bp.get("/<int:sale_id>")
@ledger_errors("get sale")
def get_sale_route(sale_id: int):
    """Sale with customer details and line items."""
    return sales_service.get_sale_detail(sale_id)
