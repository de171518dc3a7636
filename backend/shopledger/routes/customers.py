# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import customers_service
from ..models import Customer
from ..validation import ModelValidationPolicy, validate_payload, page_args
from ..decorators import ledger_errors

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "address"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@ledger_errors("list customers")
def list_customers():
    """
    List active customers.

    Query params:
    - search: str (optional) - matches name or phone
    - page / limit (limit=all disables paging)
    """
    paging = page_args(request.args)
    return customers_service.list_customers(search=request.args.get("search"), **paging)


@customers_bp.post("")
@ledger_errors("create customer")
def create_customer_route():
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    return customers_service.create_customer(patch=patch), 201


@customers_bp.get("/outstanding/count")
@ledger_errors("count customers with outstanding balances")
def outstanding_customers_count():
    return {"count": customers_service.count_customers_with_outstanding_balance()}


@customers_bp.get("/<int:customer_id>")
@ledger_errors("get customer")
def get_customer_route(customer_id: int):
    return customers_service.get_customer(customer_id).to_dict()


@customers_bp.put("/<int:customer_id>")
@ledger_errors("update customer")
def update_customer_route(customer_id: int):
    payload = request.get_json(silent=True) or {}
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    return customers_service.update_customer(customer_id=customer_id, patch=patch)


@customers_bp.delete("/<int:customer_id>")
@ledger_errors("delete customer")
def delete_customer_route(customer_id: int):
    return customers_service.delete_customer(customer_id=customer_id)


@customers_bp.get("/<int:customer_id>/sales")
@ledger_errors("list customer sales")
def customer_sales_route(customer_id: int):
    """Purchase history, newest first, 5 per page unless limit is given."""
    paging = page_args(request.args, default_limit=customers_service.DEFAULT_HISTORY_LIMIT)
    paging.pop("fetch_all")
    customer = customers_service.get_customer(customer_id)
    result = customers_service.list_customer_sales(customer_id=customer_id, **paging)
    result["customer"] = customer.to_dict()
    return result
