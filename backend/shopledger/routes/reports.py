# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..validation import coerce_int
from ..decorators import ledger_errors

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _customer_filter():
    raw = request.args.get("customer_id")
    if raw in (None, "", "all"):
        return None
    return coerce_int(raw, "customer_id")


@reports_bp.get("/sales-summary")
@ledger_errors("build sales summary")
def sales_summary():
    return reporting_service.sales_summary(
        start=request.args.get("start_date"),
        end=request.args.get("end_date"),
        customer_id=_customer_filter(),
    )


@reports_bp.get("/sales-by-product")
@ledger_errors("build sales-by-product report")
def sales_by_product():
    return reporting_service.sales_by_product(
        start=request.args.get("start_date"),
        end=request.args.get("end_date"),
    )


@reports_bp.get("/sales-by-customer")
@ledger_errors("build sales-by-customer report")
def sales_by_customer():
    return reporting_service.sales_by_customer(
        start=request.args.get("start_date"),
        end=request.args.get("end_date"),
    )


@reports_bp.get("/sales-today-summary")
@ledger_errors("build today's sales summary")
def sales_today_summary():
    return reporting_service.sales_today_summary()


@reports_bp.get("/weekly-sales-chart")
@ledger_errors("build weekly sales chart")
def weekly_sales_chart():
    return jsonify(reporting_service.weekly_sales_chart())
