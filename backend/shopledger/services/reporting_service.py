# Overview: Read-only aggregations over sales for the dashboard and reports pages.

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import func
from sqlalchemy.orm import joinedload, selectinload

from ..extensions import db
from ..models import Sale, SaleItem, Product, Customer
from ..errors import ValidationError
from ..time_utils import parse_iso_date, utctoday, to_utc_z
from .payment_service import OUTSTANDING_STATUSES
from .query_utils import paginate

DEFAULT_RECENT_LIMIT = 5
WEEKLY_CHART_DAYS = 7


def _parse_date(value: str | None, field: str) -> date | None:
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be a date (YYYY-MM-DD)", details={field: value})


def _parse_range(start: str | None, end: str | None) -> tuple[date | None, date | None]:
    start_d = _parse_date(start, "start_date")
    end_d = _parse_date(end, "end_date")
    if start_d and end_d and start_d > end_d:
        raise ValidationError("start_date must be on or before end_date")
    return start_d, end_d


def _sale_day():
    return func.date(Sale.created_at)


def _filter_sales(query, *, start_d: date | None, end_d: date | None, customer_id: int | None = None):
    # Inclusive calendar-day comparison on the sale's UTC date
    if start_d:
        query = query.filter(_sale_day() >= start_d.isoformat())
    if end_d:
        query = query.filter(_sale_day() <= end_d.isoformat())
    if customer_id is not None:
        query = query.filter(Sale.customer_id == customer_id)
    return query


def _sale_row(sale: Sale) -> dict:
    body = sale.to_dict()
    body["customer_name"] = sale.customer.name if sale.customer else None
    return body


# =============================================================================
# Sales lists
# =============================================================================

def recent_sales(limit: int | None = None) -> list[dict]:
    rows = (
        db.session.query(Sale)
        .options(joinedload(Sale.customer))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(limit or DEFAULT_RECENT_LIMIT)
        .all()
    )
    return [
        {
            "sale_id": s.id,
            "created_at": to_utc_z(s.created_at),
            "total_amount_cents": s.total_amount_cents,
            "customer_name": s.customer.name if s.customer else None,
        }
        for s in rows
    ]


def sales_history(
    *,
    page: int | None = None,
    per_page: int | None = None,
    fetch_all: bool = False,
    customer_id: int | None = None,
    start: str | None = None,
    end: str | None = None,
) -> dict:
    start_d, end_d = _parse_range(start, end)
    query = db.session.query(Sale).options(joinedload(Sale.customer))
    query = _filter_sales(query, start_d=start_d, end_d=end_d, customer_id=customer_id)
    query = query.order_by(Sale.created_at.desc(), Sale.id.desc())
    return paginate(query, page=page, limit=per_page, fetch_all=fetch_all, serialize=_sale_row)


def outstanding_sales(*, page: int | None = None, per_page: int | None = None, fetch_all: bool = False) -> dict:
    """Unpaid and partially paid sales, newest first, with balance due."""
    query = (
        db.session.query(Sale)
        .options(joinedload(Sale.customer))
        .filter(Sale.payment_status.in_(OUTSTANDING_STATUSES))
        .order_by(Sale.created_at.desc(), Sale.id.desc())
    )
    return paginate(query, page=page, limit=per_page, fetch_all=fetch_all, serialize=_sale_row)


# =============================================================================
# Reports
# =============================================================================

def sales_summary(*, start: str | None = None, end: str | None = None, customer_id: int | None = None) -> dict:
    """
    One row per sale in the window with its line items.

    Totals across the window are included so the page doesn't re-add them.
    """
    start_d, end_d = _parse_range(start, end)
    query = db.session.query(Sale).options(
        joinedload(Sale.customer),
        selectinload(Sale.items).joinedload(SaleItem.product),
    )
    query = _filter_sales(query, start_d=start_d, end_d=end_d, customer_id=customer_id)
    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()

    rows = []
    totals = {"sales_count": 0, "total_amount_cents": 0, "total_cost_cents": 0, "amount_paid_cents": 0, "profit_cents": 0}
    for sale in sales:
        row = _sale_row(sale)
        row["items"] = [
            {
                "product_id": item.product_id,
                "product_name": item.product.name if item.product else None,
                "quantity": item.quantity,
                "price_at_sale_cents": item.price_at_sale_cents,
                "cost_at_sale_cents": item.cost_at_sale_cents,
            }
            for item in sale.items
        ]
        rows.append(row)

        totals["sales_count"] += 1
        totals["total_amount_cents"] += sale.total_amount_cents
        totals["total_cost_cents"] += sale.total_cost_cents
        totals["amount_paid_cents"] += sale.amount_paid_cents
        totals["profit_cents"] += sale.profit_cents

    return {
        "start_date": start_d.isoformat() if start_d else None,
        "end_date": end_d.isoformat() if end_d else None,
        "customer_id": customer_id,
        "totals": totals,
        "rows": rows,
    }


def sales_by_product(*, start: str | None = None, end: str | None = None) -> dict:
    start_d, end_d = _parse_range(start, end)

    revenue = func.sum(SaleItem.quantity * SaleItem.price_at_sale_cents)
    cogs = func.sum(SaleItem.quantity * SaleItem.cost_at_sale_cents)
    qty = func.sum(SaleItem.quantity)
    profit = revenue - cogs

    query = (
        db.session.query(
            Product.id.label("product_id"),
            Product.name.label("product_name"),
            qty.label("total_quantity_sold"),
            revenue.label("total_revenue_cents"),
            cogs.label("total_cost_cents"),
            profit.label("total_profit_cents"),
        )
        .join(SaleItem, SaleItem.product_id == Product.id)
        .join(Sale, Sale.id == SaleItem.sale_id)
    )
    query = _filter_sales(query, start_d=start_d, end_d=end_d)
    rows = query.group_by(Product.id, Product.name).order_by(profit.desc(), qty.desc(), Product.id.asc()).all()

    return {
        "start_date": start_d.isoformat() if start_d else None,
        "end_date": end_d.isoformat() if end_d else None,
        "rows": [
            {
                "product_id": row.product_id,
                "product_name": row.product_name,
                "total_quantity_sold": int(row.total_quantity_sold or 0),
                "total_revenue_cents": int(row.total_revenue_cents or 0),
                "total_cost_cents": int(row.total_cost_cents or 0),
                "total_profit_cents": int(row.total_profit_cents or 0),
            }
            for row in rows
        ],
    }


def sales_by_customer(*, start: str | None = None, end: str | None = None) -> dict:
    start_d, end_d = _parse_range(start, end)

    orders = func.count(Sale.id)
    amount = func.sum(Sale.total_amount_cents)
    cost = func.sum(Sale.total_cost_cents)

    query = (
        db.session.query(
            Customer.id.label("customer_id"),
            Customer.name.label("customer_name"),
            Customer.phone.label("customer_phone"),
            orders.label("total_orders"),
            amount.label("total_sales_cents"),
            cost.label("total_cost_cents"),
            (amount - cost).label("total_profit_cents"),
        )
        .join(Sale, Sale.customer_id == Customer.id)
    )
    query = _filter_sales(query, start_d=start_d, end_d=end_d)
    rows = (
        query.group_by(Customer.id, Customer.name, Customer.phone)
        .order_by(amount.desc(), orders.desc(), Customer.id.asc())
        .all()
    )

    return {
        "start_date": start_d.isoformat() if start_d else None,
        "end_date": end_d.isoformat() if end_d else None,
        "rows": [
            {
                "customer_id": row.customer_id,
                "customer_name": row.customer_name,
                "customer_phone": row.customer_phone,
                "total_orders": int(row.total_orders or 0),
                "total_sales_cents": int(row.total_sales_cents or 0),
                "total_cost_cents": int(row.total_cost_cents or 0),
                "total_profit_cents": int(row.total_profit_cents or 0),
            }
            for row in rows
        ],
    }


# =============================================================================
# Dashboard widgets
# =============================================================================

def sales_today_summary(today: date | None = None) -> dict:
    today = today or utctoday()
    total, count = (
        db.session.query(func.coalesce(func.sum(Sale.total_amount_cents), 0), func.count(Sale.id))
        .filter(_sale_day() == today.isoformat())
        .one()
    )
    return {"date": today.isoformat(), "total_sales_cents": int(total or 0), "sales_count": int(count or 0)}


def weekly_sales_chart(today: date | None = None) -> list[dict]:
    """Seven consecutive days ending today; days without sales report 0."""
    today = today or utctoday()
    days = [today - timedelta(days=offset) for offset in range(WEEKLY_CHART_DAYS - 1, -1, -1)]

    day = _sale_day()
    rows = (
        db.session.query(day.label("sale_day"), func.sum(Sale.total_amount_cents).label("daily_sales"))
        .filter(day >= days[0].isoformat(), day <= days[-1].isoformat())
        .group_by(day)
        .all()
    )
    # DATE() is a string on SQLite and a date elsewhere
    by_day = {str(row.sale_day): int(row.daily_sales or 0) for row in rows}

    return [{"date": d.isoformat(), "sales_cents": by_day.get(d.isoformat(), 0)} for d in days]
