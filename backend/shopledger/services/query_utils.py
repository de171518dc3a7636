# Overview: Shared pagination helper for list endpoints.

from __future__ import annotations

DEFAULT_PER_PAGE = 10
MAX_PER_PAGE = 100


def paginate(query, *, page: int | None, limit: int | None, fetch_all: bool = False, serialize=None) -> dict:
    """
    Page a SQLAlchemy query into the dashboard's list shape.

    fetch_all=True returns every row as a single page (limit=all).
    """
    serialize = serialize or (lambda row: row.to_dict())
    total = query.count()

    if fetch_all:
        rows = query.all()
        return {
            "data": [serialize(r) for r in rows],
            "current_page": 1,
            "total_pages": 1,
            "total_items": total,
            "items_per_page": total,
        }

    per_page = min(limit or DEFAULT_PER_PAGE, MAX_PER_PAGE)  # Default 10, max 100
    per_page = max(per_page, 1)
    page = max(page or 1, 1)  # Ensure page >= 1
    total_pages = (total + per_page - 1) // per_page

    rows = query.offset((page - 1) * per_page).limit(per_page).all()
    return {
        "data": [serialize(r) for r in rows],
        "current_page": page,
        "total_pages": total_pages,
        "total_items": total,
        "items_per_page": per_page,
    }
