"""
Plan Sync Service
Blueprint registry.
"""

from flask import request


def paginate_list(items, default_limit=500, max_limit=2000):
    """Apply limit/offset pagination to an in-memory list.

    Query params:
        limit  — max items (default 500, capped at max_limit)
        offset — starting position (default 0)

    Returns:
        (items_page, total_count)
    """
    total = len(items)
    try:
        limit = min(int(request.args.get("limit", default_limit)), max_limit)
    except (ValueError, TypeError):
        limit = default_limit
    try:
        offset = max(int(request.args.get("offset", 0)), 0)
    except (ValueError, TypeError):
        offset = 0
    return items[offset:offset + limit], total


def year_arg():
    """``?year=`` as int, or None when absent or not a number."""
    return request.args.get("year", type=int)
