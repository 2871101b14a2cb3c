"""
Shared helpers for aggregation results and paginated listings
"""

import math
from typing import List, Optional, Tuple

from learnify import config


def round_half_up(value: Optional[float], digits: int = 1) -> float:
    """Round like the dashboards display it: 4.25 -> 4.3, not banker's rounding."""
    if not value:
        return 0
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def first_group(results: List[dict], default: dict) -> dict:
    """
    Unwrap a `$group: {_id: null}` pipeline result.

    Returns a copy of `default` when the pipeline matched nothing.
    """
    if not results:
        return dict(default)
    row = dict(results[0])
    row.pop("_id", None)
    return row


def page_window(page: int = 1, limit: int = None) -> Tuple[int, int, int]:
    """Clamp page/limit and return (page, limit, skip)"""
    page = max(int(page or 1), 1)
    limit = int(limit or config.DEFAULT_PAGE_SIZE)
    limit = min(max(limit, 1), config.MAX_PAGE_SIZE)
    return page, limit, (page - 1) * limit


def build_pagination(page: int, limit: int, total: int) -> dict:
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }
