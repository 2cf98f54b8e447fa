import math
from datetime import datetime, timedelta

DATE_FILTERS = ("all", "today", "week", "month", "year")

_FILTER_SPANS = {
    "week": timedelta(days=7),
    "month": timedelta(days=30),
    "year": timedelta(days=365),
}


def page_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def build_pagination(page: int, limit: int, total: int) -> dict:
    """Pagination block for list responses. hasMore iff page * limit < total."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
        "hasMore": page * limit < total,
    }


def date_filter_cutoff(date_filter: str | None, now: datetime) -> datetime | None:
    """Earliest captured_at a post may have for the given filter, None for 'all'."""
    if not date_filter or date_filter == "all":
        return None
    if date_filter == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if date_filter in _FILTER_SPANS:
        return now - _FILTER_SPANS[date_filter]
    raise ValueError(f"Unknown date_filter: {date_filter}")
