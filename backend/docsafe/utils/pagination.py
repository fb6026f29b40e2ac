import math
from typing import Optional, Tuple


def compute_total_pages(total_items: int, page_size: int) -> int:
    safe_total = max(0, int(total_items))
    safe_page_size = max(1, int(page_size))
    return math.ceil(safe_total / safe_page_size)


def normalize_page(page: Optional[int]) -> int:
    if page is None or int(page) < 1:
        return 1
    return int(page)


def normalize_limit(limit: Optional[int], default: int, maximum: int) -> int:
    if limit is None or int(limit) < 1:
        return default
    return min(int(limit), maximum)


def page_bounds(page: int, page_size: int) -> Tuple[int, int]:
    """Return (offset, limit) for a 1-based page."""
    safe_page_size = max(1, int(page_size))
    return (normalize_page(page) - 1) * safe_page_size, safe_page_size
