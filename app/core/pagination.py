import math
from typing import Any, Dict, List, Sequence


def paginate(items: Sequence[Any], page: int, page_size: int) -> Dict[str, Any]:
    """Slice items for a 1-indexed page, clamping the page into range."""
    total_items = len(items)
    total_pages = math.ceil(total_items / page_size) if page_size > 0 else 0
    valid_page = max(1, min(page, total_pages or 1))
    start = (valid_page - 1) * page_size
    return {
        "items": list(items[start:start + page_size]),
        "page": valid_page,
        "page_size": page_size,
        "total_items": total_items,
        "total_pages": total_pages,
        "has_next_page": valid_page < total_pages,
        "has_prev_page": valid_page > 1,
    }


def get_pagination_pages(total_pages: int, current_page: int, max_visible: int = 5) -> List[int]:
    """Page numbers to show around the current page."""
    if total_pages <= max_visible:
        return list(range(1, total_pages + 1))
    half = max_visible // 2
    start = current_page - half
    end = current_page + half
    if start < 1:
        start, end = 1, max_visible
    elif end > total_pages:
        start, end = total_pages - max_visible + 1, total_pages
    return list(range(start, end + 1))
