"""Page/limit helpers."""
import math
from typing import Any, Dict, Generic, List, TypeVar

from pydantic import BaseModel

T = TypeVar('T')


class Page(BaseModel, Generic[T]):
    """A slice of a result set plus the total number of matching rows."""
    items: List[T]
    total: int
    page: int
    limit: int

    def meta(self) -> Dict[str, Any]:
        return pagination_meta(self.page, self.limit, self.total)


def page_window(page: int, limit: int) -> int:
    """Return the row offset for a 1-based page."""
    return (max(page, 1) - 1) * limit


def pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    """Build the pagination block returned alongside list responses."""
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "current_page": page,
        "total_pages": total_pages,
        "total": total,
        "has_next_page": page < total_pages,
        "has_prev_page": page > 1,
        "limit": limit,
    }
