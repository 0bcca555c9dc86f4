"""
Shared helpers for cursor-paginated listings.
"""

from typing import Callable, List, Optional, Tuple, TypeVar

from models.cursor import CursorKey, decode_cursor, encode_cursor
from models.models import PageInfo
from services.errors import ValidationError

T = TypeVar("T")

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50


def clamp_limit(limit: Optional[int], default: int = DEFAULT_PAGE_SIZE, maximum: int = MAX_PAGE_SIZE) -> int:
    """Clamp a requested page size into [1, maximum]; None means default."""
    if limit is None:
        return default
    try:
        value = int(limit)
    except (TypeError, ValueError):
        raise ValidationError("limit must be an integer", details={"limit": limit})
    if value < 1:
        return 1
    return min(value, maximum)


def parse_cursor(cursor: Optional[str]) -> Optional[CursorKey]:
    if not cursor:
        return None
    try:
        return decode_cursor(cursor)
    except ValueError as e:
        raise ValidationError("Invalid cursor", details={"cursor": str(e)})


def paginate(
    rows: List[T],
    limit: int,
    sort_key: Callable[[T], Tuple[str, str]],
    total: Optional[int] = None,
) -> Tuple[List[T], PageInfo]:
    """
    Cut a limit+1 fetch down to one page.

    The extra row only signals that another page exists; the cursor is built
    from the last row actually returned.
    """
    has_more = len(rows) > limit
    page = rows[:limit]
    next_cursor = None
    if has_more and page:
        created_at, row_id = sort_key(page[-1])
        next_cursor = encode_cursor(created_at, row_id)
    return page, PageInfo(has_more=has_more, next_cursor=next_cursor, total=total, limit=limit)
