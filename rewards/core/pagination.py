"""
Page/limit paging shared by the list endpoints
"""

import math
from typing import Tuple

from pydantic import BaseModel


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


def page_bounds(page: int, limit: int) -> Tuple[int, int]:
    """Inclusive (start, end) row offsets for .range()"""
    offset = (page - 1) * limit
    return offset, offset + limit - 1


def paginate(page: int, limit: int, total: int) -> Pagination:
    return Pagination(page=page, limit=limit, total=total, pages=math.ceil(total / limit) if total else 0)
