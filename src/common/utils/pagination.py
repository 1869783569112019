# src/common/utils/pagination.py
"""Page/perPage/sort query parameters and a helper that applies them to a select."""

import math
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Query
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.common.schemas import PaginationMeta


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


class PaginationParams:
    """FastAPI dependency reading the pagination query string."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        per_page: int = Query(20, ge=1, le=100, alias="perPage"),
        sort_by: Optional[str] = Query(None, alias="sortBy"),
        sort_order: SortOrder = Query(SortOrder.DESC, alias="sortOrder"),
    ):
        self.page = page
        self.per_page = per_page
        self.sort_by = sort_by
        self.sort_order = sort_order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


def build_meta(page: int, per_page: int, total: int) -> PaginationMeta:
    return PaginationMeta(
        page=page,
        per_page=per_page,
        total=total,
        total_pages=math.ceil(total / per_page) if per_page else 0,
    )


async def paginate(
    session: AsyncSession,
    query: Select,
    params: PaginationParams,
    sort_columns: Optional[Dict[str, Any]] = None,
    default_order: Optional[List[Any]] = None,
) -> Tuple[list, PaginationMeta]:
    """
    Run ``query`` for one page.

    ``sort_columns`` maps the public ``sortBy`` names to columns; an unknown or
    missing ``sortBy`` falls back to ``default_order``.
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await session.execute(count_query)).scalar() or 0

    column = (sort_columns or {}).get(params.sort_by) if params.sort_by else None
    if column is not None:
        order = column.asc() if params.sort_order == SortOrder.ASC else column.desc()
        query = query.order_by(order)
    elif default_order:
        query = query.order_by(*default_order)

    query = query.offset(params.offset).limit(params.per_page)
    result = await session.execute(query)
    items = list(result.scalars().all())

    return items, build_meta(params.page, params.per_page, total)
