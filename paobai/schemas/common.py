"""
通用响应模型
"""
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """统一成功响应：{success, message, data}"""
    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class PageData(BaseModel, Generic[T]):
    """分页数据"""
    items: List[T] = Field(default_factory=list)
    pagination: Pagination


def paginate(query, page: int, limit: int):
    """对查询分页，返回 (当前页数据, Pagination)"""
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    pages = (total + limit - 1) // limit if limit else 0
    return rows, Pagination(page=page, limit=limit, total=total, pages=pages)
