"""
顾客端公共API：健康检查、餐厅信息、菜单、扫码查桌台
"""
import time
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from paobai import __version__
from paobai.core.config import settings
from paobai.core.errors import not_found
from paobai.core.timeutil import utcnow
from paobai.db.database import get_db
from paobai.models.menu import Category, MenuItem
from paobai.models.restaurant import Restaurant
from paobai.models.table import DiningTable, TABLE_AVAILABLE
from paobai.schemas.common import ApiResponse, PageData, paginate
from paobai.schemas.menu import CategoryResponse, MenuItemResponse, RestaurantResponse
from paobai.schemas.session import TableResponse

router = APIRouter(prefix="/api", tags=["顾客端"])

_started_at = time.monotonic()


@router.get("/health")
def health():
    """健康检查"""
    return {
        "success": True,
        "message": "服务运行正常",
        "timestamp": utcnow().isoformat(),
        "uptime": round(time.monotonic() - _started_at, 3),
        "version": __version__,
    }


@router.get("/restaurant/info", response_model=ApiResponse[RestaurantResponse])
def get_restaurant_info(db: Session = Depends(get_db)):
    """获取餐厅信息"""
    restaurant = db.query(Restaurant).filter(Restaurant.id == settings.restaurant_id).first()
    if not restaurant:
        raise not_found("餐厅不存在", code="RESTAURANT_NOT_FOUND")
    return ApiResponse(data=RestaurantResponse.model_validate(restaurant))


@router.get("/menu/categories", response_model=ApiResponse[List[CategoryResponse]])
def get_menu_categories(db: Session = Depends(get_db)):
    """获取启用的菜品分类，附带可售菜品数量"""
    rows = db.query(Category, func.count(MenuItem.id)).outerjoin(
        MenuItem, (MenuItem.category_id == Category.id) & (MenuItem.is_available.is_(True))
    ).filter(
        Category.restaurant_id == settings.restaurant_id,
        Category.is_active.is_(True),
    ).group_by(Category.id).order_by(Category.sort_order, Category.id).all()

    data = []
    for category, item_count in rows:
        item = CategoryResponse.model_validate(category)
        item.item_count = item_count
        data.append(item)
    return ApiResponse(data=data)


@router.get("/menu/items", response_model=ApiResponse[PageData[MenuItemResponse]])
def get_menu_items(
    category_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """获取可售菜品列表"""
    query = db.query(MenuItem).filter(
        MenuItem.restaurant_id == settings.restaurant_id,
        MenuItem.is_available.is_(True),
    )
    if category_id:
        query = query.filter(MenuItem.category_id == category_id)
    query = query.order_by(MenuItem.sort_order, MenuItem.id)

    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=PageData(
        items=[MenuItemResponse.from_model(item) for item in rows],
        pagination=pagination,
    ))


@router.get("/menu/items/{item_id}", response_model=ApiResponse[MenuItemResponse])
def get_menu_item(item_id: int, db: Session = Depends(get_db)):
    """获取菜品详情"""
    item = db.query(MenuItem).filter(
        MenuItem.id == item_id,
        MenuItem.restaurant_id == settings.restaurant_id,
    ).first()
    if not item:
        raise not_found("菜品不存在", code="MENU_ITEM_NOT_FOUND")
    return ApiResponse(data=MenuItemResponse.from_model(item))


@router.get("/tables/qr/{qr_code}", response_model=ApiResponse[TableResponse])
def get_table_by_qr(qr_code: str, db: Session = Depends(get_db)):
    """扫码获取桌台，仅返回空闲桌台"""
    table = db.query(DiningTable).filter(
        DiningTable.qr_code == qr_code,
        DiningTable.status == TABLE_AVAILABLE,
    ).first()
    if not table:
        raise not_found("桌台不存在或已被占用", code="TABLE_NOT_FOUND")
    return ApiResponse(data=TableResponse.model_validate(table))
