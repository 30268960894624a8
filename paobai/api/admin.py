"""
管理后台API
"""
import secrets
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from paobai.core.config import settings
from paobai.core.errors import business_error, conflict, not_found, validation_error
from paobai.core.security import get_password_hash, require_admin, token_store
from paobai.core.timeutil import local_day_bounds, utcnow
from paobai.db.database import get_db, transaction
from paobai.models.dining_session import DiningSession, SESSION_ACTIVE
from paobai.models.menu import Category, MenuItem
from paobai.models.order import Order, OrderItem
from paobai.models.restaurant import Restaurant
from paobai.models.table import DiningTable, TABLE_AVAILABLE, TABLE_DISABLED, TABLE_OCCUPIED
from paobai.models.user import User
from paobai.realtime.manager import publish
from paobai.schemas.common import ApiResponse, PageData, paginate
from paobai.schemas.menu import (
    CategoryCreate, CategoryResponse, CategoryUpdate, MenuItemCreate, MenuItemResponse, MenuItemUpdate,
    RestaurantResponse, RestaurantUpdate,
)
from paobai.schemas.order import OrderResponse
from paobai.schemas.payment import PaymentResponse, PaymentStatusUpdate, RefundRequest
from paobai.schemas.session import TableCreate, TableResponse, TableUpdate
from paobai.schemas.user import UserCreate, UserResponse, UserUpdate
from paobai.services import order_state
from paobai.services import payments as payment_service

router = APIRouter(prefix="/admin", tags=["管理后台"], dependencies=[Depends(require_admin)])


# ---------- 餐厅 ----------

def _get_restaurant(db: Session) -> Restaurant:
    restaurant = db.query(Restaurant).filter(Restaurant.id == settings.restaurant_id).first()
    if not restaurant:
        raise not_found("餐厅不存在", code="RESTAURANT_NOT_FOUND")
    return restaurant


@router.get("/restaurant", response_model=ApiResponse[RestaurantResponse])
def get_restaurant(db: Session = Depends(get_db)):
    return ApiResponse(data=RestaurantResponse.model_validate(_get_restaurant(db)))


@router.put("/restaurant", response_model=ApiResponse[RestaurantResponse])
def update_restaurant(request: RestaurantUpdate, db: Session = Depends(get_db)):
    """更新餐厅信息"""
    with transaction(db):
        restaurant = _get_restaurant(db)
        for key, value in request.model_dump(exclude_unset=True).items():
            setattr(restaurant, key, value)
    db.refresh(restaurant)
    return ApiResponse(message="餐厅信息更新成功", data=RestaurantResponse.model_validate(restaurant))


# ---------- 桌台 ----------

@router.get("/tables", response_model=ApiResponse[List[TableResponse]])
def get_tables(status: Optional[str] = None, db: Session = Depends(get_db)):
    """获取桌台列表"""
    query = db.query(DiningTable).filter(DiningTable.restaurant_id == settings.restaurant_id)
    if status:
        query = query.filter(DiningTable.status == status)
    tables = query.order_by(DiningTable.table_number).all()
    return ApiResponse(data=[TableResponse.model_validate(t) for t in tables])


@router.post("/tables", response_model=ApiResponse[TableResponse], status_code=201)
def create_table(request: TableCreate, db: Session = Depends(get_db)):
    """创建桌台"""
    with transaction(db):
        existing = db.query(DiningTable).filter(
            DiningTable.restaurant_id == settings.restaurant_id,
            DiningTable.table_number == request.table_number,
        ).first()
        if existing:
            raise conflict("桌号已存在", code="TABLE_NUMBER_EXISTS")
        qr_code = request.qr_code or f"table_{request.table_number}_{secrets.token_hex(4)}"
        if db.query(DiningTable).filter(DiningTable.qr_code == qr_code).first():
            raise conflict("二维码标识已存在", code="QR_CODE_EXISTS")

        data = request.model_dump()
        data["qr_code"] = qr_code
        table = DiningTable(restaurant_id=settings.restaurant_id, status=TABLE_AVAILABLE, **data)
        db.add(table)
    db.refresh(table)
    return ApiResponse(message="桌台创建成功", data=TableResponse.model_validate(table))


@router.put("/tables/{table_id}", response_model=ApiResponse[TableResponse])
def update_table(table_id: int, request: TableUpdate, db: Session = Depends(get_db)):
    """更新桌台；就餐中的桌台不能停用，状态只能在空闲与停用间切换"""
    with transaction(db):
        table = db.query(DiningTable).filter(
            DiningTable.id == table_id,
            DiningTable.restaurant_id == settings.restaurant_id,
        ).first()
        if not table:
            raise not_found("桌台不存在", code="TABLE_NOT_FOUND")

        data = request.model_dump(exclude_unset=True)
        status = data.pop("status", None)
        if status is not None and status != table.status:
            if status not in (TABLE_AVAILABLE, TABLE_DISABLED):
                raise validation_error("桌台状态只能设置为 available 或 disabled")
            if table.status == TABLE_OCCUPIED:
                raise conflict("桌台正在就餐中，无法修改状态", code="TABLE_OCCUPIED")
            table.status = status
        for key, value in data.items():
            setattr(table, key, value)
    db.refresh(table)
    return ApiResponse(message="桌台更新成功", data=TableResponse.model_validate(table))


# ---------- 分类 ----------

@router.get("/categories", response_model=ApiResponse[List[CategoryResponse]])
def get_categories(db: Session = Depends(get_db)):
    rows = db.query(Category, func.count(MenuItem.id)).outerjoin(
        MenuItem, MenuItem.category_id == Category.id
    ).filter(
        Category.restaurant_id == settings.restaurant_id
    ).group_by(Category.id).order_by(Category.sort_order, Category.id).all()

    data = []
    for category, item_count in rows:
        item = CategoryResponse.model_validate(category)
        item.item_count = item_count
        data.append(item)
    return ApiResponse(data=data)


@router.post("/categories", response_model=ApiResponse[CategoryResponse], status_code=201)
def create_category(request: CategoryCreate, db: Session = Depends(get_db)):
    """创建分类"""
    with transaction(db):
        existing = db.query(Category).filter(
            Category.restaurant_id == settings.restaurant_id,
            Category.name == request.name,
        ).first()
        if existing:
            raise conflict("分类名称已存在", code="CATEGORY_EXISTS")
        category = Category(restaurant_id=settings.restaurant_id, **request.model_dump())
        db.add(category)
    db.refresh(category)
    return ApiResponse(message="分类创建成功", data=CategoryResponse.model_validate(category))


@router.put("/categories/{category_id}", response_model=ApiResponse[CategoryResponse])
def update_category(category_id: int, request: CategoryUpdate, db: Session = Depends(get_db)):
    with transaction(db):
        category = db.query(Category).filter(
            Category.id == category_id,
            Category.restaurant_id == settings.restaurant_id,
        ).first()
        if not category:
            raise not_found("分类不存在", code="CATEGORY_NOT_FOUND")
        data = request.model_dump(exclude_unset=True)
        if data.get("name") and data["name"] != category.name:
            duplicate = db.query(Category).filter(
                Category.restaurant_id == settings.restaurant_id,
                Category.name == data["name"],
            ).first()
            if duplicate:
                raise conflict("分类名称已存在", code="CATEGORY_EXISTS")
        for key, value in data.items():
            setattr(category, key, value)
    db.refresh(category)
    return ApiResponse(message="分类更新成功", data=CategoryResponse.model_validate(category))


# ---------- 菜品 ----------

def _check_category(db: Session, category_id: Optional[int]) -> None:
    if category_id is None:
        return
    exists = db.query(Category.id).filter(
        Category.id == category_id,
        Category.restaurant_id == settings.restaurant_id,
    ).first()
    if not exists:
        raise not_found("分类不存在", code="CATEGORY_NOT_FOUND")


def _get_menu_item(db: Session, item_id: int) -> MenuItem:
    item = db.query(MenuItem).filter(
        MenuItem.id == item_id,
        MenuItem.restaurant_id == settings.restaurant_id,
    ).first()
    if not item:
        raise not_found("菜品不存在", code="MENU_ITEM_NOT_FOUND")
    return item


@router.get("/menu-items", response_model=ApiResponse[PageData[MenuItemResponse]])
def get_menu_items(
    category_id: Optional[int] = None,
    is_available: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """获取菜品列表（含下架菜品）"""
    query = db.query(MenuItem).filter(MenuItem.restaurant_id == settings.restaurant_id)
    if category_id:
        query = query.filter(MenuItem.category_id == category_id)
    if is_available is not None:
        query = query.filter(MenuItem.is_available.is_(is_available))
    if search:
        query = query.filter(MenuItem.name.like(f"%{search}%"))
    query = query.order_by(MenuItem.sort_order, MenuItem.id)

    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=PageData(
        items=[MenuItemResponse.from_model(item) for item in rows],
        pagination=pagination,
    ))


@router.post("/menu-items", response_model=ApiResponse[MenuItemResponse], status_code=201)
def create_menu_item(request: MenuItemCreate, db: Session = Depends(get_db)):
    """创建菜品"""
    with transaction(db):
        _check_category(db, request.category_id)
        item = MenuItem(restaurant_id=settings.restaurant_id, **request.model_dump())
        db.add(item)
    db.refresh(item)
    return ApiResponse(message="菜品创建成功", data=MenuItemResponse.from_model(item))


@router.put("/menu-items/{item_id}", response_model=ApiResponse[MenuItemResponse])
def update_menu_item(item_id: int, request: MenuItemUpdate, db: Session = Depends(get_db)):
    """更新菜品，只修改传入的字段"""
    with transaction(db):
        item = _get_menu_item(db, item_id)
        data = request.model_dump(exclude_unset=True)
        if "category_id" in data:
            _check_category(db, data["category_id"])
        for key, value in data.items():
            setattr(item, key, value)
    db.refresh(item)
    return ApiResponse(message="菜品更新成功", data=MenuItemResponse.from_model(item))


@router.delete("/menu-items/{item_id}")
def delete_menu_item(item_id: int, db: Session = Depends(get_db)):
    """
    删除菜品
    已被订单引用的菜品只做下架处理，保证历史订单完整
    """
    with transaction(db):
        item = _get_menu_item(db, item_id)
        referenced = db.query(OrderItem.id).filter(OrderItem.menu_item_id == item.id).first()
        if referenced:
            item.is_available = False
            message = f"菜品 {item.name} 已有订单记录，已下架"
        else:
            db.delete(item)
            message = f"菜品 {item.name} 已删除"
    return {"success": True, "message": message}


# ---------- 订单与统计 ----------

@router.get("/orders", response_model=ApiResponse[PageData[OrderResponse]])
def get_orders(
    status: Optional[str] = None,
    table_id: Optional[int] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """订单列表"""
    query = db.query(Order).filter(Order.restaurant_id == settings.restaurant_id)
    if status:
        query = query.filter(Order.status == status)
    if table_id:
        query = query.filter(Order.table_id == table_id)
    if start_date:
        query = query.filter(Order.created_at >= start_date)
    if end_date:
        query = query.filter(Order.created_at <= end_date)
    query = query.order_by(Order.created_at.desc())

    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=PageData(
        items=[OrderResponse.model_validate(o) for o in rows],
        pagination=pagination,
    ))


@router.get("/stats/overview")
def get_stats_overview(db: Session = Depends(get_db)):
    """今日经营概况"""
    day_start, day_end = local_day_bounds()
    today = (
        Order.restaurant_id == settings.restaurant_id,
        Order.created_at >= day_start,
        Order.created_at < day_end,
    )
    status_counts = dict(
        db.query(Order.status, func.count(Order.id)).filter(*today).group_by(Order.status).all()
    )
    revenue = db.query(func.coalesce(func.sum(Order.total_amount), 0)).filter(
        *today, Order.status == order_state.SERVED
    ).scalar()
    occupied_tables = db.query(func.count(DiningTable.id)).filter(
        DiningTable.restaurant_id == settings.restaurant_id,
        DiningTable.status == TABLE_OCCUPIED,
    ).scalar()
    total_tables = db.query(func.count(DiningTable.id)).filter(
        DiningTable.restaurant_id == settings.restaurant_id
    ).scalar()
    active_sessions = db.query(func.count(DiningSession.id)).filter(
        DiningSession.restaurant_id == settings.restaurant_id,
        DiningSession.status == SESSION_ACTIVE,
    ).scalar()

    return {
        "success": True,
        "data": {
            "orders_by_status": {status: status_counts.get(status, 0) for status in order_state.ORDER_STATUSES},
            "total_orders": sum(status_counts.values()),
            "revenue": float(revenue or 0),
            "occupied_tables": occupied_tables,
            "total_tables": total_tables,
            "active_sessions": active_sessions,
            "timestamp": utcnow().isoformat(),
        },
    }


@router.get("/stats/popular-items")
def get_popular_items(limit: int = Query(10, ge=1, le=50), db: Session = Depends(get_db)):
    """热销菜品：按未取消订单中的销量排序"""
    rows = db.query(
        OrderItem.menu_item_id,
        OrderItem.item_name,
        func.sum(OrderItem.quantity).label("quantity"),
        func.sum(OrderItem.subtotal).label("revenue"),
    ).join(Order, OrderItem.order_id == Order.id).filter(
        Order.restaurant_id == settings.restaurant_id,
        OrderItem.status != order_state.CANCELLED,
    ).group_by(OrderItem.menu_item_id, OrderItem.item_name).order_by(
        func.sum(OrderItem.quantity).desc()
    ).limit(limit).all()

    return {
        "success": True,
        "data": [
            {
                "menu_item_id": row.menu_item_id,
                "item_name": row.item_name,
                "quantity": int(row.quantity or 0),
                "revenue": float(row.revenue or 0),
            }
            for row in rows
        ],
    }


# ---------- 支付 ----------

@router.put("/payments/{payment_id}/status", response_model=ApiResponse[PaymentResponse])
def update_payment_status(
    payment_id: str,
    request: PaymentStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """确认或标记支付状态（现金支付由店员确认）"""
    payment, events = payment_service.update_payment_status(db, payment_id, request.status)
    background_tasks.add_task(publish, events)
    return ApiResponse(message="支付状态更新成功", data=PaymentResponse.model_validate(payment))


@router.post("/payments/{payment_id}/refund", response_model=ApiResponse[PaymentResponse])
def refund_payment(
    payment_id: str,
    request: RefundRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """退款"""
    payment, events = payment_service.refund_payment(db, payment_id, request.refund_amount, request.reason)
    background_tasks.add_task(publish, events)
    return ApiResponse(message="退款成功", data=PaymentResponse.model_validate(payment))


# ---------- 员工账号 ----------

def _get_user(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise not_found("用户不存在", code="USER_NOT_FOUND")
    return user


@router.get("/users", response_model=ApiResponse[List[UserResponse]])
def get_users(db: Session = Depends(get_db)):
    """获取员工列表"""
    users = db.query(User).order_by(User.id).all()
    return ApiResponse(data=[UserResponse.model_validate(u) for u in users])


@router.post("/users", response_model=ApiResponse[UserResponse], status_code=201)
def create_user(request: UserCreate, db: Session = Depends(get_db)):
    """创建员工账号"""
    with transaction(db):
        if db.query(User).filter(User.username == request.username).first():
            raise conflict("用户名已存在", code="USERNAME_EXISTS")
        if request.email and db.query(User).filter(User.email == request.email).first():
            raise conflict("邮箱已存在", code="EMAIL_EXISTS")
        user = User(
            username=request.username,
            email=request.email,
            role=request.role,
            password_hash=get_password_hash(request.password),
            is_active=True,
        )
        db.add(user)
    db.refresh(user)
    return ApiResponse(message="用户创建成功", data=UserResponse.model_validate(user))


@router.put("/users/{user_id}", response_model=ApiResponse[UserResponse])
def update_user(user_id: int, request: UserUpdate, current: User = Depends(require_admin), db: Session = Depends(get_db)):
    """更新员工账号；修改密码或停用账号时其已登录令牌失效"""
    with transaction(db):
        user = _get_user(db, user_id)
        data = request.model_dump(exclude_unset=True)
        if user.id == current.id and (data.get("is_active") is False or data.get("role", user.role) != user.role):
            raise business_error("不能停用自己或修改自己的角色", code="SELF_MODIFICATION")
        if data.get("email") and data["email"] != user.email:
            if db.query(User).filter(User.email == data["email"], User.id != user.id).first():
                raise conflict("邮箱已存在", code="EMAIL_EXISTS")
        password = data.pop("password", None)
        if password:
            user.password_hash = get_password_hash(password)
        for key, value in data.items():
            setattr(user, key, value)
    if password or user.is_active is False:
        token_store.revoke_user(user.id)
    db.refresh(user)
    return ApiResponse(message="用户更新成功", data=UserResponse.model_validate(user))
