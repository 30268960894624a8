"""
后厨API
"""
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from sqlalchemy import func
from sqlalchemy.orm import Session

from paobai.core.config import settings
from paobai.core.security import require_staff
from paobai.core.timeutil import local_day_bounds, minutes_between, utcnow
from paobai.db.database import get_db
from paobai.models.order import Order
from paobai.models.user import User
from paobai.realtime.manager import publish
from paobai.schemas.common import ApiResponse, PageData, paginate
from paobai.schemas.order import (
    ItemStatusResponse, KitchenOrderResponse, OrderItemResponse, OrderItemStatusUpdate,
    OrderResponse, OrderStatusUpdate,
)
from paobai.services import order_state
from paobai.services import orders as order_service

router = APIRouter(prefix="/kitchen", tags=["后厨"])


@router.get("/orders", response_model=ApiResponse[PageData[KitchenOrderResponse]])
def get_kitchen_orders(
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    """
    获取后厨订单
    默认返回未完成订单，加急优先，其次按下单时间先后
    """
    query = db.query(Order).filter(Order.restaurant_id == settings.restaurant_id)
    if status:
        query = query.filter(Order.status == status)
    else:
        query = query.filter(Order.status.in_(order_state.OPEN_STATUSES))
    query = query.order_by(Order.priority.desc(), Order.created_at.asc(), Order.id)

    rows, pagination = paginate(query, page, limit)
    return ApiResponse(data=PageData(
        items=[KitchenOrderResponse.from_model(order) for order in rows],
        pagination=pagination,
    ))


@router.put("/orders/{order_id}/status", response_model=ApiResponse[OrderResponse])
def update_order_status(
    order_id: str,
    request: OrderStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    """更新订单状态，订单项随之变更"""
    order, events = order_service.update_order_status(
        db, order_id, request.status, actual_time=request.actual_time, reason=request.reason,
    )
    background_tasks.add_task(publish, events)
    return ApiResponse(message="订单状态更新成功", data=OrderResponse.model_validate(order))


@router.put("/order-items/{item_id}/status", response_model=ApiResponse[ItemStatusResponse])
def update_item_status(
    item_id: int,
    request: OrderItemStatusUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    """更新单个订单项状态"""
    item, order, events = order_service.update_item_status(db, item_id, request.status)
    background_tasks.add_task(publish, events)
    return ApiResponse(
        message="订单项状态更新成功",
        data=ItemStatusResponse(item=OrderItemResponse.model_validate(item), order_status=order.status),
    )


@router.get("/dashboard/realtime")
def get_realtime_dashboard(db: Session = Depends(get_db), user: User = Depends(require_staff)):
    """后厨看板实时数据"""
    counts = dict(
        db.query(Order.status, func.count(Order.id)).filter(
            Order.restaurant_id == settings.restaurant_id,
            Order.status.in_(order_state.OPEN_STATUSES),
        ).group_by(Order.status).all()
    )

    day_start, day_end = local_day_bounds()
    served_today = db.query(Order).filter(
        Order.restaurant_id == settings.restaurant_id,
        Order.status == order_state.SERVED,
        Order.created_at >= day_start,
        Order.created_at < day_end,
    ).all()
    waits = [
        minutes_between(order.created_at, order.completed_at)
        for order in served_today
        if order.completed_at is not None
    ]
    avg_wait = round(sum(waits) / len(waits), 1) if waits else 0

    return {
        "success": True,
        "data": {
            "pending_orders": counts.get(order_state.PENDING, 0) + counts.get(order_state.CONFIRMED, 0),
            "preparing_orders": counts.get(order_state.PREPARING, 0),
            "ready_orders": counts.get(order_state.READY, 0),
            "served_today": len(served_today),
            "avg_wait_minutes": avg_wait,
            "timestamp": utcnow().isoformat(),
        },
    }
