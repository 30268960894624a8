"""
订单服务
下单、取消及后厨状态变更，均在单个事务内完成
返回的事件由调用方在提交后推送
"""
import logging
from decimal import Decimal
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from paobai.core.errors import business_error, forbidden, not_found, validation_error
from paobai.db.database import transaction
from paobai.models.menu import MenuItem
from paobai.models.order import Order, OrderItem
from paobai.realtime.events import (
    Event, item_status_event, new_order_event, order_cancelled_event, order_status_event,
)
from paobai.services import order_state
from paobai.services.ids import generate_id, generate_order_no
from paobai.services.sessions import get_active_session, touch_diner

logger = logging.getLogger(__name__)


def get_order(db: Session, order_id: str) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise not_found("订单不存在", code="ORDER_NOT_FOUND")
    return order


def create_order(
    db: Session,
    session_id: str,
    diner_openid: str,
    items: Iterable[dict],
    special_requests: Optional[str] = None,
) -> Tuple[Order, List[Event]]:
    """
    下单
    items: [{menu_item_id, quantity, special_instructions}]
    """
    items = list(items)
    if not items:
        raise validation_error("订单不能为空", code="EMPTY_ORDER")

    with transaction(db):
        session = get_active_session(db, session_id)
        if not touch_diner(db, session.id, diner_openid):
            raise forbidden("您不在该用餐会话中", code="DINER_NOT_IN_SESSION")

        menu_ids = {entry["menu_item_id"] for entry in items}
        menu_items = {
            m.id: m
            for m in db.query(MenuItem).filter(
                MenuItem.id.in_(menu_ids),
                MenuItem.restaurant_id == session.restaurant_id,
            ).all()
        }

        order = Order(
            id=generate_id("O"),
            session_id=session.id,
            restaurant_id=session.restaurant_id,
            table_id=session.table_id,
            order_no=generate_order_no(),
            status=order_state.PENDING,
            special_requests=special_requests,
        )

        total = Decimal("0")
        item_count = 0
        preparation_time = 0
        for entry in items:
            menu_item = menu_items.get(entry["menu_item_id"])
            if not menu_item or not menu_item.is_available:
                raise business_error(f"菜品 {entry['menu_item_id']} 不存在或已下架", code="MENU_ITEM_UNAVAILABLE")
            quantity = int(entry["quantity"])
            if quantity <= 0:
                raise validation_error("菜品数量必须大于0", code="INVALID_QUANTITY")

            price = Decimal(str(menu_item.price))
            subtotal = price * quantity
            order.items.append(OrderItem(
                menu_item_id=menu_item.id,
                item_name=menu_item.name,
                price=price,
                quantity=quantity,
                subtotal=subtotal,
                special_instructions=entry.get("special_instructions"),
                status=order_state.PENDING,
                diner_openid=diner_openid,
            ))
            total += subtotal
            item_count += quantity
            preparation_time = max(preparation_time, menu_item.preparation_time or 0)

        order.total_amount = total
        order.item_count = item_count
        order.preparation_time = preparation_time
        db.add(order)

        order_state.recalculate_session_totals(db, session)

    db.refresh(order)
    logger.info(
        "创建订单 order=%s no=%s session=%s amount=%s items=%s",
        order.id, order.order_no, session_id, order.total_amount, item_count,
    )
    return order, [new_order_event(order, order.table)]


def cancel_order(db: Session, order_id: str, reason: Optional[str] = None) -> Tuple[Order, List[Event]]:
    """顾客取消订单：仅待确认、已确认、制作中可取消"""
    with transaction(db):
        order = get_order(db, order_id)
        if order.status not in order_state.CANCELLABLE_STATUSES:
            raise business_error("订单当前状态无法取消", code="ORDER_NOT_CANCELLABLE")
        order_state.apply_order_status(db, order, order_state.CANCELLED, reason=reason or "顾客取消")

    db.refresh(order)
    logger.info("取消订单 order=%s reason=%s", order.id, order.cancel_reason)
    return order, [order_cancelled_event(order, order.cancel_reason)]


def update_order_status(
    db: Session,
    order_id: str,
    status: str,
    actual_time: Optional[int] = None,
    reason: Optional[str] = None,
) -> Tuple[Order, List[Event]]:
    """后厨变更订单状态"""
    with transaction(db):
        order = get_order(db, order_id)
        previous = order_state.apply_order_status(db, order, status, actual_time=actual_time, reason=reason)

    db.refresh(order)
    events = [order_status_event(order, reason=reason, actual_time=actual_time, previous_status=previous)]
    if status == order_state.CANCELLED:
        events.append(order_cancelled_event(order, order.cancel_reason))
    return order, events


def update_item_status(db: Session, item_id: int, status: str) -> Tuple[OrderItem, Order, List[Event]]:
    """后厨变更单个订单项状态，必要时订单随之出餐或上菜"""
    with transaction(db):
        item = db.query(OrderItem).filter(OrderItem.id == item_id).first()
        if not item:
            raise not_found("订单项不存在", code="ORDER_ITEM_NOT_FOUND")
        order = item.order
        previous_order_status = order.status
        rolled_up = order_state.apply_item_status(db, item, status)

    db.refresh(item)
    db.refresh(order)
    events = [item_status_event(item, order)]
    if rolled_up:
        events.append(order_status_event(order, previous_status=previous_order_status))
    return item, order, events


def list_session_orders(db: Session, session_id: str, status: Optional[str] = None) -> List[Order]:
    query = db.query(Order).filter(Order.session_id == session_id)
    if status:
        query = query.filter(Order.status == status)
    return query.order_by(Order.created_at.desc()).all()
