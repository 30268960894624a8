"""
订单状态机
订单状态只能沿固定的流转表变化，订单项状态变化后向订单汇总
"""
import logging
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from paobai.core.errors import InvalidTransition
from paobai.core.timeutil import utcnow
from paobai.models.dining_session import DiningSession
from paobai.models.order import Order, OrderItem

logger = logging.getLogger(__name__)

PENDING = "pending"
CONFIRMED = "confirmed"
PREPARING = "preparing"
READY = "ready"
SERVED = "served"
CANCELLED = "cancelled"

ORDER_STATUSES = (PENDING, CONFIRMED, PREPARING, READY, SERVED, CANCELLED)
TERMINAL_STATUSES = (SERVED, CANCELLED)
OPEN_STATUSES = (PENDING, CONFIRMED, PREPARING, READY)
CANCELLABLE_STATUSES = (PENDING, CONFIRMED, PREPARING)

ORDER_TRANSITIONS: Dict[str, tuple] = {
    PENDING: (CONFIRMED, CANCELLED),
    CONFIRMED: (PREPARING, CANCELLED),
    PREPARING: (READY, CANCELLED),
    READY: (SERVED,),
    SERVED: (),
    CANCELLED: (),
}

ITEM_TARGET_STATUSES = (PREPARING, READY, SERVED, CANCELLED)


def can_transition(current: str, target: str) -> bool:
    return target in ORDER_TRANSITIONS.get(current, ())


def validate_transition(current: str, target: str) -> None:
    """非法流转抛出 InvalidTransition，不做任何修改"""
    if not can_transition(current, target):
        raise InvalidTransition(current, target)


def recalculate_session_totals(db: Session, session: DiningSession) -> None:
    """
    从订单重新汇总会话金额
    total_amount: 未取消订单合计
    subtotal: 已上菜订单合计
    """
    db.flush()
    total = db.query(func.coalesce(func.sum(Order.total_amount), 0)).filter(
        Order.session_id == session.id,
        Order.status != CANCELLED,
    ).scalar()
    served = db.query(func.coalesce(func.sum(Order.total_amount), 0)).filter(
        Order.session_id == session.id,
        Order.status == SERVED,
    ).scalar()
    session.total_amount = Decimal(str(total))
    session.subtotal = Decimal(str(served))


def apply_order_status(
    db: Session,
    order: Order,
    target: str,
    actual_time: Optional[int] = None,
    reason: Optional[str] = None,
) -> str:
    """
    变更订单状态并同步未结束的订单项，返回变更前的状态
    调用方负责事务
    """
    previous = order.status
    validate_transition(previous, target)

    now = utcnow()
    order.status = target
    if target == CONFIRMED:
        order.confirmed_at = now
    elif target in (READY, SERVED):
        order.completed_at = now
    elif target == CANCELLED:
        order.cancel_reason = reason
    if actual_time is not None:
        order.actual_time = actual_time

    for item in order.items:
        # 已上菜或已取消的菜品不再变更
        if item.status not in TERMINAL_STATUSES:
            item.status = target

    if target in (SERVED, CANCELLED):
        recalculate_session_totals(db, order.session)

    logger.info("订单状态变更 order=%s %s -> %s", order.id, previous, target)
    return previous


def validate_item_transition(item: OrderItem, order: Order, target: str) -> None:
    if target not in ITEM_TARGET_STATUSES:
        raise InvalidTransition(item.status, target, entity="订单项")
    if order.status in TERMINAL_STATUSES:
        raise InvalidTransition(order.status, target, entity="订单")
    if item.status in TERMINAL_STATUSES:
        raise InvalidTransition(item.status, target, entity="订单项")


def recalculate_order_amount(order: Order) -> None:
    """订单金额与份数只统计未取消的订单项"""
    total = Decimal("0")
    count = 0
    for item in order.items:
        if item.status == CANCELLED:
            continue
        total += Decimal(str(item.subtotal))
        count += item.quantity
    order.total_amount = total
    order.item_count = count


def apply_item_status(db: Session, item: OrderItem, target: str) -> bool:
    """
    变更单个订单项状态，随后尝试向订单汇总
    单个菜品取消时重算订单及会话金额
    返回订单状态是否因此变化
    """
    order = item.order
    validate_item_transition(item, order, target)
    previous = item.status
    item.status = target
    logger.info("订单项状态变更 item=%s order=%s %s -> %s", item.id, order.id, previous, target)
    if target == CANCELLED:
        recalculate_order_amount(order)
        recalculate_session_totals(db, order.session)
    return roll_up_order_status(db, order)


def _count_statuses(items: List[OrderItem]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for item in items:
        counts[item.status] = counts.get(item.status, 0) + 1
    return counts


def roll_up_order_status(db: Session, order: Order) -> bool:
    """
    全部订单项已出餐 -> 订单已出餐；全部已上菜 -> 订单已上菜
    只会向前推进，重复调用不会重复变更
    """
    items = list(order.items)
    if not items or order.status in TERMINAL_STATUSES:
        return False

    counts = _count_statuses(items)
    total = len(items)

    if counts.get(SERVED, 0) == total:
        order.status = SERVED
        order.completed_at = utcnow()
        recalculate_session_totals(db, order.session)
        logger.info("订单全部上菜 order=%s", order.id)
        return True

    if counts.get(READY, 0) == total and order.status != READY:
        order.status = READY
        order.completed_at = utcnow()
        logger.info("订单全部出餐 order=%s", order.id)
        return True

    return False
