"""
AA制分账计算
只计算每位用餐者应付金额，不写入数据库
"""
import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from paobai.core.errors import validation_error
from paobai.models.order import Order, OrderItem
from paobai.services.order_state import CANCELLED
from paobai.services.sessions import get_active_session

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
CENT = Decimal("0.01")

# (diner_openid, original_amount) -> discount
DiscountPolicy = Callable[[str, Decimal], Decimal]


def no_discount(diner_openid: str, original_amount: Decimal) -> Decimal:
    return ZERO


def _clamp_discount(discount, original: Decimal) -> Decimal:
    value = Decimal(str(discount or 0))
    if value < ZERO:
        return ZERO
    if value > original:
        return original
    return value.quantize(CENT)


def calculate_aa_split(
    db: Session,
    session_id: str,
    assignments: Iterable[Tuple[int, str]],
    discount_policy: Optional[DiscountPolicy] = None,
) -> dict:
    """
    按 (订单项ID, 用餐者openid) 的分配计算每人应付
    同一订单项多次分配时以最后一次为准
    """
    session = get_active_session(db, session_id)
    policy = discount_policy or no_discount

    assigned: "OrderedDict[int, str]" = OrderedDict()
    for order_item_id, diner_openid in assignments:
        if order_item_id in assigned and assigned[order_item_id] != diner_openid:
            logger.warning(
                "订单项重复分配 session=%s item=%s %s -> %s",
                session_id, order_item_id, assigned[order_item_id], diner_openid,
            )
        assigned[order_item_id] = diner_openid

    items = {}
    if assigned:
        rows = db.query(OrderItem).join(Order, OrderItem.order_id == Order.id).filter(
            Order.session_id == session.id,
            OrderItem.id.in_(list(assigned.keys())),
        ).all()
        items = {row.id: row for row in rows}

    for order_item_id in assigned:
        if order_item_id not in items:
            raise validation_error(f"订单项 {order_item_id} 不存在", code="ORDER_ITEM_NOT_FOUND")
        item = items[order_item_id]
        if item.status == CANCELLED or item.order.status == CANCELLED:
            raise validation_error(f"订单项 {order_item_id} 已取消", code="ORDER_ITEM_CANCELLED")

    nicknames = {diner.openid: diner.nickname for diner in session.diners}

    breakdown: "OrderedDict[str, dict]" = OrderedDict()
    for order_item_id, diner_openid in assigned.items():
        item = items[order_item_id]
        entry = breakdown.get(diner_openid)
        if entry is None:
            entry = {
                "diner_openid": diner_openid,
                "nickname": nicknames.get(diner_openid) or "未知用户",
                "original_amount": ZERO,
                "items": [],
            }
            breakdown[diner_openid] = entry
        subtotal = Decimal(str(item.subtotal))
        entry["original_amount"] += subtotal
        entry["items"].append({
            "order_item_id": item.id,
            "item_name": item.item_name,
            "quantity": item.quantity,
            "subtotal": subtotal,
        })

    split_details: List[dict] = []
    total = ZERO
    for diner_openid, entry in breakdown.items():
        original = entry["original_amount"]
        discount = _clamp_discount(policy(diner_openid, original), original)
        entry["discount_amount"] = discount
        entry["final_amount"] = original - discount
        total += original
        split_details.append(entry)

    logger.info("AA分账计算 session=%s diners=%s total=%s", session_id, len(split_details), total)
    return {
        "session_id": session.id,
        "total_amount": total,
        "total_customers": len(split_details),
        "split_details": split_details,
    }
