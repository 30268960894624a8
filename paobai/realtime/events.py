"""
实时通知事件定义
"""
import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from paobai.core.timeutil import utcnow


class EventType(str, enum.Enum):
    NEW_ORDER = "new_order"
    ORDER_STATUS_CHANGED = "order_status_update"
    ITEM_STATUS_CHANGED = "order_item_status_update"
    ORDER_CANCELLED = "order_cancelled"
    PAYMENT_STATUS_CHANGED = "payment_status_update"


def session_channel(session_id: str) -> str:
    return f"session_{session_id}"


def restaurant_channel(restaurant_id: int) -> str:
    return f"restaurant_{restaurant_id}"


ADMIN_BROADCAST = "admin_broadcast"
KITCHEN_BROADCAST = "kitchen_broadcast"

# 后厨广播只关心出餐相关事件，管理端广播接收全部事件
KITCHEN_EVENTS = (
    EventType.NEW_ORDER,
    EventType.ORDER_STATUS_CHANGED,
    EventType.ITEM_STATUS_CHANGED,
    EventType.ORDER_CANCELLED,
)


@dataclass
class Event:
    """
    一次状态变更对应一个事件
    事件投递到会话频道、餐厅频道以及后厨/管理端广播频道
    """
    type: EventType
    session_id: Optional[str]
    restaurant_id: Optional[int]
    payload: Dict[str, Any]
    timestamp: datetime = field(default_factory=utcnow)

    @property
    def channels(self) -> List[str]:
        channels = []
        if self.session_id:
            channels.append(session_channel(self.session_id))
        if self.restaurant_id is not None:
            channels.append(restaurant_channel(self.restaurant_id))
        if self.type in KITCHEN_EVENTS:
            channels.append(KITCHEN_BROADCAST)
        channels.append(ADMIN_BROADCAST)
        return channels

    def to_message(self, channel: str) -> Dict[str, Any]:
        data = dict(self.payload)
        data["timestamp"] = self.timestamp.isoformat()
        return {"event": self.type.value, "channel": channel, "data": data}


def _money(value) -> Optional[float]:
    return float(value) if value is not None else None


def new_order_event(order, table=None) -> Event:
    return Event(
        type=EventType.NEW_ORDER,
        session_id=order.session_id,
        restaurant_id=order.restaurant_id,
        payload={
            "order_id": order.id,
            "order_no": order.order_no,
            "status": order.status,
            "table_number": table.table_number if table else None,
            "total_amount": _money(order.total_amount),
            "item_count": order.item_count,
            "items": len(order.items),
        },
    )


def order_status_event(order, reason: Optional[str] = None, actual_time: Optional[int] = None,
                       previous_status: Optional[str] = None) -> Event:
    return Event(
        type=EventType.ORDER_STATUS_CHANGED,
        session_id=order.session_id,
        restaurant_id=order.restaurant_id,
        payload={
            "order_id": order.id,
            "order_no": order.order_no,
            "status": order.status,
            "previous_status": previous_status,
            "actual_time": actual_time,
            "reason": reason,
        },
    )


def order_cancelled_event(order, reason: Optional[str] = None) -> Event:
    return Event(
        type=EventType.ORDER_CANCELLED,
        session_id=order.session_id,
        restaurant_id=order.restaurant_id,
        payload={
            "order_id": order.id,
            "order_no": order.order_no,
            "status": order.status,
            "total_amount": _money(order.total_amount),
            "reason": reason,
        },
    )


def item_status_event(item, order) -> Event:
    return Event(
        type=EventType.ITEM_STATUS_CHANGED,
        session_id=order.session_id,
        restaurant_id=order.restaurant_id,
        payload={
            "order_item_id": item.id,
            "order_id": order.id,
            "status": item.status,
            "order_status": order.status,
        },
    )


def payment_status_event(payment, restaurant_id: Optional[int] = None) -> Event:
    return Event(
        type=EventType.PAYMENT_STATUS_CHANGED,
        session_id=payment.session_id,
        restaurant_id=restaurant_id,
        payload={
            "payment_id": payment.id,
            "diner_openid": payment.diner_openid,
            "amount": _money(payment.amount),
            "payment_method": payment.payment_method,
            "status": payment.status,
        },
    )
