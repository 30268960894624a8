"""
订单相关的Pydantic模型
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_serializer

from paobai.core.timeutil import format_datetime_local, minutes_between, utcnow


class OrderItemRequest(BaseModel):
    menu_item_id: int = Field(..., description="菜品ID")
    quantity: int = Field(..., gt=0, le=99, description="数量")
    special_instructions: Optional[str] = Field(None, max_length=255, description="特殊要求")


class CreateOrderRequest(BaseModel):
    """下单请求"""
    session_id: str = Field(..., description="会话ID")
    diner_openid: str = Field(..., min_length=1, max_length=64, description="点餐用户openid")
    items: List[OrderItemRequest] = Field(..., min_length=1)
    special_requests: Optional[str] = Field(None, description="整单备注")


class CancelOrderRequest(BaseModel):
    """顾客只能取消订单"""
    status: Literal["cancelled"]
    reason: Optional[str] = Field(None, max_length=255)


class OrderStatusUpdate(BaseModel):
    """后厨更新订单状态"""
    status: Literal["confirmed", "preparing", "ready", "served", "cancelled"]
    actual_time: Optional[int] = Field(None, ge=0, description="实际制作时间（分钟）")
    reason: Optional[str] = Field(None, max_length=255)


class OrderItemStatusUpdate(BaseModel):
    status: Literal["preparing", "ready", "served", "cancelled"]


class OrderItemResponse(BaseModel):
    id: int
    order_id: str
    menu_item_id: int
    item_name: str
    price: Decimal
    quantity: int
    subtotal: Decimal
    special_instructions: Optional[str] = None
    status: str
    diner_openid: str

    class Config:
        from_attributes = True

    @field_serializer("price", "subtotal", when_used="json")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)


class OrderResponse(BaseModel):
    """订单响应"""
    id: str
    order_no: str
    session_id: str
    table_id: int
    total_amount: Decimal
    item_count: int
    status: str
    priority: bool = False
    special_requests: Optional[str] = None
    preparation_time: Optional[int] = None
    actual_time: Optional[int] = None
    cancel_reason: Optional[str] = None
    created_at: datetime
    confirmed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    items: List[OrderItemResponse] = []

    class Config:
        from_attributes = True

    @field_serializer("total_amount", when_used="json")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)

    @field_serializer("created_at", "confirmed_at", "completed_at", when_used="json")
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return format_datetime_local(dt)


class KitchenOrderResponse(OrderResponse):
    """后厨订单，附带桌号与等待时长"""
    table_number: Optional[str] = None
    wait_minutes: Optional[int] = None

    @classmethod
    def from_model(cls, order) -> "KitchenOrderResponse":
        data = cls.model_validate(order)
        data.table_number = order.table.table_number if order.table else None
        data.wait_minutes = minutes_between(order.created_at, utcnow())
        return data


class ItemStatusResponse(BaseModel):
    item: OrderItemResponse
    order_status: str
