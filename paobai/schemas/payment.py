"""
支付与AA分账相关的Pydantic模型
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_serializer

from paobai.core.timeutil import format_datetime_local


class AAAssignment(BaseModel):
    order_item_id: int = Field(..., description="订单项ID")
    diner_openid: str = Field(..., min_length=1, max_length=64)


class CalculateAARequest(BaseModel):
    """AA分账计算请求"""
    order_items: List[AAAssignment] = Field(..., min_length=1)


class AASplitItem(BaseModel):
    order_item_id: int
    item_name: str
    quantity: int
    subtotal: Decimal

    @field_serializer("subtotal", when_used="json")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)


class AASplitEntry(BaseModel):
    diner_openid: str
    nickname: str
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    items: List[AASplitItem]

    @field_serializer("original_amount", "discount_amount", "final_amount", when_used="json")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)


class AASplitResponse(BaseModel):
    """AA分账结果"""
    session_id: str
    total_amount: Decimal
    total_customers: int
    split_details: List[AASplitEntry]

    @field_serializer("total_amount", when_used="json")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)


class SplitDetailRequest(BaseModel):
    diner_openid: str = Field(..., min_length=1, max_length=64)
    order_items: List[int] = Field(default_factory=list)
    original_amount: Decimal = Field(..., ge=0)
    discount_amount: Decimal = Field(Decimal("0"), ge=0)
    final_amount: Optional[Decimal] = Field(None, ge=0)


class CreatePaymentRequest(BaseModel):
    """创建支付记录请求"""
    session_id: str
    diner_openid: str = Field(..., min_length=1, max_length=64)
    payment_method: Literal["wechat", "alipay", "cash", "split_aa"]
    amount: Decimal = Field(..., gt=0)
    order_ids: Optional[List[str]] = None
    split_details: Optional[List[SplitDetailRequest]] = None


class PaymentStatusUpdate(BaseModel):
    status: Literal["processing", "success", "failed", "refunded"]


class RefundRequest(BaseModel):
    refund_amount: Optional[Decimal] = Field(None, gt=0, description="退款金额，不传则全额退款")
    reason: Optional[str] = Field(None, max_length=255)


class SplitDetailResponse(BaseModel):
    id: int
    diner_openid: str
    order_items: Optional[List[int]] = None
    original_amount: Decimal
    discount_amount: Decimal
    final_amount: Decimal
    status: str

    class Config:
        from_attributes = True

    @field_serializer("original_amount", "discount_amount", "final_amount", when_used="json")
    def serialize_money(self, value: Optional[Decimal]) -> float:
        return float(value or 0)


class PaymentResponse(BaseModel):
    """支付记录响应"""
    id: str
    session_id: str
    diner_openid: str
    payment_method: str
    amount: Decimal
    order_ids: Optional[List[str]] = None
    payment_type: str
    transaction_id: Optional[str] = None
    status: str
    payment_time: Optional[datetime] = None
    refund_amount: Optional[Decimal] = None
    refund_reason: Optional[str] = None
    created_at: datetime
    split_details: List[SplitDetailResponse] = []

    class Config:
        from_attributes = True

    @field_serializer("amount", "refund_amount", when_used="json")
    def serialize_money(self, value: Optional[Decimal]) -> float:
        return float(value or 0)

    @field_serializer("payment_time", "created_at", when_used="json")
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return format_datetime_local(dt)
