"""
桌台与用餐会话相关的Pydantic模型
"""
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_serializer

from paobai.core.timeutil import format_datetime_local
from paobai.schemas.order import OrderResponse


class TableBase(BaseModel):
    table_number: str = Field(..., description="桌号", max_length=20)
    table_name: Optional[str] = Field(None, description="桌台名称", max_length=50)
    capacity: int = Field(4, gt=0, description="容纳人数")
    table_type: str = Field("hall", description="桌台类型：hall=大厅, private=包间")


class TableCreate(TableBase):
    """创建桌台，不传二维码标识时自动生成"""
    qr_code: Optional[str] = Field(None, description="二维码标识", max_length=100)


class TableUpdate(BaseModel):
    table_name: Optional[str] = Field(None, max_length=50)
    capacity: Optional[int] = Field(None, gt=0)
    table_type: Optional[str] = None
    status: Optional[str] = Field(None, description="available 或 disabled")


class TableResponse(TableBase):
    """桌台响应"""
    id: int
    qr_code: str
    status: str
    current_session_id: Optional[str] = None

    class Config:
        from_attributes = True


class LeaderInfo(BaseModel):
    openid: str = Field(..., min_length=1, max_length=64, description="队长openid")
    nickname: Optional[str] = Field(None, max_length=64, description="昵称")


class CreateSessionRequest(BaseModel):
    """开台请求"""
    table_id: int = Field(..., description="桌台ID")
    leader_info: LeaderInfo
    total_customers: int = Field(1, ge=1, le=50, description="用餐人数")


class JoinSessionRequest(BaseModel):
    """加入会话请求"""
    openid: str = Field(..., min_length=1, max_length=64)
    nickname: Optional[str] = Field(None, max_length=64)


class DinerResponse(BaseModel):
    id: int
    openid: str
    nickname: Optional[str] = None
    is_leader: bool
    join_time: datetime

    class Config:
        from_attributes = True

    @field_serializer("join_time", when_used="json")
    def serialize_datetime(self, dt: datetime) -> Optional[str]:
        return format_datetime_local(dt)


class SessionResponse(BaseModel):
    """用餐会话响应"""
    id: str
    restaurant_id: int
    table_id: int
    leader_openid: str
    leader_nickname: Optional[str] = None
    total_customers: int
    status: str
    subtotal: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    start_time: datetime
    end_time: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_serializer("subtotal", "discount_amount", "total_amount", "paid_amount", when_used="json")
    def serialize_money(self, value: Optional[Decimal]) -> float:
        return float(value or 0)

    @field_serializer("start_time", "end_time", when_used="json")
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return format_datetime_local(dt)


class CreateSessionResponse(BaseModel):
    session: SessionResponse
    table: TableResponse
    leader: DinerResponse


class JoinSessionResponse(BaseModel):
    diner: DinerResponse
    joined: bool = Field(..., description="是否本次新加入")


class SessionDetailResponse(BaseModel):
    """会话详情"""
    session: SessionResponse
    table: TableResponse
    diners: List[DinerResponse]
    current_orders: List[OrderResponse]
