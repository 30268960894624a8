"""
餐厅、分类与菜品相关的Pydantic模型
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from paobai.core.timeutil import format_datetime_local


class RestaurantResponse(BaseModel):
    """餐厅信息"""
    id: int
    name: str
    logo: Optional[str] = None
    description: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    business_hours: Optional[str] = None
    status: int

    class Config:
        from_attributes = True


class RestaurantUpdate(BaseModel):
    """更新餐厅信息，只修改传入的字段"""
    name: Optional[str] = Field(None, max_length=100)
    logo: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    address: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    business_hours: Optional[str] = Field(None, max_length=100)
    status: Optional[int] = Field(None, ge=0, le=1, description="1=营业中, 0=已停业")


class CategoryBase(BaseModel):
    name: str = Field(..., description="分类名称", max_length=50)
    sort_order: int = Field(0, description="排序")
    is_active: bool = Field(True, description="是否启用")


class CategoryCreate(CategoryBase):
    """创建分类"""
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=50)
    sort_order: Optional[int] = None
    is_active: Optional[bool] = None


class CategoryResponse(CategoryBase):
    id: int
    item_count: int = 0

    class Config:
        from_attributes = True


class MenuItemBase(BaseModel):
    name: str = Field(..., description="菜品名称", max_length=100)
    category_id: Optional[int] = Field(None, description="分类ID")
    description: Optional[str] = Field(None, description="菜品描述")
    price: Decimal = Field(..., gt=0, description="售价")
    image_url: Optional[str] = Field(None, description="图片地址", max_length=255)
    preparation_time: int = Field(10, ge=0, description="预计制作时间（分钟）")
    is_available: bool = Field(True, description="是否可售")
    sort_order: int = Field(0, description="排序")


class MenuItemCreate(MenuItemBase):
    """创建菜品"""
    pass


class MenuItemUpdate(BaseModel):
    """更新菜品，只修改传入的字段"""
    name: Optional[str] = Field(None, max_length=100)
    category_id: Optional[int] = None
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, gt=0)
    image_url: Optional[str] = Field(None, max_length=255)
    preparation_time: Optional[int] = Field(None, ge=0)
    is_available: Optional[bool] = None
    sort_order: Optional[int] = None


class MenuItemResponse(MenuItemBase):
    """菜品响应"""
    id: int
    category_name: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_serializer("price", when_used="json")
    def serialize_money(self, value: Decimal) -> float:
        return float(value)

    @field_serializer("created_at", "updated_at", when_used="json")
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return format_datetime_local(dt)

    @classmethod
    def from_model(cls, item) -> "MenuItemResponse":
        data = cls.model_validate(item)
        data.category_name = item.category.name if item.category else None
        return data
