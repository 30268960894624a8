"""
员工账号相关的Pydantic模型
"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_serializer

from paobai.core.timeutil import format_datetime_local


class LoginRequest(BaseModel):
    """登录请求"""
    username: str = Field(..., description="用户名")
    password: str = Field(..., description="密码")


class UserBase(BaseModel):
    username: str = Field(..., min_length=3, max_length=100, description="用户名")
    email: Optional[EmailStr] = Field(None, description="邮箱")
    role: Literal["admin", "kitchen"] = Field("kitchen", description="角色")


class UserCreate(UserBase):
    """创建员工"""
    password: str = Field(..., min_length=6, max_length=72, description="密码")


class UserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    role: Optional[Literal["admin", "kitchen"]] = None
    password: Optional[str] = Field(None, min_length=6, max_length=72)
    is_active: Optional[bool] = None


class UserResponse(UserBase):
    """员工信息响应"""
    id: int
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True

    @field_serializer("last_login_at", "created_at", when_used="json")
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return format_datetime_local(dt)


class LoginResponse(BaseModel):
    """登录响应"""
    access_token: str = Field(..., description="访问令牌")
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
