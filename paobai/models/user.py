"""
员工账号模型
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.sql import func
from paobai.db.database import Base

ROLE_ADMIN = "admin"
ROLE_KITCHEN = "kitchen"
STAFF_ROLES = (ROLE_ADMIN, ROLE_KITCHEN)


class User(Base):
    """员工表"""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String(100), nullable=False, unique=True, index=True, comment="用户名")
    email = Column(String(255), nullable=True, unique=True, comment="邮箱")
    password_hash = Column(String(255), nullable=False, comment="密码哈希")
    role = Column(String(20), default=ROLE_KITCHEN, comment="角色：admin=管理员, kitchen=后厨")
    is_active = Column(Boolean, default=True, comment="是否启用")
    last_login_at = Column(DateTime(timezone=True), nullable=True, comment="最后登录时间")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    __table_args__ = (
        Index("idx_users_role", "role"),
    )
