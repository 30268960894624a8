"""
用餐会话与用餐者模型
"""
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from paobai.core.timeutil import utcnow
from paobai.db.database import Base

SESSION_ACTIVE = "active"
SESSION_CLOSED = "closed"


class DiningSession(Base):
    """用餐会话表"""
    __tablename__ = "dining_sessions"

    id = Column(String(40), primary_key=True, comment="会话ID")
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, comment="餐厅ID")
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False, index=True, comment="桌台ID")
    leader_openid = Column(String(64), nullable=False, comment="队长openid")
    leader_nickname = Column(String(64), comment="队长昵称")
    total_customers = Column(Integer, default=1, comment="用餐人数")
    status = Column(String(20), default=SESSION_ACTIVE, index=True, comment="状态：active=进行中, closed=已结束")
    subtotal = Column(Numeric(10, 2), default=0, comment="已上菜订单小计")
    discount_amount = Column(Numeric(10, 2), default=0, comment="优惠金额")
    total_amount = Column(Numeric(10, 2), default=0, comment="订单总金额（不含已取消）")
    paid_amount = Column(Numeric(10, 2), default=0, comment="已支付金额")
    start_time = Column(DateTime(timezone=True), default=utcnow, nullable=False, comment="开始时间")
    end_time = Column(DateTime(timezone=True), comment="结束时间")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    # 关系
    table = relationship("DiningTable")
    diners = relationship("Diner", back_populates="session", order_by="Diner.id")
    orders = relationship("Order", back_populates="session")

    __table_args__ = (
        Index("idx_dining_sessions_table_status", "table_id", "status"),
    )


class Diner(Base):
    """用餐者表"""
    __tablename__ = "diners"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String(40), ForeignKey("dining_sessions.id"), nullable=False, comment="会话ID")
    openid = Column(String(64), nullable=False, comment="用户openid")
    nickname = Column(String(64), comment="昵称")
    is_leader = Column(Boolean, default=False, comment="是否队长")
    join_time = Column(DateTime(timezone=True), default=utcnow, nullable=False, comment="加入时间")
    last_active_time = Column(DateTime(timezone=True), default=utcnow, comment="最后活跃时间")

    # 关系
    session = relationship("DiningSession", back_populates="diners")

    __table_args__ = (
        UniqueConstraint("session_id", "openid", name="uq_diners_session_openid"),
    )
