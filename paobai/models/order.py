"""
订单与订单项模型
"""
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from paobai.core.timeutil import utcnow
from paobai.db.database import Base


class Order(Base):
    """订单表"""
    __tablename__ = "orders"

    id = Column(String(40), primary_key=True, comment="订单ID")
    session_id = Column(String(40), ForeignKey("dining_sessions.id"), nullable=False, comment="会话ID")
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, comment="餐厅ID")
    table_id = Column(Integer, ForeignKey("tables.id"), nullable=False, comment="桌台ID")
    order_no = Column(String(32), unique=True, nullable=False, comment="订单号")
    total_amount = Column(Numeric(10, 2), nullable=False, default=0, comment="订单金额")
    item_count = Column(Integer, default=0, comment="菜品份数")
    status = Column(String(20), default="pending", comment="状态：pending, confirmed, preparing, ready, served, cancelled")
    priority = Column(Boolean, default=False, comment="是否加急")
    special_requests = Column(Text, comment="整单备注")
    preparation_time = Column(Integer, comment="预计制作时间（分钟）")
    actual_time = Column(Integer, comment="实际制作时间（分钟）")
    cancel_reason = Column(String(255), comment="取消原因")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, comment="下单时间")
    confirmed_at = Column(DateTime(timezone=True), comment="接单时间")
    completed_at = Column(DateTime(timezone=True), comment="出餐/上菜时间")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False, comment="更新时间")

    # 关系
    session = relationship("DiningSession", back_populates="orders")
    table = relationship("DiningTable")
    items = relationship("OrderItem", back_populates="order", order_by="OrderItem.id")

    __table_args__ = (
        Index("idx_orders_session_status", "session_id", "status"),
        Index("idx_orders_restaurant_status", "restaurant_id", "status"),
        Index("idx_orders_created_at", "created_at"),
    )


class OrderItem(Base):
    """订单项表"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(40), ForeignKey("orders.id"), nullable=False, index=True, comment="订单ID")
    menu_item_id = Column(Integer, ForeignKey("menu_items.id"), nullable=False, comment="菜品ID")
    item_name = Column(String(100), nullable=False, comment="菜品名称（下单时快照）")
    price = Column(Numeric(10, 2), nullable=False, comment="单价（下单时快照）")
    quantity = Column(Integer, nullable=False, default=1, comment="数量")
    subtotal = Column(Numeric(10, 2), nullable=False, comment="小计")
    special_instructions = Column(String(255), comment="特殊要求")
    status = Column(String(20), default="pending", comment="状态：pending, confirmed, preparing, ready, served, cancelled")
    diner_openid = Column(String(64), nullable=False, comment="点餐用户openid")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False, comment="更新时间")

    # 关系
    order = relationship("Order", back_populates="items")
    menu_item = relationship("MenuItem")
