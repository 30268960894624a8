"""
桌台模型
"""
from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from paobai.db.database import Base

TABLE_AVAILABLE = "available"
TABLE_OCCUPIED = "occupied"
TABLE_DISABLED = "disabled"
TABLE_STATUSES = (TABLE_AVAILABLE, TABLE_OCCUPIED, TABLE_DISABLED)


class DiningTable(Base):
    """桌台表"""
    __tablename__ = "tables"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, comment="餐厅ID")
    table_number = Column(String(20), nullable=False, comment="桌号")
    table_name = Column(String(50), comment="桌台名称")
    capacity = Column(Integer, default=4, comment="容纳人数")
    table_type = Column(String(20), default="hall", comment="桌台类型：hall=大厅, private=包间")
    qr_code = Column(String(100), unique=True, nullable=False, comment="二维码标识")
    status = Column(String(20), default=TABLE_AVAILABLE, index=True, comment="状态：available=空闲, occupied=就餐中, disabled=停用")
    current_session_id = Column(String(40), nullable=True, comment="当前用餐会话ID（仅就餐中有值）")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    # 关系
    restaurant = relationship("Restaurant", back_populates="tables")

    __table_args__ = (
        UniqueConstraint("restaurant_id", "table_number", name="uq_tables_restaurant_number"),
        Index("idx_tables_status", "status"),
    )
