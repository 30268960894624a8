"""
餐厅模型
"""
from sqlalchemy import Column, Integer, String, Text, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from paobai.db.database import Base


class Restaurant(Base):
    """餐厅表"""
    __tablename__ = "restaurants"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, comment="餐厅名称")
    logo = Column(String(255), comment="Logo地址")
    description = Column(Text, comment="餐厅介绍")
    address = Column(String(255), comment="地址")
    phone = Column(String(20), comment="联系电话")
    business_hours = Column(String(100), comment="营业时间")
    status = Column(Integer, default=1, comment="状态：1=营业中, 0=已停业")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    # 关系
    tables = relationship("DiningTable", back_populates="restaurant")
    categories = relationship("Category", back_populates="restaurant")
