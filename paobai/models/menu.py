"""
菜品分类与菜品模型
"""
from sqlalchemy import Column, Integer, String, Text, Numeric, Boolean, DateTime, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from paobai.db.database import Base


class Category(Base):
    """菜品分类表"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, comment="餐厅ID")
    name = Column(String(50), nullable=False, comment="分类名称")
    sort_order = Column(Integer, default=0, comment="排序")
    is_active = Column(Boolean, default=True, comment="是否启用")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")

    # 关系
    restaurant = relationship("Restaurant", back_populates="categories")
    menu_items = relationship("MenuItem", back_populates="category")

    __table_args__ = (
        UniqueConstraint("restaurant_id", "name", name="uq_categories_restaurant_name"),
    )


class MenuItem(Base):
    """菜品表"""
    __tablename__ = "menu_items"

    id = Column(Integer, primary_key=True, index=True)
    restaurant_id = Column(Integer, ForeignKey("restaurants.id"), nullable=False, comment="餐厅ID")
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, comment="分类ID")
    name = Column(String(100), nullable=False, comment="菜品名称")
    description = Column(Text, comment="菜品描述")
    price = Column(Numeric(10, 2), nullable=False, comment="售价")
    image_url = Column(String(255), comment="图片地址")
    preparation_time = Column(Integer, default=10, comment="预计制作时间（分钟）")
    is_available = Column(Boolean, default=True, comment="是否可售")
    sort_order = Column(Integer, default=0, comment="排序")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    # 关系
    category = relationship("Category", back_populates="menu_items")

    __table_args__ = (
        Index("idx_menu_items_category", "category_id"),
    )
