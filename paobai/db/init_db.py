"""
数据库初始化脚本
创建所有表，写入餐厅基础数据和初始管理员账号
"""
import logging
import sys
from decimal import Decimal

from sqlalchemy.orm import Session

from paobai.core.config import settings
from paobai.core.logging import setup_logging
from paobai.core.security import get_password_hash
from paobai.db.database import Base, SessionLocal, engine, transaction
from paobai.models import Category, DiningTable, MenuItem, Restaurant, User
from paobai.models.user import ROLE_ADMIN

logger = logging.getLogger(__name__)

DEMO_MENU = {
    "热菜": [
        ("宫保鸡丁", "38.00", 15),
        ("鱼香肉丝", "32.00", 12),
        ("麻婆豆腐", "22.00", 10),
    ],
    "凉菜": [
        ("拍黄瓜", "12.00", 5),
        ("夫妻肺片", "28.00", 5),
    ],
    "主食": [
        ("米饭", "2.00", 1),
        ("蛋炒饭", "15.00", 8),
    ],
    "饮品": [
        ("酸梅汤", "8.00", 1),
        ("可乐", "5.00", 1),
    ],
}


def init_db():
    """初始化数据库，创建所有表"""
    Base.metadata.create_all(bind=engine)
    logger.info("数据库表创建完成")


def ensure_restaurant(db: Session) -> Restaurant:
    restaurant = db.query(Restaurant).filter(Restaurant.id == settings.restaurant_id).first()
    if restaurant:
        return restaurant
    with transaction(db):
        restaurant = Restaurant(
            id=settings.restaurant_id,
            name="跑呗餐厅",
            description="扫码点餐，多人同桌AA结账",
            business_hours="10:00-22:00",
            status=1,
        )
        db.add(restaurant)
    logger.info("创建餐厅 id=%s", restaurant.id)
    return restaurant


def ensure_admin(db: Session) -> None:
    """没有任何员工账号时创建初始管理员"""
    if db.query(User.id).first():
        return
    with transaction(db):
        db.add(User(
            username=settings.admin_username,
            password_hash=get_password_hash(settings.admin_password),
            role=ROLE_ADMIN,
            is_active=True,
        ))
    logger.info("创建初始管理员账号 username=%s", settings.admin_username)


def seed_demo_data(db: Session, table_count: int = 10) -> None:
    """写入演示用的桌台和菜单，已有数据时跳过"""
    if db.query(DiningTable.id).first() or db.query(MenuItem.id).first():
        logger.info("已存在桌台或菜品数据，跳过演示数据")
        return
    with transaction(db):
        for number in range(1, table_count + 1):
            db.add(DiningTable(
                restaurant_id=settings.restaurant_id,
                table_number=f"A{number:02d}",
                table_name=f"大厅{number}号桌",
                capacity=4,
                qr_code=f"table_A{number:02d}",
            ))
        for sort_order, (category_name, dishes) in enumerate(DEMO_MENU.items()):
            category = Category(restaurant_id=settings.restaurant_id, name=category_name, sort_order=sort_order)
            db.add(category)
            for index, (name, price, minutes) in enumerate(dishes):
                category.menu_items.append(MenuItem(
                    restaurant_id=settings.restaurant_id,
                    name=name,
                    price=Decimal(price),
                    preparation_time=minutes,
                    sort_order=index,
                ))
    logger.info("演示数据写入完成：%s 张桌台，%s 个分类", table_count, len(DEMO_MENU))


def bootstrap(demo: bool = False) -> None:
    init_db()
    db = SessionLocal()
    try:
        ensure_restaurant(db)
        ensure_admin(db)
        if demo:
            seed_demo_data(db)
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    bootstrap(demo="--demo" in sys.argv[1:])
