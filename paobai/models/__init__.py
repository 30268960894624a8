"""
数据库模型
"""
from paobai.models.restaurant import Restaurant
from paobai.models.table import DiningTable
from paobai.models.menu import Category, MenuItem
from paobai.models.dining_session import DiningSession, Diner
from paobai.models.order import Order, OrderItem
from paobai.models.payment import Payment, AASplitDetail
from paobai.models.user import User
from paobai.models.operation_log import OperationLog

__all__ = [
    "Restaurant",
    "DiningTable",
    "Category",
    "MenuItem",
    "DiningSession",
    "Diner",
    "Order",
    "OrderItem",
    "Payment",
    "AASplitDetail",
    "User",
    "OperationLog",
]
