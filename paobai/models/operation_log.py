"""
操作日志模型
"""
from sqlalchemy import Column, Integer, String, Text, DateTime, Index
from sqlalchemy.sql import func
from paobai.db.database import Base


class OperationLog(Base):
    """操作日志表"""
    __tablename__ = "operation_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True, comment="员工ID（顾客操作为空）")
    username = Column(String(100), nullable=False, comment="操作人：员工用户名或顾客openid")
    action = Column(String(100), nullable=False, comment="操作类型：如创建订单、更新订单状态等")
    module = Column(String(50), nullable=False, comment="操作模块：顾客点餐、后厨、管理后台")
    method = Column(String(10), nullable=False, comment="HTTP方法")
    path = Column(String(500), nullable=False, comment="请求路径")
    ip_address = Column(String(50), comment="IP地址")
    user_agent = Column(String(500), comment="用户代理")
    request_data = Column(Text, comment="请求数据（JSON格式，截断）")
    status_code = Column(Integer, comment="HTTP状态码")
    error_message = Column(Text, comment="错误信息（如果有）")
    execution_time = Column(Integer, comment="执行时间（毫秒）")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")

    __table_args__ = (
        Index("idx_operation_logs_module", "module"),
        Index("idx_operation_logs_created_at", "created_at"),
    )
