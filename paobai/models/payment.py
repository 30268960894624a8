"""
支付记录与AA分账明细模型
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, JSON, Index
from sqlalchemy.orm import relationship
from paobai.core.timeutil import utcnow
from paobai.db.database import Base

PAYMENT_METHODS = ("wechat", "alipay", "cash", "split_aa")
PAYMENT_STATUSES = ("pending", "processing", "success", "failed", "refunded")


class Payment(Base):
    """支付记录表"""
    __tablename__ = "payments"

    id = Column(String(40), primary_key=True, comment="支付ID")
    session_id = Column(String(40), ForeignKey("dining_sessions.id"), nullable=False, comment="会话ID")
    diner_openid = Column(String(64), nullable=False, comment="付款用户openid")
    payment_method = Column(String(20), nullable=False, comment="支付方式：wechat, alipay, cash, split_aa")
    amount = Column(Numeric(10, 2), nullable=False, comment="支付金额")
    order_ids = Column(JSON, comment="关联订单ID列表")
    payment_type = Column(String(20), default="full", comment="支付类型：full=整单, split=分账")
    transaction_id = Column(String(40), unique=True, comment="交易流水号")
    status = Column(String(20), default="pending", comment="状态：pending, processing, success, failed, refunded")
    payment_time = Column(DateTime(timezone=True), comment="支付成功时间")
    refund_amount = Column(Numeric(10, 2), default=0, comment="退款金额")
    refund_reason = Column(String(255), comment="退款原因")
    refund_time = Column(DateTime(timezone=True), comment="退款时间")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False, comment="更新时间")

    # 关系
    split_details = relationship("AASplitDetail", back_populates="payment", order_by="AASplitDetail.id")

    __table_args__ = (
        Index("idx_payments_session_status", "session_id", "status"),
    )


class AASplitDetail(Base):
    """AA制分账明细表"""
    __tablename__ = "aa_split_details"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(String(40), ForeignKey("payments.id"), nullable=False, index=True, comment="支付ID")
    session_id = Column(String(40), ForeignKey("dining_sessions.id"), nullable=False, comment="会话ID")
    diner_openid = Column(String(64), nullable=False, comment="用户openid")
    order_items = Column(JSON, comment="分摊的订单项ID列表")
    original_amount = Column(Numeric(10, 2), nullable=False, comment="原始金额")
    discount_amount = Column(Numeric(10, 2), default=0, comment="优惠金额")
    final_amount = Column(Numeric(10, 2), nullable=False, comment="应付金额")
    status = Column(String(20), default="pending", comment="状态（与支付记录一致）")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, comment="创建时间")

    # 关系
    payment = relationship("Payment", back_populates="split_details")
