"""
支付记录服务
只记录支付单及状态，不对接支付网关；现金支付由店员确认
"""
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from paobai.core.errors import InvalidTransition, business_error, forbidden, not_found, validation_error
from paobai.core.timeutil import utcnow
from paobai.db.database import transaction
from paobai.models.dining_session import DiningSession
from paobai.models.payment import Payment, AASplitDetail, PAYMENT_METHODS
from paobai.realtime.events import Event, payment_status_event
from paobai.services.ids import generate_id, generate_transaction_id
from paobai.services.sessions import find_diner, get_active_session

logger = logging.getLogger(__name__)

PAYMENT_PENDING = "pending"
PAYMENT_PROCESSING = "processing"
PAYMENT_SUCCESS = "success"
PAYMENT_FAILED = "failed"
PAYMENT_REFUNDED = "refunded"

PAYMENT_TRANSITIONS = {
    PAYMENT_PENDING: (PAYMENT_PROCESSING, PAYMENT_SUCCESS, PAYMENT_FAILED),
    PAYMENT_PROCESSING: (PAYMENT_SUCCESS, PAYMENT_FAILED),
    PAYMENT_SUCCESS: (PAYMENT_REFUNDED,),
    PAYMENT_FAILED: (),
    PAYMENT_REFUNDED: (),
}


def get_payment(db: Session, payment_id: str) -> Payment:
    payment = db.query(Payment).filter(Payment.id == payment_id).first()
    if not payment:
        raise not_found("支付记录不存在", code="PAYMENT_NOT_FOUND")
    return payment


def recalculate_paid_amount(db: Session, session_id: str) -> Decimal:
    """
    已支付金额 = 支付成功的金额 + 已退款记录中未退还的部分
    部分退款后支付记录整体标记为已退款，剩余金额仍计入已支付
    """
    db.flush()
    paid = db.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
        Payment.session_id == session_id,
        Payment.status == PAYMENT_SUCCESS,
    ).scalar()
    retained = db.query(
        func.coalesce(func.sum(Payment.amount - func.coalesce(Payment.refund_amount, 0)), 0)
    ).filter(
        Payment.session_id == session_id,
        Payment.status == PAYMENT_REFUNDED,
    ).scalar()
    session = db.query(DiningSession).filter(DiningSession.id == session_id).first()
    session.paid_amount = (Decimal(str(paid)) + Decimal(str(retained))).quantize(Decimal("0.01"))
    return session.paid_amount


def create_payment(
    db: Session,
    session_id: str,
    diner_openid: str,
    payment_method: str,
    amount,
    order_ids: Optional[List[str]] = None,
    split_details: Optional[List[dict]] = None,
) -> Tuple[Payment, List[Event]]:
    """
    创建支付记录（待支付）
    AA支付时同时写入分账明细
    """
    if payment_method not in PAYMENT_METHODS:
        raise validation_error(f"不支持的支付方式: {payment_method}", code="INVALID_PAYMENT_METHOD")
    amount = Decimal(str(amount))
    if amount <= 0:
        raise validation_error("支付金额必须大于0", code="INVALID_AMOUNT")

    with transaction(db):
        session = get_active_session(db, session_id)
        if not find_diner(db, session.id, diner_openid):
            raise forbidden("您不在该用餐会话中", code="DINER_NOT_IN_SESSION")

        payment = Payment(
            id=generate_id("P"),
            session_id=session.id,
            diner_openid=diner_openid,
            payment_method=payment_method,
            amount=amount,
            order_ids=list(order_ids or []),
            payment_type="split" if payment_method == "split_aa" else "full",
            transaction_id=generate_transaction_id(),
            status=PAYMENT_PENDING,
        )
        db.add(payment)

        if payment_method == "split_aa":
            for detail in split_details or []:
                original = Decimal(str(detail["original_amount"]))
                discount = Decimal(str(detail.get("discount_amount") or 0))
                final = detail.get("final_amount")
                payment.split_details.append(AASplitDetail(
                    session_id=session.id,
                    diner_openid=detail["diner_openid"],
                    order_items=list(detail.get("order_items") or []),
                    original_amount=original,
                    discount_amount=discount,
                    final_amount=Decimal(str(final)) if final is not None else original - discount,
                    status=PAYMENT_PENDING,
                ))

    db.refresh(payment)
    logger.info(
        "创建支付记录 payment=%s session=%s method=%s amount=%s",
        payment.id, session_id, payment_method, payment.amount,
    )
    return payment, [payment_status_event(payment, session.restaurant_id)]


def _set_status(payment: Payment, status: str) -> str:
    previous = payment.status
    if status not in PAYMENT_TRANSITIONS.get(previous, ()):
        raise InvalidTransition(previous, status, entity="支付记录")
    payment.status = status
    for detail in payment.split_details:
        detail.status = status
    return previous


def update_payment_status(db: Session, payment_id: str, status: str) -> Tuple[Payment, List[Event]]:
    with transaction(db):
        payment = get_payment(db, payment_id)
        previous = _set_status(payment, status)
        if status == PAYMENT_SUCCESS:
            payment.payment_time = utcnow()
        recalculate_paid_amount(db, payment.session_id)
        restaurant_id = db.query(DiningSession.restaurant_id).filter(
            DiningSession.id == payment.session_id
        ).scalar()

    db.refresh(payment)
    logger.info("支付状态变更 payment=%s %s -> %s", payment.id, previous, status)
    return payment, [payment_status_event(payment, restaurant_id)]


def refund_payment(db: Session, payment_id: str, refund_amount=None, reason: Optional[str] = None) -> Tuple[Payment, List[Event]]:
    """退款：只允许已成功的支付，退款金额不超过支付金额"""
    with transaction(db):
        payment = get_payment(db, payment_id)
        if payment.status != PAYMENT_SUCCESS:
            raise business_error("只有支付成功的记录可以退款", code="PAYMENT_NOT_REFUNDABLE")
        amount = Decimal(str(refund_amount)) if refund_amount is not None else Decimal(str(payment.amount))
        if amount <= 0 or amount > Decimal(str(payment.amount)):
            raise validation_error("退款金额无效", code="INVALID_REFUND_AMOUNT")

        _set_status(payment, PAYMENT_REFUNDED)
        payment.refund_amount = amount
        payment.refund_reason = reason
        payment.refund_time = utcnow()
        recalculate_paid_amount(db, payment.session_id)
        restaurant_id = db.query(DiningSession.restaurant_id).filter(
            DiningSession.id == payment.session_id
        ).scalar()

    db.refresh(payment)
    logger.info("支付退款 payment=%s amount=%s reason=%s", payment.id, amount, reason)
    return payment, [payment_status_event(payment, restaurant_id)]


def list_session_payments(db: Session, session_id: str, status: Optional[str] = None) -> List[Payment]:
    query = db.query(Payment).filter(Payment.session_id == session_id)
    if status:
        query = query.filter(Payment.status == status)
    return query.order_by(Payment.created_at.desc()).all()
