"""
顾客点餐API：下单、取消、AA分账、支付记录
"""
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from paobai.db.database import get_db
from paobai.realtime.manager import publish
from paobai.schemas.common import ApiResponse
from paobai.schemas.order import CancelOrderRequest, CreateOrderRequest, OrderResponse
from paobai.schemas.payment import (
    AASplitResponse, CalculateAARequest, CreatePaymentRequest, PaymentResponse,
)
from paobai.services import orders as order_service
from paobai.services import payments as payment_service
from paobai.services import settlement
from paobai.services.sessions import get_session

router = APIRouter(prefix="/customer", tags=["顾客点餐"])


@router.post("/orders", response_model=ApiResponse[OrderResponse], status_code=201)
def create_order(request: CreateOrderRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    """下单，成功后通知后厨"""
    order, events = order_service.create_order(
        db,
        session_id=request.session_id,
        diner_openid=request.diner_openid,
        items=[item.model_dump() for item in request.items],
        special_requests=request.special_requests,
    )
    background_tasks.add_task(publish, events)
    return ApiResponse(message="订单创建成功", data=OrderResponse.model_validate(order))


@router.get("/sessions/{session_id}/orders", response_model=ApiResponse[List[OrderResponse]])
def get_session_orders(session_id: str, status: Optional[str] = None, db: Session = Depends(get_db)):
    """获取会话内的订单"""
    get_session(db, session_id)
    orders = order_service.list_session_orders(db, session_id, status)
    return ApiResponse(data=[OrderResponse.model_validate(o) for o in orders])


@router.put("/orders/{order_id}/status", response_model=ApiResponse[OrderResponse])
def cancel_order(
    order_id: str,
    request: CancelOrderRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
):
    """顾客取消订单，制作完成后不可取消"""
    order, events = order_service.cancel_order(db, order_id, request.reason)
    background_tasks.add_task(publish, events)
    return ApiResponse(message="订单已取消", data=OrderResponse.model_validate(order))


@router.post("/sessions/{session_id}/calculate-aa", response_model=ApiResponse[AASplitResponse])
def calculate_aa(session_id: str, request: CalculateAARequest, db: Session = Depends(get_db)):
    """计算AA分账"""
    result = settlement.calculate_aa_split(
        db,
        session_id,
        [(entry.order_item_id, entry.diner_openid) for entry in request.order_items],
    )
    return ApiResponse(data=AASplitResponse(**result))


@router.post("/payments", response_model=ApiResponse[PaymentResponse], status_code=201)
def create_payment(request: CreatePaymentRequest, background_tasks: BackgroundTasks, db: Session = Depends(get_db)):
    """创建支付记录"""
    payment, events = payment_service.create_payment(
        db,
        session_id=request.session_id,
        diner_openid=request.diner_openid,
        payment_method=request.payment_method,
        amount=request.amount,
        order_ids=request.order_ids,
        split_details=[d.model_dump() for d in request.split_details or []],
    )
    background_tasks.add_task(publish, events)
    return ApiResponse(message="支付记录创建成功", data=PaymentResponse.model_validate(payment))


@router.get("/sessions/{session_id}/payments", response_model=ApiResponse[List[PaymentResponse]])
def get_session_payments(session_id: str, status: Optional[str] = None, db: Session = Depends(get_db)):
    """获取会话的支付记录"""
    get_session(db, session_id)
    payments = payment_service.list_session_payments(db, session_id, status)
    return ApiResponse(data=[PaymentResponse.model_validate(p) for p in payments])
