"""
用餐会话API
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from paobai.db.database import get_db
from paobai.schemas.common import ApiResponse
from paobai.schemas.order import OrderResponse
from paobai.schemas.session import (
    CreateSessionRequest, CreateSessionResponse, DinerResponse, JoinSessionRequest,
    JoinSessionResponse, SessionDetailResponse, SessionResponse, TableResponse,
)
from paobai.services import sessions as session_service

router = APIRouter(prefix="/api/sessions", tags=["用餐会话"])


@router.post("", response_model=ApiResponse[CreateSessionResponse], status_code=201)
def create_session(request: CreateSessionRequest, db: Session = Depends(get_db)):
    """
    开台
    桌台不存在返回404，桌台已被占用返回409
    """
    session, table, leader = session_service.create_session(
        db,
        table_id=request.table_id,
        leader_openid=request.leader_info.openid,
        leader_nickname=request.leader_info.nickname,
        total_customers=request.total_customers,
    )
    return ApiResponse(
        message="用餐会话创建成功",
        data=CreateSessionResponse(
            session=SessionResponse.model_validate(session),
            table=TableResponse.model_validate(table),
            leader=DinerResponse.model_validate(leader),
        ),
    )


@router.post("/{session_id}/join", response_model=ApiResponse[JoinSessionResponse])
def join_session(session_id: str, request: JoinSessionRequest, db: Session = Depends(get_db)):
    """加入用餐会话，重复加入返回已有记录"""
    diner, joined = session_service.join_session(db, session_id, request.openid, request.nickname)
    return ApiResponse(
        message="加入成功" if joined else "已在会话中",
        data=JoinSessionResponse(diner=DinerResponse.model_validate(diner), joined=joined),
    )


@router.get("/{session_id}", response_model=ApiResponse[SessionDetailResponse])
def get_session(session_id: str, db: Session = Depends(get_db)):
    """获取会话详情"""
    detail = session_service.get_session_detail(db, session_id)
    return ApiResponse(data=SessionDetailResponse(
        session=SessionResponse.model_validate(detail["session"]),
        table=TableResponse.model_validate(detail["table"]),
        diners=[DinerResponse.model_validate(d) for d in detail["diners"]],
        current_orders=[OrderResponse.model_validate(o) for o in detail["current_orders"]],
    ))


@router.post("/{session_id}/close", response_model=ApiResponse[SessionResponse])
def close_session(session_id: str, db: Session = Depends(get_db)):
    """结束用餐并释放桌台"""
    session = session_service.close_session(db, session_id)
    return ApiResponse(message="用餐已结束", data=SessionResponse.model_validate(session))
