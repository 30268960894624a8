"""
用餐会话服务
"""
import logging
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from paobai.core.config import settings
from paobai.core.errors import business_error, conflict, not_found
from paobai.core.timeutil import utcnow
from paobai.db.database import transaction
from paobai.models.dining_session import DiningSession, Diner, SESSION_ACTIVE, SESSION_CLOSED
from paobai.models.order import Order
from paobai.models.table import DiningTable, TABLE_AVAILABLE, TABLE_OCCUPIED
from paobai.services.ids import generate_id
from paobai.services.order_state import OPEN_STATUSES

logger = logging.getLogger(__name__)


def get_active_session(db: Session, session_id: str) -> DiningSession:
    session = db.query(DiningSession).filter(
        DiningSession.id == session_id,
        DiningSession.status == SESSION_ACTIVE,
    ).first()
    if not session:
        raise not_found("会话不存在或已结束", code="SESSION_NOT_FOUND")
    return session


def get_session(db: Session, session_id: str) -> DiningSession:
    session = db.query(DiningSession).filter(DiningSession.id == session_id).first()
    if not session:
        raise not_found("会话不存在", code="SESSION_NOT_FOUND")
    return session


def find_diner(db: Session, session_id: str, openid: str) -> Optional[Diner]:
    return db.query(Diner).filter(Diner.session_id == session_id, Diner.openid == openid).first()


def create_session(
    db: Session,
    table_id: int,
    leader_openid: str,
    leader_nickname: Optional[str] = None,
    total_customers: int = 1,
) -> Tuple[DiningSession, DiningTable, Diner]:
    """
    开台：锁定桌台、创建会话并登记队长
    桌台非空闲时返回冲突，不做任何修改
    """
    with transaction(db):
        table = db.query(DiningTable).filter(
            DiningTable.id == table_id,
            DiningTable.restaurant_id == settings.restaurant_id,
        ).with_for_update().first()
        if not table:
            raise not_found("桌台不存在", code="TABLE_NOT_FOUND")
        if table.status != TABLE_AVAILABLE:
            raise conflict("桌台已被占用", code="TABLE_OCCUPIED")

        session = DiningSession(
            id=generate_id("SS"),
            restaurant_id=table.restaurant_id,
            table_id=table.id,
            leader_openid=leader_openid,
            leader_nickname=leader_nickname,
            total_customers=max(total_customers, 1),
            status=SESSION_ACTIVE,
            start_time=utcnow(),
        )
        db.add(session)

        leader = Diner(
            session_id=session.id,
            openid=leader_openid,
            nickname=leader_nickname,
            is_leader=True,
        )
        db.add(leader)

        table.status = TABLE_OCCUPIED
        table.current_session_id = session.id

    db.refresh(session)
    logger.info("创建用餐会话 session=%s table=%s leader=%s", session.id, table.table_number, leader_openid)
    return session, table, leader


def join_session(db: Session, session_id: str, openid: str, nickname: Optional[str] = None) -> Tuple[Diner, bool]:
    """
    加入会话，重复加入直接返回已有记录
    返回 (用餐者, 是否新加入)
    """
    with transaction(db):
        session = get_active_session(db, session_id)
        existing = find_diner(db, session.id, openid)
        if existing:
            return existing, False

        diner = Diner(session_id=session.id, openid=openid, nickname=nickname, is_leader=False)
        db.add(diner)
        db.flush()
        session.total_customers = db.query(func.count(Diner.id)).filter(Diner.session_id == session.id).scalar()

    db.refresh(diner)
    logger.info("用餐者加入会话 session=%s openid=%s", session_id, openid)
    return diner, True


def touch_diner(db: Session, session_id: str, openid: str) -> Optional[Diner]:
    diner = find_diner(db, session_id, openid)
    if diner:
        diner.last_active_time = utcnow()
    return diner


def get_session_detail(db: Session, session_id: str) -> dict:
    """会话、桌台、用餐者（队长在前）及未完成的订单"""
    session = get_session(db, session_id)
    diners = sorted(session.diners, key=lambda d: (not d.is_leader, d.join_time, d.id))
    current_orders = db.query(Order).filter(
        Order.session_id == session.id,
        Order.status.in_(OPEN_STATUSES),
    ).order_by(Order.created_at.desc()).all()
    return {
        "session": session,
        "table": session.table,
        "diners": diners,
        "current_orders": current_orders,
    }


def close_session(db: Session, session_id: str) -> DiningSession:
    """结束会话并释放桌台；仍有未完成订单时拒绝"""
    with transaction(db):
        session = get_active_session(db, session_id)
        open_count = db.query(func.count(Order.id)).filter(
            Order.session_id == session.id,
            Order.status.in_(OPEN_STATUSES),
        ).scalar()
        if open_count:
            raise business_error(f"还有 {open_count} 个订单未完成，无法结束用餐", code="SESSION_HAS_OPEN_ORDERS")

        session.status = SESSION_CLOSED
        session.end_time = utcnow()

        table = db.query(DiningTable).filter(DiningTable.id == session.table_id).with_for_update().first()
        if table and table.current_session_id == session.id:
            table.status = TABLE_AVAILABLE
            table.current_session_id = None

    db.refresh(session)
    logger.info("结束用餐会话 session=%s", session.id)
    return session
