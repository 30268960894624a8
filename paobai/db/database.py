"""
数据库配置和连接
"""
import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool

from paobai.core.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs = {"connect_args": {"check_same_thread": False}}  # SQLite需要这个参数
    if url in ("sqlite://", "sqlite:///:memory:"):
        # 内存库在所有线程间共用同一个连接
        kwargs["poolclass"] = StaticPool
    return kwargs


# 创建数据库引擎
engine = create_engine(
    DATABASE_URL,
    echo=False,  # 设置为True可以看到SQL语句
    **_engine_kwargs(DATABASE_URL)
)

# 创建会话工厂
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# 创建基础模型类
Base = declarative_base()


def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """
    事务包装：正常退出时提交，任何异常都整体回滚后继续抛出
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        logger.debug("事务已回滚", exc_info=True)
        raise
