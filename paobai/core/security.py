"""
员工认证
bcrypt密码哈希 + 进程内令牌存储
"""
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Dict, Optional

import bcrypt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from paobai.core.config import settings
from paobai.core.errors import forbidden, unauthorized
from paobai.db.database import get_db
from paobai.models.user import User, ROLE_ADMIN, STAFF_ROLES

logger = logging.getLogger(__name__)


def get_password_hash(password: str) -> str:
    """生成密码哈希"""
    # bcrypt限制密码长度不能超过72字节，需要截断
    data = password.encode("utf-8")[:72]
    hashed = bcrypt.hashpw(data, bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    data = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(data, hashed_password.encode("utf-8"))
    except ValueError:
        logger.warning("密码哈希格式无效")
        return False


@dataclass
class TokenInfo:
    user_id: int
    username: str
    role: str
    expires_at: float


class TokenStore:
    """简单的token存储，进程重启后失效"""

    def __init__(self, ttl_seconds: int, clock=time.time):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._tokens: Dict[str, TokenInfo] = {}
        self._lock = threading.Lock()

    def issue(self, user: User) -> str:
        token = secrets.token_urlsafe(32)
        with self._lock:
            self._purge()
            self._tokens[token] = TokenInfo(
                user_id=user.id,
                username=user.username,
                role=user.role,
                expires_at=self._clock() + self.ttl_seconds,
            )
        return token

    def get(self, token: Optional[str]) -> Optional[TokenInfo]:
        if not token:
            return None
        with self._lock:
            info = self._tokens.get(token)
            if info is None:
                return None
            if info.expires_at <= self._clock():
                del self._tokens[token]
                return None
            return info

    def revoke(self, token: Optional[str]) -> bool:
        with self._lock:
            return self._tokens.pop(token, None) is not None

    def revoke_user(self, user_id: int) -> None:
        with self._lock:
            for token in [t for t, info in self._tokens.items() if info.user_id == user_id]:
                del self._tokens[token]

    def clear(self) -> None:
        with self._lock:
            self._tokens.clear()

    def _purge(self) -> None:
        now = self._clock()
        for token in [t for t, info in self._tokens.items() if info.expires_at <= now]:
            del self._tokens[token]


token_store = TokenStore(settings.token_ttl_seconds)


def extract_bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def require_staff(request: Request, db: Session = Depends(get_db)) -> User:
    """后厨与管理员均可访问"""
    info = token_store.get(extract_bearer_token(request))
    if info is None:
        raise unauthorized("未登录或登录已过期", code="TOKEN_INVALID")
    user = db.query(User).filter(User.id == info.user_id).first()
    if not user or not user.is_active:
        raise unauthorized("账号不存在或已停用", code="USER_INACTIVE")
    if user.role not in STAFF_ROLES:
        raise forbidden("无权访问")
    request.state.user = user
    return user


def require_admin(user: User = Depends(require_staff)) -> User:
    if user.role != ROLE_ADMIN:
        raise forbidden("需要管理员权限")
    return user
