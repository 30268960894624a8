"""
员工认证API
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from paobai.core.config import settings
from paobai.core.errors import unauthorized
from paobai.core.security import extract_bearer_token, require_staff, token_store, verify_password
from paobai.core.timeutil import utcnow
from paobai.db.database import get_db, transaction
from paobai.models.user import User
from paobai.schemas.common import ApiResponse
from paobai.schemas.user import LoginRequest, LoginResponse, UserResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["认证"])


@router.post("/login", response_model=ApiResponse[LoginResponse])
def login(request: LoginRequest, db: Session = Depends(get_db)):
    """员工登录，返回访问令牌"""
    user = db.query(User).filter(User.username == request.username).first()
    if not user or not user.is_active or not verify_password(request.password, user.password_hash):
        logger.info("登录失败 username=%s", request.username)
        raise unauthorized("用户名或密码错误", code="INVALID_CREDENTIALS")

    with transaction(db):
        user.last_login_at = utcnow()
    db.refresh(user)

    token = token_store.issue(user)
    logger.info("员工登录 username=%s role=%s", user.username, user.role)
    return ApiResponse(
        message="登录成功",
        data=LoginResponse(
            access_token=token,
            expires_in=settings.token_ttl_seconds,
            user=UserResponse.model_validate(user),
        ),
    )


@router.post("/logout")
def logout(request: Request):
    """退出登录"""
    token_store.revoke(extract_bearer_token(request))
    return {"success": True, "message": "退出成功"}


@router.get("/me", response_model=ApiResponse[UserResponse])
def get_current_user(user: User = Depends(require_staff)):
    """获取当前登录员工信息"""
    return ApiResponse(data=UserResponse.model_validate(user))
