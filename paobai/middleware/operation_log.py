"""
操作日志中间件
记录所有写操作（POST/PUT/PATCH/DELETE）
"""
import json
import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from sqlalchemy.orm import Session

from paobai.core.security import extract_bearer_token, token_store
from paobai.db.database import SessionLocal
from paobai.models.operation_log import OperationLog

logger = logging.getLogger(__name__)


class OperationLogMiddleware(BaseHTTPMiddleware):
    """操作日志中间件"""

    LOGGED_METHODS = ("POST", "PUT", "PATCH", "DELETE")

    # 不需要记录日志的路径
    EXCLUDED_PATHS = (
        "/api/auth/login",  # 避免记录密码
    )

    # 模块映射：根据路径判断操作模块
    MODULE_MAP = {
        "/api/sessions": "用餐会话",
        "/api/auth": "认证",
        "/customer": "顾客点餐",
        "/kitchen": "后厨",
        "/admin": "管理后台",
    }

    # 操作类型映射：根据HTTP方法判断操作类型
    ACTION_MAP = {
        "POST": "创建",
        "PUT": "更新",
        "DELETE": "删除",
        "PATCH": "修改",
    }

    # 更具体的操作名称：(方法, 路径片段) -> 操作
    SPECIFIC_ACTIONS = (
        ("POST", "/join", "加入用餐会话"),
        ("POST", "/close", "结束用餐会话"),
        ("POST", "/calculate-aa", "计算AA分账"),
        ("POST", "/refund", "支付退款"),
        ("POST", "/customer/orders", "创建订单"),
        ("POST", "/customer/payments", "创建支付记录"),
        ("POST", "/api/sessions", "开台"),
        ("PUT", "/order-items/", "更新订单项状态"),
        ("PUT", "/payments/", "更新支付状态"),
        ("PUT", "/orders/", "更新订单状态"),
    )

    def _module(self, path: str) -> str:
        for prefix, module in self.MODULE_MAP.items():
            if path.startswith(prefix):
                return module
        return "其他"

    def _action(self, method: str, path: str) -> str:
        for action_method, fragment, action in self.SPECIFIC_ACTIONS:
            if method == action_method and fragment in path:
                return action
        return self.ACTION_MAP.get(method, method)

    @staticmethod
    def _customer_openid(request_data):
        """从请求体中取顾客openid"""
        if not request_data:
            return None
        try:
            payload = json.loads(request_data)
        except ValueError:
            return None
        if not isinstance(payload, dict):
            return None
        leader = payload.get("leader_info")
        if isinstance(leader, dict) and leader.get("openid"):
            return leader["openid"]
        return payload.get("diner_openid") or payload.get("openid")

    async def dispatch(self, request: Request, call_next):
        """处理请求并记录日志"""
        method = request.method
        path = request.url.path
        if method not in self.LOGGED_METHODS or path in self.EXCLUDED_PATHS:
            return await call_next(request)

        start_time = time.time()

        request_data = None
        try:
            body = await request.body()
            if body:
                request_data = body.decode("utf-8", errors="replace")[:2000]  # 限制长度
        except Exception as e:
            logger.debug("读取请求体失败: %s", e)

        # 操作人：员工令牌优先，其次顾客openid
        user_id = None
        staff = token_store.get(extract_bearer_token(request))
        if staff is not None:
            user_id = staff.user_id
            username = staff.username
        else:
            username = self._customer_openid(request_data) or "匿名顾客"

        response = await call_next(request)

        execution_time = int((time.time() - start_time) * 1000)
        status_code = response.status_code
        error_message = f"HTTP {status_code} 错误" if status_code >= 400 else None

        db: Session = SessionLocal()
        try:
            db.add(OperationLog(
                user_id=user_id,
                username=username[:100],
                action=self._action(method, path),
                module=self._module(path),
                method=method,
                path=path[:500],
                ip_address=request.client.host if request.client else None,
                user_agent=(request.headers.get("user-agent") or "")[:500] or None,
                request_data=request_data,
                status_code=status_code,
                error_message=error_message,
                execution_time=execution_time,
            ))
            db.commit()
        except Exception as e:
            db.rollback()
            logger.warning("记录操作日志失败 %s %s: %s", method, path, e)
        finally:
            db.close()

        return response
