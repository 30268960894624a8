"""
统一错误定义与异常处理
错误按 ErrorKind 分类，HTTP 状态码只由分类决定
"""
import enum
import logging
import traceback
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from paobai.core.config import settings

logger = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    BUSINESS_RULE = "business_rule"
    UNAVAILABLE = "unavailable"
    INTERNAL = "internal"


# 分类 -> (HTTP状态码, 默认错误码, 默认提示)
ERROR_KIND_MAP = {
    ErrorKind.VALIDATION: (400, "VALIDATION_ERROR", "请求参数验证失败"),
    ErrorKind.AUTHENTICATION: (401, "AUTHENTICATION_ERROR", "认证失败"),
    ErrorKind.AUTHORIZATION: (403, "AUTHORIZATION_ERROR", "权限不足"),
    ErrorKind.NOT_FOUND: (404, "NOT_FOUND", "资源未找到"),
    ErrorKind.CONFLICT: (409, "CONFLICT", "资源冲突"),
    ErrorKind.BUSINESS_RULE: (400, "BUSINESS_ERROR", "业务规则校验失败"),
    ErrorKind.UNAVAILABLE: (503, "DATABASE_ERROR", "数据库服务暂时不可用，请稍后重试"),
    ErrorKind.INTERNAL: (500, "INTERNAL_ERROR", "服务器内部错误"),
}

STATUS_CODE_MAP = {
    400: "VALIDATION_ERROR",
    401: "AUTHENTICATION_ERROR",
    403: "AUTHORIZATION_ERROR",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
}


class AppError(Exception):
    """业务错误"""

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        code: Optional[str] = None,
        details: Any = None,
    ):
        status_code, default_code, default_message = ERROR_KIND_MAP[kind]
        self.kind = kind
        self.status_code = status_code
        self.code = code or default_code
        self.message = message or default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return _error_body(self.message, self.code, self.details)


class InvalidTransition(AppError):
    """非法状态流转"""

    def __init__(self, current_status: str, requested_status: str, entity: str = "订单"):
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            ErrorKind.BUSINESS_RULE,
            f"{entity}无法从 {current_status} 状态变更为 {requested_status} 状态",
            code="INVALID_TRANSITION",
            details={"current_status": current_status, "requested_status": requested_status},
        )


def not_found(message: str, code: str = "NOT_FOUND") -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message, code=code)


def conflict(message: str, code: str = "CONFLICT") -> AppError:
    return AppError(ErrorKind.CONFLICT, message, code=code)


def validation_error(message: str, code: str = "VALIDATION_ERROR", details: Any = None) -> AppError:
    return AppError(ErrorKind.VALIDATION, message, code=code, details=details)


def business_error(message: str, code: str = "BUSINESS_ERROR") -> AppError:
    return AppError(ErrorKind.BUSINESS_RULE, message, code=code)


def forbidden(message: str, code: str = "AUTHORIZATION_ERROR") -> AppError:
    return AppError(ErrorKind.AUTHORIZATION, message, code=code)


def unauthorized(message: str = "认证失败", code: str = "AUTHENTICATION_ERROR") -> AppError:
    return AppError(ErrorKind.AUTHENTICATION, message, code=code)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error_body(message: str, code: str, details: Any = None) -> dict:
    body = {"success": False, "message": message, "code": code, "timestamp": _now_iso()}
    if details is not None:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("请求失败 %s %s: %s", request.method, request.url.path, exc.message)
    else:
        logger.info("请求被拒绝 %s %s: [%s] %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = "接口不存在"
    else:
        message = str(exc.detail)
    code = STATUS_CODE_MAP.get(exc.status_code, "INTERNAL_ERROR" if exc.status_code >= 500 else "HTTP_ERROR")
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message, code),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ()) if part != "body"),
            "message": error.get("msg"),
        }
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content=_error_body("请求参数验证失败", "VALIDATION_ERROR", details))


async def database_error_handler(request: Request, exc: OperationalError):
    logger.error("数据库错误 %s %s: %s", request.method, request.url.path, exc)
    status_code, code, message = ERROR_KIND_MAP[ErrorKind.UNAVAILABLE]
    return JSONResponse(status_code=status_code, content=_error_body(message, code))


async def global_exception_handler(request: Request, exc: Exception):
    """未处理异常的最终兜底，记录完整上下文后返回通用错误"""
    try:
        body = (await request.body()).decode("utf-8", errors="replace")[:2000]
    except Exception:
        body = None
    logger.error(
        "未处理的异常 %s %s client=%s query=%s body=%s",
        request.method,
        request.url.path,
        request.client.host if request.client else None,
        dict(request.query_params),
        body,
        exc_info=exc,
    )
    content = _error_body("服务器内部错误", "INTERNAL_ERROR")
    if settings.is_development:
        content["error"] = str(exc)
        content["traceback"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=500, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(OperationalError, database_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
