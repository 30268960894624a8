"""
FastAPI主应用入口
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from paobai import __version__
from paobai.core.config import settings
from paobai.core.errors import register_exception_handlers
from paobai.core.logging import setup_logging
from paobai.db.init_db import bootstrap, init_db
from paobai.middleware.operation_log import OperationLogMiddleware

setup_logging()
logger = logging.getLogger(__name__)

# 创建数据库表
init_db()


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap(demo=settings.is_development)
    logger.info("服务启动 env=%s restaurant=%s", settings.app_env, settings.restaurant_id)
    yield
    logger.info("服务关闭")


# 创建FastAPI应用
app = FastAPI(
    title="跑呗餐厅扫码点餐API",
    description="扫码点餐、多人用餐会话、后厨看板与AA分账后端API",
    version=__version__,
    lifespan=lifespan,
)

# 配置CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 操作日志中间件
app.add_middleware(OperationLogMiddleware)

register_exception_handlers(app)


@app.get("/")
async def root():
    """根路径"""
    return {"success": True, "message": "跑呗餐厅扫码点餐API", "version": __version__}


# 注册API路由
from paobai.api import admin, auth, customer, kitchen, operation_logs, public, sessions, ws  # noqa: E402

app.include_router(public.router)
app.include_router(auth.router)
app.include_router(sessions.router)
app.include_router(customer.router)
app.include_router(kitchen.router)
app.include_router(admin.router)
app.include_router(operation_logs.router)
app.include_router(ws.router)
