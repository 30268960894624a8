"""
运行配置
所有配置均来自环境变量，进程启动时读取一次
"""
import os
from typing import List


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"环境变量 {name} 必须是整数，当前值: {value!r}")


class Settings:
    """应用配置"""

    def __init__(self):
        self.database_url: str = os.getenv("DATABASE_URL", "sqlite:///./paobai.db")
        self.app_env: str = os.getenv("APP_ENV", "production").lower()
        self.restaurant_id: int = _get_int("RESTAURANT_ID", 1)
        self.cors_origins: List[str] = [
            origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
        ]
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
        self.log_format: str = os.getenv("LOG_FORMAT", "text").lower()

        # 员工登录令牌
        self.token_ttl_seconds: int = _get_int("TOKEN_TTL_SECONDS", 12 * 3600)

        # WebSocket连接限制
        self.ws_max_connections_per_client: int = _get_int("WS_MAX_CONNECTIONS_PER_CLIENT", 5)
        self.ws_limit_ttl_seconds: int = _get_int("WS_LIMIT_TTL_SECONDS", 3600)
        self.ws_limit_max_entries: int = _get_int("WS_LIMIT_MAX_ENTRIES", 10000)

        # 初始管理员账号（仅在没有任何员工账号时创建）
        self.admin_username: str = os.getenv("ADMIN_USERNAME", "admin")
        self.admin_password: str = os.getenv("ADMIN_PASSWORD", "admin123")

    @property
    def is_development(self) -> bool:
        return self.app_env == "development"


settings = Settings()
