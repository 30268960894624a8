"""
时间工具
数据库中统一存储UTC时间，展示时转换为中国时区
"""
from datetime import datetime, timezone, timedelta
from typing import Optional

# 中国时区 UTC+8
CHINA_TZ = timezone(timedelta(hours=8))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """SQLite取回的时间不带时区信息，按UTC处理"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def format_datetime_local(dt: Optional[datetime]) -> Optional[str]:
    """将UTC时间转换为本地时间字符串"""
    if dt is None:
        return None
    local_dt = ensure_aware(dt).astimezone(CHINA_TZ)
    return local_dt.strftime("%Y-%m-%d %H:%M:%S")


def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[int]:
    if start is None or end is None:
        return None
    delta = ensure_aware(end) - ensure_aware(start)
    return int(delta.total_seconds() // 60)


def local_day_bounds(now: Optional[datetime] = None):
    """返回本地自然日的起止时间（UTC）"""
    local_now = (now or utcnow()).astimezone(CHINA_TZ)
    start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    end = start + timedelta(days=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
