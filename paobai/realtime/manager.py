"""
WebSocket频道管理与事件广播
投递为尽力而为：不重放、不确认、不保证跨订单顺序
"""
import logging
import threading
import time
from collections import OrderedDict
from typing import Dict, Iterable, Optional, Set

from fastapi import WebSocket

from paobai.core.config import settings
from paobai.realtime.events import Event

logger = logging.getLogger(__name__)


class ConnectionManager:
    """频道名 -> 订阅连接集合"""

    def __init__(self):
        self._channels: Dict[str, Set[WebSocket]] = {}

    def subscribe(self, channel: str, ws: WebSocket) -> None:
        self._channels.setdefault(channel, set()).add(ws)

    def unsubscribe(self, channel: str, ws: WebSocket) -> None:
        subscribers = self._channels.get(channel)
        if not subscribers:
            return
        subscribers.discard(ws)
        if not subscribers:
            del self._channels[channel]

    def disconnect(self, ws: WebSocket) -> None:
        for channel in list(self._channels):
            self.unsubscribe(channel, ws)

    def subscribers(self, channel: str) -> Set[WebSocket]:
        return set(self._channels.get(channel, ()))

    async def broadcast(self, channel: str, message: dict) -> int:
        """向频道广播，发送失败的连接直接移除；返回成功投递数"""
        delivered = 0
        for ws in list(self._channels.get(channel, ())):
            try:
                await ws.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning("推送失败，移除连接 channel=%s: %s", channel, e)
                self.disconnect(ws)
        return delivered


class ConnectionLimiter:
    """
    每个客户端标识的并发连接计数
    仍有连接的条目不会过期；连接全部断开后条目保留ttl_seconds
    条目总数达到上限时先淘汰最久未活动的空闲条目，仍无空位则拒绝新标识
    """

    def __init__(self, max_connections: int, ttl_seconds: int, max_entries: int, clock=time.monotonic):
        self.max_connections = max_connections
        self.ttl_seconds = ttl_seconds
        self.max_entries = max_entries
        self._clock = clock
        self._entries: "OrderedDict[str, list]" = OrderedDict()  # key -> [count, last_seen]
        self._lock = threading.Lock()

    def acquire(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            self._prune(now)
            entry = self._entries.get(key)
            if entry is None:
                if len(self._entries) >= self.max_entries:
                    self._evict_idle(len(self._entries) - self.max_entries + 1)
                if len(self._entries) >= self.max_entries:
                    logger.warning("连接标识数已达上限，拒绝: %s", key)
                    return False
                entry = [0, now]
                self._entries[key] = entry
            if entry[0] >= self.max_connections:
                logger.warning("连接数超限: %s (%s)", key, entry[0])
                return False
            entry[0] += 1
            entry[1] = now
            self._entries.move_to_end(key)
            return True

    def release(self, key: str) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return
            entry[0] = max(0, entry[0] - 1)
            entry[1] = self._clock()
            self._entries.move_to_end(key)

    def count(self, key: str) -> int:
        with self._lock:
            self._prune(self._clock())
            entry = self._entries.get(key)
            return entry[0] if entry else 0

    def __len__(self) -> int:
        return len(self._entries)

    def _prune(self, now: float) -> None:
        expired = [
            key for key, (count, last_seen) in self._entries.items()
            if count == 0 and now - last_seen > self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]

    def _evict_idle(self, needed: int) -> None:
        idle = [key for key, (count, _) in self._entries.items() if count == 0]
        for key in idle[:needed]:
            del self._entries[key]


manager = ConnectionManager()
limiter = ConnectionLimiter(
    max_connections=settings.ws_max_connections_per_client,
    ttl_seconds=settings.ws_limit_ttl_seconds,
    max_entries=settings.ws_limit_max_entries,
)


async def publish(events: Iterable[Optional[Event]], connections: Optional[ConnectionManager] = None) -> None:
    """
    在事务提交后调用；任何投递异常只记录日志，不影响业务请求
    """
    target = connections or manager
    for event in events:
        if event is None:
            continue
        for channel in event.channels:
            try:
                await target.broadcast(channel, event.to_message(channel))
            except Exception as e:
                logger.warning("事件推送失败 event=%s channel=%s: %s", event.type.value, channel, e)
