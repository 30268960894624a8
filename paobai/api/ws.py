"""
实时通知WebSocket
客户端发送 {"action": "join"|"leave", "channel": ...} 订阅频道
"""
import json
import logging
from typing import Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from paobai.core.security import TokenInfo, token_store
from paobai.models.user import ROLE_ADMIN, ROLE_KITCHEN
from paobai.realtime.events import ADMIN_BROADCAST, KITCHEN_BROADCAST
from paobai.realtime.manager import limiter, manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["实时通知"])

POLICY_VIOLATION = 1008


def can_join(channel: str, staff: Optional[TokenInfo]) -> bool:
    """
    会话频道：持有会话ID即可订阅
    餐厅频道：需要员工令牌；后厨广播需要后厨或管理员；管理员广播仅管理员
    """
    if channel.startswith("session_") and len(channel) > len("session_"):
        return True
    if staff is None:
        return False
    if channel == ADMIN_BROADCAST:
        return staff.role == ROLE_ADMIN
    if channel == KITCHEN_BROADCAST:
        return staff.role in (ROLE_ADMIN, ROLE_KITCHEN)
    return channel.startswith("restaurant_")


@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket, token: Optional[str] = None, client_id: Optional[str] = None):
    staff = token_store.get(token)
    if token and staff is None:
        await ws.close(code=POLICY_VIOLATION, reason="invalid token")
        return

    if staff is not None:
        identity = f"user:{staff.user_id}"
    elif client_id:
        identity = f"client:{client_id}"
    else:
        identity = f"ip:{ws.client.host if ws.client else 'unknown'}"

    if not limiter.acquire(identity):
        await ws.close(code=POLICY_VIOLATION, reason="too many connections")
        return

    await ws.accept()
    logger.info("WebSocket连接建立 identity=%s", identity)
    try:
        while True:
            try:
                message = json.loads(await ws.receive_text())
            except ValueError:
                message = None
            if not isinstance(message, dict):
                await ws.send_json({"event": "error", "message": "消息格式错误"})
                continue

            action = message.get("action")
            channel = message.get("channel")
            if action == "ping":
                await ws.send_json({"event": "pong"})
            elif action == "join":
                if not isinstance(channel, str) or not can_join(channel, staff):
                    await ws.send_json({"event": "error", "message": "无权订阅该频道", "channel": channel})
                    continue
                manager.subscribe(channel, ws)
                await ws.send_json({"event": "joined", "channel": channel})
            elif action == "leave":
                if isinstance(channel, str):
                    manager.unsubscribe(channel, ws)
                await ws.send_json({"event": "left", "channel": channel})
            else:
                await ws.send_json({"event": "error", "message": f"未知操作: {action}"})
    except WebSocketDisconnect:
        logger.info("WebSocket连接断开 identity=%s", identity)
    finally:
        manager.disconnect(ws)
        limiter.release(identity)
