import asyncio

import pytest
from starlette.websockets import WebSocketDisconnect

from paobai.realtime.events import Event, EventType
from paobai.realtime.manager import ConnectionLimiter, ConnectionManager, publish


class FakeSocket:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


def test_broadcast_drops_failed_sockets():
    manager = ConnectionManager()
    good, bad = FakeSocket(), FakeSocket(fail=True)
    manager.subscribe("session_S1", good)
    manager.subscribe("session_S1", bad)
    manager.subscribe("restaurant_1", bad)

    delivered = asyncio.run(manager.broadcast("session_S1", {"event": "x"}))

    assert delivered == 1
    assert good.sent == [{"event": "x"}]
    assert manager.subscribers("session_S1") == {good}
    assert manager.subscribers("restaurant_1") == set()


def test_publish_fans_out_to_session_and_restaurant_channels():
    manager = ConnectionManager()
    diner, kitchen, other = FakeSocket(), FakeSocket(), FakeSocket()
    manager.subscribe("session_S1", diner)
    manager.subscribe("restaurant_1", kitchen)
    manager.subscribe("session_S2", other)

    event = Event(EventType.ORDER_STATUS_CHANGED, "S1", 1, {"order_id": "O1", "status": "ready"})
    asyncio.run(publish([event, None], connections=manager))

    assert diner.sent[0]["event"] == "order_status_update"
    assert diner.sent[0]["channel"] == "session_S1"
    assert diner.sent[0]["data"]["status"] == "ready"
    assert "timestamp" in diner.sent[0]["data"]
    assert kitchen.sent[0]["channel"] == "restaurant_1"
    assert other.sent == []


def test_publish_reaches_kitchen_and_admin_broadcasts():
    manager = ConnectionManager()
    kitchen, admin = FakeSocket(), FakeSocket()
    manager.subscribe("kitchen_broadcast", kitchen)
    manager.subscribe("admin_broadcast", admin)

    order_event = Event(EventType.NEW_ORDER, "S1", 1, {"order_id": "O1"})
    payment_event = Event(EventType.PAYMENT_STATUS_CHANGED, "S1", 1, {"payment_id": "P1"})
    asyncio.run(publish([order_event, payment_event], connections=manager))

    assert [m["event"] for m in kitchen.sent] == ["new_order"]
    assert [m["event"] for m in admin.sent] == ["new_order", "payment_status_update"]
    assert admin.sent[0]["channel"] == "admin_broadcast"


def test_publish_never_raises():
    manager = ConnectionManager()
    manager.subscribe("session_S1", FakeSocket(fail=True))
    event = Event(EventType.NEW_ORDER, "S1", None, {})
    asyncio.run(publish([event], connections=manager))


def test_limiter_caps_connections_per_identity():
    limiter = ConnectionLimiter(max_connections=2, ttl_seconds=60, max_entries=100)
    assert limiter.acquire("a")
    assert limiter.acquire("a")
    assert not limiter.acquire("a")
    limiter.release("a")
    assert limiter.acquire("a")
    assert limiter.count("a") == 2


def test_limiter_expires_only_idle_entries():
    now = [0.0]
    limiter = ConnectionLimiter(max_connections=2, ttl_seconds=10, max_entries=100, clock=lambda: now[0])
    assert limiter.acquire("a")
    assert limiter.acquire("a")
    assert not limiter.acquire("a")

    # 两个连接仍然在线，超过TTL后计数不能丢
    now[0] = 100.0
    assert limiter.count("a") == 2
    assert not limiter.acquire("a")

    limiter.release("a")
    limiter.release("a")
    assert len(limiter) == 1
    now[0] = 200.0
    assert limiter.count("a") == 0
    assert len(limiter) == 0


def test_limiter_is_bounded_without_dropping_live_entries():
    now = [0.0]
    limiter = ConnectionLimiter(max_connections=5, ttl_seconds=10, max_entries=2, clock=lambda: now[0])
    assert limiter.acquire("a")
    assert limiter.acquire("b")
    assert not limiter.acquire("c")
    assert limiter.count("a") == 1

    limiter.release("a")
    assert limiter.acquire("c")
    assert len(limiter) == 2
    assert limiter.count("a") == 0
    assert limiter.count("b") == 1


def test_ws_ping_and_join_session_channel(client):
    with client.websocket_connect("/ws?client_id=t1") as ws:
        ws.send_json({"action": "ping"})
        assert ws.receive_json() == {"event": "pong"}
        ws.send_json({"action": "join", "channel": "session_SS123"})
        assert ws.receive_json() == {"event": "joined", "channel": "session_SS123"}
        ws.send_json({"action": "leave", "channel": "session_SS123"})
        assert ws.receive_json() == {"event": "left", "channel": "session_SS123"}


def test_ws_restaurant_channel_requires_staff(client, kitchen_headers):
    with client.websocket_connect("/ws?client_id=t2") as ws:
        ws.send_json({"action": "join", "channel": "restaurant_1"})
        assert ws.receive_json()["event"] == "error"

    token = kitchen_headers["Authorization"].split(" ", 1)[1]
    with client.websocket_connect(f"/ws?token={token}") as ws:
        ws.send_json({"action": "join", "channel": "restaurant_1"})
        assert ws.receive_json()["event"] == "joined"
        ws.send_json({"action": "join", "channel": "admin_broadcast"})
        assert ws.receive_json()["event"] == "error"


def test_ws_rejects_invalid_token(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws?token=bogus") as ws:
            ws.receive_json()


def test_ws_bad_message(client):
    with client.websocket_connect("/ws") as ws:
        ws.send_text("not json")
        assert ws.receive_json()["event"] == "error"


def test_session_subscriber_receives_new_order(client, open_session, place_order):
    with client.websocket_connect("/ws?client_id=t3") as ws:
        ws.send_json({"action": "join", "channel": f"session_{open_session}"})
        assert ws.receive_json()["event"] == "joined"

        order = place_order(open_session)

        message = ws.receive_json()
        assert message["event"] == "new_order"
        assert message["channel"] == f"session_{open_session}"
        assert message["data"]["order_id"] == order["id"]
        assert message["data"]["total_amount"] == 35.0
        assert message["data"]["table_number"] == "A01"
