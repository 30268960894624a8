from paobai.models import DiningTable


def test_create_session_occupies_table(client, restaurant_data, db):
    resp = client.post("/api/sessions", json={
        "table_id": restaurant_data["table_id"],
        "leader_info": {"openid": "u-1", "nickname": "阿强"},
        "total_customers": 3,
    })
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    session_id = data["session"]["id"]
    assert session_id.startswith("SS")
    assert data["session"]["status"] == "active"
    assert data["session"]["total_customers"] == 3
    assert data["table"]["status"] == "occupied"
    assert data["table"]["current_session_id"] == session_id
    assert data["leader"]["openid"] == "u-1"
    assert data["leader"]["is_leader"] is True

    table = db.get(DiningTable, restaurant_data["table_id"])
    assert table.status == "occupied"
    assert table.current_session_id == session_id


def test_second_session_on_occupied_table_conflicts(client, restaurant_data, open_session, db):
    resp = client.post("/api/sessions", json={
        "table_id": restaurant_data["table_id"],
        "leader_info": {"openid": "u-other"},
    })
    assert resp.status_code == 409
    assert resp.json()["code"] == "TABLE_OCCUPIED"

    table = db.get(DiningTable, restaurant_data["table_id"])
    assert table.status == "occupied"
    assert table.current_session_id == open_session


def test_create_session_unknown_table(client, restaurant_data):
    resp = client.post("/api/sessions", json={"table_id": 9999, "leader_info": {"openid": "u-1"}})
    assert resp.status_code == 404
    assert resp.json()["code"] == "TABLE_NOT_FOUND"


def test_qr_lookup_only_returns_available_tables(client, restaurant_data, open_session):
    assert client.get("/api/tables/qr/qr_a02").status_code == 200
    resp = client.get("/api/tables/qr/qr_a01")
    assert resp.status_code == 404
    assert resp.json()["message"] == "桌台不存在或已被占用"


def test_join_is_idempotent(client, open_session):
    detail = client.get(f"/api/sessions/{open_session}").json()["data"]
    assert detail["session"]["total_customers"] == 2

    first = client.post(f"/api/sessions/{open_session}/join", json={"openid": "u-friend", "nickname": "改名"})
    assert first.status_code == 200
    body = first.json()
    assert body["data"]["joined"] is False
    assert body["data"]["diner"]["nickname"] == "小李"

    detail = client.get(f"/api/sessions/{open_session}").json()["data"]
    assert detail["session"]["total_customers"] == 2
    assert [d["openid"] for d in detail["diners"]] == ["u-leader", "u-friend"]


def test_join_recounts_customers(client, open_session):
    resp = client.post(f"/api/sessions/{open_session}/join", json={"openid": "u-third"})
    assert resp.json()["data"]["joined"] is True
    detail = client.get(f"/api/sessions/{open_session}").json()["data"]
    assert detail["session"]["total_customers"] == 3


def test_join_unknown_session(client, restaurant_data):
    resp = client.post("/api/sessions/SSnope/join", json={"openid": "u-1"})
    assert resp.status_code == 404
    assert resp.json()["message"] == "会话不存在或已结束"


def test_close_session_refuses_open_orders(client, open_session, place_order):
    place_order(open_session)
    resp = client.post(f"/api/sessions/{open_session}/close")
    assert resp.status_code == 400
    assert resp.json()["code"] == "SESSION_HAS_OPEN_ORDERS"


def test_close_session_frees_table(client, restaurant_data, open_session, db):
    resp = client.post(f"/api/sessions/{open_session}/close")
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["status"] == "closed"
    assert data["end_time"] is not None

    table = db.get(DiningTable, restaurant_data["table_id"])
    assert table.status == "available"
    assert table.current_session_id is None

    # 结束后不能再加入
    assert client.post(f"/api/sessions/{open_session}/join", json={"openid": "u-late"}).status_code == 404
    # 桌台可以重新开台
    resp = client.post("/api/sessions", json={
        "table_id": restaurant_data["table_id"],
        "leader_info": {"openid": "u-next"},
    })
    assert resp.status_code == 201
