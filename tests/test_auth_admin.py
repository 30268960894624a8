from paobai.models import OperationLog


def test_login_and_me(client, restaurant_data):
    resp = client.post("/api/auth/login", json={"username": "boss", "password": "boss-pass"})
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["token_type"] == "bearer"
    assert data["user"]["role"] == "admin"

    headers = {"Authorization": f"Bearer {data['access_token']}"}
    me = client.get("/api/auth/me", headers=headers)
    assert me.json()["data"]["username"] == "boss"

    client.post("/api/auth/logout", headers=headers)
    assert client.get("/api/auth/me", headers=headers).status_code == 401


def test_wrong_password(client, restaurant_data):
    resp = client.post("/api/auth/login", json={"username": "boss", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["code"] == "INVALID_CREDENTIALS"


def test_kitchen_requires_token(client, restaurant_data):
    resp = client.get("/kitchen/orders")
    assert resp.status_code == 401
    assert resp.json()["success"] is False


def test_admin_requires_admin_role(client, kitchen_headers):
    resp = client.get("/admin/tables", headers=kitchen_headers)
    assert resp.status_code == 403


def test_table_management(client, admin_headers, open_session, restaurant_data):
    resp = client.post("/admin/tables", json={"table_number": "B01", "capacity": 6}, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    assert resp.json()["data"]["qr_code"].startswith("table_B01_")

    dup = client.post("/admin/tables", json={"table_number": "B01"}, headers=admin_headers)
    assert dup.status_code == 409

    busy = client.put(f"/admin/tables/{restaurant_data['table_id']}", json={"status": "disabled"}, headers=admin_headers)
    assert busy.status_code == 409

    occupied = client.get("/admin/tables", params={"status": "occupied"}, headers=admin_headers).json()["data"]
    assert [t["table_number"] for t in occupied] == ["A01"]


def test_menu_management(client, admin_headers, restaurant_data):
    resp = client.post("/admin/menu-items", json={
        "name": "酸辣粉",
        "category_id": restaurant_data["category_id"],
        "price": 16.5,
    }, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    item = resp.json()["data"]
    assert item["price"] == 16.5
    assert item["category_name"] == "热菜"

    resp = client.put(f"/admin/menu-items/{item['id']}", json={"is_available": False}, headers=admin_headers)
    assert resp.json()["data"]["is_available"] is False
    public_ids = [i["id"] for i in client.get("/api/menu/items").json()["data"]["items"]]
    assert item["id"] not in public_ids

    resp = client.delete(f"/admin/menu-items/{item['id']}", headers=admin_headers)
    assert resp.json()["message"] == "菜品 酸辣粉 已删除"

    assert client.post("/admin/categories", json={"name": "热菜"}, headers=admin_headers).status_code == 409


def test_referenced_menu_item_is_only_taken_off_sale(client, admin_headers, open_session, place_order, restaurant_data):
    place_order(open_session)
    resp = client.delete(f"/admin/menu-items/{restaurant_data['noodles_id']}", headers=admin_headers)
    assert resp.status_code == 200
    detail = client.get(f"/api/menu/items/{restaurant_data['noodles_id']}").json()["data"]
    assert detail["is_available"] is False


def test_kitchen_board_and_stats(client, admin_headers, kitchen_headers, open_session, place_order):
    first = place_order(open_session)
    second = place_order(open_session)
    client.put(f"/kitchen/orders/{first['id']}/status", json={"status": "confirmed"}, headers=kitchen_headers)

    board = client.get("/kitchen/orders", headers=kitchen_headers).json()["data"]
    assert board["pagination"]["total"] == 2
    assert [o["id"] for o in board["items"]] == [first["id"], second["id"]]
    assert board["items"][0]["table_number"] == "A01"

    dashboard = client.get("/kitchen/dashboard/realtime", headers=kitchen_headers).json()["data"]
    assert dashboard["pending_orders"] == 2

    overview = client.get("/admin/stats/overview", headers=admin_headers).json()["data"]
    assert overview["total_orders"] == 2
    assert overview["orders_by_status"]["pending"] == 1
    assert overview["occupied_tables"] == 1


def test_staff_user_management(client, admin_headers):
    resp = client.post("/admin/users", json={"username": "chef2", "password": "secret1", "role": "kitchen"}, headers=admin_headers)
    assert resp.status_code == 201, resp.text
    user_id = resp.json()["data"]["id"]

    login = client.post("/api/auth/login", json={"username": "chef2", "password": "secret1"})
    token = {"Authorization": f"Bearer {login.json()['data']['access_token']}"}
    assert client.get("/api/auth/me", headers=token).status_code == 200

    client.put(f"/admin/users/{user_id}", json={"is_active": False}, headers=admin_headers)
    assert client.get("/api/auth/me", headers=token).status_code == 401
    assert client.post("/api/auth/login", json={"username": "chef2", "password": "secret1"}).status_code == 401


def test_mutations_are_written_to_operation_log(client, open_session, db):
    logs = db.query(OperationLog).order_by(OperationLog.id).all()
    actions = [(log.action, log.username) for log in logs]
    assert ("开台", "u-leader") in actions
    assert ("加入用餐会话", "u-friend") in actions
