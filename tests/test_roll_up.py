from paobai.models import Order
from paobai.services.order_state import roll_up_order_status


def _set_item(client, item_id, status, headers):
    return client.put(f"/kitchen/order-items/{item_id}/status", json={"status": status}, headers=headers)


def _prepare(client, order_id, headers):
    for status in ("confirmed", "preparing"):
        resp = client.put(f"/kitchen/orders/{order_id}/status", json={"status": status}, headers=headers)
        assert resp.status_code == 200, resp.text


def test_scenario_two_items_served_rolls_up(client, open_session, place_order, kitchen_headers):
    order = place_order(open_session)
    assert order["total_amount"] == 35.0
    _prepare(client, order["id"], kitchen_headers)
    first, second = (item["id"] for item in order["items"])

    resp = _set_item(client, first, "ready", kitchen_headers)
    assert resp.json()["data"]["order_status"] == "preparing"
    resp = _set_item(client, second, "ready", kitchen_headers)
    assert resp.json()["data"]["order_status"] == "ready"

    resp = _set_item(client, first, "served", kitchen_headers)
    assert resp.json()["data"]["order_status"] == "ready"
    resp = _set_item(client, second, "served", kitchen_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["order_status"] == "served"

    session = client.get(f"/api/sessions/{open_session}").json()["data"]["session"]
    assert session["subtotal"] == 35.0
    assert session["total_amount"] == 35.0


def test_roll_up_is_idempotent(client, open_session, place_order, kitchen_headers, db):
    order = place_order(open_session)
    _prepare(client, order["id"], kitchen_headers)
    for item in order["items"]:
        _set_item(client, item["id"], "served", kitchen_headers)

    stored = db.get(Order, order["id"])
    completed_at = stored.completed_at
    assert stored.status == "served"
    assert roll_up_order_status(db, stored) is False
    assert roll_up_order_status(db, stored) is False
    assert stored.status == "served"
    assert stored.completed_at == completed_at


def test_roll_up_never_moves_backwards(client, open_session, place_order, kitchen_headers):
    order = place_order(open_session)
    _prepare(client, order["id"], kitchen_headers)
    first, second = (item["id"] for item in order["items"])

    _set_item(client, first, "ready", kitchen_headers)
    _set_item(client, second, "ready", kitchen_headers)
    # 订单已出餐后再把一个菜品改回制作中，订单状态不回退
    resp = _set_item(client, first, "preparing", kitchen_headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["order_status"] == "ready"


def test_served_item_cannot_change(client, open_session, place_order, kitchen_headers):
    order = place_order(open_session)
    _prepare(client, order["id"], kitchen_headers)
    item_id = order["items"][0]["id"]
    _set_item(client, item_id, "served", kitchen_headers)

    resp = _set_item(client, item_id, "preparing", kitchen_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_TRANSITION"


def test_items_of_cancelled_order_are_frozen(client, open_session, place_order, kitchen_headers):
    order = place_order(open_session)
    client.put(f"/customer/orders/{order['id']}/status", json={"status": "cancelled"})

    resp = _set_item(client, order["items"][0]["id"], "ready", kitchen_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_TRANSITION"


def test_unknown_item(client, kitchen_headers):
    resp = _set_item(client, 4242, "ready", kitchen_headers)
    assert resp.status_code == 404
    assert resp.json()["code"] == "ORDER_ITEM_NOT_FOUND"


def test_serving_every_item_of_new_order(client, open_session, place_order, kitchen_headers):
    order = place_order(open_session)
    for item in order["items"]:
        resp = _set_item(client, item["id"], "served", kitchen_headers)
        assert resp.status_code == 200, resp.text

    assert resp.json()["data"]["order_status"] == "served"
    session = client.get(f"/api/sessions/{open_session}").json()["data"]["session"]
    assert session["subtotal"] == 35.0


def test_order_level_update_keeps_finished_items(client, open_session, place_order, kitchen_headers):
    order = place_order(open_session)
    _prepare(client, order["id"], kitchen_headers)
    noodles, dumplings = (item["id"] for item in order["items"])

    assert _set_item(client, dumplings, "cancelled", kitchen_headers).status_code == 200
    assert _set_item(client, noodles, "served", kitchen_headers).status_code == 200

    resp = client.put(f"/kitchen/orders/{order['id']}/status", json={"status": "ready"}, headers=kitchen_headers)
    assert resp.status_code == 200, resp.text
    statuses = {item["id"]: item["status"] for item in resp.json()["data"]["items"]}
    assert statuses == {noodles: "served", dumplings: "cancelled"}


def test_cancelling_one_dish_reduces_order_and_session_totals(
        client, open_session, place_order, kitchen_headers, db):
    order = place_order(open_session)
    dumplings = order["items"][1]["id"]

    resp = _set_item(client, dumplings, "cancelled", kitchen_headers)
    assert resp.status_code == 200, resp.text

    stored = db.get(Order, order["id"])
    assert stored.total_amount == 20
    assert stored.item_count == 2
    assert stored.status == "pending"
    session = client.get(f"/api/sessions/{open_session}").json()["data"]["session"]
    assert session["total_amount"] == 20.0
