from decimal import Decimal

import pytest

from paobai.core.errors import AppError
from paobai.services.settlement import calculate_aa_split


def test_aa_split_by_diner(client, open_session, place_order):
    order = place_order(open_session)
    noodles, dumplings = order["items"]

    resp = client.post(f"/customer/sessions/{open_session}/calculate-aa", json={
        "order_items": [
            {"order_item_id": noodles["id"], "diner_openid": "u-leader"},
            {"order_item_id": dumplings["id"], "diner_openid": "u-friend"},
        ],
    })
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["session_id"] == open_session
    assert data["total_amount"] == 35.0
    assert data["total_customers"] == 2

    leader, friend = data["split_details"]
    assert leader["diner_openid"] == "u-leader"
    assert leader["nickname"] == "老王"
    assert leader["original_amount"] == 20.0
    assert leader["final_amount"] == 20.0
    assert leader["discount_amount"] == 0
    assert [i["order_item_id"] for i in leader["items"]] == [noodles["id"]]
    assert friend["nickname"] == "小李"
    assert friend["original_amount"] == 15.0
    assert sum(d["original_amount"] for d in data["split_details"]) == data["total_amount"]


def test_last_assignment_wins(client, open_session, place_order):
    order = place_order(open_session)
    noodles, dumplings = order["items"]

    data = client.post(f"/customer/sessions/{open_session}/calculate-aa", json={
        "order_items": [
            {"order_item_id": noodles["id"], "diner_openid": "u-leader"},
            {"order_item_id": dumplings["id"], "diner_openid": "u-leader"},
            {"order_item_id": noodles["id"], "diner_openid": "u-friend"},
        ],
    }).json()["data"]

    assigned = {
        item["order_item_id"]: entry["diner_openid"]
        for entry in data["split_details"]
        for item in entry["items"]
    }
    assert assigned == {noodles["id"]: "u-friend", dumplings["id"]: "u-leader"}
    assert data["total_amount"] == 35.0


def test_unknown_diner_gets_placeholder_nickname(client, open_session, place_order):
    order = place_order(open_session)
    data = client.post(f"/customer/sessions/{open_session}/calculate-aa", json={
        "order_items": [{"order_item_id": order["items"][0]["id"], "diner_openid": "u-ghost"}],
    }).json()["data"]
    assert data["split_details"][0]["nickname"] == "未知用户"


def test_item_from_other_session_is_rejected(client, restaurant_data, open_session, place_order):
    other = client.post("/api/sessions", json={
        "table_id": restaurant_data["table2_id"],
        "leader_info": {"openid": "u-other"},
    }).json()["data"]["session"]["id"]
    foreign = place_order(other, diner="u-other")

    resp = client.post(f"/customer/sessions/{open_session}/calculate-aa", json={
        "order_items": [{"order_item_id": foreign["items"][0]["id"], "diner_openid": "u-leader"}],
    })
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "ORDER_ITEM_NOT_FOUND"
    assert body["message"] == f"订单项 {foreign['items'][0]['id']} 不存在"


def test_discount_policy_is_clamped(client, open_session, place_order, db):
    order = place_order(open_session)
    noodles, dumplings = order["items"]

    def policy(openid, original):
        return Decimal("5") if openid == "u-leader" else Decimal("100")

    result = calculate_aa_split(
        db,
        open_session,
        [(noodles["id"], "u-leader"), (dumplings["id"], "u-friend")],
        discount_policy=policy,
    )
    leader, friend = result["split_details"]
    assert leader["final_amount"] == Decimal("15.00")
    assert friend["discount_amount"] == Decimal("15.00")
    assert friend["final_amount"] == Decimal("0")
    assert result["total_amount"] == Decimal("35.00")


def test_closed_session_cannot_be_split(db, client, open_session):
    client.post(f"/api/sessions/{open_session}/close")
    with pytest.raises(AppError) as exc_info:
        calculate_aa_split(db, open_session, [])
    assert exc_info.value.status_code == 404


def test_cancelled_dish_cannot_be_split(client, open_session, place_order, kitchen_headers):
    order = place_order(open_session)
    noodles, dumplings = order["items"]
    resp = client.put(f"/kitchen/order-items/{dumplings['id']}/status", json={"status": "cancelled"},
                      headers=kitchen_headers)
    assert resp.status_code == 200, resp.text

    resp = client.post(f"/customer/sessions/{open_session}/calculate-aa", json={
        "order_items": [
            {"order_item_id": noodles["id"], "diner_openid": "u-leader"},
            {"order_item_id": dumplings["id"], "diner_openid": "u-friend"},
        ],
    })
    assert resp.status_code == 400
    assert resp.json()["code"] == "ORDER_ITEM_CANCELLED"


def test_items_of_cancelled_order_cannot_be_split(client, open_session, place_order):
    order = place_order(open_session)
    client.put(f"/customer/orders/{order['id']}/status", json={"status": "cancelled"})

    resp = client.post(f"/customer/sessions/{open_session}/calculate-aa", json={
        "order_items": [{"order_item_id": order["items"][0]["id"], "diner_openid": "u-leader"}],
    })
    assert resp.status_code == 400
    assert resp.json()["code"] == "ORDER_ITEM_CANCELLED"
