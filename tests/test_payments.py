def _pay(client, session_id, **overrides):
    payload = {
        "session_id": session_id,
        "diner_openid": "u-leader",
        "payment_method": "cash",
        "amount": 35,
    }
    payload.update(overrides)
    return client.post("/customer/payments", json=payload)


def _paid(client, session_id):
    return client.get(f"/api/sessions/{session_id}").json()["data"]["session"]["paid_amount"]


def test_create_payment_is_pending(client, open_session, place_order):
    order = place_order(open_session)
    resp = _pay(client, open_session, order_ids=[order["id"]])
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["id"].startswith("P")
    assert data["transaction_id"].startswith("TX")
    assert data["status"] == "pending"
    assert data["payment_type"] == "full"
    assert data["order_ids"] == [order["id"]]
    assert _paid(client, open_session) == 0


def test_payment_by_non_member_is_forbidden(client, open_session):
    resp = _pay(client, open_session, diner_openid="u-stranger")
    assert resp.status_code == 403


def test_aa_payment_records_split_details(client, open_session, place_order):
    order = place_order(open_session)
    noodles, dumplings = order["items"]
    resp = _pay(client, open_session, payment_method="split_aa", split_details=[
        {"diner_openid": "u-leader", "order_items": [noodles["id"]], "original_amount": 20},
        {"diner_openid": "u-friend", "order_items": [dumplings["id"]], "original_amount": 15, "discount_amount": 3},
    ])
    assert resp.status_code == 201, resp.text
    data = resp.json()["data"]
    assert data["payment_type"] == "split"
    details = {d["diner_openid"]: d for d in data["split_details"]}
    assert details["u-leader"]["final_amount"] == 20.0
    assert details["u-friend"]["final_amount"] == 12.0
    assert {d["status"] for d in data["split_details"]} == {"pending"}


def test_success_updates_paid_amount_and_refund_reverts(client, open_session, admin_headers):
    payment = _pay(client, open_session).json()["data"]
    _pay(client, open_session, amount=10, diner_openid="u-friend")

    resp = client.put(f"/admin/payments/{payment['id']}/status", json={"status": "success"}, headers=admin_headers)
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["payment_time"] is not None
    assert _paid(client, open_session) == 35.0

    resp = client.post(
        f"/admin/payments/{payment['id']}/refund",
        json={"refund_amount": 35, "reason": "菜品问题"},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    data = resp.json()["data"]
    assert data["status"] == "refunded"
    assert data["refund_amount"] == 35.0
    assert _paid(client, open_session) == 0


def test_split_details_mirror_payment_status(client, open_session, admin_headers):
    payment = _pay(client, open_session, payment_method="split_aa", split_details=[
        {"diner_openid": "u-leader", "original_amount": 35},
    ]).json()["data"]
    resp = client.put(f"/admin/payments/{payment['id']}/status", json={"status": "processing"}, headers=admin_headers)
    assert {d["status"] for d in resp.json()["data"]["split_details"]} == {"processing"}


def test_illegal_payment_transition(client, open_session, admin_headers):
    payment = _pay(client, open_session).json()["data"]
    client.put(f"/admin/payments/{payment['id']}/status", json={"status": "failed"}, headers=admin_headers)
    resp = client.put(f"/admin/payments/{payment['id']}/status", json={"status": "success"}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_TRANSITION"


def test_refund_requires_success(client, open_session, admin_headers):
    payment = _pay(client, open_session).json()["data"]
    resp = client.post(f"/admin/payments/{payment['id']}/refund", json={}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "PAYMENT_NOT_REFUNDABLE"


def test_refund_cannot_exceed_amount(client, open_session, admin_headers):
    payment = _pay(client, open_session).json()["data"]
    client.put(f"/admin/payments/{payment['id']}/status", json={"status": "success"}, headers=admin_headers)
    resp = client.post(f"/admin/payments/{payment['id']}/refund", json={"refund_amount": 50}, headers=admin_headers)
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_REFUND_AMOUNT"
    assert _paid(client, open_session) == 35.0


def test_list_session_payments(client, open_session):
    _pay(client, open_session)
    _pay(client, open_session, amount=5, payment_method="wechat")
    resp = client.get(f"/customer/sessions/{open_session}/payments")
    assert len(resp.json()["data"]) == 2
    resp = client.get(f"/customer/sessions/{open_session}/payments", params={"status": "success"})
    assert resp.json()["data"] == []


def test_partial_refund_keeps_remainder_paid(client, open_session, admin_headers):
    payment = _pay(client, open_session).json()["data"]
    client.put(f"/admin/payments/{payment['id']}/status", json={"status": "success"}, headers=admin_headers)

    resp = client.post(
        f"/admin/payments/{payment['id']}/refund",
        json={"refund_amount": 15, "reason": "少上一道菜"},
        headers=admin_headers,
    )
    assert resp.status_code == 200, resp.text
    assert resp.json()["data"]["status"] == "refunded"
    assert _paid(client, open_session) == 20.0
