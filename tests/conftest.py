import os
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")


@pytest.fixture(scope="session")
def app():
    """
    Import the FastAPI app once per test session.
    """
    from paobai.main import app as paobai_app

    return paobai_app


@pytest.fixture(autouse=True)
def reset_state(app):
    """
    Fresh schema and empty in-process stores for every test.
    """
    from paobai.core.security import token_store
    from paobai.db.database import Base, engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    token_store.clear()
    yield
    token_store.clear()


@pytest.fixture()
def client(app):
    return TestClient(app)


@pytest.fixture()
def db():
    from paobai.db.database import SessionLocal

    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def restaurant_data():
    """
    One restaurant, two tables, two dishes (10.00 and 15.00), one unavailable dish,
    an admin and a kitchen account. Returns plain ids.
    """
    from paobai.core.config import settings
    from paobai.core.security import get_password_hash
    from paobai.db.database import SessionLocal
    from paobai.models import Category, DiningTable, MenuItem, Restaurant, User

    s = SessionLocal()
    try:
        restaurant = Restaurant(id=settings.restaurant_id, name="跑呗餐厅", status=1)
        s.add(restaurant)
        t1 = DiningTable(restaurant_id=settings.restaurant_id, table_number="A01", qr_code="qr_a01")
        t2 = DiningTable(restaurant_id=settings.restaurant_id, table_number="A02", qr_code="qr_a02")
        category = Category(restaurant_id=settings.restaurant_id, name="热菜")
        s.add_all([t1, t2, category])
        s.flush()
        noodles = MenuItem(restaurant_id=settings.restaurant_id, category_id=category.id,
                           name="牛肉面", price=Decimal("10.00"), preparation_time=8)
        dumplings = MenuItem(restaurant_id=settings.restaurant_id, category_id=category.id,
                             name="煎饺", price=Decimal("15.00"), preparation_time=12)
        sold_out = MenuItem(restaurant_id=settings.restaurant_id, category_id=category.id,
                            name="佛跳墙", price=Decimal("188.00"), is_available=False)
        admin = User(username="boss", password_hash=get_password_hash("boss-pass"), role="admin")
        cook = User(username="cook", password_hash=get_password_hash("cook-pass"), role="kitchen")
        s.add_all([noodles, dumplings, sold_out, admin, cook])
        s.commit()
        return {
            "restaurant_id": restaurant.id,
            "table_id": t1.id,
            "table2_id": t2.id,
            "category_id": category.id,
            "noodles_id": noodles.id,
            "dumplings_id": dumplings.id,
            "sold_out_id": sold_out.id,
        }
    finally:
        s.close()


def _login(client, username, password):
    resp = client.post("/api/auth/login", json={"username": username, "password": password})
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['data']['access_token']}"}


@pytest.fixture()
def admin_headers(client, restaurant_data):
    return _login(client, "boss", "boss-pass")


@pytest.fixture()
def kitchen_headers(client, restaurant_data):
    return _login(client, "cook", "cook-pass")


@pytest.fixture()
def open_session(client, restaurant_data):
    """
    Session on table A01 with leader "u-leader" and a second diner "u-friend".
    """
    resp = client.post("/api/sessions", json={
        "table_id": restaurant_data["table_id"],
        "leader_info": {"openid": "u-leader", "nickname": "老王"},
    })
    assert resp.status_code == 201, resp.text
    session_id = resp.json()["data"]["session"]["id"]
    resp = client.post(f"/api/sessions/{session_id}/join", json={"openid": "u-friend", "nickname": "小李"})
    assert resp.status_code == 200, resp.text
    return session_id


@pytest.fixture()
def place_order(client, restaurant_data):
    """
    Factory: place the 2 x 10.00 + 1 x 15.00 order in a session.
    """

    def _place(session_id, diner="u-leader"):
        resp = client.post("/customer/orders", json={
            "session_id": session_id,
            "diner_openid": diner,
            "items": [
                {"menu_item_id": restaurant_data["noodles_id"], "quantity": 2},
                {"menu_item_id": restaurant_data["dumplings_id"], "quantity": 1, "special_instructions": "多醋"},
            ],
        })
        assert resp.status_code == 201, resp.text
        return resp.json()["data"]

    return _place
