"""HTTP contract, run against every backing."""

from fastapi.testclient import TestClient

from app.main import app
from app.services.storage import MemoryStorage, get_storage, utcnow
from tests.factories import menu_item_json, order_json


def create_session(client, **overrides):
    payload = {"name": "Friday lunch", "restaurant": "Luigi's"}
    payload.update(overrides)
    response = client.post("/api/order-sessions", json=payload)
    assert response.status_code == 201
    return response.json()


def create_item(client, **overrides):
    response = client.post("/api/menu-items", json=menu_item_json(**overrides))
    assert response.status_code == 201
    return response.json()


# =============================================================================
# MENU ITEMS
# =============================================================================

def test_menu_item_crud(client):
    item = create_item(client, price="12.5")
    assert item["price"] == "12.50"
    assert item["isAvailable"] is True
    assert item["imageUrl"] is None

    assert client.get(f"/api/menu-items/{item['id']}").json() == item
    assert client.get("/api/menu-items").json() == [item]

    response = client.put(f"/api/menu-items/{item['id']}", json={"price": "9.99", "isAvailable": False})
    assert response.status_code == 200
    updated = response.json()
    assert updated["price"] == "9.99"
    assert updated["isAvailable"] is False
    assert updated["name"] == item["name"]

    assert client.delete(f"/api/menu-items/{item['id']}").status_code == 204
    response = client.delete(f"/api/menu-items/{item['id']}")
    assert response.status_code == 404
    assert response.json() == {"message": "Menu item not found"}


def test_menu_item_not_found(client):
    assert client.get("/api/menu-items/999").status_code == 404
    assert client.put("/api/menu-items/999", json={"name": "X"}).status_code == 404


def test_menu_item_validation_lists_every_field(client):
    response = client.post(
        "/api/menu-items",
        json={"name": "", "price": "1.234", "category": "Pizza"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid menu item data"
    fields = {e["field"] for e in body["errors"]}
    assert fields == {"name", "description", "price"}


def test_menu_item_update_rejects_null(client):
    item = create_item(client)

    response = client.put(f"/api/menu-items/{item['id']}", json={"name": None})

    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "name"


def test_non_integer_id_is_a_validation_error(client):
    response = client.get("/api/menu-items/abc")

    assert response.status_code == 400
    assert response.json()["errors"] == [
        {"field": "itemId", "message": "Input should be a valid integer, unable to parse string as an integer"}
    ]


def test_path_errors_use_camel_case_like_body_errors(client):
    session_error = client.get("/api/order-sessions/first/stats").json()["errors"]
    order_error = client.patch("/api/orders/x/payment", json={}).json()["errors"]

    assert [e["field"] for e in session_error] == ["sessionId"]
    assert {e["field"] for e in order_error} == {"orderId", "isPaid"}


# =============================================================================
# ORDER SESSIONS
# =============================================================================

def test_create_and_resolve_session(client):
    session = create_session(client, sessionLink="client-chosen", isActive=False)

    assert session["isActive"] is True
    assert session["finalizedAt"] is None
    assert session["sessionLink"] != "client-chosen"

    by_link = client.get(f"/api/order-sessions/link/{session['sessionLink']}")
    assert by_link.status_code == 200
    assert by_link.json() == session
    assert client.get(f"/api/order-sessions/{session['id']}").json() == session
    assert client.get("/api/order-sessions").json() == [session]


def test_unknown_link_is_not_found(client):
    create_session(client)

    response = client.get("/api/order-sessions/link/nope")

    assert response.status_code == 404
    assert response.json() == {"message": "Order session not found"}


def test_create_session_validation(client):
    response = client.post("/api/order-sessions", json={"name": "x"})

    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "restaurant", "message": "Field required"}]


def test_finalize_session(client):
    session = create_session(client)

    response = client.put(f"/api/order-sessions/{session['id']}/finalize")

    assert response.status_code == 200
    finalized = response.json()
    assert finalized["isActive"] is False
    assert finalized["finalizedAt"] is not None
    assert client.get(f"/api/order-sessions/link/{session['sessionLink']}").json() == finalized

    again = client.put(f"/api/order-sessions/{session['id']}/finalize")
    assert again.status_code == 200
    assert again.json() == finalized


def test_finalize_missing_session(client):
    response = client.put("/api/order-sessions/7/finalize")

    assert response.status_code == 404
    assert client.get("/api/order-sessions").json() == []


# =============================================================================
# ORDERS
# =============================================================================

def test_place_orders_and_stats(client):
    session = create_session(client)
    item = create_item(client)
    for customer, total in (("Ann", "5.00"), ("Ann", "3.00"), ("Bo", "2.00")):
        response = client.post("/api/orders", json=order_json(session["id"], item["id"], customerName=customer, totalPrice=total))
        assert response.status_code == 201

    stats = client.get(f"/api/order-sessions/{session['id']}/stats").json()
    orders = client.get(f"/api/order-sessions/{session['id']}/orders").json()

    assert stats == {"totalOrders": 3, "totalAmount": "10.00", "participantCount": 2}
    assert [o["customerName"] for o in orders] == ["Ann", "Ann", "Bo"]
    assert orders[0]["isPaid"] is False


def test_stats_for_empty_session(client):
    session = create_session(client)

    response = client.get(f"/api/order-sessions/{session['id']}/stats")

    assert response.json() == {"totalOrders": 0, "totalAmount": "0.00", "participantCount": 0}


def test_stats_and_orders_for_missing_session(client):
    assert client.get("/api/order-sessions/5/stats").status_code == 404
    assert client.get("/api/order-sessions/5/orders").status_code == 404


def test_order_validation(client):
    response = client.post(
        "/api/orders",
        json={"sessionId": 1, "customerName": "", "menuItemId": 1, "quantity": 0, "unitPrice": "-1"},
    )

    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Invalid order data"
    assert {e["field"] for e in body["errors"]} == {"customerName", "quantity", "unitPrice", "totalPrice"}


def test_order_against_missing_session_or_item(client):
    item = create_item(client)
    session = create_session(client)

    assert client.post("/api/orders", json=order_json(session["id"] + 1, item["id"])).status_code == 404
    assert client.post("/api/orders", json=order_json(session["id"], item["id"] + 1)).status_code == 404


def test_finalized_session_rejects_orders(client):
    session = create_session(client)
    item = create_item(client)
    client.put(f"/api/order-sessions/{session['id']}/finalize")

    response = client.post("/api/orders", json=order_json(session["id"], item["id"]))

    assert response.status_code == 409
    assert client.get(f"/api/order-sessions/{session['id']}/orders").json() == []


def test_payment_flag_and_delete(client):
    session = create_session(client)
    item = create_item(client)
    order = client.post("/api/orders", json=order_json(session["id"], item["id"])).json()

    response = client.patch(f"/api/orders/{order['id']}/payment", json={"isPaid": True})
    assert response.status_code == 200
    assert response.json()["isPaid"] is True
    assert client.get(f"/api/orders/{order['id']}").json()["isPaid"] is True

    assert client.patch(f"/api/orders/{order['id']}/payment", json={}).status_code == 400
    assert client.patch("/api/orders/999/payment", json={"isPaid": True}).status_code == 404

    assert client.delete(f"/api/orders/{order['id']}").status_code == 204
    assert client.delete(f"/api/orders/{order['id']}").status_code == 404
    assert client.get(f"/api/orders/{order['id']}").status_code == 404


def test_session_summary(client):
    session = create_session(client)
    pizza = create_item(client, name="Pizza")
    salad = create_item(client, name="Salad")
    client.post("/api/orders", json=order_json(session["id"], pizza["id"], customerName="Ann", quantity=2, totalPrice="10.00"))
    client.post("/api/orders", json=order_json(session["id"], salad["id"], customerName="Ann"))
    client.delete(f"/api/menu-items/{salad['id']}")

    summary = client.get(f"/api/order-sessions/{session['id']}/summary").json()

    assert summary["session"]["id"] == session["id"]
    assert summary["stats"]["totalAmount"] == "15.00"
    assert summary["customers"] == [
        {
            "customerName": "Ann",
            "itemsText": "Pizza x2, Unknown x1",
            "total": "15.00",
            "orderCount": 2,
            "paid": False,
        }
    ]


def test_export_csv(client):
    session = create_session(client, name="Team Lunch")
    item = create_item(client, name="Pizza")
    client.post("/api/orders", json=order_json(session["id"], item["id"], customerName="Ann", quantity=2, unitPrice="6.00", totalPrice="12.00"))
    client.post("/api/orders", json=order_json(session["id"], item["id"], customerName="Bo"))

    response = client.get(f"/api/order-sessions/{session['id']}/export")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert 'filename="Team Lunch-' in response.headers["content-disposition"]
    lines = response.text.strip().splitlines()
    assert lines[0] == "Customer Name,Menu Item,Quantity,Unit Price,Total Price,Paid,Order Time"
    assert len(lines) == 3
    assert lines[1].startswith("Ann,Pizza,2,$6.00,$12.00,no,")

    assert client.get("/api/order-sessions/999/export").status_code == 404


# =============================================================================
# DATE RANGE
# =============================================================================

def test_date_range_includes_todays_orders(client):
    session = create_session(client)
    item = create_item(client)
    client.post("/api/orders", json=order_json(session["id"], item["id"], totalPrice="4.00", isPaid=True))
    client.post("/api/orders", json=order_json(session["id"], item["id"], totalPrice="1.50"))
    today = utcnow().date().isoformat()

    response = client.get("/api/orders/date-range", params={"startDate": today, "endDate": today})

    assert response.status_code == 200
    body = response.json()
    assert body["totalOrders"] == 2
    assert body["paidOrders"] == 1
    assert body["totalAmount"] == "5.50"
    assert len(body["orders"]) == 2


def test_date_range_outside_window_is_empty(client):
    session = create_session(client)
    item = create_item(client)
    client.post("/api/orders", json=order_json(session["id"], item["id"]))

    body = client.get("/api/orders/date-range", params={"startDate": "2000-01-01", "endDate": "2000-01-07"}).json()

    assert body["totalOrders"] == 0
    assert body["totalAmount"] == "0.00"
    assert body["orders"] == []


def test_date_range_validation(client):
    response = client.get("/api/orders/date-range", params={"startDate": "yesterday"})

    assert response.status_code == 400
    assert {e["field"] for e in response.json()["errors"]} == {"startDate", "endDate"}


# =============================================================================
# MISC
# =============================================================================

def test_health(client):
    body = client.get("/health").json()

    assert body["status"] == "operational"
    assert body["storage"].endswith("healthy")


def test_unexpected_errors_are_generic_500():
    class BrokenStorage(MemoryStorage):
        async def list_menu_items(self):
            raise RuntimeError("connection to 10.0.0.3 refused")

    app.dependency_overrides[get_storage] = lambda: BrokenStorage()
    try:
        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/api/menu-items")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 500
    assert response.json()["message"] == "An unexpected error occurred"
    assert "10.0.0.3" not in response.text


def test_development_store_is_seeded():
    app.dependency_overrides[get_storage] = lambda: MemoryStorage()
    try:
        with TestClient(app) as client:
            items = client.get("/api/menu-items").json()
    finally:
        app.dependency_overrides.clear()

    assert len(items) == 6


# =============================================================================
# BACKING SUBSTITUTABILITY
# =============================================================================

VOLATILE_KEYS = {"id", "sessionId", "menuItemId", "sessionLink", "createdAt", "finalizedAt"}


def _normalize(value):
    """Drop identifiers and timestamps, keep everything observable."""
    if isinstance(value, dict):
        return {
            k: (v is not None) if k in VOLATILE_KEYS else _normalize(v)
            for k, v in value.items()
        }
    if isinstance(value, list):
        return [_normalize(v) for v in value]
    return value


def _run_script(client) -> list:
    transcript = []

    def record(response):
        body = response.json() if response.content and "json" in response.headers.get("content-type", "") else None
        transcript.append((response.status_code, _normalize(body)))
        return body

    item = record(client.post("/api/menu-items", json=menu_item_json(name="Pizza", price="8")))
    other = record(client.post("/api/menu-items", json=menu_item_json(name="Soup", price="4.5")))
    record(client.post("/api/menu-items", json={"name": "broken"}))
    record(client.put(f"/api/menu-items/{other['id']}", json={"description": "Tomato soup"}))
    record(client.get("/api/menu-items"))

    session = record(client.post("/api/order-sessions", json={"name": "Lunch", "restaurant": "Luigi's"}))
    record(client.get(f"/api/order-sessions/link/{session['sessionLink']}"))
    record(client.get("/api/order-sessions/link/missing"))

    first = record(client.post("/api/orders", json=order_json(session["id"], item["id"], customerName="Ann", quantity=2, unitPrice="8.00", totalPrice="16.00")))
    record(client.post("/api/orders", json=order_json(session["id"], other["id"], customerName="Bo", unitPrice="4.50", totalPrice="4.50")))
    record(client.post("/api/orders", json=order_json(session["id"], item["id"], customerName="Ann", totalPrice="0.99")))
    record(client.patch(f"/api/orders/{first['id']}/payment", json={"isPaid": True}))
    record(client.get(f"/api/order-sessions/{session['id']}/stats"))

    record(client.delete(f"/api/menu-items/{other['id']}"))
    record(client.delete(f"/api/menu-items/{other['id']}"))
    record(client.get(f"/api/order-sessions/{session['id']}/summary"))

    record(client.put(f"/api/order-sessions/{session['id']}/finalize"))
    record(client.put(f"/api/order-sessions/{session['id']}/finalize"))
    record(client.put(f"/api/order-sessions/{session['id'] + 50}/finalize"))
    record(client.post("/api/orders", json=order_json(session["id"], item["id"])))
    record(client.delete(f"/api/orders/{first['id']}"))
    record(client.get(f"/api/order-sessions/{session['id']}/orders"))
    record(client.get(f"/api/order-sessions/{session['id']}/stats"))
    return transcript


def test_backings_are_interchangeable(make_client):
    memory_transcript = _run_script(make_client("memory"))
    database_transcript = _run_script(make_client("database"))

    assert memory_transcript == database_transcript


def test_run_serves_on_configured_host_and_port(monkeypatch):
    import app.main as main

    calls = []
    monkeypatch.setattr(main.uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))

    main.run()

    assert calls == [
        (
            "app.main:app",
            {
                "host": main.settings.api_host,
                "port": main.settings.api_port,
                "reload": main.settings.is_development,
            },
        )
    ]
