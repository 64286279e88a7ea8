"""HTTP surface: status codes and error bodies."""
from decimal import Decimal

from conftest import add_stock, add_rule, stock_of, checkout_payload


async def _place_order(client, catalog, quantity=2) -> dict:
    response = await client.post(
        "/api/v1/orders/checkout",
        json=checkout_payload([{"product_id": catalog.tee, "quantity": quantity}]),
    )
    assert response.status_code == 201, response.text
    return response.json()


# ==================== ORDERS ====================

async def test_checkout_created(client, db, catalog):
    record_id = await add_stock(db, catalog.tee, 5)

    body = await _place_order(client, catalog)

    assert Decimal(body["total"]) == Decimal("110.00")
    assert body["status"] == "PENDING"
    assert body["user"]["email"] == "ada@mail.com"
    assert Decimal(body["items"][0]["line_total"]) == Decimal("100.00")
    assert body["status_history"][0]["to_status"] == "PENDING"
    assert await stock_of(db, record_id) == 3


async def test_checkout_insufficient_stock(client, db, catalog):
    await add_stock(db, catalog.tee, 1)

    response = await client.post(
        "/api/v1/orders/checkout",
        json=checkout_payload([{"product_id": catalog.tee, "quantity": 2}]),
    )

    assert response.status_code == 409
    detail = response.json()["detail"]
    assert detail["kind"] == "INSUFFICIENT_STOCK"
    assert detail["context"]["available"] == 1


async def test_checkout_price_mismatch_is_bad_request(client, db, catalog):
    await add_stock(db, catalog.tee, 5)

    response = await client.post(
        "/api/v1/orders/checkout",
        json=checkout_payload([{"product_id": catalog.tee, "quantity": 1, "price": "5.00"}]),
    )
    assert response.status_code == 400
    assert response.json()["detail"]["kind"] == "INVALID_INPUT"


async def test_checkout_requires_items(client, catalog):
    response = await client.post("/api/v1/orders/checkout", json=checkout_payload([]))
    assert response.status_code == 422


async def test_checkout_requires_buyer_contact(client, catalog):
    payload = checkout_payload([{"product_id": catalog.tee, "quantity": 1}])
    payload["buyer"] = {"name": "Nobody"}

    response = await client.post("/api/v1/orders/checkout", json=payload)
    assert response.status_code == 422


async def test_order_lookup_for_other_user_is_not_found(client, db, catalog):
    await add_stock(db, catalog.tee, 5)
    order = await _place_order(client, catalog)

    own = await client.get(f"/api/v1/orders/{order['id']}", params={"user_id": order["user_id"]})
    assert own.status_code == 200

    other = await client.get(f"/api/v1/orders/{order['id']}", params={"user_id": order["user_id"] + 1})
    assert other.status_code == 404
    assert other.json()["detail"]["kind"] == "NOT_FOUND"


async def test_order_listings(client, db, catalog):
    await add_stock(db, catalog.tee, 5)
    order = await _place_order(client, catalog, quantity=1)

    mine = await client.get("/api/v1/orders/my", params={"user_id": order["user_id"]})
    assert [o["id"] for o in mine.json()] == [order["id"]]

    everything = await client.get("/api/v1/orders")
    assert everything.json()[0]["user"]["id"] == order["user_id"]


async def test_status_update_forward_then_backward(client, db, catalog):
    await add_stock(db, catalog.tee, 5)
    order = await _place_order(client, catalog)

    forward = await client.put(f"/api/v1/orders/{order['id']}/status", json={"status": "shipped"})
    assert forward.status_code == 200
    assert forward.json()["status"] == "SHIPPED"

    backward = await client.put(f"/api/v1/orders/{order['id']}/status", json={"status": "PENDING"})
    assert backward.status_code == 422
    assert backward.json()["detail"]["kind"] == "INVALID_TRANSITION"


async def test_cancel_restores_stock(client, db, catalog):
    record_id = await add_stock(db, catalog.tee, 5)
    order = await _place_order(client, catalog)

    response = await client.put(
        f"/api/v1/orders/{order['id']}/cancel", params={"user_id": order["user_id"]}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "CANCELLED"
    assert await stock_of(db, record_id) == 5


async def test_shipping_update_changes_total(client, db, catalog):
    await add_stock(db, catalog.tee, 5)
    order = await _place_order(client, catalog)

    response = await client.put(
        f"/api/v1/orders/shipping/{order['shipping']['id']}",
        json={"delivery_charge": "15.50"},
    )

    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("115.50")

    empty = await client.put(f"/api/v1/orders/shipping/{order['shipping']['id']}", json={})
    assert empty.status_code == 400


async def test_item_quantity_update(client, db, catalog):
    record_id = await add_stock(db, catalog.tee, 5)
    order = await _place_order(client, catalog)

    response = await client.put(
        f"/api/v1/orders/items/{order['items'][0]['id']}/quantity", json={"quantity": 3}
    )

    assert response.status_code == 200
    assert Decimal(response.json()["total"]) == Decimal("160.00")
    assert await stock_of(db, record_id) == 2


# ==================== INVENTORY ====================

async def test_inventory_create_check_and_adjust(client, catalog):
    created = await client.post(
        "/api/v1/inventory",
        json={
            "product_id": catalog.tee,
            "color_id": catalog.red,
            "size_id": catalog.medium,
            "available_quantity": 4,
        },
    )
    assert created.status_code == 201
    assert created.json()["variant_info"]["color"]["name"] == "Red"

    duplicate = await client.post(
        "/api/v1/inventory",
        json={"product_id": catalog.tee, "color_id": catalog.red, "size_id": catalog.medium},
    )
    assert duplicate.status_code == 409

    check = await client.post(
        "/api/v1/inventory/check",
        json={"product_id": catalog.tee, "color_id": catalog.red, "size_id": catalog.medium},
    )
    assert check.json()["available_quantity"] == 4

    missing = await client.post("/api/v1/inventory/check", json={"product_id": catalog.tee})
    assert missing.status_code == 404

    adjusted = await client.patch(
        "/api/v1/inventory/adjust",
        json={
            "product_id": catalog.tee,
            "color_id": catalog.red,
            "size_id": catalog.medium,
            "quantity": -3,
            "reason": "sale",
        },
    )
    assert adjusted.status_code == 200
    assert adjusted.json()["available_quantity"] == 1
    assert adjusted.json()["quantity_change"] == -3

    oversold = await client.patch(
        "/api/v1/inventory/adjust",
        json={
            "product_id": catalog.tee,
            "color_id": catalog.red,
            "size_id": catalog.medium,
            "quantity": -2,
        },
    )
    assert oversold.status_code == 409


async def test_low_stock_listing(client, db, catalog):
    await add_stock(db, catalog.tee, 2, color_id=catalog.red)
    await add_stock(db, catalog.tee, 40, color_id=catalog.blue)

    response = await client.get("/api/v1/inventory/low-stock", params={"threshold": 5})

    assert response.status_code == 200
    assert [r["available_quantity"] for r in response.json()] == [2]


# ==================== PRICING ====================

async def test_pricing_calculate(client, db, catalog):
    await add_rule(db, catalog.tee, "8.00", min_quantity=5)

    tiered = await client.post("/api/v1/pricing/calculate", json={"product_id": catalog.tee, "quantity": 5})
    assert tiered.status_code == 200
    assert Decimal(tiered.json()["total_price"]) == Decimal("40.00")

    fallback = await client.post("/api/v1/pricing/calculate", json={"product_id": catalog.tee, "quantity": 1})
    assert fallback.json()["applied_rule"]["rule_type"] == "FALLBACK"


async def test_rules_by_type_rejects_unknown_type(client, catalog):
    response = await client.get(f"/api/v1/pricing/product/{catalog.tee}/rules/type/mystery")
    assert response.status_code == 400

    bulk = await client.get(f"/api/v1/pricing/product/{catalog.tee}/rules/type/bulk")
    assert bulk.status_code == 200
    assert bulk.json() == []


# ==================== HEALTH ====================

async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "connected"
