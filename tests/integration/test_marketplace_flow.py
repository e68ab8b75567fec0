"""End-to-end marketplace flow against a real database.

catalog -> approval -> order -> failed checkout (402) -> retry -> start/end -> rating,
then the admin invariant check. Each run creates fresh principals and catalog
names so the suite can be re-run on the same database.
"""

import uuid

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio(loop_scope="session")

ADMIN_EMAIL = "it_admin@example.com"


def _auth(principal: dict[str, str]) -> dict[str, str]:
    return {"Authorization": principal["Authorization"]}


async def _approved_service(client: AsyncClient, admin: dict, freelancer: dict) -> dict:
    tag = uuid.uuid4().hex[:8]
    cat = await client.post(
        "/api/v1/categories", json={"name": f"Design {tag}"}, headers=_auth(admin)
    )
    assert cat.status_code == 201, cat.text
    cat_id = cat.json()["data"]["id"]
    sub = await client.post(
        "/api/v1/subcategories",
        json={"category_id": cat_id, "name": f"Logos {tag}"},
        headers=_auth(admin),
    )
    assert sub.status_code == 201, sub.text

    svc = await client.post(
        "/api/v1/services",
        json={
            "title": "Logo design",
            "description": "Vector logo in three drafts",
            "price_cents": 10000,
            "category_id": cat_id,
            "subcategory_id": sub.json()["data"]["id"],
            "add_ons": [{"title": "Source files", "duration_days": 1, "price_cents": 2000}],
        },
        headers=_auth(freelancer),
    )
    assert svc.status_code == 201, svc.text
    service = svc.json()["data"]
    assert service["is_approved"] is False

    approved = await client.patch(
        f"/api/v1/services/{service['id']}/approval", headers=_auth(admin)
    )
    assert approved.json()["data"]["is_approved"] is True
    return service


async def test_full_order_flow(client: AsyncClient, login_as) -> None:  # type: ignore[no-untyped-def]
    admin = await login_as("admin", ADMIN_EMAIL)
    freelancer = await login_as("freelancer")
    buyer = await login_as("user")
    service = await _approved_service(client, admin, freelancer)
    add_on_id = service["add_ons"][0]["id"]

    # Order with add-on: 100.00 + 20.00, cart adds the platform fee
    created = await client.post(
        "/api/v1/orders",
        json={"service_id": service["id"], "add_on_ids": [add_on_id]},
        headers=_auth(buyer),
    )
    assert created.status_code == 201, created.text
    order = created.json()["data"]["order"]
    cart = created.json()["data"]["cart"]
    assert order["order_price_cents"] == 12000
    assert cart["total_cents"] == cart["subtotal_cents"] + cart["platform_fee_cents"]

    # Failed payment: 402 with data, orders stay in the cart
    failed = await client.post(
        "/api/v1/checkout",
        json={"payment_method": "card", "status": "failed"},
        headers=_auth(buyer),
    )
    assert failed.status_code == 402
    assert failed.json()["code"] == 5005
    assert failed.json()["data"]["transactions_created"] == 1

    retried = await client.post(
        "/api/v1/checkout/retry", json={"payment_method": "visa"}, headers=_auth(buyer)
    )
    assert retried.status_code == 200, retried.text
    assert retried.json()["data"]["amount_cents"] == 12000

    history = await client.get("/api/v1/cart/history", headers=_auth(buyer))
    assert history.status_code == 200

    # Work the order
    started = await client.post(f"/api/v1/orders/{order['id']}/start", headers=_auth(freelancer))
    assert started.json()["data"]["status"] == "IN_PROGRESS"

    deleted = await client.delete(f"/api/v1/orders/{order['id']}", headers=_auth(buyer))
    assert deleted.status_code == 400

    ended = await client.post(f"/api/v1/orders/{order['id']}/end", headers=_auth(freelancer))
    assert ended.json()["data"]["status"] == "COMPLETED"

    rated = await client.post(
        f"/api/v1/orders/{order['id']}/rating",
        json={"rate": 5, "comment": "Great work"},
        headers=_auth(buyer),
    )
    assert rated.status_code == 201, rated.text

    invariants = await client.get("/api/v1/admin/invariants", headers=_auth(admin))
    assert invariants.json()["data"]["ok"] is True, invariants.json()["data"]


async def test_freelancer_busy_blocks_second_start(
    client: AsyncClient, login_as  # type: ignore[no-untyped-def]
) -> None:
    admin = await login_as("admin", ADMIN_EMAIL)
    freelancer = await login_as("freelancer")
    service = await _approved_service(client, admin, freelancer)
    buyers = [await login_as("user"), await login_as("user")]

    order_ids = []
    for buyer in buyers:
        resp = await client.post(
            "/api/v1/orders", json={"service_id": service["id"]}, headers=_auth(buyer)
        )
        order_ids.append(resp.json()["data"]["order"]["id"])

    first = await client.post(f"/api/v1/orders/{order_ids[0]}/start", headers=_auth(freelancer))
    second = await client.post(f"/api/v1/orders/{order_ids[1]}/start", headers=_auth(freelancer))

    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["code"] == 4001


async def test_role_guards(client: AsyncClient, login_as) -> None:  # type: ignore[no-untyped-def]
    buyer = await login_as("user")

    resp = await client.get("/api/v1/admin/stats", headers=_auth(buyer))

    assert resp.status_code == 403
    assert resp.json()["code"] == 1007
