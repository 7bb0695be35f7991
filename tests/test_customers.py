from storefront import models


def create(client, name="Ann Lee", email="ann@example.com", **extra):
    return client.post("/api/admin/customers/create", json={"name": name, "email": email, **extra})


def test_create_and_read_customer(client):
    resp = create(client, phone="0901")
    assert resp.status_code == 201
    customer = resp.json()["data"]
    assert customer["role"] == "customer"
    assert customer["isActive"] is True

    fetched = client.get(f"/api/admin/customers/{customer['id']}").json()["data"]
    assert fetched["email"] == "ann@example.com"
    assert fetched["phone"] == "0901"


def test_duplicate_email_is_rejected(client):
    create(client)
    resp = create(client, name="Other Ann")
    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Email is already in use"}


def test_invalid_email_is_rejected(client):
    assert create(client, email="nope").status_code == 400


def test_update_checks_email_against_other_customers(client):
    ann = create(client).json()["data"]
    create(client, name="Bao", email="bao@example.com")

    clash = client.put(
        f"/api/admin/customers/{ann['id']}", json={"name": "Ann", "email": "bao@example.com"}
    )
    assert clash.status_code == 400

    same = client.put(
        f"/api/admin/customers/{ann['id']}",
        json={"name": "Ann Lee", "email": "ann@example.com", "address": "1 Main St", "isActive": False},
    )
    assert same.status_code == 200
    assert same.json()["data"]["address"] == "1 Main St"
    assert same.json()["data"]["isActive"] is False


def test_list_only_shows_customers_and_searches(client, db):
    db.add(models.Customer(name="Admin", email="admin@example.com", role="admin"))
    db.commit()
    create(client)
    create(client, name="Bao", email="bao@example.com")

    listing = client.get("/api/admin/customers").json()
    assert listing["pagination"]["total"] == 2
    assert {c["name"] for c in listing["data"]} == {"Ann Lee", "Bao"}

    found = client.get("/api/admin/customers", params={"search": "BAO@"}).json()
    assert [c["name"] for c in found["data"]] == ["Bao"]


def test_bulk_delete(client, count_rows):
    ids = [create(client, email=f"c{i}@example.com").json()["data"]["id"] for i in range(3)]

    resp = client.post("/api/admin/customers/bulk-delete", json={"customerIds": ids[:2] + [9999]})

    assert resp.status_code == 200
    assert resp.json()["deletedCount"] == 2
    assert count_rows(models.Customer) == 1


def test_bulk_delete_requires_ids(client):
    assert client.post("/api/admin/customers/bulk-delete", json={"customerIds": []}).status_code == 400


def test_deleting_customer_keeps_their_orders(client, catalog, db):
    product, small, _ = catalog
    order = client.post(
        "/api/admin/orders/create",
        json={
            "customerData": {"name": "Ann", "email": "ann@example.com"},
            "items": [{"productId": product.id, "variantId": small.id, "quantity": 1, "price": "19.99"}],
            "totalAmount": "19.99",
        },
    ).json()["data"]

    assert client.delete(f"/api/admin/customers/{order['customerId']}").status_code == 200
    kept = client.get(f"/api/admin/orders/{order['id']}").json()["data"]
    assert kept["customerId"] is None
    assert kept["customerEmail"] == "ann@example.com"


def test_missing_customer_is_404(client):
    resp = client.get("/api/admin/customers/42")
    assert resp.status_code == 404
    assert resp.json()["error"] == "Customer not found"
