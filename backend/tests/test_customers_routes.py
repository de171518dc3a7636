from shopledger.services import sales_service


def test_customer_crud(client, db_session):
    resp = client.post("/api/customers", json={"name": "Malee", "phone": "0891112222", "address": ""})
    assert resp.status_code == 201
    created = resp.get_json()
    assert created["address"] is None

    resp = client.put(f"/api/customers/{created['id']}", json={"address": "Chiang Mai"})
    assert resp.status_code == 200
    assert resp.get_json()["address"] == "Chiang Mai"

    assert client.delete(f"/api/customers/{created['id']}").status_code == 200
    assert client.get(f"/api/customers/{created['id']}").status_code == 404


def test_customer_requires_name(client, db_session):
    resp = client.post("/api/customers", json={"phone": "0800000000"})
    assert resp.status_code == 400


def test_search_matches_name_or_phone(client, make_customer):
    make_customer(name="Anong", phone="0811111111")
    make_customer(name="Boonmee", phone="0822222222")

    by_name = client.get("/api/customers?search=anon").get_json()
    assert [c["name"] for c in by_name["data"]] == ["Anong"]

    by_phone = client.get("/api/customers?search=082").get_json()
    assert [c["name"] for c in by_phone["data"]] == ["Boonmee"]


def test_customer_sales_history(client, customer, product):
    for qty in (1, 2, 3):
        sales_service.create_sale(customer.id, [{"product_id": product.id, "quantity": qty}])

    body = client.get(f"/api/customers/{customer.id}/sales?limit=2").get_json()

    assert body["customer"]["name"] == "Somchai"
    assert body["total_items"] == 3
    assert body["total_pages"] == 2
    assert len(body["data"]) == 2
    # newest first
    assert body["data"][0]["items"][0]["quantity"] == 3


def test_customer_sales_history_defaults_to_five(client, customer, product):
    for _ in range(6):
        sales_service.create_sale(customer.id, [{"product_id": product.id, "quantity": 1}])

    body = client.get(f"/api/customers/{customer.id}/sales").get_json()
    assert body["items_per_page"] == 5
    assert len(body["data"]) == 5


def test_customer_sales_for_unknown_customer(client, db_session):
    assert client.get("/api/customers/999/sales").status_code == 404


def test_outstanding_customer_count(client, make_customer, product):
    a = make_customer(name="A")
    b = make_customer(name="B")
    c = make_customer(name="C")
    item = [{"product_id": product.id, "quantity": 1}]
    sales_service.create_sale(a.id, item)
    sales_service.create_sale(a.id, item, amount_paid_cents=40)
    sales_service.create_sale(b.id, item, amount_paid_cents=100)
    sales_service.create_sale(c.id, item, amount_paid_cents=10)

    assert client.get("/api/customers/outstanding/count").get_json() == {"count": 2}
