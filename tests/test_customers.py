from conftest import create_customer, create_shipment, next_phone


def test_list_customers_empty(client, owner):
    resp = client.get("/api/customers/", headers=owner["headers"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["items"] == []
    assert data["meta"] == {
        "page": 1,
        "limit": 20,
        "total": 0,
        "totalPages": 0,
        "hasNextPage": False,
        "hasPreviousPage": False,
    }


def test_customers_require_authentication(client):
    assert client.get("/api/customers/").status_code == 401
    assert client.post("/api/customers/", json={}).status_code == 401


def test_create_customer_without_email(client, owner):
    customer = create_customer(client, owner["headers"], email="")
    assert customer["email"] is None
    assert customer["userId"] == owner["user"]["id"]


def test_create_customer_lowercases_email(client, owner):
    customer = create_customer(client, owner["headers"], email="Asha@Example.COM")
    assert customer["email"] == "asha@example.com"


def test_duplicate_phone_conflicts_within_tenant(client, owner, stranger):
    phone = next_phone()
    create_customer(client, owner["headers"], phone=phone)
    resp = client.post("/api/customers/", headers=owner["headers"], json={
        "name": "Second Customer", "phone": phone, "address": "99 Park Street, Kolkata",
    })
    assert resp.status_code == 409
    assert resp.json()["error"]["code"] == "CONFLICT"

    # another tenant may reuse the number
    create_customer(client, stranger["headers"], phone=phone)


def test_duplicate_email_conflicts_within_tenant(client, owner):
    create_customer(client, owner["headers"], email="asha@example.com")
    resp = client.post("/api/customers/", headers=owner["headers"], json={
        "name": "Second Customer", "phone": next_phone(),
        "address": "99 Park Street, Kolkata", "email": "ASHA@example.com",
    })
    assert resp.status_code == 409


def test_create_customer_validation(client, owner):
    resp = client.post("/api/customers/", headers=owner["headers"], json={
        "name": "A", "phone": "abc", "address": "x",
    })
    assert resp.status_code == 422
    details = resp.json()["error"]["details"]
    assert {"name", "phone", "address"} <= set(details)


def test_pagination_limit_is_clamped(client, owner):
    for _ in range(3):
        create_customer(client, owner["headers"])
    resp = client.get("/api/customers/?limit=500", headers=owner["headers"])
    assert resp.status_code == 200
    meta = resp.json()["data"]["meta"]
    assert meta["limit"] == 100
    assert meta["total"] == 3


def test_page_beyond_last_is_empty(client, owner):
    for _ in range(5):
        create_customer(client, owner["headers"])
    resp = client.get("/api/customers/?page=4&limit=2", headers=owner["headers"])
    data = resp.json()["data"]
    assert data["items"] == []
    assert data["meta"]["total"] == 5
    assert data["meta"]["totalPages"] == 3
    assert data["meta"]["hasNextPage"] is False
    assert data["meta"]["hasPreviousPage"] is True


def test_huge_page_number_returns_empty_page(client, owner):
    create_customer(client, owner["headers"])
    resp = client.get("/api/customers/?page=100000000000000000&limit=100", headers=owner["headers"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["items"] == []
    assert data["meta"]["total"] == 1
    assert data["meta"]["page"] == 100000000000000000
    assert data["meta"]["hasNextPage"] is False


def test_pages_do_not_overlap(client, owner):
    for _ in range(5):
        create_customer(client, owner["headers"])
    first = client.get("/api/customers/?page=1&limit=3", headers=owner["headers"]).json()["data"]
    second = client.get("/api/customers/?page=2&limit=3", headers=owner["headers"]).json()["data"]
    ids = [c["id"] for c in first["items"] + second["items"]]
    assert len(ids) == len(set(ids)) == 5
    assert first["meta"]["hasNextPage"] is True


def test_search_and_sort(client, owner):
    create_customer(client, owner["headers"], name="Zara Khan", address="1 Linking Road, Mumbai")
    create_customer(client, owner["headers"], name="Arjun Mehta", address="7 Anna Salai, Chennai")
    create_customer(client, owner["headers"], name="Meera Nair", address="3 Brigade Road, Mumbai")

    resp = client.get("/api/customers/?search=mumbai&sortBy=name&sortOrder=asc", headers=owner["headers"])
    names = [c["name"] for c in resp.json()["data"]["items"]]
    assert names == ["Meera Nair", "Zara Khan"]

    resp = client.get("/api/customers/search?query=arjun", headers=owner["headers"])
    assert [c["name"] for c in resp.json()["data"]] == ["Arjun Mehta"]


def test_invalid_sort_field_rejected(client, owner):
    resp = client.get("/api/customers/?sortBy=password", headers=owner["headers"])
    assert resp.status_code == 422


def test_search_only_sees_own_customers(client, owner, stranger):
    create_customer(client, stranger["headers"], name="Hidden Person")
    resp = client.get("/api/customers/search?query=Hidden", headers=owner["headers"])
    assert resp.json()["data"] == []


def test_get_update_delete_own_customer(client, owner):
    customer = create_customer(client, owner["headers"], email="asha@example.com")
    url = f"/api/customers/{customer['id']}"

    resp = client.get(url, headers=owner["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["name"] == customer["name"]

    resp = client.put(url, json={"name": "Asha V.", "email": ""}, headers=owner["headers"])
    assert resp.status_code == 200
    updated = resp.json()["data"]
    assert updated["name"] == "Asha V."
    assert updated["email"] is None
    assert updated["phone"] == customer["phone"]

    resp = client.delete(url, headers=owner["headers"])
    assert resp.status_code == 200
    assert client.get(url, headers=owner["headers"]).status_code == 404


def test_update_phone_conflict(client, owner):
    first = create_customer(client, owner["headers"])
    second = create_customer(client, owner["headers"])
    resp = client.put(
        f"/api/customers/{second['id']}", json={"phone": first["phone"]}, headers=owner["headers"]
    )
    assert resp.status_code == 409


def test_foreign_customer_is_not_found(client, owner, stranger):
    customer = create_customer(client, stranger["headers"], name="Secret Customer")
    url = f"/api/customers/{customer['id']}"

    responses = [
        client.get(url, headers=owner["headers"]),
        client.put(url, json={"name": "Hijacked"}, headers=owner["headers"]),
        client.delete(url, headers=owner["headers"]),
    ]
    for resp in responses:
        assert resp.status_code == 404
        assert resp.json()["message"] == "Customer not found"
        assert "Secret Customer" not in resp.text

    still_there = client.get(url, headers=stranger["headers"]).json()["data"]
    assert still_there["name"] == "Secret Customer"


def test_unknown_customer_matches_foreign_customer(client, owner):
    resp = client.get("/api/customers/00000000-0000-4000-8000-000000000000", headers=owner["headers"])
    assert resp.status_code == 404
    assert resp.json()["message"] == "Customer not found"


def test_cannot_delete_customer_with_shipments(client, owner):
    customer = create_customer(client, owner["headers"])
    create_shipment(client, owner["headers"], customer["id"])
    resp = client.delete(f"/api/customers/{customer['id']}", headers=owner["headers"])
    assert resp.status_code == 409
    assert client.get(f"/api/customers/{customer['id']}", headers=owner["headers"]).status_code == 200


def test_customer_stats(client, owner, stranger):
    create_customer(client, owner["headers"])
    create_customer(client, owner["headers"])
    create_customer(client, stranger["headers"])
    resp = client.get("/api/customers/stats", headers=owner["headers"])
    assert resp.json()["data"] == {"totalCustomers": 2}


class TestBulkDelete:
    def test_deletes_all_owned(self, client, owner):
        ids = [create_customer(client, owner["headers"])["id"] for _ in range(3)]
        resp = client.request("DELETE", "/api/customers/bulk", json={"ids": ids}, headers=owner["headers"])
        assert resp.status_code == 200
        assert resp.json()["data"] == {"deleted": 3}
        listing = client.get("/api/customers/", headers=owner["headers"]).json()["data"]
        assert listing["meta"]["total"] == 0

    def test_foreign_id_aborts_whole_batch(self, client, owner, stranger):
        own = create_customer(client, owner["headers"])
        foreign = create_customer(client, stranger["headers"])
        resp = client.request(
            "DELETE", "/api/customers/bulk", json={"ids": [own["id"], foreign["id"]]}, headers=owner["headers"]
        )
        assert resp.status_code == 404
        assert client.get(f"/api/customers/{own['id']}", headers=owner["headers"]).status_code == 200
        assert client.get(f"/api/customers/{foreign['id']}", headers=stranger["headers"]).status_code == 200

    def test_customer_with_shipments_aborts_whole_batch(self, client, owner):
        busy = create_customer(client, owner["headers"])
        idle = create_customer(client, owner["headers"])
        create_shipment(client, owner["headers"], busy["id"])
        resp = client.request(
            "DELETE", "/api/customers/bulk", json={"ids": [idle["id"], busy["id"]]}, headers=owner["headers"]
        )
        assert resp.status_code == 409
        assert client.get(f"/api/customers/{idle['id']}", headers=owner["headers"]).status_code == 200

    def test_empty_batch_rejected(self, client, owner):
        resp = client.request("DELETE", "/api/customers/bulk", json={"ids": []}, headers=owner["headers"])
        assert resp.status_code == 422
