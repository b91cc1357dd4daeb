from datetime import datetime, timedelta, timezone

import pytest

from conftest import create_customer, create_shipment


@pytest.fixture
def customer(client, owner):
    return create_customer(client, owner["headers"])


def _parse(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def test_decimal_amounts_round_trip(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"], cost="100.00", calculatedTotal="110.00")
    assert shipment["cost"] == "100.00"
    assert shipment["calculatedTotal"] == "110.00"

    fetched = client.get(f"/api/shipments/{shipment['id']}", headers=owner["headers"]).json()["data"]
    assert fetched["cost"] == "100.00"
    assert fetched["calculatedTotal"] == "110.00"
    assert fetched["taxAmount"] == "10.00"


def test_numeric_amounts_are_normalised(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"], cost=100, calculatedTotal=118.5)
    assert shipment["cost"] == "100.00"
    assert shipment["calculatedTotal"] == "118.50"


def test_new_shipment_defaults(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"], type="local", mode="air")
    assert shipment["type"] == "LOCAL"
    assert shipment["mode"] == "AIR"
    assert shipment["isDelivered"] is False
    assert shipment["deliveryDate"] is None
    assert shipment["status"] == "pending"
    assert shipment["daysInTransit"] is None
    assert shipment["route"] == "Mumbai → Delhi"
    assert shipment["userId"] == owner["user"]["id"]


@pytest.mark.parametrize("overrides,field", [
    ({"cost": "100.00", "calculatedTotal": "90.00"}, "request"),
    ({"cost": "-5"}, "cost"),
    ({"cost": "10.999"}, "cost"),
    ({"type": "ORBITAL"}, "type"),
    ({"mode": "TELEPORT"}, "mode"),
    ({"startLocation": "X"}, "startLocation"),
])
def test_create_shipment_validation(client, owner, customer, overrides, field):
    payload = {
        "customerId": customer["id"],
        "type": "NATIONAL",
        "mode": "LAND",
        "startLocation": "Mumbai",
        "endLocation": "Delhi",
        "cost": "100.00",
        "calculatedTotal": "110.00",
    }
    payload.update(overrides)
    resp = client.post("/api/shipments/", json=payload, headers=owner["headers"])
    assert resp.status_code == 422
    assert field in resp.json()["error"]["details"]


def test_create_for_foreign_customer_is_not_found(client, owner, stranger):
    foreign = create_customer(client, stranger["headers"])
    resp = client.post("/api/shipments/", headers=owner["headers"], json={
        "customerId": foreign["id"],
        "type": "LOCAL",
        "mode": "LAND",
        "startLocation": "Andheri",
        "endLocation": "Bandra",
        "cost": "10.00",
        "calculatedTotal": "11.80",
    })
    assert resp.status_code == 404
    assert resp.json()["message"] == "Customer not found"


def test_mark_delivered_is_idempotent(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"])
    url = f"/api/shipments/{shipment['id']}/deliver"

    first = client.patch(url, headers=owner["headers"]).json()["data"]
    assert first["isDelivered"] is True
    assert first["deliveryDate"] is not None
    assert first["status"] == "delivered"

    later = (datetime.now(timezone.utc) + timedelta(days=3)).isoformat()
    second = client.patch(url, json={"deliveryDate": later}, headers=owner["headers"]).json()["data"]
    assert second["isDelivered"] is True
    assert _parse(second["deliveryDate"]) == _parse(first["deliveryDate"])


def test_mark_delivered_with_explicit_date(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"])
    resp = client.patch(
        f"/api/shipments/{shipment['id']}/deliver",
        json={"deliveryDate": "2030-01-15"},
        headers=owner["headers"],
    )
    assert resp.status_code == 200
    assert _parse(resp.json()["data"]["deliveryDate"]) == datetime(2030, 1, 15, tzinfo=timezone.utc)


def test_update_delivery_flag_keeps_date_consistent(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"])
    url = f"/api/shipments/{shipment['id']}"

    delivered = client.put(url, json={"isDelivered": True}, headers=owner["headers"]).json()["data"]
    assert delivered["isDelivered"] is True
    assert delivered["deliveryDate"] is not None

    again = client.put(url, json={"isDelivered": True, "deliveryDate": "2031-05-01"}, headers=owner["headers"])
    assert again.status_code == 200
    assert _parse(again.json()["data"]["deliveryDate"]) == _parse(delivered["deliveryDate"])

    reverted = client.put(url, json={"isDelivered": False}, headers=owner["headers"]).json()["data"]
    assert reverted["isDelivered"] is False
    assert reverted["deliveryDate"] is None


def test_delivery_date_of_delivered_shipment_can_be_corrected(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"])
    url = f"/api/shipments/{shipment['id']}"
    client.patch(f"{url}/deliver", headers=owner["headers"])

    resp = client.put(url, json={"deliveryDate": "2030-06-15"}, headers=owner["headers"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["isDelivered"] is True
    assert _parse(data["deliveryDate"]) == datetime(2030, 6, 15, tzinfo=timezone.utc)

    fetched = client.get(url, headers=owner["headers"]).json()["data"]
    assert _parse(fetched["deliveryDate"]) == datetime(2030, 6, 15, tzinfo=timezone.utc)


def test_delivery_date_alone_is_rejected_for_pending_shipment(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"])
    resp = client.put(
        f"/api/shipments/{shipment['id']}", json={"deliveryDate": "2030-01-01"}, headers=owner["headers"]
    )
    assert resp.status_code == 422
    assert "deliveryDate" in resp.json()["error"]["details"]


def test_update_checks_total_against_merged_cost(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"], cost="100.00", calculatedTotal="110.00")
    url = f"/api/shipments/{shipment['id']}"

    resp = client.put(url, json={"cost": "120.00"}, headers=owner["headers"])
    assert resp.status_code == 422
    assert "calculatedTotal" in resp.json()["error"]["details"]

    resp = client.put(url, json={"cost": "120.00", "calculatedTotal": "141.60"}, headers=owner["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"]["cost"] == "120.00"


def test_list_filters(client, owner, customer):
    other = create_customer(client, owner["headers"])
    local = create_shipment(client, owner["headers"], customer["id"], type="LOCAL",
                            startLocation="Andheri", endLocation="Bandra")
    create_shipment(client, owner["headers"], customer["id"], type="INTERNATIONAL", mode="WATER",
                    endLocation="Singapore")
    national = create_shipment(client, owner["headers"], other["id"])
    client.patch(f"/api/shipments/{national['id']}/deliver", headers=owner["headers"])

    def ids(query):
        resp = client.get(f"/api/shipments/?{query}", headers=owner["headers"])
        assert resp.status_code == 200, resp.text
        return {s["id"] for s in resp.json()["data"]["items"]}

    assert ids("type=local") == {local["id"]}
    assert len(ids("mode=WATER")) == 1
    assert ids("isDelivered=true") == {national["id"]}
    assert len(ids("isDelivered=false")) == 2
    assert ids(f"customerId={other['id']}") == {national["id"]}
    assert ids("search=bandra") == {local["id"]}
    assert len(ids("startDate=2000-01-01")) == 3
    assert ids("endDate=2000-01-01") == set()


def test_list_rejects_unknown_type(client, owner):
    resp = client.get("/api/shipments/?type=ORBITAL", headers=owner["headers"])
    assert resp.status_code == 422
    assert "type" in resp.json()["error"]["details"]


def test_sort_by_cost(client, owner, customer):
    for cost in ("30.00", "10.00", "20.00"):
        create_shipment(client, owner["headers"], customer["id"], cost=cost, calculatedTotal=cost)
    resp = client.get("/api/shipments/?sortBy=cost&sortOrder=asc", headers=owner["headers"])
    assert [s["cost"] for s in resp.json()["data"]["items"]] == ["10.00", "20.00", "30.00"]


def test_huge_page_number_returns_empty_page(client, owner, customer):
    create_shipment(client, owner["headers"], customer["id"])
    resp = client.get("/api/shipments/?page=100000000000000000&limit=100", headers=owner["headers"])
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["items"] == []
    assert data["meta"]["total"] == 1
    assert data["meta"]["hasNextPage"] is False


def test_pending_and_delivered_lists(client, owner, customer):
    pending = create_shipment(client, owner["headers"], customer["id"])
    delivered = create_shipment(client, owner["headers"], customer["id"])
    client.patch(f"/api/shipments/{delivered['id']}/deliver", headers=owner["headers"])

    pending_ids = [s["id"] for s in client.get("/api/shipments/pending", headers=owner["headers"]).json()["data"]]
    delivered_ids = [s["id"] for s in client.get("/api/shipments/delivered", headers=owner["headers"]).json()["data"]]
    assert pending_ids == [pending["id"]]
    assert delivered_ids == [delivered["id"]]


def test_shipment_stats(client, owner, stranger, customer):
    create_shipment(client, owner["headers"], customer["id"], type="LOCAL", cost="100.00", calculatedTotal="118.00")
    second = create_shipment(client, owner["headers"], customer["id"], type="NATIONAL", mode="AIR",
                             cost="50.00", calculatedTotal="59.00")
    client.patch(f"/api/shipments/{second['id']}/deliver", headers=owner["headers"])
    foreign_customer = create_customer(client, stranger["headers"])
    create_shipment(client, stranger["headers"], foreign_customer["id"], cost="999.00", calculatedTotal="999.00")

    stats = client.get("/api/shipments/stats", headers=owner["headers"]).json()["data"]
    assert stats["totalShipments"] == 2
    assert stats["pendingShipments"] == 1
    assert stats["deliveredShipments"] == 1
    assert stats["totalRevenue"] == "177.00"
    assert stats["averageCost"] == "75.00"
    assert stats["byType"] == {"LOCAL": 1, "NATIONAL": 1}
    assert stats["byMode"] == {"LAND": 1, "AIR": 1}
    assert len(stats["recentShipments"]) == 2


def test_get_with_customer(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"])
    plain = client.get(f"/api/shipments/{shipment['id']}", headers=owner["headers"]).json()["data"]
    assert plain["customer"] is None

    resp = client.get(f"/api/shipments/{shipment['id']}?includeCustomer=true", headers=owner["headers"])
    assert resp.json()["data"]["customer"]["id"] == customer["id"]


def test_foreign_shipment_is_not_found(client, owner, stranger):
    foreign_customer = create_customer(client, stranger["headers"])
    shipment = create_shipment(client, stranger["headers"], foreign_customer["id"])
    url = f"/api/shipments/{shipment['id']}"

    responses = [
        client.get(url, headers=owner["headers"]),
        client.put(url, json={"cost": "1.00"}, headers=owner["headers"]),
        client.patch(f"{url}/deliver", headers=owner["headers"]),
        client.delete(url, headers=owner["headers"]),
    ]
    for resp in responses:
        assert resp.status_code == 404
        assert resp.json()["message"] == "Shipment not found"

    untouched = client.get(url, headers=stranger["headers"]).json()["data"]
    assert untouched["isDelivered"] is False
    assert untouched["cost"] == "100.00"


def test_delete_shipment(client, owner, customer):
    shipment = create_shipment(client, owner["headers"], customer["id"])
    resp = client.delete(f"/api/shipments/{shipment['id']}", headers=owner["headers"])
    assert resp.status_code == 200
    assert client.get(f"/api/shipments/{shipment['id']}", headers=owner["headers"]).status_code == 404
    # the customer can go once its shipments are gone
    assert client.delete(f"/api/customers/{customer['id']}", headers=owner["headers"]).status_code == 200


def test_bulk_delete_is_all_or_nothing(client, owner, stranger, customer):
    own = create_shipment(client, owner["headers"], customer["id"])
    foreign_customer = create_customer(client, stranger["headers"])
    foreign = create_shipment(client, stranger["headers"], foreign_customer["id"])

    resp = client.request(
        "DELETE", "/api/shipments/bulk", json={"ids": [own["id"], foreign["id"]]}, headers=owner["headers"]
    )
    assert resp.status_code == 404
    assert client.get(f"/api/shipments/{own['id']}", headers=owner["headers"]).status_code == 200
    assert client.get(f"/api/shipments/{foreign['id']}", headers=stranger["headers"]).status_code == 200

    resp = client.request("DELETE", "/api/shipments/bulk", json={"ids": [own["id"]]}, headers=owner["headers"])
    assert resp.status_code == 200
    assert resp.json()["data"] == {"deleted": 1}
