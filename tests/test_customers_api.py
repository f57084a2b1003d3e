CUSTOMER = {
    "name": "Suresh Babu",
    "aadharNo": "111122223333",
    "phoneNo": "9988776655",
    "address": "7 Gandhi Street",
}


def _create(client, **overrides):
    data = dict(CUSTOMER)
    data.update(overrides)
    return client.post("/customers", json=data)


def test_create_and_get_customer(client):
    resp = _create(client)
    assert resp.status_code == 201
    created = resp.get_json()
    assert created["aadharNo"] == "111122223333"

    resp = client.get(f"/customers/{created['id']}")
    assert resp.status_code == 200
    assert resp.get_json()["name"] == "Suresh Babu"


def test_duplicate_aadhar_is_conflict(client):
    _create(client)
    resp = _create(client, name="Someone Else", phoneNo="9000000000")

    assert resp.status_code == 409
    assert "Aadhar" in resp.get_json()["error"]
    assert len(client.get("/customers").get_json()) == 1


def test_invalid_customer_is_rejected(client):
    resp = _create(client, phoneNo="12")
    assert resp.status_code == 400
    assert resp.get_json()["field"] == "phoneNo"


def test_list_customers_newest_first_and_search(client):
    _create(client, name="First", aadharNo="100000000001")
    _create(client, name="Second", aadharNo="100000000002", phoneNo="9111111111")

    names = [c["name"] for c in client.get("/customers").get_json()]
    assert names == ["Second", "First"]

    found = client.get("/customers?q=9111").get_json()
    assert [c["name"] for c in found] == ["Second"]
    found = client.get("/customers?q=first").get_json()
    assert [c["name"] for c in found] == ["First"]


def test_update_customer(client):
    customer_id = _create(client).get_json()["id"]

    resp = client.put(f"/customers/{customer_id}", json={"address": "New Address"})
    assert resp.status_code == 200
    assert resp.get_json()["address"] == "New Address"
    assert resp.get_json()["name"] == "Suresh Babu"


def test_full_record_update_replaces_every_field(client):
    customer_id = _create(client).get_json()["id"]
    record = {
        "name": "Suresh B",
        "aadharNo": "111122224444",
        "phoneNo": "9000000000",
        "address": "9 Temple Road",
    }

    resp = client.put(f"/customers/{customer_id}", json=record)
    assert resp.status_code == 200
    updated = client.get(f"/customers/{customer_id}").get_json()
    assert {key: updated[key] for key in record} == record

    resp = client.put(f"/customers/{customer_id}", json={"name": "  "})
    assert resp.status_code == 400
    assert resp.get_json()["field"] == "name"


def test_update_customer_to_taken_aadhar(client):
    _create(client, aadharNo="100000000001")
    other_id = _create(client, aadharNo="100000000002").get_json()["id"]

    resp = client.put(f"/customers/{other_id}", json={"aadharNo": "100000000001"})
    assert resp.status_code == 409


def test_delete_customer(client):
    customer_id = _create(client).get_json()["id"]

    resp = client.delete(f"/customers/{customer_id}")
    assert resp.status_code == 200
    assert client.get(f"/customers/{customer_id}").status_code == 404
    assert client.delete(f"/customers/{customer_id}").status_code == 404


def test_unknown_customer(client):
    resp = client.get("/customers/does-not-exist")
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "Customer not found"
