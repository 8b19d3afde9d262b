"""
End-to-end flow over HTTP: an admin lists a vehicle, a customer books it,
the admin hands it over and takes it back, and the vehicle is bookable again.
"""
import pytest


@pytest.fixture
def vehicle_id(admin_client):
    r = admin_client.post("/admin/vehicles", json={
        "name": "City Glide", "type": "sedan", "price": 100,
        "image": "/img/City Glide.png", "rating": 4.4,
    })
    assert r.status_code == 201, r.get_json()
    return r.get_json()["id"]


def _book(c, vid, **extra):
    body = {"vehicleId": vid, "pickupDate": "2025-01-10", "returnDate": "2025-01-13"}
    body.update(extra)
    return c.post("/rentals", json=body)


def _ids(resp):
    return [v["id"] for v in resp.get_json()]


def test_full_rental_lifecycle(customer_client, admin_client, vehicle_id):
    assert _ids(customer_client.get("/vehicles")) == [vehicle_id]

    r = _book(customer_client, vehicle_id)
    assert r.status_code == 201, r.get_json()
    receipt = r.get_json()
    assert receipt["status"] == "pending"
    assert receipt["numberOfDays"] == 3
    assert receipt["totalAmount"] == 300
    assert receipt["customerName"] == "Maria Santos"
    assert receipt["customerEmail"] == "renter@example.com"
    assert receipt["display"]["duration"] == "3 Days"
    assert receipt["display"]["total"] == "₱300.00"
    assert receipt["display"]["pickupDate"] == "10/01/2025"
    rid, code = receipt["id"], receipt["confirmationNumber"]

    # Reserved: gone from the bookable list, detail page still works
    assert _ids(customer_client.get("/vehicles")) == []
    assert customer_client.get(f"/vehicles/{vehicle_id}").status_code == 200

    conflict = _book(customer_client, vehicle_id, pickupDate="2026-01-01", returnDate="2026-01-02")
    assert conflict.status_code == 409
    assert conflict.get_json()["error"] == "Conflict"

    assert _ids(customer_client.get("/rentals")) == [rid]
    assert customer_client.get(f"/receipts/{code.lower()}").get_json()["id"] == rid

    # Admin console
    tab = admin_client.get("/admin/rentals").get_json()
    assert tab["status"] == "pending"
    assert [x["id"] for x in tab["rentals"]] == [rid]
    assert tab["counts"]["pending"] == 1

    assert admin_client.post(f"/admin/rentals/{rid}/approve").get_json()["status"] == "active"
    assert admin_client.post(f"/admin/rentals/{rid}/complete").get_json()["status"] == "completed"

    again = admin_client.post(f"/admin/rentals/{rid}/status", json={"status": "active"})
    assert again.status_code == 409
    assert again.get_json()["error"] == "InvalidTransition"

    assert _ids(customer_client.get("/vehicles")) == [vehicle_id]

    dash = admin_client.get("/admin/dashboard").get_json()
    assert dash["completed_rentals"] == 1
    assert dash["total_revenue"] == 300.0

    all_tab = admin_client.get("/admin/rentals?status=all").get_json()
    assert len(all_tab["rentals"]) == 1
    assert admin_client.delete(f"/admin/rentals/{rid}").status_code == 204
    assert admin_client.get(f"/admin/rentals/{rid}").status_code == 404


def test_customer_cancels_own_pending_rental(customer_client, vehicle_id):
    rid = _book(customer_client, vehicle_id).get_json()["id"]
    r = customer_client.post(f"/rentals/{rid}/cancel")
    assert r.status_code == 200
    assert r.get_json()["status"] == "cancelled"

    again = customer_client.post(f"/rentals/{rid}/cancel")
    assert again.status_code == 409


def test_other_customer_cannot_see_or_cancel(app, customer_client, vehicle_id):
    receipt = _book(customer_client, vehicle_id).get_json()

    with app.test_client() as other:
        other.post("/auth/register", json={
            "email": "other@example.com", "password": "Other123",
            "name": "Other", "phone": "0918",
        })
        assert other.get(f"/receipts/{receipt['confirmationNumber']}").status_code == 404
        assert other.post(f"/rentals/{receipt['id']}/cancel").status_code == 403
        assert other.get("/rentals").get_json() == []


def test_invalid_booking_input(customer_client, vehicle_id):
    r = _book(customer_client, vehicle_id, returnDate="2025-01-09")
    assert r.status_code == 400
    assert r.get_json()["error"] == "ValidationError"


def test_profile_update_keeps_booked_identity(customer_client, vehicle_id):
    rid = _book(customer_client, vehicle_id).get_json()["id"]
    r = customer_client.patch("/auth/me", json={"name": "Maria Reyes"})
    assert r.get_json()["name"] == "Maria Reyes"
    rentals = customer_client.get("/rentals").get_json()
    assert [(x["id"], x["customerName"]) for x in rentals] == [(rid, "Maria Santos")]


def test_admin_vehicle_management(admin_client, vehicle_id):
    r = admin_client.patch(f"/admin/vehicles/{vehicle_id}", json={"price": 120})
    assert r.get_json()["price"] == 120
    assert admin_client.delete(f"/admin/vehicles/{vehicle_id}").status_code == 204
    assert admin_client.get(f"/admin/vehicles/{vehicle_id}").status_code == 404


def test_public_image_urls(app, client, vehicle_id):
    app.config["PUBLIC_BASE_URL"] = "https://cdn.example.com"
    [v] = client.get("/vehicles").get_json()
    assert v["image"] == "https://cdn.example.com/img/City%20Glide.png"


def test_rental_stream_sends_list_and_releases_watch(customer_client, app_store):
    resp = customer_client.get("/rentals/stream", buffered=False)
    assert resp.status_code == 200
    assert resp.mimetype == "text/event-stream"
    assert app_store.watch_count("rentals") == 0

    first = next(iter(resp.response))
    if isinstance(first, bytes):
        first = first.decode()
    assert first == "event: rentals\ndata: []\n\n"
    assert app_store.watch_count("rentals") == 1

    resp.close()
    assert app_store.watch_count("rentals") == 0


@pytest.mark.parametrize("field,value", [
    ("name", 12345),
    ("phone", ["0917"]),
    ("confirmationNumber", 123),
])
def test_non_text_booking_fields_rejected(customer_client, vehicle_id, field, value):
    r = _book(customer_client, vehicle_id, **{field: value})
    assert r.status_code == 400
    assert r.get_json()["error"] == "ValidationError"
    assert customer_client.get("/rentals").get_json() == []


def test_non_text_profile_and_vehicle_fields_rejected(customer_client, admin_client, vehicle_id):
    assert customer_client.patch("/auth/me", json={"name": 5}).status_code == 400

    r = admin_client.post("/admin/vehicles", json={"name": 7, "type": "sedan", "price": 10})
    assert r.status_code == 400
    r = admin_client.patch(f"/admin/vehicles/{vehicle_id}", json={"description": {"x": 1}})
    assert r.status_code == 400


def test_non_text_credentials_rejected(client):
    r = client.post("/auth/register", json={
        "email": 42, "password": "Secret123", "name": "Ana", "phone": "0917",
    })
    assert r.status_code == 400
    r = client.post("/auth/login", json={"email": "renter@example.com", "password": 123456})
    assert r.status_code == 400
