from conftest import guest
from models import db
from models.audit_log import AuditLog
from models.user import User
import bcrypt

CHECK_IN = "2099-02-15"
CHECK_OUT = "2099-02-17"


def _room(client, **overrides):
    body = {"name": "Garden Cottage", "price": 1800, "category": "Cottage", "perNight": True}
    body.update(overrides)
    res = client.post("/api/rooms", json=body)
    assert res.status_code == 201
    return res.get_json()["data"]["id"]


def _booking(client, room_id, **overrides):
    body = {
        "guest": guest(),
        "checkIn": CHECK_IN,
        "checkOut": CHECK_OUT,
        "items": [{"id": room_id, "price": 1800, "qty": 1, "perNight": True, "category": "Cottage"}],
        "paymentMethod": "gcash",
    }
    body.update(overrides)
    return client.post("/api/bookings", json=body)


class TestEnvelope:
    def test_health(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.get_json() == {"success": True, "status": "ok"}
        assert res.headers["X-Content-Type-Options"] == "nosniff"

    def test_unknown_route_is_json_404(self, client):
        res = client.get("/api/nowhere")
        assert res.status_code == 404
        assert res.get_json()["success"] is False

    def test_wrong_method_is_405(self, client):
        res = client.patch("/health")
        assert res.status_code == 405
        assert res.get_json()["success"] is False


class TestBookingsApi:
    def test_create_and_fetch(self, client):
        room_id = _room(client)
        res = _booking(client, room_id, total=3600)
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["total"] == 3600
        assert data["status"] == "pending"

        ref = data["booking_reference"]
        res = client.get(f"/api/bookings/reference/{ref}")
        assert res.status_code == 200
        assert res.get_json()["data"]["items"][0]["total_price"] == 3600

        res = client.get(f"/api/bookings/{data['booking_id']}/details")
        details = res.get_json()["data"]
        assert details["customer"]["email"] == "maria@example.com"
        assert details["payments"][0]["payment_reference"] == data["payment_reference"]

        res = client.get(f"/api/bookings/occupied-dates/{room_id}")
        assert res.get_json()["data"] == ["2099-02-15", "2099-02-16"]

    def test_confirm_alias(self, client):
        room_id = _room(client)
        body = {
            "guest": guest(),
            "checkIn": CHECK_IN,
            "checkOut": CHECK_OUT,
            "items": [{"id": room_id, "price": 1800, "perNight": True}],
        }
        assert client.post("/api/bookings/confirm", json=body).status_code == 201

    def test_missing_guest_is_400(self, client):
        room_id = _room(client)
        res = _booking(client, room_id, guest=None)
        assert res.status_code == 400
        assert res.get_json() == {"success": False, "error": "Guest information is required"}

    def test_double_booking_is_400(self, client):
        room_id = _room(client)
        assert _booking(client, room_id).status_code == 201
        res = _booking(client, room_id, guest=guest(email="late@example.com"))
        assert res.status_code == 400
        assert res.get_json()["details"]["occupied"] == ["2099-02-15", "2099-02-16"]

    def test_unknown_booking_is_404(self, client):
        assert client.get("/api/bookings/9999").status_code == 404
        assert client.get("/api/bookings/reference/BK000").status_code == 404

    def test_cancel_and_update(self, client):
        room_id = _room(client)
        booking_id = _booking(client, room_id).get_json()["data"]["booking_id"]

        res = client.put(f"/api/bookings/{booking_id}", json={"booking_status": "Confirmed"})
        assert res.status_code == 200
        assert res.get_json()["data"]["booking_status"] == "Confirmed"

        res = client.delete(f"/api/bookings/{booking_id}", json={"reason": "Typhoon"})
        assert res.status_code == 200
        assert res.get_json()["data"]["booking_status"] == "Cancelled"
        assert client.get(f"/api/bookings/occupied-dates/{room_id}").get_json()["data"] == []

        res = client.put(f"/api/bookings/{booking_id}", json={"booking_status": "Pending"})
        assert res.status_code == 400

    def test_update_payment(self, client):
        room_id = _room(client)
        data = _booking(client, room_id).get_json()["data"]
        res = client.post("/api/bookings/update-payment", json={
            "bookingId": data["booking_id"],
            "paymentReference": data["payment_reference"],
            "status": "paid",
            "paymentIntentId": "pi_abc",
        })
        assert res.status_code == 200
        assert res.get_json()["data"]["status"] == "paid"

        booking = client.get(f"/api/bookings/{data['booking_id']}").get_json()["data"]
        assert booking["booking_status"] == "Confirmed"
        assert booking["payment_status"] == "Paid"

    def test_list(self, client):
        room_id = _room(client)
        _booking(client, room_id)
        res = client.get("/api/bookings?status=Pending")
        assert res.get_json()["count"] == 1
        assert client.get("/api/bookings?startDate=garbage").status_code == 400

    def test_non_object_body_is_400(self, client):
        res = client.post("/api/bookings", json=[1])
        assert res.status_code == 400
        assert res.get_json()["error"] == "Request body must be a JSON object"
        assert client.put("/api/bookings/1", json="Confirmed").status_code == 400
        assert client.post("/api/bookings/update-payment", json=[]).status_code == 400

    def test_non_finite_quantity_is_400(self, client):
        room_id = _room(client)
        body = (
            '{"guest": {"firstName": "Maria", "lastName": "Santos", "email": "maria@example.com",'
            ' "phone": "+639171234567"}, "checkIn": "2099-02-15", "checkOut": "2099-02-17",'
            ' "items": [{"id": %d, "price": 1800, "qty": Infinity, "perNight": true}]}' % room_id
        )
        res = client.post("/api/bookings", data=body, content_type="application/json")
        assert res.status_code == 400
        assert res.get_json()["success"] is False

    def test_non_string_text_is_400(self, client):
        room_id = _room(client)
        booking_id = _booking(client, room_id).get_json()["data"]["booking_id"]
        res = client.delete(f"/api/bookings/{booking_id}", json={"reason": ["Typhoon"]})
        assert res.status_code == 400
        res = _booking(client, room_id, paymentMethod={"type": "gcash"}, checkIn="2099-03-01", checkOut="2099-03-02")
        assert res.status_code == 400
        assert res.get_json()["error"] == "Text fields must be strings"


class TestCustomersAndRooms:
    def test_check_email(self, client):
        room_id = _room(client)
        _booking(client, room_id)

        res = client.get("/api/customers/check-email/Maria@Example.com")
        body = res.get_json()
        assert body["exists"] is True
        assert body["customer"]["firstName"] == "Maria"
        assert client.get("/api/customers/check-email/nobody@example.com").get_json()["exists"] is False

    def test_room_deactivation_hides_it(self, client):
        room_id = _room(client)
        assert client.delete(f"/api/rooms/{room_id}").status_code == 200
        assert client.get("/api/rooms").get_json()["count"] == 0
        assert client.get("/api/rooms?include_inactive=true").get_json()["count"] == 1

        # retired rooms cannot be booked
        assert _booking(client, room_id).status_code == 404

    def test_room_validation(self, client):
        assert client.post("/api/rooms", json={"name": "X"}).status_code == 400
        assert client.post("/api/rooms", json={"name": "X", "price": 1, "category": "Boat"}).status_code == 400


class TestUsersApi:
    def test_create_user(self, app, client):
        res = client.post("/api/users", json={
            "email": "Owner@Resort.ph", "password": "sunset2026", "firstName": "Lia", "lastName": "Cruz",
        })
        assert res.status_code == 201
        data = res.get_json()["data"]
        assert data["email"] == "owner@resort.ph"
        assert data["role"] == "customer"
        assert data["customer_id"] is not None

        with app.app_context():
            user = db.session.get(User, data["id"])
            assert bcrypt.checkpw(b"sunset2026", user.password_hash.encode("utf-8"))
            assert not bcrypt.checkpw(b"wrong-pass1", user.password_hash.encode("utf-8"))
            assert AuditLog.query.filter_by(action="USER_CREATE").count() == 1

    def test_duplicate_email(self, client):
        body = {"email": "a@b.ph", "password": "sunset2026"}
        assert client.post("/api/users", json=body).status_code == 201
        res = client.post("/api/users", json=body)
        assert res.status_code == 400
        assert res.get_json()["error"] == "Email already registered"

    def test_weak_password(self, client):
        res = client.post("/api/users", json={"email": "c@d.ph", "password": "short"})
        assert res.status_code == 400
        assert "Password must be at least 8 characters" in res.get_json()["details"]

    def test_get_user(self, client):
        user_id = client.post("/api/users", json={"email": "e@f.ph", "password": "sunset2026"}).get_json()["data"]["id"]
        assert client.get(f"/api/users/{user_id}").status_code == 200
        assert client.get("/api/users/9999").status_code == 404


class TestAuditLogs:
    def test_actions_are_recorded(self, client):
        room_id = _room(client)
        _booking(client, room_id)
        res = client.get("/api/audit-logs?action=BOOKING_CREATE")
        rows = res.get_json()["data"]
        assert len(rows) == 1
        assert rows[0]["entity"] == "booking"
