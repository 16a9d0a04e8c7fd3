import pytest
import requests

from conftest import make_room, guest
from models import db
from models.booking import Booking
from models.payment import Payment
from services import booking_service, payment_gateways
from services.errors import UpstreamServiceError


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code
        self.text = str(payload)

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        return self._payload


@pytest.fixture
def booked(app):
    """A pending booking; yields (booking_id, booking_reference, payment_id)."""
    with app.app_context():
        room = make_room()
        result = booking_service.create_booking(
            guest(), "2099-02-15", "2099-02-17",
            [{"item_id": room.id, "price": "2500", "perNight": True}],
            payment_method="gcash",
        )
        db.session.remove()
    return result["booking_id"], result["booking_reference"], result["payment_id"]


def _state(app, payment_id):
    with app.app_context():
        payment = db.session.get(Payment, payment_id)
        booking = db.session.get(Booking, payment.booking_id)
        return payment.status, payment.gateway_reference, booking.booking_status, booking.payment_status


def _fake_gateway(monkeypatch, payload, status_code=200, calls=None):
    def fake_request(method, url, json=None, auth=None, timeout=None):
        if calls is not None:
            calls.append({"method": method, "url": url, "json": json, "auth": auth})
        return FakeResponse(payload, status_code)

    monkeypatch.setattr(payment_gateways.requests, "request", fake_request)


class TestPayMongo:
    def test_payment_link(self, app, client, booked, monkeypatch):
        booking_id, reference, payment_id = booked
        calls = []
        _fake_gateway(monkeypatch, {"data": {"id": "link_xyz", "attributes": {
            "checkout_url": "https://pm.link/resort/xyz",
            "reference_number": "Ab12Cd",
            "status": "unpaid",
        }}}, calls=calls)

        res = client.post("/api/paymongo/payment-link", json={"bookingId": booking_id})
        body = res.get_json()
        assert res.status_code == 200
        assert body["checkout_url"] == "https://pm.link/resort/xyz"
        assert body["amount"] == 5000

        sent = calls[0]["json"]["data"]["attributes"]
        assert sent["amount"] == 500000
        assert sent["remarks"] == reference
        assert sent["payment_method_types"] == ["gcash"]
        assert calls[0]["auth"] == ("sk_test_paymongo", "")

        assert _state(app, payment_id) == ("pending", "link_xyz", "Pending", "Unpaid")

    def test_status_poll_settles_payment(self, app, client, booked, monkeypatch):
        booking_id, reference, payment_id = booked
        with app.app_context():
            booking_service.apply_payment_status(db.session.get(Payment, payment_id), "pending",
                                                 gateway_reference="link_xyz")

        _fake_gateway(monkeypatch, {"data": {"id": "link_xyz", "attributes": {
            "status": "paid", "amount": 500000, "reference_number": "Ab12Cd", "payments": [],
        }}})
        res = client.get("/api/paymongo/payment-status/link_xyz")
        assert res.status_code == 200
        assert res.get_json()["amount"] == 5000
        assert _state(app, payment_id) == ("paid", "link_xyz", "Confirmed", "Paid")

    def test_gateway_error(self, client, booked, monkeypatch):
        booking_id, _, _ = booked
        _fake_gateway(monkeypatch, {"errors": [{"detail": "amount is below minimum"}]}, status_code=400)
        res = client.post("/api/paymongo/payment-link", json={"bookingId": booking_id})
        assert res.status_code == 500
        assert res.get_json()["error"] == "amount is below minimum"

    def test_unreachable_gateway(self, ctx, monkeypatch):
        def down(*args, **kwargs):
            raise requests.ConnectionError("no route to host")

        monkeypatch.setattr(payment_gateways.requests, "request", down)
        with pytest.raises(UpstreamServiceError):
            payment_gateways.PayMongoClient.from_config().get_link("link_1")

    def test_missing_key(self, ctx):
        ctx.config["PAYMONGO_SECRET_KEY"] = None
        with pytest.raises(UpstreamServiceError):
            payment_gateways.PayMongoClient.from_config()

    def test_bad_booking_id(self, client):
        assert client.post("/api/paymongo/payment-link", json={"bookingId": "abc"}).status_code == 400
        assert client.post("/api/paymongo/payment-link", json={"bookingId": 9999}).status_code == 404


class TestXendit:
    def test_invoice(self, app, client, booked, monkeypatch):
        booking_id, reference, payment_id = booked
        _fake_gateway(monkeypatch, {
            "id": "inv_1", "invoice_url": "https://checkout.xendit.co/inv_1", "external_id": reference,
            "status": "PENDING", "amount": 5000, "expiry_date": "2099-02-16T00:00:00Z",
        })
        res = client.post("/api/xendit/invoice", json={"bookingId": booking_id})
        assert res.status_code == 200
        assert res.get_json()["invoice_url"] == "https://checkout.xendit.co/inv_1"
        assert _state(app, payment_id)[:2] == ("pending", "inv_1")

    def test_paid_booking_cannot_be_charged_again(self, app, client, booked):
        booking_id, _, payment_id = booked
        with app.app_context():
            booking_service.apply_payment_status(db.session.get(Payment, payment_id), "paid")
        res = client.post("/api/xendit/invoice", json={"bookingId": booking_id})
        assert res.status_code == 400
        assert res.get_json()["error"] == "Payment already paid"


class TestWebhooks:
    def test_paymongo_paid(self, app, client, booked):
        _, reference, payment_id = booked
        event = {"data": {"attributes": {
            "type": "link.payment.paid",
            "data": {"id": "link_hook", "attributes": {"remarks": reference}},
        }}}
        res = client.post("/api/paymongo/webhook", json=event)
        assert res.status_code == 200
        assert res.get_json() == {"received": True, "matched": True}
        assert _state(app, payment_id) == ("paid", "link_hook", "Confirmed", "Paid")

        # redelivery is acknowledged without changes
        assert client.post("/api/paymongo/webhook", json=event).status_code == 200
        assert _state(app, payment_id)[0] == "paid"

    def test_paymongo_ignores_other_events(self, client):
        res = client.post("/api/paymongo/webhook", json={"data": {"attributes": {"type": "source.chargeable"}}})
        assert res.status_code == 200
        assert res.get_json() == {"received": True}

    def test_processing_error_still_acknowledged(self, client, booked, monkeypatch):
        _, reference, _ = booked

        def broken(*args, **kwargs):
            raise RuntimeError("database went away")

        monkeypatch.setattr(booking_service, "apply_payment_status", broken)
        res = client.post("/api/paymongo/webhook", json={"data": {"attributes": {
            "type": "payment.paid",
            "data": {"id": "pay_1", "attributes": {"remarks": reference}},
        }}})
        assert res.status_code == 200
        assert res.get_json()["received"] is False

    def test_xendit_rejects_bad_token(self, client):
        res = client.post("/api/xendit/webhook", json={"status": "PAID"}, headers={"x-callback-token": "nope"})
        assert res.status_code == 401

    def test_xendit_paid(self, app, client, booked):
        _, reference, payment_id = booked
        res = client.post(
            "/api/xendit/webhook",
            json={"id": "inv_9", "external_id": reference, "status": "PAID"},
            headers={"x-callback-token": "test-callback-token"},
        )
        assert res.status_code == 200
        assert res.get_json()["matched"] is True
        assert _state(app, payment_id) == ("paid", "inv_9", "Confirmed", "Paid")

    def test_xendit_expired(self, app, client, booked):
        _, reference, payment_id = booked
        client.post(
            "/api/xendit/webhook",
            json={"id": "inv_7", "external_id": reference, "status": "EXPIRED"},
            headers={"x-callback-token": "test-callback-token"},
        )
        assert _state(app, payment_id)[0] == "failed"
        assert _state(app, payment_id)[3] == "Failed"

    @pytest.mark.parametrize("body", [[1], "paid", {"data": "x"}, {"data": {"attributes": ["link.payment.paid"]}}])
    def test_paymongo_malformed_body_is_acknowledged(self, client, body):
        res = client.post("/api/paymongo/webhook", json=body)
        assert res.status_code == 200
        assert res.get_json()["received"] in (True, False)

    def test_paymongo_non_json_body(self, client):
        res = client.post("/api/paymongo/webhook", data="not json", content_type="application/json")
        assert res.status_code == 200
        assert res.get_json()["received"] is False

    def test_paymongo_list_body_is_not_received(self, client):
        res = client.post("/api/paymongo/webhook", json=[1])
        assert res.get_json() == {"received": False, "error": "Malformed payload"}

    @pytest.mark.parametrize("body", [[1], {"status": ["PAID"], "id": {"x": 1}}, {"status": "PAID", "external_id": 5}])
    def test_xendit_malformed_body_is_acknowledged(self, client, body):
        res = client.post("/api/xendit/webhook", json=body, headers={"x-callback-token": "test-callback-token"})
        assert res.status_code == 200
        assert "received" in res.get_json()


class TestPaymentRequests:
    def test_non_object_body_is_400(self, client):
        assert client.post("/api/paymongo/payment-link", json=[1]).status_code == 400
        assert client.post("/api/xendit/invoice", json="inv").status_code == 400

    def test_huge_booking_id_is_400(self, client):
        res = client.post(
            "/api/xendit/invoice",
            data='{"bookingId": Infinity}',
            content_type="application/json",
        )
        assert res.status_code == 400
        assert client.post("/api/xendit/invoice", json={"bookingId": 10**30}).status_code == 400
