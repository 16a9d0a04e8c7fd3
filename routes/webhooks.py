import hmac
import logging

from flask import Blueprint, request, jsonify, current_app

from models import db
from models.booking import Booking
from models.payment import Payment
from services import booking_service
from services.payment_gateways import XENDIT_STATUS_MAP

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint("webhooks", __name__, url_prefix="/api")

PAYMONGO_EVENTS = {
    "link.payment.paid": "paid",
    "payment.paid": "paid",
    "payment.failed": "failed",
}


def _find_payment(gateway_reference=None, booking_reference=None):
    payment = None
    if gateway_reference:
        payment = Payment.query.filter_by(gateway_reference=gateway_reference).first()
    if not payment and booking_reference:
        booking = Booking.query.filter_by(booking_reference=booking_reference).first()
        if booking:
            payment = booking_service.pending_payment_for(booking)
    return payment


def _settle(payment, status, gateway_reference, provider):
    if payment.is_terminal and payment.status != status:
        logger.warning("%s reported %s for payment %s which is already %s",
                       provider, status, payment.payment_reference, payment.status)
        return
    booking_service.apply_payment_status(
        payment, status,
        gateway_reference=payment.gateway_reference or gateway_reference,
        provider=provider, performed_by=provider,
    )


def _obj(value) -> dict:
    return value if isinstance(value, dict) else {}


def _text(value):
    return value if isinstance(value, str) and value else None


# Gateways retry on anything but 2xx, so malformed payloads and processing
# failures are logged and acknowledged instead of surfaced.
@webhooks_bp.post("/paymongo/webhook")
def paymongo_webhook():
    event = request.get_json(silent=True)
    if not isinstance(event, dict):
        logger.warning("PayMongo webhook with malformed body ignored")
        return jsonify(received=False, error="Malformed payload"), 200

    attrs = _obj(_obj(event.get("data")).get("attributes"))
    event_type = _text(attrs.get("type"))
    resource = _obj(attrs.get("data"))
    resource_id = _text(resource.get("id"))
    remarks = _text(_obj(resource.get("attributes")).get("remarks"))

    logger.info("PayMongo webhook received: %s", event_type)
    status = PAYMONGO_EVENTS.get(event_type)
    if not status:
        return jsonify(received=True), 200

    try:
        payment = _find_payment(resource_id, remarks)
        if not payment:
            logger.warning("PayMongo %s for unknown payment %s", event_type, resource_id)
            return jsonify(received=True, matched=False), 200
        _settle(payment, status, resource_id, "PAYMONGO")
    except Exception as exc:
        db.session.rollback()
        logger.exception("PayMongo webhook processing failed")
        return jsonify(received=False, error=str(exc)), 200

    return jsonify(received=True, matched=True), 200


@webhooks_bp.post("/xendit/webhook")
def xendit_webhook():
    expected = current_app.config.get("XENDIT_WEBHOOK_TOKEN")
    token = request.headers.get("x-callback-token", "")
    if expected and not hmac.compare_digest(token.encode("utf-8"), expected.encode("utf-8")):
        return jsonify(error="Unauthorized webhook"), 401

    invoice = request.get_json(silent=True)
    if not isinstance(invoice, dict):
        logger.warning("Xendit webhook with malformed body ignored")
        return jsonify(received=False, error="Malformed payload"), 200

    invoice_id = _text(invoice.get("id"))
    external_id = _text(invoice.get("external_id"))
    logger.info("Xendit webhook received: %s %s", external_id, invoice.get("status"))
    status = XENDIT_STATUS_MAP.get(_text(invoice.get("status")))
    if status not in ("paid", "failed"):
        return jsonify(received=True), 200

    try:
        payment = _find_payment(invoice_id, external_id)
        if not payment:
            logger.warning("Xendit callback for unknown invoice %s", invoice_id)
            return jsonify(received=True, matched=False), 200
        _settle(payment, status, invoice_id, "XENDIT")
    except Exception as exc:
        db.session.rollback()
        logger.exception("Xendit webhook processing failed")
        return jsonify(received=False, error=str(exc)), 200

    return jsonify(received=True, matched=True), 200
