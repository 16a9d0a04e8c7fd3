from flask import Blueprint, request, jsonify, current_app

from models.payment import Payment
from services import booking_service
from services.errors import ValidationError
from services.payment_gateways import PayMongoClient, XenditClient, PAYMONGO_STATUS_MAP, XENDIT_STATUS_MAP
from utils.request_body import json_body, text_field
from utils.serialize import money

payments_bp = Blueprint("payments", __name__, url_prefix="/api")


def _payable(data):
    booking_id = booking_service.to_int(data.get("bookingId"), "bookingId", minimum=1)
    if booking_id is None:
        raise ValidationError("bookingId required")
    booking = booking_service.get_booking(booking_id)
    if booking.booking_status == "Cancelled":
        raise ValidationError("Booking is cancelled")

    payment = booking_service.pending_payment_for(booking)
    if payment.is_terminal:
        raise ValidationError(f"Payment already {payment.status}")
    return booking, payment


def _sync_from_gateway(gateway_reference: str, status: str, provider: str):
    """Apply a terminal status reported by polling to the matching payment, if any."""
    if status not in ("paid", "failed"):
        return None
    payment = Payment.query.filter_by(gateway_reference=gateway_reference).first()
    if not payment or payment.status == status:
        return payment
    return booking_service.apply_payment_status(payment, status, provider=provider)


# ---------- PayMongo ----------
@payments_bp.post("/paymongo/payment-link")
def paymongo_payment_link():
    data = json_body()
    booking, payment = _payable(data)
    method = text_field(data, "paymentMethod") or payment.payment_method

    client = PayMongoClient.from_config()
    link = client.create_link(
        amount=payment.amount,
        description=f"Booking {booking.booking_reference}",
        remarks=booking.booking_reference,
        payment_method=method,
    )
    booking_service.apply_payment_status(
        payment, "pending", gateway_reference=link["id"], checkout_url=link["checkout_url"], provider="PAYMONGO"
    )

    frontend = current_app.config.get("FRONTEND_URL", "").rstrip("/")
    return jsonify(
        success=True,
        checkout_url=link["checkout_url"],
        reference_number=link["reference_number"],
        payment_id=link["id"],
        amount=money(payment.amount),
        status=link["status"],
        redirect_url=f"{frontend}/booking?bookingId={booking.id}&reference={link['reference_number']}",
    ), 200


@payments_bp.get("/paymongo/payment-status/<link_id>")
def paymongo_payment_status(link_id: str):
    info = PayMongoClient.from_config().get_link(link_id)
    _sync_from_gateway(link_id, PAYMONGO_STATUS_MAP.get(info["status"], "pending"), "PAYMONGO")
    return jsonify(
        success=True,
        status=info["status"],
        amount=info["amount"],
        reference_number=info["reference_number"],
        payments=info["payments"],
    ), 200


# ---------- Xendit ----------
@payments_bp.post("/xendit/invoice")
def xendit_invoice():
    data = json_body()
    booking, payment = _payable(data)
    customer = booking.customer

    invoice = XenditClient.from_config().create_invoice(
        external_id=booking.booking_reference,
        amount=payment.amount,
        payer_email=customer.email,
        customer_name=customer.full_name or customer.email,
        description=text_field(data, "description"),
        currency=payment.currency,
    )
    booking_service.apply_payment_status(
        payment, "pending", gateway_reference=invoice["id"], checkout_url=invoice["invoice_url"], provider="XENDIT"
    )
    return jsonify(success=True, **invoice), 200


@payments_bp.get("/xendit/payment-status/<invoice_id>")
def xendit_payment_status(invoice_id: str):
    info = XenditClient.from_config().get_invoice(invoice_id)
    _sync_from_gateway(invoice_id, XENDIT_STATUS_MAP.get(info["status"], "pending"), "XENDIT")
    return jsonify(success=True, **info), 200
