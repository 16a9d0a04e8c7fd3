from flask import Blueprint, request, jsonify

from services import booking_service
from utils.request_body import json_body, text_field
from utils.serialize import money, iso

bookings_bp = Blueprint("bookings", __name__, url_prefix="/api/bookings")


def _item_json(i):
    return {
        "id": i.id,
        "inventory_item_id": i.inventory_item_id,
        "item_type": i.item_type,
        "item_name": i.item_name,
        "unit_price": money(i.unit_price),
        "quantity": i.quantity,
        "guests": i.guests,
        "nights": i.nights,
        "per_night": i.per_night,
        "total_price": money(i.total_price),
    }


def _booking_json(b, with_items=False):
    out = {
        "id": b.id,
        "booking_reference": b.booking_reference,
        "customer_id": b.customer_id,
        "check_in_date": iso(b.check_in_date),
        "check_out_date": iso(b.check_out_date),
        "nights": b.nights,
        "adults": b.adults,
        "children": b.children,
        "arrival_time": b.arrival_time,
        "special_requests": b.special_requests,
        "subtotal": money(b.subtotal),
        "total": money(b.total),
        "promo_code": b.promo_code,
        "payment_method": b.payment_method,
        "booking_status": b.booking_status,
        "payment_status": b.payment_status,
        "created_at": iso(b.created_at),
        "cancelled_at": iso(b.cancelled_at),
        "item_count": len(b.items),
    }
    if with_items:
        out["items"] = [_item_json(i) for i in b.items]
    return out


def _payment_json(p):
    return {
        "id": p.id,
        "payment_reference": p.payment_reference,
        "payment_method": p.payment_method,
        "amount": money(p.amount),
        "currency": p.currency,
        "status": p.status,
        "provider": p.provider,
        "checkout_url": p.checkout_url,
        "paid_at": iso(p.paid_at),
    }


@bookings_bp.get("")
def list_bookings():
    rows = booking_service.list_bookings(
        status=request.args.get("status"),
        email=request.args.get("email"),
        start_date=request.args.get("startDate"),
        end_date=request.args.get("endDate"),
        limit=request.args.get("limit", 100),
    )
    return jsonify(success=True, count=len(rows), data=[_booking_json(b) for b in rows]), 200


@bookings_bp.post("")
@bookings_bp.post("/confirm")
def create_booking():
    data = json_body()
    result = booking_service.create_booking(
        guest=data.get("guest"),
        check_in=data.get("checkIn"),
        check_out=data.get("checkOut"),
        items=data.get("items"),
        payment_method=data.get("paymentMethod"),
        user_id=data.get("userId"),
        total=data.get("total"),
        promo_code=data.get("promoCode"),
    )
    result["total"] = money(result["total"])
    return jsonify(success=True, message="Booking created successfully", data=result), 201


@bookings_bp.post("/update-payment")
def update_payment():
    data = json_body()
    payment = booking_service.update_payment_status(
        booking_id=data.get("bookingId"),
        payment_reference=data.get("paymentReference"),
        status=data.get("status"),
        gateway_reference=data.get("paymentIntentId"),
        checkout_url=data.get("checkoutUrl"),
    )
    return jsonify(success=True, message="Payment status updated", data=_payment_json(payment)), 200


@bookings_bp.get("/occupied-dates")
def all_occupied_dates():
    rows = booking_service.all_occupied_dates()
    data = [{"inventory_item_id": item_id, "occupied_date": iso(day)} for item_id, day in rows]
    return jsonify(success=True, count=len(data), data=data), 200


@bookings_bp.get("/occupied-dates/<int:item_id>")
def occupied_dates(item_id: int):
    days = booking_service.occupied_dates_for_item(item_id)
    return jsonify(success=True, data=[iso(d) for d in days]), 200


@bookings_bp.get("/reference/<reference>")
def booking_by_reference(reference: str):
    booking = booking_service.get_booking_by_reference(reference)
    return jsonify(success=True, data=_booking_json(booking, with_items=True)), 200


@bookings_bp.get("/<int:booking_id>")
def get_booking(booking_id: int):
    booking = booking_service.get_booking(booking_id)
    return jsonify(success=True, data=_booking_json(booking, with_items=True)), 200


@bookings_bp.get("/<int:booking_id>/details")
def booking_details(booking_id: int):
    booking = booking_service.get_booking(booking_id)
    c = booking.customer
    out = _booking_json(booking, with_items=True)
    out["customer"] = {
        "id": c.id,
        "user_id": c.user_id,
        "first_name": c.first_name,
        "last_name": c.last_name,
        "email": c.email,
        "phone": c.phone,
        "address": c.address,
        "city": c.city,
        "country": c.country,
        "postal_code": c.postal_code,
    }
    out["payments"] = [_payment_json(p) for p in booking.payments]
    out["logs"] = [
        {
            "action": log.action,
            "old_status": log.old_status,
            "new_status": log.new_status,
            "description": log.description,
            "performed_by": log.performed_by,
            "created_at": iso(log.created_at),
        }
        for log in booking.logs
    ]
    return jsonify(success=True, data=out), 200


@bookings_bp.put("/<int:booking_id>")
def update_booking(booking_id: int):
    data = json_body()
    booking = booking_service.update_booking(booking_id, data)
    return jsonify(success=True, message="Booking updated successfully", data=_booking_json(booking)), 200


@bookings_bp.delete("/<int:booking_id>")
def cancel_booking(booking_id: int):
    data = json_body()
    reason = text_field(data, "reason")
    booking = booking_service.cancel_booking(booking_id, reason=reason)
    return jsonify(success=True, message="Booking cancelled successfully", data=_booking_json(booking)), 200
