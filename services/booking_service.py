"""Reservations: the booking-creation transaction and everything that
mutates a booking afterwards (status changes, cancellation, payment
updates).

All multi-table writes run inside one ``db.session`` transaction: rows are
flushed as they are built and committed once at the end, any failure rolls
the whole attempt back.
"""
import logging
import uuid
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from decimal import Decimal

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.user import User
from models.customer import Customer
from models.bookable_item import BookableItem
from models.booking import Booking, BookingItem, OccupiedDate, BookingLog, BOOKING_STATUSES, BOOKING_PAYMENT_STATUSES
from models.payment import Payment, PAYMENT_STATUSES
from services.errors import ServiceError, ValidationError, NotFoundError, ConflictError, TransientStoreError
from services.inventory_service import to_decimal
from utils.audit import log_event
from utils.emailer import send_booking_confirmation

logger = logging.getLogger(__name__)

# Cancelled is terminal, Confirmed can only be cancelled
STATUS_TRANSITIONS = {
    "Pending": {"Confirmed", "Cancelled"},
    "Confirmed": {"Cancelled"},
    "Cancelled": set(),
}

UPDATABLE_FIELDS = ("booking_status", "payment_status", "payment_method", "special_requests")

TOTAL_TOLERANCE = Decimal("0.01")

# largest value an INTEGER column takes on every backend
MAX_INT = 2**31 - 1


def parse_date(value, field: str) -> date:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError(f"{field} is required")
    try:
        # accept "2026-02-15" and full ISO timestamps
        return datetime.fromisoformat(value.strip()[:10]).date()
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD")


def nights_between(check_in: date, check_out: date) -> int:
    return max((check_out - check_in).days, 0)


def stay_dates(check_in: date, check_out: date):
    """Every night of the stay: check-in inclusive, check-out exclusive."""
    return [check_in + timedelta(days=i) for i in range(nights_between(check_in, check_out))]


def line_total(unit_price: Decimal, quantity: int, per_night: bool, nights: int) -> Decimal:
    return unit_price * quantity * (nights if per_night else 1)


def _clean(value):
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError("Text fields must be strings")
    return value.strip() or None


def to_int(value, field: str, default=None, minimum=0, maximum=MAX_INT):
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be a whole number")
    if number < minimum:
        raise ValidationError(f"{field} must be at least {minimum}")
    if number > maximum:
        raise ValidationError(f"{field} must be at most {maximum}")
    return number


def _validate_guest(guest) -> dict:
    if not isinstance(guest, dict):
        raise ValidationError("Guest information is required")
    required = ("firstName", "lastName", "email", "phone")
    if any(not _clean(guest.get(k)) for k in required):
        raise ValidationError("Guest information is required", details={"required": list(required)})

    email = _clean(guest.get("email")).lower()
    if "@" not in email or len(email) > 255:
        raise ValidationError("Invalid email")

    return {
        "first_name": _clean(guest.get("firstName")),
        "last_name": _clean(guest.get("lastName")),
        "email": email,
        "phone": _clean(guest.get("phone")),
        "address": _clean(guest.get("address")),
        "city": _clean(guest.get("city")),
        "country": _clean(guest.get("country")),
        "postal_code": _clean(guest.get("postal")),
    }


def _validate_items(items, nights: int) -> list:
    if not isinstance(items, list) or not items:
        raise ValidationError("At least one booking item is required")

    lines = []
    for idx, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise ValidationError(f"Item {idx + 1} is malformed")

        item_id = raw.get("item_id", raw.get("id"))
        bookable = None
        if item_id is not None:
            item_id = to_int(item_id, "item_id", minimum=1)
            bookable = BookableItem.query.get(item_id)
            if not bookable or not bookable.is_active:
                raise NotFoundError(f"Bookable item {item_id} not found")

        price = raw.get("price")
        if price is None and bookable is not None:
            unit_price = Decimal(bookable.price)
        else:
            unit_price = to_decimal(price, f"Item {idx + 1} price")
        if unit_price < 0:
            raise ValidationError(f"Item {idx + 1} price cannot be negative")

        qty = to_int(raw.get("qty", raw.get("quantity")), f"Item {idx + 1} quantity", default=1, minimum=1)

        per_night = raw.get("perNight", raw.get("per_night"))
        if per_night is None:
            per_night = bookable.per_night if bookable is not None else False
        per_night = bool(per_night)

        item_nights = nights if per_night else 0
        lines.append({
            "inventory_item_id": item_id,
            "item_type": _clean(raw.get("category")) or (bookable.category if bookable else "Room"),
            "item_name": _clean(raw.get("name")) or (bookable.name if bookable else "Item"),
            "unit_price": unit_price,
            "quantity": qty,
            "guests": to_int(raw.get("guests"), f"Item {idx + 1} guests"),
            "per_night": per_night,
            "nights": item_nights,
            "total_price": line_total(unit_price, qty, per_night, item_nights),
        })
    return lines


def _apply_contact(customer: Customer, contact: dict, default_country: str) -> None:
    for field, value in contact.items():
        if value is not None:
            setattr(customer, field, value)
    if not customer.country:
        customer.country = default_country
    customer.updated_at = datetime.utcnow()


def _resolve_customer(contact: dict, user_id=None) -> Customer:
    """Find-or-create the customer row: by account link when logged in, by email for guests."""
    default_country = current_app.config.get("DEFAULT_COUNTRY", "Philippines")

    if user_id is not None:
        if not User.query.get(user_id):
            raise NotFoundError("User account not found")
        customer = Customer.query.filter_by(user_id=user_id).first()
        if not customer:
            customer = Customer(user_id=user_id)
            db.session.add(customer)
            logger.info("Creating customer record for user %s", user_id)
    else:
        customer = Customer.query.filter_by(email=contact["email"], user_id=None).first()
        if not customer:
            customer = Customer()
            db.session.add(customer)
            logger.info("Creating guest customer record for %s", contact["email"])

    _apply_contact(customer, contact, default_country)
    db.session.flush()
    return customer


def _assign_reference(booking: Booking) -> str:
    # Derived from the autoincrement key, so two bookings created on the same
    # day can never share a reference. The unique index backs this up.
    prefix = current_app.config.get("BOOKING_REFERENCE_PREFIX", "BK")
    stamp = (booking.created_at or datetime.utcnow()).strftime("%Y%m%d")
    booking.booking_reference = f"{prefix}{stamp}{booking.id:05d}"
    return booking.booking_reference


def _payment_reference() -> str:
    prefix = current_app.config.get("PAYMENT_REFERENCE_PREFIX", "PAY")
    return f"{prefix}-{uuid.uuid4().hex[:12].upper()}"


def _check_availability(item_id: int, nights, booking_id=None) -> None:
    if not nights:
        return
    q = OccupiedDate.query.filter(
        OccupiedDate.inventory_item_id == item_id,
        OccupiedDate.occupied_date.in_(nights),
    )
    if booking_id is not None:
        q = q.filter(OccupiedDate.booking_id != booking_id)
    taken = sorted({row.occupied_date for row in q.all()})
    if taken:
        raise ConflictError(
            f"Item {item_id} is already booked for the selected dates",
            details={"occupied": [d.isoformat() for d in taken]},
        )


def _add_line_items(booking: Booking, lines: list, check_in: date, check_out: date) -> int:
    nights = stay_dates(check_in, check_out)
    held = set()
    occupied = 0
    for line in lines:
        booking.items.append(BookingItem(**line))

        item_id = line["inventory_item_id"]
        if not line["per_night"] or item_id is None or item_id in held:
            continue
        _check_availability(item_id, nights)
        db.session.add_all(
            OccupiedDate(inventory_item_id=item_id, booking_id=booking.id, occupied_date=day)
            for day in nights
        )
        held.add(item_id)
        occupied += len(nights)
    db.session.flush()
    return occupied


def _open_payment(booking: Booking, customer: Customer, payment_method) -> Payment:
    payment = Payment(
        booking_id=booking.id,
        customer_id=customer.id,
        payment_reference=_payment_reference(),
        payment_method=payment_method,
        amount=booking.total,
        currency=current_app.config.get("DEFAULT_CURRENCY", "PHP"),
        status="pending",
    )
    db.session.add(payment)
    db.session.flush()
    return payment


def _log(booking: Booking, action: str, description: str, old_status=None, new_status=None, performed_by="System"):
    db.session.add(BookingLog(
        booking_id=booking.id,
        action=action,
        old_status=old_status,
        new_status=new_status,
        description=description[:255],
        performed_by=performed_by,
    ))


@contextmanager
def _transaction():
    """Commit on success; roll back everything on any error and re-raise."""
    try:
        yield
        db.session.commit()
    except ServiceError:
        db.session.rollback()
        raise
    except IntegrityError as exc:
        db.session.rollback()
        raise ConflictError("Booking conflicts with an existing reservation", details=str(exc.orig)) from exc
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.exception("Booking transaction failed")
        raise TransientStoreError("Database error", details=str(exc)) from exc
    except Exception:
        db.session.rollback()
        raise


def create_booking(guest, check_in, check_out, items, payment_method=None, user_id=None, total=None,
                   promo_code=None) -> dict:
    """Create a booking with its customer, line items, occupied nights,
    pending payment and log entry in a single transaction.
    """
    contact = _validate_guest(guest)
    check_in = parse_date(check_in, "check-in date")
    check_out = parse_date(check_out, "check-out date")
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")
    if user_id is not None:
        user_id = to_int(user_id, "userId", minimum=1)

    nights = nights_between(check_in, check_out)
    lines = _validate_items(items, nights)
    subtotal = sum((line["total_price"] for line in lines), Decimal(0))

    if total is not None and abs(to_decimal(total, "total") - subtotal) > TOTAL_TOLERANCE:
        raise ValidationError(
            "Total does not match booking items",
            details={"expected": str(subtotal), "received": str(total)},
        )

    with _transaction():
        customer = _resolve_customer(contact, user_id)

        booking = Booking(
            customer_id=customer.id,
            check_in_date=check_in,
            check_out_date=check_out,
            nights=nights,
            adults=to_int(guest.get("adults"), "adults", default=2),
            children=to_int(guest.get("children"), "children", default=0),
            arrival_time=_clean(guest.get("arrivalTime")) or "3 PM",
            special_requests=_clean(guest.get("specialRequests")),
            subtotal=subtotal,
            total=subtotal,
            promo_code=_clean(promo_code),
            payment_method=_clean(payment_method),
            booking_status="Pending",
            payment_status="Unpaid",
            created_at=datetime.utcnow(),
        )
        db.session.add(booking)
        db.session.flush()
        _assign_reference(booking)

        occupied = _add_line_items(booking, lines, check_in, check_out)
        payment = _open_payment(booking, customer, booking.payment_method)
        _log(booking, "created", f"Booking created by {customer.full_name}", new_status="Pending")

    logger.info("Booking %s created: %s items, %s occupied nights, total %s",
                booking.booking_reference, len(lines), occupied, subtotal)
    log_event("BOOKING_CREATE", user_id=user_id, entity="booking", entity_id=booking.id,
              metadata={"reference": booking.booking_reference, "payment_id": payment.id})

    return {
        "booking_id": booking.id,
        "booking_reference": booking.booking_reference,
        "customer_id": customer.id,
        "payment_id": payment.id,
        "payment_reference": payment.payment_reference,
        "total": subtotal,
        "status": payment.status,
    }


def get_booking(booking_id: int) -> Booking:
    booking = Booking.query.get(booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def get_booking_by_reference(reference: str) -> Booking:
    booking = Booking.query.filter_by(booking_reference=(reference or "").strip()).first()
    if not booking:
        raise NotFoundError("Booking not found")
    return booking


def list_bookings(status=None, email=None, start_date=None, end_date=None, limit=100):
    q = Booking.query
    if status:
        q = q.filter(Booking.booking_status == status)
    if email:
        q = q.join(Customer, Booking.customer_id == Customer.id).filter(Customer.email.ilike(f"%{email}%"))
    if start_date:
        q = q.filter(Booking.check_in_date >= parse_date(start_date, "startDate"))
    if end_date:
        q = q.filter(Booking.check_out_date <= parse_date(end_date, "endDate"))

    max_rows = current_app.config.get("BOOKINGS_LIST_MAX", 500)
    limit = max(1, min(to_int(limit, "limit", default=100, minimum=1), max_rows))
    return q.order_by(Booking.created_at.desc(), Booking.id.desc()).limit(limit).all()


def _cancel(booking: Booking, reason=None, performed_by="Admin") -> int:
    old_status = booking.booking_status
    booking.booking_status = "Cancelled"
    booking.cancelled_at = datetime.utcnow()
    # Occupancy history is not kept after cancellation: freeing the calendar
    # is the point, the booking row and its log remain.
    released = OccupiedDate.query.filter_by(booking_id=booking.id).delete(synchronize_session=False)
    _log(booking, "cancelled", reason or "Booking cancelled", old_status=old_status,
         new_status="Cancelled", performed_by=performed_by)
    return released


def cancel_booking(booking_id: int, reason=None, performed_by="Admin") -> Booking:
    booking = get_booking(booking_id)
    if booking.booking_status == "Cancelled":
        raise ValidationError("Booking already cancelled")

    with _transaction():
        released = _cancel(booking, reason, performed_by)

    logger.info("Booking %s cancelled, %s nights released", booking.booking_reference, released)
    log_event("BOOKING_CANCEL", entity="booking", entity_id=booking.id, metadata={"reason": reason})
    return booking


def update_booking(booking_id: int, updates: dict, performed_by="Admin") -> Booking:
    booking = get_booking(booking_id)
    changes = {k: v for k, v in (updates or {}).items() if k in UPDATABLE_FIELDS}
    if not changes:
        raise ValidationError("No valid fields to update", details={"allowed": list(UPDATABLE_FIELDS)})

    new_status = changes.pop("booking_status", None)
    if new_status is not None and new_status != booking.booking_status:
        if new_status not in BOOKING_STATUSES:
            raise ValidationError(f"Invalid booking_status. Must be one of: {', '.join(BOOKING_STATUSES)}")
        if new_status not in STATUS_TRANSITIONS[booking.booking_status]:
            raise ValidationError(f"Cannot change status from {booking.booking_status} to {new_status}")

    if "payment_status" in changes and changes["payment_status"] not in BOOKING_PAYMENT_STATUSES:
        raise ValidationError(f"Invalid payment_status. Must be one of: {', '.join(BOOKING_PAYMENT_STATUSES)}")
    for field in ("payment_method", "special_requests"):
        if field in changes:
            changes[field] = _clean(changes[field])

    with _transaction():
        for field, value in changes.items():
            setattr(booking, field, value)

        if new_status is not None and new_status != booking.booking_status:
            changes["booking_status"] = new_status
            if new_status == "Cancelled":
                _cancel(booking, performed_by=performed_by)
            else:
                _log(booking, "status_updated", "Status changed", old_status=booking.booking_status,
                     new_status=new_status, performed_by=performed_by)
                booking.booking_status = new_status
        booking.updated_at = datetime.utcnow()

    log_event("BOOKING_UPDATE", entity="booking", entity_id=booking.id, metadata={"fields": sorted(changes)})
    return booking


def occupied_dates_for_item(item_id: int, from_date=None):
    from_date = from_date or date.today()
    rows = (
        db.session.query(OccupiedDate.occupied_date)
        .filter(OccupiedDate.inventory_item_id == item_id, OccupiedDate.occupied_date >= from_date)
        .distinct()
        .order_by(OccupiedDate.occupied_date.asc())
        .all()
    )
    return [r[0] for r in rows]


def all_occupied_dates(from_date=None):
    from_date = from_date or date.today()
    return (
        db.session.query(OccupiedDate.inventory_item_id, OccupiedDate.occupied_date)
        .filter(OccupiedDate.occupied_date >= from_date)
        .order_by(OccupiedDate.occupied_date.asc(), OccupiedDate.inventory_item_id.asc())
        .all()
    )


def pending_payment_for(booking: Booking) -> Payment:
    payment = (
        Payment.query
        .filter_by(booking_id=booking.id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .first()
    )
    if not payment:
        raise NotFoundError("Payment not found")
    return payment


def apply_payment_status(payment: Payment, status: str, gateway_reference=None, checkout_url=None,
                         provider=None, performed_by="System") -> Payment:
    """Move a payment to ``status`` and mirror the outcome on its booking.

    Terminal payments (paid/failed/cancelled) never change again; repeating
    the same status is accepted as a no-op so gateway retries are harmless.
    """
    if status not in PAYMENT_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(PAYMENT_STATUSES)}")

    if payment.is_terminal:
        if payment.status == status:
            return payment
        raise ConflictError(f"Payment already {payment.status}")

    booking = payment.booking
    with _transaction():
        if gateway_reference:
            payment.gateway_reference = gateway_reference
        if checkout_url:
            payment.checkout_url = checkout_url
        if provider:
            payment.provider = provider
        payment.status = status
        payment.updated_at = datetime.utcnow()

        if status == "paid":
            payment.paid_at = datetime.utcnow()
            booking.payment_status = "Paid"
            if booking.booking_status == "Pending":
                _log(booking, "payment_completed", f"Payment completed via {gateway_reference or payment.payment_reference}",
                     old_status="Pending", new_status="Confirmed", performed_by=performed_by)
                booking.booking_status = "Confirmed"
            else:
                _log(booking, "payment_completed", f"Payment completed via {gateway_reference or payment.payment_reference}",
                     performed_by=performed_by)
        elif status in ("failed", "cancelled"):
            booking.payment_status = "Failed"
            _log(booking, f"payment_{status}", f"Payment {status}", performed_by=performed_by)

    logger.info("Payment %s for booking %s is now %s", payment.payment_reference, booking.booking_reference, status)
    log_event(f"PAYMENT_{status.upper()}", entity="payment", entity_id=payment.id,
              metadata={"booking_id": booking.id, "gateway_reference": payment.gateway_reference})

    if status == "paid":
        send_booking_confirmation(booking)
    return payment


def update_payment_status(booking_id, payment_reference, status, gateway_reference=None, checkout_url=None) -> Payment:
    payment_reference = _clean(payment_reference)
    gateway_reference = _clean(gateway_reference)
    checkout_url = _clean(checkout_url)
    if not booking_id or not payment_reference or not status:
        raise ValidationError("bookingId, paymentReference and status are required")
    booking_id = to_int(booking_id, "bookingId", minimum=1)

    payment = Payment.query.filter_by(booking_id=booking_id, payment_reference=payment_reference).first()
    if not payment:
        raise NotFoundError("Payment not found")
    return apply_payment_status(payment, status, gateway_reference=gateway_reference, checkout_url=checkout_url)
