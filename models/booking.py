from datetime import datetime
from models.db import db

BOOKING_STATUSES = ("Pending", "Confirmed", "Cancelled")
BOOKING_PAYMENT_STATUSES = ("Unpaid", "Paid", "Failed")


class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    # assigned right after insert from the primary key, see services.booking_service
    booking_reference = db.Column(db.String(32), unique=True, nullable=True, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    check_in_date = db.Column(db.Date, nullable=False)
    check_out_date = db.Column(db.Date, nullable=False)
    nights = db.Column(db.Integer, nullable=False, default=0)
    adults = db.Column(db.Integer, nullable=False, default=2)
    children = db.Column(db.Integer, nullable=False, default=0)
    arrival_time = db.Column(db.String(20), nullable=True)
    special_requests = db.Column(db.Text, nullable=True)

    subtotal = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    promo_code = db.Column(db.String(40), nullable=True)
    payment_method = db.Column(db.String(40), nullable=True)

    booking_status = db.Column(db.String(20), nullable=False, default="Pending")
    payment_status = db.Column(db.String(20), nullable=False, default="Unpaid")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)

    customer = db.relationship("Customer", back_populates="bookings")
    items = db.relationship("BookingItem", back_populates="booking", cascade="all, delete-orphan", lazy=True)
    payments = db.relationship("Payment", back_populates="booking", lazy=True)
    logs = db.relationship("BookingLog", back_populates="booking", cascade="all, delete-orphan", lazy=True)


class BookingItem(db.Model):
    __tablename__ = "booking_items"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=True, index=True)

    item_type = db.Column(db.String(40), nullable=False, default="Room")
    item_name = db.Column(db.String(120), nullable=False, default="Item")

    unit_price = db.Column(db.Numeric(10, 2), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    guests = db.Column(db.Integer, nullable=True)
    nights = db.Column(db.Integer, nullable=False, default=0)
    per_night = db.Column(db.Boolean, nullable=False, default=False)
    total_price = db.Column(db.Numeric(10, 2), nullable=False)

    booking = db.relationship("Booking", back_populates="items")


class OccupiedDate(db.Model):
    __tablename__ = "occupied_dates"

    id = db.Column(db.Integer, primary_key=True)
    inventory_item_id = db.Column(db.Integer, db.ForeignKey("inventory_items.id"), nullable=False, index=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    occupied_date = db.Column(db.Date, nullable=False, index=True)

    __table_args__ = (
        # a bookable item can only be held by one booking per night
        db.UniqueConstraint("inventory_item_id", "occupied_date", name="uq_occupied_item_day"),
    )


class BookingLog(db.Model):
    __tablename__ = "booking_logs"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)

    action = db.Column(db.String(40), nullable=False)  # created, status_updated, cancelled, payment_completed
    old_status = db.Column(db.String(20), nullable=True)
    new_status = db.Column(db.String(20), nullable=True)
    description = db.Column(db.String(255), nullable=True)
    performed_by = db.Column(db.String(40), nullable=False, default="System")

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    booking = db.relationship("Booking", back_populates="logs")
