from datetime import datetime
from models.db import db

PAYMENT_STATUSES = ("pending", "paid", "failed", "cancelled")
TERMINAL_PAYMENT_STATUSES = ("paid", "failed", "cancelled")


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey("bookings.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    payment_reference = db.Column(db.String(40), unique=True, nullable=False, index=True)
    payment_method = db.Column(db.String(40), nullable=True)
    amount = db.Column(db.Numeric(10, 2), nullable=False)
    currency = db.Column(db.String(10), nullable=False, default="PHP")

    status = db.Column(db.String(20), nullable=False, default="pending")  # pending, paid, failed, cancelled

    provider = db.Column(db.String(20), nullable=True)  # PAYMONGO, XENDIT
    gateway_reference = db.Column(db.String(255), nullable=True, unique=True, index=True)
    checkout_url = db.Column(db.String(512), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    paid_at = db.Column(db.DateTime, nullable=True)

    booking = db.relationship("Booking", back_populates="payments")

    @property
    def is_terminal(self):
        return self.status in TERMINAL_PAYMENT_STATUSES
