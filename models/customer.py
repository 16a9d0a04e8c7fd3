from datetime import datetime
from models.db import db

class Customer(db.Model):
    __tablename__ = "customers"

    id = db.Column(db.Integer, primary_key=True)

    # set when the customer belongs to a registered account, null for guest checkout
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, unique=True)

    first_name = db.Column(db.String(80), nullable=True)
    last_name = db.Column(db.String(80), nullable=True)
    email = db.Column(db.String(255), nullable=True, index=True)
    phone = db.Column(db.String(30), nullable=True)

    address = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(120), nullable=True)
    country = db.Column(db.String(80), nullable=True)
    postal_code = db.Column(db.String(20), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user = db.relationship("User", back_populates="customer")
    bookings = db.relationship("Booking", back_populates="customer", lazy=True)

    @property
    def full_name(self):
        return " ".join(p for p in (self.first_name, self.last_name) if p)
