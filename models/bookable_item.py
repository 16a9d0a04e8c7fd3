from datetime import datetime
from models.db import db

class BookableItem(db.Model):
    """A room, cottage, event slot or food package guests can reserve."""
    __tablename__ = "inventory_items"

    id = db.Column(db.Integer, primary_key=True)

    category = db.Column(db.String(40), nullable=False, default="Room")  # Room, Cottage, Event, Food
    category_type = db.Column(db.String(80), nullable=True)
    room_number = db.Column(db.String(20), nullable=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    max_guests = db.Column(db.Integer, nullable=True)

    price = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    per_night = db.Column(db.Boolean, default=True, nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
