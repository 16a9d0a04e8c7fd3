from datetime import datetime
from models.db import db

class MenuItem(db.Model):
    """A dish or drink on the restaurant menu."""
    __tablename__ = "menu_items"

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(80), nullable=False, index=True)  # Appetizer, Main Course, Dessert, ...
    price = db.Column(db.Numeric(10, 2), nullable=False)

    available = db.Column(db.Boolean, default=True, nullable=False)
    prep_time = db.Column(db.Integer, default=15, nullable=False)  # minutes

    description = db.Column(db.Text, nullable=True)
    image_url = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
