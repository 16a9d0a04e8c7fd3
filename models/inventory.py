from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.hybrid import hybrid_property

from models.db import db


def stock_status(quantity, threshold) -> str:
    """Derive the stock level from quantity vs. threshold.

    critical: quantity <= threshold / 2
    low:      threshold / 2 < quantity <= threshold
    good:     quantity > threshold
    """
    quantity = Decimal(str(quantity))
    threshold = Decimal(str(threshold))
    if quantity * 2 <= threshold:
        return "critical"
    if quantity <= threshold:
        return "low"
    return "good"


class InventoryItem(db.Model):
    """Restaurant supply tracked by quantity (food, drinks, consumables)."""
    __tablename__ = "inventory"

    id = db.Column(db.Integer, primary_key=True)

    item_name = db.Column(db.String(120), unique=True, nullable=False, index=True)
    quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    unit = db.Column(db.String(20), nullable=False)
    threshold = db.Column(db.Numeric(12, 3), nullable=False)

    last_restocked = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # status is never stored, it always follows quantity/threshold
    @hybrid_property
    def status(self):
        return stock_status(self.quantity, self.threshold)

    @status.expression
    def status(cls):
        return db.case(
            (cls.quantity * 2 <= cls.threshold, "critical"),
            (cls.quantity <= cls.threshold, "low"),
            else_="good",
        )
