import json
from datetime import datetime

from models.db import db


class AuditLog(db.Model):
    """Business events (booking, payment, inventory, room, user changes)."""
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    # no FK: guests and gateway callbacks have no user
    user_id = db.Column(db.Integer, nullable=True)
    action = db.Column(db.String(80), nullable=False, index=True)
    entity = db.Column(db.String(80), nullable=True)
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    __table_args__ = (
        db.Index("ix_audit_logs_entity_ref", "entity", "entity_id"),
    )

    @property
    def details(self):
        if not self.metadata_json:
            return None
        try:
            return json.loads(self.metadata_json)
        except ValueError:
            return self.metadata_json
