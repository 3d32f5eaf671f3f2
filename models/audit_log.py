from datetime import datetime
from models.db import db

class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, nullable=True)  # null for CLI / payment hook events
    action = db.Column(db.String(80), nullable=False)  # GAME_CREATE, JOIN_REQUEST_APPROVE, COACH_BOOKING_ACCEPT...
    entity = db.Column(db.String(80), nullable=True)   # game, coach_slot, coach_booking
    entity_id = db.Column(db.String(80), nullable=True)

    ip = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    metadata_json = db.Column(db.Text, nullable=True)

    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        # history of one game / booking
        db.Index("ix_audit_logs_entity", "entity", "entity_id"),
    )
