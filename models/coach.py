from datetime import datetime
from models.db import db

# CoachBooking.status values
COACH_BOOKING_PENDING = "pending"
COACH_BOOKING_ACCEPTED = "accepted"
COACH_BOOKING_REJECTED = "rejected"


class CoachSlot(db.Model):
    __tablename__ = "coach_slots"

    id = db.Column(db.Integer, primary_key=True)
    coach_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(5), nullable=False)  # "HH:MM"
    end_time = db.Column(db.String(5), nullable=False)

    is_booked = db.Column(db.Boolean, default=False, nullable=False)
    booked_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # Prevent duplicate slot times for same coach
        db.UniqueConstraint("coach_id", "date", "start_time", "end_time", name="uq_coach_slot_time"),
    )


class CoachBooking(db.Model):
    __tablename__ = "coach_bookings"

    id = db.Column(db.Integer, primary_key=True)
    coach_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    player_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    slot_id = db.Column(db.Integer, nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=COACH_BOOKING_PENDING)

    # copied from the slot when the request is made
    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.String(5), nullable=False)
    end_time = db.Column(db.String(5), nullable=False)

    rejection_reason = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        db.Index("ix_coach_bookings_coach_status", "coach_id", "status"),
        db.Index("ix_coach_bookings_player_status", "player_id", "status"),
        # one live (pending or accepted) request per player per slot
        db.Index(
            "uq_coach_booking_live",
            "slot_id",
            "player_id",
            unique=True,
            sqlite_where=db.text("status != 'rejected'"),
            postgresql_where=db.text("status != 'rejected'"),
        ),
    )
