"""
Coach slots and 1:1 bookings.

A slot is created unbooked and flips to booked exactly once, when the coach
accepts one pending booking for it. Accepting writes the slot and the booking
in one transaction, each through a conditional update, so a second accept for
the same slot fails with "This slot is no longer available". Other pending
bookings for a taken slot stay pending until the coach rejects them.
"""
import re

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import db
from models.coach import (
    CoachSlot, CoachBooking,
    COACH_BOOKING_PENDING, COACH_BOOKING_ACCEPTED, COACH_BOOKING_REJECTED,
)
from services.concurrency import atomic, with_retry, read_commitment_stamp, bump_commitment_stamp
from services.games import parse_date
from services.overlap import ensure_no_coach_overlap, session_window
from utils import clock
from utils.audit import log_event
from utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

_HHMM = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

DEFAULT_REJECTION_REASON = "No reason provided"
MAX_REJECTION_REASON = 500


def _parse_hhmm(value, field: str) -> str:
    text = (value or "").strip() if isinstance(value, str) else ""
    if not _HHMM.match(text):
        raise ValidationError(f"{field} must be HH:MM")
    return text


def _load_booking(booking_id: int, coach_id: int) -> CoachBooking:
    booking = db.session.get(CoachBooking, booking_id)
    if not booking:
        raise NotFoundError("Booking not found")
    if booking.coach_id != coach_id:
        raise ForbiddenError("You can only manage your own booking requests")
    if booking.status != COACH_BOOKING_PENDING:
        raise ConflictError("Booking is not pending")
    return booking


def _set_booking_status(booking: CoachBooking, new_status: str, **values):
    stmt = (
        update(CoachBooking)
        .where(CoachBooking.id == booking.id, CoachBooking.status == COACH_BOOKING_PENDING)
        .values(status=new_status, updated_at=clock.utcnow(), **values)
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(stmt).rowcount != 1:
        raise ConflictError("Booking is not pending")


# ---------- slots ----------

def create_slot(coach_id: int, day, start_time, end_time) -> CoachSlot:
    if not day or not start_time or not end_time:
        raise ValidationError("Date, start time, and end time are required")

    slot_date = parse_date(day, "date")
    start = _parse_hhmm(start_time, "startTime")
    end = _parse_hhmm(end_time, "endTime")
    if end <= start:
        raise ValidationError("endTime must be after startTime")
    if slot_date < clock.utcnow().date():
        raise ValidationError("Cannot create a slot in the past")

    duplicate = CoachSlot.query.filter_by(
        coach_id=coach_id, date=slot_date, start_time=start, end_time=end,
    ).first()
    if duplicate:
        raise ConflictError("A slot already exists for the specified date and time")

    slot = CoachSlot(coach_id=coach_id, date=slot_date, start_time=start, end_time=end)
    db.session.add(slot)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ConflictError("A slot already exists for the specified date and time")

    log_event("COACH_SLOT_CREATE", user_id=coach_id, entity="coach_slot", entity_id=slot.id)
    return slot


def list_coach_slots(coach_id: int):
    """Bookable slots of one coach, today onwards."""
    return (
        CoachSlot.query
        .filter(
            CoachSlot.coach_id == coach_id,
            CoachSlot.is_booked.is_(False),
            CoachSlot.date >= clock.utcnow().date(),
        )
        .order_by(CoachSlot.date.asc(), CoachSlot.start_time.asc())
        .all()
    )


def list_my_slots(coach_id: int):
    return (
        CoachSlot.query
        .filter(CoachSlot.coach_id == coach_id, CoachSlot.is_booked.is_(False))
        .order_by(CoachSlot.date.asc(), CoachSlot.start_time.asc())
        .all()
    )


def delete_slot(slot_id: int, coach_id: int):
    slot = db.session.get(CoachSlot, slot_id)
    if not slot:
        raise NotFoundError("This slot does not exist")
    if slot.coach_id != coach_id:
        raise ForbiddenError("You can only delete your own slots")
    if slot.is_booked:
        raise ConflictError("Cannot delete a booked slot")

    with atomic():
        deleted = (
            CoachSlot.query
            .filter_by(id=slot_id, is_booked=False)
            .delete(synchronize_session=False)
        )
        if deleted != 1:
            raise ConflictError("Cannot delete a booked slot")

    log_event("COACH_SLOT_DELETE", user_id=coach_id, entity="coach_slot", entity_id=slot_id)


# ---------- bookings ----------

def request_booking(player_id: int, slot_id) -> CoachBooking:
    if not slot_id:
        raise ValidationError("Slot ID is required")
    try:
        slot_id = int(slot_id)
    except (TypeError, ValueError):
        raise ValidationError("Slot ID must be an integer")

    slot = db.session.get(CoachSlot, slot_id)
    if not slot:
        raise NotFoundError("This slot is not available")
    if slot.coach_id == player_id:
        raise ConflictError("Coaches cannot book their own slots")
    if slot.is_booked:
        raise ConflictError("This slot is already booked")

    existing = CoachBooking.query.filter(
        CoachBooking.player_id == player_id,
        CoachBooking.slot_id == slot.id,
        CoachBooking.status.in_((COACH_BOOKING_PENDING, COACH_BOOKING_ACCEPTED)),
    ).first()
    if existing:
        raise ConflictError("You already have a booking request for this slot")

    start, end = session_window(slot.date, slot.start_time, slot.end_time)
    ensure_no_coach_overlap(player_id, start, end)

    booking = CoachBooking(
        coach_id=slot.coach_id,
        player_id=player_id,
        slot_id=slot.id,
        date=slot.date,
        start_time=slot.start_time,
        end_time=slot.end_time,
        status=COACH_BOOKING_PENDING,
    )
    db.session.add(booking)
    try:
        db.session.commit()
    except IntegrityError:
        # uq_coach_booking_live
        db.session.rollback()
        raise ConflictError("You already have a booking request for this slot")

    current_app.logger.info("coach booking %s requested: player %s slot %s", booking.id, player_id, slot_id)
    log_event("COACH_BOOKING_REQUEST", user_id=player_id, entity="coach_booking", entity_id=booking.id)
    return booking


def accept_booking(booking_id: int, coach_id: int) -> CoachBooking:
    booking = with_retry(_accept_once, booking_id, coach_id)

    current_app.logger.info("coach booking %s accepted", booking_id)
    log_event("COACH_BOOKING_ACCEPT", user_id=coach_id, entity="coach_booking", entity_id=booking_id)
    return booking


def _accept_once(booking_id: int, coach_id: int) -> CoachBooking:
    booking = _load_booking(booking_id, coach_id)

    # re-check: time has passed since the request was made
    slot = db.session.get(CoachSlot, booking.slot_id)
    if not slot:
        raise ConflictError("This slot is not available")
    if slot.is_booked:
        raise ConflictError("This slot is no longer available")

    player_id = booking.player_id
    stamp = read_commitment_stamp(player_id)
    start, end = session_window(booking.date, booking.start_time, booking.end_time)
    ensure_no_coach_overlap(player_id, start, end, exclude_booking_id=booking.id)

    with atomic():
        claimed = db.session.execute(
            update(CoachSlot)
            .where(CoachSlot.id == slot.id, CoachSlot.is_booked.is_(False))
            .values(is_booked=True, booked_by=player_id)
            .execution_options(synchronize_session=False)
        ).rowcount
        if claimed != 1:
            raise ConflictError("This slot is no longer available")
        _set_booking_status(booking, COACH_BOOKING_ACCEPTED)
        bump_commitment_stamp(player_id, stamp)

    return booking


def reject_booking(booking_id: int, coach_id: int, reason=None) -> CoachBooking:
    booking = _load_booking(booking_id, coach_id)

    reason = (reason or "").strip() if isinstance(reason, str) else ""
    if len(reason) > MAX_REJECTION_REASON:
        raise ValidationError(f"rejectionReason must be at most {MAX_REJECTION_REASON} characters")

    with atomic():
        _set_booking_status(
            booking, COACH_BOOKING_REJECTED,
            rejection_reason=reason or DEFAULT_REJECTION_REASON,
        )

    log_event("COACH_BOOKING_REJECT", user_id=coach_id, entity="coach_booking", entity_id=booking_id)
    return booking


def coach_booking_requests(coach_id: int):
    return (
        CoachBooking.query
        .filter_by(coach_id=coach_id)
        .order_by(CoachBooking.created_at.desc(), CoachBooking.id.desc())
        .all()
    )


def my_coach_bookings(player_id: int):
    return (
        CoachBooking.query
        .filter_by(player_id=player_id)
        .order_by(CoachBooking.created_at.desc(), CoachBooking.id.desc())
        .all()
    )
