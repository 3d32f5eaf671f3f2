from datetime import datetime, time

from models.coach import CoachBooking, COACH_BOOKING_ACCEPTED
from models.game import Game, GamePlayer, GAME_OPEN, GAME_FULL
from utils.errors import ConflictError

# games that still hold a seat for their players
ACTIVE_GAME_STATUSES = (GAME_OPEN, GAME_FULL)


def overlapping_games(user_id: int, start: datetime, end: datetime):
    return (
        Game.query
        .join(GamePlayer, GamePlayer.game_id == Game.id)
        .filter(
            GamePlayer.user_id == user_id,
            Game.status.in_(ACTIVE_GAME_STATUSES),
            Game.start_time < end,   # existing starts before candidate ends
            Game.end_time > start,   # existing ends after candidate starts
        )
        .all()
    )


def has_overlap(user_id: int, start: datetime, end: datetime) -> bool:
    return len(overlapping_games(user_id, start, end)) > 0


def ensure_no_overlap(user_id: int, start: datetime, end: datetime):
    if has_overlap(user_id, start, end):
        raise ConflictError("You already have a game overlapping with this slot.")


def session_window(day, start_hhmm: str, end_hhmm: str):
    """[start, end) datetimes of a coach session given its date and HH:MM times."""
    return (
        datetime.combine(day, time.fromisoformat(start_hhmm)),
        datetime.combine(day, time.fromisoformat(end_hhmm)),
    )


def has_coach_overlap(player_id: int, start: datetime, end: datetime, exclude_booking_id=None) -> bool:
    # coach sessions are a separate commitment track from games
    q = CoachBooking.query.filter(
        CoachBooking.player_id == player_id,
        CoachBooking.status == COACH_BOOKING_ACCEPTED,
        CoachBooking.date == start.date(),
    )
    if exclude_booking_id is not None:
        q = q.filter(CoachBooking.id != exclude_booking_id)

    for booking in q.all():
        b_start, b_end = session_window(booking.date, booking.start_time, booking.end_time)
        if b_start < end and b_end > start:
            return True
    return False


def ensure_no_coach_overlap(player_id: int, start: datetime, end: datetime, exclude_booking_id=None):
    if has_coach_overlap(player_id, start, end, exclude_booking_id):
        raise ConflictError("You already have a coaching session overlapping with this slot.")
