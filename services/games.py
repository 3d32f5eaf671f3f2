"""
Game lifecycle.

Status only moves along ``TRANSITIONS``. Open <-> Full is driven by the seat
counter in ``services.capacity``; every other move goes through
``transition`` as a conditional update on the status the caller observed.
Cancelled and Completed are terminal. NeedsHostAction is set by the payment
side and counts as "not open" for join requests.
"""
from datetime import date, datetime, timedelta, timezone

from flask import current_app
from sqlalchemy import or_, update

from models import db
from models.game import (
    Game, GamePlayer, JoinRequest,
    GAME_OPEN, GAME_FULL, GAME_CANCELLED, GAME_COMPLETED, GAME_NEEDS_HOST_ACTION,
    BOOKING_BOOKED, BOOKING_NOT_BOOKED, REQUEST_APPROVED,
)
from services.capacity import release_seat
from services.concurrency import atomic, with_retry, read_commitment_stamp, bump_commitment_stamp
from services.join_requests import load_game
from services.overlap import ensure_no_overlap
from services.sports import parse_sport, normalize_sport, supports_sport, price_for_sport
from utils import clock
from utils.audit import log_event
from utils.errors import ConflictError, ForbiddenError, ValidationError
from utils.geo import distance_meters, is_valid_point

TRANSITIONS = {
    GAME_OPEN: {GAME_FULL, GAME_CANCELLED, GAME_COMPLETED, GAME_NEEDS_HOST_ACTION},
    GAME_FULL: {GAME_OPEN, GAME_CANCELLED, GAME_COMPLETED, GAME_NEEDS_HOST_ACTION},
    GAME_NEEDS_HOST_ACTION: {GAME_CANCELLED, GAME_COMPLETED},
    GAME_CANCELLED: set(),
    GAME_COMPLETED: set(),
}

BOOKING_STATUSES = (BOOKING_BOOKED, BOOKING_NOT_BOOKED)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, set())


def transition(game: Game, target: str):
    current = game.status
    if not can_transition(current, target):
        raise ConflictError(f"Cannot change a {current} game to {target}")

    stmt = (
        update(Game)
        .where(Game.id == game.id, Game.status == current)
        .values(status=target, updated_at=clock.utcnow())
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(stmt).rowcount != 1:
        raise ConflictError("Game status changed, please retry")


# ---------- input parsing ----------

def parse_datetime(value, field: str) -> datetime:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use ISO e.g. 2026-01-20T18:00:00")
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def parse_date(value, field: str) -> date:
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"Invalid {field}. Use YYYY-MM-DD")


def _parse_float(value, field: str) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number")


def _players_needed(raw):
    if not isinstance(raw, dict) or raw.get("min") is None or raw.get("max") is None:
        raise ValidationError("playersNeeded (min/max) are required")
    try:
        low, high = int(raw["min"]), int(raw["max"])
    except (TypeError, ValueError):
        raise ValidationError("playersNeeded min/max must be integers")
    if low < 1:
        raise ValidationError("min players must be at least 1")
    if low > high:
        raise ValidationError("min players cannot exceed max players")
    if high < 2:
        raise ValidationError("max players must leave room for at least one player besides the host")
    return low, high


def _venue_point(raw):
    if not isinstance(raw, dict):
        raise ValidationError("venueLocation is required")
    if raw.get("type", "Point") != "Point":
        raise ValidationError("venueLocation.type must be Point")
    coords = raw.get("coordinates")
    if not isinstance(coords, (list, tuple)) or len(coords) != 2:
        raise ValidationError("venueLocation.coordinates must be [lng, lat]")
    lng = _parse_float(coords[0], "longitude")
    lat = _parse_float(coords[1], "latitude")
    if not is_valid_point(lng, lat):
        raise ValidationError("venueLocation.coordinates out of range")
    return lng, lat


def _slot_price(data: dict, sport) -> int:
    slot = data.get("slot") or {}
    prices = slot.get("prices")
    if prices:
        if not isinstance(prices, dict):
            raise ValidationError("slot.prices must be an object keyed by sport")
        price = price_for_sport(prices, sport)
        if price is None:
            raise ValidationError("Slot does not have a valid price for this sport")
    else:
        price = slot.get("price", data.get("price", 0))
    try:
        price = int(price)
    except (TypeError, ValueError):
        raise ValidationError("price must be an integer")
    if price < 0:
        raise ValidationError("price cannot be negative")
    return price


# ---------- operations ----------

def host_game(host_id: int, data: dict) -> Game:
    sport = parse_sport(data.get("sport"))
    description = (data.get("description") or "").strip()
    if not description:
        raise ValidationError("description is required")

    min_players, max_players = _players_needed(data.get("playersNeeded"))

    window = data.get("timeSlot") or {}
    start = parse_datetime(window.get("startTime"), "timeSlot.startTime")
    end = parse_datetime(window.get("endTime"), "timeSlot.endTime")
    if end <= start:
        raise ValidationError("endTime must be after startTime")
    if start <= clock.utcnow():
        raise ValidationError("Cannot host a game in a slot that has already started")

    lng, lat = _venue_point(data.get("venueLocation"))

    venue = data.get("venue") or {}
    sub_venue = data.get("subVenue") or {}
    if sub_venue.get("sports") is not None and not supports_sport(sub_venue["sports"], sport):
        raise ValidationError("This sport is not available on this subVenue")

    price = _slot_price(data, sport)
    slot = data.get("slot") or {}

    def _create():
        stamp = read_commitment_stamp(host_id)
        ensure_no_overlap(host_id, start, end)

        with atomic():
            bump_commitment_stamp(host_id, stamp)
            game = Game(
                host_id=host_id,
                sport=sport.name,
                sport_key=normalize_sport(sport.key),
                description=description,
                venue_id=venue.get("venueId"),
                city=venue.get("city"),
                state=venue.get("state"),
                longitude=lng,
                latitude=lat,
                sub_venue_id=sub_venue.get("subVenueId"),
                sub_venue_name=sub_venue.get("name"),
                time_slot_doc_id=slot.get("timeSlotDocId"),
                slot_id=slot.get("slotId"),
                slot_date=start.date(),
                start_time=start,
                end_time=end,
                price=price,
                approx_cost_per_player=price / max_players,
                min_players=min_players,
                max_players=max_players,
                approved_count=1,  # host is pre-approved
                status=GAME_OPEN,
                booking_status=BOOKING_NOT_BOOKED,
            )
            db.session.add(game)
            db.session.flush()
            db.session.add(GamePlayer(game_id=game.id, user_id=host_id))
        return game

    game = with_retry(_create)

    current_app.logger.info("game %s hosted by user %s (%s)", game.id, host_id, game.sport)
    log_event("GAME_CREATE", user_id=host_id, entity="game", entity_id=game.id)
    return game


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def list_open_games(args) -> list:
    q = Game.query.filter(
        Game.status == GAME_OPEN,
        Game.approved_count < Game.max_players,
    )

    sport = (args.get("sport") or "").strip()
    if sport:
        matches = [Game.sport.ilike(_like_pattern(sport), escape="\\")]
        sport_key = normalize_sport(sport)
        if sport_key:
            matches.append(Game.sport_key.ilike(_like_pattern(sport_key), escape="\\"))
        q = q.filter(or_(*matches))

    venue_id = (args.get("venueId") or "").strip()
    if venue_id:
        q = q.filter(Game.venue_id == venue_id)

    if args.get("startDate"):
        q = q.filter(Game.slot_date >= parse_date(args["startDate"], "startDate"))
    if args.get("endDate"):
        q = q.filter(Game.slot_date <= parse_date(args["endDate"], "endDate"))

    if args.get("minPrice") not in (None, ""):
        q = q.filter(Game.price >= _parse_float(args["minPrice"], "minPrice"))
    if args.get("maxPrice") not in (None, ""):
        q = q.filter(Game.price <= _parse_float(args["maxPrice"], "maxPrice"))

    near = _near_filter(args)

    limit = current_app.config.get("GAME_LIST_LIMIT", 200)
    q = q.order_by(Game.start_time.asc())
    if near is None:
        return q.limit(limit).all()

    # distance is checked in Python, so the cap applies after it
    lng, lat, radius = near
    nearby = [g for g in q.all() if distance_meters(lng, lat, g.longitude, g.latitude) <= radius]
    return nearby[:limit]


def _near_filter(args):
    lng, lat = args.get("lng"), args.get("lat")
    if lng in (None, "") and lat in (None, ""):
        return None
    if lng in (None, "") or lat in (None, ""):
        raise ValidationError("lng and lat must be given together")

    lng = _parse_float(lng, "lng")
    lat = _parse_float(lat, "lat")
    if not is_valid_point(lng, lat):
        raise ValidationError("lng/lat out of range")

    radius = args.get("radius")
    if radius in (None, ""):
        radius = current_app.config.get("DEFAULT_SEARCH_RADIUS_METERS", 5000)
    else:
        radius = _parse_float(radius, "radius")
    if radius <= 0:
        raise ValidationError("radius must be positive")
    return lng, lat, radius


def my_games(user_id: int) -> dict:
    hosted = (
        Game.query.filter_by(host_id=user_id)
        .order_by(Game.start_time.asc())
        .all()
    )
    playing = (
        Game.query
        .join(GamePlayer, GamePlayer.game_id == Game.id)
        .filter(GamePlayer.user_id == user_id, Game.host_id != user_id)
        .order_by(Game.start_time.asc())
        .all()
    )
    requested = (
        db.session.query(Game, JoinRequest)
        .join(JoinRequest, JoinRequest.game_id == Game.id)
        .filter(JoinRequest.user_id == user_id, JoinRequest.status != REQUEST_APPROVED)
        .order_by(Game.start_time.asc())
        .all()
    )
    return {"hosted": hosted, "playing": playing, "requested": requested}


def cancel_game(game_id: int, host_id: int) -> Game:
    game = load_game(game_id)
    if game.host_id != host_id:
        raise ForbiddenError("Only the host can cancel this game")

    cutoff_hours = current_app.config.get("GAME_CANCEL_CUTOFF_HOURS", 2)
    if game.start_time - clock.utcnow() < timedelta(hours=cutoff_hours):
        raise ConflictError(f"Games can only be cancelled at least {cutoff_hours} hours in advance")

    with atomic():
        transition(game, GAME_CANCELLED)

    current_app.logger.info("game %s cancelled by host", game_id)
    log_event("GAME_CANCEL", user_id=host_id, entity="game", entity_id=game_id)
    return game


def complete_game(game_id: int, host_id: int) -> Game:
    game = load_game(game_id)
    if game.host_id != host_id:
        raise ForbiddenError("Only the host can complete this game")

    if clock.utcnow() < game.end_time:
        raise ConflictError("Game cannot be completed before it ends")

    with atomic():
        transition(game, GAME_COMPLETED)

    log_event("GAME_COMPLETE", user_id=host_id, entity="game", entity_id=game_id)
    return game


def leave_game(game_id: int, player_id: int) -> Game:
    game = load_game(game_id)

    if game.host_id == player_id:
        raise ConflictError("Host cannot leave their own game, cancel it instead")

    if game.booking_status == BOOKING_BOOKED:
        raise ConflictError("Cannot leave the game because slot is already booked")

    seat = GamePlayer.query.filter_by(game_id=game.id, user_id=player_id).first()
    if seat is None:
        raise ConflictError("You are not approved for this game")

    if game.status not in (GAME_OPEN, GAME_FULL):
        raise ConflictError(f"Cannot leave a {game.status} game")

    with atomic():
        if not release_seat(game.id):
            raise ConflictError("Game status changed, please retry")
        db.session.delete(seat)
        # unlike a plain seat removal, leaving also deletes the request so the player may ask again
        JoinRequest.query.filter_by(game_id=game.id, user_id=player_id).delete(synchronize_session=False)

    current_app.logger.info("user %s left game %s", player_id, game_id)
    log_event("GAME_LEAVE", user_id=player_id, entity="game", entity_id=game_id)
    return game


def set_booking_status(game_id: int, booking_status: str) -> Game:
    if booking_status not in BOOKING_STATUSES:
        raise ValidationError(f"booking status must be one of {', '.join(BOOKING_STATUSES)}")
    game = load_game(game_id)
    with atomic():
        game.booking_status = booking_status

    log_event("GAME_BOOKING_STATUS", entity="game", entity_id=game_id, metadata={"booking_status": booking_status})
    return game


def flag_needs_host_action(game_id: int) -> Game:
    game = load_game(game_id)
    with atomic():
        transition(game, GAME_NEEDS_HOST_ACTION)

    current_app.logger.warning("game %s needs host action", game_id)
    log_event("GAME_NEEDS_HOST_ACTION", entity="game", entity_id=game_id)
    return game
