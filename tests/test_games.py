from datetime import timedelta

import pytest

from conftest import NOW, game_payload
from models import db
from models.game import (
    Game, JoinRequest,
    GAME_OPEN, GAME_FULL, GAME_CANCELLED, GAME_COMPLETED, GAME_NEEDS_HOST_ACTION, BOOKING_BOOKED,
)
from services import games as game_service
from services import join_requests as join_service
from utils.errors import ConflictError, ForbiddenError, ValidationError


def _game(game_id):
    return db.session.get(Game, game_id)


# ---------- hosting ----------

def test_host_is_first_approved_player(make_user):
    host = make_user()
    game = game_service.host_game(host, game_payload(max_players=4))

    assert game.status == GAME_OPEN
    assert game.booking_status == "NotBooked"
    assert game.approved_count == 1
    assert game.approved_player_ids == [host]
    assert game.approx_cost_per_player == 300
    assert game.slot_date == (NOW + timedelta(days=1)).date()


@pytest.mark.parametrize("changes", [
    {"sport": ""},
    {"description": "  "},
    {"playersNeeded": {"min": 3, "max": 2}},
    {"playersNeeded": {"min": 0, "max": 2}},
    {"playersNeeded": {"min": 1, "max": 1}},
    {"playersNeeded": {"min": "two", "max": 4}},
    {"timeSlot": {"startTime": "2030-06-02T10:00:00", "endTime": "2030-06-02T09:00:00"}},
    {"timeSlot": {"startTime": "yesterday", "endTime": "2030-06-02T09:00:00"}},
    {"venueLocation": {"type": "Point", "coordinates": [200, 0]}},
    {"venueLocation": {"type": "Polygon", "coordinates": [0, 0]}},
    {"price": -5},
])
def test_host_validation(make_user, changes):
    payload = game_payload()
    payload.update(changes)
    with pytest.raises(ValidationError):
        game_service.host_game(make_user(), payload)


def test_cannot_host_in_the_past(make_user):
    with pytest.raises(ValidationError, match="already started"):
        game_service.host_game(make_user(), game_payload(start=NOW - timedelta(minutes=1)))


def test_timezone_offsets_are_stored_as_utc(make_user):
    payload = game_payload()
    payload["timeSlot"] = {"startTime": "2030-06-02T15:30:00+05:30", "endTime": "2030-06-02T17:30:00+05:30"}
    game = game_service.host_game(make_user(), payload)
    assert game.start_time.isoformat() == "2030-06-02T10:00:00"


def test_price_from_sport_keyed_prices(make_user):
    payload = game_payload(
        sport={"key": "table_tennis", "name": "Table Tennis"},
        max_players=2,
        subVenue={"subVenueId": "court-2", "name": "Court 2", "sports": ["Table Tennis", "Badminton"]},
        slot={"slotId": "s-1", "prices": {"table_tennis": 400, "badminton": 300}},
    )
    game = game_service.host_game(make_user(), payload)
    assert game.sport == "Table Tennis"
    assert game.sport_key == "tabletennis"
    assert game.price == 400
    assert game.approx_cost_per_player == 200


def test_sport_must_be_offered_by_sub_venue(make_user):
    payload = game_payload(sport="Cricket", subVenue={"sports": ["Football"]})
    with pytest.raises(ValidationError, match="not available"):
        game_service.host_game(make_user(), payload)


def test_host_cannot_double_book(make_user, host_game):
    host = make_user()
    host_game(host, start=NOW + timedelta(days=1))
    with pytest.raises(ConflictError, match="overlapping"):
        host_game(host, start=NOW + timedelta(days=1, hours=1))


# ---------- listing ----------

def test_list_open_games_filters(make_user, host_game):
    football = host_game(make_user(), sport="Football", price=500, start=NOW + timedelta(days=1))
    tennis = host_game(
        make_user(), sport="Table Tennis", price=900, start=NOW + timedelta(days=3),
        venueLocation={"type": "Point", "coordinates": [77.7, 13.1]},
    )
    full = host_game(make_user(), sport="Football", max_players=2, start=NOW + timedelta(days=2))
    joiner = make_user()
    join_service.create_request(full, joiner)
    join_service.approve_request(full, joiner, _game(full).host_id)

    def ids(**args):
        return [g.id for g in game_service.list_open_games(args)]

    assert ids() == [football, tennis]
    assert ids(sport="table") == [tennis]
    assert ids(sport="table_tennis") == [tennis]
    assert ids(minPrice="600") == [tennis]
    assert ids(maxPrice="600") == [football]
    assert ids(startDate=(NOW + timedelta(days=2)).date().isoformat()) == [tennis]
    assert ids(endDate=(NOW + timedelta(days=2)).date().isoformat()) == [football]
    assert ids(venueId="venue-1") == [football, tennis]
    assert ids(venueId="elsewhere") == []
    assert ids(lng="77.5946", lat="12.9716") == [football]
    assert ids(lng="77.5946", lat="12.9716", radius="50000") == [football, tennis]


def test_near_search_is_not_cut_short_by_the_list_cap(app, make_user, host_game):
    app.config["GAME_LIST_LIMIT"] = 3
    for hours in (1, 2, 3):
        host_game(
            make_user(), start=NOW + timedelta(days=1, hours=hours * 3), hours=1,
            venueLocation={"type": "Point", "coordinates": [0, 0]},
        )
    nearby = host_game(make_user(), start=NOW + timedelta(days=2))

    found = game_service.list_open_games({"lng": "77.5946", "lat": "12.9716"})
    assert [g.id for g in found] == [nearby]
    assert len(game_service.list_open_games({})) == 3


def test_sport_search_treats_wildcards_literally(make_user, host_game):
    football = host_game(make_user(), sport="Football")

    def ids(sport):
        return [g.id for g in game_service.list_open_games({"sport": sport})]

    assert ids("%") == []
    assert ids("_") == []
    assert ids("foot%") == []
    assert ids("FOOT") == [football]


@pytest.mark.parametrize("args", [
    {"startDate": "01/06/2030"},
    {"minPrice": "cheap"},
    {"lng": "77.5"},
    {"lng": "500", "lat": "0"},
    {"lng": "77.5", "lat": "12.9", "radius": "0"},
])
def test_list_rejects_bad_filters(app, args):
    with pytest.raises(ValidationError):
        game_service.list_open_games(args)


def test_my_games(make_user, host_game):
    host, player, rejected = make_user(), make_user(), make_user()
    game_id = host_game(host)
    join_service.create_request(game_id, player)
    join_service.create_request(game_id, rejected)
    join_service.reject_request(game_id, rejected, host)

    assert [g.id for g in game_service.my_games(host)["hosted"]] == [game_id]
    assert game_service.my_games(player)["playing"] == []
    assert [(g.id, jr.status) for g, jr in game_service.my_games(player)["requested"]] == [(game_id, "pending")]
    assert [jr.status for _, jr in game_service.my_games(rejected)["requested"]] == ["rejected"]

    join_service.approve_request(game_id, player, host)
    mine = game_service.my_games(player)
    assert [g.id for g in mine["playing"]] == [game_id]
    assert mine["requested"] == []


# ---------- lifecycle ----------

def test_transition_table():
    assert game_service.can_transition(GAME_OPEN, GAME_FULL)
    assert game_service.can_transition(GAME_FULL, GAME_OPEN)
    assert game_service.can_transition(GAME_NEEDS_HOST_ACTION, GAME_CANCELLED)
    assert not game_service.can_transition(GAME_NEEDS_HOST_ACTION, GAME_OPEN)
    assert not game_service.can_transition(GAME_CANCELLED, GAME_OPEN)
    assert not game_service.can_transition(GAME_COMPLETED, GAME_CANCELLED)


def test_cancel_game(make_user, host_game, frozen_clock):
    host, player = make_user(), make_user()
    game_id = host_game(host, start=NOW + timedelta(hours=3))

    with pytest.raises(ForbiddenError):
        game_service.cancel_game(game_id, player)

    frozen_clock.advance(hours=1, seconds=1)
    with pytest.raises(ConflictError, match="at least 2 hours"):
        game_service.cancel_game(game_id, host)

    frozen_clock.now = NOW
    assert game_service.cancel_game(game_id, host).status == GAME_CANCELLED

    with pytest.raises(ConflictError, match="Cannot change"):
        game_service.cancel_game(game_id, host)
    with pytest.raises(ConflictError, match="not open"):
        join_service.create_request(game_id, player)


def test_complete_game_only_after_end(make_user, host_game, frozen_clock):
    host = make_user()
    game_id = host_game(host, start=NOW + timedelta(hours=3), hours=2)

    with pytest.raises(ConflictError, match="before it ends"):
        game_service.complete_game(game_id, host)

    frozen_clock.advance(hours=5)
    assert game_service.complete_game(game_id, host).status == GAME_COMPLETED
    with pytest.raises(ConflictError):
        game_service.complete_game(game_id, host)


def test_leave_reopens_full_game(make_user, host_game):
    host, player = make_user(), make_user()
    game_id = host_game(host, max_players=2)
    join_service.create_request(game_id, player)
    join_service.approve_request(game_id, player, host)
    assert _game(game_id).status == GAME_FULL

    game = game_service.leave_game(game_id, player)
    assert (game.approved_count, game.status) == (1, GAME_OPEN)
    assert game.approved_player_ids == [host]
    assert JoinRequest.query.filter_by(game_id=game_id, user_id=player).first() is None

    # leaving clears the request, so the player may ask again
    assert join_service.create_request(game_id, player).status == "pending"


def test_leave_rules(make_user, host_game):
    host, player, stranger = make_user(), make_user(), make_user()
    game_id = host_game(host)
    join_service.create_request(game_id, player)
    join_service.approve_request(game_id, player, host)

    with pytest.raises(ConflictError, match="Host cannot leave"):
        game_service.leave_game(game_id, host)
    with pytest.raises(ConflictError, match="not approved"):
        game_service.leave_game(game_id, stranger)

    game_service.set_booking_status(game_id, BOOKING_BOOKED)
    with pytest.raises(ConflictError, match="already booked"):
        game_service.leave_game(game_id, player)
    assert _game(game_id).approved_count == 2


def test_booking_status_values(make_user, host_game):
    game_id = host_game(make_user())
    with pytest.raises(ValidationError):
        game_service.set_booking_status(game_id, "Paid")
    assert game_service.set_booking_status(game_id, "Booked").booking_status == "Booked"


def test_needs_host_action_can_still_be_cancelled(make_user, host_game):
    host = make_user()
    game_id = host_game(host)
    game_service.flag_needs_host_action(game_id)

    with pytest.raises(ConflictError):
        game_service.flag_needs_host_action(game_id)
    assert game_service.cancel_game(game_id, host).status == GAME_CANCELLED
