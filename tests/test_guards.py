from datetime import date, datetime, timedelta

import pytest

from conftest import NOW
from models import db
from models.game import Game, GAME_OPEN, GAME_FULL, GAME_CANCELLED
from models.user import User
from services.capacity import claim_seat, has_room, release_seat
from services.concurrency import StaleCommitment, bump_commitment_stamp, read_commitment_stamp
from services.overlap import has_overlap, session_window
from utils.geo import distance_meters, is_valid_point


START = NOW + timedelta(days=1)


def _game(max_players=3, approved=1, status=GAME_OPEN):
    game = Game(
        host_id=1, sport="Football", sport_key="football", description="x",
        slot_date=START.date(), start_time=START, end_time=START + timedelta(hours=2),
        min_players=2, max_players=max_players, approved_count=approved, status=status,
    )
    db.session.add(game)
    db.session.commit()
    return game.id


# ---------- overlap ----------

def test_overlap_is_half_open(make_user, host_game):
    host = make_user()
    host_game(host, start=START, hours=2)
    end = START + timedelta(hours=2)

    assert has_overlap(host, START + timedelta(hours=1), end + timedelta(hours=1))
    assert has_overlap(host, START - timedelta(minutes=30), START + timedelta(minutes=1))
    # touching windows do not overlap
    assert not has_overlap(host, end, end + timedelta(hours=1))
    assert not has_overlap(host, START - timedelta(hours=1), START)


def test_cancelled_games_do_not_count(make_user, host_game):
    host = make_user()
    game_id = host_game(host, start=START)
    db.session.get(Game, game_id).status = GAME_CANCELLED
    db.session.commit()

    assert not has_overlap(host, START, START + timedelta(hours=1))


def test_session_window_combines_date_and_times():
    start, end = session_window(date(2030, 6, 2), "09:30", "10:15")
    assert start == datetime(2030, 6, 2, 9, 30)
    assert end == datetime(2030, 6, 2, 10, 15)


# ---------- capacity ----------

def test_claim_seat_flips_to_full_on_last_seat(app):
    game_id = _game(max_players=3, approved=1)

    assert claim_seat(game_id)
    db.session.commit()
    game = db.session.get(Game, game_id)
    assert (game.approved_count, game.status) == (2, GAME_OPEN)
    assert has_room(game)

    assert claim_seat(game_id)
    db.session.commit()
    game = db.session.get(Game, game_id)
    assert (game.approved_count, game.status) == (3, GAME_FULL)
    assert not has_room(game)

    assert not claim_seat(game_id)
    db.session.commit()
    assert db.session.get(Game, game_id).approved_count == 3


def test_release_seat_reopens_full_game(app):
    game_id = _game(max_players=2, approved=2, status=GAME_FULL)

    assert release_seat(game_id)
    db.session.commit()
    game = db.session.get(Game, game_id)
    assert (game.approved_count, game.status) == (1, GAME_OPEN)


def test_no_seat_changes_on_terminal_game(app):
    game_id = _game(approved=2, status=GAME_CANCELLED)

    assert not claim_seat(game_id)
    assert not release_seat(game_id)


# ---------- commitment stamp ----------

def test_stale_stamp_is_refused(make_user):
    user_id = make_user()
    stamp = read_commitment_stamp(user_id)

    bump_commitment_stamp(user_id, stamp)
    db.session.commit()
    assert db.session.get(User, user_id).booking_version == stamp + 1

    with pytest.raises(StaleCommitment):
        bump_commitment_stamp(user_id, stamp)
    db.session.rollback()


# ---------- geo ----------

def test_distance_meters():
    assert distance_meters(77.5946, 12.9716, 77.5946, 12.9716) == 0
    # one degree of latitude is roughly 111 km
    assert 110_000 < distance_meters(0, 0, 0, 1) < 112_000
    assert is_valid_point(-180, 90)
    assert not is_valid_point(181, 0)
