from datetime import timedelta

import pytest

from conftest import NOW
from models import db
from models.coach import CoachBooking, CoachSlot
from services import coach as coach_service
from utils.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError

TOMORROW = (NOW + timedelta(days=1)).date().isoformat()


@pytest.fixture
def coach(make_user):
    return make_user("COACH")


@pytest.fixture
def slot_id(coach):
    return coach_service.create_slot(coach, TOMORROW, "09:00", "10:00").id


def _slot(slot_id):
    return db.session.get(CoachSlot, slot_id)


def _booking(booking_id):
    return db.session.get(CoachBooking, booking_id)


# ---------- slots ----------

def test_duplicate_slot_is_refused(coach, slot_id):
    with pytest.raises(ConflictError, match="already exists"):
        coach_service.create_slot(coach, TOMORROW, "09:00", "10:00")
    # a different window on the same day is fine
    coach_service.create_slot(coach, TOMORROW, "10:00", "11:00")


@pytest.mark.parametrize("day, start, end", [
    (None, "09:00", "10:00"),
    (TOMORROW, "", "10:00"),
    ("tomorrow", "09:00", "10:00"),
    (TOMORROW, "9am", "10:00"),
    (TOMORROW, "24:00", "10:00"),
    (TOMORROW, "10:00", "10:00"),
    (TOMORROW, "11:00", "10:00"),
    ((NOW - timedelta(days=1)).date().isoformat(), "09:00", "10:00"),
])
def test_slot_validation(coach, day, start, end):
    with pytest.raises(ValidationError):
        coach_service.create_slot(coach, day, start, end)


def test_public_slot_listing(coach, slot_id, make_user, frozen_clock):
    later = coach_service.create_slot(coach, (NOW + timedelta(days=2)).date().isoformat(), "08:00", "09:00").id
    assert [s.id for s in coach_service.list_coach_slots(coach)] == [slot_id, later]

    booking = coach_service.request_booking(make_user(), slot_id)
    coach_service.accept_booking(booking.id, coach)
    assert [s.id for s in coach_service.list_coach_slots(coach)] == [later]

    frozen_clock.advance(days=3)
    assert coach_service.list_coach_slots(coach) == []
    assert [s.id for s in coach_service.list_my_slots(coach)] == [later]


def test_delete_slot_rules(coach, slot_id, make_user):
    other_coach = make_user("COACH")

    with pytest.raises(NotFoundError):
        coach_service.delete_slot(9999, coach)
    with pytest.raises(ForbiddenError):
        coach_service.delete_slot(slot_id, other_coach)

    booking = coach_service.request_booking(make_user(), slot_id)
    coach_service.accept_booking(booking.id, coach)
    with pytest.raises(ConflictError, match="booked slot"):
        coach_service.delete_slot(slot_id, coach)

    free = coach_service.create_slot(coach, TOMORROW, "18:00", "19:00").id
    coach_service.delete_slot(free, coach)
    assert _slot(free) is None


# ---------- bookings ----------

def test_two_players_one_slot(coach, slot_id, make_user):
    p1, p2 = make_user(), make_user()
    b1 = coach_service.request_booking(p1, slot_id).id
    b2 = coach_service.request_booking(p2, slot_id).id

    booking = coach_service.accept_booking(b1, coach)
    assert booking.status == "accepted"
    slot = _slot(slot_id)
    assert slot.is_booked
    assert slot.booked_by == p1

    # the other request stays pending but can no longer be accepted
    assert _booking(b2).status == "pending"
    with pytest.raises(ConflictError, match="no longer available"):
        coach_service.accept_booking(b2, coach)
    assert _booking(b2).status == "pending"

    rejected = coach_service.reject_booking(b2, coach)
    assert rejected.status == "rejected"
    assert rejected.rejection_reason == "No reason provided"


def test_request_rules(coach, slot_id, make_user):
    player = make_user()

    with pytest.raises(ValidationError):
        coach_service.request_booking(player, None)
    with pytest.raises(ValidationError):
        coach_service.request_booking(player, "abc")
    with pytest.raises(NotFoundError, match="not available"):
        coach_service.request_booking(player, 9999)
    with pytest.raises(ConflictError, match="own slots"):
        coach_service.request_booking(coach, slot_id)

    coach_service.request_booking(player, str(slot_id))
    with pytest.raises(ConflictError, match="already have a booking request"):
        coach_service.request_booking(player, slot_id)


def test_rejected_player_may_request_again(coach, slot_id, make_user):
    player = make_user()
    first = coach_service.request_booking(player, slot_id).id
    coach_service.reject_booking(first, coach, "  Fully booked that week  ")
    assert _booking(first).rejection_reason == "Fully booked that week"

    second = coach_service.request_booking(player, slot_id)
    assert second.status == "pending"


def test_booked_slot_refuses_new_requests(coach, slot_id, make_user):
    booking = coach_service.request_booking(make_user(), slot_id)
    coach_service.accept_booking(booking.id, coach)

    with pytest.raises(ConflictError, match="already booked"):
        coach_service.request_booking(make_user(), slot_id)


def test_only_owning_coach_decides(coach, slot_id, make_user):
    other_coach = make_user("COACH")
    booking_id = coach_service.request_booking(make_user(), slot_id).id

    with pytest.raises(ForbiddenError):
        coach_service.accept_booking(booking_id, other_coach)
    with pytest.raises(ForbiddenError):
        coach_service.reject_booking(booking_id, other_coach)
    with pytest.raises(NotFoundError):
        coach_service.accept_booking(9999, coach)

    coach_service.reject_booking(booking_id, coach)
    with pytest.raises(ConflictError, match="not pending"):
        coach_service.accept_booking(booking_id, coach)


def test_rejection_reason_length(coach, slot_id, make_user):
    booking_id = coach_service.request_booking(make_user(), slot_id).id
    with pytest.raises(ValidationError):
        coach_service.reject_booking(booking_id, coach, "x" * 501)
    assert _booking(booking_id).status == "pending"


def test_player_cannot_hold_overlapping_sessions(coach, slot_id, make_user):
    other_coach = make_user("COACH")
    overlapping = coach_service.create_slot(other_coach, TOMORROW, "09:30", "10:30").id
    player = make_user()

    first = coach_service.request_booking(player, slot_id).id
    second = coach_service.request_booking(player, overlapping).id
    coach_service.accept_booking(first, coach)

    with pytest.raises(ConflictError, match="coaching session overlapping"):
        coach_service.accept_booking(second, other_coach)
    assert not _slot(overlapping).is_booked


def test_booking_lists(coach, slot_id, make_user):
    player = make_user()
    later = coach_service.create_slot(coach, TOMORROW, "11:00", "12:00").id
    b1 = coach_service.request_booking(player, slot_id).id
    b2 = coach_service.request_booking(player, later).id

    assert {b.id for b in coach_service.coach_booking_requests(coach)} == {b1, b2}
    assert {b.id for b in coach_service.my_coach_bookings(player)} == {b1, b2}
    assert coach_service.my_coach_bookings(coach) == []


def test_slot_goes_to_one_accept(coach, slot_id, make_user, monkeypatch):
    p1, p2 = make_user(), make_user()
    first = coach_service.request_booking(p1, slot_id).id
    second = coach_service.request_booking(p2, slot_id).id

    real_check = coach_service.ensure_no_coach_overlap
    raced = []

    def check_then_lose_race(player_id, start, end, exclude_booking_id=None):
        # the other accept claims the slot after our is_booked check
        if not raced:
            raced.append(player_id)
            coach_service.accept_booking(first, coach)
        real_check(player_id, start, end, exclude_booking_id)

    monkeypatch.setattr(coach_service, "ensure_no_coach_overlap", check_then_lose_race)

    with pytest.raises(ConflictError, match="no longer available"):
        coach_service.accept_booking(second, coach)

    assert _booking(first).status == "accepted"
    assert _booking(second).status == "pending"
    slot = _slot(slot_id)
    assert slot.is_booked
    assert slot.booked_by == p1
