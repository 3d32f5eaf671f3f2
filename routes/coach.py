from flask import Blueprint, request, jsonify, g

from security.rbac import require_roles
from services import coach as coach_service
from routes.serializers import coach_slot_to_dict, coach_booking_to_dict

coach_bp = Blueprint("coach", __name__, url_prefix="/coach")


# ---------- COACH: manage slots ----------
@coach_bp.post("/slots")
@require_roles("COACH")
def create_slot():
    data = request.get_json(silent=True) or {}
    slot = coach_service.create_slot(g.user.id, data.get("date"), data.get("startTime"), data.get("endTime"))
    return jsonify(success=True, message="Slot created successfully", slot=coach_slot_to_dict(slot)), 201


@coach_bp.get("/slots")
@require_roles("COACH")
def my_slots():
    slots = coach_service.list_my_slots(g.user.id)
    return jsonify(success=True, slots=[coach_slot_to_dict(s) for s in slots]), 200


@coach_bp.delete("/slots/<int:slot_id>")
@require_roles("COACH")
def delete_slot(slot_id: int):
    coach_service.delete_slot(slot_id, g.user.id)
    return jsonify(success=True, message="Slot deleted successfully"), 200


# ---------- PUBLIC: a coach's bookable slots ----------
@coach_bp.get("/<int:coach_id>/slots")
def coach_slots(coach_id: int):
    slots = coach_service.list_coach_slots(coach_id)
    return jsonify(success=True, slots=[coach_slot_to_dict(s) for s in slots]), 200


# ---------- PLAYERS: request and view bookings ----------
@coach_bp.post("/bookings")
@require_roles("PLAYER")
def request_booking():
    data = request.get_json(silent=True) or {}
    booking = coach_service.request_booking(g.user.id, data.get("slotId"))
    return jsonify(
        success=True,
        message="Booking request sent successfully",
        booking=coach_booking_to_dict(booking),
    ), 201


@coach_bp.get("/bookings/mine")
@require_roles("PLAYER")
def my_bookings():
    bookings = coach_service.my_coach_bookings(g.user.id)
    return jsonify(success=True, bookings=[coach_booking_to_dict(b) for b in bookings]), 200


# ---------- COACH: decide on booking requests ----------
@coach_bp.get("/bookings")
@require_roles("COACH")
def booking_requests():
    bookings = coach_service.coach_booking_requests(g.user.id)
    return jsonify(success=True, bookings=[coach_booking_to_dict(b) for b in bookings]), 200


@coach_bp.put("/bookings/<int:booking_id>/accept")
@require_roles("COACH")
def accept_booking(booking_id: int):
    booking = coach_service.accept_booking(booking_id, g.user.id)
    return jsonify(
        success=True,
        message="Booking accepted successfully",
        booking=coach_booking_to_dict(booking),
    ), 200


@coach_bp.put("/bookings/<int:booking_id>/reject")
@require_roles("COACH")
def reject_booking(booking_id: int):
    data = request.get_json(silent=True) or {}
    booking = coach_service.reject_booking(booking_id, g.user.id, data.get("rejectionReason"))
    return jsonify(
        success=True,
        message="Booking rejected successfully",
        booking=coach_booking_to_dict(booking),
    ), 200
