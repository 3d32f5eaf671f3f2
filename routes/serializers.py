from models.game import REQUEST_PENDING


def _iso(value):
    return value.isoformat() if value else None


def join_request_to_dict(jr):
    return {
        "id": jr.id,
        "user": jr.user_id,
        "status": jr.status,
        "requestedAt": _iso(jr.requested_at),
        "decidedAt": _iso(jr.decided_at),
    }


def game_to_dict(game, detail=False):
    out = {
        "id": game.id,
        "host": game.host_id,
        "sport": game.sport,
        "sportKey": game.sport_key,
        "description": game.description,
        "venue": {
            "venueId": game.venue_id,
            "city": game.city,
            "state": game.state,
            "coordinates": {"type": "Point", "coordinates": [game.longitude, game.latitude]},
        },
        "subVenue": {"subVenueId": game.sub_venue_id, "name": game.sub_venue_name},
        "slot": {
            "timeSlotDocId": game.time_slot_doc_id,
            "slotId": game.slot_id,
            "date": _iso(game.slot_date),
            "startTime": _iso(game.start_time),
            "endTime": _iso(game.end_time),
            "price": game.price,
        },
        "playersNeeded": {"min": game.min_players, "max": game.max_players},
        "approvedCount": game.approved_count,
        "approxCostPerPlayer": game.approx_cost_per_player,
        "status": game.status,
        "bookingStatus": game.booking_status,
        "createdAt": _iso(game.created_at),
    }
    if detail:
        out["approvedPlayers"] = game.approved_player_ids
        out["pendingRequests"] = sum(1 for jr in game.join_requests if jr.status == REQUEST_PENDING)
    return out


def coach_slot_to_dict(slot):
    return {
        "id": slot.id,
        "coachId": slot.coach_id,
        "date": _iso(slot.date),
        "startTime": slot.start_time,
        "endTime": slot.end_time,
        "isBooked": slot.is_booked,
        "bookedBy": slot.booked_by,
    }


def coach_booking_to_dict(booking):
    return {
        "id": booking.id,
        "coachId": booking.coach_id,
        "playerId": booking.player_id,
        "slotId": booking.slot_id,
        "status": booking.status,
        "date": _iso(booking.date),
        "startTime": booking.start_time,
        "endTime": booking.end_time,
        "rejectionReason": booking.rejection_reason,
        "createdAt": _iso(booking.created_at),
    }
