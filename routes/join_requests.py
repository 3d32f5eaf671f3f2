from flask import Blueprint, jsonify, g

from services import join_requests as join_service
from routes.serializers import join_request_to_dict
from utils.auth_context import login_required

join_requests_bp = Blueprint("join_requests", __name__, url_prefix="/games/<int:game_id>/joinrequests")


@join_requests_bp.get("")
@login_required
def list_join_requests(game_id: int):
    _, requests = join_service.list_requests(game_id, g.user.id)
    return jsonify(success=True, joinRequests=[join_request_to_dict(jr) for jr in requests]), 200


@join_requests_bp.post("")
@login_required
def create_join_request(game_id: int):
    jr = join_service.create_request(game_id, g.user.id)
    return jsonify(success=True, message="Join request created", joinRequest=join_request_to_dict(jr)), 201


@join_requests_bp.post("/<int:player_id>/approve")
@login_required
def approve_join_request(game_id: int, player_id: int):
    game = join_service.approve_request(game_id, player_id, g.user.id)
    return jsonify(
        success=True,
        message="Player approved",
        currentApprovedPlayers=game.approved_count,
        status=game.status,
    ), 200


@join_requests_bp.post("/<int:player_id>/reject")
@login_required
def reject_join_request(game_id: int, player_id: int):
    join_service.reject_request(game_id, player_id, g.user.id)
    return jsonify(success=True, message="Join request rejected"), 200


@join_requests_bp.delete("")
@login_required
def cancel_join_request(game_id: int):
    join_service.cancel_request(game_id, g.user.id)
    return jsonify(success=True, message="Join request cancelled"), 200
