from flask import Blueprint, request, jsonify, g

from services import games as game_service
from services import join_requests as join_service
from routes.serializers import game_to_dict, join_request_to_dict
from utils.auth_context import login_required

games_bp = Blueprint("games", __name__, url_prefix="/games")


# ---------- hosting ----------
@games_bp.post("")
@login_required
def host_game():
    data = request.get_json(silent=True) or {}
    game = game_service.host_game(g.user.id, data)
    return jsonify(success=True, message="Game hosted successfully", game=game_to_dict(game, detail=True)), 201


@games_bp.get("")
def list_games():
    games = game_service.list_open_games(request.args)
    return jsonify(success=True, count=len(games), games=[game_to_dict(x) for x in games]), 200


@games_bp.get("/mine")
@login_required
def my_games():
    mine = game_service.my_games(g.user.id)
    return jsonify(
        success=True,
        hosted=[game_to_dict(x) for x in mine["hosted"]],
        playing=[game_to_dict(x) for x in mine["playing"]],
        requested=[
            {**game_to_dict(game), "joinRequest": join_request_to_dict(jr)}
            for game, jr in mine["requested"]
        ],
    ), 200


@games_bp.get("/<int:game_id>")
def get_game(game_id: int):
    game = join_service.load_game(game_id)
    return jsonify(success=True, game=game_to_dict(game, detail=True)), 200


# ---------- lifecycle ----------
@games_bp.patch("/<int:game_id>/cancel")
@login_required
def cancel_game(game_id: int):
    game = game_service.cancel_game(game_id, g.user.id)
    return jsonify(success=True, message="Game cancelled successfully", status=game.status), 200


@games_bp.patch("/<int:game_id>/complete")
@login_required
def complete_game(game_id: int):
    game = game_service.complete_game(game_id, g.user.id)
    return jsonify(success=True, message="Game marked as completed", status=game.status), 200


@games_bp.delete("/<int:game_id>/leave")
@login_required
def leave_game(game_id: int):
    game = game_service.leave_game(game_id, g.user.id)
    return jsonify(success=True, message="You have left the game", status=game.status), 200


# ---------- legacy join routes (same state machine as /joinrequests) ----------
@games_bp.post("/<int:game_id>/join")
@login_required
def join_game(game_id: int):
    join_service.create_request(game_id, g.user.id)
    return jsonify(success=True, message="Join request sent"), 201


@games_bp.post("/<int:game_id>/approve/<int:user_id>")
@login_required
def approve_request(game_id: int, user_id: int):
    game = join_service.approve_request(game_id, user_id, g.user.id)
    return jsonify(
        success=True,
        message="Request approved",
        currentApprovedPlayers=game.approved_count,
        status=game.status,
    ), 200


@games_bp.post("/<int:game_id>/reject/<int:user_id>")
@login_required
def reject_request(game_id: int, user_id: int):
    join_service.reject_request(game_id, user_id, g.user.id)
    return jsonify(success=True, message="Request rejected"), 200
