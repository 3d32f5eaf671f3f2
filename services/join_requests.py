"""
Join requests for one game.

A user has at most one request per game. ``pending`` moves to ``approved``
or ``rejected`` (both terminal); cancelling a pending request deletes it, so
the user may ask again later, while a rejected user may not.

Approval order: host, game open, not started, request pending, capacity,
overlap. Capacity is checked first because it is the cheaper query and the
more common refusal.
"""
from datetime import timedelta

from flask import current_app
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from models import db
from models.game import (
    Game, GamePlayer, JoinRequest,
    GAME_OPEN, REQUEST_PENDING, REQUEST_APPROVED, REQUEST_REJECTED,
)
from services.capacity import has_room, claim_seat
from services.concurrency import (
    atomic, with_retry, read_commitment_stamp, bump_commitment_stamp,
)
from services.overlap import ensure_no_overlap
from utils import clock
from utils.audit import log_event
from utils.errors import ConflictError, ForbiddenError, NotFoundError

_EXISTING_REQUEST_MESSAGES = {
    REQUEST_PENDING: "Join request already pending",
    REQUEST_APPROVED: "Already approved for this game",
    REQUEST_REJECTED: "Join request was rejected previously",
}


def load_game(game_id: int) -> Game:
    game = db.session.get(Game, game_id)
    if not game:
        raise NotFoundError("Game not found")
    return game


def _pending_request(game: Game, player_id: int) -> JoinRequest:
    jr = game.request_for(player_id)
    if jr is None:
        raise NotFoundError("Join request not found")
    if jr.status != REQUEST_PENDING:
        raise ConflictError("Already processed join request")
    return jr


def _decide(jr: JoinRequest, new_status: str, now):
    # pending -> approved/rejected, only if nobody decided it first
    stmt = (
        update(JoinRequest)
        .where(JoinRequest.id == jr.id, JoinRequest.status == REQUEST_PENDING)
        .values(status=new_status, decided_at=now)
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(stmt).rowcount != 1:
        raise ConflictError("Already processed join request")


def list_requests(game_id: int, host_id: int):
    game = load_game(game_id)
    if game.host_id != host_id:
        raise ForbiddenError("Only host can view join requests")
    return game, list(game.join_requests)


def create_request(game_id: int, requester_id: int) -> JoinRequest:
    game = load_game(game_id)

    if game.host_id == requester_id:
        raise ConflictError("Host cannot join their own game")

    if game.status != GAME_OPEN:
        raise ConflictError("Game is not open for join requests")

    now = clock.utcnow()
    if game.start_time <= now:
        raise ConflictError("Game already started")

    existing = game.request_for(requester_id)
    if existing is not None:
        raise ConflictError(_EXISTING_REQUEST_MESSAGES[existing.status])

    ensure_no_overlap(requester_id, game.start_time, game.end_time)

    jr = JoinRequest(game_id=game.id, user_id=requester_id, status=REQUEST_PENDING, requested_at=now)
    db.session.add(jr)
    try:
        db.session.commit()
    except IntegrityError:
        # uq_join_request_once: a concurrent request from the same user won
        db.session.rollback()
        raise ConflictError("Join request already pending")

    current_app.logger.info("join request: user %s -> game %s", requester_id, game_id)
    log_event("JOIN_REQUEST_CREATE", user_id=requester_id, entity="game", entity_id=game_id)
    return jr


def approve_request(game_id: int, player_id: int, host_id: int) -> Game:
    game = with_retry(_approve_once, game_id, player_id, host_id)

    current_app.logger.info(
        "join request approved: user %s -> game %s (%s/%s, %s)",
        player_id, game_id, game.approved_count, game.max_players, game.status,
    )
    log_event(
        "JOIN_REQUEST_APPROVE", user_id=host_id, entity="game", entity_id=game_id,
        metadata={"player_id": player_id, "status": game.status},
    )
    return game


def _approve_once(game_id: int, player_id: int, host_id: int) -> Game:
    game = load_game(game_id)

    if game.host_id != host_id:
        raise ForbiddenError("Only host can approve join requests")

    if game.status != GAME_OPEN:
        raise ConflictError("Cannot approve join requests for a game that is not open")

    now = clock.utcnow()
    if game.start_time <= now:
        raise ConflictError("Cannot approve join requests for games that have already started")

    jr = _pending_request(game, player_id)

    if not has_room(game):
        raise ConflictError("Game is already full")

    stamp = read_commitment_stamp(player_id)
    ensure_no_overlap(player_id, game.start_time, game.end_time)

    with atomic():
        _decide(jr, REQUEST_APPROVED, now)
        bump_commitment_stamp(player_id, stamp)
        if not claim_seat(game.id):
            raise ConflictError("Game is already full")

        already_in = GamePlayer.query.filter_by(game_id=game.id, user_id=player_id).first()
        if already_in is None:
            db.session.add(GamePlayer(game_id=game.id, user_id=player_id, joined_at=now))

    return game


def reject_request(game_id: int, player_id: int, host_id: int) -> JoinRequest:
    game = load_game(game_id)

    if game.host_id != host_id:
        raise ForbiddenError("Only host can reject join requests")

    if game.status != GAME_OPEN:
        raise ConflictError("Cannot reject join requests for a game that is not open")

    jr = _pending_request(game, player_id)

    with atomic():
        _decide(jr, REQUEST_REJECTED, clock.utcnow())

    current_app.logger.info("join request rejected: user %s -> game %s", player_id, game_id)
    log_event(
        "JOIN_REQUEST_REJECT", user_id=host_id, entity="game", entity_id=game_id,
        metadata={"player_id": player_id},
    )
    return jr


def cancel_request(game_id: int, requester_id: int):
    game = load_game(game_id)

    jr = game.request_for(requester_id)
    if jr is None:
        raise NotFoundError("No join request found")

    if jr.status != REQUEST_PENDING:
        raise ConflictError(f"Cannot cancel {jr.status} join request")

    cutoff_hours = current_app.config.get("JOIN_CANCEL_CUTOFF_HOURS", 2)
    if game.start_time - clock.utcnow() < timedelta(hours=cutoff_hours):
        raise ConflictError(
            f"Cannot cancel join request less than {cutoff_hours} hours before game start"
        )

    with atomic():
        deleted = (
            JoinRequest.query
            .filter_by(id=jr.id, status=REQUEST_PENDING)
            .delete(synchronize_session=False)
        )
        if deleted != 1:
            raise ConflictError("Join request was already processed")

    current_app.logger.info("join request cancelled: user %s -> game %s", requester_id, game_id)
    log_event("JOIN_REQUEST_CANCEL", user_id=requester_id, entity="game", entity_id=game_id)
