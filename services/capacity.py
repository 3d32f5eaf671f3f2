"""
Capacity of a game.

``has_room`` is the read-side check used to give the caller a precise error.
``claim_seat`` / ``release_seat`` are the only writers of
``Game.approved_count``: each is a single conditional UPDATE, so two approvals
racing for the last seat cannot both succeed, and the Open/Full flip happens in
the same statement as the count change.
"""
from sqlalchemy import case, update

from models import db
from models.game import Game, GAME_OPEN, GAME_FULL


def has_room(game: Game) -> bool:
    return game.approved_count < game.max_players


def claim_seat(game_id: int) -> bool:
    stmt = (
        update(Game)
        .where(
            Game.id == game_id,
            Game.status == GAME_OPEN,
            Game.approved_count < Game.max_players,
        )
        .values(
            approved_count=Game.approved_count + 1,
            status=case(
                (Game.approved_count + 1 >= Game.max_players, GAME_FULL),
                else_=Game.status,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1


def release_seat(game_id: int) -> bool:
    stmt = (
        update(Game)
        .where(
            Game.id == game_id,
            Game.status.in_((GAME_OPEN, GAME_FULL)),
            Game.approved_count > 0,
        )
        .values(
            approved_count=Game.approved_count - 1,
            status=case(
                (Game.status == GAME_FULL, GAME_OPEN),
                else_=Game.status,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    return db.session.execute(stmt).rowcount == 1
