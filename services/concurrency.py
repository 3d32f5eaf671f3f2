"""
Optimistic concurrency over a user's commitments.

An operation reads ``User.booking_version`` before running its overlap check
and calls ``bump_commitment_stamp`` with that value just before commit. If
another approval for the same user committed in between, the conditional
update matches no row, ``StaleCommitment`` is raised and ``with_retry`` runs
the whole operation again against fresh state.
"""
from contextlib import contextmanager

from flask import current_app
from sqlalchemy import select, update

from models import db
from models.user import User
from utils.errors import ConflictError, NotFoundError


class StaleCommitment(Exception):
    pass


def read_commitment_stamp(user_id: int) -> int:
    version = db.session.execute(
        select(User.booking_version).where(User.id == user_id)
    ).scalar_one_or_none()
    if version is None:
        raise NotFoundError("User not found")
    return version


def bump_commitment_stamp(user_id: int, expected: int):
    stmt = (
        update(User)
        .where(User.id == user_id, User.booking_version == expected)
        .values(booking_version=User.booking_version + 1)
        .execution_options(synchronize_session=False)
    )
    if db.session.execute(stmt).rowcount != 1:
        raise StaleCommitment(user_id)


def with_retry(operation, *args, **kwargs):
    attempts = current_app.config.get("OPTIMISTIC_RETRY_LIMIT", 3)
    for attempt in range(1, attempts + 1):
        try:
            return operation(*args, **kwargs)
        except StaleCommitment as exc:
            db.session.rollback()
            current_app.logger.info(
                "commitment stamp for user %s changed concurrently (attempt %d/%d)",
                exc.args[0], attempt, attempts,
            )
    raise ConflictError("Concurrent update, please retry")


@contextmanager
def atomic():
    """Commit on success; roll back everything the block did on any error."""
    try:
        yield
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
