import hashlib
import secrets
from datetime import timedelta
from flask import request, current_app

from models import db
from models.session import Session
from utils import clock

def _hash_token(token: str) -> str:
    # tokens are random, a plain digest is enough
    return hashlib.sha256(token.encode("utf-8")).hexdigest()

def create_session(user_id: int) -> str:
    """
    Store a new bearer token for ``user_id`` and return the raw token.
    Only its hash is kept.
    """
    raw_token = secrets.token_urlsafe(32)
    lifetime = current_app.config.get("SESSION_LIFETIME_SECONDS", 28800)
    now = clock.utcnow()

    db.session.add(Session(
        user_id=user_id,
        token_hash=_hash_token(raw_token),
        created_at=now,
        last_seen_at=now,
        expires_at=now + timedelta(seconds=lifetime),
    ))
    db.session.commit()
    return raw_token

def _bearer_token():
    auth = request.headers.get("Authorization") or ""
    scheme, _, value = auth.partition(" ")
    if scheme.lower() != "bearer" or not value.strip():
        return None
    return value.strip()

def get_session_from_request():
    raw_token = _bearer_token()
    if not raw_token:
        return None

    sess = Session.query.filter_by(token_hash=_hash_token(raw_token)).first()
    if not sess:
        return None

    now = clock.utcnow()
    idle_seconds = current_app.config.get("IDLE_TIMEOUT_SECONDS", 1200)
    if not sess.is_active(now, idle_seconds):
        return None

    sess.last_seen_at = now
    db.session.commit()
    return sess
