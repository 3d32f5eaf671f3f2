"""
Shared fixtures: an in-memory app, users with roles, bearer tokens and a
clock frozen at ``NOW`` so cut-off rules can be tested to the second.
"""
from datetime import datetime, timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.user import User, Role
from security.session import create_session
from services import games as game_service
from utils import clock
from utils.seed import seed_roles

NOW = datetime(2030, 6, 1, 12, 0, 0)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SECRET_KEY = "test-secret-key"
    SEED_ROLES_ON_STARTUP = False
    # tokens are issued against the frozen clock
    IDLE_TIMEOUT_SECONDS = 10 * 365 * 24 * 60 * 60
    SESSION_LIFETIME_SECONDS = 10 * 365 * 24 * 60 * 60


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def frozen_clock(monkeypatch):
    fake = FrozenClock(NOW)
    monkeypatch.setattr(clock, "utcnow", fake)
    return fake


@pytest.fixture
def app(frozen_clock):
    """Create and configure a test application instance."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    """Create a test client for the app."""
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(*role_names, email=None):
        counter["n"] += 1
        user = User(email=email or f"user{counter['n']}@example.com", full_name=f"User {counter['n']}")
        for name in role_names or ("PLAYER",):
            user.roles.append(Role.query.filter_by(name=name).one())
        db.session.add(user)
        db.session.commit()
        return user.id

    return _make


@pytest.fixture
def auth_headers(app):
    def _headers(user_id):
        return {"Authorization": f"Bearer {create_session(user_id)}"}

    return _headers


def game_payload(start=None, hours=2, min_players=2, max_players=3, sport="Football", **extra):
    start = start or NOW + timedelta(days=1)
    payload = {
        "sport": sport,
        "description": "Friendly 5-a-side",
        "playersNeeded": {"min": min_players, "max": max_players},
        "timeSlot": {
            "startTime": start.isoformat(),
            "endTime": (start + timedelta(hours=hours)).isoformat(),
        },
        "venueLocation": {"type": "Point", "coordinates": [77.5946, 12.9716]},
        "venue": {"venueId": "venue-1", "city": "Bengaluru", "state": "KA"},
        "price": 1200,
    }
    payload.update(extra)
    return payload


@pytest.fixture
def host_game(app):
    def _host(host_id, **kwargs):
        return game_service.host_game(host_id, game_payload(**kwargs)).id

    return _host
