from datetime import datetime
from models.db import db

# Game.status values
GAME_OPEN = "Open"
GAME_FULL = "Full"
GAME_COMPLETED = "Completed"
GAME_CANCELLED = "Cancelled"
GAME_NEEDS_HOST_ACTION = "NeedsHostAction"

# Game.booking_status values (owned by the payment side)
BOOKING_BOOKED = "Booked"
BOOKING_NOT_BOOKED = "NotBooked"

# JoinRequest.status values
REQUEST_PENDING = "pending"
REQUEST_APPROVED = "approved"
REQUEST_REJECTED = "rejected"


class Game(db.Model):
    __tablename__ = "games"

    id = db.Column(db.Integer, primary_key=True)
    host_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    sport = db.Column(db.String(80), nullable=False)
    sport_key = db.Column(db.String(80), nullable=False, index=True)
    description = db.Column(db.Text, nullable=False)

    # venue snapshot (venues live in another service)
    venue_id = db.Column(db.String(64), nullable=True, index=True)
    city = db.Column(db.String(120), nullable=True)
    state = db.Column(db.String(120), nullable=True)
    longitude = db.Column(db.Float, nullable=False, default=0.0)
    latitude = db.Column(db.Float, nullable=False, default=0.0)
    sub_venue_id = db.Column(db.String(64), nullable=True)
    sub_venue_name = db.Column(db.String(120), nullable=True)

    # slot snapshot
    time_slot_doc_id = db.Column(db.String(64), nullable=True)
    slot_id = db.Column(db.String(64), nullable=True)
    slot_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.DateTime, nullable=False, index=True)
    end_time = db.Column(db.DateTime, nullable=False)
    price = db.Column(db.Integer, nullable=False, default=0)  # smallest currency unit
    approx_cost_per_player = db.Column(db.Float, nullable=False, default=0.0)

    min_players = db.Column(db.Integer, nullable=False)
    max_players = db.Column(db.Integer, nullable=False)
    # size of the approved player set, only ever changed by conditional updates
    approved_count = db.Column(db.Integer, nullable=False, default=0)

    status = db.Column(db.String(20), nullable=False, default=GAME_OPEN, index=True)
    booking_status = db.Column(db.String(20), nullable=False, default=BOOKING_NOT_BOOKED)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    players = db.relationship(
        "GamePlayer",
        backref="game",
        cascade="all, delete-orphan",
        order_by="GamePlayer.id",
    )
    join_requests = db.relationship(
        "JoinRequest",
        backref="game",
        cascade="all, delete-orphan",
        order_by="JoinRequest.id",
    )

    __table_args__ = (
        db.CheckConstraint("approved_count <= max_players", name="ck_games_capacity"),
        db.CheckConstraint("min_players <= max_players", name="ck_games_player_range"),
    )

    @property
    def approved_player_ids(self):
        return [p.user_id for p in self.players]

    def request_for(self, user_id):
        for jr in self.join_requests:
            if jr.user_id == user_id:
                return jr
        return None


class GamePlayer(db.Model):
    __tablename__ = "game_players"

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    joined_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        # a player is counted once per game
        db.UniqueConstraint("game_id", "user_id", name="uq_game_player"),
    )


class JoinRequest(db.Model):
    __tablename__ = "join_requests"

    id = db.Column(db.Integer, primary_key=True)
    game_id = db.Column(db.Integer, db.ForeignKey("games.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    status = db.Column(db.String(20), nullable=False, default=REQUEST_PENDING)
    # status values: pending, approved, rejected

    requested_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    decided_at = db.Column(db.DateTime, nullable=True)

    __table_args__ = (
        # one request per user per game; cancelling deletes the row
        db.UniqueConstraint("game_id", "user_id", name="uq_join_request_once"),
    )
