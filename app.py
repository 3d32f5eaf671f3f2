import logging

import click
from flask import Flask

from config import Config
from routes import health_bp, games_bp, join_requests_bp, coach_bp

from models import db
from flask_migrate import Migrate
from utils.seed import seed_roles
from utils.auth_context import load_current_user
from utils.errors import AppError, register_error_handlers


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO))

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(games_bp)
    app.register_blueprint(join_requests_bp)
    app.register_blueprint(coach_bp)

    register_error_handlers(app)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Seed default roles at startup (safe & idempotent)
    if app.config.get("SEED_ROLES_ON_STARTUP", True):
        with app.app_context():
            seed_roles()

    @app.before_request
    def _load_user():
        load_current_user()

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
from models.user import User, Role
from security.session import create_session
from services import games as game_service


def register_cli(app):
    @app.cli.command("create-user")
    @click.argument("email")
    @click.option("--name", default=None, help="Full name")
    @click.option("--role", "roles", multiple=True, default=["PLAYER"], help="PLAYER, COACH, ADMIN")
    def create_user(email, name, roles):
        """Create a user (identity itself is managed by the auth service)."""
        email = email.strip().lower()
        if User.query.filter_by(email=email).first():
            print("User already exists")
            return

        user = User(email=email, full_name=name)
        for role_name in roles:
            role = Role.query.filter_by(name=role_name.upper()).first()
            if not role:
                print(f"Unknown role {role_name}")
                return
            user.roles.append(role)
        db.session.add(user)
        db.session.commit()
        print(f"{user.email} created with id {user.id}")

    @app.cli.command("grant-role")
    @click.argument("email")
    @click.argument("role_name")
    def grant_role(email, role_name):
        """Give a user a role by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        role = Role.query.filter_by(name=role_name.upper()).first()
        if not role:
            role = Role(name=role_name.upper())
            db.session.add(role)
            db.session.commit()

        if role not in user.roles:
            user.roles.append(role)
            db.session.commit()

        print(f"{user.email} granted {role.name}")

    @app.cli.command("issue-token")
    @click.argument("email")
    def issue_token(email):
        """Print a bearer token for a user."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return
        print(create_session(user.id))

    @app.cli.command("set-booking-status")
    @click.argument("game_id", type=int)
    @click.argument("booking_status", type=click.Choice(list(game_service.BOOKING_STATUSES)))
    def set_booking_status(game_id, booking_status):
        """Record the venue booking/payment outcome for a game."""
        try:
            game = game_service.set_booking_status(game_id, booking_status)
        except AppError as err:
            print(err.message)
            return
        print(f"game {game.id} booking status: {game.booking_status}")

    @app.cli.command("flag-host-action")
    @click.argument("game_id", type=int)
    def flag_host_action(game_id):
        """Move a game to NeedsHostAction."""
        try:
            game = game_service.flag_needs_host_action(game_id)
        except AppError as err:
            print(err.message)
            return
        print(f"game {game.id} status: {game.status}")

#-------------------------


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
