import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as pickup.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "pickup.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer token lifetime: 8 hours
    SESSION_LIFETIME_SECONDS = int(os.getenv("SESSION_LIFETIME_SECONDS", str(8 * 60 * 60)))

    # Idle timeout: 20 minutes
    IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", str(20 * 60)))

    # Seed default roles when the app starts (tables must exist)
    SEED_ROLES_ON_STARTUP = os.getenv("SEED_ROLES_ON_STARTUP", "true").lower() == "true"

    # Cancellation policy
    JOIN_CANCEL_CUTOFF_HOURS = 2
    GAME_CANCEL_CUTOFF_HOURS = 2

    # Game search
    DEFAULT_SEARCH_RADIUS_METERS = 5000
    GAME_LIST_LIMIT = 200

    # Retries when an approval loses a race on the player's commitments
    OPTIMISTIC_RETRY_LIMIT = int(os.getenv("OPTIMISTIC_RETRY_LIMIT", "3"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
