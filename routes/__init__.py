from .health import health_bp
from .games import games_bp
from .join_requests import join_requests_bp
from .coach import coach_bp
