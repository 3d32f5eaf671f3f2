from .db import db
from .user import User, Role, user_roles
from .audit_log import AuditLog
from .session import Session
from .game import Game, GamePlayer, JoinRequest
from .coach import CoachSlot, CoachBooking
