from flask import current_app

from models import db
from models.user import Role

# PLAYER joins and books coaches, COACH publishes slots
DEFAULT_ROLES = ("PLAYER", "COACH", "ADMIN", "SUPER_ADMIN")

def seed_roles(names=DEFAULT_ROLES):
    """Create any missing roles. Returns the names that were added."""
    existing = {r.name for r in Role.query.all()}
    added = [name for name in names if name not in existing]
    for name in added:
        db.session.add(Role(name=name))
    db.session.commit()

    if added:
        current_app.logger.info("seeded roles: %s", ", ".join(added))
    return added
