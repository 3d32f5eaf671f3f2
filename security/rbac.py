from functools import wraps
from flask import g

from utils.errors import AuthenticationError, ForbiddenError

def require_roles(*role_names: str):
    """
    Usage: @require_roles("COACH")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                raise AuthenticationError("Authentication required")

            user_roles = {r.name for r in user.roles}
            if "SUPER_ADMIN" not in user_roles and not user_roles.intersection(set(role_names)):
                raise ForbiddenError(f"Only {' or '.join(r.lower() for r in role_names)} users can do this")

            return fn(*args, **kwargs)
        return wrapper
    return decorator
