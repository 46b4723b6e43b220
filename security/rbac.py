from functools import wraps
from flask import g, jsonify

def has_role(role_name: str) -> bool:
    user = getattr(g, "user", None)
    if not user:
        return False
    return user.has_role(role_name)

def can_manage_court(court) -> bool:
    """Owners manage their own courts; ADMIN manages every court."""
    user = getattr(g, "user", None)
    if user is None or court is None:
        return False
    return user.has_role("ADMIN") or court.owner_user_id == user.id

def require_roles(*role_names: str):
    """
    Usage: @require_roles("COURT_OWNER")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            user = getattr(g, "user", None)
            if user is None:
                return jsonify(error="Authentication required"), 401

            user_roles = {r.name for r in user.roles}
            if "ADMIN" not in user_roles and not user_roles.intersection(set(role_names)):
                return jsonify(error="Forbidden"), 403

            return fn(*args, **kwargs)
        return wrapper
    return decorator
