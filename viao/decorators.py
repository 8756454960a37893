"""
Custom route decorators for access control.

- organizer_required: ensures user is logged in AND has the ORGANIZER role.
- admin_required: ensures user is logged in AND has the ADMIN role.

Both answer with JSON errors; these routes are only called by the SPA.
"""

from functools import wraps

from flask import jsonify
from flask_login import current_user, login_required


def _role_required(role, message):
    def decorator(f):
        @wraps(f)
        @login_required
        def decorated(*args, **kwargs):
            if current_user.role != role:
                return jsonify({"error": message}), 403
            return f(*args, **kwargs)

        return decorated

    return decorator


organizer_required = _role_required("ORGANIZER", "Only organizers can do this")
admin_required = _role_required("ADMIN", "Forbidden")
