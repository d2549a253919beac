from functools import wraps

from flask import abort, jsonify
from flask_login import current_user

STAFF_ROLES = {"admin", "manager", "staff"}


def admin_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        if not current_user.is_authenticated:
            abort(401)
        if (current_user.role or "").lower() not in STAFF_ROLES:
            abort(403)
        return f(*args, **kwargs)
    return decorated


def json_error(message, code=400):
    return jsonify({"success": False, "error": message}), code
