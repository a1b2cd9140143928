from functools import wraps
from flask_jwt_extended import verify_jwt_in_request, get_jwt
from flask import jsonify


def role_required(*roles):
    """JWT must be present and carry one of ``roles`` in its "role" claim."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            role = (get_jwt() or {}).get("role")
            if role not in roles:
                return jsonify({"success": False, "message": "Forbidden", "code": "FORBIDDEN"}), 403
            return fn(*args, **kwargs)
        return wrapper
    return decorator


admin_required = role_required("admin")
