# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .errors import ServiceError, ValidationError, PermissionDenied, error_response
from .permissions import require_capability
from .services import session_service


def session_cookie_name() -> str:
    return current_app.config.get("STOCKROOM_SESSION_COOKIE", "sessionId")


def get_request_token() -> str | None:
    """
    Session token from the sessionId cookie, or from an
    "Authorization: Bearer <token>" header for non-browser clients.
    """
    token = request.cookies.get(session_cookie_name())
    if token:
        return token

    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.startswith("Bearer "):
        return auth_header.split(" ", 1)[1].strip() or None
    return None


def json_body() -> dict:
    """Request JSON object; a missing body reads as {}, arrays and scalars are rejected."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require a live session.

    Sets on Flask g:
    - g.current_user: The authenticated User object
    - g.session_token: The plaintext token the request carried

    Returns 401 for a missing, unknown or expired session and 404 when the
    session's user no longer exists.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = get_request_token()
        try:
            user = session_service.current_user(token)
        except ServiceError as e:
            return error_response(e)

        g.current_user = user
        g.session_token = token
        return f(*args, **kwargs)

    return decorated_function


def require_permission(capability: str):
    """Require the current user's role to grant capability (see permissions.py)."""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            # Ensure @require_auth was called first
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            user = g.current_user
            try:
                require_capability(user.role, capability)
            except PermissionDenied as e:
                current_app.logger.warning(
                    "Permission %s denied to %s (%s) on %s",
                    capability, user.username, user.role, request.path,
                )
                return error_response(e)

            return f(*args, **kwargs)

        return decorated_function
    return decorator
