# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# stockroom/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Password strength validation on registration
- Per-account cooldown after repeated failed logins (429 + Retry-After)
- Opaque session token in an HTTP-only sessionId cookie
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..errors import ServiceError, ValidationError, error_response
from ..services import auth_service
from ..services import session_service
from ..services import login_throttle_service
from ..decorators import require_auth, get_request_token, session_cookie_name, json_body


auth_bp = Blueprint("auth", __name__, url_prefix="/api")

PROFILE_FIELDS = ("first_name", "last_name", "email", "phone", "supply", "supply_quantity")


def _set_session_cookie(response, token: str) -> None:
    lifetime = current_app.config["SESSION_LIFETIME"]
    response.set_cookie(
        session_cookie_name(),
        token,
        max_age=int(lifetime.total_seconds()),
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        path="/",
    )


def _clear_session_cookie(response) -> None:
    response.delete_cookie(
        session_cookie_name(),
        path="/",
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        httponly=True,
    )


def _optional_actor():
    """The logged-in caller, if the request carries a valid session."""
    try:
        return session_service.current_user(get_request_token())
    except ServiceError:
        return None


@auth_bp.post("/register")
def register_route():
    """
    Create an account.

    The role field is only honoured when the caller is a logged-in admin;
    see auth_service.resolve_registration_role.
    """
    try:
        data = json_body()
        password = data.get("password")
        confirm = data.get("confirm_password", data.get("confirmPassword"))

        if confirm is not None and confirm != password:
            raise ValidationError("Passwords do not match")

        profile = {k: data[k] for k in PROFILE_FIELDS if k in data}
        user = auth_service.register(
            username=data.get("username"),
            password=password,
            profile=profile,
            role=data.get("role"),
            actor=_optional_actor(),
        )
        return jsonify({"user": user.to_dict(), "message": "Registration successful"}), 201

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and open a session.

    Returns user info and session metadata; the token itself is set as the
    HTTP-only sessionId cookie.
    """
    try:
        data = json_body()
        session, token, user = auth_service.login(
            data.get("username"),
            data.get("password"),
            user_agent=request.headers.get("User-Agent"),
            ip_address=request.remote_addr,
        )

        response = jsonify({
            "user": user.to_dict(),
            "session": session.to_dict(),
            "message": "Login successful",
        })
        _set_session_cookie(response, token)
        return response, 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return jsonify({"error": "Internal server error"}), 500


@auth_bp.get("/lockout-status/<username>")
def lockout_status_route(username: str):
    """Public: lets the login page show how long an account stays locked."""
    status = login_throttle_service.get_lockout_status(username)
    return jsonify(status)


@auth_bp.post("/logout")
def logout_route():
    """
    Delete the session and clear the cookie.

    Always 200, with or without a session.
    """
    try:
        auth_service.logout(get_request_token())
    except Exception:
        current_app.logger.exception("Failed to delete session on logout")

    response = jsonify({"message": "Logout successful"})
    _clear_session_cookie(response)
    return response, 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return jsonify({"user": g.current_user.to_dict()}), 200


@auth_bp.put("/me")
@require_auth
def update_me_route():
    """Edit own profile: names, email, phone; suppliers also supply fields."""
    try:
        data = json_body()
        user = auth_service.update_profile(g.current_user, data)
        return jsonify({"user": user.to_dict(), "message": "Profile updated"}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update profile")
        return jsonify({"error": "Internal server error"}), 500
