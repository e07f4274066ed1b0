# Overview: Flask API routes for account administration.

from flask import Blueprint, jsonify, current_app

from ..errors import ServiceError, ValidationError, error_response
from ..services import auth_service
from ..decorators import require_auth, require_permission, json_body


admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/accounts")
@require_auth
@require_permission("MANAGE_USERS")
def list_accounts_route():
    users = auth_service.list_accounts()
    return jsonify({
        "items": [user.to_dict() for user in users],
        "count": len(users),
    }), 200


@admin_bp.post("/reset-password")
@require_auth
@require_permission("MANAGE_USERS")
def reset_password_route():
    """
    Set a new password for another account.

    Body: {"username": "...", "new_password": "..."}
    Clears the account's lockout and logs it out everywhere.
    """
    try:
        data = json_body()
        username = data.get("username")
        new_password = data.get("new_password", data.get("newPassword"))

        if not username or not new_password:
            raise ValidationError("username and new_password required")

        user = auth_service.reset_password(username, new_password)
        return jsonify({"message": f"Password reset for {user.username}"}), 200

    except ServiceError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return jsonify({"error": "Internal server error"}), 500
