# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication Service

Registration, login with progressive lockout, logout, profile edits and the
admin account operations.

SECURITY NOTES:
- Passwords hashed through the injected hasher (see password_service.py)
- Unknown usernames and wrong passwords fail with the same message
- A running cooldown rejects logins even with the correct password
- Session tokens managed separately (see session_service.py)
- Client-supplied roles are honoured only for admin callers
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import User, SessionToken, ROLES
from ..errors import (
    ValidationError,
    ConflictError,
    InvalidCredentials,
    NotFound,
    RateLimited,
)
from ..permissions import is_allowed
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    validate_username,
    enforce_rules_profile,
)
from . import login_throttle_service, session_service
from .password_service import hash_password, verify_password


PROFILE_POLICY = ModelValidationPolicy(
    writable_fields={"first_name", "last_name", "email", "phone", "supply", "supply_quantity"},
)

SUPPLIER_ONLY_FIELDS = {"supply", "supply_quantity"}


def find_user_by_username(username: str | None) -> User | None:
    """Case-insensitive username lookup."""
    if not username or not isinstance(username, str):
        return None
    return db.session.query(User).filter(
        db.func.lower(User.username) == username.strip().lower()
    ).first()


def _clean_profile(profile: dict | None, role: str) -> dict:
    patch = validate_payload(model=User, payload=profile or {}, policy=PROFILE_POLICY, partial=True)
    if role != "supplier":
        rejected = sorted(SUPPLIER_ONLY_FIELDS & patch.keys())
        if rejected:
            raise ValidationError(f"Field not allowed: {rejected[0]}")
    enforce_rules_profile(patch)
    return patch


def resolve_registration_role(requested_role: str | None, actor: User | None = None) -> str:
    """
    Decide the role of a new account.

    - An admin caller may pick any known role.
    - Otherwise the first account becomes admin when FIRST_USER_IS_ADMIN is on.
    - Everyone else gets SELF_REGISTRATION_ROLE, whatever they asked for.
    """
    if requested_role is not None and requested_role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")

    if actor is not None and is_allowed(actor.role, "MANAGE_USERS"):
        return requested_role or current_app.config.get("SELF_REGISTRATION_ROLE", "staff")

    if current_app.config.get("FIRST_USER_IS_ADMIN", True):
        if db.session.query(User.id).first() is None:
            return "admin"

    default_role = current_app.config.get("SELF_REGISTRATION_ROLE", "staff")
    if default_role not in ROLES:
        raise ValueError(f"SELF_REGISTRATION_ROLE {default_role!r} is not a known role")
    return default_role


def register(
    username: str,
    password: str,
    profile: dict | None = None,
    role: str | None = None,
    actor: User | None = None,
) -> User:
    """
    Create a new account.

    Raises:
        ValidationError: bad username, weak password, bad profile or role
        ConflictError: username already taken (case-insensitive)
    """
    username = validate_username(username)
    resolved_role = resolve_registration_role(role, actor)
    return create_user(username, password, resolved_role, profile)


def create_user(username: str, password: str, role: str, profile: dict | None = None) -> User:
    """
    Insert a user with an explicit role. No role policy is applied here;
    callers are register() and the CLI.
    """
    username = validate_username(username)
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    patch = _clean_profile(profile, role)

    if find_user_by_username(username):
        raise ConflictError("Username already exists")

    user = User(
        username=username,
        password_hash=hash_password(password),
        role=role,
        login_attempts=0,
        **patch,
    )

    db.session.add(user)
    try:
        db.session.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration of the same name
        db.session.rollback()
        raise ConflictError("Username already exists")

    current_app.logger.info("Registered user %s with role %s", user.username, user.role)
    return user


def login(
    username: str,
    password: str,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[SessionToken, str, User]:
    """
    Authenticate and open a session.

    Returns (session, plaintext_token, user).

    Raises:
        ValidationError: missing username or password
        RateLimited: cooldown running, or this failure started one
        InvalidCredentials: unknown user or wrong password
    """
    if not username or not password:
        raise ValidationError("username and password required")
    if not isinstance(username, str) or not isinstance(password, str):
        raise ValidationError("username and password must be strings")

    user = find_user_by_username(username)
    if not user or not user.is_active:
        current_app.logger.warning("Failed login for unknown or inactive user %r", username)
        raise InvalidCredentials()

    login_throttle_service.ensure_not_locked(user)

    if not verify_password(password, user.password_hash):
        attempts, cooldown = login_throttle_service.record_failed_attempt(user)
        current_app.logger.warning("Failed login for %s (attempt %s)", user.username, attempts)
        if cooldown is not None:
            raise RateLimited(
                cooldown,
                f"Too many failed login attempts. Account locked for {cooldown} seconds.",
            )
        raise InvalidCredentials()

    login_throttle_service.record_successful_login(user, commit=False)
    session, token = session_service.create_session(
        user_id=user.id,
        user_agent=user_agent,
        ip_address=ip_address,
        commit=False,
    )
    db.session.commit()

    current_app.logger.info("User %s logged in", user.username)
    return session, token, user


def logout(token: str | None) -> None:
    """Idempotent: succeeds whether or not a session existed."""
    session_service.delete_session(token)


def update_profile(user: User, payload: dict) -> User:
    patch = _clean_profile(payload, user.role)
    for key, value in patch.items():
        setattr(user, key, value)
    db.session.commit()
    return user


def reset_password(username: str, new_password: str) -> User:
    """
    Admin password reset.

    Clears any lockout and deletes the user's sessions so the old password's
    sessions cannot be reused.
    """
    user = find_user_by_username(username)
    if not user:
        raise NotFound("User not found")

    user.password_hash = hash_password(new_password)
    login_throttle_service.clear_lockout(user, commit=False)
    session_service.delete_all_user_sessions(user.id, commit=False)
    db.session.commit()

    current_app.logger.info("Password reset for user %s", user.username)
    return user


def list_accounts() -> list[User]:
    return db.session.query(User).order_by(User.username.asc()).all()
