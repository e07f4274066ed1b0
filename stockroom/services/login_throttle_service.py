"""
Login Throttling Service

Prevents brute-force password attacks by locking an account for a cooldown
window after repeated failed logins.

- Failures are counted per user on users.login_attempts
- Once the count reaches the first step of LOGIN_LOCKOUT_SCHEDULE the account
  is locked until users.cooldown_until
- Lockouts escalate: later steps of the schedule lock for longer
- The count survives cooldown expiry, so the next failure escalates again
- A successful login resets the count and clears the cooldown
"""

from __future__ import annotations

from datetime import timedelta

from flask import current_app

from ..extensions import db
from ..models import User
from ..errors import RateLimited
from stockroom.time_utils import utcnow, seconds_until


DEFAULT_LOCKOUT_SCHEDULE = ((3, 60), (5, 300))


def lockout_schedule() -> tuple[tuple[int, int], ...]:
    return tuple(current_app.config.get("LOGIN_LOCKOUT_SCHEDULE", DEFAULT_LOCKOUT_SCHEDULE))


def lockout_threshold() -> int:
    return lockout_schedule()[0][0]


def cooldown_seconds_for(attempts: int) -> int | None:
    """
    Lockout length for a given number of consecutive failures.

    Returns None below the threshold; otherwise the seconds of the highest
    schedule step reached.
    """
    seconds = None
    for step_attempts, step_seconds in lockout_schedule():
        if attempts >= step_attempts:
            seconds = step_seconds
    return seconds


def remaining_cooldown(user: User) -> int:
    """Seconds left on the user's cooldown, 0 when not locked."""
    if user.cooldown_until is None:
        return 0
    return seconds_until(user.cooldown_until)


def ensure_not_locked(user: User) -> None:
    """Raise RateLimited while the user's cooldown is in effect."""
    remaining = remaining_cooldown(user)
    if remaining > 0:
        raise RateLimited(
            remaining,
            f"Account temporarily locked. Try again in {remaining} seconds.",
        )


def record_failed_attempt(user: User) -> tuple[int, int | None]:
    """
    Count a failed login for user.

    Returns (attempts, cooldown_seconds); cooldown_seconds is None when this
    failure did not start a lockout.
    """
    db.session.query(User).filter(User.id == user.id).update(
        {User.login_attempts: User.login_attempts + 1},
        synchronize_session=False,
    )
    db.session.flush()
    db.session.refresh(user)

    attempts = user.login_attempts
    cooldown = cooldown_seconds_for(attempts)
    if cooldown is not None:
        user.cooldown_until = utcnow() + timedelta(seconds=cooldown)
        current_app.logger.warning(
            "Locking account %s for %ss after %s failed login attempts",
            user.username, cooldown, attempts,
        )

    db.session.commit()
    return attempts, cooldown


def record_successful_login(user: User, commit: bool = True) -> None:
    user.login_attempts = 0
    user.cooldown_until = None
    user.last_login_at = utcnow()
    if commit:
        db.session.commit()


def clear_lockout(user: User, commit: bool = True) -> None:
    user.login_attempts = 0
    user.cooldown_until = None
    if commit:
        db.session.commit()


def get_lockout_status(username: str) -> dict:
    """
    Get lockout status for an account.

    Unknown usernames report an unlocked, zero-attempt status so the endpoint
    does not reveal which accounts exist.
    """
    user = db.session.query(User).filter(
        db.func.lower(User.username) == (username or "").strip().lower()
    ).first()

    attempts = user.login_attempts if user else 0
    remaining = remaining_cooldown(user) if user else 0

    return {
        "locked": remaining > 0,
        "failed_attempts": attempts,
        "lockout_threshold": lockout_threshold(),
        "seconds_until_unlock": remaining or None,
    }
