from __future__ import annotations

from ..extensions import db
from stockroom.time_utils import to_utc_z

ROLES = ("admin", "staff", "supplier")


class User(db.Model):
    """
    User accounts for authentication and attribution.

    Login throttling state lives on the row itself: login_attempts counts
    consecutive failures and cooldown_until, while in the future, blocks
    every login attempt for this account.
    """
    __tablename__ = "users"
    __table_args__ = (
        db.UniqueConstraint("username", name="uq_users_username"),
        db.CheckConstraint("login_attempts >= 0", name="ck_users_login_attempts_nonneg"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    username = db.Column(db.String(64), nullable=False, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(16), nullable=False, default="staff")

    first_name = db.Column(db.String(100), nullable=True)
    last_name = db.Column(db.String(100), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)

    # Supplier-only profile fields
    supply = db.Column(db.String(255), nullable=True)
    supply_quantity = db.Column(db.Integer, nullable=True)

    login_attempts = db.Column(db.Integer, nullable=False, default=0)
    cooldown_until = db.Column(db.DateTime, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, nullable=False, server_default=db.func.now())
    last_login_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "username": self.username,
            "role": self.role,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "last_login_at": to_utc_z(self.last_login_at),
        }
        if self.role == "supplier":
            data["supply"] = self.supply
            data["supply_quantity"] = self.supply_quantity
        return data


class SessionToken(db.Model):
    """
    Server-side login session.

    Only the SHA-256 of the opaque token is stored; the plaintext travels in
    the sessionId cookie. Rows are deleted on logout and once expired.
    """
    __tablename__ = "sessions"
    __table_args__ = (
        db.Index("ix_sessions_user", "user_id"),
        db.Index("ix_sessions_expires", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)

    created_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    user_agent = db.Column(db.String(512), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)

    user = db.relationship("User", backref=db.backref("sessions", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
            "expires_at": to_utc_z(self.expires_at),
        }
