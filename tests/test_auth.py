"""
Authentication tests.

Covers:
- Registration (duplicates, role policy, validation)
- Login success and session cookie
- Progressive lockout and cooldown expiry
- Logout idempotency
- /api/me and profile edits
"""

from datetime import timedelta

import pytest

from stockroom.errors import (
    ConflictError,
    InvalidCredentials,
    NotFound,
    RateLimited,
    Unauthenticated,
    ValidationError,
)
from stockroom.extensions import db
from stockroom.models import User, SessionToken
from stockroom.services import auth_service, session_service
from stockroom.time_utils import utcnow
from tests.conftest import PASSWORD, login, reload


def _expire_cooldown(user_id):
    user = reload(User, user_id)
    user.cooldown_until = utcnow() - timedelta(seconds=1)
    db.session.commit()


# =============================================================================
# REGISTRATION
# =============================================================================


class TestRegister:

    def test_duplicate_username_conflicts(self, db_session):
        auth_service.register("alice", PASSWORD)
        with pytest.raises(ConflictError):
            auth_service.register("alice", PASSWORD)

    def test_duplicate_username_is_case_insensitive(self, db_session):
        auth_service.register("alice", PASSWORD)
        with pytest.raises(ConflictError):
            auth_service.register("ALICE", PASSWORD)

    def test_duplicate_username_route_returns_409(self, client, db_session):
        body = {"username": "alice", "password": PASSWORD, "confirm_password": PASSWORD}
        assert client.post("/api/register", json=body).status_code == 201
        resp = client.post("/api/register", json=body)
        assert resp.status_code == 409
        assert "error" in resp.json

    def test_array_body_returns_400(self, client, db_session):
        resp = client.post("/api/register", json=[{"username": "alice", "password": PASSWORD}])
        assert resp.status_code == 400
        assert db.session.query(User).count() == 0

    def test_password_stored_hashed(self, db_session):
        user = auth_service.register("alice", PASSWORD)
        assert user.password_hash != PASSWORD
        assert user.password_hash.startswith("$2")

    def test_first_account_becomes_admin_then_default_role(self, db_session):
        first = auth_service.register("first", PASSWORD)
        second = auth_service.register("second", PASSWORD)
        assert first.role == "admin"
        assert second.role == "staff"

    def test_first_account_bootstrap_can_be_disabled(self, app, db_session):
        app.config["FIRST_USER_IS_ADMIN"] = False
        try:
            user = auth_service.register("first", PASSWORD)
        finally:
            app.config["FIRST_USER_IS_ADMIN"] = True
        assert user.role == "staff"

    def test_requested_role_ignored_for_anonymous_caller(self, admin_user, db_session):
        user = auth_service.register("mallory", PASSWORD, role="admin")
        assert user.role == "staff"

    def test_admin_caller_may_choose_role(self, admin_client, db_session):
        resp = admin_client.post("/api/register", json={
            "username": "acme_supplies",
            "password": PASSWORD,
            "confirm_password": PASSWORD,
            "role": "supplier",
            "supply": "Rice",
            "supply_quantity": 40,
        })
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "supplier"
        assert resp.json["user"]["supply"] == "Rice"

    def test_unknown_role_rejected(self, admin_user, db_session):
        with pytest.raises(ValidationError):
            auth_service.register("bob", PASSWORD, role="owner")

    @pytest.mark.parametrize("password", ["short1!", "alllowercase1!", "NoDigits!!", "NoSpecial123"])
    def test_weak_password_rejected(self, db_session, password):
        with pytest.raises(ValidationError):
            auth_service.register("bob", password)

    @pytest.mark.parametrize("username", ["", "ab", "has space", "x" * 65])
    def test_bad_username_rejected(self, db_session, username):
        with pytest.raises(ValidationError):
            auth_service.register(username, PASSWORD)

    def test_mismatched_confirmation_returns_400(self, client, db_session):
        resp = client.post("/api/register", json={
            "username": "bob",
            "password": PASSWORD,
            "confirm_password": "Different123!",
        })
        assert resp.status_code == 400

    def test_profile_fields_saved(self, db_session):
        user = auth_service.register("carol", PASSWORD, profile={
            "first_name": "Carol",
            "last_name": "Reyes",
            "email": "carol@example.com",
            "phone": "09171234567",
        })
        assert user.first_name == "Carol"
        assert user.email == "carol@example.com"

    def test_counters_not_writable_through_profile(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.register("carol", PASSWORD, profile={"login_attempts": 5})


# =============================================================================
# LOGIN
# =============================================================================


class TestLogin:

    def test_login_sets_http_only_session_cookie(self, client, staff_user):
        resp = login(client, staff_user.username)
        assert resp.status_code == 200
        assert resp.json["user"]["username"] == staff_user.username
        assert "token" not in resp.json

        set_cookie = resp.headers.get("Set-Cookie")
        assert set_cookie.startswith("sessionId=")
        assert "HttpOnly" in set_cookie

    def test_session_persisted_with_hashed_token(self, client, staff_user):
        login(client, staff_user.username)
        token = client.get_cookie("sessionId").value
        session = db.session.query(SessionToken).one()
        assert session.user_id == staff_user.id
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_unknown_user_and_wrong_password_look_the_same(self, client, staff_user):
        unknown = login(client, "nobody", PASSWORD)
        wrong = login(client, staff_user.username, "Wrong123!")
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json["error"] == wrong.json["error"]

    def test_missing_fields_returns_400(self, client, db_session):
        resp = client.post("/api/login", json={"username": "x"})
        assert resp.status_code == 400

    @pytest.mark.parametrize("body", [
        {"username": "staff_alpha", "password": 12345678},
        {"username": ["staff_alpha"], "password": "Password123!"},
    ])
    def test_non_string_credentials_return_400(self, client, staff_user, body):
        resp = client.post("/api/login", json=body)
        assert resp.status_code == 400
        assert reload(User, staff_user.id).login_attempts == 0

    def test_non_object_body_returns_400(self, client, db_session):
        resp = client.post("/api/login", json=["x"])
        assert resp.status_code == 400
        assert resp.json["error"] == "Invalid JSON payload"

    def test_login_is_case_insensitive_on_username(self, client, staff_user):
        assert login(client, staff_user.username.upper()).status_code == 200

    def test_inactive_user_cannot_login(self, staff_user):
        staff_user.is_active = False
        db.session.commit()
        with pytest.raises(InvalidCredentials):
            auth_service.login(staff_user.username, PASSWORD)

    def test_failure_increments_attempts(self, staff_user):
        with pytest.raises(InvalidCredentials):
            auth_service.login(staff_user.username, "Wrong123!")
        assert reload(User, staff_user.id).login_attempts == 1

    def test_third_failure_starts_cooldown(self, client, staff_user):
        assert login(client, staff_user.username, "Wrong123!").status_code == 401
        assert login(client, staff_user.username, "Wrong123!").status_code == 401

        resp = login(client, staff_user.username, "Wrong123!")
        assert resp.status_code == 429
        assert resp.json["retry_after_seconds"] == 60
        assert resp.headers["Retry-After"] == "60"

        user = reload(User, staff_user.id)
        assert user.login_attempts == 3
        assert user.cooldown_until > utcnow()

    def test_cooldown_blocks_correct_password(self, client, staff_user):
        for _ in range(3):
            login(client, staff_user.username, "Wrong123!")

        resp = login(client, staff_user.username, PASSWORD)
        assert resp.status_code == 429
        assert 0 < resp.json["retry_after_seconds"] <= 60

    def test_cooldown_escalates_after_five_failures(self, staff_user):
        for _ in range(3):
            with pytest.raises((InvalidCredentials, RateLimited)):
                auth_service.login(staff_user.username, "Wrong123!")

        _expire_cooldown(staff_user.id)
        with pytest.raises(RateLimited) as fourth:
            auth_service.login(staff_user.username, "Wrong123!")
        assert fourth.value.retry_after_seconds == 60

        _expire_cooldown(staff_user.id)
        with pytest.raises(RateLimited) as fifth:
            auth_service.login(staff_user.username, "Wrong123!")
        assert fifth.value.retry_after_seconds == 300

        # Locked even with the right password until the cooldown elapses
        with pytest.raises(RateLimited):
            auth_service.login(staff_user.username, PASSWORD)

        _expire_cooldown(staff_user.id)
        session, token, user = auth_service.login(staff_user.username, PASSWORD)
        assert user.id == staff_user.id

    def test_success_resets_attempts_and_cooldown(self, staff_user):
        with pytest.raises(InvalidCredentials):
            auth_service.login(staff_user.username, "Wrong123!")
        with pytest.raises(InvalidCredentials):
            auth_service.login(staff_user.username, "Wrong123!")

        auth_service.login(staff_user.username, PASSWORD)

        user = reload(User, staff_user.id)
        assert user.login_attempts == 0
        assert user.cooldown_until is None
        assert user.last_login_at is not None

    def test_success_after_expired_cooldown_resets_counters(self, staff_user):
        for _ in range(3):
            with pytest.raises((InvalidCredentials, RateLimited)):
                auth_service.login(staff_user.username, "Wrong123!")
        _expire_cooldown(staff_user.id)

        auth_service.login(staff_user.username, PASSWORD)

        user = reload(User, staff_user.id)
        assert user.login_attempts == 0
        assert user.cooldown_until is None

    def test_lockout_status_endpoint(self, client, staff_user):
        for _ in range(3):
            login(client, staff_user.username, "Wrong123!")

        resp = client.get(f"/api/lockout-status/{staff_user.username}")
        assert resp.status_code == 200
        assert resp.json["locked"] is True
        assert resp.json["failed_attempts"] == 3
        assert resp.json["lockout_threshold"] == 3

    def test_lockout_status_for_unknown_user_reveals_nothing(self, client, db_session):
        resp = client.get("/api/lockout-status/ghost")
        assert resp.json["locked"] is False
        assert resp.json["failed_attempts"] == 0


# =============================================================================
# SESSIONS, LOGOUT, ME
# =============================================================================


class TestSession:

    def test_me_requires_session(self, client, db_session):
        assert client.get("/api/me").status_code == 401

    def test_me_returns_current_user(self, staff_client, staff_user):
        resp = staff_client.get("/api/me")
        assert resp.status_code == 200
        assert resp.json["user"]["id"] == staff_user.id
        assert "password_hash" not in resp.json["user"]

    def test_bearer_header_accepted(self, app, staff_user):
        session, token, _ = auth_service.login(staff_user.username, PASSWORD)
        client = app.test_client()
        resp = client.get("/api/me", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200

    def test_logout_deletes_session_and_clears_cookie(self, staff_client):
        resp = staff_client.post("/api/logout")
        assert resp.status_code == 200
        assert db.session.query(SessionToken).count() == 0
        assert staff_client.get("/api/me").status_code == 401

    def test_logout_without_session_still_succeeds(self, client, db_session):
        resp = client.post("/api/logout")
        assert resp.status_code == 200
        assert resp.json["message"]

    def test_logout_twice_is_idempotent(self, staff_client):
        assert staff_client.post("/api/logout").status_code == 200
        assert staff_client.post("/api/logout").status_code == 200

    def test_logout_service_with_unknown_token(self, db_session):
        auth_service.logout("not-a-real-token")
        auth_service.logout(None)

    def test_current_user_unknown_token(self, db_session):
        with pytest.raises(Unauthenticated):
            session_service.current_user("nope")

    def test_expired_session_is_rejected_and_removed(self, staff_user):
        session, token, _ = auth_service.login(staff_user.username, PASSWORD)
        session.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

        with pytest.raises(Unauthenticated):
            session_service.current_user(token)
        assert db.session.query(SessionToken).count() == 0

    def test_session_of_deleted_user_is_not_found(self, staff_user):
        session, token, _ = auth_service.login(staff_user.username, PASSWORD)
        db.session.query(User).filter_by(id=staff_user.id).delete()
        db.session.commit()

        with pytest.raises(NotFound):
            session_service.current_user(token)

    def test_cleanup_expired_sessions(self, staff_user):
        session, _, _ = auth_service.login(staff_user.username, PASSWORD)
        auth_service.login(staff_user.username, PASSWORD)
        session.expires_at = utcnow() - timedelta(hours=1)
        db.session.commit()

        assert session_service.cleanup_expired_sessions() == 1
        assert db.session.query(SessionToken).count() == 1


class TestProfile:

    def test_update_own_profile(self, staff_client, staff_user):
        resp = staff_client.put("/api/me", json={"first_name": "Sam", "phone": "0917123"})
        assert resp.status_code == 200
        assert resp.json["user"]["first_name"] == "Sam"
        assert reload(User, staff_user.id).phone == "0917123"

    def test_role_not_editable(self, staff_client):
        resp = staff_client.put("/api/me", json={"role": "admin"})
        assert resp.status_code == 400

    def test_supply_fields_only_for_suppliers(self, staff_client, supplier_client):
        assert staff_client.put("/api/me", json={"supply": "Eggs"}).status_code == 400

        resp = supplier_client.put("/api/me", json={"supply": "Eggs", "supply_quantity": 12})
        assert resp.status_code == 200
        assert resp.json["user"]["supply_quantity"] == 12

    def test_invalid_email_rejected(self, staff_client):
        resp = staff_client.put("/api/me", json={"email": "not-an-email"})
        assert resp.status_code == 400

    def test_non_object_body_rejected(self, staff_client):
        resp = staff_client.put("/api/me", json=[{"first_name": "Sam"}])
        assert resp.status_code == 400
