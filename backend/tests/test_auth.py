"""
Authentication tests.

Verifies:
- Password strength rules and bcrypt hashing
- Login issues a token; logout and deactivation revoke it
- Sessions expire after the idle timeout
"""

from datetime import timedelta

import pytest

from margarita.extensions import db
from margarita.models import SessionToken
from margarita.services import auth_service, session_service
from margarita.services.auth_service import PasswordValidationError, validate_password_strength
from margarita.validation import ConflictError, ValidationError

from conftest import DEFAULT_PASSWORD, auth_headers, get_auth_token


class TestPasswords:

    @pytest.mark.parametrize("weak", ["Short1", "alllowercase1", "ALLUPPERCASE1", "NoDigitsHere", None])
    def test_weak_passwords(self, weak):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(weak)

    def test_hash_round_trip(self):
        hashed = auth_service.hash_password(DEFAULT_PASSWORD)
        assert hashed != DEFAULT_PASSWORD
        assert auth_service.verify_password(DEFAULT_PASSWORD, hashed)
        assert not auth_service.verify_password("Password124", hashed)

    def test_malformed_hash_never_matches(self):
        assert not auth_service.verify_password(DEFAULT_PASSWORD, "not-a-bcrypt-hash")


class TestUsers:

    def test_duplicate_username(self, regular_user):
        with pytest.raises(ConflictError):
            auth_service.create_user("ana", DEFAULT_PASSWORD)

    def test_unknown_role(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_user("bob", DEFAULT_PASSWORD, role="OWNER")

    def test_inactive_user_cannot_authenticate(self, regular_user):
        auth_service.update_user(regular_user.id, is_active=False)
        assert auth_service.authenticate("ana", DEFAULT_PASSWORD) is None


class TestSessions:

    def test_login_logout(self, client, regular_user):
        token = get_auth_token(client, "ana", DEFAULT_PASSWORD)
        assert token

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.json["user"]["username"] == "ana"

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_bad_credentials(self, client, regular_user):
        resp = client.post("/api/auth/login", json={"username": "ana", "password": "Wrong12345"})
        assert resp.status_code == 401
        assert resp.json["error"] == "Invalid credentials"

    def test_missing_fields(self, client, db_session):
        assert client.post("/api/auth/login", json={"username": "ana"}).status_code == 400

    def test_only_the_hash_is_stored(self, regular_user):
        session, token = session_service.create_session(regular_user.id)
        assert session.token_hash == session_service.hash_token(token)
        assert session.token_hash != token

    def test_idle_session_is_revoked(self, regular_user):
        session, token = session_service.create_session(regular_user.id)
        session.last_used_at = session.last_used_at - timedelta(hours=3)
        db.session.commit()

        assert session_service.validate_session(token) is None
        assert db.session.get(SessionToken, session.id).is_revoked is True

    def test_deactivation_revokes_sessions(self, client, admin_headers, regular_user):
        token = get_auth_token(client, "ana", DEFAULT_PASSWORD)
        resp = client.patch(f"/api/users/{regular_user.id}", json={"is_active": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401
