"""
Signup, login, session and password flows.
"""
import pytest

from conftest import auth, PASSWORD

from config import settings
from model.user import Users
from src.accounts import anonymize_user
from src.reserved_names import is_reserved_name, normalize_name


# ===================================================================
# Signup
# ===================================================================

class TestSignup:
    def test_signup_returns_user_and_token(self, client):
        r = client.post("/api/auth/signup", json={"pseudonym": "dana", "password": "hunter22", "email": "Dana@Example.com"})
        assert r.status_code == 200
        body = r.json()
        assert body["token"]
        assert body["user"]["pseudonym"] == "dana"
        assert body["user"]["email"] == "dana@example.com"
        assert body["user"]["emailVerified"] is False
        assert "token" in r.cookies

    def test_duplicate_pseudonym_is_case_insensitive(self, client, alice):
        r = client.post("/api/auth/signup", json={"pseudonym": "ALICE", "password": "hunter22"})
        assert r.status_code == 409
        assert r.json() == {"code": "http_error", "message": "Pseudonym or email already in use"}

    def test_weak_password_is_a_validation_error(self, client):
        r = client.post("/api/auth/signup", json={"pseudonym": "dana", "password": "short"})
        assert r.status_code == 400
        body = r.json()
        assert body["code"] == "validation_error"
        assert body["errors"][0]["field"] == "password"

    def test_reserved_lookalike_is_rejected(self, client):
        r = client.post("/api/auth/signup", json={"pseudonym": "Adm1n_Team", "password": "hunter22"})
        assert r.status_code == 400
        assert r.json()["errors"][0]["field"] == "pseudonym"


class TestReservedNames:
    def test_normalize_undoes_digit_substitutions(self):
        assert normalize_name("M0d-3rat0r") == "moderator"

    def test_substring_match(self):
        assert is_reserved_name("the_support_desk")
        assert is_reserved_name("Ādmin")

    def test_ordinary_names_pass(self):
        assert not is_reserved_name("alice")
        assert not is_reserved_name("")


# ===================================================================
# Login / session
# ===================================================================

class TestLogin:
    def test_login_by_pseudonym(self, client, alice):
        r = client.post("/api/auth/login", json={"identifier": "Alice", "password": PASSWORD})
        assert r.status_code == 200
        assert r.json()["user"]["id"] == alice.id

    def test_login_by_email_alias_field(self, client, alice):
        r = client.post("/api/auth/login", json={"email": "alice@example.com", "password": PASSWORD})
        assert r.status_code == 200

    def test_wrong_password(self, client, alice):
        r = client.post("/api/auth/login", json={"identifier": "alice", "password": "nope12345"})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid credentials"

    def test_unknown_user(self, client):
        r = client.post("/api/auth/login", json={"identifier": "ghost", "password": PASSWORD})
        assert r.status_code == 401

    def test_deleted_account_is_disabled(self, client, db, alice):
        anonymize_user(db, alice)
        db.commit()
        r = client.post("/api/auth/login", json={"identifier": alice.pseudonym, "password": PASSWORD})
        assert r.status_code == 403

    def test_me_requires_token(self, client):
        r = client.get("/api/auth/me")
        assert r.status_code == 401
        assert r.json()["code"] == "http_error"

    def test_me_with_bearer(self, client, alice):
        r = client.get("/api/auth/me", headers=auth(alice))
        assert r.status_code == 200
        assert r.json()["user"]["pseudonym"] == "alice"

    def test_garbage_token(self, client):
        r = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert r.status_code == 401
        assert r.json()["message"] == "Invalid token"


class TestChangePassword:
    def test_change_password_then_login(self, client, alice):
        r = client.post("/api/auth/change-password", headers=auth(alice),
                        json={"current": PASSWORD, "next": "brandnew9"})
        assert r.status_code == 200
        assert client.post("/api/auth/login", json={"identifier": "alice", "password": "brandnew9"}).status_code == 200
        assert client.post("/api/auth/login", json={"identifier": "alice", "password": PASSWORD}).status_code == 401

    def test_wrong_current_password(self, client, alice):
        r = client.post("/api/auth/change-password", headers=auth(alice),
                        json={"current": "wrong", "next": "brandnew9"})
        assert r.status_code == 400


class TestAccountDeletion:
    def test_delete_me_anonymizes(self, client, db, alice):
        r = client.delete("/api/users/me", headers=auth(alice))
        assert r.status_code == 200
        db.expire_all()
        user = db.get(Users, alice.id)
        assert user.deleted_at is not None
        assert user.email is None
        assert user.pseudonym == f"deleted-{alice.id}"

    def test_admin_cannot_delete_self(self, client, admin):
        r = client.delete("/api/users/me", headers=auth(admin))
        assert r.status_code == 400


# ===================================================================
# Email-verified signup
# ===================================================================

class TestSignupCode:
    @pytest.fixture
    def outbox(self, monkeypatch):
        sent = {}

        def _capture(self, to_email, code):
            sent[to_email] = code
            return True

        monkeypatch.setattr("src.email_service.EmailService.send_signup_code", _capture)
        monkeypatch.setattr(settings, "REQUIRE_EMAIL_VERIFICATION", True)
        return sent

    def _signup(self, client, code):
        return client.post("/api/auth/signup", json={
            "pseudonym": "dora", "password": PASSWORD, "email": "Dora@Example.com", "code": code,
        })

    def test_code_then_signup(self, client, outbox):
        assert client.post("/api/auth/request-signup-code", json={"email": "dora@example.com"}).json() == {"ok": True}
        r = self._signup(client, outbox["dora@example.com"])
        assert r.status_code == 200
        assert r.json()["user"]["emailVerified"] is True

    def test_resend_is_throttled(self, client, outbox):
        client.post("/api/auth/request-signup-code", json={"email": "dora@example.com"})
        r = client.post("/api/auth/request-signup-code", json={"email": "dora@example.com"})
        assert r.json() == {"ok": True, "throttled": True}

    def test_wrong_code(self, client, outbox):
        client.post("/api/auth/request-signup-code", json={"email": "dora@example.com"})
        wrong = "000000" if outbox["dora@example.com"] != "000000" else "111111"
        r = self._signup(client, wrong)
        assert r.status_code == 400
        assert r.json()["message"] == "Invalid verification code"

    def test_code_required(self, client, outbox):
        r = client.post("/api/auth/signup", json={"pseudonym": "dora", "password": PASSWORD, "email": "dora@example.com"})
        assert r.status_code == 400
        assert r.json()["message"] == "Verification code required"

    def test_email_in_use(self, client, outbox, alice):
        r = client.post("/api/auth/request-signup-code", json={"email": "alice@example.com"})
        assert r.status_code == 409
