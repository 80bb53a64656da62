"""Tests for the /api/auth endpoints."""

from datetime import datetime, timedelta, timezone

from app import db
from app.config import OTP_MAX_ATTEMPTS, SURVEY_COOKIE
from app.dependencies import (
    ADMIN_TOKEN,
    SURVEY_TOKEN,
    decode_token,
    issue_participant_token,
    issue_token,
)
from app.services.otp import code_expiry
from app.services.passwords import hash_password
from tests.mocks.models import (
    ADMIN_EMAIL,
    KNOWN_CODE,
    PARTICIPANT_EMAIL,
    PARTICIPANT_GROUP,
    TEST_ACCOUNT_EMAIL,
)


def _verify(client, code=KNOWN_CODE, email=PARTICIPANT_EMAIL, consented=True):
    return client.post(
        "/api/auth/verify-otp",
        json={"email": email, "code": code, "consented": consented},
    )


class TestRequestOtp:
    async def test_request_otp_success(self, client, invitation, mailer):
        resp = client.post("/api/auth/request-otp", json={"email": PARTICIPANT_EMAIL})
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Access code sent to your email"
        assert data["expires_in_seconds"] == 600

        code = mailer.last_code(PARTICIPANT_EMAIL)
        assert data["dev_code"] == code

        stored = await db.get_invitation(PARTICIPANT_EMAIL)
        assert stored.otp_code == code
        assert stored.failed_attempts == 0
        assert stored.otp_expiry > datetime.now(timezone.utc)

    async def test_no_dev_code_when_mail_is_sent(self, client, invitation, mailer, monkeypatch):
        monkeypatch.setattr("app.routers.auth.smtp_enabled", lambda: True)
        resp = client.post("/api/auth/request-otp", json={"email": PARTICIPANT_EMAIL})
        assert resp.status_code == 200
        assert resp.json().get("dev_code") is None
        assert mailer.last_code(PARTICIPANT_EMAIL)

    def test_request_otp_invalid_email(self, client):
        resp = client.post("/api/auth/request-otp", json={"email": "not-an-email"})
        assert resp.status_code == 422

    def test_not_invited(self, client, mailer):
        resp = client.post("/api/auth/request-otp", json={"email": "stranger@school.org"})
        assert resp.status_code == 404
        assert resp.json()["error"] == "not_found"
        assert mailer.sent == []

    async def test_site_admin_refused(self, client, mailer):
        await db.create_admin(ADMIN_EMAIL, hash_password("pw", rounds=4), "Admin")
        await db.upsert_invitation(ADMIN_EMAIL, PARTICIPANT_GROUP)

        resp = client.post("/api/auth/request-otp", json={"email": ADMIN_EMAIL})
        assert resp.status_code == 403
        assert "Site administrators cannot participate" in resp.json()["detail"]
        assert mailer.sent == []

    async def test_test_account_refused_in_production(self, client, mailer):
        await db.upsert_invitation(TEST_ACCOUNT_EMAIL, PARTICIPANT_GROUP)
        await db.activate_production_mode("ops@district.org")

        resp = client.post("/api/auth/request-otp", json={"email": TEST_ACCOUNT_EMAIL})
        assert resp.status_code == 403
        assert "Test accounts are disabled" in resp.json()["detail"]

    async def test_already_completed(self, client, invitation):
        await db.set_completed(PARTICIPANT_EMAIL, True)
        resp = client.post("/api/auth/request-otp", json={"email": PARTICIPANT_EMAIL})
        assert resp.status_code == 409

    async def test_blocked_participant(self, client, invitation, mailer):
        await db.set_blocked(PARTICIPANT_EMAIL, blocked=True, reason="spam", actor="ops@district.org")
        resp = client.post("/api/auth/request-otp", json={"email": PARTICIPANT_EMAIL})
        assert resp.status_code == 403
        assert "blocked" in resp.json()["detail"]
        assert mailer.sent == []

    async def test_mail_failure_is_500(self, client, invitation, mailer):
        mailer.succeed = False
        resp = client.post("/api/auth/request-otp", json={"email": PARTICIPANT_EMAIL})
        assert resp.status_code == 500
        assert resp.json()["error"] == "internal"

    async def test_new_code_resets_attempts(self, client, invitation):
        await db.store_otp(PARTICIPANT_EMAIL, KNOWN_CODE, code_expiry())
        for _ in range(OTP_MAX_ATTEMPTS):
            await db.record_failed_attempt(PARTICIPANT_EMAIL)

        client.post("/api/auth/request-otp", json={"email": PARTICIPANT_EMAIL})
        stored = await db.get_invitation(PARTICIPANT_EMAIL)
        assert stored.failed_attempts == 0


class TestVerifyOtp:
    async def test_verify_valid_otp(self, client, invitation):
        await db.store_otp(PARTICIPANT_EMAIL, KNOWN_CODE, code_expiry())

        resp = _verify(client)
        assert resp.status_code == 200
        data = resp.json()
        assert data["message"] == "Access code verified successfully"
        assert data["group"] == PARTICIPANT_GROUP.value
        assert SURVEY_COOKIE in resp.cookies

        stored = await db.get_invitation(PARTICIPANT_EMAIL)
        assert stored.consented
        assert stored.otp_code is None
        assert stored.otp_expiry is None
        assert stored.failed_attempts == 0

    async def test_verify_invalid_otp(self, client, invitation):
        await db.store_otp(PARTICIPANT_EMAIL, KNOWN_CODE, code_expiry())

        resp = _verify(client, code="000000")
        assert resp.status_code == 400
        assert resp.json()["reason"] == "mismatch"

        stored = await db.get_invitation(PARTICIPANT_EMAIL)
        assert stored.failed_attempts == 1
        assert stored.otp_code == KNOWN_CODE

    def test_verify_otp_wrong_length(self, client):
        resp = _verify(client, code="12345")
        assert resp.status_code == 422

    async def test_otp_cannot_be_reused(self, client, invitation):
        """A code can only be used once."""
        await db.store_otp(PARTICIPANT_EMAIL, KNOWN_CODE, code_expiry())

        assert _verify(client).status_code == 200

        resp = _verify(client)
        assert resp.status_code == 400
        assert resp.json()["reason"] == "no_code_found"

    async def test_expired_code(self, client, invitation):
        await db.store_otp(
            PARTICIPANT_EMAIL, KNOWN_CODE, datetime.now(timezone.utc) - timedelta(seconds=1)
        )
        resp = _verify(client)
        assert resp.status_code == 400
        assert resp.json()["reason"] == "expired"

    async def test_lockout_after_max_attempts(self, client, invitation):
        await db.store_otp(PARTICIPANT_EMAIL, KNOWN_CODE, code_expiry())
        for _ in range(OTP_MAX_ATTEMPTS):
            assert _verify(client, code="000000").json()["reason"] == "mismatch"

        # Even the right code is refused now
        resp = _verify(client)
        assert resp.status_code == 400
        assert resp.json()["reason"] == "too_many_attempts"

    async def test_consent_required(self, client, invitation):
        await db.store_otp(PARTICIPANT_EMAIL, KNOWN_CODE, code_expiry())
        resp = _verify(client, consented=False)
        assert resp.status_code == 400
        assert resp.json()["error"] == "validation_failed"

        stored = await db.get_invitation(PARTICIPANT_EMAIL)
        assert stored.otp_code == KNOWN_CODE
        assert not stored.consented

    def test_unknown_email(self, client):
        assert _verify(client, email="stranger@school.org").status_code == 404

    async def test_site_admin_refused(self, client):
        await db.create_admin(ADMIN_EMAIL, hash_password("pw", rounds=4), "Admin")
        await db.upsert_invitation(ADMIN_EMAIL, PARTICIPANT_GROUP)
        await db.store_otp(ADMIN_EMAIL, KNOWN_CODE, code_expiry())

        assert _verify(client, email=ADMIN_EMAIL).status_code == 403


class TestLogout:
    def test_logout(self, client):
        resp = client.post("/api/auth/logout")
        assert resp.status_code == 200
        assert resp.json()["message"] == "Logged out successfully"


class TestMe:
    def test_get_me_authenticated(self, participant_client):
        resp = participant_client.get("/api/auth/me")
        assert resp.status_code == 200
        data = resp.json()
        assert data["email"] == PARTICIPANT_EMAIL
        assert data["group"] == PARTICIPANT_GROUP.value
        assert data["consented"] is True
        assert data["has_taken"] is False

    def test_get_me_unauthenticated(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401

    def test_garbage_cookie(self, client):
        client.cookies.set(SURVEY_COOKIE, "not-a-jwt")
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid session. Please log in again."

    def test_logout_clears_session(self, participant_client):
        participant_client.post("/api/auth/logout")
        assert participant_client.get("/api/auth/me").status_code == 401


class TestDecodeToken:
    def test_valid_participant_token(self):
        token = issue_participant_token(PARTICIPANT_EMAIL, PARTICIPANT_GROUP, True)
        claims = decode_token(token, SURVEY_TOKEN)
        assert claims["sub"] == PARTICIPANT_EMAIL
        assert claims["group"] == PARTICIPANT_GROUP.value

    def test_wrong_audience(self):
        token = issue_participant_token(PARTICIPANT_EMAIL, PARTICIPANT_GROUP, True)
        assert decode_token(token, ADMIN_TOKEN) is None

    def test_expired(self):
        token = issue_token({"sub": PARTICIPANT_EMAIL, "type": SURVEY_TOKEN}, timedelta(seconds=-1))
        assert decode_token(token, SURVEY_TOKEN) is None

    def test_garbage(self):
        assert decode_token("not-a-jwt", SURVEY_TOKEN) is None
