"""
Shared test fixtures.

Provides a FastAPI TestClient wired to:
  • a temporary SQLite database (via app lifespan)
  • a mailer that records codes instead of sending them
  • route rate limits disabled and the per-email throttle emptied

The `client` fixture runs the full lifespan (DB init / shutdown); async
fixtures and tests seed the database by awaiting `app.db` directly.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app import db
from app.main import app
from app.models import Invitation, SurveyVersion
from app.services.otp import code_expiry
from app.services.passwords import hash_password
from tests.mocks.models import (
    ADMIN_EMAIL,
    ADMIN_NAME,
    ADMIN_PASSWORD,
    KNOWN_CODE,
    PARTICIPANT_EMAIL,
    PARTICIPANT_GROUP,
    QUESTIONS,
)
from tests.mocks.services import MockMailer


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def _test_env(monkeypatch, tmp_path) -> MockMailer:
    """
    Internal fixture that patches the DB path, the mailer and the rate
    limiters so that the app lifespan runs cleanly against a temp database.
    """
    # ── Temp database ─────────────────────────────────────────────────
    import app.db as db_mod

    monkeypatch.setattr(db_mod, "DB_PATH", str(tmp_path / "test.db"))

    # ── Recording mailer ──────────────────────────────────────────────
    mailer = MockMailer()
    monkeypatch.setattr("app.routers.auth.send_otp_email", mailer.send)
    monkeypatch.setattr("app.routers.auth.smtp_enabled", lambda: False)

    # ── Disable rate limiting in tests ────────────────────────────────
    from app.rate_limit import limiter as _limiter
    from app.rate_limit import otp_email_limiter

    monkeypatch.setattr(_limiter, "enabled", False)
    otp_email_limiter.reset()

    return mailer


@pytest.fixture()
def mailer(_test_env) -> MockMailer:
    return _test_env


@pytest.fixture()
def client(_test_env) -> TestClient:
    """
    FastAPI TestClient against a fresh temp database.

    Uses a context manager so the lifespan runs (DB init/shutdown).
    """
    with TestClient(app, raise_server_exceptions=False) as tc:
        yield tc


@pytest.fixture()
async def survey_version(client) -> SurveyVersion:
    return await db.create_survey_version("v-test-Teachers", PARTICIPANT_GROUP, QUESTIONS)


@pytest.fixture()
async def invitation(client) -> Invitation:
    return await db.upsert_invitation(PARTICIPANT_EMAIL, PARTICIPANT_GROUP)


@pytest.fixture()
async def admin_client(client) -> TestClient:
    """Client holding an admin session cookie."""
    await db.create_admin(ADMIN_EMAIL, hash_password(ADMIN_PASSWORD, rounds=4), ADMIN_NAME)
    resp = client.post(
        "/api/admin/login",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
    )
    assert resp.status_code == 200
    return client


@pytest.fixture()
async def participant_client(client, invitation, survey_version) -> TestClient:
    """Client holding a consented participant's survey session cookie."""
    await db.store_otp(PARTICIPANT_EMAIL, KNOWN_CODE, code_expiry())
    resp = client.post(
        "/api/auth/verify-otp",
        json={"email": PARTICIPANT_EMAIL, "code": KNOWN_CODE, "consented": True},
    )
    assert resp.status_code == 200
    return client

