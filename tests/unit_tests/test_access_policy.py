"""Tests for who may take the survey."""

import pytest

from app import db
from app.errors import Unauthorized
from app.services.access_policy import (
    ADMIN_DENIED,
    TEST_ACCOUNT_DENIED,
    can_access_survey,
    is_test_account,
    require_survey_access,
)
from app.services.passwords import hash_password
from tests.mocks.models import ADMIN_EMAIL, PARTICIPANT_EMAIL, TEST_ACCOUNT_EMAIL


async def _make_admin(email: str = ADMIN_EMAIL) -> None:
    await db.create_admin(email, hash_password("pw", rounds=4), "Admin")


def test_is_test_account():
    assert is_test_account("pilot@example.com")
    assert is_test_account("Pilot@EXAMPLE.com")
    assert not is_test_account("teacher@school.org")
    assert not is_test_account("someone@example.com.au")


class TestCanAccessSurvey:
    async def test_regular_participant_allowed(self, client):
        decision = await can_access_survey(PARTICIPANT_EMAIL)
        assert decision.allowed
        assert decision.reason is None

    async def test_test_account_allowed_before_production(self, client):
        assert (await can_access_survey(TEST_ACCOUNT_EMAIL)).allowed

    async def test_site_admin_denied(self, client):
        await _make_admin()
        decision = await can_access_survey(ADMIN_EMAIL)
        assert not decision.allowed
        assert decision.reason == ADMIN_DENIED

    async def test_test_account_denied_in_production(self, client):
        await db.activate_production_mode("ops@district.org")
        decision = await can_access_survey(TEST_ACCOUNT_EMAIL)
        assert not decision.allowed
        assert decision.reason == TEST_ACCOUNT_DENIED

    async def test_regular_participant_allowed_in_production(self, client):
        await db.activate_production_mode("ops@district.org")
        assert (await can_access_survey(PARTICIPANT_EMAIL)).allowed

    async def test_admin_on_test_domain_denied_in_normal_mode(self, client):
        await _make_admin("boss@example.com")
        assert (await can_access_survey("boss@example.com")).reason == ADMIN_DENIED

    async def test_admin_rule_wins_over_test_account_rule(self, client):
        await _make_admin("boss@example.com")
        await db.activate_production_mode("ops@district.org")
        assert (await can_access_survey("boss@example.com")).reason == ADMIN_DENIED


class TestRequireSurveyAccess:
    async def test_raises_with_reason(self, client):
        await _make_admin()
        with pytest.raises(Unauthorized) as exc_info:
            await require_survey_access(ADMIN_EMAIL)
        assert exc_info.value.message == ADMIN_DENIED
        assert exc_info.value.status_code == 403

    async def test_passes_for_participant(self, client):
        await require_survey_access(PARTICIPANT_EMAIL)
