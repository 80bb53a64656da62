"""
Who may take the survey.

Checked before a code is sent, before it is redeemed and before a
submission is stored.  Rules, first match wins:

  1. site administrators never participate, whatever the mode
  2. in production mode, test accounts are shut out
  3. everyone else may continue (invitation checks come after this)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from app import db
from app.config import TEST_ACCOUNT_DOMAIN
from app.errors import Unauthorized
from app.services.credentials import mask_email

logger = logging.getLogger(__name__)

ADMIN_DENIED = (
    "Site administrators cannot participate in surveys. To participate as an "
    "Administrator stakeholder, use a different email address."
)
TEST_ACCOUNT_DENIED = (
    "Test accounts are disabled in production mode. Please use a real email address."
)


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: str | None = None


def is_test_account(email: str) -> bool:
    return email.lower().endswith(TEST_ACCOUNT_DOMAIN.lower())


async def is_site_admin(email: str) -> bool:
    return await db.get_admin(email) is not None


async def can_access_survey(email: str) -> AccessDecision:
    # The admin check does not depend on the mode: switching to
    # production leaves the administrators table untouched.
    if await is_site_admin(email):
        return AccessDecision(False, ADMIN_DENIED)

    settings = await db.get_settings()
    if settings.production_mode and is_test_account(email):
        return AccessDecision(False, TEST_ACCOUNT_DENIED)

    return AccessDecision(True)


async def require_survey_access(email: str) -> None:
    """Raise :class:`Unauthorized` unless *email* may take the survey."""
    decision = await can_access_survey(email)
    if not decision.allowed:
        logger.info("Survey access blocked for %s: %s", mask_email(email), decision.reason)
        raise Unauthorized(decision.reason or "Access denied")
