"""
Production mode: the one-way switch from piloting to real data collection.

Turning it on wipes every survey response and resets every invitation
(completion, consent, pending code, attempt counter) so pilot data never
mixes with real answers, then locks out test accounts.  There is no way
back through the API.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from app import db
from app.config import PRODUCTION_CONFIRMATION
from app.errors import Conflict, ValidationFailed
from app.models import SystemSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActivationResult:
    deleted_responses: int
    reset_users: int
    activated_by: str
    activated_at: datetime


async def get_production_mode() -> SystemSettings:
    return await db.get_settings()


async def activate_production_mode(actor: str, confirmation: str) -> ActivationResult:
    """Switch production mode on.

    *confirmation* must be exactly ``PRODUCTION``.  A second call once
    the mode is on raises :class:`Conflict` and leaves all data alone.
    """
    if confirmation != PRODUCTION_CONFIRMATION:
        raise ValidationFailed(f"Must type {PRODUCTION_CONFIRMATION} to confirm")

    logger.warning("Switching to PRODUCTION MODE, initiated by %s", actor)
    result = await db.activate_production_mode(actor)
    if result is None:
        raise Conflict("Already in production mode")

    deleted, reset = result
    logger.warning(
        "PRODUCTION MODE ACTIVATED by %s: deleted %d responses, reset %d invitations",
        actor, deleted, reset,
    )
    return ActivationResult(
        deleted_responses=deleted,
        reset_users=reset,
        activated_by=actor,
        activated_at=datetime.now(timezone.utc),
    )
