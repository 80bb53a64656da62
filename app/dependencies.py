import logging
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Annotated, Any

import jwt
from fastapi import Cookie, Depends, HTTPException, Response, status

from app.config import (
    ADMIN_COOKIE,
    ADMIN_SESSION_HOURS,
    ENVIRONMENT,
    JWT_ALGORITHM,
    SESSION_SECRET,
    SURVEY_COOKIE,
    SURVEY_SESSION_HOURS,
)
from app.models import Administrator, StakeholderGroup

logger = logging.getLogger(__name__)

ADMIN_TOKEN = "admin"
SURVEY_TOKEN = "survey"

ADMIN_SESSION_TTL = timedelta(hours=ADMIN_SESSION_HOURS)
SURVEY_SESSION_TTL = timedelta(hours=SURVEY_SESSION_HOURS)


# ── Token issuing ──────────────────────────────────────────────────────────


def issue_token(claims: dict[str, Any], ttl: timedelta) -> str:
    now = datetime.now(UTC)
    payload = {**claims, "iat": now, "exp": now + ttl}
    return jwt.encode(payload, SESSION_SECRET, algorithm=JWT_ALGORITHM)


def issue_admin_token(admin: Administrator) -> str:
    return issue_token(
        {
            "sub": admin.email,
            "id": admin.id,
            "name": admin.name,
            "role": admin.role,
            "type": ADMIN_TOKEN,
        },
        ADMIN_SESSION_TTL,
    )


def issue_participant_token(email: str, group: StakeholderGroup, consented: bool) -> str:
    return issue_token(
        {
            "sub": email,
            "group": group.value,
            "consented": consented,
            "type": SURVEY_TOKEN,
        },
        SURVEY_SESSION_TTL,
    )


# ── Cookies ────────────────────────────────────────────────────────────────


def set_session_cookie(response: Response, key: str, token: str, ttl: timedelta) -> None:
    response.set_cookie(
        key=key,
        value=token,
        httponly=True,
        samesite="strict",
        secure=ENVIRONMENT == "production",
        max_age=int(ttl.total_seconds()),
        path="/",
    )


def clear_session_cookie(response: Response, key: str) -> None:
    response.delete_cookie(key, path="/")


# ── Current user ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class AdminSession:
    id: int
    email: str
    name: str
    role: str


@dataclass(frozen=True)
class ParticipantSession:
    email: str
    group: StakeholderGroup
    consented: bool


def decode_token(token: str, expected_type: str) -> dict[str, Any] | None:
    """Verified claims of a session token, or None.

    None covers a bad signature, an expired token, and a token issued
    for the other audience (``type`` claim) or without a subject.
    """
    try:
        payload = jwt.decode(token, SESSION_SECRET, algorithms=[JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired %s session", expected_type)
        return None
    except jwt.PyJWTError as exc:
        logger.debug("Rejected %s session: %s", expected_type, exc)
        return None

    if payload.get("type") != expected_type or not payload.get("sub"):
        return None
    return payload


def _decode_or_401(token: str | None, expected_type: str) -> dict[str, Any]:
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )

    payload = decode_token(token, expected_type)
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session. Please log in again.",
        )
    return payload


async def get_current_admin(
    admin_session: Annotated[str | None, Cookie(alias=ADMIN_COOKIE)] = None,
) -> AdminSession:
    payload = _decode_or_401(admin_session, ADMIN_TOKEN)
    return AdminSession(
        id=payload["id"],
        email=payload["sub"],
        name=payload.get("name", ""),
        role=payload.get("role", "admin"),
    )


async def get_current_participant(
    survey_session: Annotated[str | None, Cookie(alias=SURVEY_COOKIE)] = None,
) -> ParticipantSession:
    payload = _decode_or_401(survey_session, SURVEY_TOKEN)
    try:
        group = StakeholderGroup(payload.get("group"))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload.",
        ) from None
    return ParticipantSession(
        email=payload["sub"],
        group=group,
        consented=bool(payload.get("consented")),
    )


CurrentAdmin = Annotated[AdminSession, Depends(get_current_admin)]
CurrentParticipant = Annotated[ParticipantSession, Depends(get_current_participant)]
