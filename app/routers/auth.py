"""
Participant authentication – email OTP flow with JWT session cookies.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request, Response

from app import db
from app.config import (
    ENVIRONMENT,
    OTP_EMAIL_LIMIT,
    OTP_EMAIL_WINDOW_MS,
    OTP_TTL_SECONDS,
    SURVEY_COOKIE,
    smtp_enabled,
)
from app.dependencies import (
    SURVEY_SESSION_TTL,
    CurrentParticipant,
    clear_session_cookie,
    issue_participant_token,
    set_session_cookie,
)
from app.errors import (
    Conflict,
    Internal,
    InvalidCode,
    NotFound,
    RateLimited,
    Unauthorized,
    ValidationFailed,
)
from app.models import (
    Invitation,
    MessageResponse,
    OtpRequest,
    OtpRequestResponse,
    OtpVerifyRequest,
    OtpVerifyResponse,
    ParticipantInfo,
)
from app.rate_limit import AUTH, STRICT, limiter, otp_email_limiter
from app.services.access_policy import require_survey_access
from app.services.credentials import generate_code, mask_email
from app.services.email import send_otp_email
from app.services.otp import OtpError, code_expiry, validate_otp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


async def _get_invitation_or_404(email: str) -> Invitation:
    invitation = await db.get_invitation(email)
    if invitation is None:
        logger.info("Email not invited: %s", mask_email(email))
        raise NotFound("Email not authorized for this survey")
    if invitation.is_blocked:
        logger.info("Blocked participant tried to sign in: %s", mask_email(email))
        raise Unauthorized("Your access to this survey has been blocked. Please contact the survey team.")
    return invitation


@router.post(
    "/request-otp",
    response_model=OtpRequestResponse,
    operation_id="requestOtp",
    summary="Email a one-time access code to an invited participant",
)
@limiter.limit(STRICT)
async def request_otp(request: Request, body: OtpRequest) -> OtpRequestResponse:
    email = body.email
    await require_survey_access(email)

    invitation = await _get_invitation_or_404(email)
    if invitation.has_taken:
        logger.info("Participant already completed the survey: %s", mask_email(email))
        raise Conflict("You have already completed this survey")

    if not otp_email_limiter.check(email, OTP_EMAIL_LIMIT, OTP_EMAIL_WINDOW_MS):
        logger.info("Code requests throttled for %s", mask_email(email))
        raise RateLimited(
            "Too many access code requests. Please wait before trying again.",
            headers=otp_email_limiter.headers(email, OTP_EMAIL_LIMIT, OTP_EMAIL_WINDOW_MS, time.time()),
        )

    code = generate_code()
    await db.store_otp(email, code, code_expiry())

    if not await send_otp_email(email, code):
        raise Internal("Failed to send access code. Please try again.")

    logger.info("Access code issued for %s", mask_email(email))
    return OtpRequestResponse(
        message="Access code sent to your email",
        expires_in_seconds=OTP_TTL_SECONDS,
        # Only when the mail was logged rather than sent
        dev_code=code if ENVIRONMENT == "development" and not smtp_enabled() else None,
    )


@router.post(
    "/verify-otp",
    response_model=OtpVerifyResponse,
    operation_id="verifyOtp",
    summary="Redeem an access code and receive a survey session cookie",
)
@limiter.limit(AUTH)
async def verify_otp(request: Request, body: OtpVerifyRequest, response: Response) -> OtpVerifyResponse:
    email = body.email
    await require_survey_access(email)

    if not body.consented:
        raise ValidationFailed("Consent is required to participate in this survey")

    invitation = await _get_invitation_or_404(email)

    result = validate_otp(
        body.code,
        invitation.otp_code,
        invitation.otp_expiry,
        invitation.failed_attempts,
    )
    if not result.valid:
        logger.info("Access code rejected for %s: %s", mask_email(email), result.error.value)
        await db.record_failed_attempt(email)
        raise InvalidCode(result.error)

    # Another request may have consumed the code since we read it.
    if not await db.redeem_otp(email, body.code):
        logger.info("Access code already used for %s", mask_email(email))
        raise InvalidCode(OtpError.NO_CODE_FOUND)

    token = issue_participant_token(email, invitation.group, consented=True)
    set_session_cookie(response, SURVEY_COOKIE, token, SURVEY_SESSION_TTL)

    logger.info("Access code verified for %s", mask_email(email))
    return OtpVerifyResponse(
        message="Access code verified successfully",
        group=invitation.group,
        expires_at=datetime.now(timezone.utc) + SURVEY_SESSION_TTL,
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    operation_id="logout",
    summary="Clear the survey session cookie",
)
async def logout(response: Response) -> MessageResponse:
    clear_session_cookie(response, SURVEY_COOKIE)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=ParticipantInfo,
    operation_id="getMe",
    summary="Get the signed-in participant",
)
async def get_me(participant: CurrentParticipant) -> ParticipantInfo:
    invitation = await db.get_invitation(participant.email)
    if invitation is None:
        raise NotFound("User not found")
    return ParticipantInfo(
        email=invitation.email,
        group=invitation.group,
        consented=invitation.consented,
        has_taken=invitation.has_taken,
    )
