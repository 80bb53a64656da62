"""
Survey endpoints for signed-in participants.
"""

import logging

from fastapi import APIRouter, Request
from slowapi.util import get_remote_address

from app import db
from app.dependencies import CurrentParticipant
from app.errors import Conflict, NotFound, Unauthorized, ValidationFailed
from app.models import Invitation, SubmitRequest, SubmitResponse, SurveyVersionOut
from app.rate_limit import SUBMIT, limiter
from app.services.access_policy import require_survey_access
from app.services.credentials import anonymize, mask_email
from app.services.validation import validate_survey_responses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/survey", tags=["survey"])


async def _consented_invitation(email: str) -> Invitation:
    invitation = await db.get_invitation(email)
    if invitation is None:
        raise NotFound("User not found")
    if invitation.is_blocked:
        raise Unauthorized("Your access to this survey has been blocked. Please contact the survey team.")
    if not invitation.consented:
        logger.info("Participant has not consented: %s", mask_email(email))
        raise Unauthorized("User consent required")
    return invitation


@router.get(
    "/version",
    response_model=SurveyVersionOut,
    operation_id="getSurveyVersion",
    summary="Active survey version for the participant's group",
)
async def get_version(participant: CurrentParticipant) -> SurveyVersionOut:
    invitation = await _consented_invitation(participant.email)

    version = await db.get_active_version(invitation.group)
    if version is None:
        logger.warning("No active survey version for group %s", invitation.group.value)
        raise NotFound("No survey available for your group")

    return SurveyVersionOut(
        id=version.id,
        version=version.version,
        group=version.group,
        questions=version.questions,
        description=version.description,
        created_at=version.created_at,
    )


@router.post(
    "/submit",
    response_model=SubmitResponse,
    operation_id="submitSurvey",
    summary="Submit (or save partial) survey answers",
)
@limiter.limit(SUBMIT)
async def submit(request: Request, body: SubmitRequest, participant: CurrentParticipant) -> SubmitResponse:
    email = participant.email
    await require_survey_access(email)
    invitation = await _consented_invitation(email)

    if invitation.has_taken and not body.partial:
        logger.info("Survey already completed: %s", mask_email(email))
        raise Conflict("Survey already completed")

    version = await db.get_survey_version(body.survey_version_id)
    if version is None:
        raise NotFound("Survey version not found")
    if version.group != invitation.group:
        logger.info("Survey group mismatch: %s vs %s", version.group.value, invitation.group.value)
        raise ValidationFailed("Survey version does not match user group")

    if not body.partial:
        errors = validate_survey_responses(body.responses, version.questions)
        if errors:
            raise ValidationFailed(
                "Some answers are missing or invalid",
                details=[{"question_id": e.question_id, "error": e.error} for e in errors],
            )

    # Earlier submissions are kept; each one records its position.
    previous = await db.count_responses(email)
    submission_number = previous + 1
    answers = {
        **body.responses,
        "_submission_version": submission_number,
        "_is_resubmission": submission_number > 1,
        "_previous_submissions": previous,
    }

    response_id = await db.create_response(
        email,
        invitation.group,
        version.id,
        answers,
        partial=body.partial,
        completion_time=body.completion_time,
        user_agent=request.headers.get("user-agent", "unknown"),
        device_type=body.device_type or "unknown",
        ip_address_hash=anonymize(get_remote_address(request)),
    )

    logger.info(
        "Survey response #%d stored for group %s (partial=%s)",
        submission_number, invitation.group.value, body.partial,
    )
    return SubmitResponse(
        message="Survey progress saved" if body.partial else "Survey submitted successfully",
        response_id=response_id,
        questions_answered=len(body.responses),
        total_questions=len(version.questions),
    )
