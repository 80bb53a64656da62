"""
Administrator endpoints: password login, dashboard, invitations,
responses, export and the production-mode switch.

Everything except login and the site-admin probe requires an admin
session cookie.
"""

import logging
from collections import Counter

from fastapi import APIRouter, HTTPException, Request, Response, status

from app import db
from app.config import ADMIN_COOKIE
from app.dependencies import (
    ADMIN_SESSION_TTL,
    CurrentAdmin,
    clear_session_cookie,
    issue_admin_token,
    set_session_cookie,
)
from app.errors import NotFound
from app.models import (
    AdminInfo,
    AdminLoginRequest,
    AdminLoginResponse,
    BlockUserRequest,
    BlockUserResponse,
    CheckSiteAdminRequest,
    CheckSiteAdminResponse,
    DashboardStats,
    ExportRequest,
    Invitation,
    InviteCreate,
    InviteOut,
    InvitesResponse,
    MessageResponse,
    ProductionModeRequest,
    ProductionModeResponse,
    ResponsesResponse,
    ResponseStats,
    ResponseSummary,
    ResubmissionRequest,
    ResubmissionResponse,
    SurveyResponse,
    SystemSettings,
)
from app.rate_limit import ADMIN, ADMIN_LOGIN, limiter
from app.services import export, production_mode
from app.services.access_policy import is_site_admin
from app.services.credentials import mask_email
from app.services.passwords import verify_password

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

RECENT_RESPONSES = 10


def _summary(response: SurveyResponse, submission_number: int) -> ResponseSummary:
    answered = [k for k in response.responses if not k.startswith("_")]
    return ResponseSummary(
        id=response.id,
        email=mask_email(response.email),
        group=response.group,
        version=response.version_label,
        submitted_at=response.submitted_at,
        completion_time=response.completion_time,
        partial=response.partial,
        device_type=response.device_type or "unknown",
        questions_answered=len(answered),
        submission_number=submission_number,
    )


def _summaries(responses: list[SurveyResponse]) -> list[ResponseSummary]:
    """Summaries in the given (newest first) order.

    ``submission_number`` counts a participant's submissions oldest
    first, so a first submission is 1 even when later ones exist.
    """
    totals = Counter(r.email for r in responses)
    seen: Counter[str] = Counter()
    out = []
    for response in responses:
        seen[response.email] += 1
        out.append(_summary(response, totals[response.email] - seen[response.email] + 1))
    return out


def _invite_out(inv: Invitation, response_count: int) -> InviteOut:
    return InviteOut(
        id=inv.id,
        email=inv.email,
        group=inv.group,
        invited_at=inv.invited_at,
        has_taken=inv.has_taken,
        consented=inv.consented,
        is_blocked=inv.is_blocked,
        response_count=response_count,
        has_ever_submitted=response_count > 0,
        # Has submitted before and may currently take it again
        can_resubmit=response_count > 0 and not inv.has_taken,
    )


async def _get_invitation_or_404(email: str) -> Invitation:
    invitation = await db.get_invitation(email)
    if invitation is None:
        logger.info("User not found: %s", mask_email(email))
        raise NotFound("User not found")
    return invitation


# ── Session ───────────────────────────────────────────────────────────────


@router.post(
    "/login",
    response_model=AdminLoginResponse,
    operation_id="adminLogin",
    summary="Sign in with email and password",
)
@limiter.limit(ADMIN_LOGIN)
async def login(request: Request, body: AdminLoginRequest, response: Response) -> AdminLoginResponse:
    admin = await db.get_admin(body.email)
    # Same message for unknown email and wrong password
    if admin is None or not verify_password(body.password, admin.password_hash):
        logger.info("Admin login failed for %s", mask_email(body.email))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    await db.touch_admin_login(admin.id)
    set_session_cookie(response, ADMIN_COOKIE, issue_admin_token(admin), ADMIN_SESSION_TTL)

    logger.info("Admin signed in: %s", mask_email(admin.email))
    return AdminLoginResponse(
        message="Login successful",
        user=AdminInfo(id=admin.id, email=admin.email, name=admin.name, role=admin.role),
    )


@router.post(
    "/logout",
    response_model=MessageResponse,
    operation_id="adminLogout",
    summary="Clear the admin session cookie",
)
async def logout(response: Response) -> MessageResponse:
    clear_session_cookie(response, ADMIN_COOKIE)
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=AdminInfo,
    operation_id="getAdminMe",
    summary="Get the signed-in administrator",
)
async def get_me(admin: CurrentAdmin) -> AdminInfo:
    return AdminInfo(id=admin.id, email=admin.email, name=admin.name, role=admin.role)


# ── Overview ──────────────────────────────────────────────────────────────


@router.get(
    "/dashboard",
    response_model=DashboardStats,
    operation_id="getDashboard",
    summary="Headline numbers and the most recent submissions",
)
@limiter.limit(ADMIN)
async def dashboard(request: Request, admin: CurrentAdmin) -> DashboardStats:
    total_invites = await db.count_invitations()
    responses = await db.list_responses()

    total = len(responses)
    completion_rate = round(total / total_invites * 100, 1) if total_invites else 0.0

    timed = [r.completion_time for r in responses if not r.partial and r.completion_time is not None]
    average = round(sum(timed) / len(timed)) if timed else 0

    return DashboardStats(
        total_invites=total_invites,
        total_responses=total,
        completion_rate=completion_rate,
        responses_by_group=dict(Counter(r.group.value for r in responses)),
        average_completion_time=average,
        partial_submissions=sum(1 for r in responses if r.partial),
        recent_responses=_summaries(responses)[:RECENT_RESPONSES],
    )


@router.get(
    "/invites",
    response_model=InvitesResponse,
    operation_id="listInvites",
    summary="All invitations with their submission counts",
)
@limiter.limit(ADMIN)
async def list_invites(request: Request, admin: CurrentAdmin) -> InvitesResponse:
    invitations = await db.list_invitations()
    counts = await db.response_counts_by_email()

    invites = [_invite_out(inv, counts.get(inv.email, 0)) for inv in invitations]
    return InvitesResponse(invites=invites, total=len(invites))


@router.post(
    "/invites",
    response_model=InviteOut,
    status_code=status.HTTP_201_CREATED,
    operation_id="createInvite",
    summary="Invite an email address (or move it to another group)",
)
@limiter.limit(ADMIN)
async def create_invite(request: Request, body: InviteCreate, admin: CurrentAdmin) -> InviteOut:
    inv = await db.upsert_invitation(body.email, body.group)
    logger.info("Invitation for %s saved by %s", mask_email(inv.email), admin.email)
    return _invite_out(inv, await db.count_responses(inv.email))


@router.get(
    "/responses",
    response_model=ResponsesResponse,
    operation_id="listResponses",
    summary="All submissions, participant emails masked",
)
@limiter.limit(ADMIN)
async def list_responses(request: Request, admin: CurrentAdmin) -> ResponsesResponse:
    summaries = _summaries(await db.list_responses())
    completed = sum(1 for s in summaries if not s.partial)
    return ResponsesResponse(
        responses=summaries,
        total=len(summaries),
        stats=ResponseStats(
            total_responses=len(summaries),
            completed_responses=completed,
            partial_responses=len(summaries) - completed,
            by_group=dict(Counter(s.group.value for s in summaries)),
        ),
    )


@router.post(
    "/export",
    operation_id="exportResponses",
    summary="Download responses as CSV or Excel",
    response_class=Response,
)
@limiter.limit(ADMIN)
async def export_responses(request: Request, body: ExportRequest, admin: CurrentAdmin) -> Response:
    responses = await db.list_responses(
        groups=body.groups,
        start=body.start,
        end=body.end,
        include_partial=body.include_partial,
    )
    if not responses:
        raise NotFound("No responses found matching the criteria")

    if body.format == "excel":
        content: bytes | str = export.to_excel(responses, body)
        media_type = export.EXCEL_MEDIA_TYPE
    else:
        content = export.to_csv(
            export.build_rows(
                responses,
                anonymized=body.anonymize,
                include_metadata=body.include_metadata,
            )
        )
        media_type = export.CSV_MEDIA_TYPE

    filename = export.export_filename(body.format)
    logger.info("%s exported %d responses as %s", admin.email, len(responses), body.format)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ── Participant management ────────────────────────────────────────────────


@router.post(
    "/allow-resubmission",
    response_model=ResubmissionResponse,
    operation_id="allowResubmission",
    summary="Let a participant submit the survey again",
)
@limiter.limit(ADMIN)
async def allow_resubmission(
    request: Request, body: ResubmissionRequest, admin: CurrentAdmin
) -> ResubmissionResponse:
    invitation = await _get_invitation_or_404(body.email)
    previous = await db.count_responses(invitation.email)
    await db.set_completed(invitation.email, False)

    logger.info(
        "Resubmission enabled for %s by %s (%d previous)",
        mask_email(invitation.email), admin.email, previous,
    )
    return ResubmissionResponse(
        message="Resubmission enabled successfully",
        email=mask_email(invitation.email),
        group=invitation.group,
        previous_submissions=previous,
        reason=body.reason or "Admin-initiated resubmission",
    )


@router.post(
    "/block-user",
    response_model=BlockUserResponse,
    operation_id="blockUser",
    summary="Block or unblock a participant",
)
@limiter.limit(ADMIN)
async def block_user(request: Request, body: BlockUserRequest, admin: CurrentAdmin) -> BlockUserResponse:
    invitation = await _get_invitation_or_404(body.email)
    blocking = body.action == "block"
    await db.set_blocked(
        invitation.email,
        blocked=blocking,
        reason=body.reason if blocking else None,
        actor=admin.email if blocking else None,
    )

    logger.info("User %s %sed by %s", mask_email(invitation.email), body.action, admin.email)
    return BlockUserResponse(
        message=f"User {body.action}ed successfully",
        action="blocked" if blocking else "unblocked",
        email=mask_email(invitation.email),
        group=invitation.group,
    )


@router.post(
    "/check-site-admin",
    response_model=CheckSiteAdminResponse,
    operation_id="checkSiteAdmin",
    summary="Whether an email belongs to a site administrator",
)
async def check_site_admin(body: CheckSiteAdminRequest) -> CheckSiteAdminResponse:
    return CheckSiteAdminResponse(is_site_admin=await is_site_admin(body.email))


# ── Production mode ───────────────────────────────────────────────────────


@router.get(
    "/production-mode",
    response_model=SystemSettings,
    operation_id="getProductionMode",
    summary="Current production-mode state",
)
async def get_production_mode(admin: CurrentAdmin) -> SystemSettings:
    return await production_mode.get_production_mode()


@router.post(
    "/production-mode",
    response_model=ProductionModeResponse,
    operation_id="activateProductionMode",
    summary="Wipe pilot data and switch to production (irreversible)",
)
@limiter.limit(ADMIN)
async def activate_production_mode(
    request: Request, body: ProductionModeRequest, admin: CurrentAdmin
) -> ProductionModeResponse:
    result = await production_mode.activate_production_mode(admin.email, body.confirmation)
    return ProductionModeResponse(
        message="Production mode activated. All test data has been cleared.",
        deleted_responses=result.deleted_responses,
        reset_users=result.reset_users,
        activated_by=result.activated_by,
        activated_at=result.activated_at,
    )
