"""Pydantic models for the survey API and the rows behind it."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class StakeholderGroup(str, Enum):
    """Which question set an invitation receives."""
    TEACHERS = "Teachers"
    STUDENTS = "Students"
    ADMINISTRATORS = "Administrators"
    IT_ADMINS = "IT_Admins"


# ── Stored records ─────────────────────────────────────────────────────────


class Invitation(BaseModel):
    """One invited participant."""
    id: int
    email: str
    group: StakeholderGroup
    invited_at: datetime
    consented: bool = False
    has_taken: bool = False
    otp_code: Optional[str] = None
    otp_expiry: Optional[datetime] = None
    failed_attempts: int = 0
    is_blocked: bool = False
    blocked_reason: Optional[str] = None
    blocked_by: Optional[str] = None
    blocked_at: Optional[datetime] = None


class Administrator(BaseModel):
    id: int
    email: str
    password_hash: str
    name: str
    role: str = "admin"
    created_at: datetime
    last_login: Optional[datetime] = None


class SystemSettings(BaseModel):
    production_mode: bool = False
    toggled_at: Optional[datetime] = None
    toggled_by: Optional[str] = None


class Question(BaseModel):
    """A single survey question as stored in a version's question list."""
    id: str
    text: str
    type: str = Field(..., description="open_ended, multiple_choice or likert")
    required: bool = True
    placeholder: Optional[str] = None
    options: Optional[List[str]] = None
    validation: Optional[Dict[str, int]] = None


class SurveyVersion(BaseModel):
    id: int
    version: str
    group: StakeholderGroup
    questions: List[Question]
    description: Optional[str] = None
    is_active: bool = True
    max_responses: Optional[int] = None
    created_at: datetime


class SurveyResponse(BaseModel):
    id: int
    email: str
    group: StakeholderGroup
    version_id: int
    version_label: Optional[str] = None
    responses: Dict[str, Any]
    submitted_at: datetime
    completion_time: Optional[int] = None
    partial: bool = False
    user_agent: Optional[str] = None
    device_type: Optional[str] = None
    ip_address_hash: Optional[str] = None


# ── Participant auth ───────────────────────────────────────────────────────


class OtpRequest(BaseModel):
    email: EmailStr = Field(..., description="Invited participant email")


class OtpRequestResponse(BaseModel):
    message: str
    expires_in_seconds: int
    dev_code: Optional[str] = Field(None, description="Only returned in development while email is not configured")


class OtpVerifyRequest(BaseModel):
    email: EmailStr
    code: str = Field(..., pattern=r"^\d{6}$", description="6-digit access code")
    consented: bool = Field(..., description="Participant agreed to the consent form")


class OtpVerifyResponse(BaseModel):
    message: str
    group: StakeholderGroup
    expires_at: datetime


class MessageResponse(BaseModel):
    message: str


class ParticipantInfo(BaseModel):
    email: str
    group: StakeholderGroup
    consented: bool
    has_taken: bool


# ── Survey ─────────────────────────────────────────────────────────────────


class SurveyVersionOut(BaseModel):
    id: int
    version: str
    group: StakeholderGroup
    questions: List[Question]
    description: Optional[str] = None
    created_at: datetime


# Export columns written from the stored response itself; answers may not use them.
EXPORT_FIXED_COLUMNS = ("participant_id", "group", "survey_version", "submitted_at", "is_partial")
EXPORT_METADATA_COLUMNS = ("completion_time", "device_type", "submission_date", "submission_time")
RESERVED_ANSWER_KEYS = frozenset(EXPORT_FIXED_COLUMNS + EXPORT_METADATA_COLUMNS)


class SubmitRequest(BaseModel):
    survey_version_id: int = Field(..., gt=0)
    responses: Dict[str, Any]
    completion_time: Optional[int] = Field(None, ge=0, description="Seconds spent")
    partial: bool = False
    device_type: Optional[str] = None

    @field_validator("responses")
    @classmethod
    def no_reserved_keys(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        # "_" keys are submission bookkeeping added by the server
        bad = sorted(k for k in v if k in RESERVED_ANSWER_KEYS or k.startswith("_"))
        if bad:
            raise ValueError(f"reserved answer keys: {', '.join(bad)}")
        return v


class SubmitResponse(BaseModel):
    message: str
    response_id: int
    questions_answered: int
    total_questions: int


# ── Admin ──────────────────────────────────────────────────────────────────


class AdminLoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class AdminInfo(BaseModel):
    id: int
    email: str
    name: str
    role: str


class AdminLoginResponse(BaseModel):
    message: str
    user: AdminInfo


class InviteCreate(BaseModel):
    email: EmailStr
    group: StakeholderGroup


class InviteOut(BaseModel):
    id: int
    email: str
    group: StakeholderGroup
    invited_at: datetime
    has_taken: bool
    consented: bool
    is_blocked: bool
    response_count: int
    has_ever_submitted: bool
    can_resubmit: bool


class InvitesResponse(BaseModel):
    invites: List[InviteOut]
    total: int


class ResponseSummary(BaseModel):
    id: int
    email: str = Field(..., description="Masked email")
    group: StakeholderGroup
    version: Optional[str] = None
    submitted_at: datetime
    completion_time: Optional[int] = None
    partial: bool
    device_type: str
    questions_answered: int
    submission_number: int


class ResponseStats(BaseModel):
    total_responses: int
    completed_responses: int
    partial_responses: int
    by_group: Dict[str, int]


class ResponsesResponse(BaseModel):
    responses: List[ResponseSummary]
    total: int
    stats: ResponseStats


class DashboardStats(BaseModel):
    total_invites: int
    total_responses: int
    completion_rate: float = Field(..., description="Responses per invite, percent")
    responses_by_group: Dict[str, int]
    average_completion_time: int
    partial_submissions: int
    recent_responses: List[ResponseSummary]


class ExportRequest(BaseModel):
    format: Literal["csv", "excel"]
    groups: Optional[List[StakeholderGroup]] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    include_partial: bool = False
    anonymize: bool = True
    include_metadata: bool = True


class ResubmissionRequest(BaseModel):
    email: EmailStr
    reason: Optional[str] = None


class ResubmissionResponse(BaseModel):
    message: str
    email: str
    group: StakeholderGroup
    previous_submissions: int
    reason: str


class BlockUserRequest(BaseModel):
    email: EmailStr
    action: Literal["block", "unblock"]
    reason: str = Field(..., min_length=1)


class BlockUserResponse(BaseModel):
    message: str
    action: Literal["blocked", "unblocked"]
    email: str
    group: StakeholderGroup


class CheckSiteAdminRequest(BaseModel):
    email: str


class CheckSiteAdminResponse(BaseModel):
    is_site_admin: bool


class ProductionModeRequest(BaseModel):
    confirmation: str


class ProductionModeResponse(BaseModel):
    message: str
    deleted_responses: int
    reset_users: int
    activated_by: str
    activated_at: datetime


# ── Misc ───────────────────────────────────────────────────────────────────


class HealthResponse(BaseModel):
    status: str
    version: str
    production_mode: bool
    timestamp: datetime
