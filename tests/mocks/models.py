"""
Pre-built records and factory helpers for use in tests.

    from tests.mocks.models import PARTICIPANT_EMAIL, QUESTIONS, make_response
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from app.models import Question, StakeholderGroup, SurveyResponse

# ── People ─────────────────────────────────────────────────────────────────

ADMIN_EMAIL = "coordinator@district.org"
ADMIN_PASSWORD = "correct-horse-battery"
ADMIN_NAME = "Survey Coordinator"

PARTICIPANT_EMAIL = "teacher@school.org"
PARTICIPANT_GROUP = StakeholderGroup.TEACHERS

# On the test-account domain: locked out in production mode
TEST_ACCOUNT_EMAIL = "pilot@example.com"

KNOWN_CODE = "654321"

# ── Survey content ─────────────────────────────────────────────────────────

QUESTIONS: list[dict[str, Any]] = [
    {
        "id": "q1_tech_use",
        "text": "How do you use technology in your classroom?",
        "type": "open_ended",
        "required": True,
        "validation": {"minLength": 10, "maxLength": 200},
    },
    {
        "id": "q2_confidence",
        "text": "How confident are you using AI tools?",
        "type": "likert",
        "required": True,
        "validation": {"min": 1, "max": 5},
    },
    {
        "id": "q3_training",
        "text": "Which training format suits you best?",
        "type": "multiple_choice",
        "required": False,
        "options": ["Workshop", "Online course", "Peer coaching"],
    },
]

VALID_ANSWERS: dict[str, Any] = {
    "q1_tech_use": "Interactive whiteboards and shared documents every day.",
    "q2_confidence": 4,
    "q3_training": "Workshop",
}


def make_question(**overrides: Any) -> Question:
    data: dict[str, Any] = {
        "id": "q",
        "text": "Question?",
        "type": "open_ended",
        "required": True,
    }
    data.update(overrides)
    return Question(**data)


def make_response(**overrides: Any) -> SurveyResponse:
    data: dict[str, Any] = {
        "id": 1,
        "email": PARTICIPANT_EMAIL,
        "group": PARTICIPANT_GROUP,
        "version_id": 1,
        "version_label": "v1.0-Teachers",
        "responses": dict(VALID_ANSWERS),
        "submitted_at": datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc),
        "completion_time": 420,
        "partial": False,
        "device_type": "desktop",
    }
    data.update(overrides)
    return SurveyResponse(**data)
