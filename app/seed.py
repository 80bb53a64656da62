"""
Initial data: the settings row, one administrator, an active survey
version per stakeholder group and a handful of test invitations.

Safe to run repeatedly; existing rows are left untouched.
"""

from __future__ import annotations

import logging
from typing import Any

from app import db
from app.config import SEED_ADMIN_EMAIL, SEED_ADMIN_NAME, SEED_ADMIN_PASSWORD
from app.models import StakeholderGroup
from app.services.passwords import hash_password

logger = logging.getLogger(__name__)


def _q(qid: str, text: str, placeholder: str, min_length: int, max_length: int) -> dict[str, Any]:
    return {
        "id": qid,
        "text": text,
        "type": "open_ended",
        "required": True,
        "placeholder": placeholder,
        "validation": {"minLength": min_length, "maxLength": max_length},
    }


QUESTION_SETS: dict[StakeholderGroup, list[dict[str, Any]]] = {
    StakeholderGroup.TEACHERS: [
        _q("q1_tech_use",
           "How do you currently use technology in your classrooms, and what role do you see "
           "for AI in enhancing your teaching practices?",
           "Describe your current technology use and AI vision...", 50, 1000),
        _q("q2_benefits_challenges",
           "What benefits do you anticipate from using AI in education, and what challenges or "
           "concerns do you have? (e.g., Cheating)",
           "Share your thoughts on benefits and challenges...", 50, 1000),
        _q("q3_training_needs",
           "What kind of training or support would you need to effectively integrate AI into your teaching?",
           "Describe training and support needs...", 30, 1000),
        _q("q4_diverse_needs",
           "How do you think AI can help address the diverse learning needs of your students?",
           "Describe how AI can support diverse learners...", 30, 1000),
        _q("q5_ethics",
           "What are your thoughts on the ethical use of AI in education, particularly regarding "
           "issues like bias and data privacy?",
           "Share your thoughts on AI ethics in education...", 30, 1000),
    ],
    StakeholderGroup.STUDENTS: [
        _q("q1_ai_use",
           "How often do you use AI tools like ChatGPT for your schoolwork, and for what purposes "
           "(e.g., writing essays, solving math problems)?",
           "Describe your AI tool usage patterns and purposes...", 30, 800),
        _q("q2_cheating_perception",
           "Do you think using AI for schoolwork is helpful or constitutes cheating?",
           "Share your perspective on AI and academic integrity...", 20, 800),
        _q("q3_banning_feelings",
           "How do you feel about schools banning AI tools, and what do you think is the best "
           "approach for schools regarding AI use?",
           "Share your thoughts on school AI policies...", 30, 800),
        _q("q4_guidance_needs",
           "What kind of education or guidance do you think students need to use AI responsibly and effectively?",
           "Describe what AI education students need...", 30, 800),
        _q("q5_learning_improvement",
           "In what ways do you think AI can improve your learning experience, and are there any "
           "concerns you have about its use in education?",
           "Describe AI benefits and concerns for learning...", 30, 800),
    ],
    StakeholderGroup.ADMINISTRATORS: [
        _q("q1_district_stance",
           "What is the district's current stance on AI in education, and are there any policies "
           "or guidelines in place?",
           "Describe current district policies and stance...", 50, 1000),
        _q("q2_integration_plan",
           "How does the district plan to integrate AI into the curriculum, and what are the "
           "potential benefits and challenges?",
           "Describe integration plans and considerations...", 50, 1000),
        _q("q3_equitable_access",
           "How will the district ensure equal access to AI tools for all students, including "
           "those from underserved communities?",
           "Describe equity and access strategies...", 40, 1000),
        _q("q4_outcomes_role",
           "What role does the district see for AI in improving student outcomes, and how will this be measured?",
           "Describe expected outcomes and measurement approaches...", 40, 1000),
        _q("q5_privacy_steps",
           "What steps will the district take to address data privacy and security concerns with AI implementation?",
           "Describe privacy and security measures...", 40, 1000),
    ],
    StakeholderGroup.IT_ADMINS: [
        _q("q1_infrastructure_state",
           "What is the current state of your school district's technological infrastructure, "
           "and is it ready to support AI tools?",
           "Describe current infrastructure and AI readiness...", 50, 1000),
        _q("q2_privacy_risks",
           "What are the potential data privacy and security risks associated with implementing "
           "AI in education, and how can we mitigate them?",
           "Describe privacy risks and mitigation strategies...", 50, 1000),
        _q("q3_staff_skills",
           "Do we have the necessary IT staff and skills to manage and maintain AI tools?",
           "Assess current IT capabilities and needs...", 30, 1000),
        _q("q4_accessibility",
           "How will we ensure that AI tools are accessible and usable for all students, "
           "including those with disabilities?",
           "Describe accessibility considerations and approaches...", 40, 1000),
        _q("q5_costs_budget",
           "What are the costs associated with implementing and maintaining AI tools, and how "
           "will we budget for them?",
           "Describe cost considerations and budget planning...", 30, 1000),
        _q("q6_integration_opinion",
           "In your opinion, how can we integrate AI tools with our existing educational technology systems?",
           "Share your thoughts on system integration approaches...", 40, 1000),
    ],
}

# Survey participants on the test domain; none of them is a site admin.
TEST_INVITATIONS = [
    ("teacher@example.com", StakeholderGroup.TEACHERS),
    ("student@example.com", StakeholderGroup.STUDENTS),
    ("admin_survey@example.com", StakeholderGroup.ADMINISTRATORS),
    ("it@example.com", StakeholderGroup.IT_ADMINS),
]


def version_label(group: StakeholderGroup) -> str:
    return f"v1.0-{group.value}"


async def seed() -> None:
    """Populate an initialised database (``db.init_db`` already ran)."""
    settings = await db.get_settings()
    logger.info("System settings: %s mode", "production" if settings.production_mode else "development")

    admin = await db.create_admin(
        SEED_ADMIN_EMAIL, hash_password(SEED_ADMIN_PASSWORD), SEED_ADMIN_NAME,
    )
    logger.info("Administrator ready: %s", admin.email)

    for group, questions in QUESTION_SETS.items():
        version = await db.create_survey_version(
            version_label(group),
            group,
            questions,
            description=f"Initial {group.value} survey",
        )
        logger.info("Survey version ready: %s (%d questions)", version.version, len(version.questions))

    for email, group in TEST_INVITATIONS:
        if await db.get_invitation(email) is None:
            await db.upsert_invitation(email, group)
            logger.info("Test invitation created: %s (%s)", email, group.value)
