"""
Answer validation for survey submissions.

Each question carries its type and optional limits; answers are checked
against them one by one and every failure is reported, not just the
first.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from app.models import Question

MAX_TEXT_LENGTH = 2000

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class FieldError:
    question_id: str
    error: str


def sanitize_text_input(value: str) -> str:
    """Trim, collapse runs of whitespace and cap the length."""
    return _WHITESPACE_RE.sub(" ", value.strip())[:MAX_TEXT_LENGTH]


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def validate_question_response(value: Any, question: Question) -> str | None:
    """Return an error message, or None when *value* is acceptable."""
    if _is_empty(value):
        return "This field is required" if question.required else None

    rules = question.validation or {}

    if question.type == "open_ended":
        if not isinstance(value, str):
            return "Response must be text"
        text = sanitize_text_input(value)
        min_length = rules.get("minLength")
        max_length = rules.get("maxLength")
        if min_length and len(text) < min_length:
            return f"Response must be at least {min_length} characters"
        if max_length and len(text) > max_length:
            return f"Response must be no more than {max_length} characters"
        return None

    if question.type == "multiple_choice":
        if not isinstance(value, str):
            return "Please select an option"
        if value not in (question.options or []):
            return "Invalid option selected"
        return None

    if question.type == "likert":
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return "Value must be a number"
        low = rules.get("min", 1)
        high = rules.get("max", 5)
        if value < low or value > high:
            return f"Value must be between {low} and {high}"
        return None

    return "Unknown question type"


def validate_survey_responses(responses: dict[str, Any], questions: list[Question]) -> list[FieldError]:
    errors = []
    for question in questions:
        error = validate_question_response(responses.get(question.id), question)
        if error:
            errors.append(FieldError(question.id, error))
    return errors
