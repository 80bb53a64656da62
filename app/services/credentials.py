"""
One-time passcodes and pseudonymous identifiers.

Everything here is pure: no I/O, no state.
"""

from __future__ import annotations

import hashlib
import re
import secrets

from app.config import ANONYMIZATION_SALT

_CODE_MIN = 100_000
_CODE_MAX = 999_999

# Length of the hex digest prefix used as a participant id in exports.
ANONYMIZED_LENGTH = 16

_EMAIL_MASK_RE = re.compile(r"(.{2}).*(@.*)")


def generate_code() -> str:
    """Return a 6-digit numeric code drawn uniformly from 100000–999999."""
    return str(_CODE_MIN + secrets.randbelow(_CODE_MAX - _CODE_MIN + 1))


def anonymize(identifier: str, salt: str = ANONYMIZATION_SALT) -> str:
    """Stable, one-way pseudonym for *identifier* (16 hex chars)."""
    digest = hashlib.sha256((identifier + salt).encode("utf-8")).hexdigest()
    return digest[:ANONYMIZED_LENGTH]


def mask_email(email: str) -> str:
    """``teacher@example.com`` → ``te***@example.com`` for logs and listings."""
    return _EMAIL_MASK_RE.sub(r"\1***\2", email)
