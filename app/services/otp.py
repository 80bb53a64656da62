"""
One-time passcode validation.

``validate_otp`` only *decides*; it never touches the database.  The
caller owns the bookkeeping around it:

  • on any failure, bump the stored attempt counter
  • on success, clear the stored code, expiry and counter in the same
    write that accepts the code, so the code cannot be redeemed twice
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from app.config import OTP_MAX_ATTEMPTS, OTP_TTL_SECONDS


class OtpError(str, Enum):
    TOO_MANY_ATTEMPTS = "too_many_attempts"
    NO_CODE_FOUND = "no_code_found"
    EXPIRED = "expired"
    MISMATCH = "mismatch"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    OtpError.TOO_MANY_ATTEMPTS: "Too many failed attempts. Please request a new access code.",
    OtpError.NO_CODE_FOUND: "No valid access code found. Please request a new one.",
    OtpError.EXPIRED: "Access code has expired. Please request a new one.",
    OtpError.MISMATCH: "Invalid access code.",
}


@dataclass(frozen=True)
class OtpValidation:
    valid: bool
    error: OtpError | None = None


def code_expiry(now: datetime | None = None) -> datetime:
    """Expiry timestamp for a code issued at *now*."""
    now = now or datetime.now(timezone.utc)
    return now + timedelta(seconds=OTP_TTL_SECONDS)


def validate_otp(
    submitted: str,
    stored: str | None,
    expiry: datetime | None,
    attempts: int,
    *,
    now: datetime | None = None,
) -> OtpValidation:
    """Check *submitted* against the stored code state.

    The checks run in a fixed order and the first failing one wins, so a
    locked-out code reports ``TOO_MANY_ATTEMPTS`` even if it is also
    expired or wrong.
    """
    if attempts >= OTP_MAX_ATTEMPTS:
        return OtpValidation(False, OtpError.TOO_MANY_ATTEMPTS)

    if stored is None or expiry is None:
        return OtpValidation(False, OtpError.NO_CODE_FOUND)

    now = now or datetime.now(timezone.utc)
    if now > expiry:
        return OtpValidation(False, OtpError.EXPIRED)

    if not hmac.compare_digest(submitted.encode(), stored.encode()):
        return OtpValidation(False, OtpError.MISMATCH)

    return OtpValidation(True)
