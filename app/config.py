"""
Application configuration from environment variables.

All settings have sensible defaults for local development.
A .env file in the project root is loaded automatically (if present).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env file before reading any env vars
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

# ── Paths ─────────────────────────────────────────────────────────────────

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database file
DB_PATH: str = os.getenv("DB_PATH", str(DATA_DIR / "survey.db"))

# ── Sessions (JWT) ────────────────────────────────────────────────────────

SESSION_SECRET: str = os.getenv("SESSION_SECRET", "dev-secret-change-me-in-production")
JWT_ALGORITHM: str = "HS256"

# Admins keep a working-day session; participants only need long enough
# to finish one survey.
ADMIN_SESSION_HOURS: int = int(os.getenv("ADMIN_SESSION_HOURS", "24"))
SURVEY_SESSION_HOURS: int = int(os.getenv("SURVEY_SESSION_HOURS", "2"))

ADMIN_COOKIE: str = "admin_session"
SURVEY_COOKIE: str = "survey_session"

# ── One-time passcodes ────────────────────────────────────────────────────

OTP_TTL_SECONDS: int = int(os.getenv("OTP_TTL_SECONDS", "600"))
OTP_MAX_ATTEMPTS: int = int(os.getenv("OTP_MAX_ATTEMPTS", "5"))

# Per-email throttle on code requests, on top of the per-IP route limit.
OTP_EMAIL_LIMIT: int = int(os.getenv("OTP_EMAIL_LIMIT", "5"))
OTP_EMAIL_WINDOW_MS: int = int(os.getenv("OTP_EMAIL_WINDOW_MS", "60000"))

# ── Privacy ───────────────────────────────────────────────────────────────

ANONYMIZATION_SALT: str = os.getenv("ANONYMIZATION_SALT", "default-salt")

# ── Production mode ───────────────────────────────────────────────────────

# Invitations on this domain are seed/test accounts; they are locked out
# once production mode is switched on.
TEST_ACCOUNT_DOMAIN: str = os.getenv("TEST_ACCOUNT_DOMAIN", "@example.com")

# Exact phrase an admin must type to switch production mode on.
PRODUCTION_CONFIRMATION: str = "PRODUCTION"

# ── SMTP ──────────────────────────────────────────────────────────────────

SMTP_HOST: str = os.getenv("SMTP_HOST", "")
SMTP_PORT: int = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME: str = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD: str = os.getenv("SMTP_PASSWORD", "")
SMTP_FROM_EMAIL: str = os.getenv("SMTP_FROM_EMAIL", "noreply@survey.local")
SMTP_USE_TLS: bool = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

EMAIL_SUBJECT: str = os.getenv("EMAIL_SUBJECT", "AI Education Survey - Access Code")

# Set to "false" to force console-only mode even when SMTP credentials are present.
_SMTP_ENABLED_OVERRIDE: str = os.getenv("SMTP_ENABLED", "auto")


def smtp_enabled() -> bool:
    """True when SMTP should actually send emails.

    Controlled by SMTP_ENABLED env var:
      • "auto" (default): send if credentials are configured
      • "true": always send (will fail if credentials are missing)
      • "false": never send, log to console instead
    """
    if _SMTP_ENABLED_OVERRIDE.lower() == "false":
        return False
    if _SMTP_ENABLED_OVERRIDE.lower() == "true":
        return True
    # "auto": send only when credentials are fully configured
    return bool(SMTP_HOST and SMTP_USERNAME and SMTP_PASSWORD)


# ── Seeding ───────────────────────────────────────────────────────────────

SEED_ADMIN_EMAIL: str = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
SEED_ADMIN_PASSWORD: str = os.getenv("SEED_ADMIN_PASSWORD", "admin123")
SEED_ADMIN_NAME: str = os.getenv("SEED_ADMIN_NAME", "System Administrator")
