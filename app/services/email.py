"""
Email service: sends access-code emails via SMTP.

In development (no SMTP configured), emails are logged to the console
so you can see what *would* be sent without configuring a mail server.
"""

from __future__ import annotations

import logging
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

import aiosmtplib

from app.config import (
    EMAIL_SUBJECT,
    OTP_TTL_SECONDS,
    SMTP_FROM_EMAIL,
    SMTP_HOST,
    SMTP_PASSWORD,
    SMTP_PORT,
    SMTP_USE_TLS,
    SMTP_USERNAME,
    smtp_enabled,
)
from app.services.credentials import mask_email

logger = logging.getLogger(__name__)


def _build_plain_body(code: str) -> str:
    minutes = OTP_TTL_SECONDS // 60
    return (
        "AI Education Survey - Access Code\n\n"
        f"Your access code: {code}\n\n"
        f"This code expires in {minutes} minutes. Use it to access your survey.\n\n"
        "If you didn't request this code, you can safely ignore this email.\n"
    )


def _build_html_body(code: str) -> str:
    minutes = OTP_TTL_SECONDS // 60
    return f"""
    <html>
    <body style="font-family:Arial,sans-serif;color:#1f2937;max-width:600px;margin:0 auto">
      <div style="background:#6366f1;padding:20px;text-align:center">
        <h1 style="color:white;margin:0;font-size:24px">AI Education Survey</h1>
      </div>
      <div style="padding:30px">
        <h2 style="margin-top:0">Your Access Code</h2>
        <p>Thank you for participating. Use the code below to access your survey:</p>
        <div style="background:#f3f4f6;padding:20px;border-radius:8px;text-align:center">
          <div style="font-size:32px;font-weight:bold;color:#6366f1;letter-spacing:4px;font-family:monospace">
            {code}
          </div>
          <p style="color:#6b7280;font-size:14px">This code expires in {minutes} minutes</p>
        </div>
        <p>If you didn't request this code, you can safely ignore this email.</p>
        <p style="color:#9ca3af;font-size:12px;text-align:center">
          Your responses will be kept anonymous and used for research purposes only.
        </p>
      </div>
    </body>
    </html>
    """


async def send_otp_email(to_email: str, code: str) -> bool:
    """
    Send (or log) an access-code email.

    Returns False when the SMTP send failed; the caller decides what the
    participant is told.
    """
    # ── Console fallback (dev mode) ───────────────────────────────────
    if not smtp_enabled():
        logger.info("📧 [DEV] Would send access code to %s: %s", mask_email(to_email), code)
        return True

    # ── Real SMTP send ────────────────────────────────────────────────
    msg = MIMEMultipart("alternative")
    msg["Subject"] = EMAIL_SUBJECT
    msg["From"] = SMTP_FROM_EMAIL
    msg["To"] = to_email
    msg.attach(MIMEText(_build_plain_body(code), "plain"))
    msg.attach(MIMEText(_build_html_body(code), "html"))

    try:
        await aiosmtplib.send(
            msg,
            hostname=SMTP_HOST,
            port=SMTP_PORT,
            username=SMTP_USERNAME,
            password=SMTP_PASSWORD,
            start_tls=SMTP_USE_TLS,
        )
    except (aiosmtplib.SMTPException, OSError):
        logger.exception("Failed to send access code to %s", mask_email(to_email))
        return False

    logger.info("Access code sent to %s", mask_email(to_email))
    return True
