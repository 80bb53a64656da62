"""
SQLite database layer using aiosqlite.

Stores invitations, administrators, the system settings row, survey
versions and survey responses.  Tables are created automatically on
first connect.

The whole app shares one connection, so every write goes through
``transaction()``: it serialises writers and commits (or rolls back)
exactly the statements issued inside it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite

from app.config import DB_PATH, OTP_MAX_ATTEMPTS
from app.models import (
    Administrator,
    Invitation,
    StakeholderGroup,
    SurveyResponse,
    SurveyVersion,
    SystemSettings,
)

logger = logging.getLogger(__name__)

# ── Module-level connection ───────────────────────────────────────────────

_db: aiosqlite.Connection | None = None
_write_lock: asyncio.Lock | None = None


async def init_db() -> None:
    """Open the database, create tables and the settings row if missing."""
    global _db, _write_lock
    db_path = Path(DB_PATH)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    _db = await aiosqlite.connect(str(db_path))
    _db.row_factory = aiosqlite.Row  # dict-like rows
    await _db.execute("PRAGMA journal_mode=WAL")
    await _db.execute("PRAGMA foreign_keys=ON")

    await _db.executescript(_SCHEMA)
    await _db.execute(
        "INSERT OR IGNORE INTO system_settings (id, production_mode, updated_at) VALUES (1, 0, ?)",
        (_now_iso(),),
    )
    await _db.commit()
    _write_lock = asyncio.Lock()
    logger.info("Database initialized at %s", db_path)


async def close_db() -> None:
    """Close the database connection."""
    global _db, _write_lock
    if _db is not None:
        await _db.close()
        _db = None
        _write_lock = None
        logger.info("Database connection closed")


def get_db() -> aiosqlite.Connection:
    """Return the active database connection (must call init_db first)."""
    assert _db is not None, "Database not initialized, call init_db() first"
    return _db


@asynccontextmanager
async def transaction() -> AsyncIterator[aiosqlite.Connection]:
    """Run the enclosed writes as one atomic unit."""
    db = get_db()
    assert _write_lock is not None
    async with _write_lock:
        try:
            yield db
        except BaseException:
            await db.rollback()
            raise
        else:
            await db.commit()


# ── Schema ────────────────────────────────────────────────────────────────

_SCHEMA = """
CREATE TABLE IF NOT EXISTS invitations (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    email           TEXT NOT NULL UNIQUE,
    "group"         TEXT NOT NULL,
    invited_at      TEXT NOT NULL,
    consented       INTEGER NOT NULL DEFAULT 0,
    has_taken       INTEGER NOT NULL DEFAULT 0,
    otp_code        TEXT,
    otp_expiry      TEXT,
    failed_attempts INTEGER NOT NULL DEFAULT 0,
    is_blocked      INTEGER NOT NULL DEFAULT 0,
    blocked_reason  TEXT,
    blocked_by      TEXT,
    blocked_at      TEXT
);

CREATE INDEX IF NOT EXISTS idx_invitations_group ON invitations("group");

CREATE TABLE IF NOT EXISTS administrators (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    email           TEXT NOT NULL UNIQUE,
    password_hash   TEXT NOT NULL,
    name            TEXT NOT NULL,
    role            TEXT NOT NULL DEFAULT 'admin',
    created_at      TEXT NOT NULL,
    last_login      TEXT
);

CREATE TABLE IF NOT EXISTS system_settings (
    id              INTEGER PRIMARY KEY CHECK (id = 1),
    production_mode INTEGER NOT NULL DEFAULT 0,
    toggled_at      TEXT,
    toggled_by      TEXT,
    updated_at      TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS survey_versions (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    version         TEXT NOT NULL UNIQUE,
    "group"         TEXT NOT NULL,
    questions       TEXT NOT NULL,  -- JSON array
    description     TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    max_responses   INTEGER,
    created_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_versions_group ON survey_versions("group", is_active);

CREATE TABLE IF NOT EXISTS survey_responses (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    email           TEXT NOT NULL,
    "group"         TEXT NOT NULL,
    version_id      INTEGER NOT NULL,
    responses       TEXT NOT NULL,  -- JSON object
    submitted_at    TEXT NOT NULL,
    completion_time INTEGER,
    partial         INTEGER NOT NULL DEFAULT 0,
    user_agent      TEXT,
    device_type     TEXT,
    ip_address_hash TEXT,
    FOREIGN KEY (version_id) REFERENCES survey_versions(id) ON DELETE RESTRICT
);

CREATE INDEX IF NOT EXISTS idx_responses_email ON survey_responses(email);
CREATE INDEX IF NOT EXISTS idx_responses_submitted ON survey_responses(submitted_at);
"""


# ── Helpers ───────────────────────────────────────────────────────────────


def _iso(dt: datetime | None) -> str | None:
    if dt is None:
        return None
    return dt.isoformat()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _utc_iso(dt: datetime) -> str:
    """ISO string comparable with stored timestamps (naive means UTC)."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _row_to_invitation(row: aiosqlite.Row) -> Invitation:
    return Invitation(**dict(row))


def _row_to_admin(row: aiosqlite.Row) -> Administrator:
    return Administrator(**dict(row))


def _row_to_version(row: aiosqlite.Row) -> SurveyVersion:
    data = dict(row)
    data["questions"] = json.loads(data["questions"])
    return SurveyVersion(**data)


def _row_to_response(row: aiosqlite.Row) -> SurveyResponse:
    data = dict(row)
    data["responses"] = json.loads(data["responses"])
    return SurveyResponse(**data)


# ══════════════════════════════════════════════════════════════════════════
#                    INVITATION REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def get_invitation(email: str) -> Invitation | None:
    db = get_db()
    async with db.execute("SELECT * FROM invitations WHERE email = ?", (email,)) as cur:
        row = await cur.fetchone()
    return _row_to_invitation(row) if row else None


async def list_invitations() -> list[Invitation]:
    """All invitations, newest first."""
    db = get_db()
    async with db.execute("SELECT * FROM invitations ORDER BY invited_at DESC, id DESC") as cur:
        rows = await cur.fetchall()
    return [_row_to_invitation(r) for r in rows]


async def count_invitations() -> int:
    db = get_db()
    async with db.execute("SELECT COUNT(*) FROM invitations") as cur:
        (count,) = await cur.fetchone()
    return count


async def upsert_invitation(email: str, group: StakeholderGroup) -> Invitation:
    """Invite *email*, or move an existing invitation to *group*."""
    async with transaction() as db:
        await db.execute(
            """
            INSERT INTO invitations (email, "group", invited_at) VALUES (?, ?, ?)
            ON CONFLICT(email) DO UPDATE SET "group" = excluded."group"
            """,
            (email, group.value, _now_iso()),
        )
    return await get_invitation(email)  # type: ignore[return-value]


async def store_otp(email: str, code: str, expiry: datetime) -> None:
    """Save a freshly issued code and reset the failed-attempt counter."""
    async with transaction() as db:
        await db.execute(
            """
            UPDATE invitations
            SET otp_code = ?, otp_expiry = ?, failed_attempts = 0
            WHERE email = ?
            """,
            (code, _iso(expiry), email),
        )


async def record_failed_attempt(email: str) -> None:
    async with transaction() as db:
        await db.execute(
            "UPDATE invitations SET failed_attempts = failed_attempts + 1 WHERE email = ?",
            (email,),
        )


async def redeem_otp(email: str, code: str) -> bool:
    """Consume *code* and record consent.

    Returns False if the code was already consumed (or the invitation
    got locked) since it was validated.
    """
    async with transaction() as db:
        cur = await db.execute(
            """
            UPDATE invitations
            SET otp_code = NULL, otp_expiry = NULL, failed_attempts = 0, consented = 1
            WHERE email = ? AND otp_code = ? AND failed_attempts < ?
            """,
            (email, code, OTP_MAX_ATTEMPTS),
        )
    return cur.rowcount == 1


async def set_completed(email: str, completed: bool) -> None:
    async with transaction() as db:
        await db.execute(
            "UPDATE invitations SET has_taken = ? WHERE email = ?",
            (int(completed), email),
        )


async def set_blocked(email: str, *, blocked: bool, reason: str | None, actor: str | None) -> None:
    async with transaction() as db:
        if blocked:
            await db.execute(
                """
                UPDATE invitations
                SET is_blocked = 1, blocked_reason = ?, blocked_by = ?, blocked_at = ?
                WHERE email = ?
                """,
                (reason, actor, _now_iso(), email),
            )
        else:
            await db.execute(
                """
                UPDATE invitations
                SET is_blocked = 0, blocked_reason = NULL, blocked_by = NULL, blocked_at = NULL
                WHERE email = ?
                """,
                (email,),
            )


# ══════════════════════════════════════════════════════════════════════════
#                    ADMINISTRATOR REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def get_admin(email: str) -> Administrator | None:
    db = get_db()
    async with db.execute("SELECT * FROM administrators WHERE email = ?", (email,)) as cur:
        row = await cur.fetchone()
    return _row_to_admin(row) if row else None


async def create_admin(email: str, password_hash: str, name: str, role: str = "admin") -> Administrator:
    """Insert an administrator; an existing one with the same email is kept as is."""
    async with transaction() as db:
        await db.execute(
            """
            INSERT OR IGNORE INTO administrators (email, password_hash, name, role, created_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (email, password_hash, name, role, _now_iso()),
        )
    return await get_admin(email)  # type: ignore[return-value]


async def touch_admin_login(admin_id: int) -> None:
    async with transaction() as db:
        await db.execute(
            "UPDATE administrators SET last_login = ? WHERE id = ?",
            (_now_iso(), admin_id),
        )


# ══════════════════════════════════════════════════════════════════════════
#                    SYSTEM SETTINGS
# ══════════════════════════════════════════════════════════════════════════


async def get_settings() -> SystemSettings:
    db = get_db()
    async with db.execute(
        "SELECT production_mode, toggled_at, toggled_by FROM system_settings WHERE id = 1"
    ) as cur:
        row = await cur.fetchone()
    return SystemSettings(**dict(row)) if row else SystemSettings()


async def activate_production_mode(actor: str) -> tuple[int, int] | None:
    """Switch production mode on and wipe all survey activity, atomically.

    Returns ``(deleted_responses, reset_invitations)``, or None when the
    mode was already on, in which case nothing is changed.
    """
    now = _now_iso()
    async with transaction() as db:
        cur = await db.execute(
            """
            UPDATE system_settings
            SET production_mode = 1, toggled_at = ?, toggled_by = ?, updated_at = ?
            WHERE id = 1 AND production_mode = 0
            """,
            (now, actor, now),
        )
        if cur.rowcount == 0:
            return None

        cur = await db.execute("DELETE FROM survey_responses")
        deleted = cur.rowcount

        cur = await db.execute(
            """
            UPDATE invitations
            SET has_taken = 0, consented = 0, otp_code = NULL, otp_expiry = NULL,
                failed_attempts = 0
            """
        )
        reset = cur.rowcount
    return deleted, reset


# ══════════════════════════════════════════════════════════════════════════
#                    SURVEY VERSION REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_survey_version(
    version: str,
    group: StakeholderGroup,
    questions: list[dict[str, Any]],
    *,
    description: str | None = None,
    is_active: bool = True,
) -> SurveyVersion:
    """Insert a survey version unless one with the same label exists."""
    async with transaction() as db:
        await db.execute(
            """
            INSERT OR IGNORE INTO survey_versions
                (version, "group", questions, description, is_active, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (version, group.value, json.dumps(questions), description, int(is_active), _now_iso()),
        )
    db = get_db()
    async with db.execute("SELECT * FROM survey_versions WHERE version = ?", (version,)) as cur:
        row = await cur.fetchone()
    return _row_to_version(row)


async def get_survey_version(version_id: int) -> SurveyVersion | None:
    db = get_db()
    async with db.execute("SELECT * FROM survey_versions WHERE id = ?", (version_id,)) as cur:
        row = await cur.fetchone()
    return _row_to_version(row) if row else None


async def get_active_version(group: StakeholderGroup) -> SurveyVersion | None:
    """Latest active version for *group*."""
    db = get_db()
    async with db.execute(
        """
        SELECT * FROM survey_versions
        WHERE "group" = ? AND is_active = 1
        ORDER BY created_at DESC, id DESC LIMIT 1
        """,
        (group.value,),
    ) as cur:
        row = await cur.fetchone()
    return _row_to_version(row) if row else None


# ══════════════════════════════════════════════════════════════════════════
#                    SURVEY RESPONSE REPOSITORY
# ══════════════════════════════════════════════════════════════════════════


async def create_response(
    email: str,
    group: StakeholderGroup,
    version_id: int,
    responses: dict[str, Any],
    *,
    partial: bool,
    completion_time: int | None = None,
    user_agent: str | None = None,
    device_type: str | None = None,
    ip_address_hash: str | None = None,
) -> int:
    """Store a submission; a complete one also marks the invitation taken.

    Returns the new response id.
    """
    async with transaction() as db:
        cur = await db.execute(
            """
            INSERT INTO survey_responses
                (email, "group", version_id, responses, submitted_at,
                 completion_time, partial, user_agent, device_type, ip_address_hash)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                email, group.value, version_id, json.dumps(responses), _now_iso(),
                completion_time, int(partial), user_agent, device_type, ip_address_hash,
            ),
        )
        response_id = cur.lastrowid
        if not partial:
            await db.execute("UPDATE invitations SET has_taken = 1 WHERE email = ?", (email,))
    return response_id  # type: ignore[return-value]


async def count_responses(email: str) -> int:
    db = get_db()
    async with db.execute("SELECT COUNT(*) FROM survey_responses WHERE email = ?", (email,)) as cur:
        (count,) = await cur.fetchone()
    return count


async def response_counts_by_email() -> dict[str, int]:
    db = get_db()
    async with db.execute("SELECT email, COUNT(*) AS n FROM survey_responses GROUP BY email") as cur:
        rows = await cur.fetchall()
    return {row["email"]: row["n"] for row in rows}


async def list_responses(
    *,
    groups: list[StakeholderGroup] | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    include_partial: bool = True,
    limit: int | None = None,
) -> list[SurveyResponse]:
    """Responses with their version label, newest first."""
    db = get_db()
    sql = """
        SELECT r.*, v.version AS version_label
        FROM survey_responses r
        LEFT JOIN survey_versions v ON v.id = r.version_id
        WHERE 1 = 1
    """
    params: list = []

    if groups:
        sql += f' AND r."group" IN ({", ".join("?" for _ in groups)})'
        params.extend(g.value for g in groups)
    if start is not None:
        sql += " AND r.submitted_at >= ?"
        params.append(_utc_iso(start))
    if end is not None:
        sql += " AND r.submitted_at <= ?"
        params.append(_utc_iso(end))
    if not include_partial:
        sql += " AND r.partial = 0"

    sql += " ORDER BY r.submitted_at DESC, r.id DESC"
    if limit is not None:
        sql += " LIMIT ?"
        params.append(limit)

    async with db.execute(sql, params) as cur:
        rows = await cur.fetchall()
    return [_row_to_response(r) for r in rows]
