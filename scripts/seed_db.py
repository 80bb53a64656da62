#!/usr/bin/env python3
"""
Seed the survey database with its initial data.

Creates the settings row, the administrator from SEED_ADMIN_EMAIL /
SEED_ADMIN_PASSWORD, one survey version per stakeholder group and the
test invitations.  Running it twice changes nothing.
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from app import db  # noqa: E402
from app.seed import seed  # noqa: E402


async def main() -> None:
    await db.init_db()
    try:
        await seed()
    finally:
        await db.close_db()
    print("✓ Database seeded at", db.DB_PATH)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)-8s  %(message)s")
    asyncio.run(main())
