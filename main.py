#!/usr/bin/env python3
"""
Entry point for the survey service.

    python main.py                  # serve on 0.0.0.0:8000
    python scripts/seed_db.py       # create the admin, survey versions and test invites first
"""

import os

import uvicorn

from app.config import ENVIRONMENT

if __name__ == "__main__":
    uvicorn.run(
        "app.main:app",
        host=os.getenv("API_HOST", "0.0.0.0"),
        port=int(os.getenv("API_PORT", "8000")),
        # Auto-reload only while developing unless set explicitly
        reload=os.getenv("API_RELOAD", str(ENVIRONMENT == "development")).lower() == "true",
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
        proxy_headers=True,
    )
