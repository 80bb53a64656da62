"""
FastAPI application for the stakeholder survey service.

Participants sign in with an emailed one-time code; administrators sign
in with a password.  Both get a JWT session cookie.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from app import db
from app.config import ENVIRONMENT
from app.errors import SurveyServiceError
from app.rate_limit import limiter
from app.routers import admin, auth, health, survey

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the database on startup, close it on shutdown."""
    await db.init_db()
    logger.info("Survey service started (%s)", ENVIRONMENT)
    yield
    await db.close_db()


app = FastAPI(
    title="Stakeholder Survey API",
    description="Invitation-only survey with one-time access codes and an admin console",
    version="0.1.0",
    lifespan=lifespan,
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.info("Rate limit hit on %s: %s", request.url.path, exc.detail)
    return JSONResponse(
        status_code=429,
        content={"detail": f"Rate limit exceeded: {exc.detail}"},
    )


@app.exception_handler(SurveyServiceError)
async def service_error_handler(request: Request, exc: SurveyServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers=exc.headers,
    )


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(survey.router)
app.include_router(admin.router)
