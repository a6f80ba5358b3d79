"""
Application lifecycle event handlers.

Manages startup and shutdown of the database engine and the shared
identity verifier (and with it the signing key cache).
"""

from typing import Callable

import structlog
from fastapi import FastAPI

from core.config import settings
from db.session import close_db, init_db
from services.identity_service import build_identity_verifier

logger = structlog.get_logger(__name__)


def create_start_app_handler(app: FastAPI) -> Callable:
    """Create startup event handler."""

    async def start_app() -> None:
        logger.info("Starting VoteRing API...")

        await init_db()
        logger.info("Database initialized")

        # One verifier per process so every request shares the signing key cache
        app.state.identity_verifier = build_identity_verifier(settings)
        logger.info("Identity verifier ready", jwks_url=settings.IDENTITY_JWKS_URL)

        if not settings.IDENTITY_AUDIENCE:
            logger.warning("IDENTITY_AUDIENCE is not set; every credential will be rejected")

        logger.info("VoteRing API started successfully")

    return start_app


def create_stop_app_handler(app: FastAPI) -> Callable:
    """Create shutdown event handler."""

    async def stop_app() -> None:
        logger.info("Shutting down VoteRing API...")

        verifier = getattr(app.state, "identity_verifier", None)
        if verifier is not None:
            await verifier.close()
            logger.info("Identity verifier closed")

        await close_db()

        logger.info("VoteRing API shutdown complete")

    return stop_app
