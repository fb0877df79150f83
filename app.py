"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.rate_limit.fixed_window import create_rate_limiter
from repositories.challenge_repository import (
    COLLECTION_NAME as CHALLENGES_COLLECTION,
    ChallengeRepository,
    ensure_challenge_indexes,
)
from repositories.endorsement_repository import (
    COLLECTION_NAME as ENDORSEMENTS_COLLECTION,
    EndorsementRepository,
)
from routes.endorsement_access_routes import router as endorsement_access_router
from shared.logging import get_logger, setup_logging

log = get_logger(__name__)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application.

    Building AppSettings resolves the access secrets, so a production
    deployment without them fails here, before serving any request.
    """
    if settings is None:
        settings = AppSettings()

    setup_logging(
        log_level=settings.logging.log_level,
        log_format=settings.logging.log_format,
        production=settings.is_production,
    )

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # ── Startup ──────────────────────────────────────────────────────────
        mongo_client: AsyncMongoClient = AsyncMongoClient(
            settings.db.mongodb_uri, tz_aware=True
        )
        db = mongo_client[settings.db.db_name]
        app.state.challenge_store = ChallengeRepository(db[CHALLENGES_COLLECTION])
        app.state.endorsement_store = EndorsementRepository(db[ENDORSEMENTS_COLLECTION])
        await ensure_challenge_indexes(db[CHALLENGES_COLLECTION])

        # Redis is optional; without it rate limits are process-local
        app.state.rate_limiter = create_rate_limiter(
            settings.redis.redis_uri, prefix=settings.redis.rate_limit_prefix
        )

        http_client = httpx.AsyncClient(timeout=10.0)
        app.state.email_provider = ZeptoMailProvider(settings.email, http_client)

        log.info(
            "app_started",
            env=settings.env,
            rate_limit_backend=app.state.rate_limiter.backend,
        )

        yield

        # ── Shutdown ─────────────────────────────────────────────────────────
        await http_client.aclose()
        await mongo_client.close()

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    register_error_handlers(app)
    app.include_router(endorsement_access_router)

    return app
