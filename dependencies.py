"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system. Collaborators (stores, email provider, rate
limiter) are created once in the app lifespan and stored on app.state;
tests swap them there.
"""

from __future__ import annotations

from fastapi import Request

from config import AppSettings
from infrastructure.rate_limit.protocol import RateLimiter
from services.access_session import AccessSessionCodec
from services.endorsement_access import EndorsementAccessService
from services.otp_challenges import OtpChallengeService


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def get_access_service(request: Request) -> EndorsementAccessService:
    """Build the access service from the collaborators on app.state."""
    state = request.app.state
    access_settings = state.settings.access
    challenges = OtpChallengeService(state.challenge_store, access_settings)
    codec = AccessSessionCodec(access_settings.endorsement_access_secret)
    return EndorsementAccessService(
        endorsements=state.endorsement_store,
        challenges=challenges,
        codec=codec,
        email_provider=state.email_provider,
        settings=access_settings,
    )
