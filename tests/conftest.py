"""
Shared test configuration.

Patches dotenv so pydantic-settings never reads the project's real .env
file during tests; config is controlled exclusively through
monkeypatch.setenv() or explicit constructor arguments.
"""

import pytest

from config import EndorsementAccessSettings
from services.access_session import AccessSessionCodec
from services.endorsement_access import EndorsementAccessService
from services.otp_challenges import OtpChallengeService
from tests.fakes import (
    TEST_PEPPER,
    TEST_SECRET,
    FrozenClock,
    InMemoryChallengeStore,
    InMemoryEndorsementStore,
    RecordingEmailProvider,
    make_endorsement,
)


@pytest.fixture(autouse=True)
def disable_dotenv_loading(monkeypatch):
    """Prevent pydantic-settings from loading .env files in all tests."""
    import pydantic_settings.sources.providers.dotenv as ps_dotenv

    monkeypatch.setattr(ps_dotenv, "dotenv_values", lambda *a, **kw: {})


@pytest.fixture
def access_settings() -> EndorsementAccessSettings:
    return EndorsementAccessSettings(
        endorsement_access_secret=TEST_SECRET,
        endorsement_otp_pepper=TEST_PEPPER,
    )


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def challenge_store() -> InMemoryChallengeStore:
    return InMemoryChallengeStore()


@pytest.fixture
def endorsement_store() -> InMemoryEndorsementStore:
    return InMemoryEndorsementStore(make_endorsement("rec_1", "user@example.com"))


@pytest.fixture
def email_provider() -> RecordingEmailProvider:
    return RecordingEmailProvider()


@pytest.fixture
def challenge_service(challenge_store, access_settings, clock) -> OtpChallengeService:
    return OtpChallengeService(challenge_store, access_settings, clock=clock)


@pytest.fixture
def codec(clock) -> AccessSessionCodec:
    return AccessSessionCodec(TEST_SECRET, clock=clock)


@pytest.fixture
def access_service(
    endorsement_store, challenge_service, codec, email_provider, access_settings, clock
) -> EndorsementAccessService:
    return EndorsementAccessService(
        endorsements=endorsement_store,
        challenges=challenge_service,
        codec=codec,
        email_provider=email_provider,
        settings=access_settings,
        clock=clock,
    )
