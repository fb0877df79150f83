"""
OTP challenge lifecycle.

A challenge is issued for one (endorsement, email) pair and ends in one of:
expired (implicitly, by time), superseded (a newer challenge was issued),
consumed (verified). Lockout after repeated failures is not terminal: once
``locked_until`` passes, attempts are evaluated again until the challenge
expires.

Failure outcomes are coarse. A wrong code and a missing
challenge both map to INVALID_OR_EXPIRED so callers cannot probe which
endorsement/email pairs exist.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from config import EndorsementAccessSettings
from repositories.protocol import ChallengeStore
from schemas.models.challenge import OtpChallengeDoc, RequestMeta
from shared.crypto import constant_time_equals, hash_otp_code
from shared.datetime_utils import utc_now
from shared.generators import generate_otp_code
from shared.logging import get_logger, hash_email

log = get_logger(__name__)


class ChallengeOutcome(enum.Enum):
    VERIFIED = "verified"
    INVALID_OR_EXPIRED = "invalid_or_expired"
    LOCKED = "locked"


@dataclass(frozen=True)
class IssuedChallenge:
    """A freshly persisted challenge plus the raw code, which exists only here."""

    challenge: OtpChallengeDoc
    otp_code: str


class OtpChallengeService:
    def __init__(
        self,
        store: ChallengeStore,
        settings: EndorsementAccessSettings,
        *,
        clock: Callable[[], datetime] = utc_now,
        code_generator: Callable[[], str] = generate_otp_code,
    ) -> None:
        self._store = store
        self._pepper = settings.endorsement_otp_pepper
        self._ttl = timedelta(seconds=settings.otp_ttl_seconds)
        self._max_attempts = settings.otp_max_attempts
        self._lockout = timedelta(seconds=settings.otp_lockout_seconds)
        self._clock = clock
        self._generate_code = code_generator

    async def issue_challenge(
        self,
        endorsement_id: str,
        email_normalized: str,
        request_meta: Optional[RequestMeta] = None,
    ) -> IssuedChallenge:
        """Supersede live challenges for the pair and persist a new one.

        Raises whatever the store raises when the insert fails; a failed
        invalidation is only logged since the newer challenge still wins
        the latest-first lookup.
        """
        now = self._clock()

        try:
            superseded = await self._store.invalidate_live(
                endorsement_id, email_normalized, now
            )
            if superseded:
                log.info(
                    "otp_challenges_superseded",
                    endorsement_id=endorsement_id,
                    count=superseded,
                )
        except Exception as e:
            log.warning(
                "otp_challenge_invalidation_failed",
                endorsement_id=endorsement_id,
                error=str(e),
                error_type=type(e).__name__,
            )

        otp_code = self._generate_code()
        challenge = OtpChallengeDoc(
            endorsement_id=endorsement_id,
            email_normalized=email_normalized,
            otp_hash=hash_otp_code(
                endorsement_id, email_normalized, otp_code, self._pepper
            ),
            expires_at=now + self._ttl,
            attempt_count=0,
            created_at=now,
            last_sent_at=now,
            request_meta=request_meta or RequestMeta(),
        )
        challenge = await self._store.insert(challenge)

        log.info(
            "otp_challenge_issued",
            endorsement_id=endorsement_id,
            email_hash=hash_email(email_normalized),
            challenge_id=str(challenge.id),
        )
        return IssuedChallenge(challenge=challenge, otp_code=otp_code)

    async def verify_challenge(
        self, endorsement_id: str, email_normalized: str, candidate_code: str
    ) -> ChallengeOutcome:
        now = self._clock()
        challenge = await self._store.find_latest_live(
            endorsement_id, email_normalized, now
        )
        if challenge is None:
            log.warning(
                "otp_verification_failed",
                endorsement_id=endorsement_id,
                reason="no_live_challenge",
            )
            return ChallengeOutcome.INVALID_OR_EXPIRED

        if challenge.is_locked(now):
            log.warning(
                "otp_verification_failed",
                endorsement_id=endorsement_id,
                reason="locked",
                challenge_id=str(challenge.id),
            )
            return ChallengeOutcome.LOCKED

        candidate_hash = hash_otp_code(
            endorsement_id, email_normalized, candidate_code, self._pepper
        )
        if not constant_time_equals(candidate_hash, challenge.otp_hash):
            attempts = challenge.attempt_count + 1
            locked_until = now + self._lockout if attempts >= self._max_attempts else None
            await self._store.record_failed_attempt(challenge.id, attempts, locked_until)
            log.warning(
                "otp_verification_failed",
                endorsement_id=endorsement_id,
                reason="mismatch",
                challenge_id=str(challenge.id),
                attempt_count=attempts,
                locked=locked_until is not None,
            )
            return ChallengeOutcome.INVALID_OR_EXPIRED

        if not await self._store.mark_used(challenge.id, now):
            # Consumed by a concurrent request between read and write
            log.warning(
                "otp_verification_failed",
                endorsement_id=endorsement_id,
                reason="already_used",
                challenge_id=str(challenge.id),
            )
            return ChallengeOutcome.INVALID_OR_EXPIRED

        log.info(
            "otp_verified",
            endorsement_id=endorsement_id,
            challenge_id=str(challenge.id),
        )
        return ChallengeOutcome.VERIFIED
