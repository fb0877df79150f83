"""
Accountless endorsement self-service: request code, verify code, and the
session-gated read / edit / delete operations.

Rate limiting and cookie handling live in the route layer; this service
raises AppError subclasses and never reveals whether an endorsement exists
or whether an email matches it.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from config import EndorsementAccessSettings
from errors import (
    GENERIC_RETRY_MESSAGE,
    AuthenticationError,
    InvalidCodeError,
    ServiceUnavailableError,
    SessionRevokedError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from repositories.protocol import EndorsementStore
from schemas.dto.requests.endorsement_access import UpdateEndorsementRequest
from schemas.models.challenge import RequestMeta
from schemas.models.endorsement import STATUS_PENDING, EndorsementDoc
from services.access_session import AccessSessionCodec, AccessSessionPayload
from services.otp_challenges import ChallengeOutcome, OtpChallengeService
from shared.datetime_utils import to_epoch_ms, utc_now
from shared.logging import get_logger, hash_email
from shared.validators import (
    is_valid_email,
    is_valid_otp_format,
    normalize_email,
    validate_endorsement_edit,
)

log = get_logger(__name__)

MISSING_FIELDS_MESSAGE = "Endorsement ID and email are required."
INVALID_EMAIL_MESSAGE = "Please enter a valid email address."
CODE_FORMAT_MESSAGE = "Please enter the 6-digit code sent to your email."
INVALID_CODE_MESSAGE = "That code is invalid or has expired. Please request a new one."
MUST_VERIFY_MESSAGE = "You must verify your email before managing this endorsement."
ACCESS_REVOKED_MESSAGE = (
    "We could not verify access for this endorsement. Please request a new code."
)


@dataclass(frozen=True)
class CodeRequest:
    """A well-formed send-otp request, handled after the response is sent."""

    endorsement_id: str
    email_normalized: str
    base_url: str
    request_meta: Optional[RequestMeta] = None


@dataclass(frozen=True)
class PendingOtpEmail:
    """An OTP email for a matched request, ready to deliver."""

    email: str
    endorser_name: Optional[str]
    otp_code: str
    expires_in_minutes: int
    manage_url: str


@dataclass(frozen=True)
class IssuedSession:
    token: str
    max_age_seconds: int


@dataclass(frozen=True)
class AuthorizedEndorsement:
    session: AccessSessionPayload
    endorsement: EndorsementDoc


class EndorsementAccessService:
    def __init__(
        self,
        endorsements: EndorsementStore,
        challenges: OtpChallengeService,
        codec: AccessSessionCodec,
        email_provider: EmailProvider,
        settings: EndorsementAccessSettings,
        *,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._endorsements = endorsements
        self._challenges = challenges
        self._codec = codec
        self._email = email_provider
        self._settings = settings
        self._clock = clock

    # ── Request code ─────────────────────────────────────────────────────────

    def request_code(
        self,
        endorsement_id: str,
        email: str,
        *,
        base_url: str,
        request_meta: Optional[RequestMeta] = None,
    ) -> CodeRequest:
        """Validate a code request without touching any store.

        The returned request is handed to :meth:`process_code_request`, which
        runs after the response, so the reply cannot depend on whether the
        email matches.
        """
        endorsement_id = endorsement_id.strip()
        email_normalized = normalize_email(email)
        if not endorsement_id or not email_normalized:
            raise ValidationError(MISSING_FIELDS_MESSAGE)
        if not is_valid_email(email_normalized):
            raise ValidationError(INVALID_EMAIL_MESSAGE, field="email")
        return CodeRequest(
            endorsement_id=endorsement_id,
            email_normalized=email_normalized,
            base_url=base_url,
            request_meta=request_meta,
        )

    async def process_code_request(self, code_request: CodeRequest) -> None:
        """Issue and email a code if the request matches the endorsement.

        Runs as a background task: every failure is logged, never raised.
        """
        pending = await self.prepare_otp_email(code_request)
        if pending is not None:
            await self.send_otp_email(pending)

    async def prepare_otp_email(
        self, code_request: CodeRequest
    ) -> Optional[PendingOtpEmail]:
        """Issue a challenge if the email is the one on file for the endorsement.

        Returns the email to send, or None when nothing should be sent.
        """
        endorsement_id = code_request.endorsement_id
        email_normalized = code_request.email_normalized

        try:
            endorsement = await self._endorsements.find_by_id(endorsement_id)
        except Exception as e:
            log.error(
                "endorsement_lookup_error",
                endorsement_id=endorsement_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        stored_email = (
            normalize_email(endorsement.endorser_email)
            if endorsement and endorsement.endorser_email
            else ""
        )
        if not endorsement or not stored_email or stored_email != email_normalized:
            log.info(
                "otp_request_ignored",
                endorsement_id=endorsement_id,
                email_hash=hash_email(email_normalized),
            )
            return None

        try:
            issued = await self._challenges.issue_challenge(
                endorsement.id, email_normalized, code_request.request_meta
            )
        except Exception as e:
            log.error(
                "otp_challenge_creation_error",
                endorsement_id=endorsement_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

        return PendingOtpEmail(
            email=endorsement.endorser_email,
            endorser_name=endorsement.endorser_name or None,
            otp_code=issued.otp_code,
            expires_in_minutes=self._settings.otp_ttl_minutes,
            manage_url=f"{code_request.base_url}/endorsements/view/{endorsement.id}",
        )

    async def send_otp_email(self, pending: PendingOtpEmail) -> bool:
        """Deliver an OTP email. Failures are logged, never raised."""
        try:
            sent = await self._email.send_endorsement_otp_email(
                pending.email,
                pending.endorser_name,
                pending.otp_code,
                pending.expires_in_minutes,
                pending.manage_url,
            )
        except Exception as e:
            log.error(
                "otp_email_send_error", error=str(e), error_type=type(e).__name__
            )
            return False
        if not sent:
            log.error("otp_email_not_sent", email_hash=hash_email(pending.email))
        return sent

    # ── Verify code ──────────────────────────────────────────────────────────

    async def verify_code(
        self, endorsement_id: str, email: str, otp: str
    ) -> IssuedSession:
        endorsement_id = endorsement_id.strip()
        email_normalized = normalize_email(email)
        otp = otp.strip()
        if not endorsement_id or not email_normalized or not is_valid_otp_format(otp):
            raise ValidationError(CODE_FORMAT_MESSAGE)

        try:
            outcome = await self._challenges.verify_challenge(
                endorsement_id, email_normalized, otp
            )
        except Exception as e:
            log.error(
                "otp_verification_error",
                endorsement_id=endorsement_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ServiceUnavailableError(GENERIC_RETRY_MESSAGE) from e

        if outcome is not ChallengeOutcome.VERIFIED:
            raise InvalidCodeError(INVALID_CODE_MESSAGE)

        ttl = self._settings.session_ttl_seconds
        expires_at = self._clock() + timedelta(seconds=ttl)
        token = self._codec.mint(endorsement_id, email_normalized, to_epoch_ms(expires_at))
        log.info("access_session_issued", endorsement_id=endorsement_id)
        return IssuedSession(token=token, max_age_seconds=ttl)

    # ── Session-gated operations ─────────────────────────────────────────────

    async def authorize_mutation(
        self, token: Optional[str], endorsement_id: str
    ) -> AuthorizedEndorsement:
        """Confirm the session still grants access to *endorsement_id*.

        Raises:
            AuthenticationError: no usable session for this endorsement.
            SessionRevokedError: the session no longer matches the record;
                the cookie must be cleared.
            ServiceUnavailableError: the endorsement could not be loaded.
        """
        session = self._codec.verify(token)
        if session is None or session.endorsement_id != endorsement_id:
            raise AuthenticationError(MUST_VERIFY_MESSAGE)

        try:
            endorsement = await self._endorsements.find_by_id(session.endorsement_id)
        except Exception as e:
            log.error(
                "endorsement_lookup_error",
                endorsement_id=endorsement_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ServiceUnavailableError(GENERIC_RETRY_MESSAGE) from e

        if endorsement is None or not endorsement.endorser_email:
            log.warning(
                "access_session_revoked",
                endorsement_id=endorsement_id,
                reason="endorsement_missing",
            )
            raise SessionRevokedError(ACCESS_REVOKED_MESSAGE)

        if normalize_email(endorsement.endorser_email) != session.email_normalized:
            log.warning(
                "access_session_revoked",
                endorsement_id=endorsement_id,
                reason="email_changed",
            )
            raise SessionRevokedError(ACCESS_REVOKED_MESSAGE)

        return AuthorizedEndorsement(session=session, endorsement=endorsement)

    async def get_managed_endorsement(
        self, token: Optional[str], endorsement_id: str
    ) -> EndorsementDoc:
        authorized = await self.authorize_mutation(token, endorsement_id)
        return authorized.endorsement

    async def update_endorsement(
        self, token: Optional[str], endorsement_id: str, body: UpdateEndorsementRequest
    ) -> None:
        authorized = await self.authorize_mutation(token, endorsement_id)

        errors = validate_endorsement_edit(body.model_dump())
        if errors:
            raise ValidationError(errors[0], errors=errors)

        now = self._clock()
        prefs = body.display_preferences
        fields = {
            "endorser_name": body.endorser_name.strip(),
            "endorsement_text": body.endorsement_text.strip(),
            "relationship_type": body.relationship_type,
            "role_or_title": (body.role_or_title or "").strip() or None,
            "company_or_project": (body.company_or_project or "").strip() or None,
            "linkedin_url": (body.linkedin_url or "").strip() or None,
            "display_preferences": {
                "show_name_publicly": _flag(prefs.show_name_publicly, True),
                "show_company_or_project_publicly": _flag(
                    prefs.show_company_or_project_publicly, True
                ),
                "show_linkedin_url_publicly": _flag(
                    prefs.show_linkedin_url_publicly, False
                ),
            },
            # A submitter edit always goes back through moderation
            "status": STATUS_PENDING,
            "approved_at": None,
            "submitter_edit_at": now,
            "review_request": {
                "type": "submitter_edit",
                "requested_by": "submitter",
                "requested_at": now,
            },
        }

        await self._write(
            "update", authorized.endorsement.id, self._endorsements.update_fields, fields
        )
        log.info("endorsement_updated_by_submitter", endorsement_id=endorsement_id)

    async def delete_endorsement(self, token: Optional[str], endorsement_id: str) -> None:
        authorized = await self.authorize_mutation(token, endorsement_id)
        await self._write("delete", authorized.endorsement.id, self._endorsements.delete)
        log.info("endorsement_deleted_by_submitter", endorsement_id=endorsement_id)

    async def _write(self, action: str, endorsement_id: str, operation, *args) -> None:
        try:
            await operation(endorsement_id, *args)
        except Exception as e:
            log.error(
                "endorsement_write_error",
                action=action,
                endorsement_id=endorsement_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ServiceUnavailableError(GENERIC_RETRY_MESSAGE) from e


def _flag(value: Optional[bool], default: bool) -> bool:
    return default if value is None else bool(value)
