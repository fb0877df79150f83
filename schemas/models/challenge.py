"""
OTP challenge document model.

Maps to the `endorsement-access-challenges` MongoDB collection.

otp_hash stores SHA-256(endorsement_id:email:otp:pepper); the plain OTP is
never stored. used_at is None until the challenge is consumed or superseded
by a newer one; once set the challenge is terminal. locked_until is set
after too many failed attempts and expires on its own.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from schemas.models.base import MongoBaseModel
from shared.datetime_utils import ensure_utc


class RequestMeta(BaseModel):
    """Caller metadata captured for abuse auditing."""

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class OtpChallengeDoc(MongoBaseModel):
    """Document model for the `endorsement-access-challenges` collection."""

    endorsement_id: str
    email_normalized: str
    otp_hash: str
    expires_at: datetime
    used_at: Optional[datetime] = None
    attempt_count: int = Field(default=0, ge=0)
    locked_until: Optional[datetime] = None
    created_at: Optional[datetime] = None
    last_sent_at: Optional[datetime] = None
    request_meta: RequestMeta = Field(default_factory=RequestMeta)

    @field_validator(
        "expires_at", "used_at", "locked_until", "created_at", "last_sent_at"
    )
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    def is_live(self, now: datetime) -> bool:
        """Unused and not yet expired."""
        return self.used_at is None and self.expires_at > now

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and self.locked_until > now
