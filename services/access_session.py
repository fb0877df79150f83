"""
Signed, stateless access session tokens.

Token format: ``<base64url(json payload)>.<base64url(hmac-sha256(payload part))>``

A token only proves that an email was verified for one endorsement at
issuance. It is not revocable server-side; callers must re-check the
endorsement's current email before acting on it.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional

from shared.crypto import b64url_decode, b64url_encode, constant_time_equals, sign_hmac
from shared.datetime_utils import to_epoch_ms, utc_now


@dataclass(frozen=True)
class AccessSessionPayload:
    endorsement_id: str
    email_normalized: str
    expires_at_ms: int | float

    def to_json(self) -> str:
        return json.dumps(
            {
                "endorsementId": self.endorsement_id,
                "emailNormalized": self.email_normalized,
                "expiresAtMs": self.expires_at_ms,
            },
            separators=(",", ":"),
        )


def _parse_payload(raw: Any) -> Optional[AccessSessionPayload]:
    if not isinstance(raw, dict):
        return None

    endorsement_id = raw.get("endorsementId")
    email_normalized = raw.get("emailNormalized")
    expires_at_ms = raw.get("expiresAtMs")

    if not isinstance(endorsement_id, str) or not endorsement_id.strip():
        return None
    if not isinstance(email_normalized, str) or not email_normalized.strip():
        return None
    # bool is an int subclass; true/false is not a timestamp
    if isinstance(expires_at_ms, bool) or not isinstance(expires_at_ms, (int, float)):
        return None
    if not math.isfinite(expires_at_ms):
        return None

    return AccessSessionPayload(
        endorsement_id=endorsement_id,
        email_normalized=email_normalized,
        expires_at_ms=expires_at_ms,
    )


class AccessSessionCodec:
    def __init__(
        self, secret: str, *, clock: Callable[[], datetime] = utc_now
    ) -> None:
        self._secret = secret
        self._clock = clock

    def mint(
        self, endorsement_id: str, email_normalized: str, expires_at_ms: int
    ) -> str:
        payload = AccessSessionPayload(
            endorsement_id=endorsement_id,
            email_normalized=email_normalized,
            expires_at_ms=expires_at_ms,
        )
        body = b64url_encode(payload.to_json())
        return f"{body}.{sign_hmac(body, self._secret)}"

    def verify(self, token: Optional[str]) -> Optional[AccessSessionPayload]:
        """Return the payload if *token* is authentic and unexpired, else None."""
        if not token:
            return None

        body, _, signature = token.partition(".")
        if not body or not signature:
            return None

        expected = sign_hmac(body, self._secret)
        if len(signature) != len(expected):
            return None
        if not constant_time_equals(signature, expected):
            return None

        try:
            raw = json.loads(b64url_decode(body).decode("utf-8"))
        except (ValueError, UnicodeDecodeError):
            return None

        payload = _parse_payload(raw)
        if payload is None:
            return None

        if to_epoch_ms(self._clock()) > payload.expires_at_ms:
            return None
        return payload
