"""
Cryptographic helpers — OTP hashing, HMAC signing and timing-safe comparison.

Uses SHA-256 for OTP hashing and HMAC-SHA256 for session token signatures.
Every hash or signature comparison goes through ``constant_time_equals``.
"""

from __future__ import annotations

import base64
import hashlib
import hmac

from errors import ConfigurationError


def resolve_secret(
    dedicated: str, fallback: str, *, production: bool, name: str
) -> str:
    """Pick the dedicated secret, else the shared application secret.

    Args:
        dedicated: Value of the purpose-specific secret (may be blank).
        fallback: The general application secret (may be blank).
        production: Whether the app runs in production.
        name: Env var name of the dedicated secret, used in the error message.

    Returns:
        The stripped secret. Blank is tolerated outside production.

    Raises:
        ConfigurationError: if both values are blank in production.
    """
    secret = (dedicated or "").strip() or (fallback or "").strip()
    if production and not secret:
        raise ConfigurationError(
            f"{name} (or SECRET_KEY) must be configured in production."
        )
    return secret


def hash_otp_code(
    endorsement_id: str, email_normalized: str, otp_code: str, pepper: str
) -> str:
    """Return the hex SHA-256 digest binding *otp_code* to its context.

    The digest covers the endorsement id, the normalized email, the code and
    a server-side pepper, so a stored hash is useless for any other
    endorsement or email, and cannot be brute-forced offline without the
    pepper.

    Returns:
        64-character lowercase hex string.
    """
    material = f"{endorsement_id}:{email_normalized}:{otp_code}:{pepper}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def constant_time_equals(a: str, b: str) -> bool:
    """Timing-safe string comparison.

    Length is not treated as secret: unequal lengths return ``False``
    straight away, equal lengths are compared with ``hmac.compare_digest``.
    """
    a_bytes = a.encode("utf-8")
    b_bytes = b.encode("utf-8")
    if len(a_bytes) != len(b_bytes):
        return False
    return hmac.compare_digest(a_bytes, b_bytes)


def b64url_encode(data: bytes | str) -> str:
    """Unpadded URL-safe base64."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(value: str) -> bytes:
    """Inverse of ``b64url_encode``; raises ``ValueError`` on bad input."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("ascii"))


def sign_hmac(data: str, secret: str) -> str:
    """Return the unpadded base64url HMAC-SHA256 of *data* keyed by *secret*."""
    digest = hmac.new(
        secret.encode("utf-8"), data.encode("utf-8"), hashlib.sha256
    ).digest()
    return b64url_encode(digest)
