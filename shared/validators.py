"""
Input validators — framework-agnostic, pure functions.

All validators are stateless. Normalization (``normalize_email``) is kept
separate from syntax validation so comparisons never depend on whether an
address is well-formed.
"""

from __future__ import annotations

import re
from typing import Any, Mapping

import validators as _validators

_OTP_PATTERN = re.compile(r"[0-9]{6}")

RELATIONSHIP_TYPES = ("client", "colleague", "manager", "directReport", "other")

MAX_NAME_LENGTH = 200
MIN_ENDORSEMENT_LENGTH = 40
MAX_ENDORSEMENT_LENGTH = 500


def normalize_email(raw: str) -> str:
    """Canonicalize an email address for equality comparisons.

    Only trims and lowercases. Provider-specific rewrites (Gmail dots,
    plus-addressing) are not applied.
    """
    return raw.strip().lower()


def is_valid_email(value: str) -> bool:
    """Return True if *value* looks like an email address."""
    return bool(_validators.email(value))


def is_valid_otp_format(value: str) -> bool:
    """Return True if *value* is exactly six ASCII digits."""
    return bool(_OTP_PATTERN.fullmatch(value))


def validate_http_url(url: str) -> bool:
    """Return True if *url* is a well-formed http:// or https:// URL."""
    if not url.lower().startswith(("http://", "https://")):
        return False
    return bool(_validators.url(url))


def _clean(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def validate_endorsement_edit(fields: Mapping[str, Any]) -> list[str]:
    """Validate submitter-editable endorsement fields.

    Args:
        fields: Raw edit payload, keyed by snake_case field name.

    Returns:
        A list of user-facing error messages; empty when the edit is valid.
    """
    errors: list[str] = []

    name = _clean(fields.get("endorser_name"))
    if not name:
        errors.append("Name is required.")
    elif len(name) > MAX_NAME_LENGTH:
        errors.append(f"Name must be {MAX_NAME_LENGTH} characters or fewer.")

    text = _clean(fields.get("endorsement_text"))
    if not text:
        errors.append("Endorsement text is required.")
    elif len(text) < MIN_ENDORSEMENT_LENGTH:
        errors.append(
            f"Endorsement should be at least {MIN_ENDORSEMENT_LENGTH} characters "
            "so it has enough context to be useful."
        )
    elif len(text) > MAX_ENDORSEMENT_LENGTH:
        errors.append(
            f"Endorsement should be {MAX_ENDORSEMENT_LENGTH} characters or fewer."
        )

    if fields.get("relationship_type") not in RELATIONSHIP_TYPES:
        errors.append(
            "Relationship is required and must be one of the provided options."
        )

    linkedin_url = _clean(fields.get("linkedin_url"))
    if linkedin_url and not validate_http_url(linkedin_url):
        errors.append(
            "Please provide a valid LinkedIn profile URL (including https://) "
            "or leave this field blank."
        )

    return errors
