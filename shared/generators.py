"""
Random code generators — pure, side-effect-free functions.

Codes gate write access to endorsements, so everything here draws from the
``secrets`` module, never the ``random`` PRNG.
"""

from __future__ import annotations

import secrets

OTP_DIGITS = 6


def generate_otp_code(digits: int = OTP_DIGITS) -> str:
    """Generate a uniformly random numeric OTP.

    Args:
        digits: Number of digits (default 6).

    Returns:
        Zero-padded decimal string, e.g. ``"004821"``.
    """
    return str(secrets.randbelow(10**digits)).zfill(digits)
