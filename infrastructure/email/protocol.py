"""EmailProvider protocol — services depend on this, not the concrete implementation."""

from typing import Optional, Protocol


class EmailProvider(Protocol):
    async def send_endorsement_otp_email(
        self,
        email: str,
        endorser_name: Optional[str],
        otp_code: str,
        expires_in_minutes: int,
        manage_url: str,
    ) -> bool: ...
