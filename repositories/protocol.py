"""Store protocols — services depend on these, not on the Mongo repositories."""

from datetime import datetime
from typing import Any, Optional, Protocol

from schemas.models.challenge import OtpChallengeDoc
from schemas.models.endorsement import EndorsementDoc


class ChallengeStore(Protocol):
    async def find_latest_live(
        self, endorsement_id: str, email_normalized: str, now: datetime
    ) -> Optional[OtpChallengeDoc]: ...

    async def invalidate_live(
        self, endorsement_id: str, email_normalized: str, now: datetime
    ) -> int: ...

    async def insert(self, challenge: OtpChallengeDoc) -> OtpChallengeDoc: ...

    async def record_failed_attempt(
        self, challenge_id: Any, attempt_count: int, locked_until: Optional[datetime]
    ) -> None: ...

    async def mark_used(self, challenge_id: Any, used_at: datetime) -> bool: ...


class EndorsementStore(Protocol):
    async def find_by_id(self, endorsement_id: str) -> Optional[EndorsementDoc]: ...

    async def update_fields(self, endorsement_id: str, fields: dict) -> bool: ...

    async def delete(self, endorsement_id: str) -> bool: ...
