"""MongoDB repository for the `endorsement-access-challenges` collection.

Challenges are never deleted here: superseded and consumed challenges keep
their `used_at` marker so attempt and lockout history survives for auditing.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.asynchronous.collection import AsyncCollection

from schemas.models.challenge import OtpChallengeDoc
from shared.logging import get_logger

log = get_logger(__name__)

COLLECTION_NAME = "endorsement-access-challenges"


def _live_filter(endorsement_id: str, email_normalized: str, now: datetime) -> dict:
    # `used_at: None` matches both null and missing fields
    return {
        "endorsement_id": endorsement_id,
        "email_normalized": email_normalized,
        "used_at": None,
        "expires_at": {"$gt": now},
    }


class ChallengeRepository:
    def __init__(self, collection: AsyncCollection) -> None:
        self._col = collection

    async def find_latest_live(
        self, endorsement_id: str, email_normalized: str, now: datetime
    ) -> Optional[OtpChallengeDoc]:
        doc = await self._col.find_one(
            _live_filter(endorsement_id, email_normalized, now),
            sort=[("created_at", DESCENDING)],
        )
        return OtpChallengeDoc.from_mongo(doc)

    async def invalidate_live(
        self, endorsement_id: str, email_normalized: str, now: datetime
    ) -> int:
        result = await self._col.update_many(
            _live_filter(endorsement_id, email_normalized, now),
            {"$set": {"used_at": now}},
        )
        return result.modified_count

    async def insert(self, challenge: OtpChallengeDoc) -> OtpChallengeDoc:
        result = await self._col.insert_one(challenge.to_mongo())
        return challenge.model_copy(update={"id": result.inserted_id})

    async def record_failed_attempt(
        self, challenge_id: Any, attempt_count: int, locked_until: Optional[datetime]
    ) -> None:
        await self._col.update_one(
            {"_id": challenge_id},
            {"$set": {"attempt_count": attempt_count, "locked_until": locked_until}},
        )

    async def mark_used(self, challenge_id: Any, used_at: datetime) -> bool:
        """Consume a challenge. False if it was already used by another request."""
        result = await self._col.update_one(
            {"_id": challenge_id, "used_at": None},
            {"$set": {"used_at": used_at}},
        )
        return result.modified_count == 1


async def ensure_challenge_indexes(collection: AsyncCollection) -> None:
    await collection.create_index(
        [
            ("endorsement_id", ASCENDING),
            ("email_normalized", ASCENDING),
            ("created_at", DESCENDING),
        ],
        name="endorsement_email_created",
    )
    log.info("indexes_ensured", collection=COLLECTION_NAME)
